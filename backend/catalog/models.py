import uuid

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models


def generate_product_id():
    return str(uuid.uuid4())


class Product(models.Model):
    """Product master"""
    product_id = models.CharField(max_length=64, primary_key=True, default=generate_product_id, editable=False)
    name = models.CharField(max_length=200, db_index=True)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    currency = models.CharField(max_length=10, blank=True, null=True)  # client falls back to GHC
    stock_quantity = models.PositiveIntegerField(default=0)
    stock_unit = models.CharField(max_length=50, blank=True, null=True)  # client falls back to category unit
    category = models.CharField(max_length=200, blank=True, null=True, db_index=True)
    rating = models.FloatField(
        null=True, blank=True,
        validators=[MinValueValidator(0), MaxValueValidator(5)],
    )
    image = models.CharField(max_length=500, blank=True, null=True)  # e.g. /uploads/products/product-....png
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.product_id})"

    class Meta:
        db_table = 'products'
        ordering = ['name']
