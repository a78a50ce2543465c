from rest_framework import serializers
from .models import Product


class ProductSerializer(serializers.ModelSerializer):
    """Read representation of a product, using the frontend's camelCase field names"""
    productId = serializers.CharField(source='product_id', read_only=True)
    stockQuantity = serializers.IntegerField(source='stock_quantity', read_only=True)
    stockUnit = serializers.CharField(source='stock_unit', read_only=True, allow_null=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = Product
        fields = [
            'productId', 'name', 'price', 'currency', 'stockQuantity', 'stockUnit',
            'category', 'rating', 'image', 'createdAt', 'updatedAt',
        ]
        read_only_fields = fields
