"""
Management command to add a single product to the catalog

Usage:
    python manage.py add_product
    python manage.py add_product --name "Desk Lamp" --price 24.50 --stock 12 --category Electronics
"""
from django.core.management.base import BaseCommand, CommandError
from backend.catalog.models import Product
from backend.catalog.validators import parse_product_fields


class Command(BaseCommand):
    help = "Adds a product to the catalog"

    def add_arguments(self, parser):
        parser.add_argument('--name', default='New Product', help='Product name')
        parser.add_argument('--price', default='99.99', help='Unit price')
        parser.add_argument('--stock', default='100', help='Initial stock quantity')
        parser.add_argument('--category', default=None, help='Category name')
        parser.add_argument('--currency', default=None, help='Currency code, e.g. GHC or USD')
        parser.add_argument('--unit', default=None, help='Stock unit, e.g. Units or Kg')
        parser.add_argument('--rating', default=None, help='Rating between 0 and 5')

    def handle(self, *args, **options):
        data = {
            'name': options['name'],
            'price': options['price'],
            'stockQuantity': options['stock'],
        }
        for option, field in (('category', 'category'), ('currency', 'currency'), ('unit', 'stockUnit'), ('rating', 'rating')):
            if options[option] is not None:
                data[field] = options[option]

        try:
            fields = parse_product_fields(data)
        except ValueError as e:
            raise CommandError(str(e))

        product = Product.objects.create(**fields)

        self.stdout.write(self.style.SUCCESS("=" * 60))
        self.stdout.write(self.style.SUCCESS("NEW PRODUCT ADDED"))
        self.stdout.write(self.style.SUCCESS("=" * 60))
        self.stdout.write(f"ID:       {product.product_id}")
        self.stdout.write(f"Name:     {product.name}")
        self.stdout.write(f"Price:    {product.price}")
        self.stdout.write(f"Stock:    {product.stock_quantity}")
        if product.category:
            self.stdout.write(f"Category: {product.category}")
