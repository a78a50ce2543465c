"""
Test utilities and factories for creating test data
"""
from backend.catalog.models import Product
from decimal import Decimal
from unittest import mock
import io
import random
import string
from PIL import Image


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_product(name=None, price=None, stock_quantity=10, category=None, **kwargs):
        """Create a test product"""
        if not name:
            name = f'Product_{TestDataFactory.random_string(6)}'
        if price is None:
            price = Decimal('100.00')
        return Product.objects.create(
            name=name,
            price=price,
            stock_quantity=stock_quantity,
            category=category,
            **kwargs
        )

    @staticmethod
    def product_dict(product_id=None, name=None, price=10.0, stock_quantity=5, category=None, **extra):
        """Product as the API returns it (camelCase), for client-side workflow tests"""
        data = {
            'productId': product_id or TestDataFactory.random_string(8),
            'name': name or f'Product_{TestDataFactory.random_string(6)}',
            'price': price,
            'stockQuantity': stock_quantity,
            'category': category,
        }
        data.update(extra)
        return data

    @staticmethod
    def image_bytes(fmt='PNG', size=(4, 4)):
        """Small valid image file content"""
        buffer = io.BytesIO()
        Image.new('RGB', size, color=(200, 30, 30)).save(buffer, format=fmt)
        return buffer.getvalue()


class FakeProductAPIClient:
    """In-process stand-in for ProductAPIClient that records calls"""

    def __init__(self, products=None, fail_on=None):
        self.products = {p['productId']: dict(p) for p in (products or [])}
        self.fail_on = set(fail_on or [])
        self.update_calls = []
        self.list_calls = 0

    def list_products(self, search=None):
        self.list_calls += 1
        products = list(self.products.values())
        if search:
            products = [p for p in products if search.lower() in p['name'].lower()]
        return [dict(p) for p in products]

    def update_product_fields(self, product_id, update_data):
        self.update_calls.append((product_id, dict(update_data)))
        if product_id in self.fail_on:
            raise RuntimeError(f"update failed for {product_id}")
        self.products[product_id].update(update_data)
        return dict(self.products[product_id])


def mock_response(status_code=200, payload=None, reason='OK'):
    """requests.Response look-alike for session mocks"""
    response = mock.Mock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 400
    response.reason = reason
    if payload is None:
        response.json.side_effect = ValueError('No JSON')
    else:
        response.json.return_value = payload
    return response
