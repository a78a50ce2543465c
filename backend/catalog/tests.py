"""
Test suite for the Catalog module
Tests: product list/search, create, partial update, image uploads,
display helpers, client-local preferences and the product API client
"""
import os
import shutil
import tempfile
from decimal import Decimal
from io import StringIO
from unittest import mock

import requests
from django.core.files.uploadedfile import SimpleUploadedFile
from django.core.management import call_command
from django.test import SimpleTestCase, TestCase, override_settings
from rest_framework import status
from rest_framework.test import APIClient

from backend.catalog.api_client import ProductAPIClient, ProductAPIError
from backend.catalog.models import Product
from backend.catalog.preferences import CatalogPreferences
from backend.catalog.uploads import (
    ImageUploadError,
    delete_product_image,
    generate_upload_name,
    validate_image,
)
from backend.catalog.utils import (
    format_price,
    format_stock,
    get_category_default_unit,
    get_currency_symbol,
    get_payment_method_display,
    with_client_defaults,
)
from backend.catalog.validators import parse_product_fields
from backend.core.storage import InMemoryKeyValueStore
from backend.core.test_utils import TestDataFactory, mock_response


class ProductListAPITests(TestCase):
    """Test GET /products"""

    def setUp(self):
        self.client = APIClient()
        self.laptop = TestDataFactory.create_product(name='Laptop Pro', price=Decimal('1200.00'), category='Electronics')
        self.lamp = TestDataFactory.create_product(name='Desk Lamp', price=Decimal('24.50'), category='Home & Kitchen')
        self.apple = TestDataFactory.create_product(name='Green Apple', price=Decimal('0.80'), category='Food & Beverage')

    def test_list_products(self):
        """Test listing every product"""
        response = self.client.get('/products')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 3)

    def test_list_products_trailing_slash(self):
        """Test the list route also answers with a trailing slash"""
        response = self.client.get('/products/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 3)

    def test_search_is_case_insensitive_substring(self):
        """Test search matches a substring of the name regardless of case"""
        response = self.client.get('/products', {'search': 'LAMP'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([p['productId'] for p in response.data], [self.lamp.product_id])

    def test_search_without_matches(self):
        """Test search with no match returns an empty list"""
        response = self.client.get('/products', {'search': 'zzz'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, [])

    def test_empty_search_returns_everything(self):
        response = self.client.get('/products', {'search': ''})
        self.assertEqual(len(response.data), 3)

    def test_response_uses_camel_case_fields(self):
        """Test the product representation"""
        response = self.client.get('/products', {'search': 'Laptop'})
        product = response.data[0]
        for key in ('productId', 'name', 'price', 'stockQuantity', 'category', 'rating', 'image'):
            self.assertIn(key, product)
        self.assertEqual(product['stockQuantity'], 10)
        self.assertEqual(Decimal(str(product['price'])), Decimal('1200.00'))


class ProductCreateAPITests(TestCase):
    """Test POST /products"""

    def setUp(self):
        self.client = APIClient()

    def test_create_product_json(self):
        """Test creating a product from a JSON body"""
        data = {'name': 'Office Chair', 'price': 149.99, 'stockQuantity': 7, 'rating': 4.5, 'category': 'Office Supplies'}
        response = self.client.post('/products', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['productId'])
        product = Product.objects.get(pk=response.data['productId'])
        self.assertEqual(product.name, 'Office Chair')
        self.assertEqual(product.price, Decimal('149.99'))
        self.assertEqual(product.stock_quantity, 7)
        self.assertEqual(product.rating, 4.5)

    def test_create_product_form_strings(self):
        """Test form fields are coerced from strings"""
        data = {'name': 'Notebook', 'price': '3.5', 'stockQuantity': '40'}
        response = self.client.post('/products', data, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        product = Product.objects.get(pk=response.data['productId'])
        self.assertEqual(product.price, Decimal('3.50'))
        self.assertEqual(product.stock_quantity, 40)
        self.assertIsNone(product.rating)
        self.assertIsNone(product.image)

    def test_create_product_ignores_unknown_fields(self):
        data = {'name': 'Mug', 'price': '5', 'stockQuantity': '2', 'colour': 'blue'}
        response = self.client.post('/products', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_create_product_invalid_price(self):
        """Test an unparseable price fails with a 500 and creates nothing"""
        data = {'name': 'Broken', 'price': 'abc', 'stockQuantity': '1'}
        response = self.client.post('/products', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.data['message'], 'Error creating product')
        self.assertEqual(Product.objects.count(), 0)

    def test_create_product_missing_fields(self):
        """Test missing required fields fail with a 500"""
        response = self.client.post('/products', {'name': 'No price'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(Product.objects.count(), 0)

    def test_create_product_negative_stock(self):
        data = {'name': 'Negative', 'price': '1', 'stockQuantity': '-3'}
        response = self.client.post('/products', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(Product.objects.count(), 0)

    def test_create_product_rating_out_of_range(self):
        data = {'name': 'Overrated', 'price': '1', 'stockQuantity': '1', 'rating': '7'}
        response = self.client.post('/products', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)


class ProductUpdateAPITests(TestCase):
    """Test PATCH /products/<id>"""

    def setUp(self):
        self.client = APIClient()
        self.product = TestDataFactory.create_product(name='Desk Lamp', price=Decimal('24.50'), stock_quantity=4, rating=3.0)

    def url(self, product_id=None):
        return f'/products/{product_id or self.product.product_id}'

    def test_partial_update(self):
        """Test only the sent fields change"""
        response = self.client.patch(self.url(), {'stockQuantity': 9}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['stockQuantity'], 9)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 9)
        self.assertEqual(self.product.name, 'Desk Lamp')
        self.assertEqual(self.product.price, Decimal('24.50'))

    def test_partial_update_trailing_slash(self):
        response = self.client.patch(self.url() + '/', {'name': 'Floor Lamp'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.product.refresh_from_db()
        self.assertEqual(self.product.name, 'Floor Lamp')

    def test_update_missing_product(self):
        """Test an unknown id answers 404 without touching anything"""
        response = self.client.patch(self.url('does-not-exist'), {'stockQuantity': 1}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data, {'message': 'Product not found'})
        self.assertEqual(Product.objects.count(), 1)

    def test_update_invalid_price(self):
        """Test an unparseable price fails with a 500 and leaves the row alone"""
        response = self.client.patch(self.url(), {'price': 'abc'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.data['message'], 'Error updating product')
        self.product.refresh_from_db()
        self.assertEqual(self.product.price, Decimal('24.50'))

    def test_update_clears_rating(self):
        response = self.client.patch(self.url(), {'rating': ''}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.product.refresh_from_db()
        self.assertIsNone(self.product.rating)

    def test_update_ignores_unknown_fields(self):
        response = self.client.patch(self.url(), {'barcode': '123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_update_product_id_is_not_writable(self):
        original_id = self.product.product_id
        response = self.client.patch(self.url(), {'productId': 'other'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['productId'], original_id)


class ProductImageUploadTests(TestCase):
    """Test image uploads on create and update"""

    def setUp(self):
        self.client = APIClient()
        self.upload_root = tempfile.mkdtemp()
        self.override = override_settings(UPLOADS_ROOT=self.upload_root)
        self.override.enable()

    def tearDown(self):
        self.override.disable()
        shutil.rmtree(self.upload_root, ignore_errors=True)

    def image(self, name='photo.png', content_type='image/png'):
        return SimpleUploadedFile(name, TestDataFactory.image_bytes(), content_type=content_type)

    def test_create_with_image(self):
        """Test the stored image path is returned and the file is served"""
        data = {'name': 'Camera', 'price': '300', 'stockQuantity': '2', 'image': self.image()}
        response = self.client.post('/products', data, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        image_path = response.data['image']
        self.assertRegex(image_path, r'^/uploads/products/product-\d+-\d+\.png$')

        served = self.client.get(image_path)
        self.assertEqual(served.status_code, status.HTTP_200_OK)
        served.close()

    def test_update_with_image(self):
        product = TestDataFactory.create_product(name='Camera')
        response = self.client.patch(
            f'/products/{product.product_id}',
            {'image': self.image('new.jpg', 'image/jpeg')},
            format='multipart',
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        product.refresh_from_db()
        self.assertTrue(product.image.startswith('/uploads/products/product-'))
        self.assertTrue(product.image.endswith('.jpg'))

    def test_reject_unsupported_type(self):
        """Test non-image uploads are refused and no product is created"""
        bad = SimpleUploadedFile('notes.txt', b'hello', content_type='text/plain')
        data = {'name': 'Camera', 'price': '300', 'stockQuantity': '2', 'image': bad}
        response = self.client.post('/products', data, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(Product.objects.count(), 0)

    @override_settings(UPLOAD_MAX_BYTES=10)
    def test_reject_oversized_image(self):
        with self.assertRaises(ImageUploadError):
            validate_image(self.image())

    def test_reject_fake_image(self):
        fake = SimpleUploadedFile('fake.png', b'not really a png', content_type='image/png')
        with self.assertRaises(ImageUploadError):
            validate_image(fake)

    def test_upload_name_format(self):
        name = generate_upload_name('Holiday.JPEG')
        self.assertRegex(name, r'^product-\d+-\d+\.jpeg$')

    def stored_files(self):
        found = []
        for root, _, files in os.walk(self.upload_root):
            found.extend(os.path.join(root, name) for name in files)
        return found

    def test_invalid_create_leaves_no_file(self):
        """Test a create that fails validation does not keep the uploaded image"""
        data = {'name': 'x' * 300, 'price': '10', 'stockQuantity': '1', 'image': self.image()}
        response = self.client.post('/products', data, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(Product.objects.count(), 0)
        self.assertEqual(self.stored_files(), [])

    def test_invalid_update_leaves_no_file(self):
        """Test an update that fails validation does not keep the uploaded image"""
        product = TestDataFactory.create_product(name='Camera')
        response = self.client.patch(
            f'/products/{product.product_id}',
            {'name': 'x' * 300, 'image': self.image()},
            format='multipart',
        )
        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        product.refresh_from_db()
        self.assertEqual(product.name, 'Camera')
        self.assertIsNone(product.image)
        self.assertEqual(self.stored_files(), [])

    def test_failed_save_removes_stored_image(self):
        """Test the image is deleted again when the row cannot be written"""
        data = {'name': 'Camera', 'price': '300', 'stockQuantity': '2', 'image': self.image()}
        with mock.patch.object(Product, 'save', side_effect=RuntimeError('database is locked')):
            response = self.client.post('/products', data, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(self.stored_files(), [])

    def test_delete_product_image_ignores_foreign_paths(self):
        delete_product_image(None)
        delete_product_image('https://cdn.example.com/a.png')
        self.assertEqual(self.stored_files(), [])


class ProductFieldParsingTests(SimpleTestCase):
    """Test request field parsing"""

    def test_required_fields_on_create(self):
        with self.assertRaises(ValueError):
            parse_product_fields({'name': 'x', 'price': '1'})

    def test_partial_allows_missing_fields(self):
        self.assertEqual(parse_product_fields({}, partial=True), {})

    def test_price_is_rounded_to_cents(self):
        fields = parse_product_fields({'name': 'x', 'price': '1.005', 'stockQuantity': 1})
        self.assertEqual(fields['price'], Decimal('1.00'))

    def test_blank_rating_skipped_on_create(self):
        fields = parse_product_fields({'name': 'x', 'price': '1', 'stockQuantity': '1', 'rating': ''})
        self.assertNotIn('rating', fields)

    def test_fractional_stock_rejected(self):
        with self.assertRaises(ValueError):
            parse_product_fields({'stockQuantity': 2.5}, partial=True)

    def test_blank_name_rejected(self):
        with self.assertRaises(ValueError):
            parse_product_fields({'name': '  '}, partial=True)

    def test_blank_optional_text_becomes_none(self):
        fields = parse_product_fields({'category': ''}, partial=True)
        self.assertEqual(fields, {'category': None})


class CatalogUtilsTests(SimpleTestCase):
    """Test display helpers"""

    def test_currency_symbol(self):
        self.assertEqual(get_currency_symbol('GHC'), '₵')
        self.assertEqual(get_currency_symbol('USD'), '$')
        self.assertEqual(get_currency_symbol('XYZ'), 'XYZ')

    def test_format_price(self):
        self.assertEqual(format_price(12.5), '₵12.50')
        self.assertEqual(format_price('3', 'EUR'), '€3.00')
        self.assertEqual(format_price(None, 'USD'), '$0.00')

    def test_category_default_unit(self):
        self.assertEqual(get_category_default_unit('Food & Beverage'), 'Kg')
        self.assertEqual(get_category_default_unit('Clothing'), 'Pieces')
        self.assertEqual(get_category_default_unit('Books'), 'Units')
        self.assertEqual(get_category_default_unit(None), 'Units')

    def test_format_stock(self):
        self.assertEqual(format_stock(12, 'Kg'), '12 Kg')
        self.assertEqual(format_stock(3), '3 Units')

    def test_with_client_defaults(self):
        product = {'productId': 'p1', 'category': 'Clothing', 'currency': None}
        augmented = with_client_defaults(product)
        self.assertEqual(augmented['currency'], 'GHC')
        self.assertEqual(augmented['stockUnit'], 'Pieces')
        self.assertIsNone(product['currency'])

    def test_payment_method_display(self):
        self.assertEqual(get_payment_method_display('cash'), 'Cash')
        self.assertEqual(get_payment_method_display('card'), 'Card Payment')
        self.assertEqual(get_payment_method_display('other'), 'Other Payment Method')


class CatalogPreferencesTests(SimpleTestCase):
    """Test client-local catalog preferences"""

    def setUp(self):
        self.store = InMemoryKeyValueStore()
        self.preferences = CatalogPreferences(self.store)

    def test_archive_and_unarchive(self):
        self.preferences.archive_product('p1')
        self.preferences.archive_product('p1')
        self.assertEqual(self.preferences.get_archived_products(), ['p1'])
        self.assertTrue(self.preferences.is_archived('p1'))

        self.preferences.unarchive_product('p1')
        self.assertFalse(self.preferences.is_archived('p1'))

    def test_split_archived(self):
        self.preferences.archive_product('b')
        products = [{'productId': 'a'}, {'productId': 'b'}, {'productId': 'c'}]
        active, archived = self.preferences.split_archived(products)
        self.assertEqual([p['productId'] for p in active], ['a', 'c'])
        self.assertEqual([p['productId'] for p in archived], ['b'])

    def test_toggle_featured(self):
        self.assertTrue(self.preferences.toggle_featured('p1'))
        self.assertTrue(self.preferences.is_featured('p1'))
        self.assertFalse(self.preferences.toggle_featured('p1'))
        self.assertEqual(self.preferences.get_featured_products(), set())

    def test_corrupted_entry_falls_back_to_default(self):
        self.store.set('archivedProducts', '{not json')
        self.assertEqual(self.preferences.get_archived_products(), [])

    def test_wrong_shape_falls_back_to_default(self):
        self.store.write_json('productStockUnits', ['Kg'])
        self.assertEqual(self.preferences.get_product_units(), {})

    def test_add_category(self):
        self.assertTrue(self.preferences.add_category('Garden'))
        self.assertFalse(self.preferences.add_category('Garden'))
        self.assertFalse(self.preferences.add_category('Books'))
        self.assertFalse(self.preferences.add_category('  '))
        self.assertEqual(self.preferences.get_categories()[-1], 'Garden')

    def test_add_stock_unit(self):
        self.assertTrue(self.preferences.add_stock_unit('Crates'))
        self.assertIn('Crates', self.preferences.get_stock_units())

    def test_product_unit_resolution(self):
        product = {'productId': 'p1', 'category': 'Food & Beverage'}
        self.assertEqual(self.preferences.get_product_unit(product), 'Kg')
        self.assertEqual(self.preferences.get_product_unit({**product, 'stockUnit': 'g'}), 'g')

        self.preferences.set_product_unit('p1', 'Boxes')
        self.assertEqual(self.preferences.get_product_unit({**product, 'stockUnit': 'g'}), 'Boxes')

    def test_custom_currency(self):
        self.assertTrue(self.preferences.save_custom_currency('NGN', '₦'))
        self.assertEqual(self.preferences.get_currency_symbols()['NGN'], '₦')
        self.assertIn('NGN', self.preferences.get_supported_currencies())

    def test_default_currency_cannot_be_overridden(self):
        self.assertFalse(self.preferences.save_custom_currency('USD', 'US$'))
        self.assertEqual(self.preferences.get_currency_symbols()['USD'], '$')


class ProductAPIClientTests(SimpleTestCase):
    """Test the HTTP client against a mocked requests session"""

    def setUp(self):
        self.session = mock.Mock()
        self.client = ProductAPIClient(base_url='http://api.test/', session=self.session, timeout=5)

    def test_list_products(self):
        self.session.request.return_value = mock_response(payload=[{'productId': 'p1'}])
        products = self.client.list_products()
        self.assertEqual(products, [{'productId': 'p1'}])
        self.session.request.assert_called_once_with('GET', 'http://api.test/products', timeout=5, params=None)

    def test_list_products_with_search(self):
        self.session.request.return_value = mock_response(payload=[])
        self.client.list_products(search='lamp')
        _, kwargs = self.session.request.call_args
        self.assertEqual(kwargs['params'], {'search': 'lamp'})

    def test_update_product_fields_sends_json(self):
        self.session.request.return_value = mock_response(payload={'productId': 'a/b', 'stockQuantity': 8})
        self.client.update_product_fields('a/b', {'stockQuantity': 8})
        args, kwargs = self.session.request.call_args
        self.assertEqual(args, ('PATCH', 'http://api.test/products/a%2Fb'))
        self.assertEqual(kwargs['data'], '{"stockQuantity": 8}')
        self.assertEqual(kwargs['headers']['Content-Type'], 'application/json')

    def test_create_product_sends_form(self):
        self.session.request.return_value = mock_response(status_code=201, payload={'productId': 'p1'})
        image = ('photo.png', b'data', 'image/png')
        self.client.create_product({'name': 'Lamp', 'price': 9.5, 'stockQuantity': 3, 'rating': None}, image=image)
        _, kwargs = self.session.request.call_args
        self.assertEqual(kwargs['data'], {'name': 'Lamp', 'price': '9.5', 'stockQuantity': '3'})
        self.assertEqual(kwargs['files'], {'image': image})

    def test_not_found_raises(self):
        self.session.request.return_value = mock_response(
            status_code=404, payload={'message': 'Product not found'}, reason='Not Found'
        )
        with self.assertRaises(ProductAPIError) as ctx:
            self.client.update_product('missing', {'name': 'x'})
        self.assertEqual(ctx.exception.status_code, 404)
        self.assertEqual(ctx.exception.message, 'Product not found')

    def test_error_without_body_uses_reason(self):
        self.session.request.return_value = mock_response(status_code=502, reason='Bad Gateway')
        with self.assertRaises(ProductAPIError) as ctx:
            self.client.list_products()
        self.assertEqual(ctx.exception.message, 'Bad Gateway')

    def test_connection_error_raises(self):
        self.session.request.side_effect = requests.ConnectionError('refused')
        with self.assertRaises(ProductAPIError) as ctx:
            self.client.list_products()
        self.assertIsNone(ctx.exception.status_code)


class AddProductCommandTests(TestCase):
    """Test the add_product management command"""

    def test_defaults(self):
        out = StringIO()
        call_command('add_product', stdout=out)
        product = Product.objects.get()
        self.assertEqual(product.name, 'New Product')
        self.assertEqual(product.price, Decimal('99.99'))
        self.assertEqual(product.stock_quantity, 100)
        self.assertIn('NEW PRODUCT ADDED', out.getvalue())

    def test_custom_values(self):
        call_command('add_product', '--name', 'Kettle', '--price', '30', '--stock', '4', '--category', 'Home & Kitchen', stdout=StringIO())
        product = Product.objects.get(name='Kettle')
        self.assertEqual(product.category, 'Home & Kitchen')
        self.assertEqual(product.stock_quantity, 4)
