"""
Test suite for the POS cart and pending sale
Tests: cart stock limits, quantity updates, totals, draft persistence and the confirmation step
"""
from decimal import Decimal

from django.test import SimpleTestCase

from backend.core.notifications import SUCCESS, WARNING, NotificationCenter
from backend.core.scheduler import ManualScheduler
from backend.core.storage import InMemoryKeyValueStore
from backend.core.test_utils import FakeProductAPIClient, TestDataFactory
from backend.pos.sales import (
    MOCK_CUSTOMERS,
    PENDING_SALE_KEY,
    Cart,
    CartItem,
    SaleConfirmation,
    SalesSession,
    compute_totals,
    load_pending_sale,
    search_customers,
)


class CartTests(SimpleTestCase):
    """Test cart line items"""

    def setUp(self):
        self.product = TestDataFactory.product_dict('p1', 'Rice', price=10.0, stock_quantity=3)
        self.cart = Cart()

    def test_add_stops_at_stock(self):
        """Test adding more times than there is stock caps the quantity"""
        results = [self.cart.add(self.product) for _ in range(4)]
        self.assertEqual(results, [True, True, True, False])
        self.assertEqual(len(self.cart), 1)
        self.assertEqual(self.cart.get('p1').quantity, 3)

    def test_out_of_stock_product_is_not_added(self):
        empty = TestDataFactory.product_dict('p2', stock_quantity=0)
        self.assertFalse(self.cart.add(empty))
        self.assertFalse(self.cart.contains('p2'))

    def test_update_quantity_clamps_to_stock(self):
        self.cart.add(self.product)
        self.cart.update_quantity('p1', 10, [self.product])
        self.assertEqual(self.cart.get('p1').quantity, 3)

    def test_update_quantity_zero_removes(self):
        self.cart.add(self.product)
        self.cart.update_quantity('p1', 0, [self.product])
        self.assertFalse(self.cart.contains('p1'))

    def test_update_quantity_non_numeric_removes(self):
        self.cart.add(self.product)
        self.cart.update_quantity('p1', 'abc', [self.product])
        self.assertFalse(self.cart.contains('p1'))

    def test_update_quantity_negative_is_ignored(self):
        self.cart.add(self.product)
        self.cart.add(self.product)
        self.cart.update_quantity('p1', -1, [self.product])
        self.assertEqual(self.cart.get('p1').quantity, 2)

    def test_update_quantity_negative_fraction_is_ignored(self):
        self.cart.add(self.product)
        self.cart.add(self.product)
        self.cart.update_quantity('p1', -0.5, [self.product])
        self.assertEqual(self.cart.get('p1').quantity, 2)

    def test_update_quantity_fraction_keeps_line(self):
        """Test a fraction between 0 and 1 keeps one unit instead of removing the line"""
        self.cart.add(self.product)
        self.cart.add(self.product)
        self.cart.update_quantity('p1', '0.5', [self.product])
        self.assertEqual(self.cart.get('p1').quantity, 1)
        self.cart.update_quantity('p1', 2.7, [self.product])
        self.assertEqual(self.cart.get('p1').quantity, 2)

    def test_update_quantity_unknown_product_is_ignored(self):
        self.cart.add(self.product)
        self.cart.update_quantity('p1', 2, [])
        self.assertEqual(self.cart.get('p1').quantity, 1)

    def test_update_quantity_uses_live_stock(self):
        """Test the cap comes from the current product list, not the cart snapshot"""
        self.cart.add(self.product)
        live = dict(self.product, stockQuantity=1)
        self.cart.update_quantity('p1', 3, [live])
        self.assertEqual(self.cart.get('p1').quantity, 1)


class TotalsTests(SimpleTestCase):
    def test_discount_then_tax(self):
        """Test subtotal 100 with 10% discount gives discount 10, tax 9, total 99"""
        items = [CartItem(product={'productId': 'p1', 'price': 25}, quantity=4)]
        totals = compute_totals(items, 10)
        self.assertEqual(totals.subtotal, Decimal('100'))
        self.assertEqual(totals.discount, Decimal('10'))
        self.assertEqual(totals.tax, Decimal('9'))
        self.assertEqual(totals.total, Decimal('99'))

    def test_empty_cart(self):
        totals = compute_totals([], 50)
        self.assertEqual(totals.total, Decimal('0'))


class CustomerSearchTests(SimpleTestCase):
    def test_search_by_name_email_or_phone(self):
        self.assertEqual([c.name for c in search_customers('jane')], ['Jane Smith'])
        self.assertEqual([c.name for c in search_customers('bob@')], ['Bob Johnson'])
        self.assertEqual([c.name for c in search_customers('123-456')], ['John Doe'])

    def test_empty_term_returns_everyone(self):
        self.assertEqual(len(search_customers('')), len(MOCK_CUSTOMERS))


class SalesSessionTests(SimpleTestCase):
    """Test the sales screen and its persisted draft"""

    def setUp(self):
        self.store = InMemoryKeyValueStore()
        self.products = [
            TestDataFactory.product_dict('p1', 'Rice', price=25.0, stock_quantity=10, category='Food & Beverage'),
            TestDataFactory.product_dict('p2', 'Shirt', price=12.5, stock_quantity=1, category='Clothing'),
        ]
        self.client = FakeProductAPIClient(self.products)
        self.notifications = NotificationCenter(scheduler=ManualScheduler())

    def session(self):
        session = SalesSession(self.store, client=self.client, notifications=self.notifications)
        session.load_products()
        return session

    def test_every_change_is_persisted(self):
        session = self.session()
        session.add_to_cart(self.products[0])
        draft = self.store.read_json(PENDING_SALE_KEY)
        self.assertEqual(draft['items'][0]['quantity'], 1)
        self.assertEqual(draft['subtotal'], 25.0)

        session.set_note('Gift wrap')
        self.assertEqual(self.store.read_json(PENDING_SALE_KEY)['note'], 'Gift wrap')

    def test_reload_restores_draft(self):
        """Test a new session picks up the saved cart"""
        session = self.session()
        for _ in range(4):
            session.add_to_cart(self.products[0])
        session.set_discount_percent(10)
        session.set_payment_method('card')
        session.select_customer(MOCK_CUSTOMERS[1])
        session.set_note('Call before delivery')

        restored = self.session()
        self.assertEqual(restored.note, 'Call before delivery')
        self.assertEqual(restored.cart.get('p1').quantity, 4)
        self.assertEqual(restored.discount_percent, Decimal('10'))
        self.assertEqual(restored.payment_method, 'card')
        self.assertEqual(restored.customer.name, 'Jane Smith')
        self.assertEqual(restored.totals.total, Decimal('99'))

    def test_malformed_draft_yields_empty_cart(self):
        self.store.set(PENDING_SALE_KEY, '{"items": [{"product": ')
        session = self.session()
        self.assertEqual(len(session.cart), 0)

    def test_wrong_shape_draft_yields_empty_cart(self):
        self.store.write_json(PENDING_SALE_KEY, {'items': [{'quantity': 2}]})
        self.assertEqual(load_pending_sale(self.store).items, [])

    def test_restored_discount_is_clamped(self):
        """Test an out-of-range discount in the saved draft is limited to 100%"""
        self.store.write_json(PENDING_SALE_KEY, {
            'items': [{'product': self.products[0], 'quantity': 2}],
            'discountPercent': 500,
        })
        session = self.session()
        self.assertEqual(session.discount_percent, Decimal('100'))
        self.assertEqual(session.totals.total, Decimal('0'))

    def test_discount_is_clamped(self):
        session = self.session()
        session.set_discount_percent(150)
        self.assertEqual(session.discount_percent, Decimal('100'))
        session.set_discount_percent(-5)
        self.assertEqual(session.discount_percent, Decimal('0'))
        session.set_discount_percent('lots')
        self.assertEqual(session.discount_percent, Decimal('0'))

    def test_update_quantity_checks_loaded_products(self):
        session = self.session()
        session.add_to_cart(self.products[1])
        session.update_quantity('p2', 5)
        self.assertEqual(session.cart.get('p2').quantity, 1)

    def test_category_filter(self):
        session = self.session()
        session.set_category_filter('Clothing')
        self.assertEqual([p['productId'] for p in session.filtered_products()], ['p2'])
        session.set_category_filter('')
        self.assertEqual(len(session.filtered_products()), 2)

    def test_search_passes_through_to_client(self):
        session = self.session()
        self.assertEqual([p['productId'] for p in session.load_products('shi')], ['p2'])

    def test_process_empty_cart(self):
        """Test an empty cart cannot be processed"""
        session = self.session()
        self.assertFalse(session.can_process_sale)
        self.assertIsNone(session.process_sale())
        self.assertEqual(self.notifications.notifications[-1].type, WARNING)

    def test_reset(self):
        session = self.session()
        session.add_to_cart(self.products[0])
        session.set_note('x')
        session.reset()
        draft = self.store.read_json(PENDING_SALE_KEY)
        self.assertEqual(draft['items'], [])
        self.assertEqual(draft['note'], '')


class SaleConfirmationTests(SimpleTestCase):
    """Test the confirmation step"""

    def setUp(self):
        self.store = InMemoryKeyValueStore()
        self.notifications = NotificationCenter(scheduler=ManualScheduler())
        self.sleeps = []
        session = SalesSession(self.store, notifications=self.notifications)
        product = TestDataFactory.product_dict('p1', 'Rice', price=25.0, stock_quantity=10, currency='USD')
        for _ in range(4):
            session.add_to_cart(product)
        session.set_discount_percent(10)
        session.set_payment_method('card')
        session.set_note('Deliver Friday')
        self.confirmation = session.process_sale()
        self.confirmation.sleep = self.sleeps.append

    def test_displays_saved_draft(self):
        self.assertEqual(self.confirmation.item_count, 1)
        self.assertEqual(self.confirmation.payment_method_display, 'Card Payment')
        self.assertEqual(self.confirmation.discount_percent_display, '10.0%')
        self.assertEqual(self.confirmation.currency, 'USD')
        self.assertEqual(self.confirmation.sale.total, Decimal('99'))
        self.assertEqual(self.confirmation.note, 'Deliver Friday')

    def test_confirm_clears_draft(self):
        """Test confirming waits, removes the draft and reports success"""
        self.confirmation.note = 'Deliver Saturday'
        sale = self.confirmation.confirm()
        self.assertEqual(sale.note, 'Deliver Saturday')
        self.assertEqual(self.sleeps, [self.confirmation.commit_delay])
        self.assertIsNone(self.store.get(PENDING_SALE_KEY))
        self.assertTrue(self.confirmation.confirmed)
        notification = self.notifications.notifications[-1]
        self.assertEqual(notification.type, SUCCESS)
        self.assertEqual(notification.message, 'Sale completed successfully!')

    def test_cancel_clears_draft(self):
        self.confirmation.cancel()
        self.assertIsNone(self.store.get(PENDING_SALE_KEY))
        self.assertFalse(self.confirmation.confirmed)

    def test_without_discount(self):
        store = InMemoryKeyValueStore()
        session = SalesSession(store)
        session.add_to_cart(TestDataFactory.product_dict('p1', price=5, stock_quantity=1))
        confirmation = SaleConfirmation(store, sleep=lambda seconds: None)
        self.assertEqual(confirmation.discount_percent_display, '0%')
        self.assertEqual(confirmation.currency, 'GHC')
        self.assertEqual(confirmation.payment_method_display, 'Cash')
