"""
Test suite for the Inventory restock workflow
Tests: selection and staged quantities, sequential commit, partial failure and notification staggering
"""
from django.test import SimpleTestCase

from backend.core.notifications import ERROR, INFO, SUCCESS, NotificationCenter
from backend.core.scheduler import ManualScheduler
from backend.core.test_utils import FakeProductAPIClient, TestDataFactory
from backend.inventory.restock import RestockSelection, RestockWorkflow


class RestockSelectionTests(SimpleTestCase):
    """Test staging restock quantities"""

    def setUp(self):
        self.selection = RestockSelection(['A', 'B', 'C'])
        self.selection.open()

    def test_open_seeds_zero_quantities(self):
        self.assertTrue(self.selection.is_open)
        self.assertEqual(self.selection.quantities, {'A': 0, 'B': 0, 'C': 0})
        self.assertEqual(self.selection.active_id, 'A')
        self.assertFalse(self.selection.has_products_to_restock)

    def test_increment_and_decrement(self):
        self.selection.increment('A')
        self.selection.increment('A')
        self.selection.decrement('A')
        self.assertEqual(self.selection.quantities['A'], 1)

    def test_decrement_stops_at_zero(self):
        self.selection.decrement('B')
        self.assertEqual(self.selection.quantities['B'], 0)

    def test_negative_quantity_is_ignored(self):
        self.selection.set_quantity('A', 4)
        self.selection.set_quantity('A', -2)
        self.assertEqual(self.selection.quantities['A'], 4)

    def test_non_numeric_quantity_is_ignored(self):
        """Test blank or non-numeric form input leaves the staged quantity alone"""
        self.selection.set_quantity('A', 4)
        for value in (None, '', 'abc', '-1', -0.5, True):
            self.selection.set_quantity('A', value)
        self.assertEqual(self.selection.quantities['A'], 4)

    def test_form_string_quantity(self):
        self.selection.set_quantity('A', '7')
        self.selection.set_quantity('B', '2.9')
        self.assertEqual(self.selection.quantities['A'], 7)
        self.assertEqual(self.selection.quantities['B'], 2)

    def test_set_active(self):
        self.selection.set_active('C')
        self.assertEqual(self.selection.active_id, 'C')

    def test_products_to_restock_skips_zero(self):
        self.selection.set_quantity('A', 5)
        self.selection.set_quantity('C', 3)
        self.assertEqual(self.selection.products_to_restock, [('A', 5), ('C', 3)])
        self.assertEqual(self.selection.products_to_restock_count, 2)

    def test_close_discards_staged_quantities(self):
        self.selection.set_quantity('A', 5)
        self.selection.close()
        self.assertFalse(self.selection.is_open)
        self.assertEqual(self.selection.quantities, {})
        self.assertEqual(self.selection.selected_ids, ['A', 'B', 'C'])

    def test_toggle(self):
        self.selection.toggle('B')
        self.assertEqual(self.selection.selected_ids, ['A', 'C'])
        self.selection.toggle('D')
        self.assertEqual(self.selection.selected_ids, ['A', 'C', 'D'])

    def test_describe(self):
        products = [
            TestDataFactory.product_dict('A', 'Rice', stock_quantity=10, category='Food & Beverage'),
            TestDataFactory.product_dict('B', 'Shirt', stock_quantity=2, category='Clothing'),
        ]
        self.selection.set_quantity('A', 5)
        rows = self.selection.describe(products)
        self.assertEqual([row.id for row in rows], ['A', 'B', 'C'])
        self.assertEqual(rows[0].unit, 'Kg')
        self.assertEqual(rows[0].new_stock, 15)
        self.assertEqual(rows[1].unit, 'Pieces')
        self.assertEqual(rows[2].name, 'Unknown product')


class RestockWorkflowTests(SimpleTestCase):
    """Test committing a restock"""

    def setUp(self):
        self.products = [
            TestDataFactory.product_dict('A', 'Rice', stock_quantity=10, category='Food & Beverage'),
            TestDataFactory.product_dict('B', 'Shirt', stock_quantity=2, category='Clothing'),
            TestDataFactory.product_dict('C', 'Cable', stock_quantity=0, category='Electronics'),
        ]
        self.scheduler = ManualScheduler()
        self.notifications = NotificationCenter(scheduler=self.scheduler, max_visible=5)
        self.selection = RestockSelection(['A', 'B', 'C'])
        self.selection.open()

    def workflow(self, fail_on=None):
        self.client = FakeProductAPIClient(self.products, fail_on=fail_on)
        return RestockWorkflow(self.client, self.notifications, stagger=0.3)

    def test_commit_updates_only_positive_quantities(self):
        """Test one stock update per product with a positive staged quantity"""
        self.selection.set_quantity('A', 5)
        self.selection.set_quantity('C', 3)

        result = self.workflow().commit(self.selection, self.products)

        self.assertTrue(result.succeeded)
        self.assertEqual(self.client.update_calls, [
            ('A', {'stockQuantity': 15}),
            ('C', {'stockQuantity': 3}),
        ])
        self.assertEqual(result.applied, ['A', 'C'])
        self.assertEqual(self.client.list_calls, 1)
        self.assertEqual([p['stockQuantity'] for p in result.refreshed_products], [15, 2, 3])

    def test_commit_clears_selection(self):
        self.selection.set_quantity('A', 1)
        self.workflow().commit(self.selection, self.products)
        self.assertEqual(self.selection.selected_ids, [])
        self.assertFalse(self.selection.is_open)
        self.assertEqual(self.selection.quantities, {})

    def test_success_notifications_are_staggered(self):
        """Test per-product messages appear one after another"""
        self.selection.set_quantity('A', 5)
        self.selection.set_quantity('C', 3)
        self.workflow().commit(self.selection, self.products)

        messages = [n.message for n in self.notifications.notifications]
        self.assertEqual(messages, ['Successfully restocked 2 products'])

        self.scheduler.advance(0)
        messages = [n.message for n in self.notifications.notifications]
        self.assertEqual(messages[-1], 'Restocked Rice: 10 -> 15 Kg')

        self.scheduler.advance(0.3)
        messages = [n.message for n in self.notifications.notifications]
        self.assertEqual(messages[-1], 'Restocked Cable: 0 -> 3 Units')
        self.assertTrue(all(n.type == SUCCESS for n in self.notifications.notifications))

    def test_single_product_message(self):
        self.selection.set_quantity('B', 1)
        self.workflow().commit(self.selection, self.products)
        self.assertEqual(self.notifications.notifications[-1].message, 'Successfully restocked 1 product')

    def test_nothing_to_restock(self):
        """Test an empty commit makes no calls and only informs the user"""
        result = self.workflow().commit(self.selection, self.products)
        self.assertEqual(self.client.update_calls, [])
        self.assertEqual(result.applied, [])
        notification = self.notifications.notifications[-1]
        self.assertEqual(notification.type, INFO)
        self.assertEqual(notification.message, 'No restock quantities entered.')
        self.assertFalse(self.selection.is_open)

    def test_failure_stops_remaining_updates(self):
        """Test the first failure aborts the loop and keeps the selection"""
        self.selection.set_quantity('A', 5)
        self.selection.set_quantity('B', 1)
        self.selection.set_quantity('C', 3)

        result = self.workflow(fail_on={'B'}).commit(self.selection, self.products)

        self.assertFalse(result.succeeded)
        self.assertEqual(result.applied, ['A'])
        self.assertEqual(result.failed_id, 'B')
        self.assertEqual([call[0] for call in self.client.update_calls], ['A', 'B'])
        self.assertEqual(self.client.list_calls, 0)
        self.assertEqual(self.notifications.notifications[-1].type, ERROR)
        self.assertEqual(self.notifications.notifications[-1].message, 'Failed to restock products. Please try again.')
        self.assertEqual(self.selection.selected_ids, ['A', 'B', 'C'])
        self.assertFalse(self.selection.is_open)

    def test_missing_product_is_skipped(self):
        self.selection.select(['A', 'Z'])
        self.selection.open()
        self.selection.set_quantity('A', 2)
        self.selection.set_quantity('Z', 4)

        result = self.workflow().commit(self.selection, self.products)

        self.assertEqual(result.applied, ['A'])
        self.assertEqual(result.skipped, ['Z'])
        self.assertEqual(self.client.update_calls, [('A', {'stockQuantity': 12})])
