"""
Restock workflow for the inventory grid.

The user selects several products, stages a restock quantity for each one
and commits. Commit issues one stock update per product, strictly in
sequence, and staggers the success notifications so they appear one after
another. There is no cross-product transaction: if an update fails midway,
the products already updated stay updated. ``RestockResult`` reports which
ones were applied so callers are not left guessing.
"""
import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional

from django.conf import settings

from backend.catalog.utils import get_category_default_unit

logger = logging.getLogger(__name__)


@dataclass
class SelectedProductInfo:
    id: str
    name: str
    current_stock: int
    restock_quantity: int
    unit: str

    @property
    def new_stock(self):
        return self.current_stock + self.restock_quantity


@dataclass
class RestockResult:
    applied: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed_id: Optional[str] = None
    error: Optional[Exception] = None
    refreshed_products: Optional[list] = None

    @property
    def succeeded(self):
        return self.error is None


def _parse_whole_quantity(value):
    """Non-negative whole quantity from form input, or None"""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    if math.isnan(number) or math.isinf(number) or number < 0:
        return None
    return int(number)


class RestockSelection:
    """Selected product ids plus the restock quantities staged for them"""

    def __init__(self, selected_ids=None):
        self.selected_ids = list(dict.fromkeys(selected_ids or []))
        self.quantities = {}
        self.active_id = None
        self.is_open = False

    def select(self, product_ids):
        self.selected_ids = list(dict.fromkeys(product_ids))

    def toggle(self, product_id):
        if product_id in self.selected_ids:
            self.selected_ids.remove(product_id)
        else:
            self.selected_ids.append(product_id)

    def open(self):
        """Open the restock dialog: every selected product starts at 0"""
        self.quantities = {product_id: 0 for product_id in self.selected_ids}
        self.active_id = self.selected_ids[0] if self.selected_ids else None
        self.is_open = True

    def close(self):
        self.is_open = False
        self.active_id = None
        self.quantities = {}

    def clear(self):
        self.close()
        self.selected_ids = []

    def set_active(self, product_id):
        self.active_id = product_id

    def set_quantity(self, product_id, value):
        """Stage a whole quantity; negative or non-numeric input leaves it unchanged"""
        quantity = _parse_whole_quantity(value)
        if quantity is None:
            return
        self.quantities[product_id] = quantity

    def increment(self, product_id):
        self.set_quantity(product_id, self.quantities.get(product_id, 0) + 1)

    def decrement(self, product_id):
        current = self.quantities.get(product_id, 0)
        if current > 0:
            self.set_quantity(product_id, current - 1)

    @property
    def products_to_restock(self):
        """(product_id, quantity) pairs with a positive staged quantity"""
        return [(product_id, qty) for product_id, qty in self.quantities.items() if qty > 0]

    @property
    def products_to_restock_count(self):
        return len(self.products_to_restock)

    @property
    def has_products_to_restock(self):
        return self.products_to_restock_count > 0

    def describe(self, products, unit_for=None):
        """Rows for the restock dialog, in selection order"""
        by_id = {p.get('productId'): p for p in products}
        rows = []
        for product_id in self.selected_ids:
            product = by_id.get(product_id)
            if product is None:
                rows.append(SelectedProductInfo(product_id, 'Unknown product', 0, self.quantities.get(product_id, 0), get_category_default_unit()))
                continue
            unit = unit_for(product) if unit_for else (product.get('stockUnit') or get_category_default_unit(product.get('category')))
            rows.append(SelectedProductInfo(
                id=product_id,
                name=product.get('name') or 'Unknown product',
                current_stock=product.get('stockQuantity') or 0,
                restock_quantity=self.quantities.get(product_id, 0),
                unit=unit,
            ))
        return rows


class RestockWorkflow:
    def __init__(self, client, notifications, stagger=None, unit_for=None):
        self.client = client
        self.notifications = notifications
        if stagger is None:
            stagger = getattr(settings, 'RESTOCK_NOTIFICATION_STAGGER', 0.3)
        self.stagger = stagger
        self.unit_for = unit_for

    def _unit(self, product):
        if self.unit_for:
            return self.unit_for(product)
        return product.get('stockUnit') or get_category_default_unit(product.get('category'))

    def _schedule_success(self, index, message):
        self.notifications.scheduler.call_later(
            index * self.stagger,
            lambda: self.notifications.show_success(message),
        )

    def commit(self, selection, products):
        """Apply every staged quantity > 0 as ``stockQuantity = current + staged``"""
        result = RestockResult()
        to_update = selection.products_to_restock

        try:
            if not to_update:
                logger.info("No products to restock")
                self.notifications.show_info("No restock quantities entered.")
                return result

            by_id = {p.get('productId'): p for p in products}
            for product_id, qty in to_update:
                product = by_id.get(product_id)
                if product is None:
                    logger.warning(f"Product {product_id} not found, skipping restock")
                    result.skipped.append(product_id)
                    continue

                current = product.get('stockQuantity') or 0
                new_stock = current + qty
                logger.info(f"Restocking {product_id} ({product.get('name')}): {current} -> {new_stock} (+{qty})")

                result.failed_id = product_id
                self.client.update_product_fields(product_id, {'stockQuantity': new_stock})
                result.failed_id = None
                result.applied.append(product_id)

                self._schedule_success(
                    len(result.applied) - 1,
                    f"Restocked {product.get('name')}: {current} -> {new_stock} {self._unit(product)}",
                )

            result.refreshed_products = self.client.list_products()
            count = len(result.applied)
            self.notifications.show_success(f"Successfully restocked {count} product{'s' if count != 1 else ''}")
            selection.clear()
            return result
        except Exception as e:
            logger.error(f"Restock failed after {len(result.applied)} update(s): {str(e)}", exc_info=True)
            result.error = e
            self.notifications.show_error("Failed to restock products. Please try again.")
            return result
        finally:
            selection.close()
