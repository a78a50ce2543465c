"""
Cart and pending-sale workflow for the point of sale.

``SalesSession`` is the cart screen: line items checked against the live
product list, discount, payment method, customer and note. Every change
rewrites the whole pending sale to client-local storage under
``pendingSale``. ``process_sale`` hands the draft to ``SaleConfirmation``,
which re-displays the totals and finalizes the sale. No order is written
to the backend; the commit is simulated with a fixed delay.
"""
import logging
import math
import time
from dataclasses import dataclass, field, replace
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from django.conf import settings

from backend.catalog.utils import DEFAULT_CURRENCY, get_payment_method_display

logger = logging.getLogger(__name__)

PENDING_SALE_KEY = 'pendingSale'
TAX_RATE = Decimal('0.10')
DEFAULT_PAYMENT_METHOD = 'cash'
PAYMENT_METHODS = ('cash', 'card', 'other')


def to_decimal(value):
    if value is None:
        return Decimal('0')
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return Decimal('0')


def clamp_discount_percent(value):
    """Discount percent limited to 0-100; anything that is not a number is 0"""
    percent = to_decimal(value) if not isinstance(value, bool) else Decimal('0')
    if not percent.is_finite():
        percent = Decimal('0')
    return min(max(percent, Decimal('0')), Decimal('100'))


def _number(value):
    """JSON-friendly number for a Decimal amount"""
    return float(value)


@dataclass
class Customer:
    id: str
    name: str
    email: str
    phone: Optional[str] = None

    def to_dict(self):
        data = {'id': self.id, 'name': self.name, 'email': self.email}
        if self.phone:
            data['phone'] = self.phone
        return data

    @classmethod
    def from_dict(cls, data):
        if not data:
            return None
        return cls(id=str(data['id']), name=data.get('name', ''), email=data.get('email', ''), phone=data.get('phone'))


# Placeholder customer directory until customers are served by the API
MOCK_CUSTOMERS = [
    Customer(id='1', name='John Doe', email='john@example.com', phone='123-456-7890'),
    Customer(id='2', name='Jane Smith', email='jane@example.com', phone='987-654-3210'),
    Customer(id='3', name='Bob Johnson', email='bob@example.com'),
]


def search_customers(term, customers=None):
    customers = MOCK_CUSTOMERS if customers is None else customers
    if not term:
        return list(customers)
    term_lower = term.lower()
    return [
        c for c in customers
        if term_lower in c.name.lower()
        or term_lower in c.email.lower()
        or (c.phone and term in c.phone)
    ]


@dataclass
class CartItem:
    product: dict
    quantity: int

    @property
    def product_id(self):
        return self.product.get('productId')

    @property
    def unit_price(self):
        return to_decimal(self.product.get('price'))

    @property
    def line_total(self):
        return self.unit_price * self.quantity

    def to_dict(self):
        return {'product': self.product, 'quantity': self.quantity}

    @classmethod
    def from_dict(cls, data):
        return cls(product=dict(data['product']), quantity=int(data['quantity']))


class Cart:
    """Ordered line items; one item per product, 1 <= quantity <= stockQuantity"""

    def __init__(self, items=None):
        self.items = list(items or [])

    def __iter__(self):
        return iter(self.items)

    def __len__(self):
        return len(self.items)

    def get(self, product_id):
        for item in self.items:
            if item.product_id == product_id:
                return item
        return None

    def contains(self, product_id):
        return self.get(product_id) is not None

    def add(self, product):
        """Add one unit of product; silently stops at the available stock"""
        stock = product.get('stockQuantity') or 0
        existing = self.get(product.get('productId'))
        if existing:
            if existing.quantity >= stock:
                return False
            existing.quantity += 1
            return True
        if stock <= 0:
            return False
        self.items.append(CartItem(product=dict(product), quantity=1))
        return True

    def remove(self, product_id):
        self.items = [item for item in self.items if item.product_id != product_id]

    def update_quantity(self, product_id, new_quantity, products):
        """Set a line's quantity against the live product list.

        Zero or anything that is not a number removes the line, negative
        values are ignored, fractions drop to a whole unit (at least one) and the
        quantity is capped at the product's stock.
        """
        number = _parse_quantity(new_quantity)
        if number is None or number == 0:
            self.remove(product_id)
            return
        if number < 0:
            return

        product = next((p for p in products if p.get('productId') == product_id), None)
        if product is None:
            return

        item = self.get(product_id)
        if item is None:
            return
        item.quantity = min(max(int(number), 1), product.get('stockQuantity') or 0)
        if item.quantity <= 0:
            self.remove(product_id)

    def clear(self):
        self.items = []


def _parse_quantity(value):
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


@dataclass
class SaleTotals:
    subtotal: Decimal
    discount: Decimal
    tax: Decimal
    total: Decimal


def compute_totals(items, discount_percent=0):
    subtotal = sum((item.line_total for item in items), Decimal('0'))
    discount = subtotal * to_decimal(discount_percent) / Decimal('100')
    tax = (subtotal - discount) * TAX_RATE
    total = subtotal - discount + tax
    return SaleTotals(subtotal=subtotal, discount=discount, tax=tax, total=total)


@dataclass
class PendingSale:
    customer: Optional[Customer] = None
    items: List[CartItem] = field(default_factory=list)
    subtotal: Decimal = Decimal('0')
    discount: Decimal = Decimal('0')
    tax: Decimal = Decimal('0')
    total: Decimal = Decimal('0')
    payment_method: str = DEFAULT_PAYMENT_METHOD
    note: str = ''
    discount_percent: Decimal = Decimal('0')

    @classmethod
    def empty(cls):
        return cls()

    def to_dict(self):
        return {
            'customer': self.customer.to_dict() if self.customer else None,
            'items': [item.to_dict() for item in self.items],
            'subtotal': _number(self.subtotal),
            'discount': _number(self.discount),
            'tax': _number(self.tax),
            'total': _number(self.total),
            'paymentMethod': self.payment_method,
            'note': self.note,
            'discountPercent': _number(self.discount_percent),
        }

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise ValueError("Pending sale must be an object")
        return cls(
            customer=Customer.from_dict(data.get('customer')),
            items=[CartItem.from_dict(item) for item in data.get('items') or []],
            subtotal=to_decimal(data.get('subtotal')),
            discount=to_decimal(data.get('discount')),
            tax=to_decimal(data.get('tax')),
            total=to_decimal(data.get('total')),
            payment_method=data.get('paymentMethod') or DEFAULT_PAYMENT_METHOD,
            note=data.get('note') or '',
            discount_percent=to_decimal(data.get('discountPercent')),
        )


def load_pending_sale(store):
    """Read the draft from the store; anything malformed yields an empty draft"""
    data = store.read_json(PENDING_SALE_KEY, None)
    if data is None:
        return PendingSale.empty()
    try:
        return PendingSale.from_dict(data)
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        logger.warning(f"Discarding malformed pending sale: {str(e)}")
        return PendingSale.empty()


class SalesSession:
    """State of the sales screen"""

    def __init__(self, store, client=None, notifications=None):
        self.store = store
        self.client = client
        self.notifications = notifications
        self.products = []
        self.search_term = ''
        self.category_filter = ''

        draft = load_pending_sale(store)
        self.cart = Cart(draft.items)
        self.customer = draft.customer
        self.payment_method = draft.payment_method
        self.note = draft.note
        discount_percent = draft.discount_percent
        if not discount_percent and draft.discount and draft.subtotal:
            discount_percent = draft.discount / draft.subtotal * Decimal('100')
        self.discount_percent = clamp_discount_percent(discount_percent)

    # Products

    def load_products(self, search=None):
        if search is not None:
            self.search_term = search
        self.products = self.client.list_products(self.search_term or None)
        return self.products

    def set_category_filter(self, category):
        self.category_filter = category or ''

    def filtered_products(self):
        if not self.category_filter:
            return list(self.products)
        return [p for p in self.products if p.get('category') == self.category_filter]

    # Derived values

    @property
    def totals(self):
        return compute_totals(self.cart, self.discount_percent)

    @property
    def can_process_sale(self):
        return len(self.cart) > 0

    def to_pending_sale(self):
        totals = self.totals
        return PendingSale(
            customer=self.customer,
            items=[CartItem(product=dict(item.product), quantity=item.quantity) for item in self.cart],
            subtotal=totals.subtotal,
            discount=totals.discount,
            tax=totals.tax,
            total=totals.total,
            payment_method=self.payment_method,
            note=self.note,
            discount_percent=self.discount_percent,
        )

    def _persist(self):
        self.store.write_json(PENDING_SALE_KEY, self.to_pending_sale().to_dict())

    # Mutations - each one rewrites the whole draft

    def add_to_cart(self, product):
        added = self.cart.add(product)
        self._persist()
        return added

    def update_quantity(self, product_id, new_quantity):
        self.cart.update_quantity(product_id, new_quantity, self.products)
        self._persist()

    def remove_from_cart(self, product_id):
        self.cart.remove(product_id)
        self._persist()

    def set_discount_percent(self, value):
        self.discount_percent = clamp_discount_percent(value)
        self._persist()

    def set_note(self, note):
        self.note = note or ''
        self._persist()

    def set_payment_method(self, method):
        if method not in PAYMENT_METHODS:
            logger.warning(f"Unknown payment method: {method}")
        self.payment_method = method
        self._persist()

    def select_customer(self, customer):
        self.customer = customer
        self._persist()

    def clear_customer(self):
        self.select_customer(None)

    def reset(self):
        self.cart.clear()
        self.customer = None
        self.note = ''
        self.discount_percent = Decimal('0')
        self.payment_method = DEFAULT_PAYMENT_METHOD
        self.search_term = ''
        self.category_filter = ''
        self._persist()

    def process_sale(self):
        """Snapshot the draft and move on to the confirmation step"""
        if not self.can_process_sale:
            logger.warning("Cannot process a sale with an empty cart")
            if self.notifications:
                self.notifications.show_warning("Add at least one product to the cart first.")
            return None
        self._persist()
        logger.info(f"Pending sale saved with {len(self.cart)} item(s), total {self.totals.total:.2f}")
        return SaleConfirmation(self.store, notifications=self.notifications)


class SaleConfirmation:
    """Confirmation step: shows the saved draft and finalizes it"""

    def __init__(self, store, notifications=None, commit_delay=None, sleep=time.sleep):
        self.store = store
        self.notifications = notifications
        if commit_delay is None:
            commit_delay = getattr(settings, 'SALE_COMMIT_DELAY', 1.5)
        self.commit_delay = commit_delay
        self.sleep = sleep
        self.sale = load_pending_sale(store)
        self.note = self.sale.note
        self.confirmed = False

    @property
    def item_count(self):
        return len(self.sale.items)

    @property
    def payment_method_display(self):
        return get_payment_method_display(self.sale.payment_method)

    @property
    def discount_percent_display(self):
        if self.sale.discount > 0 and self.sale.subtotal:
            return f"{self.sale.discount / self.sale.subtotal * 100:.1f}%"
        return '0%'

    @property
    def currency(self):
        for item in self.sale.items:
            if item.product.get('currency'):
                return item.product['currency']
        return DEFAULT_CURRENCY

    def confirm(self):
        """Finalize the sale; the backend commit is simulated"""
        sale = replace(self.sale, note=self.note)
        self.sleep(self.commit_delay)
        logger.info(f"Confirmed sale of {len(sale.items)} item(s), total {sale.total:.2f}, paid by {sale.payment_method}")
        self.store.delete(PENDING_SALE_KEY)
        self.confirmed = True
        if self.notifications:
            self.notifications.show_success("Sale completed successfully!")
        return sale

    def cancel(self):
        self.store.delete(PENDING_SALE_KEY)
        logger.info("Pending sale cancelled")
