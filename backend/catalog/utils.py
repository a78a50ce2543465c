"""
Utility functions for catalog display: currencies, stock units, categories
"""
from decimal import Decimal, InvalidOperation

DEFAULT_CURRENCY = 'GHC'

DEFAULT_CURRENCY_SYMBOLS = {
    'GHC': '₵',   # Ghanaian Cedi
    'USD': '$',   # US Dollar
    'EUR': '€',   # Euro
    'GBP': '£',   # British Pound
    'JPY': '¥',   # Japanese Yen
    'CAD': 'C$',  # Canadian Dollar
    'AUD': 'A$',  # Australian Dollar
    'CHF': 'Fr.',  # Swiss Franc
    'CNY': '¥',   # Chinese Yuan
    'INR': '₹',   # Indian Rupee
    'BRL': 'R$',  # Brazilian Real
    'RUB': '₽',   # Russian Ruble
    'KRW': '₩',   # South Korean Won
    'SGD': 'S$',  # Singapore Dollar
}

DEFAULT_STOCK_UNIT = 'Units'

INITIAL_STOCK_UNITS = [
    'Units',
    'Pieces',
    'Kg',
    'g',
    'L',
    'mL',
    'Boxes',
    'Pairs',
]

INITIAL_CATEGORIES = [
    'Electronics',
    'Clothing',
    'Home & Kitchen',
    'Beauty & Personal Care',
    'Sports & Outdoors',
    'Books',
    'Toys & Games',
    'Health & Wellness',
    'Automotive',
    'Office Supplies',
    'Food & Beverage',
    'Other',
]

PAYMENT_METHOD_DISPLAY = {
    'cash': 'Cash',
    'card': 'Card Payment',
    'other': 'Other Payment Method',
}


def get_currency_symbol(currency_code, symbols=None):
    """Symbol for a currency code, or the code itself when unknown"""
    symbols = DEFAULT_CURRENCY_SYMBOLS if symbols is None else symbols
    return symbols.get(currency_code) or currency_code


def format_price(price, currency=DEFAULT_CURRENCY, symbols=None):
    """Format a price with its currency symbol, e.g. ₵12.50"""
    try:
        amount = Decimal(str(price)) if price is not None else Decimal('0')
    except InvalidOperation:
        return f"{get_currency_symbol(currency, symbols)}{price}"
    return f"{get_currency_symbol(currency or DEFAULT_CURRENCY, symbols)}{amount:.2f}"


def get_category_default_unit(category=None):
    """Default stock unit for a category name"""
    if not category:
        return DEFAULT_STOCK_UNIT

    category_lower = category.lower()
    if 'food' in category_lower or 'beverage' in category_lower:
        return 'Kg'
    elif 'clothing' in category_lower:
        return 'Pieces'
    elif 'electronics' in category_lower:
        return 'Units'

    return DEFAULT_STOCK_UNIT


def format_stock(quantity, unit=DEFAULT_STOCK_UNIT):
    return f"{quantity} {unit}"


def with_client_defaults(product):
    """Copy of a product dict with currency and stock unit filled in for display.

    The defaults are never sent back to the API.
    """
    augmented = dict(product)
    if not augmented.get('currency'):
        augmented['currency'] = DEFAULT_CURRENCY
    if not augmented.get('stockUnit'):
        augmented['stockUnit'] = get_category_default_unit(augmented.get('category'))
    return augmented


def get_payment_method_display(method):
    return PAYMENT_METHOD_DISPLAY.get(method, method)
