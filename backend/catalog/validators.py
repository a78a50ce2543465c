"""
Parsing of incoming product fields.

Form submissions arrive as strings, JSON bodies as numbers. Both are
coerced here; anything that cannot be parsed raises ``ValueError`` and the
views answer with a generic 500, matching the existing API contract.
"""
import math
from decimal import Decimal, InvalidOperation

# Request field -> model field
PRODUCT_FIELD_MAP = {
    'name': 'name',
    'price': 'price',
    'currency': 'currency',
    'stockQuantity': 'stock_quantity',
    'stockUnit': 'stock_unit',
    'category': 'category',
    'rating': 'rating',
}

REQUIRED_CREATE_FIELDS = ('name', 'price', 'stockQuantity')


def _is_blank(value):
    return value is None or (isinstance(value, str) and value.strip() == '')


def parse_price(value):
    if isinstance(value, bool):
        raise ValueError(f"Invalid price: {value!r}")
    try:
        price = Decimal(str(value).strip())
    except (InvalidOperation, TypeError):
        raise ValueError(f"Invalid price: {value!r}")
    if not price.is_finite():
        raise ValueError(f"Invalid price: {value!r}")
    return price.quantize(Decimal('0.01'))


def parse_stock_quantity(value):
    if isinstance(value, bool):
        raise ValueError(f"Invalid stock quantity: {value!r}")
    try:
        if isinstance(value, float):
            if not value.is_integer():
                raise ValueError
            quantity = int(value)
        else:
            quantity = int(str(value).strip())
    except (ValueError, TypeError):
        raise ValueError(f"Invalid stock quantity: {value!r}")
    if quantity < 0:
        raise ValueError(f"Stock quantity cannot be negative: {quantity}")
    return quantity


def parse_rating(value):
    if isinstance(value, bool):
        raise ValueError(f"Invalid rating: {value!r}")
    try:
        rating = float(str(value).strip())
    except (ValueError, TypeError):
        raise ValueError(f"Invalid rating: {value!r}")
    if math.isnan(rating) or rating < 0 or rating > 5:
        raise ValueError(f"Rating must be between 0 and 5: {value!r}")
    return rating


def parse_text(value, field):
    if isinstance(value, (list, dict)):
        raise ValueError(f"Invalid value for {field}")
    return str(value).strip()


def parse_product_fields(data, partial=False):
    """Return model-field kwargs parsed from request data.

    On create (``partial=False``) name, price and stockQuantity must be
    present. Rating is only taken when a non-empty value is sent. Unknown
    keys are ignored.
    """
    if not partial:
        missing = [f for f in REQUIRED_CREATE_FIELDS if _is_blank(data.get(f))]
        if missing:
            raise ValueError(f"Missing required fields: {', '.join(missing)}")

    fields = {}
    for request_field, model_field in PRODUCT_FIELD_MAP.items():
        if request_field not in data:
            continue
        value = data.get(request_field)

        if request_field == 'price':
            fields[model_field] = parse_price(value)
        elif request_field == 'stockQuantity':
            fields[model_field] = parse_stock_quantity(value)
        elif request_field == 'rating':
            if _is_blank(value):
                if partial:
                    fields[model_field] = None
                continue
            fields[model_field] = parse_rating(value)
        elif request_field == 'name':
            name = parse_text(value, 'name')
            if not name:
                raise ValueError("Product name cannot be empty")
            fields[model_field] = name
        else:
            fields[model_field] = None if _is_blank(value) else parse_text(value, request_field)

    return fields
