"""
Client-local catalog preferences.

Archived and featured products, custom categories, custom stock units,
per-product unit overrides and custom currencies are kept on the client
only. Each collection lives under its own key in a ``KeyValueStore`` and is
read with a safe default, so a corrupted entry never breaks the catalog.
"""
import logging

from .utils import (
    DEFAULT_CURRENCY_SYMBOLS,
    INITIAL_CATEGORIES,
    INITIAL_STOCK_UNITS,
    get_category_default_unit,
)

logger = logging.getLogger(__name__)

ARCHIVED_PRODUCTS_KEY = 'archivedProducts'
FEATURED_PRODUCTS_KEY = 'featuredProducts'
CUSTOM_CATEGORIES_KEY = 'customCategories'
CUSTOM_STOCK_UNITS_KEY = 'customStockUnits'
PRODUCT_UNITS_KEY = 'productStockUnits'
CUSTOM_CURRENCIES_KEY = 'customCurrencies'


class CatalogPreferences:
    def __init__(self, store):
        self.store = store

    def _read_list(self, key):
        value = self.store.read_json(key, [])
        if not isinstance(value, list):
            logger.warning(f"Expected a list under '{key}', got {type(value).__name__}")
            return []
        return value

    def _read_map(self, key):
        value = self.store.read_json(key, {})
        if not isinstance(value, dict):
            logger.warning(f"Expected an object under '{key}', got {type(value).__name__}")
            return {}
        return value

    # Archived products

    def get_archived_products(self):
        return self._read_list(ARCHIVED_PRODUCTS_KEY)

    def archive_product(self, product_id):
        archived = self.get_archived_products()
        if product_id not in archived:
            self.store.write_json(ARCHIVED_PRODUCTS_KEY, archived + [product_id])

    def unarchive_product(self, product_id):
        archived = self.get_archived_products()
        self.store.write_json(ARCHIVED_PRODUCTS_KEY, [pid for pid in archived if pid != product_id])

    def is_archived(self, product_id):
        return product_id in self.get_archived_products()

    def split_archived(self, products):
        """Split product dicts into (active, archived)"""
        archived_ids = set(self.get_archived_products())
        active = [p for p in products if p.get('productId') not in archived_ids]
        archived = [p for p in products if p.get('productId') in archived_ids]
        return active, archived

    # Featured products

    def get_featured_products(self):
        return set(self._read_list(FEATURED_PRODUCTS_KEY))

    def _write_featured(self, featured):
        self.store.write_json(FEATURED_PRODUCTS_KEY, sorted(featured))

    def feature_product(self, product_id):
        featured = self.get_featured_products()
        featured.add(product_id)
        self._write_featured(featured)

    def unfeature_product(self, product_id):
        featured = self.get_featured_products()
        featured.discard(product_id)
        self._write_featured(featured)

    def toggle_featured(self, product_id):
        """Flip the featured flag; returns the new state"""
        if self.is_featured(product_id):
            self.unfeature_product(product_id)
            return False
        self.feature_product(product_id)
        return True

    def is_featured(self, product_id):
        return product_id in self.get_featured_products()

    # Categories and stock units

    def _add_to_list(self, key, initial, value, label):
        value = (value or '').strip()
        if not value:
            logger.warning(f"Attempted to add empty {label}")
            return False
        custom = self._read_list(key)
        if value in initial or value in custom:
            logger.warning(f"{label.capitalize()} already exists: {value}")
            return False
        self.store.write_json(key, custom + [value])
        return True

    def get_categories(self):
        custom = [c for c in self._read_list(CUSTOM_CATEGORIES_KEY) if c not in INITIAL_CATEGORIES]
        return INITIAL_CATEGORIES + custom

    def add_category(self, category):
        return self._add_to_list(CUSTOM_CATEGORIES_KEY, INITIAL_CATEGORIES, category, 'category')

    def get_stock_units(self):
        custom = [u for u in self._read_list(CUSTOM_STOCK_UNITS_KEY) if u not in INITIAL_STOCK_UNITS]
        return INITIAL_STOCK_UNITS + custom

    def add_stock_unit(self, unit):
        return self._add_to_list(CUSTOM_STOCK_UNITS_KEY, INITIAL_STOCK_UNITS, unit, 'stock unit')

    # Per-product unit overrides

    def get_product_units(self):
        return self._read_map(PRODUCT_UNITS_KEY)

    def get_product_unit(self, product):
        """Unit for a product dict: local override, then its own unit, then the category default"""
        override = self.get_product_units().get(product.get('productId'))
        if override:
            return override
        return product.get('stockUnit') or get_category_default_unit(product.get('category'))

    def set_product_unit(self, product_id, unit):
        units = self.get_product_units()
        units[product_id] = unit
        self.store.write_json(PRODUCT_UNITS_KEY, units)

    # Currencies

    def get_currency_symbols(self):
        """Custom currencies merged under the defaults, defaults taking precedence"""
        return {**self._read_map(CUSTOM_CURRENCIES_KEY), **DEFAULT_CURRENCY_SYMBOLS}

    def save_custom_currency(self, currency_code, symbol):
        if currency_code in DEFAULT_CURRENCY_SYMBOLS:
            logger.warning(f"Cannot override default currency: {currency_code}")
            return False
        currencies = self._read_map(CUSTOM_CURRENCIES_KEY)
        currencies[currency_code] = symbol
        self.store.write_json(CUSTOM_CURRENCIES_KEY, currencies)
        return True

    def get_supported_currencies(self):
        return list(self.get_currency_symbols())
