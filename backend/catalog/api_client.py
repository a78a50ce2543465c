"""
HTTP client for the product resource.

Used by the cart and restock workflows to read the live product list and to
push edits back. Create requests go out as multipart forms so an image can
ride along; updates are JSON unless an image is attached.
"""
import json
import logging
from urllib.parse import quote

import requests
from django.conf import settings

logger = logging.getLogger(__name__)


class ProductAPIError(Exception):
    """Raised when the product API answers with an error or cannot be reached"""

    def __init__(self, status_code, message, payload=None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.payload = payload

    def __str__(self):
        if self.status_code is None:
            return self.message
        return f"{self.status_code}: {self.message}"


def _form_value(value):
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return str(value)


class ProductAPIClient:
    def __init__(self, base_url=None, session=None, timeout=None):
        self.base_url = (base_url or getattr(settings, 'PRODUCT_API_BASE_URL', 'http://localhost:8000')).rstrip('/')
        self.session = session or requests.Session()
        self.timeout = timeout if timeout is not None else getattr(settings, 'PRODUCT_API_TIMEOUT', 10)

    def _url(self, path):
        return f"{self.base_url}{path}"

    def _request(self, method, path, **kwargs):
        url = self._url(path)
        logger.debug(f"{method} {url}")
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.error(f"{method} {url} failed: {str(e)}")
            raise ProductAPIError(None, f"Could not reach product API: {str(e)}") from e

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if not response.ok:
            message = payload.get('message') if isinstance(payload, dict) else None
            message = message or response.reason or 'Request failed'
            logger.warning(f"{method} {url} returned {response.status_code}: {message}")
            raise ProductAPIError(response.status_code, message, payload)

        return payload

    def list_products(self, search=None):
        params = {'search': search} if search else None
        return self._request('GET', '/products', params=params) or []

    def create_product(self, fields, image=None):
        """Create a product from form fields; ``image`` is (filename, content, content_type)"""
        data = {key: _form_value(value) for key, value in fields.items() if value is not None}
        files = {'image': image} if image else None
        return self._request('POST', '/products', data=data, files=files)

    def update_product(self, product_id, update_data, image=None):
        """PATCH a product; multipart when an image is attached, JSON otherwise"""
        path = f"/products/{quote(str(product_id), safe='')}"
        if image:
            data = {key: _form_value(value) for key, value in update_data.items() if value is not None}
            return self._request('PATCH', path, data=data, files={'image': image})
        return self._request(
            'PATCH', path,
            data=json.dumps(update_data),
            headers={'Content-Type': 'application/json'},
        )

    def update_product_fields(self, product_id, update_data):
        """JSON-only PATCH used for field edits such as restocking"""
        path = f"/products/{quote(str(product_id), safe='')}"
        return self._request(
            'PATCH', path,
            data=json.dumps(update_data),
            headers={'Content-Type': 'application/json', 'Accept': 'application/json'},
        )
