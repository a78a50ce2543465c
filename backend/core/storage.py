"""
Client-local key/value storage.

The browser frontend kept its drafts and preferences in ``localStorage``.
These stores give the Python workflows the same contract: string values
under string keys, with JSON helpers that fall back to a default when the
stored payload cannot be decoded.
"""
import copy
import json
import logging
import os
import tempfile
import threading
from pathlib import Path

from django.conf import settings
from django.core.cache import caches
from django.core.serializers.json import DjangoJSONEncoder

logger = logging.getLogger(__name__)


class KeyValueStore:
    """Base class for string key/value stores"""

    def get(self, key):
        raise NotImplementedError

    def set(self, key, value):
        raise NotImplementedError

    def delete(self, key):
        raise NotImplementedError

    def clear(self):
        raise NotImplementedError

    def read_json(self, key, default=None):
        """Decode the JSON stored under key.

        Returns a copy of ``default`` when the key is missing or the stored
        payload is not valid JSON. Decode errors are logged, never raised.
        """
        raw = self.get(key)
        if raw is None:
            return copy.deepcopy(default)
        try:
            return json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.warning(f"Discarding unreadable value for '{key}': {str(e)}")
            return copy.deepcopy(default)

    def write_json(self, key, value):
        self.set(key, json.dumps(value, cls=DjangoJSONEncoder))


class InMemoryKeyValueStore(KeyValueStore):
    """Dictionary-backed store, mainly for tests"""

    def __init__(self, initial=None):
        self._data = dict(initial or {})

    def get(self, key):
        return self._data.get(key)

    def set(self, key, value):
        self._data[key] = value

    def delete(self, key):
        self._data.pop(key, None)

    def clear(self):
        self._data.clear()

    def keys(self):
        return list(self._data)


class FileKeyValueStore(KeyValueStore):
    """Store persisted as a single JSON object on disk.

    Every write rewrites the whole file through a temporary file and
    ``os.replace`` so readers never observe a half-written document.
    """

    def __init__(self, path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _load(self):
        if not self.path.exists():
            return {}
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Local storage file {self.path} is unreadable, starting empty: {str(e)}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Local storage file {self.path} does not hold an object, starting empty")
            return {}
        return data

    def _save(self, data):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), prefix='.kv-', suffix='.tmp')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(data, f, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def get(self, key):
        with self._lock:
            value = self._load().get(key)
        return value if isinstance(value, str) or value is None else json.dumps(value)

    def set(self, key, value):
        with self._lock:
            data = self._load()
            data[key] = value
            self._save(data)

    def delete(self, key):
        with self._lock:
            data = self._load()
            if key in data:
                del data[key]
                self._save(data)

    def clear(self):
        with self._lock:
            self._save({})


class CacheKeyValueStore(KeyValueStore):
    """Store on top of a Django cache alias (Redis in production).

    Entries are written without expiry. ``clear`` only forgets the keys
    written through this instance, the cache itself may be shared.
    """

    def __init__(self, alias='default', prefix='local'):
        self.cache = caches[alias]
        self.prefix = prefix
        self._keys = set()

    def _key(self, key):
        return f"{self.prefix}:{key}"

    def get(self, key):
        return self.cache.get(self._key(key))

    def set(self, key, value):
        self.cache.set(self._key(key), value, None)
        self._keys.add(key)

    def delete(self, key):
        self.cache.delete(self._key(key))
        self._keys.discard(key)

    def clear(self):
        if self._keys:
            self.cache.delete_many([self._key(k) for k in self._keys])
        self._keys.clear()


def get_key_value_store(config=None):
    """Build the store described by ``settings.CLIENT_STORE``"""
    config = config or getattr(settings, 'CLIENT_STORE', {})
    backend = config.get('BACKEND', 'memory')

    if backend == 'memory':
        return InMemoryKeyValueStore()
    if backend == 'file':
        return FileKeyValueStore(config.get('PATH', '.local_storage.json'))
    if backend == 'cache':
        return CacheKeyValueStore(alias=config.get('CACHE_ALIAS', 'default'), prefix=config.get('PREFIX', 'local'))

    raise ValueError(f"Unknown client store backend: {backend}")
