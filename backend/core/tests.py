"""
Test suite for Core utilities
Tests: key/value stores, schedulers, notification queue and the API exception handler
"""
import json
import os
import shutil
import tempfile

from django.test import SimpleTestCase, override_settings
from rest_framework import status
from rest_framework.exceptions import NotFound

from backend.core.exceptions import api_exception_handler, error_payload
from backend.core.notifications import (
    DEFAULT_DURATIONS,
    ERROR,
    SUCCESS,
    NotificationCenter,
    generate_notification_id,
)
from backend.core.scheduler import ManualScheduler
from backend.core.storage import (
    CacheKeyValueStore,
    FileKeyValueStore,
    InMemoryKeyValueStore,
    get_key_value_store,
)


class InMemoryKeyValueStoreTests(SimpleTestCase):
    """Test the dictionary-backed store and the JSON helpers"""

    def setUp(self):
        self.store = InMemoryKeyValueStore()

    def test_get_set_delete(self):
        self.store.set('a', '1')
        self.assertEqual(self.store.get('a'), '1')
        self.store.delete('a')
        self.assertIsNone(self.store.get('a'))
        self.store.delete('a')

    def test_read_json_missing_returns_default_copy(self):
        default = {'items': []}
        value = self.store.read_json('missing', default)
        value['items'].append(1)
        self.assertEqual(default, {'items': []})

    def test_read_json_malformed_returns_default(self):
        self.store.set('broken', '{"items": [')
        self.assertEqual(self.store.read_json('broken', []), [])

    def test_write_json_round_trip(self):
        self.store.write_json('prefs', {'featured': ['p1']})
        self.assertEqual(self.store.read_json('prefs'), {'featured': ['p1']})

    def test_clear(self):
        self.store.set('a', '1')
        self.store.set('b', '2')
        self.store.clear()
        self.assertEqual(self.store.keys(), [])


class FileKeyValueStoreTests(SimpleTestCase):
    """Test the store persisted to a JSON file"""

    def setUp(self):
        self.tmp_dir = tempfile.mkdtemp()
        self.path = os.path.join(self.tmp_dir, 'local.json')

    def tearDown(self):
        shutil.rmtree(self.tmp_dir, ignore_errors=True)

    def test_values_survive_a_new_instance(self):
        FileKeyValueStore(self.path).write_json('pendingSale', {'note': 'hi'})
        self.assertEqual(FileKeyValueStore(self.path).read_json('pendingSale'), {'note': 'hi'})

    def test_missing_file_is_empty(self):
        self.assertIsNone(FileKeyValueStore(self.path).get('anything'))

    def test_unreadable_file_is_treated_as_empty(self):
        with open(self.path, 'w', encoding='utf-8') as f:
            f.write('not json at all')
        store = FileKeyValueStore(self.path)
        self.assertIsNone(store.get('a'))
        store.set('a', '1')
        with open(self.path, encoding='utf-8') as f:
            self.assertEqual(json.load(f), {'a': '1'})

    def test_delete_and_clear(self):
        store = FileKeyValueStore(self.path)
        store.set('a', '1')
        store.set('b', '2')
        store.delete('a')
        self.assertIsNone(store.get('a'))
        self.assertEqual(store.get('b'), '2')
        store.clear()
        self.assertIsNone(store.get('b'))


@override_settings(CACHES={'default': {'BACKEND': 'django.core.cache.backends.locmem.LocMemCache', 'LOCATION': 'kv-tests'}})
class CacheKeyValueStoreTests(SimpleTestCase):
    """Test the store on top of a Django cache"""

    def test_get_set_clear(self):
        store = CacheKeyValueStore(prefix='test')
        store.set('a', '1')
        self.assertEqual(store.get('a'), '1')
        self.assertEqual(store.cache.get('test:a'), '1')
        store.clear()
        self.assertIsNone(store.get('a'))


class KeyValueStoreFactoryTests(SimpleTestCase):
    def test_memory_backend(self):
        self.assertIsInstance(get_key_value_store({'BACKEND': 'memory'}), InMemoryKeyValueStore)

    def test_file_backend(self):
        store = get_key_value_store({'BACKEND': 'file', 'PATH': '/tmp/kv-factory.json'})
        self.assertIsInstance(store, FileKeyValueStore)

    def test_unknown_backend(self):
        with self.assertRaises(ValueError):
            get_key_value_store({'BACKEND': 'sqlite'})


class ManualSchedulerTests(SimpleTestCase):
    """Test the virtual-clock scheduler"""

    def test_callbacks_fire_in_due_order(self):
        scheduler = ManualScheduler()
        fired = []
        scheduler.call_later(0.6, lambda: fired.append('late'))
        scheduler.call_later(0.0, lambda: fired.append('now'))
        scheduler.call_later(0.3, lambda: fired.append('mid'))

        scheduler.advance(0.3)
        self.assertEqual(fired, ['now', 'mid'])
        self.assertEqual(scheduler.pending, 1)

        scheduler.advance(1)
        self.assertEqual(fired, ['now', 'mid', 'late'])
        self.assertAlmostEqual(scheduler.now, 1.3)

    def test_cancelled_callbacks_do_not_fire(self):
        scheduler = ManualScheduler()
        fired = []
        handle = scheduler.call_later(1, lambda: fired.append(1))
        handle.cancel()
        scheduler.run_all()
        self.assertEqual(fired, [])


class NotificationCenterTests(SimpleTestCase):
    """Test the notification queue"""

    def setUp(self):
        self.scheduler = ManualScheduler()
        self.center = NotificationCenter(scheduler=self.scheduler, max_visible=5)

    def test_id_format(self):
        self.assertRegex(generate_notification_id(), r'^notification-\d+-[a-z0-9]{9}$')

    def test_default_durations(self):
        success = self.center.show_success('Saved')
        error = self.center.show_error('Failed')
        self.assertEqual(success.duration, DEFAULT_DURATIONS[SUCCESS])
        self.assertEqual(error.duration, 8000)
        self.assertEqual(error.type, ERROR)

    def test_auto_dismiss(self):
        """Test each notification disappears after its own duration"""
        self.center.show_success('Saved')
        self.center.show_error('Failed')

        self.scheduler.advance(5.0)
        self.assertEqual([n.message for n in self.center.notifications], ['Failed'])

        self.scheduler.advance(3.0)
        self.assertEqual(self.center.notifications, [])

    def test_only_newest_are_kept(self):
        """Test the queue never grows beyond max_visible"""
        for i in range(7):
            self.center.show_info(f'message {i}')
        messages = [n.message for n in self.center.notifications]
        self.assertEqual(messages, [f'message {i}' for i in range(2, 7)])
        self.assertEqual(self.scheduler.pending, 5)

    def test_remove(self):
        notification = self.center.show_warning('Careful')
        self.assertTrue(self.center.remove(notification.id))
        self.assertFalse(self.center.remove(notification.id))
        self.assertEqual(self.scheduler.pending, 0)

    def test_zero_duration_is_sticky(self):
        self.center.add('Stays', duration=0)
        self.scheduler.advance(60)
        self.assertEqual(len(self.center.notifications), 1)

    def test_unknown_type(self):
        with self.assertRaises(ValueError):
            self.center.add('Hmm', type='debug')

    def test_clear(self):
        self.center.show_info('a')
        self.center.show_info('b')
        self.center.clear()
        self.assertEqual(self.center.notifications, [])
        self.assertEqual(self.scheduler.pending, 0)


class ExceptionHandlerTests(SimpleTestCase):
    """Test the API exception handler"""

    def test_api_exceptions_use_default_handling(self):
        response = api_exception_handler(NotFound(), {})
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    @override_settings(DEBUG=False)
    def test_unhandled_error_becomes_500(self):
        response = api_exception_handler(RuntimeError('boom'), {})
        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.data, {'message': 'Internal server error'})

    @override_settings(DEBUG=True)
    def test_error_detail_only_in_debug(self):
        self.assertEqual(error_payload('Failed', ValueError('bad')), {'message': 'Failed', 'error': 'bad'})
