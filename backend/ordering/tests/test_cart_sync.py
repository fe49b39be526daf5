import asyncio
import itertools
import json
import threading
from unittest import mock

import requests
from django.test import SimpleTestCase

from ordering.cart.remote import RemoteCartClient
from ordering.cart.storage import MemoryCartStorage, StorageEvent
from ordering.cart.store import CartStore
from ordering.cart.sync import CartSynchronizer, InitState
from ordering.exceptions import RemoteSyncError


def make_store(storage, start):
    counter = itertools.count(start)
    return CartStore(storage=storage, clock=lambda: next(counter))


def line(menu_item_id, unit_price='10.00', quantity=1):
    return {'menu_item_id': menu_item_id, 'name': f'Item {menu_item_id}', 'unit_price': unit_price, 'quantity': quantity}


class FakeClock:
    def __init__(self):
        self.now = 0

    def __call__(self):
        return self.now


class SynchronizerLifecycleTests(SimpleTestCase):

    def setUp(self):
        self.storage = MemoryCartStorage()
        self.store = make_store(self.storage, 1000)

    def test_initialize_rehydrates_store(self):
        make_store(self.storage, 500).add_item(line(1, quantity=2))
        sync = CartSynchronizer(self.store)

        self.assertEqual(sync.state, InitState.NOT_INITIALIZED)
        self.assertTrue(sync.initialize())
        self.assertEqual(sync.state, InitState.INITIALIZED)
        self.assertTrue(self.store.is_hydrated)
        self.assertEqual(self.store.get_total_items(), 2)

    def test_initialize_failure_then_retry(self):
        self.storage.set_item('cart-storage', '{not json')
        sync = CartSynchronizer(self.store)

        self.assertFalse(sync.initialize())
        self.assertTrue(sync.has_error)
        self.assertIn('Failed to load cart', sync.error_message)

        self.storage.remove_item('cart-storage')
        self.assertTrue(sync.retry_initialization())
        self.assertTrue(sync.is_initialized)
        self.assertIsNone(sync.error_message)

    def test_malformed_storage_moves_to_error(self):
        for raw in ('[]', json.dumps({'state': {'items': []}, 'version': '4'})):
            storage = MemoryCartStorage()
            storage.set_item('cart-storage', raw)
            sync = CartSynchronizer(make_store(storage, 1000))

            self.assertFalse(sync.initialize())
            self.assertEqual(sync.state, InitState.ERROR)
            self.assertIn('Failed to load cart', sync.error_message)

    def test_clear_error(self):
        self.storage.set_item('cart-storage', '{not json')
        sync = CartSynchronizer(self.store)
        sync.initialize()

        sync.clear_error()
        self.assertEqual(sync.state, InitState.NOT_INITIALIZED)
        self.assertIsNone(sync.error_message)

    def test_shutdown_unsubscribes(self):
        sync = CartSynchronizer(self.store)
        sync.initialize()
        sync.shutdown()

        make_store(self.storage, 9000).add_item(line(1))
        self.assertFalse(self.store.has_items())
        self.assertEqual(sync.state, InitState.NOT_INITIALIZED)


class CrossContextTests(SimpleTestCase):

    def setUp(self):
        self.storage = MemoryCartStorage()
        self.local = make_store(self.storage, 1000)
        self.sync = CartSynchronizer(self.local)
        self.sync.initialize()

    def test_newer_write_from_other_context_reloads(self):
        other = make_store(self.storage, 2000)
        other.add_item(line(1, quantity=3))

        self.assertEqual(self.local.get_total_items(), 3)
        self.assertEqual(self.local.last_sync_timestamp, other.last_sync_timestamp)

    def test_last_write_wins(self):
        first = make_store(self.storage, 2000)
        second = make_store(self.storage, 3000)
        first.add_item(line(1, quantity=1))
        second.add_item(line(2, quantity=5))

        self.assertEqual([item.menu_item_id for item in self.local.items], [2])

    def test_own_writes_are_ignored(self):
        self.local.add_item(line(1))
        event = StorageEvent('cart-storage', self.storage.get_item('cart-storage'), source=self.local)
        self.assertFalse(self.sync.handle_storage_event(event))

    def test_stale_write_is_ignored(self):
        self.local.add_item(line(1, quantity=2))
        stale = json.dumps({'state': {'items': [], 'last_sync_timestamp': 10}, 'version': 4})

        self.assertFalse(self.sync.handle_storage_event(StorageEvent('cart-storage', stale)))
        self.assertEqual(self.local.get_total_items(), 2)

    def test_other_keys_and_removals_are_ignored(self):
        newer = json.dumps({'state': {'items': [], 'last_sync_timestamp': 99999}, 'version': 4})
        self.assertFalse(self.sync.handle_storage_event(StorageEvent('user-storage', newer)))
        self.assertFalse(self.sync.handle_storage_event(StorageEvent('cart-storage', None)))

    def test_malformed_write_from_other_context_is_ignored(self):
        self.local.add_item(line(1, quantity=2))
        self.assertFalse(self.sync.handle_storage_event(StorageEvent('cart-storage', '[]')))
        newer = json.dumps({'state': {'items': {}, 'last_sync_timestamp': 99999}, 'version': 4})
        self.assertFalse(self.sync.handle_storage_event(StorageEvent('cart-storage', newer)))
        self.assertEqual(self.local.get_total_items(), 2)

    def test_cross_context_can_be_disabled(self):
        local = make_store(self.storage, 1000)
        sync = CartSynchronizer(local, enable_cross_context=False)
        sync.initialize()

        make_store(self.storage, 5000).add_item(line(1))
        self.assertFalse(local.has_items())


class PeriodicSyncTests(SimpleTestCase):

    def setUp(self):
        self.store = make_store(MemoryCartStorage(), 1000)
        self.remote = mock.Mock()
        self.clock = FakeClock()
        self.sync = CartSynchronizer(self.store, remote=self.remote, interval=30, clock=self.clock)
        self.sync.initialize()
        self.store.add_item(line(1, quantity=2))

    def test_tick_waits_for_interval(self):
        self.assertIsNone(self.sync.tick(10))
        self.remote.push.assert_not_called()

        self.assertEqual(self.sync.tick(30), {'success': True, 'error': None})
        self.remote.push.assert_called_once()
        snapshot = self.remote.push.call_args[0][0]
        self.assertEqual(len(snapshot['state']['items']), 1)
        self.assertEqual(self.remote.push.call_args[1], {'mode': 'replace'})

        self.assertIsNone(self.sync.tick(45))
        self.sync.tick(60)
        self.assertEqual(self.remote.push.call_count, 2)

    def test_tick_before_initialization_does_nothing(self):
        sync = CartSynchronizer(self.store, remote=self.remote, interval=30, clock=self.clock)
        self.assertIsNone(sync.tick(100))
        self.remote.push.assert_not_called()

    def test_periodic_sync_can_be_disabled(self):
        self.sync.enable_periodic = False
        self.assertIsNone(self.sync.tick(100))
        self.remote.push.assert_not_called()

    def test_manual_sync_failure_is_reported_not_raised(self):
        self.remote.push.side_effect = RemoteSyncError('Cart API returned 503')

        result = self.sync.manual_sync()

        self.assertEqual(result, {'success': False, 'error': 'Cart API returned 503'})
        self.assertEqual(self.store.get_total_items(), 2)

    def test_empty_cart_is_pushed_once(self):
        self.store.clear_cart()
        self.sync.manual_sync()
        self.sync.manual_sync()
        self.assertEqual(self.remote.push.call_count, 1)

    def test_fresh_empty_context_does_not_push(self):
        remote = mock.Mock()
        sync = CartSynchronizer(make_store(MemoryCartStorage(), 1000), remote=remote, interval=30, clock=self.clock)
        sync.initialize()

        self.assertEqual(sync.manual_sync(), {'success': True, 'error': None})
        sync.tick(60)
        remote.push.assert_not_called()

    def test_empty_cart_reloaded_from_other_context_is_not_pushed(self):
        storage = MemoryCartStorage()
        make_store(storage, 500).add_item(line(1))
        remote = mock.Mock()
        sync = CartSynchronizer(make_store(storage, 1000), remote=remote, clock=self.clock)
        sync.initialize()

        make_store(storage, 2000).clear_cart()
        sync.manual_sync()

        self.assertFalse(sync.store.has_items())
        remote.push.assert_not_called()

    def test_visibility_and_online_trigger_sync(self):
        self.assertIsNone(self.sync.on_visibility_change(False))
        self.sync.on_visibility_change(True)
        self.sync.on_online()
        self.assertEqual(self.remote.push.call_count, 2)

    def test_run_loop_syncs_until_stopped(self):
        stop_event = threading.Event()
        self.remote.push.side_effect = lambda *args, **kwargs: stop_event.set()
        sync = CartSynchronizer(self.store, remote=self.remote, interval=0, clock=self.clock)

        asyncio.run(sync.run(stop_event))

        self.assertTrue(sync.is_initialized)
        self.remote.push.assert_called_once()


class RemoteCartClientTests(SimpleTestCase):

    def setUp(self):
        self.session = mock.Mock()
        self.client = RemoteCartClient('https://shop.example.com/api/', access_token='token', session=self.session)
        self.snapshot = {'state': {'items': [line(1)], 'last_sync_timestamp': 1234}, 'version': 4}

    def test_push_posts_snapshot(self):
        self.session.post.return_value = mock.Mock(
            status_code=200, **{'json.return_value': {'success': True, 'data': {'cart_id': 7}}}
        )

        data = self.client.push(self.snapshot, mode='merge')

        self.assertEqual(data, {'cart_id': 7})
        args, kwargs = self.session.post.call_args
        self.assertEqual(args[0], 'https://shop.example.com/api/cart/sync/')
        self.assertEqual(kwargs['headers']['Authorization'], 'Bearer token')
        body = json.loads(kwargs['data'])
        self.assertEqual(body['mode'], 'merge')
        self.assertEqual(body['last_sync_timestamp'], 1234)
        self.assertEqual(len(body['items']), 1)

    def test_http_error_raises(self):
        self.session.post.return_value = mock.Mock(status_code=503, text='unavailable')
        with self.assertRaises(RemoteSyncError):
            self.client.push(self.snapshot)

    def test_rejected_body_raises(self):
        self.session.post.return_value = mock.Mock(
            status_code=200, **{'json.return_value': {'success': False, 'error': 'Invalid cart'}}
        )
        with self.assertRaisesMessage(RemoteSyncError, 'Invalid cart'):
            self.client.push(self.snapshot)

    def test_network_error_raises(self):
        self.session.get.side_effect = requests.ConnectionError('offline')
        with self.assertRaises(RemoteSyncError):
            self.client.fetch()
