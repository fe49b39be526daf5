"""
Keeps one cart consistent across contexts sharing a storage key.

Writes from other stores arrive as StorageEvents and overwrite local state
when they carry a newer timestamp (last write wins). A periodic best-effort
sync pushes the local snapshot to the server; failures leave local state
authoritative.
"""
import asyncio
import json
import logging
import time

from asgiref.sync import sync_to_async

from ..conf import get_setting
from ..exceptions import CartPersistenceError, OrderingError

logger = logging.getLogger(__name__)


class InitState:
    NOT_INITIALIZED = 'not_initialized'
    INITIALIZING = 'initializing'
    INITIALIZED = 'initialized'
    ERROR = 'error'


class CartSynchronizer:
    def __init__(self, store, remote=None, interval=None, enable_cross_context=True,
                 enable_periodic=True, clock=time.monotonic):
        self.store = store
        self.remote = remote
        self.interval = interval if interval is not None else get_setting('CART_SYNC_INTERVAL')
        self.enable_cross_context = enable_cross_context
        self.enable_periodic = enable_periodic
        self.clock = clock

        self.state = InitState.NOT_INITIALIZED
        self.error_message = None
        self.last_sync_at = None
        self._started_at = None
        self._last_seen_timestamp = 0
        self._last_pushed_timestamp = None
        self._unsubscribe = None

    @property
    def is_initialized(self):
        return self.state == InitState.INITIALIZED

    @property
    def has_error(self):
        return self.state == InitState.ERROR

    # Lifecycle

    def initialize(self):
        if self.is_initialized:
            return True

        self.state = InitState.INITIALIZING
        self.error_message = None
        try:
            self.store.rehydrate()
        except CartPersistenceError as e:
            logger.error(f"Cart initialization failed: {str(e)}")
            self.state = InitState.ERROR
            self.error_message = str(e)
            return False

        self._last_seen_timestamp = self.store.last_sync_timestamp
        if self.enable_cross_context and self._unsubscribe is None:
            self._unsubscribe = self.store.storage.subscribe(self.handle_storage_event)
        self._started_at = self.clock()
        self.state = InitState.INITIALIZED
        return True

    def retry_initialization(self):
        self.state = InitState.INITIALIZING
        self.error_message = None
        return self.initialize()

    def clear_error(self):
        self.error_message = None
        if self.state == InitState.ERROR:
            self.state = InitState.NOT_INITIALIZED

    def shutdown(self):
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.state = InitState.NOT_INITIALIZED

    # Cross-context

    def handle_storage_event(self, event):
        """Reload the store when another context wrote a newer cart. Returns True on reload."""
        if event.source is self.store or event.key != self.store.name or not event.new_value:
            return False

        try:
            payload = json.loads(event.new_value)
            timestamp = int((payload.get('state') or {}).get('last_sync_timestamp') or 0)
        except (TypeError, AttributeError, ValueError) as e:
            logger.error(f"Failed to parse cart storage change: {str(e)}")
            return False

        if timestamp <= max(self._last_seen_timestamp, self.store.last_sync_timestamp):
            return False

        try:
            items, timestamp = self.store.parse_payload(payload)
        except CartPersistenceError as e:
            logger.error(f"Ignoring malformed cart storage change: {str(e)}")
            return False
        self.store.load_snapshot(items, timestamp)
        self._last_seen_timestamp = timestamp
        logger.debug(f"Reloaded cart from storage at {timestamp}")
        return True

    # Remote sync

    def _cleared_locally(self):
        """True when this store emptied the cart and the empty state is not yet pushed."""
        timestamp = self.store.last_sync_timestamp
        return timestamp > self._last_seen_timestamp and timestamp != self._last_pushed_timestamp

    def sync_cart(self):
        """Validate local lines and push them to the server; raises on failure."""
        self.store.validate_cart_items()
        if self.remote is None:
            return None
        if not self.store.has_items() and not self._cleared_locally():
            return None

        result = self.remote.push(self.store.snapshot(), mode='replace')
        self._last_pushed_timestamp = self.store.last_sync_timestamp
        return result

    def manual_sync(self):
        try:
            self.sync_cart()
        except OrderingError as e:
            logger.error(f"Manual cart sync failed: {str(e)}")
            return {'success': False, 'error': str(e)}
        self.last_sync_at = self.clock()
        return {'success': True, 'error': None}

    def tick(self, now=None):
        """Run a sync when the interval has elapsed since the last attempt."""
        if not self.enable_periodic or not self.is_initialized:
            return None

        now = self.clock() if now is None else now
        reference = self.last_sync_at if self.last_sync_at is not None else self._started_at
        if reference is not None and now - reference < self.interval:
            return None

        result = self.manual_sync()
        self.last_sync_at = now
        return result

    def on_visibility_change(self, visible):
        if visible and self.is_initialized:
            return self.manual_sync()
        return None

    def on_online(self):
        if self.is_initialized:
            return self.manual_sync()
        return None

    async def run(self, stop_event=None):
        """Periodic sync loop for long-lived processes."""
        if not self.is_initialized:
            await sync_to_async(self.initialize)()

        while stop_event is None or not stop_event.is_set():
            await asyncio.sleep(self.interval)
            if stop_event is not None and stop_event.is_set():
                break
            result = await sync_to_async(self.tick)()
            if result and not result['success']:
                logger.warning(f"Periodic cart sync failed: {result['error']}")
