"""
Key/value backends the cart store persists through.

Every backend notifies its subscribers with a StorageEvent after each write
so other stores sharing the same key can reconcile their state.
"""
import logging
from dataclasses import dataclass
from typing import Any, Optional

from django.core.cache import cache as default_cache

from ..exceptions import CartPersistenceError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StorageEvent:
    key: str
    new_value: Optional[str]
    source: Any = None


class BaseCartStorage:
    def __init__(self):
        self._subscribers = []

    def subscribe(self, callback):
        """Register a callback for StorageEvents; returns an unsubscribe function."""
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _publish(self, key, value, source):
        event = StorageEvent(key=key, new_value=value, source=source)
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception as e:
                logger.error(f"Storage subscriber failed for {key}: {str(e)}")

    def get_item(self, key):
        raise NotImplementedError

    def set_item(self, key, value, source=None):
        self._write(key, value)
        self._publish(key, value, source)

    def remove_item(self, key, source=None):
        self._delete(key)
        self._publish(key, None, source)

    def _write(self, key, value):
        raise NotImplementedError

    def _delete(self, key):
        raise NotImplementedError


class MemoryCartStorage(BaseCartStorage):
    """Process-local storage, optionally bounded like a browser storage quota."""

    def __init__(self, quota_bytes=None):
        super().__init__()
        self.quota_bytes = quota_bytes
        self._data = {}

    def get_item(self, key):
        return self._data.get(key)

    def _write(self, key, value):
        if self.quota_bytes is not None and len(value.encode('utf-8')) > self.quota_bytes:
            raise CartPersistenceError(f"Storage quota exceeded while saving {key}")
        self._data[key] = value

    def _delete(self, key):
        self._data.pop(key, None)


class CacheCartStorage(BaseCartStorage):
    """Stores carts in the Django cache, shared by every worker using it."""

    def __init__(self, cache=None, prefix='', timeout=None):
        super().__init__()
        self.cache = cache or default_cache
        self.prefix = prefix
        self.timeout = timeout

    def _cache_key(self, key):
        return f"{self.prefix}{key}"

    def get_item(self, key):
        try:
            return self.cache.get(self._cache_key(key))
        except Exception as e:
            raise CartPersistenceError(f"Failed to load {key} from cache: {str(e)}") from e

    def _write(self, key, value):
        try:
            self.cache.set(self._cache_key(key), value, self.timeout)
        except Exception as e:
            raise CartPersistenceError(f"Failed to save {key} to cache: {str(e)}") from e

    def _delete(self, key):
        try:
            self.cache.delete(self._cache_key(key))
        except Exception as e:
            raise CartPersistenceError(f"Failed to remove {key} from cache: {str(e)}") from e


class SessionCartStorage(BaseCartStorage):
    """Keeps a guest cart in the visitor's Django session."""

    def __init__(self, session):
        super().__init__()
        self.session = session

    def get_item(self, key):
        return self.session.get(key)

    def _write(self, key, value):
        self.session[key] = value
        self.session.modified = True

    def _delete(self, key):
        if key in self.session:
            del self.session[key]
            self.session.modified = True
