"""In-memory key-value store with optional TTL, intended for development and tests."""

import threading
import time
from typing import Optional

from app.kv_store.base import KeyValueStore

from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="kv_store/in_memory_store")


class InMemoryKeyValueStore(KeyValueStore):
    """Thread-safe, TTL-aware in-memory store (dev/test). Lost on restart."""

    def __init__(self) -> None:
        logger.debug("Initializing InMemoryKeyValueStore")
        self._values: dict[str, tuple[str, Optional[float]]] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _expired(exp: Optional[float]) -> bool:
        return exp is not None and exp <= time.monotonic()

    def get(self, key: str) -> Optional[str]:
        """Return the value, or None if missing/expired (expired keys are dropped)."""
        with self._lock:
            entry = self._values.get(key)
            if entry is None:
                return None
            value, exp = entry
            if self._expired(exp):
                self._values.pop(key, None)
                return None
            return value

    def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        exp = time.monotonic() + ttl_seconds if ttl_seconds else None
        with self._lock:
            self._values[key] = (value, exp)

    def delete(self, key: str) -> None:
        with self._lock:
            self._values.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._values.clear()
