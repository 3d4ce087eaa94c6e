"""Redis-backed key-value store."""

from typing import Optional

from app.kv_store.base import KeyValueStore
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="kv_store/redis_store")


class RedisKeyValueStore(KeyValueStore):
    """Durable store on Redis. Transport errors are logged, never raised."""

    def __init__(self, client, prefix: str = "connecto:") -> None:
        """Initialize with a Redis client and a key prefix owned by this store."""
        logger.debug("Initializing RedisKeyValueStore")
        self.client = client
        self.prefix = prefix

    def _key(self, key: str) -> str:
        """Return the namespaced Redis key."""
        return f"{self.prefix}{key}"

    def get(self, key: str) -> Optional[str]:
        """Fetch a value, or None if missing or Redis is unreachable."""
        try:
            raw = self.client.get(self._key(key))
        except Exception as exc:
            logger.error("Failed to read key from Redis: %s", exc)
            return None
        if raw is None:
            return None
        if isinstance(raw, bytes):
            try:
                return raw.decode("utf-8")
            except UnicodeDecodeError as exc:
                logger.error("Failed to decode value from Redis: %s", exc)
                return None
        return str(raw)

    def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        """Write a value, with an expiry when `ttl_seconds` is given."""
        try:
            if ttl_seconds:
                self.client.setex(self._key(key), ttl_seconds, value.encode("utf-8"))
            else:
                self.client.set(self._key(key), value.encode("utf-8"))
        except Exception as exc:
            logger.error("Failed to write key to Redis: %s", exc)

    def delete(self, key: str) -> None:
        """Delete a key if present."""
        try:
            self.client.delete(self._key(key))
        except Exception as exc:
            logger.error("Failed to delete key from Redis: %s", exc)

    def clear(self) -> None:
        """Best-effort clear for all keys under the configured prefix."""
        try:
            for key in self.client.scan_iter(f"{self.prefix}*"):
                self.client.delete(key)
        except Exception as exc:
            logger.error("Failed to clear keys from Redis: %s", exc)
