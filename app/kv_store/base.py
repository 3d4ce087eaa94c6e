"""Shared protocol for key-value storage backends."""

from typing import Optional, Protocol


class KeyValueStore(Protocol):
    """String key-value store used for locations, flags and cooldowns."""

    def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None if missing or expired."""

    def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        """Store a value, optionally expiring after `ttl_seconds`."""

    def delete(self, key: str) -> None:
        """Delete a key without raising if it is absent."""

    def clear(self) -> None:
        """Remove every key owned by this store."""
