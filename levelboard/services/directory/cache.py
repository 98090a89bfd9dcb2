"""
LevelBoard - Enrichment Cache
=============================

In-memory TTL store for Discord display metadata.

Entries are stamped once when written and never refreshed on read. An entry
older than the TTL is treated as absent; it is dropped when a read sees it or
overwritten by the next successful lookup. There is no background sweep on
the request path.

All access happens on the event loop thread, so no lock is taken.
"""

import time
from typing import Callable, Generic, Hashable, Optional, TypeVar

from levelboard.core.constants import ENRICHMENT_TTL_SECONDS


V = TypeVar("V")


class EnrichmentCache(Generic[V]):
    """TTL cache keyed by any hashable (e.g. ``(user_id, guild_id)``)."""

    def __init__(
        self,
        ttl: float = ENRICHMENT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Args:
            ttl: Seconds an entry stays valid after it was written
            clock: Time source in seconds, injectable for tests
        """
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[Hashable, tuple[V, float]] = {}

    def get(self, key: Hashable) -> Optional[V]:
        """Return the cached value if it is still inside the TTL window."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, timestamp = entry
        if self._clock() - timestamp < self.ttl:
            return value
        del self._entries[key]
        return None

    def set(self, key: Hashable, value: V) -> None:
        self._entries[key] = (value, self._clock())

    def clear(self) -> int:
        """Drop every entry. Returns how many were removed."""
        removed = len(self._entries)
        self._entries.clear()
        return removed

    def cleanup_expired(self) -> int:
        """Remove expired entries. Returns how many were removed."""
        now = self._clock()
        expired_keys = [
            key for key, (_, timestamp) in self._entries.items()
            if now - timestamp >= self.ttl
        ]
        for key in expired_keys:
            del self._entries[key]
        return len(expired_keys)

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key) is not None

    @property
    def size(self) -> int:
        """Number of stored entries, expired ones included."""
        return len(self._entries)


__all__ = ["EnrichmentCache"]
