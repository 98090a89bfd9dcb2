"""
LevelBoard - API Cache and Rate Limiting Utilities
==================================================

Short-lived response cache and per-client rate limiter for the dashboard API.
"""

import asyncio
import copy
import time
from collections import defaultdict
from typing import Callable, Optional

from levelboard.core.constants import (
    DEFAULT_CACHE_TTL_SECONDS,
    DEFAULT_RATE_LIMIT_PER_MINUTE,
    DEFAULT_BURST_LIMIT,
)


# =============================================================================
# Response Cache
# =============================================================================

class ResponseCache:
    """In-memory cache of JSON response bodies with TTL."""

    def __init__(
        self,
        ttl: float = DEFAULT_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize cache with TTL.

        Args:
            ttl: Time-to-live in seconds for cached entries
            clock: Time source, injectable for tests
        """
        self.ttl = ttl
        self._clock = clock
        self._cache: dict[str, tuple[dict, float]] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Optional[dict]:
        """
        Get a cached response if still valid.

        Returns:
            A copy of the cached body, so callers may annotate it freely
        """
        async with self._lock:
            if key in self._cache:
                data, timestamp = self._cache[key]
                if self._clock() - timestamp < self.ttl:
                    return copy.deepcopy(data)
                del self._cache[key]
            return None

    async def set(self, key: str, data: dict) -> None:
        async with self._lock:
            self._cache[key] = (copy.deepcopy(data), self._clock())

    async def clear(self) -> int:
        """Clear all cached entries. Returns how many were removed."""
        async with self._lock:
            removed = len(self._cache)
            self._cache.clear()
            return removed

    async def cleanup_expired(self) -> int:
        """
        Remove expired entries from cache.

        Returns:
            Number of entries removed
        """
        async with self._lock:
            now = self._clock()
            expired_keys = [
                key for key, (_, timestamp) in self._cache.items()
                if now - timestamp >= self.ttl
            ]
            for key in expired_keys:
                del self._cache[key]
            return len(expired_keys)


# =============================================================================
# Rate Limiter
# =============================================================================

class RateLimiter:
    """In-memory sliding-window rate limiter keyed by client."""

    def __init__(
        self,
        requests_per_minute: int = DEFAULT_RATE_LIMIT_PER_MINUTE,
        burst_limit: int = DEFAULT_BURST_LIMIT,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            requests_per_minute: Maximum requests allowed per minute
            burst_limit: Maximum requests allowed within one second
            clock: Time source, injectable for tests
        """
        self.requests_per_minute = requests_per_minute
        self.burst_limit = burst_limit
        self._clock = clock
        self._requests: dict[str, list[float]] = defaultdict(list)
        self._lock = asyncio.Lock()

    async def is_allowed(self, client_id: str) -> tuple[bool, Optional[int]]:
        """
        Check and record a request for this client.

        Returns:
            Tuple of (is_allowed, retry_after_seconds)
        """
        async with self._lock:
            now = self._clock()
            window_start = now - 60

            requests = [ts for ts in self._requests[client_id] if ts > window_start]
            self._requests[client_id] = requests

            if len(requests) >= self.requests_per_minute:
                retry_after = int(min(requests) + 60 - now) + 1
                return False, retry_after

            recent = [ts for ts in requests if ts > now - 1]
            if len(recent) >= self.burst_limit:
                return False, 1

            requests.append(now)
            return True, None

    async def cleanup(self) -> int:
        """
        Remove clients idle for more than 2 minutes.

        Returns:
            Number of clients removed
        """
        async with self._lock:
            cutoff = self._clock() - 120
            stale_clients = [
                client_id for client_id, timestamps in self._requests.items()
                if not timestamps or max(timestamps) < cutoff
            ]
            for client_id in stale_clients:
                del self._requests[client_id]
            return len(stale_clients)


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "ResponseCache",
    "RateLimiter",
]
