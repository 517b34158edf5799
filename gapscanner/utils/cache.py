"""
In-process caching utilities for the gap scanner.
"""

import time
from collections import OrderedDict
from typing import Any, Callable, Optional, Tuple


class MemoryCache:
    """
    Simple in-memory cache with TTL support.

    With ``max_entries`` set, the oldest entry is evicted when a new key is
    added past the limit (max_entries=1 gives a single-slot cache).
    """

    def __init__(
        self,
        default_ttl: int = 300,
        max_entries: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize cache.

        Args:
            default_ttl: Default time-to-live in seconds (default 5 minutes)
            max_entries: Optional bound on stored keys
            clock: Time source, seconds
        """
        self._cache: "OrderedDict[str, Tuple[Any, float]]" = OrderedDict()  # key -> (value, expiry_time)
        self.default_ttl = default_ttl
        self.max_entries = max_entries
        self._clock = clock

    def get(self, key: str) -> Optional[Any]:
        """
        Get value from cache.

        Returns:
            Cached value or None if not found/expired
        """
        if key not in self._cache:
            return None

        value, expiry = self._cache[key]

        if self._clock() >= expiry:
            del self._cache[key]
            return None

        return value

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """
        Set value in cache.

        Args:
            key: Cache key
            value: Value to cache
            ttl: Time-to-live in seconds (uses default if None)
        """
        if ttl is None:
            ttl = self.default_ttl

        self._cache.pop(key, None)
        self._cache[key] = (value, self._clock() + ttl)

        if self.max_entries is not None:
            while len(self._cache) > self.max_entries:
                self._cache.popitem(last=False)

    def cleanup(self) -> int:
        """
        Remove expired entries.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        expired = [k for k, (_, expiry) in self._cache.items() if now >= expiry]

        for key in expired:
            del self._cache[key]

        return len(expired)
