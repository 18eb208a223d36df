"""
Time-bounded response cache for the eCFR client.

Entries are keyed by endpoint and request parameters and expire
independently. Concurrent misses on the same key may both populate it;
the last write wins.
"""

import time
import logging
import threading
from typing import Any, Callable, Dict, Hashable, Mapping, Optional, Tuple


logger = logging.getLogger(__name__)

_MISSING = object()


class ResponseCache:
    """In-memory cache with a fixed time-to-live per entry."""

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        """
        Initialize the cache.

        Args:
            ttl_seconds: Staleness window for each entry; 0 disables caching
            clock: Monotonic time source, injectable for tests
        """
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._entries: Dict[Hashable, Tuple[float, Any]] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    @staticmethod
    def make_key(endpoint: str, params: Optional[Mapping[str, Any]] = None) -> Hashable:
        """Build a cache key from an endpoint and its parameters."""
        return endpoint, tuple(sorted((params or {}).items()))

    def get(self, key: Hashable, default: Any = None) -> Any:
        """Return the cached value for key, or default when absent or stale."""
        entry = self._entries.get(key, _MISSING)
        if entry is _MISSING:
            self.misses += 1
            return default

        stored_at, value = entry
        if self.clock() - stored_at >= self.ttl_seconds:
            with self._lock:
                # Leave an entry another thread has refreshed since the read
                if self._entries.get(key) is entry:
                    del self._entries[key]
            self.misses += 1
            logger.debug(f"Cache entry expired: {key}")
            return default

        self.hits += 1
        return value

    def set(self, key: Hashable, value: Any) -> None:
        """Store a value under key, replacing any existing entry and dropping stale ones."""
        if self.ttl_seconds <= 0:
            return

        now = self.clock()
        with self._lock:
            self._purge_expired(now)
            self._entries[key] = (now, value)

    def _purge_expired(self, now: float) -> None:
        expired = [key for key, (stored_at, _) in self._entries.items()
                   if now - stored_at >= self.ttl_seconds]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"Dropped {len(expired)} expired cache entries")

    def clear(self) -> None:
        """Drop every entry."""
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key, _MISSING) is not _MISSING
