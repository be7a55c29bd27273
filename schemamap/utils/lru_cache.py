"""Bounded LRU cache with per-entry TTL."""

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple


@dataclass
class CacheStats:
    """Point-in-time cache statistics."""

    hits: int
    misses: int
    size: int
    max_size: int
    level: str

    def to_dict(self) -> dict:
        """Convert to dictionary"""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "size": self.size,
            "max_size": self.max_size,
            "level": self.level,
        }


class LRUCache:
    """LRU cache with size limit, optional TTL and thread safety.

    One lock guards the entry map together with its recency order, so
    concurrent get/set never corrupt size or eviction bookkeeping.
    """

    def __init__(
        self,
        max_size: int = 1000,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize LRU cache.

        Args:
            max_size: Maximum number of items to cache
            ttl_seconds: Seconds an entry stays valid (None = never expires)
            clock: Monotonic time source (injectable for tests)
        """
        if max_size <= 0:
            raise ValueError(f"max_size must be positive, got {max_size}")
        self.cache: "OrderedDict[str, Tuple[Any, Optional[float]]]" = OrderedDict()
        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._hits = 0
        self._misses = 0
        self._lock = threading.Lock()  # Thread safety for concurrent access

    def get(self, key: str) -> Tuple[Any, bool]:
        """
        Get item from cache (thread-safe).

        Args:
            key: Cache key

        Returns:
            Tuple of (value, hit). Expired entries are dropped and count as misses.
        """
        with self._lock:
            entry = self.cache.get(key)
            if entry is None:
                self._misses += 1
                return None, False

            value, expires_at = entry
            if expires_at is not None and self._clock() >= expires_at:
                del self.cache[key]
                self._misses += 1
                return None, False

            # Move to end (most recently used)
            self.cache.move_to_end(key)
            self._hits += 1
            return value, True

    def set(self, key: str, value: Any) -> None:
        """
        Set item in cache (thread-safe).

        Args:
            key: Cache key
            value: Value to cache
        """
        expires_at = None
        if self.ttl_seconds is not None:
            expires_at = self._clock() + self.ttl_seconds

        with self._lock:
            if key in self.cache:
                # Update existing item and move to end
                self.cache.move_to_end(key)
            self.cache[key] = (value, expires_at)

            # Evict oldest item if cache is full
            while len(self.cache) > self.max_size:
                self.cache.popitem(last=False)

    def clear(self) -> None:
        """Clear all items and counters (thread-safe)."""
        with self._lock:
            self.cache.clear()
            self._hits = 0
            self._misses = 0

    def stats(self) -> CacheStats:
        """Return hit/miss counters and current size."""
        with self._lock:
            return CacheStats(
                hits=self._hits,
                misses=self._misses,
                size=len(self.cache),
                max_size=self.max_size,
                level="L1",
            )

    def __len__(self) -> int:
        """Return number of items in cache (thread-safe)."""
        with self._lock:
            return len(self.cache)

    def __contains__(self, key: str) -> bool:
        """Check if a live key is in cache (thread-safe)."""
        with self._lock:
            entry = self.cache.get(key)
            if entry is None:
                return False
            expires_at = entry[1]
            return expires_at is None or self._clock() < expires_at
