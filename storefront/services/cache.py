"""
ResponseCache - Bounded in-memory cache for successful GET responses.

Features:
- TTL (Time To Live) per entry, checked lazily on lookup
- Insertion-order (FIFO) eviction once max_size is reached
- Injectable clock so expiry can be driven from tests

Operations are synchronous: the event loop is single threaded, so a lookup
followed by an insert can never be interleaved with another task.
"""

import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, Generic, TypeVar

from loguru import logger

T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    """A single cache entry with metadata."""

    data: T
    stored_at: float
    ttl: float

    def is_expired(self, now: float) -> bool:
        """Check if entry has reached the end of its TTL."""
        return now - self.stored_at >= self.ttl

    def age(self, now: float) -> float:
        return now - self.stored_at


@dataclass
class CacheResult(Generic[T]):
    """Result from cache lookup."""

    data: T
    age: float


class ResponseCache:
    """
    Process-wide store of GET responses keyed by request identity.

    Usage:
        cache = ResponseCache(max_size=100)

        cached = cache.get(key)
        if cached:
            return cached.data

        data = await fetch_data()
        cache.put(key, data, ttl=timedelta(minutes=5))
    """

    def __init__(
        self,
        max_size: int = 100,
        default_ttl: timedelta = timedelta(seconds=5),
        clock: Callable[[], float] = time.monotonic,
        debug: bool = False,
    ):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        # dicts keep insertion order, which is the eviction order
        self._memory: dict[str, CacheEntry[Any]] = {}
        self._max_size = max_size
        self._default_ttl = default_ttl
        self._clock = clock
        self._debug = debug
        self._stats = CacheStats()

    def get(self, key: str) -> CacheResult[Any] | None:
        """
        Get value from cache.

        Returns CacheResult if found and fresh, None otherwise. Expired
        entries are removed.
        """
        entry = self._memory.get(key)
        if entry is None:
            self._stats.misses += 1
            self._log(f"MISS: {key[:50]}...")
            return None

        now = self._clock()
        if entry.is_expired(now):
            del self._memory[key]
            self._stats.misses += 1
            self._stats.expirations += 1
            self._log(f"EXPIRED: {key[:50]}...")
            return None

        self._stats.hits += 1
        self._log(f"HIT: {key[:50]}...")
        return CacheResult(data=entry.data, age=entry.age(now))

    def put(self, key: str, data: Any, ttl: timedelta | None = None) -> None:
        """
        Store a value.

        Re-storing an existing key replaces it and moves it to the back of
        the eviction order. Storing a new key at capacity evicts the
        oldest-inserted entry first.
        """
        ttl = ttl if ttl is not None else self._default_ttl
        entry = CacheEntry(
            data=data,
            stored_at=self._clock(),
            ttl=ttl.total_seconds(),
        )

        if key in self._memory:
            del self._memory[key]
        elif len(self._memory) >= self._max_size:
            self._evict_oldest()

        self._memory[key] = entry
        self._log(f"SET: {key[:50]}... (TTL: {ttl.total_seconds()}s)")

    def delete(self, key: str) -> bool:
        """Delete a specific key from cache."""
        if key in self._memory:
            del self._memory[key]
            self._log(f"DELETE: {key[:50]}...")
            return True
        return False

    def clear(self) -> int:
        """Clear all cache entries. Returns count of removed entries."""
        count = len(self._memory)
        self._memory.clear()
        self._log(f"CLEAR: {count} entries removed")
        return count

    def cleanup_expired(self) -> int:
        """Remove all expired entries. Returns count of removed entries."""
        now = self._clock()
        expired_keys = [k for k, v in self._memory.items() if v.is_expired(now)]
        for key in expired_keys:
            del self._memory[key]

        if expired_keys:
            self._stats.expirations += len(expired_keys)
            self._log(f"CLEANUP: {len(expired_keys)} expired entries removed")

        return len(expired_keys)

    def keys(self) -> list[str]:
        """Keys in eviction order, oldest first."""
        return list(self._memory)

    def __contains__(self, key: str) -> bool:
        return key in self._memory

    def __len__(self) -> int:
        return len(self._memory)

    def _evict_oldest(self) -> None:
        """Evict the oldest-inserted entry (FIFO)."""
        if not self._memory:
            return

        oldest_key = next(iter(self._memory))
        del self._memory[oldest_key]
        self._stats.evictions += 1
        self._log(f"EVICT: {oldest_key[:50]}...")

    def get_stats(self) -> "CacheStats":
        """Get cache statistics."""
        self._stats.size = len(self._memory)
        self._stats.max_size = self._max_size
        return self._stats

    def _log(self, message: str) -> None:
        """Log debug message if debug mode is enabled."""
        if self._debug:
            logger.debug(f"[ResponseCache] {message}")


@dataclass
class CacheStats:
    """Cache statistics."""

    hits: int = 0
    misses: int = 0
    expirations: int = 0
    evictions: int = 0
    size: int = 0
    max_size: int = 0

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate."""
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "expirations": self.expirations,
            "evictions": self.evictions,
            "size": self.size,
            "max_size": self.max_size,
            "hit_rate": f"{self.hit_rate:.2%}",
        }
