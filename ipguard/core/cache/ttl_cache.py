"""Thread-safe TTL cache with double-checked fill.

The cache stores one (value, capture time) pair per key. Reads never
evict: a stale entry behaves as a miss and is left for the janitor's
``sweep``. Fills are serialized per lock stripe so concurrent misses on
the same key trigger a single recomputation.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

DEFAULT_STRIPES = 64


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    """A cached value and the clock reading taken when it was computed."""

    value: V
    captured_at: float

    def age(self, now: float) -> float:
        return now - self.captured_at


class TtlCache(Generic[K, V]):
    """Generic concurrent mapping with per-entry expiry.

    The TTL may be a number of seconds or a callable returning it; a
    callable is re-read on every operation so reloaded settings apply
    without rebuilding the cache.
    """

    def __init__(
        self,
        ttl_seconds: float | Callable[[], float],
        clock: Callable[[], float] = time.monotonic,
        stripes: int = DEFAULT_STRIPES,
        name: str = "cache",
    ) -> None:
        if stripes < 1:
            raise ValueError("stripes must be >= 1")
        self._ttl = ttl_seconds
        self._clock = clock
        self._name = name
        self._entries: dict[K, CacheEntry[V]] = {}
        self._lock = threading.Lock()
        # Bumped by clear(); fills started before a clear are not stored
        self._generation = 0
        self._fill_locks = [threading.Lock() for _ in range(stripes)]

    @property
    def name(self) -> str:
        return self._name

    @property
    def ttl_seconds(self) -> float:
        """Current TTL in seconds."""
        ttl = self._ttl() if callable(self._ttl) else self._ttl
        return float(ttl)

    def now(self) -> float:
        return self._clock()

    def _is_fresh(self, entry: CacheEntry[V], now: float, ttl: float) -> bool:
        return now - entry.captured_at <= ttl

    def get_entry(self, key: K) -> CacheEntry[V] | None:
        """Return the entry for ``key`` if it is still fresh."""
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            return None
        if not self._is_fresh(entry, self._clock(), self.ttl_seconds):
            return None
        return entry

    def get(self, key: K) -> V | None:
        """Return the cached value if fresh, else None (stale entries are kept)."""
        entry = self.get_entry(key)
        return entry.value if entry is not None else None

    def put(self, key: K, value: V) -> None:
        """Store ``value`` stamped with the current clock reading."""
        entry = CacheEntry(value=value, captured_at=self._clock())
        with self._lock:
            self._entries[key] = entry

    def invalidate(self, key: K) -> bool:
        """Remove one key. Returns True if an entry was present."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> int:
        """Remove every entry. Returns the number removed."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            self._generation += 1
        return count

    def sweep(self, now: float | None = None) -> int:
        """Remove entries older than the TTL. Returns the number removed."""
        if now is None:
            now = self._clock()
        ttl = self.ttl_seconds
        with self._lock:
            expired = [
                key for key, entry in self._entries.items()
                if not self._is_fresh(entry, now, ttl)
            ]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug(f"Cache swept (cache={self._name}, removed={len(expired)})")
        return len(expired)

    def get_or_compute(self, key: K, compute: Callable[[], V]) -> V:
        """Return the fresh cached value or compute, store and return it.

        Double-checked: after taking the key's fill lock the cache is read
        again, since another thread may have filled it meanwhile. If
        ``compute`` raises, nothing is stored and the exception propagates.
        A value computed across a ``clear()`` is returned but not stored.
        """
        entry = self.get_entry(key)
        if entry is not None:
            return entry.value

        with self._fill_lock_for(key):
            entry = self.get_entry(key)
            if entry is not None:
                return entry.value

            with self._lock:
                generation = self._generation
            value = compute()
            entry = CacheEntry(value=value, captured_at=self._clock())
            with self._lock:
                if self._generation == generation:
                    self._entries[key] = entry
            return value

    def _fill_lock_for(self, key: K) -> threading.Lock:
        return self._fill_locks[hash(key) % len(self._fill_locks)]

    def keys(self) -> list[K]:
        """Snapshot of the stored keys, fresh or not."""
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return self.get_entry(key) is not None  # type: ignore[arg-type]
