"""Bounded expiring cache with least-recently-used eviction."""

from __future__ import annotations

import logging
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from threading import Lock
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

V = TypeVar("V")


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    """Stored value and the time it was written."""

    value: V
    stored_at: float


class TTLCache(Generic[V]):
    """Key/value store with a per-entry TTL and a maximum occupancy.

    Iteration order of the underlying ``OrderedDict`` is recency order:
    the first key is the least recently used one. Reads of live entries
    move them to the end; writes evict from the front when full.
    """

    def __init__(
        self,
        ttl_seconds: float = 300.0,
        max_size: int = 1000,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.ttl_seconds = ttl_seconds
        self.max_size = max_size
        self._clock = clock
        self._store: OrderedDict[str, CacheEntry[V]] = OrderedDict()
        self._lock = Lock()

    def _expired(self, entry: CacheEntry[V], now: float) -> bool:
        return now - entry.stored_at > self.ttl_seconds

    def get(self, key: str) -> V | None:
        """Return the live value for ``key`` or None, dropping it if stale."""
        now = self._clock()
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            if self._expired(entry, now):
                del self._store[key]
                return None
            self._store.move_to_end(key)
            return entry.value

    def has(self, key: str) -> bool:
        """Return True if ``key`` holds a live entry. Does not touch recency."""
        now = self._clock()
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return False
            if self._expired(entry, now):
                del self._store[key]
                return False
            return True

    def set(self, key: str, value: V) -> None:
        """Insert or overwrite ``key``, evicting the LRU entry when full."""
        entry = CacheEntry(value=value, stored_at=self._clock())
        with self._lock:
            if key in self._store:
                del self._store[key]
            while len(self._store) >= self.max_size:
                evicted, _ = self._store.popitem(last=False)
                logger.debug("Evicted LRU cache entry %s...", evicted[:10])
            self._store[key] = entry

    def set_if_absent(self, key: str, value: V) -> bool:
        """Atomically store ``value`` unless a live entry already exists.

        Returns:
            True if the value was stored, False if ``key`` was already present.
        """
        now = self._clock()
        with self._lock:
            entry = self._store.get(key)
            if entry is not None and not self._expired(entry, now):
                return False
            if entry is not None:
                del self._store[key]
            while len(self._store) >= self.max_size:
                evicted, old = self._store.popitem(last=False)
                if not self._expired(old, now):
                    logger.warning(
                        "Evicted live entry %s... before expiry; max_size=%d reached",
                        evicted[:10],
                        self.max_size,
                    )
            self._store[key] = CacheEntry(value=value, stored_at=now)
            return True

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._store.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def size(self) -> int:
        with self._lock:
            return len(self._store)

    def __len__(self) -> int:
        return self.size()

    def cleanup(self) -> int:
        """Remove all expired entries.

        Intended for periodic background invocation, not per request.

        Returns:
            Number of entries removed.
        """
        now = self._clock()
        with self._lock:
            stale = [key for key, entry in self._store.items() if self._expired(entry, now)]
            for key in stale:
                del self._store[key]
        return len(stale)

    def stats(self) -> dict[str, float]:
        """Return occupancy and configuration figures."""
        return {
            "size": self.size(),
            "max_size": self.max_size,
            "ttl_seconds": self.ttl_seconds,
        }
