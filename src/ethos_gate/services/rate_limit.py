"""Fixed-window rate limiting keyed by caller IP, address, or both."""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from threading import Lock

from ethos_gate.core.errors import RateLimitError
from ethos_gate.core.settings import settings

logger = logging.getLogger(__name__)

EVICTION_FRACTION = 0.1


def ip_key(ip: str) -> str:
    return f"ip:{ip}"


def address_key(address: str) -> str:
    return f"addr:{address.lower()}"


def combo_key(ip: str, address: str) -> str:
    return f"combo:{ip}:{address.lower()}"


@dataclass
class RateWindow:
    """Request count for one key inside its current window."""

    count: int
    reset_at: float


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a rate-limit check."""

    allowed: bool
    remaining: int
    retry_after: int


class RateLimiter:
    """In-process fixed-window limiter.

    Each key gets one window that opens on its first request. Once a key's
    count reaches the ceiling, further requests in the window are rejected
    without touching the counter. The store is bounded: inserting a new key
    at capacity drops the oldest 10% of keys in insertion order, and expired
    windows are swept at most once per ``sweep_interval_seconds``.
    """

    def __init__(
        self,
        *,
        window_seconds: float | None = None,
        max_entries: int | None = None,
        sweep_interval_seconds: float | None = None,
        retry_after_seconds: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.window_seconds = float(
            window_seconds if window_seconds is not None else settings.rate_limit_window_seconds
        )
        self.max_entries = int(
            max_entries if max_entries is not None else settings.rate_limit_max_entries
        )
        self.sweep_interval_seconds = float(
            sweep_interval_seconds
            if sweep_interval_seconds is not None
            else settings.rate_limit_sweep_seconds
        )
        self.retry_after_seconds = int(
            retry_after_seconds
            if retry_after_seconds is not None
            else settings.rate_limit_retry_after_seconds
        )
        self._clock = clock
        self._store: dict[str, RateWindow] = {}
        self._lock = Lock()
        self._last_sweep = clock()

    def check(self, key: str, ceiling: int) -> RateLimitDecision:
        """Count one request against ``key`` and report whether it may proceed."""
        if ceiling < 1:
            raise ValueError("ceiling must be at least 1")

        now = self._clock()
        with self._lock:
            if now - self._last_sweep >= self.sweep_interval_seconds:
                self._sweep_locked(now)

            entry = self._store.get(key)
            if entry is None or now > entry.reset_at:
                if entry is None and len(self._store) >= self.max_entries:
                    self._evict_oldest_locked()
                self._store.pop(key, None)
                self._store[key] = RateWindow(count=1, reset_at=now + self.window_seconds)
                return RateLimitDecision(allowed=True, remaining=ceiling - 1, retry_after=0)

            if entry.count >= ceiling:
                return RateLimitDecision(
                    allowed=False,
                    remaining=0,
                    retry_after=self.retry_after_seconds,
                )

            entry.count += 1
            return RateLimitDecision(
                allowed=True,
                remaining=ceiling - entry.count,
                retry_after=0,
            )

    def enforce(self, key: str, ceiling: int, message: str) -> RateLimitDecision:
        """Like ``check`` but raise RateLimitError when the request is rejected."""
        decision = self.check(key, ceiling)
        if not decision.allowed:
            logger.info("Rate limit exceeded for %s key", key.split(":", 1)[0])
            raise RateLimitError(message, retry_after=decision.retry_after)
        return decision

    def _evict_oldest_locked(self) -> None:
        count = max(1, math.ceil(len(self._store) * EVICTION_FRACTION))
        for key in list(self._store)[:count]:
            del self._store[key]
        logger.debug("Evicted %d rate-limit entries at capacity", count)

    def _sweep_locked(self, now: float) -> int:
        expired = [key for key, entry in self._store.items() if now > entry.reset_at]
        for key in expired:
            del self._store[key]
        self._last_sweep = now
        return len(expired)

    def sweep(self) -> int:
        """Purge every expired window now.

        Returns:
            Number of entries removed.
        """
        with self._lock:
            return self._sweep_locked(self._clock())

    def size(self) -> int:
        with self._lock:
            return len(self._store)

    def reset(self) -> None:
        with self._lock:
            self._store.clear()
            self._last_sweep = self._clock()
