"""Reputation lookups against the upstream Ethos API.

This module provides the ReputationClient class that fetches score and
profile counters for an address. It includes:

- An ordered list of upstream sources tried in turn, each with its own timeout
- A circuit breaker per source so a dead source is skipped quickly
- A bounded expiring cache in front of every lookup
- Tier classification of scores

Upstream failures never reach the caller: when every source fails the
client logs the failure and returns a zero-value snapshot.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import httpx

from ethos_gate.core.security import mask_address
from ethos_gate.core.settings import settings
from ethos_gate.services.cache import TTLCache

# Configure logger for this module
logger = logging.getLogger(__name__)

# HTTP status codes
HTTP_OK = 200
HTTP_NOT_FOUND = 404


class Tier(str, Enum):
    """Named reputation buckets, declared from lowest to highest."""

    NEW = "NEW"
    EMERGING = "EMERGING"
    TRUSTED = "TRUSTED"
    ELITE = "ELITE"

    @property
    def rank(self) -> int:
        return _TIER_ORDER.index(self)

    @property
    def min_score(self) -> int:
        return TIER_THRESHOLDS[self]


_TIER_ORDER: tuple[Tier, ...] = (Tier.NEW, Tier.EMERGING, Tier.TRUSTED, Tier.ELITE)

# Lower bound (inclusive) of each tier; upper bound is the next tier's lower bound.
TIER_THRESHOLDS: Mapping[Tier, int] = {
    Tier.NEW: 0,
    Tier.EMERGING: 700,
    Tier.TRUSTED: 1200,
    Tier.ELITE: 1600,
}


def get_tier(score: int) -> Tier:
    """Return the tier for ``score``."""
    for tier in reversed(_TIER_ORDER):
        if score >= TIER_THRESHOLDS[tier]:
            return tier
    return Tier.NEW


class SnapshotStatus(str, Enum):
    """Provenance of a reputation snapshot."""

    OK = "ok"
    UNREGISTERED = "unregistered"  # upstream answered 404 for the profile
    DEGRADED = "degraded"  # every source failed; zero values substituted


@dataclass(frozen=True)
class ReputationSnapshot:
    """Score and profile counters for one address."""

    address: str
    score: int = 0
    vouch_count: int = 0
    review_count: int = 0
    positive_review_count: int = 0
    negative_review_count: int = 0
    status: SnapshotStatus = SnapshotStatus.OK

    @property
    def tier(self) -> Tier:
        return get_tier(self.score)

    @classmethod
    def empty(cls, address: str, status: SnapshotStatus) -> ReputationSnapshot:
        return cls(address=address, status=status)


class UpstreamError(RuntimeError):
    """Raised internally when a reputation source cannot answer.

    Never propagated past ReputationClient.fetch.
    """


class CircuitState(Enum):
    """Circuit breaker states for an upstream source."""

    CLOSED = "closed"      # Normal operation - requests allowed
    OPEN = "open"          # Source is skipped
    HALF_OPEN = "half_open"  # Probing whether the source recovered


@dataclass
class CircuitBreaker:
    """Circuit breaker guarding one upstream source."""

    failure_threshold: int = 5
    recovery_timeout: float = 60.0
    success_threshold: int = 1

    _state: CircuitState = CircuitState.CLOSED
    _failure_count: int = 0
    _success_count: int = 0
    _last_failure_time: float = 0.0
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)

    def is_open(self) -> bool:
        """Check if circuit is open."""
        if self._state == CircuitState.OPEN:
            if self.clock() - self._last_failure_time > self.recovery_timeout:
                self._state = CircuitState.HALF_OPEN
                self._success_count = 0
            return self._state == CircuitState.OPEN
        return False

    def record_success(self) -> None:
        if self._state == CircuitState.HALF_OPEN:
            self._success_count += 1
            if self._success_count >= self.success_threshold:
                self._state = CircuitState.CLOSED
                self._failure_count = 0
        elif self._state == CircuitState.CLOSED:
            self._failure_count = 0

    def record_failure(self) -> None:
        self._failure_count += 1
        self._last_failure_time = self.clock()

        if self._state == CircuitState.HALF_OPEN or self._failure_count >= self.failure_threshold:
            self._state = CircuitState.OPEN

    def get_state(self) -> CircuitState:
        return self._state


@dataclass
class ReputationSource:
    """One upstream base URL and its breaker."""

    base_url: str
    breaker: CircuitBreaker

    @classmethod
    def from_url(cls, base_url: str) -> ReputationSource:
        return cls(base_url=base_url.rstrip("/"), breaker=CircuitBreaker())


def _as_count(payload: Mapping[str, Any], key: str) -> int:
    try:
        return max(0, int(payload.get(key) or 0))
    except (TypeError, ValueError):
        return 0


class ReputationClient:
    """HTTP client wrapper for reputation lookups."""

    def __init__(
        self,
        base_urls: Sequence[str] | None = None,
        *,
        client_id: str | None = None,
        timeout_seconds: float | None = None,
        cache: TTLCache[ReputationSnapshot] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        urls = list(base_urls if base_urls is not None else settings.ethos_api_urls)
        if not urls:
            raise ValueError("At least one reputation source URL is required")
        self.sources = [ReputationSource.from_url(url) for url in urls]
        self.client_id = client_id or settings.ethos_client_id
        self.timeout_seconds = float(
            timeout_seconds if timeout_seconds is not None else settings.upstream_timeout_seconds
        )
        self.cache: TTLCache[ReputationSnapshot] = (
            cache
            if cache is not None
            else TTLCache(
                ttl_seconds=settings.cache_ttl_seconds,
                max_size=settings.cache_max_size,
            )
        )
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    timeout=httpx.Timeout(self.timeout_seconds),
                    headers={"X-Ethos-Client": self.client_id},
                    transport=self._transport,
                )
        return self._client

    async def fetch(self, address: str) -> ReputationSnapshot:
        """Return the reputation snapshot for a normalized address.

        Serves from the cache when possible. On a miss, sources are tried in
        order; the first one that answers wins and its snapshot is cached.
        If every source fails, a zero-value DEGRADED snapshot is returned and
        nothing is cached.
        """
        masked = mask_address(address)
        cached = self.cache.get(address)
        if cached is not None:
            logger.debug("Cache hit for %s: score=%d", masked, cached.score)
            return cached

        for source in self.sources:
            if source.breaker.is_open():
                logger.debug("Skipping reputation source %s: circuit open", source.base_url)
                continue
            try:
                snapshot = await asyncio.wait_for(
                    self._fetch_from(source, address),
                    timeout=self.timeout_seconds,
                )
            except (UpstreamError, httpx.HTTPError, asyncio.TimeoutError, ValueError) as exc:
                source.breaker.record_failure()
                logger.warning(
                    "Reputation source %s failed for %s: %s",
                    source.base_url,
                    masked,
                    str(exc) or type(exc).__name__,
                )
                continue

            source.breaker.record_success()
            self.cache.set(address, snapshot)
            logger.info(
                "Fetched reputation for %s: score=%d status=%s",
                masked,
                snapshot.score,
                snapshot.status.value,
            )
            return snapshot

        logger.error("All reputation sources failed for %s; serving zero snapshot", masked)
        return ReputationSnapshot.empty(address, SnapshotStatus.DEGRADED)

    async def _fetch_from(self, source: ReputationSource, address: str) -> ReputationSnapshot:
        client = await self._ensure_client()
        results = await asyncio.gather(
            client.get(f"{source.base_url}/score/address", params={"address": address}),
            client.get(f"{source.base_url}/user/by/address/{address}"),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        score_response, profile_response = results

        score = 0
        if score_response.status_code == HTTP_OK:
            payload = score_response.json()
            score = _as_count(payload, "score") if isinstance(payload, Mapping) else 0
        elif score_response.status_code != HTTP_NOT_FOUND:
            raise UpstreamError(f"score lookup returned {score_response.status_code}")

        if profile_response.status_code == HTTP_NOT_FOUND:
            return ReputationSnapshot(
                address=address,
                score=score,
                status=SnapshotStatus.UNREGISTERED,
            )
        if profile_response.status_code != HTTP_OK:
            raise UpstreamError(f"profile lookup returned {profile_response.status_code}")

        profile = profile_response.json()
        if not isinstance(profile, Mapping):
            raise UpstreamError("profile payload is not an object")

        return ReputationSnapshot(
            address=address,
            score=score,
            vouch_count=_as_count(profile, "vouchCount"),
            review_count=_as_count(profile, "reviewCount"),
            positive_review_count=_as_count(profile, "positiveReviewCount"),
            negative_review_count=_as_count(profile, "negativeReviewCount"),
        )

    async def close(self) -> None:
        """Clean up underlying HTTP client resources."""

        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None


class _ReputationClientSingleton:
    """Singleton wrapper for ReputationClient."""

    _instance: ReputationClient | None = None

    @classmethod
    def get_instance(cls) -> ReputationClient:
        if cls._instance is None:
            cls._instance = ReputationClient()
        return cls._instance


def get_reputation_client() -> ReputationClient:
    """Return a singleton reputation client instance."""
    return _ReputationClientSingleton.get_instance()
