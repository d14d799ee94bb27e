"""Replay protection for signed challenges.

Records which ``(address, nonce)`` pairs have been consumed. Backed by Redis
when ``REDIS_URL`` is configured and by an in-process TTLCache otherwise.
While Redis is configured it is the only source of truth: a Redis error
rejects the request instead of consulting the in-process cache.
"""

from __future__ import annotations

import logging
from typing import Any, Final

import redis.asyncio as redis

from ethos_gate.core.errors import InternalError
from ethos_gate.core.security import mask_address
from ethos_gate.core.settings import settings
from ethos_gate.services.cache import TTLCache

logger = logging.getLogger(__name__)

_KEY_PREFIX: Final[str] = "nonce"
_MEMORY_MAX_ENTRIES: Final[int] = 100_000


def nonce_key(address: str, nonce: str) -> str:
    """Return the ledger key for a nonce: lower-cased address, a colon, the nonce."""
    return f"{address.lower()}:{nonce}"


class ReplayProtectionService:
    """Anti-replay ledger for caller-chosen nonces."""

    def __init__(
        self,
        redis_client: Any | None = None,
        *,
        ttl_seconds: int | None = None,
        memory: TTLCache[bool] | None = None,
    ) -> None:
        self.ttl_seconds = int(ttl_seconds if ttl_seconds is not None else settings.nonce_ttl_seconds)
        self._redis = redis_client
        self._memory: TTLCache[bool] = memory if memory is not None else TTLCache(
            ttl_seconds=self.ttl_seconds,
            max_size=_MEMORY_MAX_ENTRIES,
        )

    @property
    def durable(self) -> bool:
        """True when a Redis backend is configured."""
        return self._redis is not None

    @property
    def memory(self) -> TTLCache[bool]:
        return self._memory

    def _unavailable(self, exc: Exception) -> InternalError:
        logger.error("Redis nonce store unavailable: %s", exc)
        return InternalError("Nonce store unavailable")

    async def is_used(self, address: str, nonce: str) -> bool:
        """Return True if the nonce has already been consumed for the address.

        Raises:
            InternalError: If the Redis backend cannot be reached.
        """
        key = nonce_key(address, nonce)
        if self._redis is not None:
            try:
                return bool(await self._redis.exists(f"{_KEY_PREFIX}:{key}"))
            except redis.RedisError as exc:
                raise self._unavailable(exc) from exc
        return self._memory.has(key)

    async def mark_used(self, address: str, nonce: str) -> bool:
        """Consume a nonce.

        The check and the write happen as one atomic step (``SET NX`` on Redis,
        a locked check-and-set in process), so two concurrent requests carrying
        the same nonce can never both succeed. A Redis error is never answered
        from the in-process ledger; the client is kept and the next call tries
        Redis again.

        Returns:
            True if this call consumed the nonce, False if it was already used.

        Raises:
            InternalError: If the Redis backend cannot be reached.
        """
        key = nonce_key(address, nonce)
        if self._redis is not None:
            try:
                consumed = bool(
                    await self._redis.set(f"{_KEY_PREFIX}:{key}", "1", ex=self.ttl_seconds, nx=True)
                )
            except redis.RedisError as exc:
                raise self._unavailable(exc) from exc
        else:
            consumed = self._memory.set_if_absent(key, True)

        if not consumed:
            logger.info("Rejected replayed nonce for %s", mask_address(address))
        return consumed

    def cleanup(self) -> int:
        """Purge expired in-process records; Redis expires its own keys."""
        return self._memory.cleanup()

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None


def _connect_redis(url: str | None) -> Any | None:
    if not url:
        return None
    try:
        return redis.from_url(url)
    except (ValueError, redis.RedisError) as exc:
        logger.warning("Invalid REDIS_URL, using in-process nonce ledger: %s", exc)
        return None


class _ReplayServiceSingleton:
    """Singleton wrapper for ReplayProtectionService."""

    _instance: ReplayProtectionService | None = None

    @classmethod
    def get_instance(cls) -> ReplayProtectionService:
        if cls._instance is None:
            cls._instance = ReplayProtectionService(_connect_redis(settings.redis_url))
        return cls._instance


def get_replay_service() -> ReplayProtectionService:
    """Return the process-wide replay protection service."""
    return _ReplayServiceSingleton.get_instance()
