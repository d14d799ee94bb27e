"""Background purging of expired cache, ledger and rate-limit entries.

The caches drop stale entries lazily on read; this worker bounds how long
unread stale entries can occupy memory.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from ethos_gate.core.settings import settings
from ethos_gate.services.rate_limit import RateLimiter
from ethos_gate.services.replay import ReplayProtectionService
from ethos_gate.services.reputation import ReputationClient

# Configure logger for this module
logger = logging.getLogger(__name__)


class MaintenanceWorker:
    """Periodically purges expired entries from the process-wide stores."""

    def __init__(
        self,
        reputation: ReputationClient,
        replay: ReplayProtectionService,
        rate_limiter: RateLimiter,
        *,
        interval_seconds: float | None = None,
    ) -> None:
        self.reputation = reputation
        self.replay = replay
        self.rate_limiter = rate_limiter
        self.interval_seconds = float(
            interval_seconds
            if interval_seconds is not None
            else settings.maintenance_interval_seconds
        )
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    async def start(self) -> None:
        """Start the background maintenance loop."""

        if self._task is None or self._task.done():
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the background maintenance loop."""

        if self._task is None:
            return

        self._stopping.set()
        await self._task
        self._task = None

    def run_once(self) -> dict[str, int]:
        """Purge expired entries from every store and report what was removed."""
        removed = {
            "reputation": self.reputation.cache.cleanup(),
            "nonces": self.replay.cleanup(),
            "rate_limits": self.rate_limiter.sweep(),
        }
        logger.info(
            "Cache cleanup: reputation=%d entries, nonces=%d entries, rate limits=%d entries "
            "(removed %s)",
            self.reputation.cache.size(),
            self.replay.memory.size(),
            self.rate_limiter.size(),
            removed,
        )
        return removed

    async def _run(self) -> None:
        while not self._stopping.is_set():
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(self._stopping.wait(), timeout=self.interval_seconds)
            if self._stopping.is_set():
                return
            try:
                self.run_once()
            except Exception:
                logger.exception("Cache maintenance pass failed")
