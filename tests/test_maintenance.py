# tests/test_maintenance.py
"""Tests for the background maintenance worker."""

import asyncio

import pytest

from ethos_gate.services.cache import TTLCache
from ethos_gate.services.maintenance import MaintenanceWorker
from ethos_gate.services.rate_limit import RateLimiter
from ethos_gate.services.replay import ReplayProtectionService
from ethos_gate.services.reputation import ReputationClient, ReputationSnapshot
from tests.conftest import UPSTREAM_URL, FakeClock


@pytest.fixture()
def worker(clock: FakeClock) -> MaintenanceWorker:
    reputation = ReputationClient(
        [UPSTREAM_URL],
        cache=TTLCache(ttl_seconds=300, max_size=10, clock=clock),
    )
    replay = ReplayProtectionService(
        None,
        ttl_seconds=300,
        memory=TTLCache(ttl_seconds=300, max_size=10, clock=clock),
    )
    limiter = RateLimiter(
        window_seconds=60,
        max_entries=100,
        sweep_interval_seconds=300,
        retry_after_seconds=60,
        clock=clock,
    )
    return MaintenanceWorker(reputation, replay, limiter, interval_seconds=0.01)


def test_run_once_purges_every_store(worker: MaintenanceWorker, clock: FakeClock) -> None:
    address = "0x" + "ee" * 20
    worker.reputation.cache.set(address, ReputationSnapshot(address=address, score=5))
    worker.replay.memory.set(f"{address}:n", True)
    worker.rate_limiter.check("ip:1.2.3.4", 10)

    clock.advance(301)

    assert worker.run_once() == {"reputation": 1, "nonces": 1, "rate_limits": 1}
    assert worker.reputation.cache.size() == 0


@pytest.mark.asyncio
async def test_start_and_stop(worker: MaintenanceWorker, mocker) -> None:
    run_once = mocker.patch.object(worker, "run_once", return_value={})

    await worker.start()
    await asyncio.sleep(0.1)
    await worker.stop()

    assert run_once.call_count >= 1
    assert worker._task is None


@pytest.mark.asyncio
async def test_failed_pass_does_not_stop_the_loop(worker: MaintenanceWorker, mocker) -> None:
    run_once = mocker.patch.object(worker, "run_once", side_effect=RuntimeError("boom"))

    await worker.start()
    await asyncio.sleep(0.1)
    await worker.stop()

    assert run_once.call_count >= 2
    assert worker._task is None


def test_interval_is_taken_as_given(worker: MaintenanceWorker) -> None:
    assert worker.interval_seconds == 0.01
