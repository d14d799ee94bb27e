# tests/test_rate_limit.py
"""Tests for the fixed-window rate limiter."""

import pytest

from ethos_gate.core.errors import RateLimitError
from ethos_gate.services.rate_limit import RateLimiter, address_key, combo_key, ip_key
from tests.conftest import FakeClock


def _limiter(clock: FakeClock, **overrides: float) -> RateLimiter:
    options: dict = {
        "window_seconds": 60,
        "max_entries": 1000,
        "sweep_interval_seconds": 300,
        "retry_after_seconds": 60,
    }
    options.update(overrides)
    return RateLimiter(clock=clock, **options)


def test_key_formats() -> None:
    address = "0x" + "Ab" * 20
    assert ip_key("10.0.0.1") == "ip:10.0.0.1"
    assert address_key(address) == "addr:0x" + "ab" * 20
    assert combo_key("10.0.0.1", address) == "combo:10.0.0.1:0x" + "ab" * 20


def test_ceiling_calls_pass_then_reject(clock: FakeClock) -> None:
    limiter = _limiter(clock)
    remaining = [limiter.check("ip:a", 5).remaining for _ in range(5)]
    assert remaining == [4, 3, 2, 1, 0]

    decision = limiter.check("ip:a", 5)
    assert decision.allowed is False
    assert decision.retry_after == 60


def test_rejections_do_not_extend_the_count(clock: FakeClock) -> None:
    limiter = _limiter(clock)
    for _ in range(3):
        limiter.check("k", 3)
    for _ in range(10):
        assert limiter.check("k", 3).allowed is False

    # A caller raising its ceiling sees the count frozen at 3, not 13.
    assert limiter.check("k", 4).allowed is True


def test_window_reset_after_expiry(clock: FakeClock) -> None:
    limiter = _limiter(clock)
    for _ in range(2):
        limiter.check("k", 2)
    assert limiter.check("k", 2).allowed is False

    clock.advance(60.001)
    decision = limiter.check("k", 2)
    assert decision.allowed is True
    assert decision.remaining == 1


def test_keys_are_independent(clock: FakeClock) -> None:
    limiter = _limiter(clock)
    assert limiter.check("ip:a", 1).allowed is True
    assert limiter.check("ip:a", 1).allowed is False
    assert limiter.check("ip:b", 1).allowed is True


def test_capacity_evicts_oldest_tenth(clock: FakeClock) -> None:
    limiter = _limiter(clock, max_entries=20)
    for i in range(20):
        limiter.check(f"k{i}", 5)

    limiter.check("new", 5)

    assert limiter.size() == 19
    # k0 and k1 were evicted, so they start fresh windows.
    assert limiter.check("k0", 5).remaining == 4
    assert limiter.check("k2", 5).remaining == 3


def test_sweep_runs_at_most_once_per_interval(clock: FakeClock) -> None:
    limiter = _limiter(clock, window_seconds=10, sweep_interval_seconds=300)
    for i in range(5):
        limiter.check(f"k{i}", 5)

    clock.advance(20)
    limiter.check("other", 5)
    assert limiter.size() == 6  # interval not reached, nothing swept

    clock.advance(290)
    limiter.check("trigger", 5)
    assert limiter.size() == 1


def test_forced_sweep(clock: FakeClock) -> None:
    limiter = _limiter(clock, window_seconds=10)
    limiter.check("a", 5)
    clock.advance(5)
    limiter.check("b", 5)
    clock.advance(6)

    assert limiter.sweep() == 1
    assert limiter.size() == 1


def test_enforce_raises_with_retry_hint(clock: FakeClock) -> None:
    limiter = _limiter(clock, retry_after_seconds=60)
    limiter.enforce("k", 1, "too many")
    with pytest.raises(RateLimitError) as excinfo:
        limiter.enforce("k", 1, "too many")
    assert excinfo.value.retry_after == 60
    assert excinfo.value.status_code == 429


def test_invalid_ceiling(clock: FakeClock) -> None:
    with pytest.raises(ValueError):
        _limiter(clock).check("k", 0)
