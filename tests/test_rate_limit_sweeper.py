"""Tests for the background rate-limit sweeper."""

import asyncio
import logging
from unittest.mock import Mock

import pytest

from app.adapters.rate_limit.in_memory import InMemorySlidingWindowRateLimiter
from app.services.rate_limit_sweeper import RateLimitSweeper


def test_run_once_removes_idle_clients(clock) -> None:
    limiter = InMemorySlidingWindowRateLimiter(clock=clock)
    limiter.admit("idle", 5, 60_000)
    clock.advance(61 * 60 * 1000)
    limiter.admit("fresh", 5, 60_000)

    sweeper = RateLimitSweeper(limiter, max_age_ms=60 * 60 * 1000)

    assert sweeper.run_once() == 1
    assert sweeper.run_once() == 0
    assert len(limiter) == 1


def test_run_once_swallows_and_logs_failures(caplog: pytest.LogCaptureFixture) -> None:
    limiter = Mock()
    limiter.sweep.side_effect = RuntimeError("corrupted store")
    sweeper = RateLimitSweeper(limiter)

    with caplog.at_level(logging.ERROR, logger="app.services.rate_limit_sweeper"):
        assert sweeper.run_once() == 0

    assert any(r.getMessage() == "rate_limit.sweep_failed" for r in caplog.records)


def test_invalid_interval() -> None:
    with pytest.raises(ValueError):
        RateLimitSweeper(Mock(), interval_seconds=0)


@pytest.mark.asyncio
async def test_loop_sweeps_periodically_and_survives_errors() -> None:
    limiter = Mock()
    limiter.sweep.side_effect = [RuntimeError("first sweep fails"), 0, 0, 0, 0, 0, 0, 0]
    sweeper = RateLimitSweeper(limiter, interval_seconds=0.01, max_age_ms=1_000)

    sweeper.start()
    sweeper.start()  # idempotent
    assert sweeper.running

    for _ in range(100):
        if limiter.sweep.call_count >= 3:
            break
        await asyncio.sleep(0.01)

    await sweeper.stop()
    await sweeper.stop()

    assert not sweeper.running
    assert limiter.sweep.call_count >= 3
    limiter.sweep.assert_called_with(1_000)
