"""Periodic reclamation of idle rate-limit state.

Inline pruning only runs when requests arrive; this background task bounds
memory during quiet periods by dropping clients whose last request is older
than the retention horizon.
"""

from __future__ import annotations

import asyncio
import logging

from app.adapters.rate_limit.base import AbstractRateLimiter

logger = logging.getLogger(__name__)

SWEEP_INTERVAL_SECONDS = 15 * 60
RETENTION_MS = 60 * 60 * 1000


class RateLimitSweeper:
    """Runs ``limiter.sweep`` on a fixed interval inside the event loop."""

    def __init__(
        self,
        limiter: AbstractRateLimiter,
        *,
        interval_seconds: float = SWEEP_INTERVAL_SECONDS,
        max_age_ms: int = RETENTION_MS,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")

        self._limiter = limiter
        self._interval = interval_seconds
        self._max_age_ms = max_age_ms
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def run_once(self) -> int:
        """Sweep the limiter once.

        Failures are logged and swallowed so a broken sweep can never take
        down the process or block admissions.

        Returns:
            Number of client keys removed (0 on failure).
        """
        try:
            removed = self._limiter.sweep(self._max_age_ms)
        except Exception:
            logger.exception("rate_limit.sweep_failed")
            return 0

        logger.info(
            "rate_limit.swept",
            extra={"removed_keys": removed, "max_age_ms": self._max_age_ms},
        )
        return removed

    def start(self) -> None:
        """Schedule the sweep loop on the running event loop (idempotent)."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(
            self._loop(), name="rate-limit-sweeper"
        )
        logger.info("rate_limit.sweeper_started", extra={"interval_s": self._interval})

    async def stop(self) -> None:
        """Cancel the sweep loop and wait for it to finish (idempotent)."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("rate_limit.sweeper_stopped")

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            self.run_once()
