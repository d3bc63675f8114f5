"""In-memory sliding-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Bounded: the number of tracked client keys never exceeds ``capacity``.
- Thread-safe: uses a lock around shared state.
"""

from __future__ import annotations

import logging
import math
import threading
from collections import OrderedDict, deque
from dataclasses import dataclass, field
from typing import Callable

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from app.utils.simple_cache import now_ms

logger = logging.getLogger(__name__)


def _drop_before(hits: deque[float], cutoff: float) -> None:
    """Discard timestamps strictly older than ``cutoff`` (hits are sorted)."""
    while hits and hits[0] < cutoff:
        hits.popleft()


@dataclass
class _ClientWindow:
    """Admitted timestamps of one key and the longest window it was checked against."""

    window_ms: int
    hits: deque[float] = field(default_factory=deque)


class InMemorySlidingWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter admitting at most N requests in any trailing window.

    Each client key maps to the timestamps (epoch milliseconds) of its
    admitted requests. Keys are kept in an ordered map sorted by their most
    recent admission, so the least recently used key sits at the head and
    can be evicted in O(1) when the store is full.

    Every key remembers its own window length. Pruning, whether inline or
    from ``sweep``, never drops a timestamp that is still inside that
    window, so keys checked against different windows can share the store.

    Important:
        This limiter is per-process only. A restart resets all counters.
    """

    def __init__(
        self,
        *,
        capacity: int = 10_000,
        cleanup_threshold: float = 0.9,
        clock: Callable[[], float] = now_ms,
    ) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            capacity: Maximum number of distinct client keys tracked.
            cleanup_threshold: Fill ratio at which stale keys are swept inline.
            clock: Time source returning epoch milliseconds.

        Raises:
            ValueError: If capacity or cleanup_threshold are invalid.
        """
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        if not 0 < cleanup_threshold <= 1:
            raise ValueError("cleanup_threshold must be in (0, 1]")

        self._capacity = capacity
        self._cleanup_threshold = cleanup_threshold
        self._clock = clock
        self._lock = threading.RLock()
        self._windows: OrderedDict[str, _ClientWindow] = OrderedDict()
        self._evictions = 0
        self._rejections = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)

    def admit(self, key: str, max_requests: int, window_ms: int) -> RateLimitResult:
        """Check the sliding window for ``key`` and record the request if admitted.

        Rejected requests are not recorded, so a throttled client regains
        capacity as soon as its oldest admitted request leaves the window.

        Args:
            key: Client identifier.
            max_requests: Maximum admitted requests per window.
            window_ms: Window length in milliseconds.

        Returns:
            RateLimitResult with allowance decision and metadata.

        Raises:
            ValueError: If key is empty or limits are invalid.
        """
        if not key:
            raise ValueError("key must be a non-empty string")
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if window_ms < 1:
            raise ValueError("window_ms must be >= 1")

        now = self._clock()

        with self._lock:
            if len(self._windows) >= self._capacity * self._cleanup_threshold:
                self._prune_locked(now, 0)

            window = self._windows.get(key)
            if window is None:
                if len(self._windows) >= self._capacity:
                    self._evict_lru_locked()
                window = _ClientWindow(window_ms=window_ms)
                self._windows[key] = window
            elif window_ms > window.window_ms:
                window.window_ms = window_ms

            hits = window.hits
            _drop_before(hits, now - window_ms)

            if len(hits) >= max_requests:
                self._rejections += 1
                reset_at = hits[0] + window_ms
                retry_after = max(1, math.ceil((reset_at - now + 1) / 1000))
                return RateLimitResult(
                    allowed=False,
                    limit=max_requests,
                    remaining=0,
                    reset_at=math.ceil(reset_at / 1000),
                    retry_after_seconds=retry_after,
                )

            hits.append(now)
            self._windows.move_to_end(key)
            return RateLimitResult(
                allowed=True,
                limit=max_requests,
                remaining=max_requests - len(hits),
                reset_at=math.ceil((hits[0] + window_ms) / 1000),
                retry_after_seconds=None,
            )

    def sweep(self, max_age_ms: int) -> int:
        """Drop timestamps older than ``max_age_ms`` and remove emptied keys.

        A key whose window is longer than ``max_age_ms`` keeps every
        timestamp still inside its window.

        Args:
            max_age_ms: Retention horizon in milliseconds.

        Returns:
            Number of client keys removed.
        """
        if max_age_ms < 0:
            raise ValueError("max_age_ms must be >= 0")

        with self._lock:
            return self._prune_locked(self._clock(), max_age_ms)

    def clear(self) -> None:
        with self._lock:
            self._windows.clear()

    def stats(self) -> dict[str, int | float]:
        """Return store size and counters without exposing client keys."""
        with self._lock:
            return {
                "tracked_keys": len(self._windows),
                "capacity": self._capacity,
                "cleanup_threshold": self._cleanup_threshold,
                "evictions": self._evictions,
                "rejections": self._rejections,
            }

    def _prune_locked(self, now: float, min_age_ms: int) -> int:
        emptied: list[str] = []
        for key, window in self._windows.items():
            _drop_before(window.hits, now - max(min_age_ms, window.window_ms))
            if not window.hits:
                emptied.append(key)
        for key in emptied:
            del self._windows[key]
        return len(emptied)

    def _evict_lru_locked(self) -> None:
        # Head of the ordered map holds the key with the oldest latest admission.
        self._windows.popitem(last=False)
        self._evictions += 1
        logger.debug(
            "rate_limit.evicted",
            extra={"tracked_keys": len(self._windows), "capacity": self._capacity},
        )
