"""Rate limiter interfaces.

The HTTP layer depends on this abstraction (not the concrete implementation)
so the storage backend can be swapped later with minimal changes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitResult:
    """Result of an admission decision.

    Attributes:
        allowed: Whether the request is admitted.
        limit: Max requests per window.
        remaining: Requests still available in the current window (0 when blocked).
        reset_at: UNIX epoch seconds when the oldest counted request leaves the window.
        retry_after_seconds: Suggested wait time in seconds when blocked.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: int
    retry_after_seconds: int | None


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @abstractmethod
    def admit(self, key: str, max_requests: int, window_ms: int) -> RateLimitResult:
        """Decide whether a request from ``key`` may proceed.

        Args:
            key: Client identifier (e.g., route scope plus IP address).
            max_requests: Maximum admitted requests per window.
            window_ms: Sliding window length in milliseconds.

        Returns:
            RateLimitResult describing whether it was allowed.
        """
        raise NotImplementedError

    @abstractmethod
    def sweep(self, max_age_ms: int) -> int:
        """Drop state older than ``max_age_ms`` and return the number of keys removed."""
        raise NotImplementedError

    @abstractmethod
    def clear(self) -> None:
        """Forget all tracked clients."""
        raise NotImplementedError

    @abstractmethod
    def stats(self) -> dict[str, int | float]:
        """Return store size and counters without exposing client keys."""
        raise NotImplementedError
