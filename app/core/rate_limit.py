"""Rate limiting dependency for FastAPI routes.

This module wires the rate limiting adapter into the HTTP layer.

- Each route declares its own ``(max_requests, window_ms)`` via ``rate_limit``.
- Clients are identified by IP, namespaced by route scope so that routes
  with different windows never share a timestamp list.
- The limiter instance lives on ``app.state`` and is built by the app factory.
- Rejections raise ``RateLimitExceededError``, rendered as HTTP 429.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Awaitable, Callable

from fastapi import Request

from app.adapters.rate_limit.base import AbstractRateLimiter
from app.adapters.rate_limit.in_memory import InMemorySlidingWindowRateLimiter
from app.core.config import AppSettings, settings
from app.core.errors import RateLimitExceededError

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests. Please try again later."


def build_rate_limiter(app_settings: AppSettings | None = None) -> AbstractRateLimiter:
    """Construct the process-wide limiter from configuration."""

    cfg = app_settings or settings.app
    return InMemorySlidingWindowRateLimiter(
        capacity=cfg.rate_limit_store_capacity,
        cleanup_threshold=cfg.rate_limit_cleanup_threshold,
    )


def get_rate_limiter(request: Request) -> AbstractRateLimiter:
    """Return the limiter owned by the running application."""

    return request.app.state.rate_limiter


def client_identifier(request: Request) -> str:
    """Return the remote address of the caller (``unknown`` when unavailable)."""

    return request.client.host if request.client else "unknown"


def _route_path(request: Request) -> str:
    """Route template (e.g. ``/api/pinned-items/{item_name}``), else the raw path."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


def _hash_limiter_key(key: str) -> str:
    """Hash the rate limit key for logging without exposing client addresses."""
    return hashlib.sha256(key.encode()).hexdigest()[:16]


def rate_limit(
    max_requests: int,
    window_ms: int,
    *,
    scope: str | None = None,
    fallback_available: bool = True,
    message: str = RATE_LIMIT_MESSAGE,
) -> Callable[[Request], Awaitable[None]]:
    """Build a FastAPI dependency admitting ``max_requests`` per ``window_ms``.

    Usage:
        @router.post("/x", dependencies=[Depends(rate_limit(10, 60_000))])

    Args:
        max_requests: Maximum admitted requests per client within the window.
        window_ms: Sliding window length in milliseconds.
        scope: Namespace for the client key; defaults to the route path.
        fallback_available: Advertised to clients in the 429 body.
        message: Human-readable message for the 429 body.

    Raises:
        ValueError: If the limits are invalid (checked at route setup).
    """

    if max_requests < 1:
        raise ValueError("max_requests must be >= 1")
    if window_ms < 1:
        raise ValueError("window_ms must be >= 1")

    async def enforce_rate_limit(request: Request) -> None:
        if not settings.app.rate_limit_enabled:
            return

        route_scope = scope or _route_path(request)
        key = f"{route_scope}:{client_identifier(request)}"
        key_hash = _hash_limiter_key(key)

        result = get_rate_limiter(request).admit(key, max_requests, window_ms)
        if result.allowed:
            logger.debug(
                "rate_limit.allowed",
                extra={
                    "scope": route_scope,
                    "key_hash": key_hash,
                    "limit": result.limit,
                    "remaining": result.remaining,
                    "window_ms": window_ms,
                },
            )
            return

        retry_after = result.retry_after_seconds or 1
        logger.warning(
            "rate_limit.rejected",
            extra={
                "scope": route_scope,
                "key_hash": key_hash,
                "limit": result.limit,
                "window_ms": window_ms,
                "retry_after_s": retry_after,
            },
        )
        raise RateLimitExceededError(
            code="rate_limit_exceeded",
            message=message,
            retry_after_seconds=retry_after,
            limit=result.limit,
            reset_at=result.reset_at,
            fallback_available=fallback_available,
        )

    return enforce_rate_limit
