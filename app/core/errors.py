"""Application-level exception types.

Domain errors raised by services and adapters. The global exception handlers
translate them into HTTP responses with a consistent shape.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    code: str
    message: str
    hint: str
    http_status: int
    retry_after: int
    operation: str
    user_id: str
    item_name: str
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class AuthenticationAppError(AppError):
    """Raised when authentication/authorization fails."""


class NotFoundAppError(AppError):
    """Raised when a requested entity does not exist."""


class StorageAppError(AppError):
    """Raised when the persistence backend is unreachable or times out."""


@dataclass
class RateLimitExceededError(AppError):
    """Raised by the HTTP layer when a client exceeds its request quota.

    Attributes:
        retry_after_seconds: Suggested wait before retrying.
        limit: Max requests per window for the throttled route.
        reset_at: UNIX epoch seconds when the oldest counted request expires.
        fallback_available: Whether the client can fall back to static content.
    """

    retry_after_seconds: int = 1
    limit: int = 0
    reset_at: int = 0
    fallback_available: bool = True
