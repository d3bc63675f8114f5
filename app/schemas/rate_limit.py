"""Pydantic schema for throttled responses."""

from __future__ import annotations

from pydantic import BaseModel, Field


class RateLimitErrorResponse(BaseModel):
    """Body returned with HTTP 429.

    Field names follow the frontend contract (camelCase) so the client can
    decide whether to fall back to its curated static content.
    """

    error: str = Field(..., description="Human-readable message.")
    retryAfter: int = Field(..., description="Seconds to wait before retrying.")
    fallbackAvailable: bool = Field(
        ...,
        description="Whether static fallback content exists for this feature.",
    )
