"""Pydantic schemas for user records."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class UserUpsert(BaseModel):
    """Profile fields supplied by the identity provider on sign-in."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    email: str | None = Field(default=None, description="Primary email address.")
    first_name: str | None = Field(default=None, description="Given name.")
    last_name: str | None = Field(default=None, description="Family name.")
    profile_image_url: str | None = Field(default=None, description="Avatar URL.")


class User(UserUpsert):
    """Stored user record."""

    id: str = Field(..., description="Stable subject identifier from the identity provider.")
    created_at: datetime | None = Field(default=None, description="First sign-in time (UTC).")
    updated_at: datetime | None = Field(default=None, description="Last profile update (UTC).")


class CurrentUserResponse(BaseModel):
    """Session lookup result consumed by the frontend on load."""

    authenticated: bool
    user: User | None = None
