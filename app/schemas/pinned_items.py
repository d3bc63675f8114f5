"""Pydantic schemas for pinned notebook items."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class PinnedItem(BaseModel):
    """A reference entry (form, meter, device...) saved to a user's notebook."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    user_id: str
    item_name: str
    item_data: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None


class PinItemRequest(BaseModel):
    """Request body for pinning an item."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    item_data: Dict[str, Any] = Field(
        ...,
        description="Item payload as shown in the reference pane; must carry a non-empty 'name'.",
    )

    @field_validator("item_data")
    @classmethod
    def _require_name(cls, value: Dict[str, Any]) -> Dict[str, Any]:
        name = value.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ValueError("name is required and must be a non-empty string")
        return value


class PinnedItemsResponse(BaseModel):
    items: List[Dict[str, Any]] = Field(default_factory=list)


class PinnedItemResponse(BaseModel):
    item: Dict[str, Any]
