from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from app.api.dependencies import get_storage
from app.core.auth import require_user_id, verify_api_key
from app.core.config import settings
from app.core.rate_limit import rate_limit
from app.schemas.pinned_items import PinItemRequest, PinnedItemResponse, PinnedItemsResponse
from app.services.storage_service import CachedStorage

router = APIRouter(tags=["Pinned Items"], dependencies=[Depends(verify_api_key)])

_pinned_write_rate_limit = rate_limit(
    settings.app.pinned_write_rate_limit_requests,
    settings.app.pinned_write_rate_limit_window_ms,
    scope="pinned-items:write",
    fallback_available=False,
)


@router.get("/pinned-items", response_model=PinnedItemsResponse)
async def list_pinned_items(
    storage: Annotated[CachedStorage, Depends(get_storage)],
    user_id: Annotated[str, Depends(require_user_id)],
    limit: Annotated[int | None, Query(ge=1, le=100)] = None,
    offset: Annotated[int | None, Query(ge=0)] = None,
) -> PinnedItemsResponse:
    """List the user's pinned items, newest first.

    The unpaginated listing is served from a short-lived cache.
    """
    items = await storage.get_pinned_items(user_id, limit=limit, offset=offset)
    return PinnedItemsResponse(items=[item.item_data for item in items])


@router.post(
    "/pinned-items",
    response_model=PinnedItemResponse,
    dependencies=[Depends(_pinned_write_rate_limit)],
)
async def pin_item(
    payload: PinItemRequest,
    storage: Annotated[CachedStorage, Depends(get_storage)],
    user_id: Annotated[str, Depends(require_user_id)],
) -> PinnedItemResponse:
    """Pin an item to the notebook; pinning twice returns the existing item."""
    item_data = dict(payload.item_data)
    item_data["name"] = item_data["name"].strip()
    pinned = await storage.pin_item(user_id, item_data)
    return PinnedItemResponse(item=pinned.item_data)


@router.delete(
    "/pinned-items/{item_name}",
    dependencies=[Depends(_pinned_write_rate_limit)],
)
async def unpin_item(
    item_name: str,
    storage: Annotated[CachedStorage, Depends(get_storage)],
    user_id: Annotated[str, Depends(require_user_id)],
) -> dict:
    """Remove an item from the notebook. Unpinning an absent item succeeds."""
    await storage.unpin_item(user_id, item_name)
    return {"success": True}
