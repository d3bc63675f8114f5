from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from app.api.dependencies import get_storage
from app.core.auth import get_optional_user_id, require_user_id, verify_api_key
from app.core.config import settings
from app.core.errors import NotFoundAppError
from app.core.rate_limit import rate_limit
from app.schemas.users import CurrentUserResponse, User, UserUpsert
from app.services.storage_service import CachedStorage

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Account"], dependencies=[Depends(verify_api_key)])

_account_rate_limit = rate_limit(
    settings.app.account_rate_limit_requests,
    settings.app.account_rate_limit_window_ms,
    scope="account",
    fallback_available=False,
)


@router.get("/auth/user", response_model=CurrentUserResponse)
async def get_current_user(
    storage: Annotated[CachedStorage, Depends(get_storage)],
    user_id: Annotated[str | None, Depends(get_optional_user_id)],
) -> CurrentUserResponse:
    """Return the signed-in user, or ``authenticated: false`` for visitors.

    Called on every page load, so the lookup is served from the user cache
    most of the time, including for ids that have no stored record.
    """
    if user_id is None:
        return CurrentUserResponse(authenticated=False)

    user = await storage.get_user(user_id)
    if user is None:
        return CurrentUserResponse(authenticated=False)
    return CurrentUserResponse(authenticated=True, user=user)


@router.put(
    "/auth/user",
    response_model=User,
    dependencies=[Depends(_account_rate_limit)],
)
async def upsert_current_user(
    payload: UserUpsert,
    storage: Annotated[CachedStorage, Depends(get_storage)],
    user_id: Annotated[str, Depends(require_user_id)],
) -> User:
    """Create or refresh the profile of the signed-in user.

    Invoked by the session layer after a successful sign-in.
    """
    return await storage.upsert_user(user_id, payload)


@router.delete(
    "/auth/delete-account",
    dependencies=[Depends(_account_rate_limit)],
)
async def delete_account(
    storage: Annotated[CachedStorage, Depends(get_storage)],
    user_id: Annotated[str, Depends(require_user_id)],
) -> dict:
    """Delete the signed-in user together with their pinned items."""
    deleted = await storage.delete_user(user_id)
    if deleted is None:
        raise NotFoundAppError(
            code="user_not_found",
            message="Account not found",
        )
    return {"success": True, "message": "Account deleted successfully"}
