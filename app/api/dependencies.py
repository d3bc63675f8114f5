from __future__ import annotations

from fastapi import Request

from app.services.storage_service import CachedStorage


def get_storage(request: Request) -> CachedStorage:
    """Return the cached storage owned by the running application."""
    return request.app.state.storage
