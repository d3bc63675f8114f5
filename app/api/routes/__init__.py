from __future__ import annotations

from app.api.routes.auth import router as auth_router
from app.api.routes.health import router as health_router
from app.api.routes.pinned_items import router as pinned_items_router

__all__ = ["auth_router", "health_router", "pinned_items_router"]
