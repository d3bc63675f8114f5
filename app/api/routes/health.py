from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response

from app.api.dependencies import get_storage
from app.core.errors import StorageAppError
from app.services.storage_service import CachedStorage

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_STARTED_AT = time.monotonic()


@router.get("/health")
async def health_check(
    request: Request,
    response: Response,
    storage: Annotated[CachedStorage, Depends(get_storage)],
) -> dict:
    """Health check endpoint.

    Reports process uptime, storage reachability and in-memory guard sizes.
    Returns 503 when the storage backend cannot be reached so load balancers
    can route around the instance.
    """

    response.headers["Cache-Control"] = "public, max-age=10"

    database = "connected"
    try:
        await storage.ping()
    except StorageAppError as exc:
        logger.warning("health.storage_unavailable", extra={"error_code": exc.code})
        database = "unavailable"

    if database != "connected":
        response.status_code = 503

    return {
        "status": "ok" if database == "connected" else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": round(time.monotonic() - _STARTED_AT, 3),
        "database": database,
        "rate_limiter": request.app.state.rate_limiter.stats(),
        "caches": storage.cache_stats(),
    }
