from __future__ import annotations

"""Application factory for FastAPI app.

Centralizes app construction (state, lifespan, middleware, handlers,
routers). The rate limiter, its sweeper and the cached storage are explicit
instances held on ``app.state`` so tests can build isolated apps.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.adapters.rate_limit.base import AbstractRateLimiter
from app.adapters.storage.base import AbstractStorage
from app.adapters.storage.in_memory import InMemoryStorage
from app.api.routes import auth_router, health_router, pinned_items_router
from app.core.config import settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.core.openapi import apply_openapi_customizations
from app.core.rate_limit import build_rate_limiter
from app.services.rate_limit_sweeper import RateLimitSweeper
from app.services.storage_service import CachedStorage
from app.utils.simple_cache import SimpleTTLCache

logger = logging.getLogger(__name__)


def build_cached_storage(backend: AbstractStorage) -> CachedStorage:
    """Wrap ``backend`` with the user and pinned-item caches from settings."""

    cfg = settings.cache
    return CachedStorage(
        backend,
        user_cache=SimpleTTLCache(cfg.max_entries, name="users"),
        pinned_items_cache=SimpleTTLCache(cfg.max_entries, name="pinned_items"),
        user_ttl_ms=cfg.user_ttl_ms,
        pinned_items_ttl_ms=cfg.pinned_items_ttl_ms,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    sweeper: RateLimitSweeper = app.state.rate_limit_sweeper
    sweeper.start()
    try:
        yield
    finally:
        await sweeper.stop()
        app.state.rate_limiter.clear()
        logger.info("app.shutdown_complete")


def create_app(
    *,
    storage_backend: AbstractStorage | None = None,
    rate_limiter: AbstractRateLimiter | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        storage_backend: Persistence backend; defaults to the in-memory store.
        rate_limiter: Limiter instance; defaults to one built from settings.

    Returns:
        Configured FastAPI app with state, middleware, handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Verse Notebook API",
        description=(
            "Backend for the poetry reference notebook: signed-in user profile "
            "and pinned reference items, with per-route rate limiting and "
            "short-lived read caching."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    limiter = rate_limiter or build_rate_limiter(settings.app)
    app.state.rate_limiter = limiter
    app.state.rate_limit_sweeper = RateLimitSweeper(
        limiter,
        interval_seconds=settings.app.rate_limit_sweep_interval_seconds,
        max_age_ms=settings.app.rate_limit_retention_ms,
    )
    app.state.storage = build_cached_storage(storage_backend or InMemoryStorage())

    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(auth_router, prefix="/api")
    app.include_router(pinned_items_router, prefix="/api")
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app
