"""HTTP middleware for request ID propagation and API cache headers.

Usage:
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import time
import uuid

from fastapi import Request, Response

from app.core.config import settings
from app.core.logging import clear_request_id, set_request_id

API_PREFIX = "/api"
NO_STORE = "no-cache, no-store, must-revalidate"


async def request_id_middleware(request: Request, call_next) -> Response:
    """Tag every request/response pair with a correlation id and timing.

    Uses the incoming request-id header when present, otherwise a new UUID.
    The id is stored in contextvars for log correlation and echoed back in
    the response together with ``X-Request-Duration-ms``. API responses are
    marked non-cacheable unless the route already set ``Cache-Control``.
    """

    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
    finally:
        clear_request_id()

    duration_ms = (time.perf_counter() - start) * 1000
    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    if request.url.path.startswith(API_PREFIX):
        response.headers.setdefault("Cache-Control", NO_STORE)
        response.headers.setdefault("Pragma", "no-cache")
    return response
