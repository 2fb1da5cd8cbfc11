"""HTTP middleware for request correlation and access logging.

Every request gets a correlation id (taken from the incoming header named
by ``LOG_REQUEST_ID_HEADER`` or freshly generated), which is stored in a
ContextVar for the duration of the request and echoed on the response.
One ``request.completed`` line is logged per request.

Usage:
    app.middleware("http")(request_context_middleware)
"""

from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request, Response

from app.core.config import settings
from app.core.logging import clear_request_id, set_request_id

logger = logging.getLogger("app.access")


async def request_context_middleware(request: Request, call_next) -> Response:
    """Bind a request id for the request and log its outcome.

    Adds the request id header and ``X-Request-Duration-ms`` to the response.
    """

    header_name = getattr(request.app.state, "request_id_header", settings.log.request_id_header)
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "request.completed",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )
    finally:
        clear_request_id()

    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response
