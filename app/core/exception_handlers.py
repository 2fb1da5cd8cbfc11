"""Global exception handlers for consistent error responses.

Design:
- RateLimitExceededError -> 429 with ``{"error", "retryAfter"}`` and the
  X-RateLimit-* / Retry-After headers
- other AppError subclasses -> 400 / 404 with a structured ``error`` object
- unexpected Exception -> generic 500 (safety net)
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.core.errors import AppError, NotFoundAppError, RateLimitExceededError
from app.core.logging import get_request_id
from app.core.rate_limit import get_rate_limit_settings

logger = logging.getLogger(__name__)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceededError) -> JSONResponse:
    """Turn a rejected attempt into a 429 the client can retry from."""
    headers = {"Retry-After": str(exc.retry_after)}
    if exc.result is not None and get_rate_limit_settings(request).include_headers:
        headers.update(exc.result.headers())

    return JSONResponse(
        status_code=429,
        content={"error": exc.message, "retryAfter": exc.retry_after},
        headers=headers,
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with consistent JSON format.

    All responses carry ``error.code``, ``error.message``,
    ``error.request_id`` and, when present, ``error.details``.
    """
    status_code = 404 if isinstance(exc, NotFoundAppError) else 400

    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
        },
    )

    error_content = {
        "code": exc.code,
        "message": exc.message,
        "request_id": get_request_id(),
    }
    if exc.details:
        error_content["details"] = exc.details

    return JSONResponse(
        status_code=status_code,
        content={"error": error_content},
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors.

    Logs the failure and answers with a generic message; no exception text
    or traceback reaches the client.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": get_request_id(),
            }
        },
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app.

    Starlette resolves handlers along the exception's MRO, so the 429
    handler wins over the generic AppError one.
    """
    app.exception_handler(RateLimitExceededError)(rate_limit_exceeded_handler)
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
