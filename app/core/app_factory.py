"""Application factory for the FastAPI app.

Builds the app together with the resources it owns (the rate limiter), so
tests can create isolated apps with their own limiter and clock.
"""

from __future__ import annotations

from fastapi import FastAPI

from app.adapters.rate_limit.base import AbstractRateLimiter
from app.adapters.rate_limit.factory import create_rate_limiter
from app.api.routes import health_router, matches_router, rate_limits_router
from app.core.config import Settings, settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_context_middleware

OPENAPI_TAGS = [
    {"name": "Matches", "description": "Match recording helpers such as outcome prediction."},
    {"name": "Rate limits", "description": "Quota status for rate-limited operations."},
    {"name": "Health", "description": "Liveness checks."},
]


def create_app(
    *,
    config: Settings | None = None,
    rate_limiter: AbstractRateLimiter | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        config: Settings to build from; defaults to the global settings.
        rate_limiter: Limiter to install; built from ``config`` when omitted.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    cfg = config or settings

    # Logging first so subsequent init logs are formatted as desired
    configure_logging(cfg.log)

    app = FastAPI(
        title=cfg.app.title,
        description=(
            "Padel league API. Mutating endpoints are rate limited per client "
            "and operation category; limited responses carry X-RateLimit-* "
            "headers and rejected ones answer 429 with a retryAfter hint."
        ),
        version="0.1.0",
        debug=cfg.app.debug,
        openapi_tags=OPENAPI_TAGS,
    )

    # One limiter per app instance; counters live as long as the process
    app.state.rate_limiter = rate_limiter or create_rate_limiter(cfg.rate_limit)
    app.state.rate_limit_settings = cfg.rate_limit
    app.state.request_id_header = cfg.log.request_id_header

    app.middleware("http")(request_context_middleware)
    setup_exception_handlers(app)

    app.include_router(matches_router, prefix=cfg.app.api_prefix)
    app.include_router(rate_limits_router, prefix=cfg.app.api_prefix)
    app.include_router(health_router)

    return app
