"""Rate limiting wiring for FastAPI routes.

The limiter itself lives on ``app.state.rate_limiter`` (built once by the
app factory) and reaches route dependencies through ``get_rate_limiter``,
so tests can hand each app its own isolated instance.

Usage:
    @router.post("/matches", dependencies=[Depends(rate_limit("match"))])
    async def create_match(...): ...

Clients are identified by their forwarded network address, falling back to
the socket peer and finally to a shared constant.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Awaitable, Callable, Iterable, Mapping

from fastapi import Depends, Request, Response

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from app.core.config import RateLimitSettings, settings
from app.core.errors import RateLimitExceededError

logger = logging.getLogger(__name__)


def get_client_identifier(
    headers: Mapping[str, str],
    client_host: str | None = None,
    *,
    header_names: Iterable[str] | None = None,
    fallback: str | None = None,
) -> str:
    """Derive the rate limit identifier for a request.

    Pure function of the request context: checks ``header_names`` in order
    (only the first address of a comma-separated ``X-Forwarded-For`` list
    counts), then the socket peer address, then ``fallback``.

    Examples:
        >>> get_client_identifier({"x-forwarded-for": "1.2.3.4, 10.0.0.1"})
        '1.2.3.4'
        >>> get_client_identifier({}, None, fallback="anonymous")
        'anonymous'
    """
    names = settings.rate_limit.identifier_headers if header_names is None else header_names
    for name in names:
        value = headers.get(name)
        if not value:
            continue
        first = value.split(",")[0].strip()
        if first:
            return first

    if client_host:
        return client_host

    return settings.rate_limit.fallback_identifier if fallback is None else fallback


def _hash_identifier(identifier: str) -> str:
    """Hash the identifier for logging without exposing client addresses."""
    return hashlib.sha256(identifier.encode()).hexdigest()[:16]


def get_rate_limiter(request: Request) -> AbstractRateLimiter:
    """Return the limiter owned by the running application."""
    return request.app.state.rate_limiter


def get_rate_limit_settings(request: Request) -> RateLimitSettings:
    """Return the rate limit settings the running application was built with.

    Apps not created through the factory fall back to the global settings.
    """
    return getattr(request.app.state, "rate_limit_settings", settings.rate_limit)


def assert_rate_limit(
    limiter: AbstractRateLimiter,
    identifier: str,
    category: str,
) -> RateLimitResult:
    """Record an attempt, raising when the caller is over quota.

    Returns:
        RateLimitResult for the accepted attempt.

    Raises:
        RateLimitExceededError: When the attempt is rejected.
    """
    result = limiter.check(identifier, category)
    identifier_hash = _hash_identifier(identifier)

    if not result.enforced:
        if limiter.policy_for(category) is None:
            logger.warning(
                "rate_limit.unknown_category",
                extra={"category": category, "identifier_hash": identifier_hash},
            )
        return result

    if result.success:
        logger.info(
            "rate_limit.allowed",
            extra={
                "category": category,
                "identifier_hash": identifier_hash,
                "limit": result.limit,
                "remaining": result.remaining,
            },
        )
        return result

    logger.warning(
        "rate_limit.exceeded",
        extra={
            "category": category,
            "identifier_hash": identifier_hash,
            "limit": result.limit,
            "reset": result.reset,
            "retry_after_s": result.retry_after,
        },
    )
    raise RateLimitExceededError.from_result(result, category)


def rate_limit(category: str) -> Callable[..., Awaitable[None]]:
    """Build a FastAPI dependency limiting requests in ``category``.

    On success the X-RateLimit-* headers are attached to the route's
    response; on rejection ``RateLimitExceededError`` propagates to the
    global handler, which answers 429.
    """

    async def enforce_rate_limit(
        request: Request,
        response: Response,
        limiter: AbstractRateLimiter = Depends(get_rate_limiter),
        rate_limit_settings: RateLimitSettings = Depends(get_rate_limit_settings),
    ) -> None:
        if not rate_limit_settings.enabled:
            return

        identifier = get_client_identifier(
            request.headers,
            request.client.host if request.client else None,
            header_names=rate_limit_settings.identifier_headers,
            fallback=rate_limit_settings.fallback_identifier,
        )
        result = assert_rate_limit(limiter, identifier, category)

        if rate_limit_settings.include_headers:
            response.headers.update(result.headers())

    enforce_rate_limit.__name__ = f"enforce_rate_limit_{category.replace('-', '_')}"
    return enforce_rate_limit
