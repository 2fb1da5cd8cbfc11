from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from app.adapters.rate_limit.base import AbstractRateLimiter
from app.core.config import RateLimitSettings
from app.core.errors import NotFoundAppError
from app.core.rate_limit import get_client_identifier, get_rate_limit_settings, get_rate_limiter
from app.schemas.rate_limit import RateLimitStatusResponse

router = APIRouter(tags=["Rate limits"])


@router.get("/rate-limits/{category}", response_model=RateLimitStatusResponse)
def get_rate_limit_status(
    category: str,
    request: Request,
    limiter: AbstractRateLimiter = Depends(get_rate_limiter),
    rate_limit_settings: RateLimitSettings = Depends(get_rate_limit_settings),
) -> RateLimitStatusResponse:
    """Report the caller's remaining quota without consuming an attempt.

    Raises:
        NotFoundAppError: 404 when no policy is configured for ``category``.
    """
    if limiter.policy_for(category) is None:
        raise NotFoundAppError(
            code="rate_limit_category_not_found",
            message=f"No rate limit policy configured for category {category!r}",
            details={"category": category},
        )

    identifier = get_client_identifier(
        request.headers,
        request.client.host if request.client else None,
        header_names=rate_limit_settings.identifier_headers,
        fallback=rate_limit_settings.fallback_identifier,
    )
    result = limiter.peek(identifier, category)
    return RateLimitStatusResponse(
        category=category,
        limit=result.limit,
        remaining=result.remaining,
        reset=result.reset,
        retry_after=result.retry_after,
    )
