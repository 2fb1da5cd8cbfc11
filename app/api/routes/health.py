from __future__ import annotations

from fastapi import APIRouter, Depends

from app.adapters.rate_limit.base import AbstractRateLimiter
from app.core.rate_limit import get_rate_limiter

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(limiter: AbstractRateLimiter = Depends(get_rate_limiter)) -> dict:
    """Liveness check, including the rate limiter's counters."""

    return {"status": "ok", "rate_limiter": limiter.stats()}
