"""Pydantic schemas for rate limit status responses."""

from __future__ import annotations

from pydantic import BaseModel, Field


class RateLimitStatusResponse(BaseModel):
    """Caller's quota for one category, read without consuming an attempt."""

    category: str = Field(..., description="Operation category, e.g. 'match'.")
    limit: int = Field(..., description="Attempts allowed per window.")
    remaining: int = Field(..., description="Attempts left in the current window.")
    reset: int = Field(..., description="UNIX epoch seconds when the window ends.")
    retry_after: int | None = Field(
        default=None,
        description="Seconds until the next attempt is accepted, when the quota is used up.",
    )
