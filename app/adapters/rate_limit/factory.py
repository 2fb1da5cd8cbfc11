"""Factory for building the configured rate limiter strategy."""

from __future__ import annotations

import time
from typing import Callable

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitPolicy
from app.adapters.rate_limit.in_memory import (
    InMemoryFixedWindowRateLimiter,
    InMemorySlidingWindowRateLimiter,
)
from app.core.config import RateLimitSettings, settings
from app.core.errors import ValidationAppError

_STRATEGIES = {
    "fixed": InMemoryFixedWindowRateLimiter,
    "sliding": InMemorySlidingWindowRateLimiter,
}


def build_policies(rate_limit_settings: RateLimitSettings) -> list[RateLimitPolicy]:
    """Convert configured policy mappings into RateLimitPolicy objects."""
    return [
        RateLimitPolicy(
            category=category,
            window_ms=config.window_ms,
            max_attempts=config.max_attempts,
        )
        for category, config in rate_limit_settings.policies.items()
    ]


def create_rate_limiter(
    rate_limit_settings: RateLimitSettings | None = None,
    *,
    clock: Callable[[], float] = time.time,
) -> AbstractRateLimiter:
    """Instantiate the rate limiter selected by configuration.

    Args:
        rate_limit_settings: Settings to build from; defaults to global settings.
        clock: Time source returning UNIX time in seconds.

    Returns:
        AbstractRateLimiter: Configured limiter instance.

    Raises:
        ValidationAppError: If the configured strategy is unknown.
    """
    cfg = rate_limit_settings or settings.rate_limit
    strategy = cfg.strategy.lower()

    limiter_cls = _STRATEGIES.get(strategy)
    if limiter_cls is None:
        raise ValidationAppError(
            code="rate_limit_unknown_strategy",
            message=f"Unknown rate limit strategy: {cfg.strategy!r}",
            details={"hint": f"Use one of: {', '.join(sorted(_STRATEGIES))}"},
        )

    return limiter_cls(
        build_policies(cfg),
        clock=clock,
        stale_after_windows=cfg.stale_after_windows,
        sweep_interval_seconds=cfg.sweep_interval_seconds,
    )
