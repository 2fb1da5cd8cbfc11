"""Unit tests for the sliding-window limiter and the limiter factory."""

import itertools
import threading
from unittest.mock import Mock

import pytest

from app.adapters.rate_limit.base import RateLimitPolicy
from app.adapters.rate_limit.factory import build_policies, create_rate_limiter
from app.adapters.rate_limit.in_memory import (
    InMemoryFixedWindowRateLimiter,
    InMemorySlidingWindowRateLimiter,
)
from app.core.config import RateLimitPolicyConfig, RateLimitSettings
from app.core.errors import ValidationAppError

EVENT = RateLimitPolicy(category="event", window_ms=60_000, max_attempts=3)


def test_sliding_allows_up_to_limit_then_blocks() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemorySlidingWindowRateLimiter([EVENT], clock=clock)

    assert [limiter.check("k", "event").remaining for _ in range(3)] == [2, 1, 0]

    blocked = limiter.check("k", "event")
    assert blocked.success is False
    assert blocked.retry_after == 60


def test_sliding_frees_slots_as_attempts_age_out() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemorySlidingWindowRateLimiter([EVENT], clock=clock)

    for offset in (0, 20, 40):
        clock.return_value = 1000.0 + offset
        assert limiter.check("k", "event").success is True

    clock.return_value = 1050.0
    blocked = limiter.check("k", "event")
    assert blocked.success is False
    assert blocked.retry_after == 10

    # Only the t=0 attempt has left the trailing window
    clock.return_value = 1060.0
    result = limiter.check("k", "event")
    assert result.success is True
    assert result.remaining == 0
    assert limiter.check("k", "event").success is False


def test_sliding_peek_does_not_mutate() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemorySlidingWindowRateLimiter([EVENT], clock=clock)
    limiter.check("k", "event")

    for _ in range(3):
        assert limiter.peek("k", "event").remaining == 2
    assert limiter.peek("other", "event").remaining == 3
    assert limiter.stats()["entries"] == 1


def test_sliding_sweep_drops_idle_entries() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemorySlidingWindowRateLimiter([EVENT], clock=clock)
    limiter.check("k", "event")

    clock.return_value = 1000.0 + 601
    assert limiter.sweep() == 1
    assert limiter.stats()["entries"] == 0


def test_sliding_unknown_category_fails_open() -> None:
    limiter = InMemorySlidingWindowRateLimiter([EVENT])

    result = limiter.check("k", "comment")

    assert result.success is True
    assert result.enforced is False


def test_sliding_concurrent_attempts_keep_log_ordered() -> None:
    ticks = itertools.count()
    limiter = InMemorySlidingWindowRateLimiter(
        [RateLimitPolicy(category="event", window_ms=60_000, max_attempts=5)],
        clock=lambda: 1000.0 + next(ticks) / 1000,
    )
    results: list[bool] = []
    results_lock = threading.Lock()
    barrier = threading.Barrier(50)

    def _attempt() -> None:
        barrier.wait()
        outcome = limiter.check("shared", "event").success
        with results_lock:
            results.append(outcome)

    threads = [threading.Thread(target=_attempt) for _ in range(50)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count(True) == 5
    assert results.count(False) == 45
    log = list(limiter._entries[("event", "shared")])
    assert log == sorted(log)


def test_sliding_attempt_leaves_window_one_window_later() -> None:
    clock = Mock(return_value=1100.0)
    limiter = InMemorySlidingWindowRateLimiter(
        [RateLimitPolicy(category="event", window_ms=60_000, max_attempts=2)], clock=clock
    )
    limiter.check("k", "event")
    clock.return_value = 1101.0
    limiter.check("k", "event")

    # Only the t=1101 attempt is still inside the trailing window
    clock.return_value = 1160.5
    result = limiter.check("k", "event")

    assert result.success is True
    assert result.remaining == 0


def test_build_policies_from_settings() -> None:
    cfg = RateLimitSettings(
        policies={"event": RateLimitPolicyConfig(window_ms=1000, max_attempts=2)}
    )

    assert build_policies(cfg) == [
        RateLimitPolicy(category="event", window_ms=1000, max_attempts=2)
    ]


@pytest.mark.parametrize(
    ("strategy", "expected_cls"),
    [
        ("fixed", InMemoryFixedWindowRateLimiter),
        ("sliding", InMemorySlidingWindowRateLimiter),
        ("SLIDING", InMemorySlidingWindowRateLimiter),
    ],
)
def test_factory_selects_strategy(strategy: str, expected_cls: type) -> None:
    limiter = create_rate_limiter(RateLimitSettings(strategy=strategy))

    assert isinstance(limiter, expected_cls)
    assert limiter.policy_for("match") is not None


def test_factory_rejects_unknown_strategy() -> None:
    with pytest.raises(ValidationAppError) as exc_info:
        create_rate_limiter(RateLimitSettings(strategy="token-bucket"))

    assert exc_info.value.code == "rate_limit_unknown_strategy"


def test_default_policies_cover_mutating_categories() -> None:
    limiter = create_rate_limiter(RateLimitSettings())

    for category in ("match", "invite", "event", "player", "venue", "attendance", "default"):
        policy = limiter.policy_for(category)
        assert policy is not None
        assert policy.window_ms == 60_000
    assert limiter.policy_for("match").max_attempts == 10
    assert limiter.policy_for("invite").max_attempts == 5
