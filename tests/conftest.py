"""Pytest configuration and fixtures shared across all test modules.

APP_ENV is set before any app import so settings never pick up a developer's
.env.development file.
"""

import os

os.environ["APP_ENV"] = "testing"
os.environ.setdefault("LOG_LEVEL", "WARNING")

from unittest.mock import Mock  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.adapters.rate_limit.base import RateLimitPolicy  # noqa: E402
from app.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter  # noqa: E402
from app.core.app_factory import create_app  # noqa: E402


@pytest.fixture
def clock() -> Mock:
    """Controllable clock returning UNIX seconds; set ``return_value`` to advance."""
    return Mock(return_value=1_000.0)


@pytest.fixture
def limiter(clock: Mock) -> InMemoryFixedWindowRateLimiter:
    return InMemoryFixedWindowRateLimiter(
        [
            RateLimitPolicy(category="match", window_ms=60_000, max_attempts=2),
            RateLimitPolicy(category="event", window_ms=60_000, max_attempts=3),
        ],
        clock=clock,
    )


@pytest.fixture
def client(limiter: InMemoryFixedWindowRateLimiter) -> TestClient:
    """Test client for an app owning the ``limiter`` fixture."""
    return TestClient(create_app(rate_limiter=limiter))
