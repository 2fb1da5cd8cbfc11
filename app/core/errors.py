"""Application-level exception types.

Domain errors raised by services and the HTTP wiring. The global exception
handlers translate them into JSON responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict

from app.adapters.rate_limit.base import RateLimitResult


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    hint: str
    category: str
    retry_after: int
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class NotFoundAppError(AppError):
    """Raised when a requested resource does not exist."""


@dataclass
class RateLimitExceededError(AppError):
    """Raised when a caller has used up its quota for a category."""

    result: RateLimitResult | None = None

    @classmethod
    def from_result(cls, result: RateLimitResult, category: str) -> "RateLimitExceededError":
        retry_after = result.retry_after or 0
        return cls(
            code="rate_limit_exceeded",
            message=(
                f"Rate limit exceeded. Please wait {retry_after} seconds "
                "before trying again."
            ),
            details={"category": category, "retry_after": retry_after},
            result=result,
        )

    @property
    def retry_after(self) -> int:
        if self.result is None or self.result.retry_after is None:
            return 0
        return self.result.retry_after
