"""Rate limiter interfaces.

The HTTP layer depends on this abstraction (not a concrete strategy) so the
in-memory table can later be replaced by a shared store (e.g. Redis) for
deployments running several processes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitPolicy:
    """Quota applied to one category of operation.

    Attributes:
        category: Name of the operation class (e.g. "match", "event").
        window_ms: Length of the counting window in milliseconds.
        max_attempts: Attempts permitted per window.
    """

    category: str
    window_ms: int
    max_attempts: int

    def __post_init__(self) -> None:
        if not self.category:
            raise ValueError("category must be a non-empty string")
        if self.window_ms < 1:
            raise ValueError("window_ms must be >= 1")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a rate limit check.

    Attributes:
        success: Whether the attempt is allowed to proceed.
        limit: Max attempts per window.
        remaining: Attempts left in the current window (0 when blocked).
        reset: UNIX epoch seconds when the current window ends.
        retry_after: Seconds to wait before retrying; only set when blocked.
        enforced: False when no policy applied and the attempt was let
            through without accounting.
    """

    success: bool
    limit: int
    remaining: int
    reset: int
    retry_after: int | None = None
    enforced: bool = True

    @classmethod
    def unlimited(cls) -> "RateLimitResult":
        """Result for attempts that no policy covers."""
        return cls(success=True, limit=0, remaining=0, reset=0, enforced=False)

    def headers(self) -> dict[str, str]:
        """Build the X-RateLimit-* (and Retry-After) response headers."""
        if not self.enforced:
            return {}
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset),
        }
        if not self.success:
            headers["Retry-After"] = str(self.retry_after or 0)
        return headers


class AbstractRateLimiter(ABC):
    """Interface for rate limiters keyed by identifier and category."""

    strategy: str = "abstract"

    @abstractmethod
    def policy_for(self, category: str) -> RateLimitPolicy | None:
        """Return the policy configured for ``category``, if any."""
        raise NotImplementedError

    @abstractmethod
    def check(self, identifier: str, category: str) -> RateLimitResult:
        """Record an attempt and decide whether it is allowed.

        Implementations never raise: unknown categories and empty
        identifiers are allowed without being counted.

        Args:
            identifier: Client key (e.g. network address or session id).
            category: Operation category the attempt belongs to.

        Returns:
            RateLimitResult describing the decision and quota state.
        """
        raise NotImplementedError

    @abstractmethod
    def peek(self, identifier: str, category: str) -> RateLimitResult:
        """Report quota state without recording an attempt."""
        raise NotImplementedError

    @abstractmethod
    def sweep(self) -> int:
        """Drop stale entries and return how many were removed."""
        raise NotImplementedError

    @abstractmethod
    def stats(self) -> dict[str, int | str]:
        """Return counters describing the limiter's state."""
        raise NotImplementedError
