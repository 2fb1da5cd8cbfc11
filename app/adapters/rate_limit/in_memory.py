"""In-memory rate limiters.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: a single lock guards the whole entry table, so the
  read-modify-write of one attempt can never interleave with another.
- Entries idle for ``stale_after_windows`` window lengths are evicted by
  ``sweep()``, which ``check()`` also runs opportunistically.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from abc import abstractmethod
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Iterable

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitPolicy, RateLimitResult

logger = logging.getLogger(__name__)

_EntryKey = tuple[str, str]


@dataclass
class _WindowState:
    window_start: float
    count: int


def _to_epoch_seconds(ms: float) -> int:
    return int(math.ceil(ms / 1000))


class _InMemoryRateLimiter(AbstractRateLimiter):
    """Shared bookkeeping for the in-memory strategies.

    Subclasses own the entry type and implement ``_consume_locked``,
    ``_inspect`` and ``_is_stale``.
    """

    def __init__(
        self,
        policies: Iterable[RateLimitPolicy],
        *,
        clock: Callable[[], float] = time.time,
        stale_after_windows: int = 10,
        sweep_interval_seconds: float = 300.0,
    ) -> None:
        """Initialize the limiter.

        Args:
            policies: Policies keyed by their category; later duplicates win.
            clock: Time source returning UNIX time in seconds.
            stale_after_windows: Idle window lengths before an entry is evicted.
            sweep_interval_seconds: Minimum gap between opportunistic sweeps.

        Raises:
            ValueError: If the eviction settings are invalid.
        """
        if stale_after_windows < 1:
            raise ValueError("stale_after_windows must be >= 1")
        if sweep_interval_seconds <= 0:
            raise ValueError("sweep_interval_seconds must be > 0")

        self._policies: dict[str, RateLimitPolicy] = {p.category: p for p in policies}
        self._clock = clock
        self._stale_after_windows = stale_after_windows
        self._sweep_interval_ms = sweep_interval_seconds * 1000
        self._lock = threading.RLock()
        self._entries: dict[_EntryKey, Any] = {}
        self._last_sweep_ms = self._now_ms()
        self._accepted = 0
        self._rejected = 0
        self._evictions = 0

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"{type(self).__name__}(policies={sorted(self._policies)}, "
            f"entries={len(self._entries)})"
        )

    def _now_ms(self) -> float:
        return self._clock() * 1000

    def policy_for(self, category: str) -> RateLimitPolicy | None:
        return self._policies.get(category)

    def check(self, identifier: str, category: str) -> RateLimitResult:
        policy = self._policies.get(category)
        if policy is None or not identifier:
            return RateLimitResult.unlimited()

        with self._lock:
            now = self._now_ms()
            if now - self._last_sweep_ms >= self._sweep_interval_ms:
                self._sweep_locked(now)

            result = self._consume_locked((category, identifier), policy, now)
            if result.success:
                self._accepted += 1
            else:
                self._rejected += 1
            return result

    def peek(self, identifier: str, category: str) -> RateLimitResult:
        policy = self._policies.get(category)
        if policy is None or not identifier:
            return RateLimitResult.unlimited()

        with self._lock:
            now = self._now_ms()
            return self._inspect(self._entries.get((category, identifier)), policy, now)

    def sweep(self) -> int:
        with self._lock:
            return self._sweep_locked(self._now_ms())

    def stats(self) -> dict[str, int | str]:
        with self._lock:
            return {
                "strategy": self.strategy,
                "entries": len(self._entries),
                "accepted": self._accepted,
                "rejected": self._rejected,
                "evictions": self._evictions,
            }

    def _sweep_locked(self, now: float) -> int:
        stale = [
            key
            for key, entry in self._entries.items()
            if self._is_stale(entry, self._policies[key[0]], now)
        ]
        for key in stale:
            del self._entries[key]
        self._evictions += len(stale)
        self._last_sweep_ms = now

        if stale:
            logger.debug(
                "rate_limit.sweep",
                extra={"evicted": len(stale), "entries": len(self._entries)},
            )
        return len(stale)

    def _stale_horizon(self, policy: RateLimitPolicy) -> float:
        return self._stale_after_windows * policy.window_ms

    @abstractmethod
    def _consume_locked(self, key: _EntryKey, policy: RateLimitPolicy, now: float) -> RateLimitResult:
        """Record an attempt against ``key``; called with the lock held."""

    @abstractmethod
    def _inspect(self, entry: Any, policy: RateLimitPolicy, now: float) -> RateLimitResult:
        """Describe ``entry`` without changing it; ``entry`` may be None."""

    @abstractmethod
    def _is_stale(self, entry: Any, policy: RateLimitPolicy, now: float) -> bool:
        """Whether ``entry`` has been idle past the eviction horizon."""


class InMemoryFixedWindowRateLimiter(_InMemoryRateLimiter):
    """Rate limiter counting attempts in a window opened by the first attempt.

    The window for an identifier+category starts at its first attempt and
    lasts ``window_ms``. Once it has elapsed the next attempt opens a fresh
    window with nothing carried over.
    """

    strategy = "fixed"

    def _consume_locked(self, key: _EntryKey, policy: RateLimitPolicy, now: float) -> RateLimitResult:
        state = self._entries.get(key)
        if state is None or now - state.window_start >= policy.window_ms:
            state = _WindowState(window_start=now, count=0)
            self._entries[key] = state

        window_end = state.window_start + policy.window_ms
        if state.count >= policy.max_attempts:
            return RateLimitResult(
                success=False,
                limit=policy.max_attempts,
                remaining=0,
                reset=_to_epoch_seconds(window_end),
                retry_after=max(1, int(math.ceil((window_end - now) / 1000))),
            )

        state.count += 1
        return RateLimitResult(
            success=True,
            limit=policy.max_attempts,
            remaining=policy.max_attempts - state.count,
            reset=_to_epoch_seconds(window_end),
        )

    def _inspect(self, state: _WindowState | None, policy: RateLimitPolicy, now: float) -> RateLimitResult:
        if state is None or now - state.window_start >= policy.window_ms:
            return RateLimitResult(
                success=True,
                limit=policy.max_attempts,
                remaining=policy.max_attempts,
                reset=_to_epoch_seconds(now + policy.window_ms),
            )

        window_end = state.window_start + policy.window_ms
        remaining = max(0, policy.max_attempts - state.count)
        return RateLimitResult(
            success=remaining > 0,
            limit=policy.max_attempts,
            remaining=remaining,
            reset=_to_epoch_seconds(window_end),
            retry_after=None if remaining else max(1, int(math.ceil((window_end - now) / 1000))),
        )

    def _is_stale(self, state: _WindowState, policy: RateLimitPolicy, now: float) -> bool:
        return now - state.window_start > self._stale_horizon(policy)


class InMemorySlidingWindowRateLimiter(_InMemoryRateLimiter):
    """Rate limiter keeping a log of accepted attempts over a trailing window.

    An attempt is allowed when fewer than ``max_attempts`` accepted attempts
    fall within the last ``window_ms``. Smoother than the fixed window at the
    cost of one timestamp per accepted attempt.
    """

    strategy = "sliding"

    @staticmethod
    def _prune(timestamps: deque[float], policy: RateLimitPolicy, now: float) -> None:
        cutoff = now - policy.window_ms
        while timestamps and timestamps[0] <= cutoff:
            timestamps.popleft()

    def _consume_locked(self, key: _EntryKey, policy: RateLimitPolicy, now: float) -> RateLimitResult:
        timestamps: deque[float] | None = self._entries.get(key)
        if timestamps is None:
            timestamps = deque()
            self._entries[key] = timestamps

        self._prune(timestamps, policy, now)
        oldest = timestamps[0] if timestamps else now
        window_end = oldest + policy.window_ms

        if len(timestamps) >= policy.max_attempts:
            return RateLimitResult(
                success=False,
                limit=policy.max_attempts,
                remaining=0,
                reset=_to_epoch_seconds(window_end),
                retry_after=max(1, int(math.ceil((window_end - now) / 1000))),
            )

        timestamps.append(now)
        return RateLimitResult(
            success=True,
            limit=policy.max_attempts,
            remaining=policy.max_attempts - len(timestamps),
            reset=_to_epoch_seconds(window_end),
        )

    def _inspect(self, timestamps: deque[float] | None, policy: RateLimitPolicy, now: float) -> RateLimitResult:
        cutoff = now - policy.window_ms
        live = [ts for ts in (timestamps or ()) if ts > cutoff]
        oldest = live[0] if live else now
        window_end = oldest + policy.window_ms
        remaining = max(0, policy.max_attempts - len(live))
        return RateLimitResult(
            success=remaining > 0,
            limit=policy.max_attempts,
            remaining=remaining,
            reset=_to_epoch_seconds(window_end),
            retry_after=None if remaining else max(1, int(math.ceil((window_end - now) / 1000))),
        )

    def _is_stale(self, timestamps: deque[float], policy: RateLimitPolicy, now: float) -> bool:
        if not timestamps:
            return True
        return now - timestamps[-1] > self._stale_horizon(policy)
