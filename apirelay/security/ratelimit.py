"""Rate limiting using in-memory fixed window counters.

Each key (base_url + endpoint for the API client) gets a budget of points
per window. When the budget is exhausted the key is blocked for
block_duration seconds; once the block ends the key starts a fresh window.
Requests over budget are rejected, never queued.
"""

import time
from dataclasses import dataclass


@dataclass
class RateLimitBudget:
    points_remaining: int
    window_start: float
    window_seconds: float
    block_seconds: float
    blocked_until: float = 0.0
    total_hits: int = 0

    @property
    def window_end(self) -> float:
        return self.window_start + self.window_seconds


@dataclass
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    ms_before_next: int
    total_hits: int

    @property
    def retry_after_seconds(self) -> float:
        return round(self.ms_before_next / 1000, 1)

    def to_dict(self) -> dict:
        return {
            "remainingPoints": self.remaining,
            "msBeforeNext": self.ms_before_next,
            "totalHits": self.total_hits,
            "maxPoints": self.limit,
        }


class RateLimiter:
    """Per-key fixed window limiter with a cool-down block."""

    def __init__(self, points: int, duration_seconds: float, block_duration_seconds: float = 0):
        self.points = points
        self.duration_seconds = duration_seconds
        self.block_duration_seconds = block_duration_seconds
        self._budgets: dict[str, RateLimitBudget] = {}
        self._next_sweep = 0.0

    def _fresh_budget(self, now: float) -> RateLimitBudget:
        return RateLimitBudget(
            points_remaining=self.points,
            window_start=now,
            window_seconds=self.duration_seconds,
            block_seconds=self.block_duration_seconds,
        )

    def _is_stale(self, budget: RateLimitBudget, now: float) -> bool:
        if budget.blocked_until:
            return now >= budget.blocked_until
        return now >= budget.window_end

    def consume(self, key: str) -> RateLimitResult:
        """Spend one point for key, or report how long until one is available."""
        now = time.monotonic()
        if now >= self._next_sweep:
            self.sweep(now)
        budget = self._budgets.get(key)
        if budget is None or self._is_stale(budget, now):
            budget = self._fresh_budget(now)
            self._budgets[key] = budget

        budget.total_hits += 1

        if budget.blocked_until > now:
            return self._result(False, budget, budget.blocked_until - now)

        if budget.points_remaining > 0:
            budget.points_remaining -= 1
            return self._result(True, budget, budget.window_end - now)

        if budget.block_seconds > 0:
            budget.blocked_until = now + budget.block_seconds
            return self._result(False, budget, budget.block_seconds)
        return self._result(False, budget, budget.window_end - now)

    def status(self, key: str) -> RateLimitResult:
        """Read-only view of a key's budget. Never mutates state."""
        now = time.monotonic()
        budget = self._budgets.get(key)
        if budget is None or self._is_stale(budget, now):
            return RateLimitResult(
                allowed=True, limit=self.points, remaining=self.points,
                ms_before_next=0, total_hits=0,
            )
        if budget.blocked_until > now:
            return self._result(False, budget, budget.blocked_until - now)
        return self._result(budget.points_remaining > 0, budget, budget.window_end - now)

    def snapshot(self) -> dict[str, RateLimitResult]:
        """Status of every key whose window or block is still running."""
        now = time.monotonic()
        return {
            key: self.status(key)
            for key, budget in list(self._budgets.items())
            if not self._is_stale(budget, now)
        }

    def sweep(self, now: float | None = None) -> int:
        """Drop budgets whose window, or block, has ended.

        Runs from consume() at most once per window.
        """
        if now is None:
            now = time.monotonic()
        self._next_sweep = now + self.duration_seconds
        stale = [key for key, budget in self._budgets.items() if self._is_stale(budget, now)]
        for key in stale:
            del self._budgets[key]
        return len(stale)

    def reset(self, key: str) -> None:
        """Clear rate limit state for a key."""
        self._budgets.pop(key, None)

    def _result(self, allowed: bool, budget: RateLimitBudget, seconds: float) -> RateLimitResult:
        return RateLimitResult(
            allowed=allowed,
            limit=self.points,
            remaining=budget.points_remaining,
            ms_before_next=max(0, int(seconds * 1000)),
            total_hits=budget.total_hits,
        )
