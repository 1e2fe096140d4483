"""
Per-source daily limit for anonymous shortcode creation.

Key format: "ratelimit:{source}:{YYYY-MM-DD}" (UTC date)
    Example: "ratelimit:203.0.113.45:2026-02-13" -> "3"

The date is part of the key, so a counter whose TTL fires late still cannot
leak into the next day. The TTL (25 hours) only garbage-collects.
"""

from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional

from shortlink_app.database.connection import utc_now
from shortlink_app.services.tiers import FREE_MAX_URLS
from .strategies import RateLimitStore

KEY_PREFIX = "ratelimit"
DEFAULT_MAX_PER_DAY = 5
DEFAULT_TTL_SECONDS = 25 * 60 * 60


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    error: Optional[str] = None


def _utc_today() -> date:
    return utc_now().date()


class RateLimiter:
    """
    Two-step limiter: check() before the work, increment() after it succeeded.

    A failed creation therefore never uses up quota.
    """

    def __init__(
        self,
        store: RateLimitStore,
        max_per_day: int = DEFAULT_MAX_PER_DAY,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        today: Callable[[], date] = _utc_today,
    ):
        self.store = store
        self.max_per_day = max_per_day
        self.ttl_seconds = ttl_seconds
        self.today = today

    def build_key(self, source: str) -> str:
        return f"{KEY_PREFIX}:{source}:{self.today().isoformat()}"

    async def check(self, source: str) -> RateLimitDecision:
        """Read-only: how many creations `source` has left today."""
        count = await self.store.get(self.build_key(source)) or 0

        if count >= self.max_per_day:
            return RateLimitDecision(
                allowed=False,
                remaining=0,
                error=(
                    f"Daily limit reached ({self.max_per_day} URLs per day). "
                    f"Sign up for a free account to get {FREE_MAX_URLS} permanent URLs."
                ),
            )

        return RateLimitDecision(allowed=True, remaining=self.max_per_day - count)

    async def increment(self, source: str) -> int:
        """
        Count one successful creation.

        Returns:
            Remaining creations for today
        """
        key = self.build_key(source)
        count = (await self.store.get(key) or 0) + 1
        await self.store.put(key, count, self.ttl_seconds)
        return max(self.max_per_day - count, 0)
