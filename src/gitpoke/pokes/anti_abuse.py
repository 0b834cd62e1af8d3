"""Anti-abuse gates run before a poke is recorded.

- Fixed-window per-IP rate limit on an atomic hot-cache counter.
- At most one poke per (sender, recipient, UTC calendar day).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from gitpoke.accounts.identifiers import Username
from gitpoke.cache.hot import HotCache
from gitpoke.pokes.store import EventStore
from gitpoke.resilience import DATABASE, HOT_CACHE, call_with_timeout


@dataclass(frozen=True, slots=True)
class RateLimitDecision:
    allowed: bool
    count: int
    limit: int
    window_seconds: int

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.count)


class FixedWindowRateLimiter:
    """Counts hits per identity in fixed windows of ``window_seconds``.

    The counter key expires with the window; the first hit after expiry
    starts a fresh window at 1. A hot-cache failure propagates as
    TransientDependencyError so callers cannot silently bypass the limit.
    """

    def __init__(
        self,
        hot: HotCache,
        *,
        scope: str,
        limit: int,
        window_seconds: int = 60,
        timeout: float = 1.0,
    ) -> None:
        self.hot = hot
        self.scope = scope
        self.limit = limit
        self.window_seconds = window_seconds
        self.timeout = timeout

    def key_for(self, ip: str) -> str:
        return f"rate_limit:{self.scope}:ip:{ip}"

    async def hit(self, ip: str) -> RateLimitDecision:
        key = self.key_for(ip)
        # no retry: a retried INCR may count twice
        count = await call_with_timeout(
            HOT_CACHE, lambda: self.hot.incr_with_expiry(key, self.window_seconds), self.timeout
        )
        return RateLimitDecision(
            allowed=count <= self.limit,
            count=count,
            limit=self.limit,
            window_seconds=self.window_seconds,
        )


async def already_poked_today(
    events: EventStore,
    sender: Username,
    recipient: Username,
    today: date,
    *,
    timeout: float = 2.0,
) -> bool:
    """True if ``sender`` has a recorded poke to ``recipient`` on ``today`` (UTC)."""
    sent = await call_with_timeout(
        DATABASE, lambda: events.find_today_sent_by(sender, today), timeout, retries=1
    )
    return any(event.recipient == recipient for event in sent)
