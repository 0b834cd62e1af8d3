"""Origin activity source and social graph source.

Production reads the GitHub REST API with httpx; the in-memory source serves
canned records for local runs and tests.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from datetime import date, datetime, timedelta, timezone
from typing import Any

import httpx
import structlog

from gitpoke.accounts.identifiers import Username
from gitpoke.activity.classifier import ActivityRecord
from gitpoke.errors import TransientDependencyError
from gitpoke.pokes.policy import FollowRelation
from gitpoke.resilience import ORIGIN

logger = structlog.get_logger()

EVENTS_PAGE_SIZE = 100


def current_streak(active_days: Iterable[date], today: date) -> int | None:
    """Consecutive active days ending today (or yesterday, if today is still empty)."""
    days = set(active_days)
    if not days:
        return None
    cursor = today if today in days else today - timedelta(days=1)
    streak = 0
    while cursor in days:
        streak += 1
        cursor -= timedelta(days=1)
    return streak


class ActivitySource(ABC):
    """Origin activity + social graph capability."""

    @abstractmethod
    async def fetch_activity(self, username: Username) -> ActivityRecord | None:
        """Return the user's activity, or None when GitHub has no such user.

        Raises TransientDependencyError when the origin is unreachable.
        """
        ...

    @abstractmethod
    async def fetch_follow_relation(self, sender: Username, recipient: Username) -> FollowRelation:
        ...

    @abstractmethod
    async def ping(self) -> bool:
        ...


class GitHubActivitySource(ActivitySource):
    """GitHub REST API client. The httpx.AsyncClient is owned by AppDependencies."""

    def __init__(self, client: httpx.AsyncClient, clock: Callable[[], datetime] | None = None) -> None:
        self.client = client
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @staticmethod
    def build_client(base_url: str, token: str, user_agent: str, timeout: float) -> httpx.AsyncClient:
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": user_agent,
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return httpx.AsyncClient(base_url=base_url, headers=headers, timeout=timeout)

    async def _get(self, path: str, **params: Any) -> httpx.Response:  # noqa: ANN401
        try:
            response = await self.client.get(path, params=params or None)
        except httpx.HTTPError as exc:
            raise TransientDependencyError(ORIGIN, str(exc)) from exc
        if response.status_code >= 500 or response.status_code == 429:
            raise TransientDependencyError(ORIGIN, f"GitHub responded {response.status_code}")
        if response.status_code == 403 and response.headers.get("X-RateLimit-Remaining") == "0":
            raise TransientDependencyError(ORIGIN, "GitHub rate limit exhausted")
        return response

    async def fetch_activity(self, username: Username) -> ActivityRecord | None:
        now = self._clock()
        response = await self._get(f"/users/{username.value}/events/public", per_page=EVENTS_PAGE_SIZE)
        if response.status_code == 404:
            return None
        if response.status_code != 200:
            raise TransientDependencyError(ORIGIN, f"GitHub responded {response.status_code}")

        timestamps = [
            datetime.fromisoformat(event["created_at"].replace("Z", "+00:00"))
            for event in response.json()
            if event.get("created_at")
        ]
        last_activity_at = max(timestamps) if timestamps else None
        streak = current_streak((ts.astimezone(timezone.utc).date() for ts in timestamps), now.date())
        logger.debug("origin_activity_fetched", username=username.value, events=len(timestamps))
        return ActivityRecord(
            username=username,
            last_activity_at=last_activity_at,
            current_streak_days=streak,
            fetched_at=now,
        )

    async def _follows(self, follower: Username, target: Username) -> bool:
        response = await self._get(f"/users/{follower.value}/following/{target.value}")
        return response.status_code == 204

    async def fetch_follow_relation(self, sender: Username, recipient: Username) -> FollowRelation:
        if not await self._follows(sender, recipient):
            return FollowRelation.NONE
        if await self._follows(recipient, sender):
            return FollowRelation.MUTUAL
        return FollowRelation.FOLLOWER

    async def ping(self) -> bool:
        response = await self._get("/rate_limit")
        return response.status_code == 200


class InMemoryActivitySource(ActivitySource):
    """Canned activity and follow edges. ``fail_next`` simulates origin outages."""

    def __init__(self) -> None:
        self.records: dict[str, ActivityRecord] = {}
        self.follows: set[tuple[str, str]] = set()
        self.fetch_count = 0
        self.fail_next = 0

    def add_activity(self, record: ActivityRecord) -> None:
        self.records[record.username.value] = record

    def follow(self, follower: str, target: str) -> None:
        self.follows.add((follower, target))

    def _maybe_fail(self) -> None:
        if self.fail_next > 0:
            self.fail_next -= 1
            raise TransientDependencyError(ORIGIN, "simulated outage")

    async def fetch_activity(self, username: Username) -> ActivityRecord | None:
        self.fetch_count += 1
        self._maybe_fail()
        return self.records.get(username.value)

    async def fetch_follow_relation(self, sender: Username, recipient: Username) -> FollowRelation:
        self._maybe_fail()
        forward = (sender.value, recipient.value) in self.follows
        backward = (recipient.value, sender.value) in self.follows
        if forward and backward:
            return FollowRelation.MUTUAL
        if forward:
            return FollowRelation.FOLLOWER
        return FollowRelation.NONE

    async def ping(self) -> bool:
        return True
