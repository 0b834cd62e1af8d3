"""Shared test fixtures.

Everything runs on the in-memory adapters: no Redis, PostgreSQL, S3 or
GitHub is needed.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from gitpoke.accounts.identifiers import Username
from gitpoke.activity.classifier import ActivityRecord
from gitpoke.config import Settings
from gitpoke.dependencies import AppDependencies
from gitpoke.main import create_app

NOW = datetime(2026, 3, 4, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Wall clock and monotonic clock that only move when told to."""

    def __init__(self, start: datetime = NOW) -> None:
        self.now = start
        self._monotonic = 1000.0

    def __call__(self) -> datetime:
        return self.now

    def monotonic(self) -> float:
        return self._monotonic

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)
        self._monotonic += seconds


def make_record(username: str, days_ago: int | None, *, streak: int | None = None, now: datetime = NOW) -> ActivityRecord:
    last = None if days_ago is None else now - timedelta(days=days_ago, hours=1)
    return ActivityRecord(
        username=Username(username),
        last_activity_at=last,
        current_streak_days=streak,
        fetched_at=now,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        storage_backend="memory",
        session_secret="test-session-secret-0123456789abcdef",
        log_format="console",
        poke_per_ip_per_minute=10,
        badge_per_ip_per_minute=100,
    )


@pytest.fixture
def deps(settings: Settings, clock: FakeClock) -> AppDependencies:
    return AppDependencies.in_memory(settings, clock=clock, hot_clock=clock.monotonic)


@pytest_asyncio.fixture
async def client(settings: Settings, deps: AppDependencies) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client over the ASGI app with the in-memory container attached."""
    app = create_app(settings, deps)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    await deps.background.drain()


@pytest.fixture
def login(client: AsyncClient, deps: AppDependencies) -> Callable[[int, str], Awaitable[dict[str, str]]]:
    """Register a GitHub identity, log it in, return auth headers."""

    async def _login(github_id: int, username: str) -> dict[str, str]:
        token = f"gh-token-{github_id}"
        deps.identity.register(token, github_id, username)
        response = await client.post("/api/v1/auth/github", json={"access_token": token})
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['token']}"}

    return _login


@pytest.fixture
def record() -> Callable[..., ActivityRecord]:
    """Factory for activity records ``days_ago`` whole days before NOW."""
    return make_record


@pytest.fixture
def now() -> datetime:
    return NOW
