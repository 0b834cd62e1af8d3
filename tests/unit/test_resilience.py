"""Timeout, single retry, and background task handling."""

import asyncio

import pytest

from gitpoke.errors import TransientDependencyError
from gitpoke.resilience import BackgroundTasks, call_with_timeout


class Flaky:
    def __init__(self, failures: int, exc: Exception | None = None) -> None:
        self.failures = failures
        self.calls = 0
        self.exc = exc or ConnectionError("refused")

    async def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.exc
        return "ok"


class TestCallWithTimeout:
    async def test_success(self):
        assert await call_with_timeout("origin", Flaky(0), 1.0) == "ok"

    async def test_one_retry_recovers(self):
        flaky = Flaky(1)
        assert await call_with_timeout("origin", flaky, 1.0, retries=1) == "ok"
        assert flaky.calls == 2

    async def test_gives_up_after_retries(self):
        flaky = Flaky(2)
        with pytest.raises(TransientDependencyError) as exc_info:
            await call_with_timeout("origin", flaky, 1.0, retries=1)
        assert exc_info.value.dependency == "origin"
        assert flaky.calls == 2

    async def test_no_retry_by_default(self):
        flaky = Flaky(1)
        with pytest.raises(TransientDependencyError):
            await call_with_timeout("hot_cache", flaky, 1.0)
        assert flaky.calls == 1

    async def test_timeout_becomes_transient(self):
        async def slow():
            await asyncio.sleep(1)

        with pytest.raises(TransientDependencyError) as exc_info:
            await call_with_timeout("durable_store", slow, 0.01)
        assert "timed out" in str(exc_info.value)

    async def test_other_errors_propagate(self):
        with pytest.raises(KeyError):
            await call_with_timeout("origin", Flaky(1, KeyError("x")), 1.0, retries=3)


class TestBackgroundTasks:
    async def test_failures_are_swallowed(self):
        background = BackgroundTasks()

        async def boom():
            raise RuntimeError("nope")

        background.spawn("boom", boom())
        await background.drain()
        assert len(background) == 0

    async def test_drain_waits(self):
        background = BackgroundTasks()
        done = []

        async def work():
            await asyncio.sleep(0.01)
            done.append(True)

        background.spawn("work", work())
        await background.drain()
        assert done == [True]
