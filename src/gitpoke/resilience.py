"""Bounded timeouts and the single retry for external dependency calls."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import structlog

from gitpoke.errors import TransientDependencyError

logger = structlog.get_logger()

T = TypeVar("T")

HOT_CACHE = "hot_cache"
DURABLE_STORE = "durable_store"
ORIGIN = "origin"
DATABASE = "database"


async def call_with_timeout(
    dependency: str,
    factory: Callable[[], Awaitable[T]],
    timeout: float,
    *,
    retries: int = 0,
) -> T:
    """Await ``factory()`` bounded by ``timeout`` seconds.

    A timeout, a connection error or an adapter's TransientDependencyError is
    retried up to ``retries`` times with no backoff, then surfaced as
    TransientDependencyError for ``dependency``. The factory is called once
    per attempt so every attempt gets a fresh coroutine.
    """
    attempt = 0
    while True:
        try:
            return await asyncio.wait_for(factory(), timeout=timeout)
        except (asyncio.TimeoutError, ConnectionError, OSError, TransientDependencyError) as exc:
            if attempt >= retries:
                detail = "timed out" if isinstance(exc, asyncio.TimeoutError) else str(exc)
                logger.warning("dependency_unavailable", dependency=dependency, detail=detail, attempts=attempt + 1)
                if isinstance(exc, TransientDependencyError):
                    raise
                raise TransientDependencyError(dependency, detail) from exc
            attempt += 1


class BackgroundTasks:
    """Owns fire-and-forget tasks so they are not garbage collected mid-flight.

    A failing task is logged and dropped; nothing is raised to the caller
    that spawned it. ``drain`` waits for whatever is still running, which
    shutdown and tests rely on.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[None]] = set()

    def spawn(self, name: str, coro: Awaitable[None]) -> asyncio.Task[None]:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(lambda t: self._finished(name, t))
        return task

    def _finished(self, name: str, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("background_task_failed", task=name, error=str(exc), error_type=type(exc).__name__)

    def __len__(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
