"""Best-effort poke notifications.

The production notifier publishes to the recipient's ``ws:user:{username}``
Redis channel; a websocket bridge (outside this service) fans it out.
Dispatch happens in the background and never affects the poke result.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from redis.exceptions import RedisError

from gitpoke.errors import TransientDependencyError
from gitpoke.pokes.policy import PokeEvent
from gitpoke.resilience import HOT_CACHE

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)


def notification_payload(event: PokeEvent) -> dict:
    return {
        "event": "poke",
        "data": {
            "id": str(event.id),
            "from": event.sender.value,
            "to": event.recipient.value,
            "timestamp": event.occurred_at.isoformat(),
            "repository": event.context,
        },
    }


class PokeNotifier(ABC):
    @abstractmethod
    async def notify(self, event: PokeEvent) -> None:
        """Deliver a notification for an accepted poke. May raise."""
        ...


class RedisPubSubNotifier(PokeNotifier):
    def __init__(self, redis: Redis) -> None:
        self.redis = redis

    async def notify(self, event: PokeEvent) -> None:
        channel = f"ws:user:{event.recipient.value}"
        try:
            receivers = await self.redis.publish(channel, json.dumps(notification_payload(event)))
        except RedisError as exc:
            raise TransientDependencyError(HOT_CACHE, str(exc)) from exc
        logger.debug("Published poke %s to %s (%d receivers)", event.id, channel, receivers)


class RecordingNotifier(PokeNotifier):
    """Keeps delivered events in memory. Set ``fail`` to simulate a broken channel."""

    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.delivered: list[PokeEvent] = []

    async def notify(self, event: PokeEvent) -> None:
        if self.fail:
            raise ConnectionError("notification channel unavailable")
        self.delivered.append(event)
