"""Poke use case: gates, authorization, persistence, notification.

Policy denials come back as a failed ``PokeResult``. Exceptions are reserved
for invariant violations (self-poke) and transient dependency failures.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone

import structlog

from gitpoke.accounts.identifiers import Username
from gitpoke.accounts.store import AccountStore
from gitpoke.activity.source import ActivitySource
from gitpoke.errors import PokeConflictError, SelfPokeError
from gitpoke.pokes.anti_abuse import FixedWindowRateLimiter, already_poked_today
from gitpoke.pokes.notifier import PokeNotifier
from gitpoke.pokes.policy import (
    CannotPoke,
    CanPoke,
    FollowRelation,
    PokeEvent,
    PokeFailureReason,
    PokeSetting,
    UserAccount,
    Verdict,
    authorize,
)
from gitpoke.pokes.store import EventStore
from gitpoke.resilience import DATABASE, ORIGIN, BackgroundTasks, call_with_timeout

logger = structlog.get_logger()


@dataclass(frozen=True, slots=True)
class PokeResult:
    success: bool
    message: str
    event_id: uuid.UUID | None = None
    reason: PokeFailureReason | None = None
    event: PokeEvent | None = None

    @classmethod
    def sent(cls, event: PokeEvent) -> PokeResult:
        return cls(
            success=True,
            message=f"Poked {event.recipient.value}!",
            event_id=event.id,
            event=event,
        )

    @classmethod
    def denied(cls, reason: PokeFailureReason) -> PokeResult:
        return cls(success=False, message=reason.message, reason=reason)


@dataclass(frozen=True, slots=True)
class PokeHistory:
    sent: list[PokeEvent] = field(default_factory=list)
    received: list[PokeEvent] = field(default_factory=list)


class PokeService:
    def __init__(
        self,
        accounts: AccountStore,
        events: EventStore,
        social_graph: ActivitySource,
        limiter: FixedWindowRateLimiter,
        notifier: PokeNotifier,
        background: BackgroundTasks,
        *,
        store_timeout: float = 2.0,
        origin_timeout: float = 3.0,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.accounts = accounts
        self.events = events
        self.social_graph = social_graph
        self.limiter = limiter
        self.notifier = notifier
        self.background = background
        self.store_timeout = store_timeout
        self.origin_timeout = origin_timeout
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def poke(
        self,
        sender: Username,
        recipient: Username,
        *,
        client_ip: str,
        context: str | None = None,
    ) -> PokeResult:
        """Record a poke if every gate passes.

        Order: self-poke check, IP rate gate, recipient lookup, authorization
        against the current setting and follow relation, same-day duplicate
        gate, insert. A racing duplicate that slips past the gate is caught
        by the store's uniqueness constraint and reported as already_poked.
        """
        _reject_self_poke(sender, recipient)

        decision = await self.limiter.hit(client_ip)
        if not decision.allowed:
            logger.info("poke_rate_limited", ip=client_ip, count=decision.count, limit=decision.limit)
            return PokeResult.denied(PokeFailureReason.RATE_LIMITED)

        verdict = await self._evaluate(sender, recipient)
        if isinstance(verdict, CannotPoke):
            logger.info("poke_denied", sender=sender.value, recipient=recipient.value, reason=verdict.reason.value)
            return PokeResult.denied(verdict.reason)

        now = self._clock()
        today = now.astimezone(timezone.utc).date()
        if await already_poked_today(
            self.events, verdict.sender, verdict.recipient, today, timeout=self.store_timeout
        ):
            logger.info("poke_denied", sender=sender.value, recipient=recipient.value, reason="already_poked")
            return PokeResult.denied(PokeFailureReason.ALREADY_POKED)

        event = PokeEvent.from_verdict(verdict, context=context, now=now)
        try:
            await call_with_timeout(DATABASE, lambda: self.events.save(event), self.store_timeout)
        except PokeConflictError:
            logger.info("poke_conflict", sender=sender.value, recipient=recipient.value)
            return PokeResult.denied(PokeFailureReason.ALREADY_POKED)

        logger.info("poke_sent", event_id=str(event.id), sender=event.sender.value, recipient=event.recipient.value)
        self.background.spawn("poke_notification", self._notify(event))
        return PokeResult.sent(event)

    async def preview(self, sender: Username, recipient: Username) -> Verdict:
        """The verdict a poke would get right now, without gates or persistence."""
        _reject_self_poke(sender, recipient)
        verdict = await self._evaluate(sender, recipient)
        if isinstance(verdict, CanPoke):
            today = self._clock().astimezone(timezone.utc).date()
            if await already_poked_today(
                self.events, verdict.sender, verdict.recipient, today, timeout=self.store_timeout
            ):
                return CannotPoke(PokeFailureReason.ALREADY_POKED)
        return verdict

    async def today_history(self, username: Username) -> PokeHistory:
        today = self._clock().astimezone(timezone.utc).date()
        sent = await call_with_timeout(
            DATABASE, lambda: self.events.find_today_sent_by(username, today), self.store_timeout, retries=1
        )
        received = await call_with_timeout(
            DATABASE, lambda: self.events.find_today_received_by(username, today), self.store_timeout, retries=1
        )
        return PokeHistory(sent=sent, received=received)

    async def _evaluate(self, sender: Username, recipient: Username) -> Verdict:
        account = await call_with_timeout(
            DATABASE, lambda: self.accounts.find_by_username(recipient), self.store_timeout, retries=1
        )
        if account is None:
            return CannotPoke(PokeFailureReason.RECIPIENT_NOT_REGISTERED)
        relation = await self._relation(sender, account)
        return authorize(sender, account, relation)

    async def _relation(self, sender: Username, recipient: UserAccount) -> FollowRelation:
        # Anyone and Disabled do not depend on the graph
        if recipient.poke_setting in (PokeSetting.ANYONE, PokeSetting.DISABLED):
            return FollowRelation.NONE
        return await call_with_timeout(
            ORIGIN,
            lambda: self.social_graph.fetch_follow_relation(sender, recipient.username),
            self.origin_timeout,
            retries=1,
        )

    async def _notify(self, event: PokeEvent) -> None:
        try:
            await self.notifier.notify(event)
        except Exception as exc:  # noqa: BLE001
            logger.warning("poke_notification_failed", event_id=str(event.id), error=str(exc))


def _reject_self_poke(sender: Username, recipient: Username) -> None:
    # GitHub logins are case-insensitive
    if sender.value.lower() == recipient.value.lower():
        raise SelfPokeError()
