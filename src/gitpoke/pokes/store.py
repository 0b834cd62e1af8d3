"""Event store: the append-only poke log.

Both implementations enforce one event per (sender, recipient, UTC date).
A losing concurrent writer gets PokeConflictError instead of a second row.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date, datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError

from gitpoke.accounts.identifiers import Username
from gitpoke.database import Database
from gitpoke.db.models import PokeEventRow
from gitpoke.errors import PokeConflictError, TransientDependencyError
from gitpoke.pokes.policy import PokeEvent
from gitpoke.resilience import DATABASE


def _today(today: date | None) -> date:
    return today or datetime.now(timezone.utc).date()


class EventStore(ABC):
    """Abstract event store capability."""

    @abstractmethod
    async def save(self, event: PokeEvent) -> None:
        """Append an event. Raises PokeConflictError on a same-day duplicate."""
        ...

    @abstractmethod
    async def find_today_sent_by(self, username: Username, today: date | None = None) -> list[PokeEvent]:
        ...

    @abstractmethod
    async def find_today_received_by(self, username: Username, today: date | None = None) -> list[PokeEvent]:
        ...


def _to_domain(row: PokeEventRow) -> PokeEvent:
    return PokeEvent(
        id=row.id,
        sender=Username(row.from_username),
        recipient=Username(row.to_username),
        occurred_at=row.occurred_at,
        context=row.context,
    )


class SqlEventStore(EventStore):
    """PostgreSQL implementation backed by the uq_poke_events_daily constraint."""

    def __init__(self, db: Database) -> None:
        self.db = db

    async def save(self, event: PokeEvent) -> None:
        try:
            async with self.db.session() as session:
                session.add(PokeEventRow(
                    id=event.id,
                    from_username=event.sender.value,
                    to_username=event.recipient.value,
                    occurred_at=event.occurred_at,
                    occurred_on=event.utc_date,
                    context=event.context,
                ))
                await session.commit()
        except IntegrityError as exc:
            raise PokeConflictError(event.sender.value, event.recipient.value) from exc
        except OperationalError as exc:
            raise TransientDependencyError(DATABASE, str(exc)) from exc

    async def _find(self, column, username: Username, today: date | None) -> list[PokeEvent]:  # noqa: ANN001
        try:
            async with self.db.session() as session:
                result = await session.execute(
                    select(PokeEventRow)
                    .where(column == username.value, PokeEventRow.occurred_on == _today(today))
                    .order_by(PokeEventRow.occurred_at)
                )
                return [_to_domain(row) for row in result.scalars()]
        except OperationalError as exc:
            raise TransientDependencyError(DATABASE, str(exc)) from exc

    async def find_today_sent_by(self, username: Username, today: date | None = None) -> list[PokeEvent]:
        return await self._find(PokeEventRow.from_username, username, today)

    async def find_today_received_by(self, username: Username, today: date | None = None) -> list[PokeEvent]:
        return await self._find(PokeEventRow.to_username, username, today)


class InMemoryEventStore(EventStore):
    def __init__(self) -> None:
        self.events: list[PokeEvent] = []
        self._keys: set[tuple[str, str, date]] = set()

    async def save(self, event: PokeEvent) -> None:
        # check and insert with no await in between: atomic on the event loop
        if event.idempotency_key in self._keys:
            raise PokeConflictError(event.sender.value, event.recipient.value)
        self._keys.add(event.idempotency_key)
        self.events.append(event)

    async def find_today_sent_by(self, username: Username, today: date | None = None) -> list[PokeEvent]:
        day = _today(today)
        return [e for e in self.events if e.sender == username and e.utc_date == day]

    async def find_today_received_by(self, username: Username, today: date | None = None) -> list[PokeEvent]:
        day = _today(today)
        return [e for e in self.events if e.recipient == username and e.utc_date == day]
