"""ORM models for accounts and the poke event log."""

from __future__ import annotations

import uuid
from datetime import date, datetime

from sqlalchemy import BigInteger, Date, DateTime, Index, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from gitpoke.db.base import Base


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


class Account(Base):
    """Maps to the 'accounts' table. Keyed by the immutable GitHub id.

    ``username`` is NULL while the row has released its name to another account.
    """

    __tablename__ = "accounts"
    __table_args__ = (UniqueConstraint("username", name="uq_accounts_username"),)

    github_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    username: Mapped[str | None] = mapped_column(String(39), nullable=True)
    poke_setting: Mapped[str] = mapped_column(String(16), nullable=False, server_default="anyone")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------------------------------------------------------
# Poke events (append-only)
# ---------------------------------------------------------------------------


class PokeEventRow(Base):
    """Maps to the 'poke_events' table.

    The (from_username, to_username, occurred_on) constraint makes a second
    same-day poke fail at insert time even when two requests race past the
    duplicate check.
    """

    __tablename__ = "poke_events"
    __table_args__ = (
        UniqueConstraint("from_username", "to_username", "occurred_on", name="uq_poke_events_daily"),
        Index("idx_poke_events_to_day", "to_username", "occurred_on"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True)
    from_username: Mapped[str] = mapped_column(String(39), nullable=False)
    to_username: Mapped[str] = mapped_column(String(39), nullable=False)
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    occurred_on: Mapped[date] = mapped_column(Date, nullable=False)
    context: Mapped[str | None] = mapped_column(Text, nullable=True)
