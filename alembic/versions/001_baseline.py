"""Baseline: accounts and the append-only poke event log.

Revision ID: 001_baseline
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_baseline"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE IF NOT EXISTS accounts (
            github_id BIGINT PRIMARY KEY,
            username VARCHAR(39) UNIQUE NOT NULL,
            poke_setting VARCHAR(16) NOT NULL DEFAULT 'anyone',
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # One poke per (sender, recipient, UTC day): the race guard for concurrent pokes
    op.execute("""
        CREATE TABLE IF NOT EXISTS poke_events (
            id UUID PRIMARY KEY,
            from_username VARCHAR(39) NOT NULL,
            to_username VARCHAR(39) NOT NULL,
            occurred_at TIMESTAMPTZ NOT NULL,
            occurred_on DATE NOT NULL,
            context TEXT,
            CONSTRAINT uq_poke_events_daily UNIQUE (from_username, to_username, occurred_on)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_poke_events_to_day
        ON poke_events(to_username, occurred_on)
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS poke_events")
    op.execute("DROP TABLE IF EXISTS accounts")
