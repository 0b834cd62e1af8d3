"""Let an account release its username to the account that now owns it on GitHub.

Revision ID: 002_release_usernames
Revises: 001_baseline
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "002_release_usernames"
down_revision: str | None = "001_baseline"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.execute("ALTER TABLE accounts ALTER COLUMN username DROP NOT NULL")
    # Postgres names the inline constraint accounts_username_key; give it a stable name
    op.execute("ALTER TABLE accounts RENAME CONSTRAINT accounts_username_key TO uq_accounts_username")


def downgrade() -> None:
    op.execute("DELETE FROM accounts WHERE username IS NULL")
    op.execute("ALTER TABLE accounts RENAME CONSTRAINT uq_accounts_username TO accounts_username_key")
    op.execute("ALTER TABLE accounts ALTER COLUMN username SET NOT NULL")
