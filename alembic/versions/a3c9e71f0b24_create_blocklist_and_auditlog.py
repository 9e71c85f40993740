"""create_blocklist_and_auditlog

Revision ID: a3c9e71f0b24
Revises:
Create Date: 2026-10-19 09:12:41.118203

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "a3c9e71f0b24"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create the blocklist table (default name) and the audit log.

    Deployments with a custom blocklist table name run with
    create_tables enabled instead of this migration.
    """
    op.create_table(
        "blocklist",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("hash", sa.String(length=100), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("user", sa.String(length=100), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("hash"),
    )
    op.create_index("ix_blocklist_deleted_at", "blocklist", ["deleted_at"])

    op.create_table(
        "auditlog",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("typ", sa.String(length=10), nullable=False),
        sa.Column("ids", sa.Text(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("user", sa.String(length=100), nullable=False),
        sa.CheckConstraint("typ IN ('block', 'unblock')", name="ck_auditlog_typ"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_auditlog_created_at", "auditlog", ["created_at"])


def downgrade() -> None:
    """Drop the audit log and the blocklist table."""
    op.drop_index("ix_auditlog_created_at", table_name="auditlog")
    op.drop_table("auditlog")
    op.drop_index("ix_blocklist_deleted_at", table_name="blocklist")
    op.drop_table("blocklist")
