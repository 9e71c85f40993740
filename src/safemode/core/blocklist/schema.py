# src/safemode/core/blocklist/schema.py
"""SQLAlchemy table definitions for the relational blocklist.

Uses SQLAlchemy Core (not ORM) for explicit control over queries
and compatibility with SQLite (tests) and PostgreSQL (production).

The blocklist table name is configurable per deployment; the audit
table is always "auditlog".
"""

from dataclasses import dataclass
from functools import lru_cache

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
)

DEFAULT_BLOCKLIST_TABLE = "blocklist"
AUDITLOG_TABLE = "auditlog"


@dataclass(frozen=True)
class BlocklistSchema:
    """Tables for one blocklist table name, sharing one MetaData."""

    metadata: MetaData
    blocklist: Table
    auditlog: Table


@lru_cache(maxsize=None)
def build_schema(blocklist_table: str = DEFAULT_BLOCKLIST_TABLE) -> BlocklistSchema:
    """Build (once per name) the table definitions.

    Both tables carry created_at/updated_at/deleted_at bookkeeping columns.
    deleted_at marks soft-deleted rows, which reads ignore.
    """
    if blocklist_table == AUDITLOG_TABLE:
        raise ValueError(f"blocklist table name must differ from {AUDITLOG_TABLE!r}")

    metadata = MetaData()

    # === Blocklist entries ===

    blocklist = Table(
        blocklist_table,
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("created_at", DateTime(timezone=True), nullable=False),
        Column("updated_at", DateTime(timezone=True), nullable=False),
        Column("deleted_at", DateTime(timezone=True)),  # Soft-delete marker
        # Normalized CIDv1; unique so concurrent blocks of one CID insert once
        Column("hash", String(100), nullable=False, unique=True),
        Column("content", Text, nullable=False),  # JSON array of URLs/locators
        Column("reason", Text, nullable=False, default=""),
        Column("user", String(100), nullable=False),
        Index(f"ix_{blocklist_table}_deleted_at", "deleted_at"),
    )

    # === Audit log (append-only) ===

    auditlog = Table(
        AUDITLOG_TABLE,
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("created_at", DateTime(timezone=True), nullable=False),
        Column("updated_at", DateTime(timezone=True), nullable=False),
        Column("deleted_at", DateTime(timezone=True)),
        Column("typ", String(10), nullable=False),
        Column("ids", Text, nullable=False),  # ";"-joined CID strings
        Column("reason", Text, nullable=False, default=""),
        Column("user", String(100), nullable=False),
        CheckConstraint("typ IN ('block', 'unblock')", name="ck_auditlog_typ"),
        Index("ix_auditlog_created_at", "created_at"),
    )

    return BlocklistSchema(metadata=metadata, blocklist=blocklist, auditlog=auditlog)
