# src/safemode/core/blocklist/relational.py
"""Relational blocklist backed by SQLAlchemy Core.

Two tables: blocklist entries (configurable name) and the append-only
"auditlog". Every identifier is normalized to its CIDv1 string before it
is used as the hash column value.

Idempotence of block() under concurrent callers comes from the UNIQUE
constraint on the hash column, not from a read-then-write: a constraint
violation on insert means another caller blocked the content first.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from datetime import datetime
from typing import Any, Self

import structlog
from sqlalchemy import delete, func, insert, select
from sqlalchemy.engine import Row
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from safemode.contracts.blocklist import (
    DEFAULT_LOG_LIMIT,
    Action,
    BlockData,
    BlocklistItem,
    validate_action_type,
)
from safemode.contracts.datastore import Datastore
from safemode.contracts.errors import NotFoundError, StoreFailureError
from safemode.core.blocklist._helpers import as_utc, log_action, now, purge_payload, store_errors
from safemode.core.blocklist.database import DEFAULT_POOL_SIZE, BlocklistDB
from safemode.core.canonical import canonical_json
from safemode.core.identifiers import ContentId, content_key, parse_cid
from safemode.core.logging import get_logger

# Separator of CID strings in auditlog.ids
_IDS_SEPARATOR = ";"

# Label used in store failure messages for audit log reads
_AUDIT_LABEL = "auditlog"


class RelationalBlocklist:
    """Blocklist stored in a relational database.

    The payload purge goes to a separate content datastore; the database
    only holds blocklist metadata and the audit log.
    """

    def __init__(
        self,
        db: BlocklistDB,
        content_store: Datastore,
        *,
        logger: structlog.stdlib.BoundLogger | None = None,
        clock: Callable[[], datetime] = now,
    ) -> None:
        """Initialize the blocklist.

        Args:
            db: Connection manager; held for the blocklist's lifetime
            content_store: Datastore holding raw content payloads (purge only)
            logger: Sink for action traces, defaults to this module's logger
            clock: Source of write timestamps
        """
        self._db = db
        self._content_store = content_store
        self._log = logger if logger is not None else get_logger(__name__)
        self._clock = clock
        self._blocklist = db.schema.blocklist
        self._auditlog = db.schema.auditlog

    @classmethod
    def connect(
        cls,
        host: str,
        port: int | str,
        user: str,
        password: str,
        dbname: str,
        blocklist_table: str,
        content_store: Datastore,
        *,
        pool_size: int = DEFAULT_POOL_SIZE,
        create_tables: bool = True,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> Self:
        """Connect to PostgreSQL and build a blocklist on top of it."""
        db = BlocklistDB.from_postgres(
            host,
            port,
            user,
            password,
            dbname,
            blocklist_table=blocklist_table,
            pool_size=pool_size,
            create_tables=create_tables,
        )
        return cls(db, content_store, logger=logger)

    @property
    def db(self) -> BlocklistDB:
        """Underlying database connection manager, for direct queries."""
        return self._db

    def _live(self, key: str) -> Any:
        """WHERE clause selecting the non-soft-deleted entry for key."""
        return (self._blocklist.c.hash == key) & (self._blocklist.c.deleted_at.is_(None))

    def contains(self, id: ContentId) -> bool:
        """Return True if the blocklist contains the content referenced by id."""
        key = content_key(id)
        query = select(func.count()).select_from(self._blocklist).where(self._live(key))
        with store_errors("contains", key, SQLAlchemyError), self._db.connection() as conn:
            count = conn.execute(query).scalar_one()
        return count > 0

    def block(self, id: ContentId, data: BlockData) -> bool:
        """Add id to the list of content we won't serve, seed, or fetch.

        Returns True if id was newly blocked. If it was already blocked,
        returns False and the metadata (reason / user / time) of the first
        block are kept.

        A soft-deleted row for the same hash is removed in the same
        transaction so it cannot collide with the new entry.
        """
        key = content_key(id)
        stamp = as_utc(self._clock())
        table = self._blocklist
        try:
            with self._db.connection() as conn:
                conn.execute(delete(table).where((table.c.hash == key) & table.c.deleted_at.isnot(None)))
                conn.execute(
                    insert(table).values(
                        created_at=stamp,
                        updated_at=stamp,
                        deleted_at=None,
                        hash=key,
                        content=canonical_json(list(data.content)),
                        reason=data.reason,
                        user=data.user,
                    )
                )
        except IntegrityError:
            self._log.info("content_already_blocked", hash=key, user=data.user)
            return False
        except SQLAlchemyError as e:
            raise StoreFailureError(f"block failed for {key}: {e}") from e
        self._log.info("content_blocked", hash=key, user=data.user, reason=data.reason)
        return True

    def unblock(self, id: ContentId) -> None:
        """Remove id from the blocklist permanently (hard delete, not soft).

        Raises:
            NotFoundError: If id is not blocked
        """
        key = content_key(id)
        with store_errors("unblock", key, SQLAlchemyError), self._db.connection() as conn:
            result = conn.execute(delete(self._blocklist).where(self._live(key)))
        if result.rowcount == 0:
            raise NotFoundError(f"blocklist item not found: {key}")
        self._log.info("content_unblocked", hash=key)

    def search(self, id: ContentId) -> BlocklistItem:
        """Return metadata about why/when the content identified by id was blocked.

        Raises:
            NotFoundError: If the content isn't blocked
        """
        key = content_key(id)
        query = select(self._blocklist).where(self._live(key))
        with store_errors("search", key, SQLAlchemyError), self._db.connection() as conn:
            row = conn.execute(query).fetchone()
        if row is None:
            raise NotFoundError(f"blocklist item not found: {key}")
        return _load_item(row)

    def purge(self, id: ContentId) -> None:
        """Remove any copies of the content referenced by id from the content store."""
        purge_payload(self._content_store, id, self._log)

    def add_log(self, action: Action) -> Action:
        """Save a record that action took place.

        Raises:
            InvalidActionTypeError: If action.typ is not block/unblock;
                nothing is written
        """
        typ = validate_action_type(action.typ)
        stamp = as_utc(self._clock())
        stored = Action(
            typ=typ.value,
            ids=action.ids,
            reason=action.reason,
            user=action.user,
            created_at=stamp,
        )
        raw_ids = _IDS_SEPARATOR.join(str(i) for i in stored.ids)
        with store_errors("add_log", raw_ids, SQLAlchemyError), self._db.connection() as conn:
            conn.execute(
                insert(self._auditlog).values(
                    created_at=stamp,
                    updated_at=stamp,
                    deleted_at=None,
                    typ=stored.typ,
                    ids=raw_ids,
                    reason=stored.reason,
                    user=stored.user,
                )
            )
        log_action(self._log, stored)
        return stored

    def get_logs(self, limit: int = DEFAULT_LOG_LIMIT) -> list[Action]:
        """Return the last limit auditable actions, in reverse chronological order.

        Ties on created_at are broken by action type, then by insertion order
        (newest first).

        Raises:
            InvalidIdentifierError: If a stored id no longer parses as a CID
        """
        if limit < 0:
            raise ValueError(f"limit must be non-negative, got {limit}")
        table = self._auditlog
        query = (
            select(table)
            .where(table.c.deleted_at.is_(None))
            .order_by(table.c.created_at.desc(), table.c.typ.asc(), table.c.id.desc())
            .limit(limit)
        )
        with store_errors("get_logs", _AUDIT_LABEL, SQLAlchemyError), self._db.connection() as conn:
            rows = conn.execute(query).fetchall()
        return [_load_action(row) for row in rows]


def _load_item(row: Row[Any]) -> BlocklistItem:
    return BlocklistItem(
        hash=row.hash,
        user=row.user,
        content=tuple(json.loads(row.content)),
        reason=row.reason or "",
    )


def _load_action(row: Row[Any]) -> Action:
    """Load Action from an auditlog row.

    The audit log is our data: an unknown type or an unparsable id crashes
    the read instead of being skipped.
    """
    typ = validate_action_type(row.typ)
    ids = tuple(parse_cid(raw) for raw in row.ids.split(_IDS_SEPARATOR))
    return Action(
        typ=typ.value,
        ids=ids,
        reason=row.reason or "",
        user=row.user,
        created_at=as_utc(row.created_at),
    )
