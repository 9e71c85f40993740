# src/safemode/core/blocklist/datastore.py
"""Blocklist stored in a namespaced key-value datastore.

One underlying datastore is carved into three namespaces:

    /                       raw content payloads (purge only)
    /safemode/blocklist/    BlocklistItem records, keyed by normalized CID
    /safemode/audit/        Action records, keyed by write timestamp

Audit keys render the timestamp in a fixed-width UTC form so key order is
chronological order. Actions stamped in the same microsecond are ordered
by a per-instance write sequence, and a per-instance origin token keeps
two blocklists sharing a datastore from writing the same key.
"""

from __future__ import annotations

import itertools
import threading
import uuid
from collections.abc import Callable
from datetime import datetime

import structlog

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
from safemode.core.datastore import NamespacedDatastore, join_key
from safemode.core.identifiers import ContentId, content_key
from safemode.core.logging import get_logger

# Namespace holding both safemode stores
SAFEMODE_PREFIX = "/safemode"

# Blocklist entries, nested under SAFEMODE_PREFIX
BLOCKLIST_PREFIX = "/blocklist"

# Audit actions, nested under SAFEMODE_PREFIX
AUDIT_PREFIX = "/audit"

# Fixed-width, lexicographically sortable, filesystem-safe
_AUDIT_KEY_FORMAT = "%Y%m%dT%H%M%S%fZ"


def audit_key(created_at: datetime, sequence: int, origin: str) -> str:
    """Key of the sequence-th audit action written at created_at by origin."""
    stamp = as_utc(created_at).strftime(_AUDIT_KEY_FORMAT)
    return join_key(f"{stamp}-{sequence:012d}-{origin}")


class DatastoreBlocklist:
    """Blocklist kept in a key-value datastore.

    block() relies on the datastore's atomic put_if_absent(), so two
    concurrent blocks of the same content produce exactly one entry.
    """

    def __init__(
        self,
        datastore: Datastore,
        *,
        logger: structlog.stdlib.BoundLogger | None = None,
        clock: Callable[[], datetime] = now,
    ) -> None:
        """Initialize the blocklist.

        Args:
            datastore: Underlying datastore; its root holds content payloads
            logger: Sink for action traces, defaults to this module's logger
            clock: Source of audit timestamps
        """
        safemode = NamespacedDatastore(datastore, SAFEMODE_PREFIX)
        self._datastore = datastore
        self._blockstore = NamespacedDatastore(safemode, BLOCKLIST_PREFIX)
        self._auditstore = NamespacedDatastore(safemode, AUDIT_PREFIX)
        self._log = logger if logger is not None else get_logger(__name__)
        self._clock = clock
        self._sequence = itertools.count()
        self._sequence_lock = threading.Lock()
        self._origin = uuid.uuid4().hex[:12]

    def contains(self, id: ContentId) -> bool:
        """Return True if the blocklist contains the content referenced by id."""
        key = join_key(content_key(id))
        with store_errors("contains", key, OSError):
            return self._blockstore.has(key)

    def block(self, id: ContentId, data: BlockData) -> bool:
        """Add id to the list of content we won't serve, seed, or fetch.

        Returns True if id was newly blocked, False if it was already
        blocked (the first block's record is left untouched).
        """
        cid = content_key(id)
        key = join_key(cid)
        item = BlocklistItem(hash=cid, user=data.user, content=data.content, reason=data.reason)
        with store_errors("block", key, OSError):
            created = self._blockstore.put_if_absent(key, item.to_bytes())
        if not created:
            self._log.info("content_already_blocked", hash=cid, user=data.user)
            return False
        self._log.info("content_blocked", hash=cid, user=data.user, reason=data.reason)
        return True

    def unblock(self, id: ContentId) -> None:
        """Remove id from the blocklist.

        Raises:
            NotFoundError: If id is not blocked
        """
        cid = content_key(id)
        key = join_key(cid)
        with store_errors("unblock", key, OSError):
            deleted = self._blockstore.delete(key)
        if not deleted:
            raise NotFoundError(f"blocklist item not found: {cid}")
        self._log.info("content_unblocked", hash=cid)

    def search(self, id: ContentId) -> BlocklistItem:
        """Return metadata about why/when the content identified by id was blocked.

        Raises:
            NotFoundError: If the content isn't blocked
        """
        cid = content_key(id)
        key = join_key(cid)
        try:
            with store_errors("search", key, OSError):
                raw = self._blockstore.get(key)
        except KeyError:
            raise NotFoundError(f"blocklist item not found: {cid}") from None
        return BlocklistItem.from_bytes(raw)

    def purge(self, id: ContentId) -> None:
        """Remove the payload of id from the base datastore, not its blocklist entry."""
        purge_payload(self._datastore, id, self._log)

    def add_log(self, action: Action) -> Action:
        """Save a record that action took place.

        Raises:
            InvalidActionTypeError: If action.typ is not block/unblock;
                nothing is written
        """
        typ = validate_action_type(action.typ)
        with self._sequence_lock:
            stamp = as_utc(self._clock())
            sequence = next(self._sequence)
        stored = Action(
            typ=typ.value,
            ids=action.ids,
            reason=action.reason,
            user=action.user,
            created_at=stamp,
        )
        key = audit_key(stamp, sequence, self._origin)
        with store_errors("add_log", key, OSError):
            written = self._auditstore.put_if_absent(key, stored.to_bytes())
        if not written:
            raise StoreFailureError(f"add_log failed for {key}: audit key already exists")
        log_action(self._log, stored)
        return stored

    def get_logs(self, limit: int = DEFAULT_LOG_LIMIT) -> list[Action]:
        """Return the last limit auditable actions, in reverse chronological order.

        Actions sharing a timestamp come back newest write first.
        """
        if limit < 0:
            raise ValueError(f"limit must be non-negative, got {limit}")
        with store_errors("get_logs", AUDIT_PREFIX, OSError):
            results = self._auditstore.query(descending=True, limit=limit)
        return [Action.from_bytes(value) for _, value in results]
