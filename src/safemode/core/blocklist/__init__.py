# src/safemode/core/blocklist/__init__.py
"""Blocklist backends: relational (SQLAlchemy) and key-value datastore.

Primary API:
    RelationalBlocklist - Blocklist in PostgreSQL/SQLite tables
    DatastoreBlocklist - Blocklist in a namespaced key-value datastore
    block_and_log / unblock_and_log - Mutation paired with its audit record

Backend selection from settings lives in safemode.core.blocklist.factory.
"""

from safemode.core.blocklist.audited import (
    BlockOutcome,
    UnblockOutcome,
    block_and_log,
    unblock_and_log,
)
from safemode.core.blocklist.database import BlocklistDB
from safemode.core.blocklist.datastore import DatastoreBlocklist
from safemode.core.blocklist.relational import RelationalBlocklist
from safemode.core.blocklist.schema import AUDITLOG_TABLE, DEFAULT_BLOCKLIST_TABLE, build_schema

__all__ = [
    "AUDITLOG_TABLE",
    "DEFAULT_BLOCKLIST_TABLE",
    "BlockOutcome",
    "BlocklistDB",
    "DatastoreBlocklist",
    "RelationalBlocklist",
    "UnblockOutcome",
    "block_and_log",
    "build_schema",
    "unblock_and_log",
]
