"""Shared contracts for safemode.

This package is the leaf of the import graph: it holds the Blocklist and
Datastore protocols, the records they exchange, and the error kinds.
Implementations live in safemode.core.
"""

from safemode.contracts.blocklist import (
    DEFAULT_LOG_LIMIT,
    Action,
    ActionType,
    BlockData,
    Blocklist,
    BlocklistItem,
    validate_action_type,
)
from safemode.contracts.datastore import Datastore, InvalidKeyError
from safemode.contracts.errors import (
    AuditWriteFailedError,
    BlocklistError,
    InvalidActionTypeError,
    InvalidIdentifierError,
    MutationFailedError,
    NotFoundError,
    StoreFailureError,
)

__all__ = [
    "DEFAULT_LOG_LIMIT",
    "Action",
    "ActionType",
    "AuditWriteFailedError",
    "BlockData",
    "Blocklist",
    "BlocklistError",
    "BlocklistItem",
    "Datastore",
    "InvalidActionTypeError",
    "InvalidIdentifierError",
    "InvalidKeyError",
    "MutationFailedError",
    "NotFoundError",
    "StoreFailureError",
    "validate_action_type",
]
