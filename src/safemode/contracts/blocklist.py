# src/safemode/contracts/blocklist.py
"""Blocklist protocol and the records it exchanges.

Both backends (core/blocklist/relational.py and core/blocklist/datastore.py)
implement Blocklist with identical observable semantics:

- Every identifier is normalized before it touches the store, so a CIDv0
  and the CIDv1 over the same multihash are the same entry.
- block() returns True iff the content was newly blocked. The metadata of
  the first block is never overwritten.
- unblock() is a permanent delete.
- The audit log is append-only and read newest first.

Pairing a mutation with its audit record is the caller's job; use
core/blocklist/audited.py for the combined operation.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from safemode.contracts.errors import InvalidActionTypeError

if TYPE_CHECKING:
    from multiformats import CID

    from safemode.core.identifiers import ContentId

# Number of audit actions the compliance dashboard shows
DEFAULT_LOG_LIMIT = 100


class ActionType(StrEnum):
    """Type of an auditable action.

    Stored in the database (auditlog.typ) and in audit datastore records.
    """

    BLOCK = "block"
    UNBLOCK = "unblock"


def validate_action_type(typ: object) -> ActionType:
    """Coerce typ to ActionType.

    Raises:
        InvalidActionTypeError: If typ is not "block" or "unblock"
    """
    if isinstance(typ, ActionType):
        return typ
    try:
        return ActionType(typ)
    except ValueError:
        raise InvalidActionTypeError(typ) from None


def _decode_object(data: bytes, kind: str) -> dict[str, Any]:
    try:
        raw = json.loads(data)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ValueError(f"{kind} record is not valid JSON: {e}") from e
    if not isinstance(raw, dict):
        raise ValueError(f"{kind} record must be a JSON object, got {type(raw).__name__}")
    return raw


@dataclass(frozen=True)
class BlockData:
    """What the "Block Content" form is submitted with.

    Attributes:
        user: Email of the user that made the request (required)
        content: URLs or hashes describing the content to block
        reason: Explanation for why the content is being blocked
        blocked: CID strings the form was submitted for
    """

    user: str
    content: tuple[str, ...] = ()
    reason: str = ""
    blocked: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.user:
            raise ValueError("BlockData.user is required")
        # Accept lists from callers while keeping the record immutable
        object.__setattr__(self, "content", tuple(self.content))
        object.__setattr__(self, "blocked", tuple(self.blocked))


@dataclass(frozen=True)
class BlocklistItem:
    """Why content was blocked, and by whom."""

    hash: str
    user: str
    content: tuple[str, ...] = ()
    reason: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "content", tuple(self.content))

    def to_bytes(self) -> bytes:
        """Canonical encoding, readable by from_bytes() and the Go gateway."""
        from safemode.core.canonical import canonical_bytes

        return canonical_bytes(
            {
                "Hash": self.hash,
                "Content": list(self.content),
                "Reason": self.reason,
                "User": self.user,
            }
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> BlocklistItem:
        """Decode a stored item. Unknown fields are ignored.

        Raises:
            ValueError: If data is not a blocklist item record
        """
        raw = _decode_object(data, "blocklist item")
        try:
            content = raw.get("Content") or []
            return cls(
                hash=raw["Hash"],
                user=raw["User"],
                content=tuple(content),
                reason=raw.get("Reason") or "",
            )
        except KeyError as e:
            raise ValueError(f"blocklist item record missing field {e}") from e


@dataclass(frozen=True)
class Action:
    """An auditable action that a user requested us to perform.

    typ is deliberately not coerced here: add_log() is where an unknown type
    is rejected. created_at is assigned by the backend at write time.
    """

    typ: str
    ids: tuple[CID, ...]
    reason: str = ""
    user: str = ""
    created_at: datetime | None = None

    def __post_init__(self) -> None:
        from safemode.core.identifiers import parse_cid

        object.__setattr__(self, "ids", tuple(parse_cid(i) for i in self.ids))
        if not self.ids:
            raise ValueError("Action.ids must contain at least one content identifier")

    def __str__(self) -> str:
        from safemode.core.canonical import format_timestamp

        stamp = format_timestamp(self.created_at) if self.created_at is not None else "-"
        ids = " ".join(str(i) for i in self.ids)
        return f"{stamp}\t {self.typ} by {self.user}: [{ids}]: {self.reason}"

    def to_bytes(self) -> bytes:
        """Canonical encoding, readable by from_bytes() and the Go gateway."""
        from safemode.core.canonical import canonical_bytes

        return canonical_bytes(
            {
                "Typ": str(self.typ),
                "Ids": list(self.ids),
                "Reason": self.reason,
                "User": self.user,
                "CreatedAt": self.created_at,
            }
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> Action:
        """Decode a stored action. Unknown fields are ignored.

        Raises:
            InvalidActionTypeError: If the stored type is not block/unblock
            InvalidIdentifierError: If a stored id is not a valid CID
            ValueError: If data is not an action record
        """
        from safemode.core.canonical import parse_timestamp
        from safemode.core.identifiers import parse_cid

        raw = _decode_object(data, "action")
        try:
            typ = validate_action_type(raw["Typ"])
            raw_ids = raw["Ids"]
        except KeyError as e:
            raise ValueError(f"action record missing field {e}") from e

        ids = []
        for entry in raw_ids:
            # Go marshals cid.Cid as {"/": "<cid>"}
            if isinstance(entry, dict):
                entry = entry.get("/")
            ids.append(parse_cid(entry))

        created_at = raw.get("CreatedAt")
        return cls(
            typ=typ.value,
            ids=tuple(ids),
            reason=raw.get("Reason") or "",
            user=raw.get("User") or "",
            created_at=parse_timestamp(created_at) if created_at else None,
        )


@runtime_checkable
class Blocklist(Protocol):
    """Protocol for blocklist backends.

    Implementations hold their store handle for their whole lifetime and
    perform no retries; store failures surface as StoreFailureError.
    """

    def contains(self, id: ContentId) -> bool:
        """Return True if the content referenced by id is blocked.

        Raises:
            InvalidIdentifierError: If id is undefined or malformed
        """
        ...

    def block(self, id: ContentId, data: BlockData) -> bool:
        """Add id to the content we won't serve, seed, or fetch.

        Returns:
            True if id was newly blocked, False if it was already blocked
            (the first block's metadata is kept)
        """
        ...

    def unblock(self, id: ContentId) -> None:
        """Permanently remove the blocklist entry for id.

        Raises:
            NotFoundError: If id is not blocked
        """
        ...

    def search(self, id: ContentId) -> BlocklistItem:
        """Return why/when the content identified by id was blocked.

        Raises:
            NotFoundError: If id is not blocked
        """
        ...

    def purge(self, id: ContentId) -> None:
        """Delete the content payload of id from the content store.

        An already absent payload is not an error.
        """
        ...

    def add_log(self, action: Action) -> Action:
        """Append action to the audit log.

        Returns:
            The stored action, with created_at assigned at write time

        Raises:
            InvalidActionTypeError: If action.typ is not block/unblock
        """
        ...

    def get_logs(self, limit: int = DEFAULT_LOG_LIMIT) -> list[Action]:
        """Return up to limit audit actions, newest first."""
        ...
