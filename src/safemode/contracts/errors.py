"""Error kinds raised across the blocklist contract.

Every backend raises the same exception types so callers never need to
know which store sits behind the contract.
"""

from typing import Any


class BlocklistError(Exception):
    """Base class for all blocklist errors."""

    pass


class InvalidIdentifierError(BlocklistError, ValueError):
    """Raised when a content identifier is undefined, malformed, or its
    multihash cannot be decoded."""

    pass


class NotFoundError(BlocklistError, KeyError):
    """Raised when a search or unblock target has no blocklist entry."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the message readable
        return str(self.args[0]) if self.args else "blocklist item not found"


class InvalidActionTypeError(BlocklistError, ValueError):
    """Raised when an audit action type is neither "block" nor "unblock"."""

    def __init__(self, typ: object) -> None:
        super().__init__(f"unexpected action type: {typ!r}")
        self.typ = typ


class StoreFailureError(BlocklistError):
    """Raised when the underlying store fails a read or write.

    The original store exception is always chained as ``__cause__``.
    No retry has been attempted.
    """

    pass


# =============================================================================
# Combined mutation + audit failures
# =============================================================================


class MutationFailedError(BlocklistError):
    """Raised when block_and_log/unblock_and_log fails during the mutation half.

    No audit record has been written. Ids processed before the failure stay
    mutated; there is no rollback.

    Attributes:
        completed: Ids mutated before the failure
        failed_id: Id whose mutation raised
    """

    def __init__(self, message: str, *, completed: tuple[Any, ...], failed_id: Any) -> None:
        super().__init__(message)
        self.completed = completed
        self.failed_id = failed_id


class AuditWriteFailedError(BlocklistError):
    """Raised when the mutation succeeded but its audit record was not written.

    Attributes:
        outcome: The completed mutation outcome (BlockOutcome or UnblockOutcome)
    """

    def __init__(self, message: str, *, outcome: Any) -> None:
        super().__init__(message)
        self.outcome = outcome
