"""Common helper functions for the blocklist backends.

Shared by relational.py and datastore.py. The backends share these
functions only; they hold no common state.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any

from safemode.contracts.blocklist import Action
from safemode.contracts.datastore import Datastore
from safemode.contracts.errors import StoreFailureError
from safemode.core.identifiers import ContentId, payload_key


def now() -> datetime:
    """Get current UTC timestamp."""
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes read back from SQLite."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


@contextmanager
def store_errors(operation: str, key: str, *errors: type[BaseException]) -> Iterator[None]:
    """Re-raise store-layer exceptions as StoreFailureError with context.

    Args:
        operation: Contract operation name, for the message
        key: Storage key involved, for the message
        errors: Store exception types to translate
    """
    try:
        yield
    except errors as e:
        raise StoreFailureError(f"{operation} failed for {key}: {e}") from e


def purge_payload(content_store: Datastore, id: ContentId, log: Any) -> None:
    """Delete the raw payload of id from content_store.

    A payload that is already absent counts as purged.
    """
    key = payload_key(id)
    with store_errors("purge", key, OSError):
        deleted = content_store.delete(key)
    if deleted:
        log.info("payload_purged", key=key)
    else:
        log.debug("payload_already_absent", key=key)


def log_action(log: Any, action: Action) -> None:
    """Emit the informational trace of a stored audit action."""
    log.info(
        "blocklist_action_logged",
        action=str(action),
        typ=action.typ,
        user=action.user,
        ids=[str(i) for i in action.ids],
        reason=action.reason,
    )
