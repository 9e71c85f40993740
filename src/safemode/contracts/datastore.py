# src/safemode/contracts/datastore.py
"""Datastore protocol for namespaced key-value storage.

This protocol defines the interface used by:
- core/datastore.py (memory, filesystem and namespaced implementations)
- core/blocklist/datastore.py (DatastoreBlocklist)
- core/blocklist/relational.py (payload purge only)

Keys are "/"-separated paths such as "/safemode/blocklist/bafy...".
Key order is plain lexicographic order of the key strings.
"""

from typing import Protocol, runtime_checkable


class InvalidKeyError(ValueError):
    """Raised when a key is not a well-formed datastore key."""

    pass


@runtime_checkable
class Datastore(Protocol):
    """Protocol for key-value storage backends."""

    def get(self, key: str) -> bytes:
        """Return the value stored under key.

        Raises:
            KeyError: If key is not present
        """
        ...

    def put(self, key: str, value: bytes) -> None:
        """Store value under key, replacing any existing value."""
        ...

    def put_if_absent(self, key: str, value: bytes) -> bool:
        """Atomically store value only if key is not present.

        Returns:
            True if the value was written, False if key already existed
        """
        ...

    def delete(self, key: str) -> bool:
        """Delete key.

        Returns:
            True if key was deleted, False if not found
        """
        ...

    def has(self, key: str) -> bool:
        """Check if key exists."""
        ...

    def query(
        self,
        prefix: str = "/",
        *,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[tuple[str, bytes]]:
        """Return (key, value) pairs under prefix ordered by key.

        Args:
            prefix: Only keys below this path are returned
            descending: Reverse lexicographic order when True
            limit: Maximum number of results, None for all

        Returns:
            List of (key, value) tuples
        """
        ...
