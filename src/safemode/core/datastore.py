# src/safemode/core/datastore.py
"""
Key-value datastores backing the datastore blocklist and payload purge.

Three realizations of the Datastore protocol:
- MemoryDatastore: dict guarded by a lock (tests, single-process gateways)
- FilesystemDatastore: one file per key under a base directory
- NamespacedDatastore: carves a key prefix out of another datastore

All of them support an atomic put_if_absent(), which is what makes
concurrent block() calls for the same content create exactly one entry.
"""

import os
import re
import threading
import uuid
from pathlib import Path
from typing import TypeVar

from safemode.contracts.datastore import Datastore, InvalidKeyError

__all__ = [
    "FilesystemDatastore",
    "MemoryDatastore",
    "NamespacedDatastore",
    "join_key",
    "validate_key",
]

# One path segment: no separators, no leading dot
_KEY_SEGMENT_PATTERN = re.compile(r"^[A-Za-z0-9_-][A-Za-z0-9._-]*$")

# Suffix for value files so a key can also be a namespace of other keys
_VALUE_SUFFIX = ".data"

_T = TypeVar("_T")


def validate_key(key: str) -> str:
    """Validate a datastore key and return it unchanged.

    Raises:
        InvalidKeyError: If key is not "/"-rooted or has an invalid segment
    """
    if not isinstance(key, str) or not key.startswith("/") or key == "/":
        raise InvalidKeyError(f"Invalid datastore key: must start with '/' and name an entry, got {repr(key)[:80]}")
    for segment in key[1:].split("/"):
        if not _KEY_SEGMENT_PATTERN.match(segment):
            raise InvalidKeyError(f"Invalid datastore key segment {segment!r} in {repr(key)[:80]}")
    return key


def join_key(*parts: str) -> str:
    """Join key fragments into a single "/"-rooted key."""
    segments = [segment for part in parts for segment in part.split("/") if segment]
    return "/" + "/".join(segments)


def _under_prefix(key: str, prefix: str) -> bool:
    prefix = prefix.rstrip("/")
    return key.startswith(prefix + "/")


def _ordered(
    items: list[tuple[str, _T]],
    *,
    descending: bool,
    limit: int | None,
) -> list[tuple[str, _T]]:
    if limit is not None and limit < 0:
        raise ValueError(f"query limit must be non-negative, got {limit}")
    items.sort(key=lambda item: item[0], reverse=descending)
    return items if limit is None else items[:limit]


class MemoryDatastore:
    """In-memory datastore.

    Thread-safe: every operation holds a single lock, so put_if_absent()
    is atomic across threads.
    """

    def __init__(self) -> None:
        self._data: dict[str, bytes] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> bytes:
        validate_key(key)
        with self._lock:
            if key not in self._data:
                raise KeyError(f"Datastore key not found: {key}")
            return self._data[key]

    def put(self, key: str, value: bytes) -> None:
        validate_key(key)
        with self._lock:
            self._data[key] = bytes(value)

    def put_if_absent(self, key: str, value: bytes) -> bool:
        validate_key(key)
        with self._lock:
            if key in self._data:
                return False
            self._data[key] = bytes(value)
            return True

    def delete(self, key: str) -> bool:
        validate_key(key)
        with self._lock:
            return self._data.pop(key, None) is not None

    def has(self, key: str) -> bool:
        validate_key(key)
        with self._lock:
            return key in self._data

    def query(
        self,
        prefix: str = "/",
        *,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[tuple[str, bytes]]:
        with self._lock:
            items = [(k, v) for k, v in self._data.items() if _under_prefix(k, prefix)]
        return _ordered(items, descending=descending, limit=limit)


class FilesystemDatastore:
    """Filesystem-based datastore.

    Each key maps to one file: "/a/b/c" is stored at base_path/a/b/c.data.
    Values are written to a temporary file first and then moved into place,
    so readers never observe a partial value.

    Structure: base_path/safemode/blocklist/bafy....data
    """

    def __init__(self, base_path: Path) -> None:
        """Initialize filesystem store.

        Args:
            base_path: Root directory for the datastore
        """
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _path_for_key(self, key: str) -> Path:
        """Get filesystem path for key.

        Validates the key and ensures path containment.

        Raises:
            InvalidKeyError: If key is malformed, has a namespace segment
                ending in the value suffix, or resolves outside base_path
        """
        validate_key(key)
        segments = key[1:].split("/")
        for segment in segments[:-1]:
            # A directory named like a value file would shadow the parent key
            if segment.endswith(_VALUE_SUFFIX):
                raise InvalidKeyError(f"Invalid datastore key segment {segment!r}: namespaces may not end in {_VALUE_SUFFIX!r}")
        path = self.base_path.joinpath(*segments[:-1], segments[-1] + _VALUE_SUFFIX)

        # Defense in depth: verify path is contained within base_path
        resolved = path.resolve()
        base_resolved = self.base_path.resolve()
        if not resolved.is_relative_to(base_resolved):
            raise InvalidKeyError(f"Invalid datastore key: path traversal detected, {resolved} is not under {base_resolved}")
        return path

    def _key_for_path(self, path: Path) -> str:
        relative = path.relative_to(self.base_path)
        parts = list(relative.parts)
        parts[-1] = parts[-1][: -len(_VALUE_SUFFIX)]
        return "/" + "/".join(parts)

    def _write_temp(self, path: Path, value: bytes) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
        tmp.write_bytes(value)
        return tmp

    def get(self, key: str) -> bytes:
        path = self._path_for_key(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            raise KeyError(f"Datastore key not found: {key}") from None

    def put(self, key: str, value: bytes) -> None:
        path = self._path_for_key(key)
        tmp = self._write_temp(path, value)
        os.replace(tmp, path)

    def put_if_absent(self, key: str, value: bytes) -> bool:
        """Store value only if key is not present.

        Uses a hard link from the temporary file, which fails atomically
        when the target already exists.
        """
        path = self._path_for_key(key)
        tmp = self._write_temp(path, value)
        try:
            os.link(tmp, path)
        except FileExistsError:
            return False
        finally:
            tmp.unlink()
        return True

    def delete(self, key: str) -> bool:
        path = self._path_for_key(key)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        return True

    def has(self, key: str) -> bool:
        return self._path_for_key(key).exists()

    def query(
        self,
        prefix: str = "/",
        *,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[tuple[str, bytes]]:
        """Return (key, value) pairs under prefix.

        Keys are listed and ordered first; only the files that survive the
        limit are read.
        """
        if prefix.strip("/"):
            validate_key(join_key(prefix))
        root = self.base_path.joinpath(*[s for s in prefix.split("/") if s])
        paths: list[tuple[str, Path]] = []
        if root.is_dir():
            for path in root.rglob(f"*{_VALUE_SUFFIX}"):
                if not path.is_file():
                    continue
                key = self._key_for_path(path)
                if _under_prefix(key, prefix):
                    paths.append((key, path))

        items: list[tuple[str, bytes]] = []
        for key, path in _ordered(paths, descending=descending, limit=limit):
            try:
                items.append((key, path.read_bytes()))
            except FileNotFoundError:
                # Deleted between listing and reading
                continue
        return items


class NamespacedDatastore:
    """View of another datastore restricted to keys below prefix.

    Keys passed in and returned are relative to the namespace:
    NamespacedDatastore(d, "/safemode").put("/x", v) writes "/safemode/x" in d.
    """

    def __init__(self, inner: Datastore, prefix: str) -> None:
        self.inner = inner
        self.prefix = join_key(prefix)
        validate_key(self.prefix)

    def _wrap(self, key: str) -> str:
        validate_key(key)
        return self.prefix + key

    def get(self, key: str) -> bytes:
        return self.inner.get(self._wrap(key))

    def put(self, key: str, value: bytes) -> None:
        self.inner.put(self._wrap(key), value)

    def put_if_absent(self, key: str, value: bytes) -> bool:
        return self.inner.put_if_absent(self._wrap(key), value)

    def delete(self, key: str) -> bool:
        return self.inner.delete(self._wrap(key))

    def has(self, key: str) -> bool:
        return self.inner.has(self._wrap(key))

    def query(
        self,
        prefix: str = "/",
        *,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[tuple[str, bytes]]:
        results = self.inner.query(
            join_key(self.prefix, prefix),
            descending=descending,
            limit=limit,
        )
        return [(key[len(self.prefix) :], value) for key, value in results]
