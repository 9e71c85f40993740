# src/safemode/core/__init__.py
"""Core infrastructure: Identifiers, Canonical, Datastores, Configuration, Logging."""

from safemode.core.canonical import canonical_bytes, canonical_json
from safemode.core.config import (
    BlocklistSettings,
    DatastoreSettings,
    LoggingSettings,
    PostgresSettings,
    load_settings,
)
from safemode.core.datastore import FilesystemDatastore, MemoryDatastore, NamespacedDatastore
from safemode.core.identifiers import content_key, normalize_cid, parse_cid, payload_key
from safemode.core.logging import configure_logging, get_logger

__all__ = [
    "BlocklistSettings",
    "DatastoreSettings",
    "FilesystemDatastore",
    "LoggingSettings",
    "MemoryDatastore",
    "NamespacedDatastore",
    "PostgresSettings",
    "canonical_bytes",
    "canonical_json",
    "configure_logging",
    "content_key",
    "get_logger",
    "load_settings",
    "normalize_cid",
    "parse_cid",
    "payload_key",
]
