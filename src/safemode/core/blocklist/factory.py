# src/safemode/core/blocklist/factory.py
"""Build the configured blocklist backend from settings."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from safemode.contracts.blocklist import Blocklist
from safemode.contracts.datastore import Datastore
from safemode.core.blocklist.datastore import DatastoreBlocklist
from safemode.core.blocklist.relational import RelationalBlocklist
from safemode.core.datastore import FilesystemDatastore, MemoryDatastore
from safemode.core.logging import configure_from_settings

if TYPE_CHECKING:
    from safemode.core.config import BlocklistSettings, DatastoreSettings


def create_datastore(settings: DatastoreSettings) -> Datastore:
    """Instantiate the datastore named by settings.backend."""
    if settings.backend == "memory":
        return MemoryDatastore()
    return FilesystemDatastore(settings.base_path)


def create_blocklist(
    settings: BlocklistSettings,
    *,
    content_store: Datastore | None = None,
    logger: structlog.stdlib.BoundLogger | None = None,
) -> Blocklist:
    """Create the blocklist backend selected by settings.backend.

    Args:
        settings: Validated safemode settings
        content_store: Datastore holding raw payloads; built from
            settings.datastore when not given
        logger: Sink for action traces, passed through to the backend

    Returns:
        RelationalBlocklist or DatastoreBlocklist
    """
    store = content_store if content_store is not None else create_datastore(settings.datastore)

    if settings.backend == "relational":
        pg = settings.postgres
        # BlocklistSettings rejects a relational backend without postgres
        assert pg is not None
        return RelationalBlocklist.connect(
            pg.host,
            pg.port,
            pg.user,
            pg.password,
            pg.dbname,
            pg.blocklist_table,
            store,
            pool_size=pg.pool_size,
            create_tables=pg.create_tables,
            logger=logger,
        )

    return DatastoreBlocklist(store, logger=logger)


def open_blocklist(
    config_path: Path,
    *,
    content_store: Datastore | None = None,
    logger: structlog.stdlib.BoundLogger | None = None,
) -> Blocklist:
    """Load settings from config_path, configure logging, and build the backend.

    Logging is configured before the backend is created so connection and
    table setup are reported in the configured format.
    """
    from safemode.core.config import load_settings

    settings = load_settings(config_path)
    configure_from_settings(settings.logging)
    return create_blocklist(settings, content_store=content_store, logger=logger)
