# src/safemode/core/config.py
"""
Configuration schema and loading for safemode.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction.

Example settings.yaml:

    backend: relational
    postgres:
      host: postgres
      user: safemode
      password: ${SAFEMODE_DB_PASSWORD}
      dbname: compliance
      blocklist_table: blocklist
    datastore:
      backend: filesystem
      base_path: /var/lib/safemode/blocks
    logging:
      level: INFO
      json_output: true
"""

import os
import re
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from safemode.core.blocklist.schema import AUDITLOG_TABLE, DEFAULT_BLOCKLIST_TABLE

# ${VAR} or ${VAR:-default}
_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)(?::-([^}]*))?\}")

# Table names are interpolated into DDL; keep them plain identifiers
_TABLE_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}$")


class PostgresSettings(BaseModel):
    """Relational blocklist connection configuration."""

    model_config = {"frozen": True}

    host: str = Field(description="Database host; 'postgres' (docker-compose) disables TLS")
    port: int = Field(default=5432, gt=0, lt=65536, description="Database port")
    user: str = Field(description="Database user")
    password: str = Field(default="", description="Database password")
    dbname: str = Field(description="Database name")
    blocklist_table: str = Field(
        default=DEFAULT_BLOCKLIST_TABLE,
        description="Table holding blocklist entries (audit table is always 'auditlog')",
    )
    pool_size: int = Field(default=10, gt=0, description="Maximum concurrent connections")
    create_tables: bool = Field(
        default=True,
        description="Create missing tables at startup; disable when Alembic owns the schema",
    )

    @field_validator("blocklist_table")
    @classmethod
    def validate_blocklist_table(cls, v: str) -> str:
        """Table name must be a plain identifier distinct from the audit table."""
        if not _TABLE_NAME_PATTERN.match(v):
            raise ValueError(f"blocklist_table must be a plain SQL identifier, got {v!r}")
        if v == AUDITLOG_TABLE:
            raise ValueError(f"blocklist_table must differ from {AUDITLOG_TABLE!r}")
        return v


class DatastoreSettings(BaseModel):
    """Key-value datastore configuration.

    Used as the whole store for the datastore backend, and as the content
    store (purge target) for the relational backend.
    """

    model_config = {"frozen": True}

    backend: Literal["memory", "filesystem"] = Field(
        default="filesystem",
        description="Datastore implementation",
    )
    base_path: Path = Field(
        default=Path(".safemode/datastore"),
        description="Base path for filesystem backend",
    )


class LoggingSettings(BaseModel):
    """Logging output configuration."""

    model_config = {"frozen": True}

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Root log level",
    )
    json_output: bool = Field(default=False, description="Emit JSON lines instead of console output")

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v


class BlocklistSettings(BaseModel):
    """Top-level safemode configuration.

    Exactly one backend is used per deployment.
    """

    model_config = {"frozen": True}

    backend: Literal["relational", "datastore"] = Field(
        default="datastore",
        description="Which blocklist backend to build",
    )
    postgres: PostgresSettings | None = Field(
        default=None,
        description="Required when backend is 'relational'",
    )
    datastore: DatastoreSettings = Field(
        default_factory=DatastoreSettings,
        description="Blocklist store (datastore backend) or content store (relational backend)",
    )
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @model_validator(mode="after")
    def validate_backend_settings(self) -> "BlocklistSettings":
        """The relational backend needs connection settings."""
        if self.backend == "relational" and self.postgres is None:
            raise ValueError("backend 'relational' requires a 'postgres' section")
        return self


def _expand_env_vars(config: dict[str, Any]) -> dict[str, Any]:
    """Recursively expand ${VAR} and ${VAR:-default} patterns in config values.

    Args:
        config: Configuration dict (may contain nested structures)

    Returns:
        New dict with environment variables expanded
    """

    def _expand_string(value: str) -> str:
        def replacer(match: re.Match[str]) -> str:
            env_value = os.environ.get(match.group(1))
            if env_value is not None:
                return env_value
            default = match.group(2)
            if default is not None:
                return default
            # No env var and no default - keep original (will likely cause error)
            return match.group(0)

        return _ENV_VAR_PATTERN.sub(replacer, value)

    def _expand_value(value: Any) -> Any:
        if isinstance(value, str):
            return _expand_string(value)
        elif isinstance(value, dict):
            return {k: _expand_value(v) for k, v in value.items()}
        elif isinstance(value, list):
            return [_expand_value(item) for item in value]
        else:
            return value

    return {k: _expand_value(v) for k, v in config.items()}


def _lower_keys(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k).lower(): _lower_keys(v) for k, v in value.items()}
    return value


def load_settings(config_path: Path) -> BlocklistSettings:
    """Load settings from YAML file with environment variable overrides.

    Uses Dynaconf for multi-source loading with precedence:
    1. Environment variables (SAFEMODE_*) - highest priority
    2. Config file (settings.yaml)
    3. Defaults from Pydantic schema - lowest priority

    Environment variable format: SAFEMODE_POSTGRES__HOST for nested keys.

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config file doesn't exist
    """
    from dynaconf import Dynaconf

    # Explicit check for file existence (Dynaconf silently accepts missing files)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="SAFEMODE",
        settings_files=[str(config_path)],
        environments=False,  # No [default]/[production] sections
        load_dotenv=False,  # Don't auto-load .env
        merge_enabled=True,  # Deep merge nested dicts
    )

    # Dynaconf returns uppercase keys; convert to lowercase for Pydantic
    # Also filter out internal Dynaconf settings
    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {k.lower(): _lower_keys(v) for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}

    raw_config = _expand_env_vars(raw_config)

    return BlocklistSettings(**raw_config)
