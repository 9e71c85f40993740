# src/safemode/core/canonical.py
"""
Canonical JSON serialization for blocklist and audit records.

Two-phase approach:
1. Normalize: Convert CIDs, datetimes and tuples to JSON-safe primitives (our code)
2. Serialize: Produce deterministic JSON per RFC 8785/JCS (rfc8785 package)

CIDs are rendered as {"/": "<cid>"} and timestamps as RFC 3339 UTC with a
"Z" suffix, matching the records already written by the Go gateway so
both can read the same datastore.

IMPORTANT: NaN and Infinity are strictly REJECTED, not silently converted.
"""

from __future__ import annotations

import math
from datetime import UTC, datetime
from typing import Any

import rfc8785
from multiformats import CID


def format_timestamp(value: datetime) -> str:
    """Render a datetime as RFC 3339 in UTC with microseconds and a "Z" suffix.

    Naive datetimes are assumed to be UTC (explicit policy).
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def parse_timestamp(value: str) -> datetime:
    """Parse an RFC 3339 timestamp into an aware UTC datetime.

    Accepts the "Z" suffix and nanosecond precision (truncated to
    microseconds), as emitted by Go's time.RFC3339Nano.

    Raises:
        ValueError: If value is not an RFC 3339 timestamp
    """
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def _normalize_value(obj: Any) -> Any:
    """Convert a single value to a JSON-safe primitive.

    Raises:
        ValueError: If value is a non-finite float
    """
    if isinstance(obj, float):
        if math.isnan(obj) or math.isinf(obj):
            raise ValueError(f"Cannot canonicalize non-finite float: {obj}. Use None for missing values, not NaN.")
        return obj

    # Primitives pass through unchanged
    if obj is None or isinstance(obj, str | int | bool):
        return obj

    if isinstance(obj, CID):
        return {"/": str(obj)}

    if isinstance(obj, datetime):
        return format_timestamp(obj)

    return obj


def _normalize_for_canonical(data: Any) -> Any:
    """Recursively normalize a data structure for canonical JSON."""
    if isinstance(data, dict):
        return {k: _normalize_for_canonical(v) for k, v in data.items()}
    if isinstance(data, list | tuple):
        return [_normalize_for_canonical(v) for v in data]
    return _normalize_value(data)


def canonical_bytes(obj: Any) -> bytes:
    """Produce canonical JSON bytes (no whitespace, sorted keys).

    Raises:
        ValueError: If data contains NaN or Infinity
        TypeError: If data contains types that cannot be serialized
    """
    normalized = _normalize_for_canonical(obj)
    result: bytes = rfc8785.dumps(normalized)
    return result


def canonical_json(obj: Any) -> str:
    """Produce canonical JSON as a string."""
    return canonical_bytes(obj).decode("utf-8")
