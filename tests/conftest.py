# tests/conftest.py
"""Shared test fixtures and helpers.

Backend parametrization:
- blocklist: runs every test against RelationalBlocklist (in-memory SQLite)
  and DatastoreBlocklist (MemoryDatastore)
- content_store: the datastore holding raw payloads for that blocklist

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/
"""

import os
from collections.abc import Iterator
from datetime import UTC, datetime, timedelta

import pytest
from hypothesis import Phase, Verbosity, settings
from multiformats import CID, multihash

from safemode.contracts.blocklist import Blocklist
from safemode.core.blocklist.database import BlocklistDB
from safemode.core.blocklist.datastore import DatastoreBlocklist
from safemode.core.blocklist.relational import RelationalBlocklist
from safemode.core.datastore import MemoryDatastore

settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))


# =============================================================================
# Content identifiers
# =============================================================================

# The same dag-pb node as CIDv0 and as CIDv1
CID_V0 = "QmYwAPJzv5CZsnA625s3Xf2nemtYgPpHdWEz79ojWnPbdG"
CID_V1 = "bafybeie5nqv6kd3qnfjupgvz34woh3oksc3iau6abmyajn7qvtf6d2ho34"


def make_cid(seed: str, *, version: int = 1, codec: str = "dag-pb") -> str:
    """Deterministic CID string over the sha2-256 of seed."""
    digest = multihash.digest(seed.encode("utf-8"), "sha2-256")
    if version == 0:
        return str(CID("base58btc", 0, "dag-pb", digest))
    return str(CID("base32", 1, codec, digest))


class StepClock:
    """Clock that advances by a fixed step on every call."""

    def __init__(self, start: datetime | None = None, step: timedelta = timedelta(seconds=1)) -> None:
        self.current = start or datetime(2024, 5, 1, 12, 0, 0, tzinfo=UTC)
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + self.step
        return value


class FrozenClock:
    """Clock that always returns the same instant."""

    def __init__(self, value: datetime | None = None) -> None:
        self.value = value or datetime(2024, 5, 1, 12, 0, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.value


# =============================================================================
# Backend fixtures
# =============================================================================


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def content_store() -> MemoryDatastore:
    """Datastore holding raw content payloads."""
    return MemoryDatastore()


@pytest.fixture
def blocklist_db() -> Iterator[BlocklistDB]:
    db = BlocklistDB.in_memory()
    yield db
    db.close()


@pytest.fixture(params=["relational", "datastore"])
def blocklist(request: pytest.FixtureRequest, content_store: MemoryDatastore, clock: StepClock) -> Iterator[Blocklist]:
    """Each backend in turn, sharing content_store as the payload store."""
    if request.param == "relational":
        db = BlocklistDB.in_memory()
        yield RelationalBlocklist(db, content_store, clock=clock)
        db.close()
    else:
        yield DatastoreBlocklist(content_store, clock=clock)
