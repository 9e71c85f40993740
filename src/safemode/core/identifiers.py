"""Content identifier parsing and normalization.

A CIDv0 ("Qm...") and a CIDv1 over the same multihash name the same
content. Everything stored by the blocklist is keyed by the normalized
CIDv1 so a legacy reference is recognized as already blocked.

This module is in core/ so both backends and the record codecs can use it
without cross-subsystem imports.
"""

from __future__ import annotations

import base64

from multiformats import CID, multihash

from safemode.contracts.errors import InvalidIdentifierError

# Codec given to CIDv0 multihashes when they are lifted to CIDv1.
# CIDv0 is always dag-pb by definition.
DEFAULT_CODEC = "dag-pb"

# All normalized CIDs are rendered in the CIDv1 default base
CANONICAL_BASE = "base32"

ContentId = CID | str


def parse_cid(value: ContentId | None) -> CID:
    """Parse a CID from its string form, passing CID instances through.

    Raises:
        InvalidIdentifierError: If value is None, empty, or not a valid CID
    """
    if isinstance(value, CID):
        return value
    if value is None or not isinstance(value, str) or not value.strip():
        raise InvalidIdentifierError(f"undefined content identifier: {value!r}")
    try:
        return CID.decode(value.strip())
    except (ValueError, KeyError, TypeError) as e:
        raise InvalidIdentifierError(f"invalid content identifier {value[:100]!r}: {e}") from e


def normalize_cid(value: ContentId | None) -> CID:
    """Return the canonical CIDv1 for value.

    CIDv0 is reinterpreted as CIDv1 with the dag-pb codec over the same
    multihash. CIDv1 keeps its codec. Normalizing twice yields the same CID.

    Raises:
        InvalidIdentifierError: If value is invalid or its multihash cannot be decoded
    """
    cid = parse_cid(value)
    try:
        multihash.unwrap(cid.digest)
    except (ValueError, KeyError) as e:
        raise InvalidIdentifierError(f"undecodable multihash in {cid!s}: {e}") from e

    codec = DEFAULT_CODEC if cid.version == 0 else cid.codec
    return CID(CANONICAL_BASE, 1, codec, cid.digest)


def content_key(value: ContentId | None) -> str:
    """Storage key for blocklist entries: the normalized CIDv1 string."""
    return str(normalize_cid(value))


def payload_key(value: ContentId | None) -> str:
    """Datastore key of the raw payload for value in the content store.

    Blockstores key payloads by multihash, so this is identical for every
    version and codec of the same content: "/" followed by the unpadded
    upper-case RFC 4648 base32 encoding of the multihash bytes.
    """
    cid = normalize_cid(value)
    encoded = base64.b32encode(bytes(cid.digest)).decode("ascii").rstrip("=")
    return f"/{encoded}"
