"""
Metadata content hashes.

Besides the compiler version, the metadata trailer carries the hash of the
full metadata JSON, stored either on IPFS or on Swarm. This module turns
those raw digests into URIs that can be resolved by a metadata fetcher.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

import base58

logger = logging.getLogger(__name__)

# Checked in order of preference; solc only ever emits one of them
HASH_KEYS = ("ipfs", "bzzr1", "bzzr0")

# sha2-256 multihash prefix: function code 0x12, digest length 0x20
_SHA256_MULTIHASH_PREFIX = b"\x12\x20"


@dataclass(frozen=True)
class MetadataHash:
    kind: str
    digest: bytes
    uri: str


def _ipfs_uri(digest: bytes) -> str:
    # Older payloads may carry the bare 32-byte digest
    if len(digest) == 32:
        digest = _SHA256_MULTIHASH_PREFIX + digest
    return "ipfs://" + base58.b58encode(digest).decode("ascii")


def extract_metadata_hash(decoded: Any) -> Optional[MetadataHash]:
    """Return the content hash recorded in decoded metadata, if any."""
    if not isinstance(decoded, dict):
        return None

    for kind in HASH_KEYS:
        digest = decoded.get(kind)
        if not isinstance(digest, bytes):
            continue
        if kind == "ipfs":
            uri = _ipfs_uri(digest)
        else:
            uri = f"bzz-raw://{digest.hex()}"
        logger.debug(f"Found {kind} metadata hash: {uri}")
        return MetadataHash(kind=kind, digest=digest, uri=uri)

    return None
