"""
Solidity Compiler Metadata Decoding

The Solidity compiler appends a CBOR-encoded metadata document to the
bytecode it emits, followed by a 2-byte big-endian length field:

    <executable code><CBOR metadata><length: uint16 BE>

This module reads that trailer, strictly decodes it, and uses the result
(or its absence) to infer which compiler release produced the bytecode.
Compiler history gives three eras:

- before 0.4.7 no metadata was embedded at all
- 0.4.7 through 0.5.8 embedded metadata without the compiler version
- 0.5.9 onwards embeds the version as a 3-byte ``solc`` entry
"""

import io
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union

import cbor2
from eth_utils import decode_hex

logger = logging.getLogger(__name__)

METADATA_LENGTH_SIZE = 2
METADATA_PRESENT_SOLC_NOT_FOUND_VERSION_RANGE = "0.4.7 - 0.5.8"
METADATA_ABSENT_VERSION_RANGE = "<0.4.7"

PRESENT_VERSION_UNKNOWN_RANGE = METADATA_PRESENT_SOLC_NOT_FOUND_VERSION_RANGE
ABSENT_RANGE = METADATA_ABSENT_VERSION_RANGE

# Number of trailing payload bytes echoed in debug logs
_LOGGED_PAYLOAD_BYTES = 100

BytesLike = Union[bytes, bytearray, memoryview]

# Some cbor2 releases report semantic failures (bad UTF-8, timestamps,
# rationals, regexes, UUIDs) as builtin exceptions
_CBOR_DECODE_ERRORS = (
    cbor2.CBORDecodeError,
    ValueError,
    TypeError,
    ArithmeticError,
    SystemError,
    RecursionError,
    re.error,
)


class MetadataDecodeError(ValueError):
    """Raised when the bytecode does not end in a well-formed metadata trailer."""


class VersionSource(Enum):
    """How the reported compiler version range was determined."""
    EXACT = "exact"
    PRESENT_VERSION_UNKNOWN = "present_version_unknown"
    ABSENT = "absent"


@dataclass(frozen=True)
class SolcMetadata:
    """A successfully decoded metadata trailer."""
    decoded: Any
    metadata_section_size_in_bytes: int


@dataclass(frozen=True)
class DecodeResult:
    """Outcome of a decode attempt: either ``metadata`` or ``error`` is set."""
    metadata: Optional[SolcMetadata] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.metadata is not None


@dataclass(frozen=True)
class MetadataDescription:
    """Compiler version inferred from bytecode."""
    solc_version_range: str
    metadata_section_size_in_bytes: int
    source: VersionSource


def get_solc_metadata_section_length(bytecode: BytesLike) -> int:
    """
    Read the size of the metadata trailer from the last two bytes.

    Args:
        bytecode: Raw bytecode, at least ``METADATA_LENGTH_SIZE`` bytes long

    Returns:
        Size of the CBOR document plus the length field itself, in bytes
    """
    length_field = bytes(bytecode[-METADATA_LENGTH_SIZE:])
    if len(length_field) != METADATA_LENGTH_SIZE:
        raise MetadataDecodeError(
            f"Need {METADATA_LENGTH_SIZE} bytes to read the metadata length, got {len(length_field)}"
        )
    return int.from_bytes(length_field, byteorder="big") + METADATA_LENGTH_SIZE


def decode_solc_metadata(bytecode: BytesLike) -> SolcMetadata:
    """
    Decode the CBOR metadata document at the end of the bytecode.

    The payload must decode as exactly one complete CBOR item with no
    bytes left over. Ordinary opcodes at the end of metadata-less bytecode
    can look like the start of a CBOR item, so a partial decode is rejected.

    Args:
        bytecode: Raw bytecode

    Returns:
        SolcMetadata with the decoded document and the trailer size

    Raises:
        MetadataDecodeError: If there is no well-formed trailer
    """
    bytecode = bytes(bytecode)
    metadata_section_length = get_solc_metadata_section_length(bytecode)
    logger.debug(f"Read metadata length {metadata_section_length}")

    if metadata_section_length > len(bytecode):
        raise MetadataDecodeError(
            f"Metadata length {metadata_section_length} exceeds bytecode length {len(bytecode)}"
        )

    payload = bytecode[-metadata_section_length:-METADATA_LENGTH_SIZE]
    last_bytes = payload[-_LOGGED_PAYLOAD_BYTES:]
    logger.debug(f"Last {len(last_bytes)} bytes of metadata: {last_bytes.hex()}")

    stream = io.BytesIO(payload)
    try:
        decoded = cbor2.CBORDecoder(stream).decode()
    except _CBOR_DECODE_ERRORS as e:
        raise MetadataDecodeError(f"Malformed metadata: {e}") from e

    consumed = stream.tell()
    if consumed != len(payload):
        raise MetadataDecodeError(
            f"Metadata document ended after {consumed} of {len(payload)} bytes"
        )

    return SolcMetadata(
        decoded=decoded,
        metadata_section_size_in_bytes=metadata_section_length,
    )


def try_decode_solc_metadata(bytecode: BytesLike) -> DecodeResult:
    """Decode the metadata trailer, reporting failure as a value instead of raising."""
    try:
        return DecodeResult(metadata=decode_solc_metadata(bytecode))
    except MetadataDecodeError as e:
        return DecodeResult(error=str(e))


def _lookup_solc_field(decoded: Any) -> Optional[Any]:
    """Return the ``solc`` entry of a decoded document, if it has one."""
    if not isinstance(decoded, dict):
        return None
    return decoded.get("solc")


def _to_bytes(bytecode: Union[BytesLike, str]) -> Optional[bytes]:
    if isinstance(bytecode, str):
        try:
            return decode_hex(bytecode)
        except ValueError:
            logger.debug("Bytecode is not valid hex")
            return None
    return bytes(bytecode)


def infer_solc_version(bytecode: Union[BytesLike, str]) -> MetadataDescription:
    """
    Infer the range of solc releases that could have produced the bytecode.

    Never raises for malformed bytecode: when no metadata can be decoded the
    bytecode is assumed to predate metadata embedding. It may also come from
    a compiler for another language altogether; that case is not told apart.

    Args:
        bytecode: Raw bytecode, or its hex encoding with optional ``0x`` prefix

    Returns:
        MetadataDescription with a version or version range
    """
    raw = _to_bytes(bytecode)
    result = try_decode_solc_metadata(raw) if raw is not None else DecodeResult(error="invalid hex")

    if not result.ok:
        logger.debug(f"Could not decode metadata: {result.error}")
        return MetadataDescription(
            solc_version_range=METADATA_ABSENT_VERSION_RANGE,
            metadata_section_size_in_bytes=0,
            source=VersionSource.ABSENT,
        )

    metadata = result.metadata
    logger.debug(f"Metadata decoded: {metadata.decoded!r}")
    solc_field = _lookup_solc_field(metadata.decoded)

    if isinstance(solc_field, bytes):
        if len(solc_field) == 3:
            major, minor, patch = solc_field
            solc_version = f"{major}.{minor}.{patch}"
            logger.debug(f"Solc version detected in bytecode: {solc_version}")
            return MetadataDescription(
                solc_version_range=solc_version,
                metadata_section_size_in_bytes=metadata.metadata_section_size_in_bytes,
                source=VersionSource.EXACT,
            )
        logger.debug(f"Found solc version field with {len(solc_field)} elements instead of three")

    logger.debug("Could not detect solidity version in metadata")
    return MetadataDescription(
        solc_version_range=METADATA_PRESENT_SOLC_NOT_FOUND_VERSION_RANGE,
        metadata_section_size_in_bytes=metadata.metadata_section_size_in_bytes,
        source=VersionSource.PRESENT_VERSION_UNKNOWN,
    )


def strip_metadata(bytecode: BytesLike) -> bytes:
    """Return the executable section, dropping the metadata trailer if one decodes."""
    bytecode = bytes(bytecode)
    result = try_decode_solc_metadata(bytecode)
    if not result.ok:
        return bytecode
    return bytecode[: len(bytecode) - result.metadata.metadata_section_size_in_bytes]


def measure_executable_section_length(bytecode: str) -> int:
    """
    Measure the executable section of hex bytecode without decoding all of it.

    Runtime objects emitted by the compiler may contain link placeholders
    such as ``__$53aea86b7d70b31448b230b20ae141a537$__`` which are not hex,
    so only the trailing length field is decoded.

    Args:
        bytecode: Hex bytecode, optionally ``0x``-prefixed

    Returns:
        Length of the executable section in hex characters
    """
    if bytecode.startswith("0x"):
        bytecode = bytecode[2:]

    length_slice = bytecode[-METADATA_LENGTH_SIZE * 2:]
    try:
        length_bytes = bytes.fromhex(length_slice)
    except ValueError:
        length_bytes = b""

    # Too short (or garbled) to hold a length field
    if len(length_bytes) != METADATA_LENGTH_SIZE:
        return len(bytecode)

    metadata_section_length = get_solc_metadata_section_length(length_bytes)
    return len(bytecode) - metadata_section_length * 2
