"""
Solidity Compiler Metadata

Decodes the CBOR metadata trailer that solc appends to contract bytecode
and infers which compiler release produced the bytecode, as a building
block for contract verification tooling.
"""

from solc_metadata.hashes import MetadataHash, extract_metadata_hash
from solc_metadata.metadata import (
    ABSENT_RANGE,
    METADATA_ABSENT_VERSION_RANGE,
    METADATA_LENGTH_SIZE,
    METADATA_PRESENT_SOLC_NOT_FOUND_VERSION_RANGE,
    PRESENT_VERSION_UNKNOWN_RANGE,
    DecodeResult,
    MetadataDecodeError,
    MetadataDescription,
    SolcMetadata,
    VersionSource,
    decode_solc_metadata,
    get_solc_metadata_section_length,
    infer_solc_version,
    measure_executable_section_length,
    strip_metadata,
    try_decode_solc_metadata,
)
from solc_metadata.version_range import compatible_solc_versions, version_satisfies

__version__ = "1.0.0"
__author__ = "Smart Contract Verification Team"
