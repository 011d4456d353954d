"""
Compiler Version Range Matching

Matches concrete solc releases against the version ranges produced by
``infer_solc_version``, so that a caller can choose which compilers to try
when recompiling source for verification. Uses py-solc-x to list the
compilers already installed locally.
"""

import logging
import re
from typing import Iterable, List, Optional, Tuple

import solcx

logger = logging.getLogger(__name__)

# Curated set of releases covering every metadata era
DEFAULT_CANDIDATE_VERSIONS = [
    "0.8.28", "0.8.26", "0.8.24", "0.8.22", "0.8.20",
    "0.8.19", "0.8.17", "0.8.13", "0.8.10", "0.8.7", "0.8.4", "0.8.0",
    "0.7.6", "0.7.5", "0.7.0",
    "0.6.12", "0.6.6", "0.6.0",
    "0.5.17", "0.5.16", "0.5.9", "0.5.8", "0.5.0",
    "0.4.26", "0.4.24", "0.4.11", "0.4.7",
    "0.4.6", "0.4.4", "0.4.0",
]

_VERSION_RE = re.compile(r"(\d+)\.(\d+)\.(\d+)")
_HYPHEN_RANGE_RE = re.compile(r"^\s*(\d+\.\d+\.\d+)\s+-\s+(\d+\.\d+\.\d+)\s*$")
_CONSTRAINT_RE = re.compile(r"([><=^~!]*)\s*(\d+\.\d+\.\d+)")


def parse_version(version_str: str) -> Optional[Tuple[int, int, int]]:
    """Parse '0.8.20' or 'v0.8.20+commit.a1b79de6' into (0, 8, 20)."""
    if not version_str:
        return None
    match = _VERSION_RE.search(version_str)
    if match:
        return (int(match.group(1)), int(match.group(2)), int(match.group(3)))
    return None


def version_satisfies(version: str, version_range: str) -> bool:
    """Check if a version falls within a range.

    Handles exact versions, comparison operators, caret and tilde ranges,
    space-separated conjunctions ('>=0.7.0 <0.9.0') and inclusive hyphen
    ranges ('0.4.7 - 0.5.8').

    Args:
        version: Version string like '0.5.3'.
        version_range: Range expression like '<0.4.7'.

    Returns:
        True if the version satisfies every constraint in the range.
    """
    parts = parse_version(version)
    if not parts:
        return False

    hyphen = _HYPHEN_RANGE_RE.match(version_range)
    if hyphen:
        low = parse_version(hyphen.group(1))
        high = parse_version(hyphen.group(2))
        return low <= parts <= high

    constraints = _CONSTRAINT_RE.findall(version_range)
    if not constraints:
        return False

    return all(_single_constraint_matches(parts, op, target) for op, target in constraints)


def _single_constraint_matches(
    version_parts: Tuple[int, int, int], op: str, target_str: str
) -> bool:
    """Check a single constraint like '^0.8.0' or '>=0.7.0'."""
    target = parse_version(target_str)
    major, minor, patch = version_parts
    t_major, t_minor, t_patch = target

    if op in ("", "=", "=="):
        return version_parts == target
    elif op == "^":
        # For 0.x releases the minor version is the breaking one
        if t_major == 0 and t_minor == 0:
            return version_parts == target
        if t_major == 0:
            return major == t_major and minor == t_minor and patch >= t_patch
        return major == t_major and (minor, patch) >= (t_minor, t_patch)
    elif op == "~":
        return major == t_major and minor == t_minor and patch >= t_patch
    elif op == ">=":
        return version_parts >= target
    elif op == ">":
        return version_parts > target
    elif op == "<=":
        return version_parts <= target
    elif op == "<":
        return version_parts < target
    elif op == "!=":
        return version_parts != target
    else:
        logger.warning(f"Unsupported version operator '{op}'")
        return False


def compatible_solc_versions(
    version_range: str,
    candidate_versions: Optional[Iterable[str]] = None,
) -> List[str]:
    """Determine which solc versions fall within an inferred range.

    Args:
        version_range: e.g. '0.8.4', '0.4.7 - 0.5.8' or '<0.4.7'.
        candidate_versions: Versions to check. Defaults to a curated set.

    Returns:
        List of compatible version strings, newest first.
    """
    if candidate_versions is None:
        candidate_versions = DEFAULT_CANDIDATE_VERSIONS

    compatible = [v for v in candidate_versions if version_satisfies(v, version_range)]
    return sorted(set(compatible), key=parse_version, reverse=True)


def installed_compatible_versions(version_range: str) -> List[str]:
    """Return the locally installed solc versions that fall within a range."""
    installed = [str(v) for v in solcx.get_installed_solc_versions()]
    logger.debug(f"Found {len(installed)} installed solc versions")
    return compatible_solc_versions(version_range, installed)
