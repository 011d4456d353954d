"""
Tests for solc_metadata/version_range.py

Covers:
  - Version parsing
  - Range matching for every range shape the inference emits
  - Candidate filtering and ordering
  - Installed compiler lookup
"""

import pytest
from unittest.mock import patch

from solc_metadata.metadata import ABSENT_RANGE, PRESENT_VERSION_UNKNOWN_RANGE
from solc_metadata.version_range import (
    DEFAULT_CANDIDATE_VERSIONS,
    compatible_solc_versions,
    installed_compatible_versions,
    parse_version,
    version_satisfies,
)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

class TestParseVersion:
    def test_plain(self):
        assert parse_version("0.8.20") == (0, 8, 20)

    def test_with_prefix_and_commit(self):
        assert parse_version("v0.8.4+commit.c7e474f2") == (0, 8, 4)

    @pytest.mark.parametrize("value", ["", "0.8", "latest"])
    def test_unparseable(self, value):
        assert parse_version(value) is None


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------

class TestVersionSatisfies:
    def test_exact(self):
        assert version_satisfies("0.8.4", "0.8.4")
        assert not version_satisfies("0.8.5", "0.8.4")

    def test_present_unknown_range_bounds_are_inclusive(self):
        assert version_satisfies("0.4.7", PRESENT_VERSION_UNKNOWN_RANGE)
        assert version_satisfies("0.5.3", PRESENT_VERSION_UNKNOWN_RANGE)
        assert version_satisfies("0.5.8", PRESENT_VERSION_UNKNOWN_RANGE)

    def test_present_unknown_range_excludes_outside(self):
        assert not version_satisfies("0.4.6", PRESENT_VERSION_UNKNOWN_RANGE)
        assert not version_satisfies("0.5.9", PRESENT_VERSION_UNKNOWN_RANGE)

    def test_absent_range(self):
        assert version_satisfies("0.4.6", ABSENT_RANGE)
        assert not version_satisfies("0.4.7", ABSENT_RANGE)

    def test_caret(self):
        assert version_satisfies("0.8.20", "^0.8.0")
        assert not version_satisfies("0.9.0", "^0.8.0")

    def test_caret_zero_minor_is_exact(self):
        assert version_satisfies("0.0.3", "^0.0.3")
        assert not version_satisfies("0.0.9", "^0.0.3")

    def test_tilde(self):
        assert version_satisfies("0.7.6", "~0.7.0")
        assert not version_satisfies("0.8.0", "~0.7.0")

    def test_conjunction(self):
        assert version_satisfies("0.8.0", ">=0.7.0 <0.9.0")
        assert not version_satisfies("0.9.0", ">=0.7.0 <0.9.0")

    def test_not_equal(self):
        assert version_satisfies("0.8.1", "!=0.8.0")
        assert not version_satisfies("0.8.0", "!=0.8.0")

    def test_invalid_version(self):
        assert not version_satisfies("nightly", "<0.4.7")

    def test_empty_range(self):
        assert not version_satisfies("0.8.0", "")


# ---------------------------------------------------------------------------
# Candidate selection
# ---------------------------------------------------------------------------

class TestCompatibleSolcVersions:
    def test_exact_version(self):
        assert compatible_solc_versions("0.8.4") == ["0.8.4"]

    def test_present_unknown_range(self):
        versions = compatible_solc_versions(PRESENT_VERSION_UNKNOWN_RANGE)
        assert versions == ["0.5.8", "0.5.0", "0.4.26", "0.4.24", "0.4.11", "0.4.7"]

    def test_absent_range(self):
        assert compatible_solc_versions(ABSENT_RANGE) == ["0.4.6", "0.4.4", "0.4.0"]

    def test_sorted_newest_first(self):
        versions = compatible_solc_versions(">=0.4.0", ["0.4.26", "0.8.4", "0.10.0", "0.8.10"])
        assert versions == ["0.10.0", "0.8.10", "0.8.4", "0.4.26"]

    def test_deduplicates(self):
        assert compatible_solc_versions("0.8.4", ["0.8.4", "0.8.4"]) == ["0.8.4"]

    def test_defaults_cover_every_era(self):
        for version_range in ("0.8.4", PRESENT_VERSION_UNKNOWN_RANGE, ABSENT_RANGE):
            assert compatible_solc_versions(version_range, DEFAULT_CANDIDATE_VERSIONS)


class TestInstalledCompatibleVersions:
    def test_filters_installed(self):
        installed = ["0.8.4", "0.5.3", "0.4.2"]
        with patch("solc_metadata.version_range.solcx.get_installed_solc_versions",
                   return_value=installed):
            assert installed_compatible_versions(PRESENT_VERSION_UNKNOWN_RANGE) == ["0.5.3"]

    def test_nothing_installed(self):
        with patch("solc_metadata.version_range.solcx.get_installed_solc_versions",
                   return_value=[]):
            assert installed_compatible_versions("0.8.4") == []
