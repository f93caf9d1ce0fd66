"""
Tests for version comparison (depmgr/versions.py).
"""

import pytest

from depmgr.versions import UNKNOWN_VERSION, compare_versions, is_newer


class TestCompareVersions:
    """Tests for compare_versions."""

    @pytest.mark.parametrize("v1,v2,expected", [
        ("1.0.0", "1.0.0", 0),
        ("1.0.0", "1.0.1", -1),
        ("2.0", "1.9.9", 1),
        ("1.10.0", "1.9.0", 1),
        ("v1.2.0", "1.2.0", 0),
    ])
    def test_semantic(self, v1, v2, expected):
        assert compare_versions(v1, v2) == expected

    def test_string_fallback(self):
        """Test non-PEP 440 versions compare as strings."""
        assert compare_versions("1.2.3_1", "1.2.3_2") == -1


class TestIsNewer:
    """Tests for the outdated policy."""

    def test_newer_latest(self):
        assert is_newer("2.1", "2.0") is True

    def test_same_version(self):
        assert is_newer("1.0", "1.0") is False

    def test_installed_ahead_of_latest(self):
        """Test a pre-release installed ahead of the latest stable is not outdated."""
        assert is_newer("1.0.0", "1.1.0rc1") is False

    def test_numeric_not_lexicographic(self):
        assert is_newer("1.10.0", "1.9.0") is True

    def test_missing_latest(self):
        assert is_newer(None, "1.0") is False
        assert is_newer("", "1.0") is False

    def test_unknown_installed(self):
        assert is_newer("1.0", UNKNOWN_VERSION) is False

    def test_unparseable_falls_back_to_inequality(self):
        """Test versions that do not parse are outdated whenever they differ."""
        assert is_newer("1.2.3_1", "1.2.3") is True
        assert is_newer("2024-01-01", "2024-01-01") is False
