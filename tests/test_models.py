"""
Tests for the data model (depmgr/models.py).
"""

import datetime

import pytest

from depmgr.models import Dependency, Package, PackageManager, PackageUsage, Project


class TestPackageManager:
    """Tests for the PackageManager enum."""

    def test_display_names(self):
        assert PackageManager.HOMEBREW.display_name == "Homebrew"
        assert str(PackageManager.CARGO) == "Cargo"

    def test_commands(self):
        assert PackageManager.HOMEBREW.command == "brew"
        assert PackageManager.PIP.command == "pip3"
        assert PackageManager.PUB.command == "dart"

    @pytest.mark.parametrize("name,expected", [
        ("homebrew", PackageManager.HOMEBREW),
        ("brew", PackageManager.HOMEBREW),
        ("Homebrew", PackageManager.HOMEBREW),
        ("pip3", PackageManager.PIP),
        (" NPM ", PackageManager.NPM),
    ])
    def test_from_name(self, name, expected):
        assert PackageManager.from_name(name) is expected

    def test_from_name_unknown(self):
        with pytest.raises(ValueError, match="Unknown package manager"):
            PackageManager.from_name("apt")


class TestPackage:
    """Tests for Package."""

    def test_defaults(self):
        pkg = Package("foo", PackageManager.NPM, "1.0.0")
        assert pkg.latest_version is None
        assert pkg.is_outdated is False
        assert pkg.used_in == []
        assert pkg.key == (PackageManager.NPM, "foo")

    def test_set_latest_marks_outdated(self):
        pkg = Package("bar", PackageManager.HOMEBREW, "2.0")
        pkg.set_latest("2.1")
        assert pkg.is_outdated is True
        assert pkg.latest_version == "2.1"

    def test_set_latest_same_version(self):
        pkg = Package("foo", PackageManager.HOMEBREW, "1.0")
        pkg.set_latest("1.0")
        assert pkg.is_outdated is False

    def test_set_latest_none_clears_outdated(self):
        pkg = Package("foo", PackageManager.HOMEBREW, "1.0", latest_version="2.0", is_outdated=True)
        pkg.set_latest(None)
        assert pkg.is_outdated is False

    def test_copy_is_independent(self):
        """Test copies do not share the used_in list."""
        pkg = Package("foo", PackageManager.NPM, "1.0", used_in=["/a"])
        clone = pkg.copy()
        clone.used_in.append("/b")
        assert pkg.used_in == ["/a"]
        assert clone == Package("foo", PackageManager.NPM, "1.0", used_in=["/a", "/b"])

    def test_dict_round_trip(self):
        pkg = Package("foo", PackageManager.CARGO, "0.1.0", "0.2.0", True, "A tool", ["/p"], 42)
        data = pkg.to_dict()
        assert data["manager"] == "cargo"
        assert Package.from_dict(data) == pkg


class TestProject:
    """Tests for Project and Dependency."""

    def test_from_path(self, tmp_path):
        project = Project.from_path(tmp_path)
        assert project.name == tmp_path.name
        assert project.last_modified.tzinfo == datetime.timezone.utc

    def test_add_dependency_records_manager_once(self, tmp_path):
        project = Project.from_path(tmp_path)
        project.add_dependency(Dependency("react", PackageManager.NPM, "^18.0.0"))
        project.add_dependency(Dependency("jest", PackageManager.NPM, is_dev=True))
        assert project.package_managers == [PackageManager.NPM]
        assert len(project.dependencies) == 2
        assert project.dependencies[1].version_constraint == "*"


class TestPackageUsage:
    """Tests for PackageUsage."""

    def test_orphaned_until_project_added(self, tmp_path):
        usage = PackageUsage(Package("node", PackageManager.HOMEBREW, "20.0.0"))
        assert usage.is_orphaned is True
        usage.add_project(Project.from_path(tmp_path))
        assert usage.is_orphaned is False
        assert len(usage.used_in_projects) == 1
