"""
Core data model: package managers, packages, projects and dependencies.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from .versions import is_newer


class PackageManager(Enum):
    """
    Supported package managers.

    Each member's value is its identifier; ``display_name`` is what users
    see and ``command`` is the executable used to invoke it.
    """
    HOMEBREW = "homebrew"
    NPM = "npm"
    YARN = "yarn"
    PNPM = "pnpm"
    CARGO = "cargo"
    PIP = "pip"
    PIPX = "pipx"
    GEM = "gem"
    GO = "go"
    COMPOSER = "composer"
    PUB = "pub"
    SWIFT = "swift"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @property
    def command(self) -> str:
        return _COMMANDS[self]

    @classmethod
    def from_name(cls, name: str) -> PackageManager:
        """
        Resolve a manager from its identifier, display name or command.

        Raises:
            ValueError: If the name matches no manager
        """
        needle = name.strip().lower()
        for manager in cls:
            if needle in (manager.value, manager.display_name.lower(), manager.command):
                return manager
        raise ValueError(f"Unknown package manager: {name}")

    def __str__(self) -> str:
        return self.display_name


_DISPLAY_NAMES = {
    PackageManager.HOMEBREW: "Homebrew",
    PackageManager.NPM: "npm",
    PackageManager.YARN: "yarn",
    PackageManager.PNPM: "pnpm",
    PackageManager.CARGO: "Cargo",
    PackageManager.PIP: "pip",
    PackageManager.PIPX: "pipx",
    PackageManager.GEM: "gem",
    PackageManager.GO: "Go",
    PackageManager.COMPOSER: "Composer",
    PackageManager.PUB: "pub",
    PackageManager.SWIFT: "Swift",
}

_COMMANDS = {
    PackageManager.HOMEBREW: "brew",
    PackageManager.NPM: "npm",
    PackageManager.YARN: "yarn",
    PackageManager.PNPM: "pnpm",
    PackageManager.CARGO: "cargo",
    PackageManager.PIP: "pip3",
    PackageManager.PIPX: "pipx",
    PackageManager.GEM: "gem",
    PackageManager.GO: "go",
    PackageManager.COMPOSER: "composer",
    PackageManager.PUB: "dart",
    PackageManager.SWIFT: "swift",
}


@dataclass
class Package:
    """
    An installed package as seen by one package manager.

    Attributes:
        name: Package name as the manager reports it
        manager: Owning package manager
        installed_version: Installed version ("unknown" if unparseable)
        latest_version: Latest available version, if known
        is_outdated: Whether latest_version is newer than installed_version
        description: Human-readable summary, if known
        used_in: Project directories referencing this package
        size: Disk usage in bytes, if known
    """
    name: str
    manager: PackageManager
    installed_version: str
    latest_version: str | None = None
    is_outdated: bool = False
    description: str | None = None
    used_in: list[str] = field(default_factory=list)
    size: int | None = None

    @property
    def key(self) -> tuple[PackageManager, str]:
        return (self.manager, self.name)

    def set_latest(self, latest: str | None) -> None:
        """Record the latest version and recompute is_outdated from it."""
        self.latest_version = latest
        self.is_outdated = is_newer(latest, self.installed_version)

    def copy(self) -> Package:
        return Package(
            name=self.name,
            manager=self.manager,
            installed_version=self.installed_version,
            latest_version=self.latest_version,
            is_outdated=self.is_outdated,
            description=self.description,
            used_in=list(self.used_in),
            size=self.size,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "manager": self.manager.value,
            "installed_version": self.installed_version,
            "latest_version": self.latest_version,
            "is_outdated": self.is_outdated,
            "description": self.description,
            "used_in": list(self.used_in),
            "size": self.size,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Package:
        """Create from dictionary."""
        return cls(
            name=data["name"],
            manager=PackageManager(data["manager"]),
            installed_version=data.get("installed_version", ""),
            latest_version=data.get("latest_version"),
            is_outdated=data.get("is_outdated", False),
            description=data.get("description"),
            used_in=list(data.get("used_in", [])),
            size=data.get("size"),
        )


@dataclass(frozen=True)
class Dependency:
    """
    A dependency declared in a project manifest.

    Attributes:
        package_name: Declared package name
        manager: Package manager the manifest belongs to
        version_constraint: Constraint as written ("*" when absent)
        is_dev: Whether the dependency is development-only
    """
    package_name: str
    manager: PackageManager
    version_constraint: str = "*"
    is_dev: bool = False


@dataclass
class Project:
    """A local development project discovered on disk."""
    path: Path
    name: str
    package_managers: list[PackageManager] = field(default_factory=list)
    dependencies: list[Dependency] = field(default_factory=list)
    last_modified: datetime.datetime = field(
        default_factory=lambda: datetime.datetime.now(datetime.timezone.utc)
    )

    @classmethod
    def from_path(cls, path: Path) -> Project:
        """Create a project named after its directory, stamped with the directory mtime."""
        name = path.name or "Unknown"
        try:
            mtime = path.stat().st_mtime
            last_modified = datetime.datetime.fromtimestamp(mtime, tz=datetime.timezone.utc)
        except OSError:
            last_modified = datetime.datetime.now(datetime.timezone.utc)
        return cls(path=path, name=name, last_modified=last_modified)

    def add_dependency(self, dependency: Dependency) -> None:
        self.dependencies.append(dependency)
        if dependency.manager not in self.package_managers:
            self.package_managers.append(dependency.manager)


@dataclass
class PackageUsage:
    """A package together with the projects that use it."""
    package: Package
    used_in_projects: list[Project] = field(default_factory=list)
    is_orphaned: bool = True

    def add_project(self, project: Project) -> None:
        self.used_in_projects.append(project)
        self.is_orphaned = False
