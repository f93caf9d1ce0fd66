"""
Usage scanner.

Walks the conventional development roots looking for project marker files,
and records which tools and declared dependencies each project directory
implies. The result is a UsageIndex that answers "where is this package
used" for any manager.
"""

from __future__ import annotations

import logging
import os
import time
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from packaging.utils import canonicalize_name

from .manifests import PARSERS, parse_manifest
from .models import Dependency, PackageManager, Project

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 4

NOISE_DIRECTORIES = frozenset({
    "node_modules",
    "target",
    "dist",
    "build",
    "__pycache__",
    "venv",
    ".venv",
    "vendor",
})

# Marker file (or directory) -> tools a project containing it uses
MARKER_TOOLS: dict[str, tuple[str, ...]] = {
    "package.json": ("node", "npm"),
    "Cargo.toml": ("rust", "cargo"),
    "requirements.txt": ("python", "python3", "pip"),
    "setup.py": ("python", "python3", "pip"),
    "pyproject.toml": ("python", "python3", "pip"),
    "Pipfile": ("python", "python3", "pip"),
    "Gemfile": ("ruby", "gem", "bundle"),
    "go.mod": ("go",),
    "pom.xml": ("java", "maven", "gradle"),
    "build.gradle": ("java", "maven", "gradle"),
    ".git": ("git",),
    "Dockerfile": ("docker", "docker-compose"),
    "docker-compose.yml": ("docker", "docker-compose"),
}


def _database_tools(dependencies: Iterable[Dependency]) -> set[str]:
    """Database servers implied by a Node project's client libraries."""
    tools = set()
    for dep in dependencies:
        if dep.manager != PackageManager.NPM:
            continue
        name = dep.package_name.lower()
        if name == "pg" or "postgres" in name:
            tools.add("postgresql")
        if "redis" in name:
            tools.add("redis")
        if "mongodb" in name or "mongoose" in name:
            tools.add("mongodb")
    return tools


def _dependency_key(manager: PackageManager, name: str) -> tuple[PackageManager, str]:
    if manager == PackageManager.PIP:
        return (manager, canonicalize_name(name))
    return (manager, name)


@dataclass
class UsageIndex:
    """
    Result of one usage scan.

    Attributes:
        tool_dirs: Tool name -> sorted project directories implying it
        dependency_dirs: (manager, name) -> sorted directories declaring it
        projects: Every project discovered, ordered by path
    """
    tool_dirs: dict[str, list[str]] = field(default_factory=dict)
    dependency_dirs: dict[tuple[PackageManager, str], list[str]] = field(default_factory=dict)
    projects: list[Project] = field(default_factory=list)

    def directories_for(self, manager: PackageManager, name: str) -> list[str]:
        """Sorted, deduplicated directories using one package."""
        dirs = set(self.tool_dirs.get(name, ()))
        dirs.update(self.dependency_dirs.get(_dependency_key(manager, name), ()))
        return sorted(dirs)

    def usage_for(self, manager: PackageManager, names: Iterable[str]) -> dict[str, list[str]]:
        """Map each of ``names`` to the directories using it (unused names omitted)."""
        usage = {}
        for name in names:
            dirs = self.directories_for(manager, name)
            if dirs:
                usage[name] = dirs
        return usage


class UsageScanner:
    """
    Bounded-depth project walker.

    Args:
        roots: Directories to walk; missing ones are skipped
        max_depth: Levels below each root to descend into
    """

    def __init__(self, roots: Iterable[Path], max_depth: int = DEFAULT_MAX_DEPTH):
        self.roots = [Path(r) for r in roots]
        self.max_depth = max_depth

    def _walk(self, root: Path):
        """Yield (directory, entry names) for every directory within max_depth."""
        root_depth = len(root.parts)
        for dirpath, dirnames, filenames in os.walk(root):
            entries = set(filenames) | set(dirnames)
            depth = len(Path(dirpath).parts) - root_depth
            if depth >= self.max_depth:
                dirnames[:] = []
            else:
                dirnames[:] = sorted(
                    d for d in dirnames
                    if not d.startswith(".") and d not in NOISE_DIRECTORIES
                )
            yield Path(dirpath), entries

    def scan(self) -> UsageIndex:
        """Walk every root and build a UsageIndex."""
        start = time.perf_counter()
        tool_dirs: dict[str, set[str]] = defaultdict(set)
        dependency_dirs: dict[tuple[PackageManager, str], set[str]] = defaultdict(set)
        projects: dict[str, Project] = {}

        for root in self.roots:
            if not root.is_dir():
                logger.debug(f"Scan root missing, skipping: {root}")
                continue
            logger.debug(f"Scanning {root}")

            for directory, entries in self._walk(root):
                markers = entries.intersection(MARKER_TOOLS)
                if not markers:
                    continue
                dir_str = str(directory)
                if dir_str in projects:
                    continue

                project = Project.from_path(directory)
                for marker in sorted(markers):
                    for tool in MARKER_TOOLS[marker]:
                        tool_dirs[tool].add(dir_str)
                    if marker in PARSERS:
                        for dep in parse_manifest(directory / marker):
                            project.add_dependency(dep)

                for tool in _database_tools(project.dependencies):
                    tool_dirs[tool].add(dir_str)
                for dep in project.dependencies:
                    dependency_dirs[_dependency_key(dep.manager, dep.package_name)].add(dir_str)
                projects[dir_str] = project

        index = UsageIndex(
            tool_dirs={tool: sorted(dirs) for tool, dirs in sorted(tool_dirs.items())},
            dependency_dirs={key: sorted(dirs) for key, dirs in dependency_dirs.items()},
            projects=[projects[p] for p in sorted(projects)],
        )
        logger.info(
            f"Usage scan found {len(index.projects)} projects in "
            f"{time.perf_counter() - start:.2f}s"
        )
        return index
