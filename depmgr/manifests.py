"""
Project manifest parsers.

Each parser turns one manifest file into Dependency records for the package
manager the manifest belongs to. Parsers are registered by file name; a
malformed manifest yields no dependencies rather than an error.
"""

from __future__ import annotations

import json
import logging
import re
import tomllib
from pathlib import Path
from typing import Callable

from .models import Dependency, PackageManager

logger = logging.getLogger(__name__)

ManifestParser = Callable[[str], list[Dependency]]

PARSERS: dict[str, ManifestParser] = {}

# PEP 508, simplified: name, optional extras, then the constraint
_PEP508_RE = re.compile(
    r"^([A-Za-z0-9]([A-Za-z0-9._-]*[A-Za-z0-9])?)"
    r"(\[[^\]]*\])?"
    r"\s*"
    r"(.*)?$",
)

# gem "rails", "~> 7.0"
_GEM_RE = re.compile(r"""^gem\s+["']([^"']+)["'](?:\s*,\s*["']([^"']+)["'])?""")

_GO_SINGLE_RE = re.compile(r"^require\s+(\S+)\s+(\S+)")
_GO_BLOCK_RE = re.compile(r"^(\S+)\s+(v\S+)")


def register_parser(filename: str) -> Callable[[ManifestParser], ManifestParser]:
    def decorator(fn: ManifestParser) -> ManifestParser:
        PARSERS[filename] = fn
        return fn
    return decorator


def _pep508(requirement: str, manager: PackageManager, is_dev: bool = False) -> Dependency | None:
    line = requirement.strip()
    marker = line.find(";")
    if marker != -1:
        line = line[:marker].strip()
    m = _PEP508_RE.match(line)
    if not m:
        return None
    constraint = (m.group(4) or "").strip() or "*"
    return Dependency(m.group(1), manager, constraint, is_dev)


@register_parser("package.json")
def parse_package_json(content: str) -> list[Dependency]:
    data = json.loads(content)
    if not isinstance(data, dict):
        return []
    deps = []
    for section, is_dev in (("dependencies", False), ("devDependencies", True)):
        entries = data.get(section)
        if not isinstance(entries, dict):
            continue
        for name, constraint in entries.items():
            deps.append(Dependency(name, PackageManager.NPM, str(constraint or "*"), is_dev))
    return deps


@register_parser("requirements.txt")
def parse_requirements_txt(content: str) -> list[Dependency]:
    deps = []
    for raw_line in content.splitlines():
        line = raw_line.split("#", 1)[0].strip()
        if not line or line.startswith(("-", "git+", "http:", "https:")):
            continue
        dep = _pep508(line, PackageManager.PIP)
        if dep:
            deps.append(dep)
    return deps


@register_parser("pyproject.toml")
def parse_pyproject_toml(content: str) -> list[Dependency]:
    """PEP 621 dependencies plus the ``dev``/``test`` optional groups."""
    project = tomllib.loads(content).get("project", {})
    deps = []
    for requirement in project.get("dependencies", []):
        dep = _pep508(requirement, PackageManager.PIP)
        if dep:
            deps.append(dep)
    optional = project.get("optional-dependencies", {})
    for group in ("dev", "test"):
        for requirement in optional.get(group, []):
            dep = _pep508(requirement, PackageManager.PIP, is_dev=True)
            if dep:
                deps.append(dep)
    return deps


@register_parser("Pipfile")
def parse_pipfile(content: str) -> list[Dependency]:
    data = tomllib.loads(content)
    deps = []
    for section, is_dev in (("packages", False), ("dev-packages", True)):
        for name, constraint in data.get(section, {}).items():
            if isinstance(constraint, dict):
                constraint = constraint.get("version", "*")
            deps.append(Dependency(name, PackageManager.PIP, str(constraint or "*"), is_dev))
    return deps


@register_parser("Cargo.toml")
def parse_cargo_toml(content: str) -> list[Dependency]:
    data = tomllib.loads(content)
    deps = []
    for section, is_dev in (
        ("dependencies", False),
        ("dev-dependencies", True),
        ("build-dependencies", True),
    ):
        for name, constraint in data.get(section, {}).items():
            if isinstance(constraint, dict):
                # Renamed dependencies: foo = { package = "real-name" }
                name = constraint.get("package", name)
                constraint = constraint.get("version", "*")
            deps.append(Dependency(name, PackageManager.CARGO, str(constraint or "*"), is_dev))
    return deps


@register_parser("Gemfile")
def parse_gemfile(content: str) -> list[Dependency]:
    deps = []
    for raw_line in content.splitlines():
        m = _GEM_RE.match(raw_line.strip())
        if m:
            deps.append(Dependency(m.group(1), PackageManager.GEM, m.group(2) or "*"))
    return deps


@register_parser("go.mod")
def parse_go_mod(content: str) -> list[Dependency]:
    deps = []
    in_require_block = False
    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("//"):
            continue
        if line.startswith("require ("):
            in_require_block = True
            continue
        if in_require_block and line == ")":
            in_require_block = False
            continue
        m = (_GO_BLOCK_RE if in_require_block else _GO_SINGLE_RE).match(line)
        if m:
            deps.append(Dependency(m.group(1), PackageManager.GO, m.group(2), "// indirect" in line))
    return deps


def parse_manifest(path: Path) -> list[Dependency]:
    """
    Parse one manifest file.

    Returns:
        Declared dependencies; empty if the file has no registered parser or
        cannot be read or parsed
    """
    parser = PARSERS.get(path.name)
    if parser is None:
        return []
    try:
        content = path.read_text(encoding="utf-8", errors="replace")
        return parser(content)
    except (OSError, ValueError, TypeError, AttributeError) as e:
        # tomllib.TOMLDecodeError and json.JSONDecodeError are ValueErrors
        logger.debug(f"Skipping unreadable manifest {path}: {e}")
        return []
