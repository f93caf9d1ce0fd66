"""
npm adapter (global packages).
"""

from __future__ import annotations

import json
import logging

from ..errors import CommandFailedError, ParseError
from ..models import Package, PackageManager
from ..versions import UNKNOWN_VERSION
from .base import ManagerAdapter, mark_listed_as_current
from .registry import register_adapter

logger = logging.getLogger(__name__)


def _load_json_object(text: str, what: str) -> dict:
    if not text.strip():
        return {}
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseError(f"{what}: {e}") from e
    if not isinstance(data, dict):
        raise ParseError(f"{what}: expected an object")
    return data


def parse_list(text: str) -> list[tuple[str, str]]:
    """Parse ``npm list -g --depth=0 --json`` into (name, version) pairs."""
    data = _load_json_object(text, "npm list")
    entries = []
    for name, info in sorted((data.get("dependencies") or {}).items()):
        version = info.get("version") if isinstance(info, dict) else None
        entries.append((name, version or UNKNOWN_VERSION))
    return entries


def parse_outdated(text: str) -> dict[str, str]:
    """Parse ``npm outdated -g --json`` into name -> latest version."""
    data = _load_json_object(text, "npm outdated")
    latest = {}
    for name, info in data.items():
        if isinstance(info, dict) and info.get("latest"):
            latest[name] = str(info["latest"])
    return latest


@register_adapter
class NpmAdapter(ManagerAdapter):
    manager = PackageManager.NPM

    OUTDATED_TIMEOUT = 30

    def list_installed(self) -> list[Package]:
        output = self.run(["list", "-g", "--depth=0", "--json"], self.LIST_TIMEOUT)
        # npm exits 1 on peer-dependency problems but still prints the tree
        if not output.stdout.strip():
            raise CommandFailedError("npm list", output.returncode, output.stderr)
        return [self.new_package(name, version) for name, version in parse_list(output.stdout)]

    def check_outdated(self, packages: list[Package]) -> None:
        output = self.run(["outdated", "-g", "--json"], self.OUTDATED_TIMEOUT)
        # Exit 1 only means that something is outdated
        if output.returncode not in (0, 1):
            raise CommandFailedError("npm outdated", output.returncode, output.stderr)
        mark_listed_as_current(packages, parse_outdated(output.stdout))

    def describe(self, name: str) -> str | None:
        output = self.run(["view", name, "description"], self.DESCRIBE_TIMEOUT)
        if not output.success:
            return None
        return output.stdout.strip() or None

    def install_args(self, name: str) -> list[str]:
        return ["install", "-g", name]

    def update_args(self, name: str) -> list[str]:
        return ["update", "-g", name]

    def uninstall_args(self, name: str) -> list[str]:
        return ["uninstall", "-g", name]

    def update_all(self, names) -> None:
        self._mutate("update", "", ["update", "-g"], self.UPDATE_ALL_TIMEOUT)
