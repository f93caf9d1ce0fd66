"""
pip adapter (``pip3``).
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


def _load_records(text: str, what: str) -> list[dict]:
    if not text.strip():
        return []
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseError(f"{what}: {e}") from e
    if not isinstance(data, list):
        raise ParseError(f"{what}: expected an array")
    return [r for r in data if isinstance(r, dict) and r.get("name")]


def parse_list(text: str) -> list[tuple[str, str]]:
    """Parse ``pip3 list --format=json`` into (name, version) pairs."""
    return [(r["name"], r.get("version") or UNKNOWN_VERSION) for r in _load_records(text, "pip list")]


def parse_outdated(text: str) -> dict[str, str]:
    """Parse ``pip3 list --outdated --format=json`` into name -> latest version."""
    return {
        r["name"]: r["latest_version"]
        for r in _load_records(text, "pip list --outdated")
        if r.get("latest_version")
    }


def parse_summary(text: str) -> str | None:
    """Extract the ``Summary:`` field from ``pip3 show`` output."""
    for line in text.splitlines():
        if line.startswith("Summary:"):
            summary = line[len("Summary:"):].strip()
            return summary or None
    return None


@register_adapter
class PipAdapter(ManagerAdapter):
    manager = PackageManager.PIP

    def list_installed(self) -> list[Package]:
        output = self.run(["list", "--format=json"], self.LIST_TIMEOUT)
        if not output.success:
            raise CommandFailedError("pip3 list", output.returncode, output.stderr)
        return [self.new_package(name, version) for name, version in parse_list(output.stdout)]

    def check_outdated(self, packages: list[Package]) -> None:
        output = self.run(["list", "--outdated", "--format=json"], self.OUTDATED_TIMEOUT)
        if not output.success:
            raise CommandFailedError("pip3 list --outdated", output.returncode, output.stderr)
        mark_listed_as_current(packages, parse_outdated(output.stdout))

    def describe(self, name: str) -> str | None:
        output = self.run(["show", name], self.DESCRIBE_TIMEOUT)
        if not output.success:
            return None
        return parse_summary(output.stdout)

    def install_args(self, name: str) -> list[str]:
        return ["install", name]

    def update_args(self, name: str) -> list[str]:
        return ["install", "--upgrade", name]

    def uninstall_args(self, name: str) -> list[str]:
        return ["uninstall", "-y", name]

    def update_all(self, names) -> None:
        names = list(names)
        if not names:
            return
        self._mutate("update", "", ["install", "--upgrade", *names], self.UPDATE_ALL_TIMEOUT)
