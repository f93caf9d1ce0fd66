"""
RubyGems adapter.
"""

from __future__ import annotations

import logging
import re

from ..errors import CommandFailedError
from ..models import Package, PackageManager
from ..versions import UNKNOWN_VERSION
from .base import ManagerAdapter, mark_listed_as_current
from .registry import register_adapter

logger = logging.getLogger(__name__)

RUBYGEMS_API_URL = "https://rubygems.org/api/v1/gems/{name}.json"

# "rake (13.1.0, 12.3.3)", "json (default: 2.6.3)"
_LIST_LINE = re.compile(r"^(?P<name>\S+) \((?P<versions>[^)]*)\)$")
# "rake (12.3.3 < 13.1.0)"
_OUTDATED_LINE = re.compile(r"^(?P<name>\S+) \((?P<current>\S+) < (?P<latest>\S+)\)$")


def parse_list(text: str) -> list[tuple[str, str]]:
    """
    Parse ``gem list --local``.

    The first version listed is the newest installed one. Lines that do not
    look like a gem entry degrade to the unknown version marker.
    """
    entries = []
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("***"):
            continue
        match = _LIST_LINE.match(line)
        if not match:
            entries.append((line.split()[0], UNKNOWN_VERSION))
            continue
        first = match.group("versions").split(",")[0].strip()
        first = first.removeprefix("default:").strip()
        # Platform-specific builds: "1.15.5 x86_64-linux"
        version = first.split()[0] if first else UNKNOWN_VERSION
        entries.append((match.group("name"), version))
    return entries


def parse_outdated(text: str) -> dict[str, str]:
    """Parse ``gem outdated`` into name -> latest version."""
    latest = {}
    for line in text.splitlines():
        match = _OUTDATED_LINE.match(line.strip())
        if match:
            latest[match.group("name")] = match.group("latest")
    return latest


@register_adapter
class GemAdapter(ManagerAdapter):
    manager = PackageManager.GEM

    def list_installed(self) -> list[Package]:
        output = self.run(["list", "--local"], self.LIST_TIMEOUT)
        if not output.success:
            raise CommandFailedError("gem list", output.returncode, output.stderr)
        return [self.new_package(name, version) for name, version in parse_list(output.stdout)]

    def check_outdated(self, packages: list[Package]) -> None:
        output = self.run(["outdated"], self.OUTDATED_TIMEOUT)
        if not output.success:
            raise CommandFailedError("gem outdated", output.returncode, output.stderr)
        mark_listed_as_current(packages, parse_outdated(output.stdout))

    def describe(self, name: str) -> str | None:
        data = self.cached_json(f"gem:info:{name}", RUBYGEMS_API_URL.format(name=name))
        if isinstance(data, dict) and data.get("info"):
            return str(data["info"])
        return None

    def install_args(self, name: str) -> list[str]:
        return ["install", name]

    def update_args(self, name: str) -> list[str]:
        return ["update", name]

    def uninstall_args(self, name: str) -> list[str]:
        return ["uninstall", "-a", "-x", name]

    def update_all(self, names) -> None:
        self._mutate("update", "", ["update"], self.UPDATE_ALL_TIMEOUT)
