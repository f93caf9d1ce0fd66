"""
Cargo adapter (binaries installed with ``cargo install``).

Cargo has no outdated subcommand, so latest versions come from the crates.io
API, one request per crate on a bounded pool, cached per crate.
"""

from __future__ import annotations

import logging
import re

from ..errors import CommandFailedError, ParseError
from ..models import Package, PackageManager
from .base import ManagerAdapter
from .registry import register_adapter

logger = logging.getLogger(__name__)

CRATES_API_URL = "https://crates.io/api/v1/crates/{name}"

# "ripgrep v14.1.0:" or "mytool v0.1.0 (/path/to/src):"
_CRATE_LINE = re.compile(r"^(?P<name>\S+) v(?P<version>\S+?)(?: \(.*\))?:$")


def parse_install_list(text: str) -> list[tuple[str, str]]:
    """
    Parse ``cargo install --list``.

    Crate lines are unindented; the indented lines below each crate name its
    binaries and are ignored.
    """
    entries = []
    for line in text.splitlines():
        if not line or line[0].isspace():
            continue
        match = _CRATE_LINE.match(line.strip())
        if match:
            entries.append((match.group("name"), match.group("version")))
        else:
            logger.debug(f"Cargo: unrecognised list line: {line!r}")
    return entries


def crate_field(data: object, field_name: str) -> str | None:
    """
    Read one field of the ``crate`` object in a crates.io response.

    Raises:
        ParseError: If the response has no crate object
    """
    if not isinstance(data, dict) or not isinstance(data.get("crate"), dict):
        raise ParseError("crates.io response has no crate object")
    value = data["crate"].get(field_name)
    return str(value) if value else None


@register_adapter
class CargoAdapter(ManagerAdapter):
    manager = PackageManager.CARGO

    INSTALL_TIMEOUT = 600
    UPDATE_TIMEOUT = 600
    UNINSTALL_TIMEOUT = 60

    def list_installed(self) -> list[Package]:
        output = self.run(["install", "--list"], self.LIST_TIMEOUT)
        if not output.success:
            raise CommandFailedError("cargo install --list", output.returncode, output.stderr)
        return [self.new_package(name, version) for name, version in parse_install_list(output.stdout)]

    def _crate_info(self, name: str) -> object:
        return self.cached_json(f"cargo:crate:{name}", CRATES_API_URL.format(name=name))

    def _latest(self, name: str) -> str | None:
        data = self._crate_info(name)
        return crate_field(data, "max_stable_version") or crate_field(data, "newest_version")

    def check_outdated(self, packages: list[Package]) -> None:
        latest = self.map_bounded(self._latest, [p.name for p in packages])
        for pkg in packages:
            if latest.get(pkg.name):
                pkg.set_latest(latest[pkg.name])
        logger.debug(f"Cargo: resolved latest versions for {len(latest)}/{len(packages)} crates")

    def describe(self, name: str) -> str | None:
        return crate_field(self._crate_info(name), "description")

    def install_args(self, name: str) -> list[str]:
        return ["install", name]

    def update_args(self, name: str) -> list[str]:
        return ["install", name, "--force"]

    def uninstall_args(self, name: str) -> list[str]:
        return ["uninstall", name]
