"""
Homebrew adapter.

The formula catalog is one large JSON array. Fetching it once and diffing it
against ``brew list --versions`` is much cheaper than one ``brew info`` per
formula, so per-formula calls are only used for the few formulae the catalog
does not contain.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from ..errors import CommandFailedError, DepMgrError, ParseError
from ..models import Package, PackageManager
from ..versions import UNKNOWN_VERSION
from .base import ManagerAdapter
from .registry import register_adapter

logger = logging.getLogger(__name__)

FORMULA_CATALOG_URL = "https://formulae.brew.sh/api/formula.json"
CATALOG_CACHE_KEY = "homebrew:formula_catalog"
LAST_GOOD_CATALOG_KEY = "homebrew:formula_catalog:last_good"
# Fallback copy survives well past the normal TTL
LAST_GOOD_TTL_SECONDS = 7 * 24 * 3600


def parse_catalog(data: Any) -> dict[str, dict[str, str | None]]:
    """
    Index a formula catalog by name.

    Accepts both the upstream record shape ``{name, desc, versions: {stable}}``
    and the flat ``{name, description, stable_version}`` shape. Records
    without a name are skipped.

    Returns:
        Mapping of formula name to {"stable": ..., "desc": ...}

    Raises:
        ParseError: If the document is not a list
    """
    if not isinstance(data, list):
        raise ParseError(f"Expected formula catalog array, got {type(data).__name__}")

    catalog = {}
    for record in data:
        if not isinstance(record, dict) or not record.get("name"):
            continue
        versions = record.get("versions")
        if isinstance(versions, dict):
            stable = versions.get("stable")
        else:
            stable = record.get("stable_version")
        # brew list reports rebuilt formulae as VERSION_REVISION
        revision = record.get("revision")
        if stable and isinstance(revision, int) and revision > 0:
            stable = f"{stable}_{revision}"
        desc = record.get("desc", record.get("description"))
        catalog[record["name"]] = {
            "stable": str(stable) if stable else None,
            "desc": desc if isinstance(desc, str) else None,
        }
    return catalog


def parse_list_versions(output: str) -> list[tuple[str, str]]:
    """
    Parse ``brew list --versions``.

    Each line is a formula name followed by one or more installed versions;
    the last one is the active version. A bare name gets the unknown marker.
    """
    entries = []
    for line in output.splitlines():
        parts = line.split()
        if not parts:
            continue
        version = parts[-1] if len(parts) > 1 else UNKNOWN_VERSION
        entries.append((parts[0], version))
    return entries


@register_adapter
class HomebrewAdapter(ManagerAdapter):
    manager = PackageManager.HOMEBREW

    LIST_TIMEOUT = 15
    DESCRIBE_TIMEOUT = 10

    def list_installed(self) -> list[Package]:
        output = self.run(["list", "--versions"], self.LIST_TIMEOUT)
        if not output.success:
            raise CommandFailedError("brew list", output.returncode, output.stderr)

        catalog = self._catalog_or_empty()
        packages = []
        for name, version in parse_list_versions(output.stdout):
            entry = catalog.get(name, {})
            packages.append(self.new_package(name, version, description=entry.get("desc")))
        logger.info(f"Homebrew: {len(packages)} formulae installed")
        return packages

    def check_outdated(self, packages: list[Package]) -> None:
        catalog = self._catalog_or_empty()
        if not catalog:
            return
        missing = 0
        for pkg in packages:
            entry = catalog.get(pkg.name)
            if entry is None:
                missing += 1
                continue
            pkg.set_latest(entry["stable"])
        if missing:
            logger.debug(f"Homebrew: {missing} installed formulae not in catalog")

    def describe(self, name: str) -> str | None:
        output = self.run(["info", "--json=v2", name], self.DESCRIBE_TIMEOUT)
        if not output.success:
            return None
        try:
            data = json.loads(output.stdout)
        except json.JSONDecodeError as e:
            raise ParseError(f"brew info {name}: {e}") from e
        for key in ("formulae", "casks"):
            for record in data.get(key) or []:
                desc = record.get("desc")
                if desc:
                    return desc
        return None

    def fetch_catalog(self) -> dict[str, dict[str, str | None]]:
        """
        The formula catalog, from cache when fresh.

        A successful fetch is also stored under a long-lived key, which is
        used when a later fetch fails.

        Raises:
            DepMgrError: If the fetch fails and no earlier copy exists
        """
        cached = self.cache.get(CATALOG_CACHE_KEY)
        if cached is not None:
            return parse_catalog(cached)

        try:
            data = self.cached_json(CATALOG_CACHE_KEY, FORMULA_CATALOG_URL)
            catalog = parse_catalog(data)
        except DepMgrError as e:
            fallback = self.cache.get(LAST_GOOD_CATALOG_KEY)
            if fallback is None:
                raise
            logger.warning(f"Homebrew catalog fetch failed, using last good copy: {e}")
            return parse_catalog(fallback)

        logger.info(f"Homebrew: fetched catalog with {len(catalog)} formulae")
        self.cache.set(LAST_GOOD_CATALOG_KEY, data, LAST_GOOD_TTL_SECONDS)
        return catalog

    def _catalog_or_empty(self) -> dict[str, dict[str, str | None]]:
        try:
            return self.fetch_catalog()
        except DepMgrError as e:
            logger.warning(f"Homebrew catalog unavailable, latest versions unknown: {e}")
            return {}

    def install_args(self, name: str) -> list[str]:
        return ["install", name]

    def update_args(self, name: str) -> list[str]:
        return ["upgrade", name]

    def uninstall_args(self, name: str) -> list[str]:
        return ["uninstall", name]

    def update_all(self, names) -> None:
        self._mutate("update", "", ["upgrade"], self.UPDATE_ALL_TIMEOUT)
