"""
Inventory store.

The store owns the process-lifetime package list and its transient flags.
Every method takes the lock only for in-memory work, and records are copied
on the way in and on the way out, so no caller ever holds a reference into
shared state.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Mapping

from .models import Package, PackageManager

Key = tuple[PackageManager, str]


@dataclass(frozen=True)
class StatusMessage:
    """
    A user-visible status line with an expiry.

    Attributes:
        text: Message text
        created_at: Clock reading when the message was published
        ttl_seconds: How long the message stays visible
    """
    text: str
    created_at: float
    ttl_seconds: float

    def is_fresh(self, now: float) -> bool:
        return now - self.created_at < self.ttl_seconds


class InventoryStore:
    """
    Shared, thread-safe package inventory.

    Args:
        clock: Time source used for status freshness checks
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._lock = threading.RLock()
        self._packages: list[Package] = []
        self._updating: set[Key] = set()
        self._removed: set[Key] = set()
        self._status: StatusMessage | None = None

    # Reads

    def snapshot(self) -> list[Package]:
        """Copy of every package, in inventory order."""
        with self._lock:
            return [p.copy() for p in self._packages]

    def get(self, name: str, manager: PackageManager) -> Package | None:
        with self._lock:
            pkg = self._find(name, manager)
            return pkg.copy() if pkg else None

    def packages_for(self, manager: PackageManager) -> list[Package]:
        with self._lock:
            return [p.copy() for p in self._packages if p.manager == manager]

    def names_missing_description(self, manager: PackageManager) -> list[str]:
        with self._lock:
            return [p.name for p in self._packages if p.manager == manager and not p.description]

    def filtered_packages(
        self,
        selected_managers: Iterable[PackageManager] | None = None,
        search: str = "",
        outdated_only: bool = False,
        orphaned_only: bool = False,
    ) -> list[Package]:
        """
        Packages matching the renderer's filters.

        Args:
            selected_managers: Managers to include (empty or None means all)
            search: Case-insensitive substring of the package name
            outdated_only: Only outdated packages
            orphaned_only: Only packages not referenced by any project
        """
        managers = set(selected_managers or ())
        needle = search.lower()
        with self._lock:
            result = []
            for pkg in self._packages:
                if managers and pkg.manager not in managers:
                    continue
                if needle and needle not in pkg.name.lower():
                    continue
                if outdated_only and not pkg.is_outdated:
                    continue
                if orphaned_only and pkg.used_in:
                    continue
                result.append(pkg.copy())
            return result

    def stats(self) -> tuple[int, int, int]:
        """(total, outdated, unused) package counts."""
        with self._lock:
            total = len(self._packages)
            outdated = sum(1 for p in self._packages if p.is_outdated)
            unused = sum(1 for p in self._packages if not p.used_in)
            return total, outdated, unused

    def __len__(self) -> int:
        with self._lock:
            return len(self._packages)

    # Scan-cycle writes

    def replace_manager(self, manager: PackageManager, packages: Iterable[Package]) -> None:
        """
        Replace every entry of one manager with a fresh listing.

        The manager's removed flags are dropped: a package the listing still
        reports is installed again, and one it no longer reports has no
        record left to flag.
        """
        fresh = [p.copy() for p in packages if p.manager == manager]
        with self._lock:
            # Keep the manager's block where it was
            index = next(
                (i for i, p in enumerate(self._packages) if p.manager == manager),
                len(self._packages),
            )
            others = [p for p in self._packages if p.manager != manager]
            before = sum(1 for p in self._packages[:index] if p.manager != manager)
            self._packages = others[:before] + fresh + others[before:]
            self._removed = {key for key in self._removed if key[0] != manager}

    def apply_versions(self, manager: PackageManager, packages: Iterable[Package]) -> int:
        """
        Copy installed/latest/outdated fields from ``packages`` onto matching entries.

        Returns:
            Number of entries updated
        """
        updates = {p.name: (p.installed_version, p.latest_version, p.is_outdated)
                   for p in packages if p.manager == manager}
        count = 0
        with self._lock:
            for pkg in self._packages:
                if pkg.manager != manager or pkg.name not in updates:
                    continue
                pkg.installed_version, pkg.latest_version, pkg.is_outdated = updates[pkg.name]
                count += 1
        return count

    def apply_usage(self, manager: PackageManager, usage: Mapping[str, list[str]]) -> None:
        """Overwrite used_in for every package of ``manager`` (absent names get an empty list)."""
        with self._lock:
            for pkg in self._packages:
                if pkg.manager == manager:
                    pkg.used_in = list(usage.get(pkg.name, ()))

    def add_package(self, package: Package) -> bool:
        """Append a package unless one with the same key exists; False if it did."""
        with self._lock:
            if self._find(package.name, package.manager) is not None:
                return False
            self._packages.append(package.copy())
            return True

    def set_description(self, manager: PackageManager, name: str, description: str) -> bool:
        with self._lock:
            pkg = self._find(name, manager)
            if pkg is None:
                return False
            pkg.description = description
            return True

    def mutate(self, name: str, manager: PackageManager, fn: Callable[[Package], None]) -> bool:
        """
        Apply an in-memory mutation to one package under the lock.

        ``fn`` must not perform I/O.

        Returns:
            False if the package is not in the inventory
        """
        with self._lock:
            pkg = self._find(name, manager)
            if pkg is None:
                return False
            fn(pkg)
            return True

    # Transient flags

    def try_mark_updating(self, name: str, manager: PackageManager) -> bool:
        """Mark a package in progress; False if it already was."""
        with self._lock:
            key = (manager, name)
            if key in self._updating:
                return False
            self._updating.add(key)
            return True

    def clear_updating(self, name: str, manager: PackageManager) -> None:
        with self._lock:
            self._updating.discard((manager, name))

    def is_updating(self, name: str, manager: PackageManager | None = None) -> bool:
        with self._lock:
            return any(n == name and (manager is None or m == manager) for m, n in self._updating)

    def mark_removed(self, name: str, manager: PackageManager) -> None:
        with self._lock:
            self._removed.add((manager, name))

    def clear_removed(self, name: str, manager: PackageManager) -> None:
        with self._lock:
            self._removed.discard((manager, name))

    def is_removed(self, name: str, manager: PackageManager | None = None) -> bool:
        with self._lock:
            return any(n == name and (manager is None or m == manager) for m, n in self._removed)

    # Status line

    def set_status(self, text: str, ttl_seconds: float) -> None:
        with self._lock:
            self._status = StatusMessage(text=text, created_at=self._clock(), ttl_seconds=ttl_seconds)

    def current_status(self) -> str:
        """The latest status text while it is fresh, else an empty string."""
        with self._lock:
            if self._status is None or not self._status.is_fresh(self._clock()):
                return ""
            return self._status.text

    def _find(self, name: str, manager: PackageManager) -> Package | None:
        for pkg in self._packages:
            if pkg.name == name and pkg.manager == manager:
                return pkg
        return None
