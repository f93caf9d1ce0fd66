"""
Mutating package operations: install, update, uninstall, reinstall and
"update all outdated".

Every operation runs on the shared scheduler and returns a Future. While it
runs the package is flagged in progress, and a second request for the same
package is rejected. On failure the stored package is left exactly as it
was; the outcome is reported as a short-lived status message either way.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Executor, Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping

from .errors import DepMgrError, MutationError
from .inventory import InventoryStore
from .managers import ManagerAdapter
from .models import Package, PackageManager

logger = logging.getLogger(__name__)

DEFAULT_STATUS_SECONDS = 4.0
DEFAULT_BULK_STATUS_SECONDS = 10.0

_PAST_TENSE = {
    "install": "Installed",
    "update": "Updated",
    "uninstall": "Uninstalled",
    "reinstall": "Reinstalled",
}


@dataclass(frozen=True)
class OperationResult:
    """
    Outcome of one single-package operation.

    Attributes:
        package: Package name
        manager: Owning package manager
        action: "install", "update", "uninstall" or "reinstall"
        success: Whether the operation succeeded
        message: Status message shown to the user
    """
    package: str
    manager: PackageManager
    action: str
    success: bool
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "package": self.package,
            "manager": self.manager.value,
            "action": self.action,
            "success": self.success,
            "message": self.message,
        }


BULK_STATES = ("pending", "in_progress", "success", "failed")

ProgressCallback = Callable[[PackageManager, "ManagerProgress"], None]


@dataclass(frozen=True)
class ManagerProgress:
    """One manager's position in an "update all" run."""
    state: str
    detail: str = ""
    updated_at: float = 0.0


class ProgressTracker:
    """
    Per-manager progress of the current "update all" run.

    Listeners registered with ``subscribe`` are called on the updating
    thread, outside the tracker's lock; a listener that raises is logged and
    otherwise ignored.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._lock = threading.Lock()
        self._states: dict[PackageManager, ManagerProgress] = {}
        self._listeners: list[ProgressCallback] = []

    def subscribe(self, listener: ProgressCallback) -> None:
        with self._lock:
            self._listeners.append(listener)

    def reset(self, managers: Iterable[PackageManager]) -> None:
        """Start a new run with every manager in ``managers`` pending."""
        with self._lock:
            self._states = {}
        for manager in managers:
            self.set(manager, "pending")

    def set(self, manager: PackageManager, state: str, detail: str = "") -> None:
        if state not in BULK_STATES:
            raise ValueError(f"Unknown progress state: {state}")
        progress = ManagerProgress(state, detail, self._clock())
        with self._lock:
            self._states[manager] = progress
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(manager, progress)
            except Exception as e:
                logger.debug(f"Progress listener failed for {manager.display_name}: {e}")

    def get(self, manager: PackageManager) -> ManagerProgress | None:
        with self._lock:
            return self._states.get(manager)

    def snapshot(self) -> dict[PackageManager, ManagerProgress]:
        with self._lock:
            return dict(self._states)

    def counts(self) -> dict[str, int]:
        """Number of managers in each state."""
        with self._lock:
            counts = dict.fromkeys(BULK_STATES, 0)
            for progress in self._states.values():
                counts[progress.state] += 1
            return counts


@dataclass(frozen=True)
class BulkUpdateResult:
    """
    Result of "update all outdated".

    Attributes:
        packages_attempted: (manager identifier, package name) pairs attempted
        succeeded: Managers whose bulk upgrade succeeded
        failed: Managers whose bulk upgrade failed, with the error message
        duration_seconds: Total execution time
    """
    packages_attempted: tuple[tuple[str, str], ...] = ()
    succeeded: tuple[PackageManager, ...] = ()
    failed: tuple[tuple[PackageManager, str], ...] = ()
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return not self.failed

    def to_dict(self) -> dict[str, Any]:
        return {
            "packages_attempted": [list(p) for p in self.packages_attempted],
            "succeeded": [m.value for m in self.succeeded],
            "failed": [{"manager": m.value, "message": msg} for m, msg in self.failed],
            "duration_seconds": self.duration_seconds,
        }


def _completed(result: Any) -> Future:
    future: Future = Future()
    future.set_result(result)
    return future


def _assume_latest_installed(pkg: Package) -> None:
    if pkg.latest_version:
        pkg.installed_version = pkg.latest_version
    pkg.is_outdated = False


class MutationCoordinator:
    """
    Runs mutating operations against the adapters and keeps the inventory in step.

    Args:
        store: Shared inventory
        adapters: Adapters keyed by manager
        executor: Shared task scheduler
        status_seconds: Visibility of single-operation status messages
        bulk_status_seconds: Visibility of bulk-operation status messages
    """

    def __init__(
        self,
        store: InventoryStore,
        adapters: Mapping[PackageManager, ManagerAdapter],
        executor: Executor,
        status_seconds: float = DEFAULT_STATUS_SECONDS,
        bulk_status_seconds: float = DEFAULT_BULK_STATUS_SECONDS,
    ):
        self.store = store
        self.adapters = dict(adapters)
        self.executor = executor
        self.status_seconds = status_seconds
        self.bulk_status_seconds = bulk_status_seconds
        self.progress = ProgressTracker()

    # Single-package operations

    def update_package(self, name: str, manager: PackageManager) -> Future:
        return self._schedule("update", name, manager)

    def uninstall_package(self, name: str, manager: PackageManager) -> Future:
        return self._schedule("uninstall", name, manager)

    def reinstall_package(self, name: str, manager: PackageManager) -> Future:
        return self._schedule("reinstall", name, manager)

    def install_package(self, name: str, manager: PackageManager) -> Future:
        return self._schedule("install", name, manager)

    def _reject(self, action: str, name: str, manager: PackageManager, message: str) -> Future:
        self.store.set_status(message, self.status_seconds)
        logger.info(message)
        return _completed(OperationResult(name, manager, action, False, message))

    def _schedule(self, action: str, name: str, manager: PackageManager) -> Future:
        adapter = self.adapters.get(manager)
        if adapter is None:
            return self._reject(action, name, manager, f"{manager.display_name} is not available")
        if not self.store.try_mark_updating(name, manager):
            return self._reject(action, name, manager, f"{name} is already being processed")

        self.store.set_status(f"{action.capitalize()} {name} ({manager.display_name})...", self.status_seconds)
        try:
            return self.executor.submit(self._run, action, name, manager, adapter)
        except RuntimeError:
            self.store.clear_updating(name, manager)
            raise

    def _run(self, action: str, name: str, manager: PackageManager, adapter: ManagerAdapter) -> OperationResult:
        try:
            return self._perform(action, name, manager, adapter)
        finally:
            self.store.clear_updating(name, manager)

    def _perform(self, action: str, name: str, manager: PackageManager, adapter: ManagerAdapter) -> OperationResult:
        try:
            if action == "uninstall":
                adapter.uninstall(name)
            elif action == "update":
                adapter.update(name)
            else:
                adapter.install(name)
        except DepMgrError as e:
            message = str(e) if isinstance(e, MutationError) else f"Failed to {action} {name}: {e}"
            logger.warning(message)
            self.store.set_status(message, self.status_seconds)
            return OperationResult(name, manager, action, False, message)

        if action == "uninstall":
            self.store.mark_removed(name, manager)
        elif action == "update":
            if not self._refresh_versions(adapter, manager):
                self.store.mutate(name, manager, _assume_latest_installed)
        else:
            self.store.clear_removed(name, manager)
            self._refresh_versions(adapter, manager, add_new=action in ("install", "reinstall"))

        message = f"{_PAST_TENSE[action]} {name}"
        self.store.set_status(message, self.status_seconds)
        logger.info(f"{message} ({manager.display_name})")
        return OperationResult(name, manager, action, True, message)

    def _refresh_versions(self, adapter: ManagerAdapter, manager: PackageManager, add_new: bool = False) -> bool:
        """
        Re-list and re-check one manager, then copy versions onto the inventory.

        Usage and descriptions already in the inventory are kept.

        Returns:
            False if the follow-up list or outdated check failed
        """
        try:
            packages = adapter.list_installed()
            adapter.check_outdated(packages)
        except DepMgrError as e:
            logger.warning(f"{manager.display_name}: refresh after mutation failed: {e}")
            return False
        self.store.apply_versions(manager, packages)
        if add_new:
            for pkg in packages:
                self.store.add_package(pkg)
        return True

    # Bulk update

    def update_all_outdated(self) -> Future:
        """Upgrade every outdated package, one bulk operation per manager."""
        return self.executor.submit(self._update_all)

    def _update_all(self) -> BulkUpdateResult:
        start = time.time()
        groups: dict[PackageManager, list[str]] = {}
        for pkg in self.store.filtered_packages(outdated_only=True):
            if pkg.manager not in self.adapters or self.store.is_removed(pkg.name, pkg.manager):
                continue
            if not self.store.try_mark_updating(pkg.name, pkg.manager):
                continue
            groups.setdefault(pkg.manager, []).append(pkg.name)

        if not groups:
            self.store.set_status("All packages are up to date", self.bulk_status_seconds)
            return BulkUpdateResult()

        attempted = tuple((m.value, n) for m, names in groups.items() for n in names)
        self.store.set_status(
            f"Updating {len(attempted)} packages across {len(groups)} managers...",
            self.bulk_status_seconds,
        )
        self.progress.reset(groups)

        succeeded: list[PackageManager] = []
        failed: list[tuple[PackageManager, str]] = []
        with ThreadPoolExecutor(max_workers=len(groups), thread_name_prefix="bulk-update") as pool:
            futures = {
                pool.submit(self._update_manager, manager, names): manager
                for manager, names in groups.items()
            }
            for future in as_completed(futures):
                manager = futures[future]
                try:
                    error = future.result()
                except Exception as e:
                    logger.error(f"{manager.display_name}: bulk update crashed: {e!r}")
                    self.progress.set(manager, "failed", str(e))
                    error = str(e) or type(e).__name__
                if error is None:
                    succeeded.append(manager)
                else:
                    failed.append((manager, error))

        order = list(PackageManager)
        result = BulkUpdateResult(
            packages_attempted=attempted,
            succeeded=tuple(sorted(succeeded, key=order.index)),
            failed=tuple(sorted(failed, key=lambda f: order.index(f[0]))),
            duration_seconds=time.time() - start,
        )

        if result.failed:
            names = ", ".join(m.display_name for m, _ in result.failed)
            message = f"Update all: {len(result.succeeded)} managers updated, failed: {names}"
        else:
            message = f"Updated {len(attempted)} packages"
        self.store.set_status(message, self.bulk_status_seconds)
        logger.info(message)
        return result

    def _update_manager(self, manager: PackageManager, names: list[str]) -> str | None:
        """Run one manager's bulk upgrade; returns an error message or None."""
        adapter = self.adapters[manager]
        self.progress.set(manager, "in_progress", f"{len(names)} packages")
        try:
            try:
                adapter.update_all(names)
            except DepMgrError as e:
                logger.warning(f"{manager.display_name}: bulk update failed: {e}")
                self.progress.set(manager, "failed", str(e))
                return str(e)

            if not self._refresh_versions(adapter, manager):
                for pkg_name in names:
                    self.store.mutate(pkg_name, manager, _assume_latest_installed)
            self.progress.set(manager, "success")
            return None
        finally:
            for pkg_name in names:
                self.store.clear_updating(pkg_name, manager)
