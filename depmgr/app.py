"""
Application facade.

DepMgrApp wires the shared scheduler, cache, HTTP client, inventory,
adapters, orchestrator and mutation coordinator together, and is the only
object a renderer talks to. Reads never block on I/O; commands return
immediately and run on the scheduler.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Iterable, Mapping

import httpx

from .cache import TTLCache
from .config import Config
from .http_client import create_http_client
from .inventory import InventoryStore
from .managers import ManagerAdapter, build_adapters
from .models import Package, PackageManager
from .mutations import ManagerProgress, MutationCoordinator, ProgressCallback
from .orchestrator import ScanOrchestrator
from .scanner import UsageScanner

logger = logging.getLogger(__name__)


def _configured_managers(names: Iterable[str]) -> list[PackageManager] | None:
    """
    Resolve the ``managers`` preference.

    Unknown names are logged and skipped. An empty preference means every
    manager (None); a non-empty one narrows the set even if nothing in it
    resolves.
    """
    names = list(names)
    if not names:
        return None
    selected = []
    for name in names:
        try:
            manager = PackageManager.from_name(name)
        except ValueError:
            logger.warning(f"Unknown package manager in config, skipping: {name}")
            continue
        if manager not in selected:
            selected.append(manager)
    return selected


class DepMgrApp:
    """
    Renderer-facing facade over the whole system.

    Args:
        config: Loaded configuration (defaults when None)
        adapters: Prebuilt adapters (built from the config when None)
        http: Shared HTTP client (created when None and owned by the app)
        scanner: Usage scanner (built from the scan roots when None)
    """

    def __init__(
        self,
        config: Config | None = None,
        adapters: Mapping[PackageManager, ManagerAdapter] | None = None,
        http: httpx.Client | None = None,
        scanner: UsageScanner | None = None,
    ):
        self.config = config or Config()
        prefs = self.config.preferences

        self.executor = ThreadPoolExecutor(max_workers=prefs.max_workers, thread_name_prefix="depmgr")
        self.cache = TTLCache()
        self._owns_http = http is None
        self.http = http if http is not None else create_http_client(timeout=prefs.http_timeout_seconds)
        self.store = InventoryStore()

        if adapters is None:
            adapters = build_adapters(
                _configured_managers(prefs.managers),
                cache=self.cache,
                http=self.http,
                description_workers=prefs.description_workers,
                cache_ttl=prefs.cache_ttl_seconds,
            )
        self.adapters = dict(adapters)

        if scanner is None:
            scanner = UsageScanner(prefs.resolve_scan_roots(), max_depth=prefs.scan_max_depth)

        self.orchestrator = ScanOrchestrator(self.store, self.adapters, self.executor, scanner)
        self.mutations = MutationCoordinator(
            self.store,
            self.adapters,
            self.executor,
            status_seconds=prefs.status_seconds,
            bulk_status_seconds=prefs.bulk_status_seconds,
        )
        self._started = False

    # Lifecycle

    def start(self) -> list[PackageManager]:
        """Detect available managers and start the first scan cycle."""
        if not self._started:
            self.orchestrator.initialize()
            self._started = True
        self.orchestrator.request_refresh()
        return self.available_managers

    def shutdown(self, wait_for_descriptions: bool = False) -> None:
        """Stop scheduling work, drain the scheduler and close owned resources."""
        self.orchestrator.shutdown(wait_for_descriptions=wait_for_descriptions)
        self.executor.shutdown(wait=True, cancel_futures=not wait_for_descriptions)
        if self._owns_http:
            self.http.close()
        logger.debug("depmgr shut down")

    def __enter__(self) -> DepMgrApp:
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()

    # Reads

    @property
    def available_managers(self) -> list[PackageManager]:
        return list(self.orchestrator.available)

    def filtered_packages(
        self,
        selected_managers: Iterable[PackageManager] | None = None,
        search: str = "",
        outdated_only: bool = False,
        orphaned_only: bool = False,
    ) -> list[Package]:
        return self.store.filtered_packages(selected_managers, search, outdated_only, orphaned_only)

    def stats(self) -> tuple[int, int, int]:
        return self.store.stats()

    def is_scanning(self) -> bool:
        return self.orchestrator.is_scanning

    def is_updating(self, name: str, manager: PackageManager | None = None) -> bool:
        return self.store.is_updating(name, manager)

    def is_removed(self, name: str, manager: PackageManager | None = None) -> bool:
        return self.store.is_removed(name, manager)

    def current_status(self) -> str:
        return self.store.current_status()

    # Commands

    def request_refresh(self) -> bool:
        return self.orchestrator.request_refresh()

    def wait_idle(self, timeout: float | None = None) -> bool:
        return self.orchestrator.wait_idle(timeout)

    def update_package(self, name: str, manager: PackageManager) -> Future:
        return self.mutations.update_package(name, manager)

    def update_all_outdated(self) -> Future:
        return self.mutations.update_all_outdated()

    def uninstall_package(self, name: str, manager: PackageManager) -> Future:
        return self.mutations.uninstall_package(name, manager)

    def reinstall_package(self, name: str, manager: PackageManager) -> Future:
        return self.mutations.reinstall_package(name, manager)

    def install_package(self, name: str, manager: PackageManager) -> Future:
        return self.mutations.install_package(name, manager)

    # Bulk progress

    def bulk_progress(self) -> dict[PackageManager, ManagerProgress]:
        """Per-manager state of the latest "update all" run."""
        return self.mutations.progress.snapshot()

    def on_bulk_progress(self, listener: ProgressCallback) -> None:
        """Call ``listener(manager, progress)`` on every "update all" state change."""
        self.mutations.progress.subscribe(listener)
