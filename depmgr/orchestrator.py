"""
Scan orchestration.

A scan cycle runs one pipeline per available manager on the shared
scheduler: List, then Usage-Enrich, then Outdated-Check, publishing to the
inventory after each phase. Description enrichment is started as a detached
task at the end of each pipeline and may outlive the cycle.

Only one cycle is in flight at a time. Refresh requests that arrive while a
cycle runs collapse into a single follow-up cycle. Cycle completion is
detected from task done-callbacks, so no scheduler worker sits waiting for
the other pipelines.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Executor, Future, wait
from typing import Mapping

from .errors import DepMgrError
from .inventory import InventoryStore
from .managers import ManagerAdapter, detect_available_managers
from .models import PackageManager
from .scanner import UsageScanner

logger = logging.getLogger(__name__)


class ScanOrchestrator:
    """
    Drives scan cycles over a set of manager adapters.

    Args:
        store: Inventory to publish into
        adapters: Adapters keyed by manager
        executor: Shared task scheduler
        scanner: Usage scanner (None skips usage enrichment)
    """

    def __init__(
        self,
        store: InventoryStore,
        adapters: Mapping[PackageManager, ManagerAdapter],
        executor: Executor,
        scanner: UsageScanner | None = None,
    ):
        self.store = store
        self.adapters = dict(adapters)
        self.executor = executor
        self.scanner = scanner
        self.available: list[PackageManager] = []
        self.cycles_completed = 0

        self._lock = threading.Lock()
        self._idle = threading.Condition(self._lock)
        self._scanning = False
        self._pending = False
        self._remaining = 0
        self._closed = False
        self._cycle_started = 0.0
        self._description_tasks: dict[PackageManager, Future] = {}
        self._stop_descriptions = threading.Event()

    def initialize(self, max_workers: int = 8) -> list[PackageManager]:
        """
        Detect which managers are installed.

        Managers whose executable is missing are never scanned.

        Returns:
            Available managers, in enum order
        """
        self.available = detect_available_managers(self.adapters, max_workers=max_workers)
        names = ", ".join(m.display_name for m in self.available) or "none"
        logger.info(f"Available package managers: {names}")
        return list(self.available)

    @property
    def is_scanning(self) -> bool:
        with self._lock:
            return self._scanning

    def request_refresh(self) -> bool:
        """
        Start a scan cycle, or schedule one follow-up if a cycle is running.

        Returns:
            True if a cycle was started by this call
        """
        with self._lock:
            if self._closed:
                return False
            if self._scanning:
                if not self._pending:
                    logger.debug("Scan in progress, queueing one follow-up cycle")
                self._pending = True
                return False
            self._scanning = True
        self._start_cycle()
        return True

    def _start_cycle(self) -> None:
        managers = list(self.available)
        self._cycle_started = time.perf_counter()
        logger.info(f"Scan cycle started for {len(managers)} managers")

        usage_future = None
        if self.scanner is not None and managers:
            # Submitted first so it is running before any pipeline waits on it
            usage_future = self._submit(self.scanner.scan)

        with self._lock:
            self._remaining = len(managers)
        if not managers:
            self._finish_cycle()
            return

        for manager in managers:
            future = self._submit(self._run_pipeline, manager, usage_future)
            if future is None:
                self._pipeline_done(None)
            else:
                future.add_done_callback(self._pipeline_done)

    def _submit(self, fn, *args) -> Future | None:
        try:
            return self.executor.submit(fn, *args)
        except RuntimeError as e:
            # Scheduler already shut down
            logger.debug(f"Could not schedule {getattr(fn, '__name__', fn)}: {e}")
            return None

    def _run_pipeline(self, manager: PackageManager, usage_future: Future | None) -> None:
        adapter = self.adapters[manager]
        name = manager.display_name

        try:
            packages = adapter.list_installed()
        except DepMgrError as e:
            logger.warning(f"{name}: listing failed: {e}")
            return
        self.store.replace_manager(manager, packages)
        logger.debug(f"{name}: published {len(packages)} packages")

        if usage_future is not None:
            try:
                index = usage_future.result()
            except Exception as e:
                logger.warning(f"{name}: usage scan failed: {e}")
            else:
                self.store.apply_usage(manager, index.usage_for(manager, [p.name for p in packages]))

        try:
            adapter.check_outdated(packages)
        except DepMgrError as e:
            logger.warning(f"{name}: outdated check failed: {e}")
        else:
            self.store.apply_versions(manager, packages)
            outdated = sum(1 for p in packages if p.is_outdated)
            logger.info(f"{name}: {len(packages)} packages, {outdated} outdated")

        self.start_descriptions(manager)

    def _pipeline_done(self, future: Future | None) -> None:
        if future is not None and not future.cancelled() and future.exception() is not None:
            logger.error(f"Scan pipeline crashed: {future.exception()!r}")
        with self._lock:
            self._remaining -= 1
            last = self._remaining == 0
        if last:
            self._finish_cycle()

    def _finish_cycle(self) -> None:
        elapsed = time.perf_counter() - self._cycle_started
        with self._lock:
            self.cycles_completed += 1
            rerun = self._pending and not self._closed
            self._pending = False
            if not rerun:
                self._scanning = False
                self._idle.notify_all()
        logger.info(f"Scan cycle finished in {elapsed:.2f}s")
        if rerun:
            self._start_cycle()

    # Detached description enrichment

    def start_descriptions(self, manager: PackageManager) -> Future | None:
        """
        Start description enrichment for one manager.

        Does nothing while that manager's previous enrichment is still running.
        """
        with self._lock:
            if self._closed:
                return None
            running = self._description_tasks.get(manager)
            if running is not None and not running.done():
                logger.debug(f"{manager.display_name}: description enrichment already running")
                return running
            future = self._submit(self._enrich, manager)
            if future is not None:
                self._description_tasks[manager] = future
            return future

    def _enrich(self, manager: PackageManager) -> int:
        try:
            return self.adapters[manager].fetch_descriptions(self.store, self._stop_descriptions)
        except DepMgrError as e:
            logger.warning(f"{manager.display_name}: description enrichment failed: {e}")
            return 0

    def description_tasks(self) -> dict[PackageManager, Future]:
        with self._lock:
            return dict(self._description_tasks)

    def wait_for_descriptions(self, timeout: float | None = None) -> bool:
        """Wait for detached enrichment; False if some task is still running."""
        _, not_done = wait(list(self.description_tasks().values()), timeout=timeout)
        return not not_done

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Block until no cycle is in flight; False on timeout."""
        with self._idle:
            return self._idle.wait_for(lambda: not self._scanning, timeout)

    def shutdown(self, wait_for_descriptions: bool = False) -> None:
        """
        Stop starting new work.

        Detached enrichment is awaited when ``wait_for_descriptions`` is set.
        Otherwise tasks that have not started are cancelled and running ones
        are told to stop, which returns them without waiting for lookups
        still in flight.
        """
        with self._lock:
            self._closed = True
            self._pending = False
        if wait_for_descriptions:
            self.wait_for_descriptions()
        else:
            self._stop_descriptions.set()
            for future in self.description_tasks().values():
                future.cancel()
