"""
Manager adapter interface.

Each package manager is wrapped by one ManagerAdapter subclass. The
orchestrator only ever talks to this interface, so adding a manager means
adding a subclass and registering it; nothing else changes.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, as_completed, wait
from typing import TYPE_CHECKING, Callable, ClassVar, Iterable, Sequence, TypeVar

import httpx

from ..cache import DEFAULT_TTL_SECONDS, TTLCache
from ..errors import MutationError, RemoteFetchError
from ..executor import CommandOutput, command_exists, run_command
from ..http_client import get_json
from ..models import Package, PackageManager

if TYPE_CHECKING:
    from ..inventory import InventoryStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

Runner = Callable[[str, Sequence[str], float], CommandOutput]

DEFAULT_DESCRIPTION_WORKERS = 8

# How often a description run checks whether it was asked to stop
STOP_POLL_SECONDS = 0.1


class ManagerAdapter(ABC):
    """
    Uniform capability interface over one native package manager.

    Subclasses set ``manager`` and implement listing, outdated detection,
    per-package description lookup and the argument vectors of the mutating
    subcommands. Timeouts are class attributes so a manager that compiles
    from source can allow more time.

    Args:
        cache: Shared TTL cache for catalogs and registry lookups
        http: Shared HTTP client (None disables remote lookups)
        description_workers: Concurrent calls during description enrichment
        cache_ttl: Lifetime of cached remote data in seconds
        runner: Command runner (run_command by default)
    """

    manager: ClassVar[PackageManager]

    LIST_TIMEOUT: ClassVar[float] = 30
    OUTDATED_TIMEOUT: ClassVar[float] = 60
    DESCRIBE_TIMEOUT: ClassVar[float] = 5
    INSTALL_TIMEOUT: ClassVar[float] = 300
    UPDATE_TIMEOUT: ClassVar[float] = 300
    UPDATE_ALL_TIMEOUT: ClassVar[float] = 600
    UNINSTALL_TIMEOUT: ClassVar[float] = 120

    def __init__(
        self,
        cache: TTLCache | None = None,
        http: httpx.Client | None = None,
        description_workers: int = DEFAULT_DESCRIPTION_WORKERS,
        cache_ttl: float = DEFAULT_TTL_SECONDS,
        runner: Runner = run_command,
    ):
        self.cache = cache if cache is not None else TTLCache()
        self.http = http
        self.description_workers = description_workers
        self.cache_ttl = cache_ttl
        self._runner = runner

    @property
    def command(self) -> str:
        return self.manager.command

    @property
    def name(self) -> str:
        return self.manager.display_name

    def is_available(self) -> bool:
        return command_exists(self.command)

    def run(self, args: Sequence[str], timeout: float) -> CommandOutput:
        """Run this manager's executable with ``args``."""
        return self._runner(self.command, list(args), timeout)

    def new_package(self, name: str, version: str, **kwargs) -> Package:
        return Package(name=name, manager=self.manager, installed_version=version, **kwargs)

    # Scan phases

    @abstractmethod
    def list_installed(self) -> list[Package]:
        """List installed packages from the manager's own listing format."""

    @abstractmethod
    def check_outdated(self, packages: list[Package]) -> None:
        """Set latest_version / is_outdated on ``packages`` in place."""

    @abstractmethod
    def describe(self, name: str) -> str | None:
        """Look up one package's description; None when it has none."""

    def fetch_descriptions(self, store: InventoryStore, stop: threading.Event | None = None) -> int:
        """
        Fill in missing descriptions for this manager's packages.

        Lookups run on a pool of ``description_workers`` threads and each
        result is written to the store as soon as it arrives. Failures for
        individual packages are logged and skipped.

        Setting ``stop`` abandons the run: queued lookups are cancelled and
        the call returns without waiting for the ones in flight.

        Args:
            store: Inventory to enrich
            stop: Optional event that ends the run early

        Returns:
            Number of descriptions written
        """
        names = store.names_missing_description(self.manager)
        if not names:
            logger.debug(f"{self.name}: all packages have descriptions")
            return 0

        written = 0
        pending = []
        for pkg_name in names:
            cached = self.cache.get(self._description_key(pkg_name))
            if cached:
                if store.set_description(self.manager, pkg_name, cached):
                    written += 1
            else:
                pending.append(pkg_name)

        if not pending:
            return written

        total = len(pending)
        logger.info(f"{self.name}: fetching {total} descriptions ({self.description_workers} workers)")

        stop = stop if stop is not None else threading.Event()
        pool = ThreadPoolExecutor(
            max_workers=self.description_workers,
            thread_name_prefix=f"{self.manager.value}-describe",
        )
        completed = 0
        try:
            futures = {pool.submit(self.describe, pkg_name): pkg_name for pkg_name in pending}
            not_done = set(futures)
            while not_done and not stop.is_set():
                done, not_done = wait(not_done, timeout=STOP_POLL_SECONDS, return_when=FIRST_COMPLETED)
                for future in done:
                    completed += 1
                    pkg_name = futures[future]
                    try:
                        description = future.result()
                    except Exception as e:
                        logger.debug(f"{self.name}: no description for {pkg_name}: {e}")
                        description = None

                    if description and description.strip():
                        description = description.strip()
                        self.cache.set(self._description_key(pkg_name), description, self.cache_ttl)
                        if store.set_description(self.manager, pkg_name, description):
                            written += 1

                    if completed % 5 == 0 or completed == total:
                        logger.debug(f"{self.name}: descriptions {completed}/{total}")
        finally:
            # Only waits for the workers when the run finished normally
            pool.shutdown(wait=not stop.is_set(), cancel_futures=True)

        if stop.is_set() and completed < total:
            logger.info(f"{self.name}: description enrichment stopped after {completed}/{total}")
        else:
            logger.info(f"{self.name}: wrote {written} descriptions")
        return written

    def _description_key(self, name: str) -> str:
        return f"{self.manager.value}:description:{name}"

    def map_bounded(self, fn: Callable[[str], T], names: Iterable[str]) -> dict[str, T]:
        """
        Apply ``fn`` to each name on a bounded worker pool.

        Names whose call raises are left out of the result.
        """
        results: dict[str, T] = {}
        names = list(names)
        if not names:
            return results
        with ThreadPoolExecutor(
            max_workers=self.description_workers,
            thread_name_prefix=f"{self.manager.value}-lookup",
        ) as pool:
            futures = {pool.submit(fn, n): n for n in names}
            for future in as_completed(futures):
                n = futures[future]
                try:
                    results[n] = future.result()
                except Exception as e:
                    logger.debug(f"{self.name}: lookup failed for {n}: {e}")
        return results

    def cached_json(self, key: str, url: str) -> object:
        """
        Fetch a JSON document through the cache.

        Raises:
            RemoteFetchError: If there is no fresh cached copy and the fetch fails
            ParseError: If the response is not JSON
        """
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        if self.http is None:
            raise RemoteFetchError(url, "remote lookups disabled")
        data = get_json(self.http, url)
        self.cache.set(key, data, self.cache_ttl)
        return data

    # Mutations

    @abstractmethod
    def install_args(self, name: str) -> list[str]:
        ...

    @abstractmethod
    def update_args(self, name: str) -> list[str]:
        ...

    @abstractmethod
    def uninstall_args(self, name: str) -> list[str]:
        ...

    def install(self, name: str) -> CommandOutput:
        return self._mutate("install", name, self.install_args(name), self.INSTALL_TIMEOUT)

    def update(self, name: str) -> CommandOutput:
        return self._mutate("update", name, self.update_args(name), self.UPDATE_TIMEOUT)

    def uninstall(self, name: str) -> CommandOutput:
        return self._mutate("uninstall", name, self.uninstall_args(name), self.UNINSTALL_TIMEOUT)

    def update_all(self, names: Sequence[str]) -> None:
        """
        Update every named package.

        Managers with a bulk upgrade subcommand override this; the default
        updates one package at a time and raises on the first failure.
        """
        for pkg_name in names:
            self.update(pkg_name)

    def _mutate(self, action: str, name: str, args: Sequence[str], timeout: float) -> CommandOutput:
        logger.info(f"{self.name}: {action} {name or 'all'}")
        output = self.run(args, timeout)
        if not output.success:
            raise MutationError(action, name, output.returncode, output.stderr)
        logger.info(f"{self.name}: {action} {name or 'all'} succeeded in {output.duration_seconds:.1f}s")
        return output


def mark_listed_as_current(packages: Iterable[Package], latest: dict[str, str]) -> None:
    """
    Apply an outdated-listing to ``packages``.

    Managers whose outdated subcommand only reports outdated packages imply
    that every other package is at its latest version.
    """
    for pkg in packages:
        if pkg.name in latest:
            pkg.set_latest(latest[pkg.name])
        else:
            pkg.set_latest(pkg.installed_version)
