"""
Adapter registry keyed by PackageManager.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Iterable, TypeVar

from ..models import PackageManager
from .base import ManagerAdapter

logger = logging.getLogger(__name__)

ADAPTERS: dict[PackageManager, type[ManagerAdapter]] = {}

A = TypeVar("A", bound=type[ManagerAdapter])


def register_adapter(cls: A) -> A:
    """Class decorator registering an adapter for its ``manager``."""
    ADAPTERS[cls.manager] = cls
    return cls


def get_adapter_class(manager: PackageManager) -> type[ManagerAdapter] | None:
    return ADAPTERS.get(manager)


def supported_managers() -> list[PackageManager]:
    """Managers with a registered adapter, in enum order."""
    return [m for m in PackageManager if m in ADAPTERS]


def build_adapters(
    managers: Iterable[PackageManager] | None = None,
    **kwargs,
) -> dict[PackageManager, ManagerAdapter]:
    """
    Instantiate adapters.

    Args:
        managers: Managers to build (None means every registered one)
        **kwargs: Passed to each adapter constructor

    Returns:
        Adapters keyed by manager, in enum order
    """
    wanted = set(managers) if managers is not None else set(ADAPTERS)
    adapters = {}
    for manager in supported_managers():
        if manager in wanted:
            adapters[manager] = ADAPTERS[manager](**kwargs)
    unsupported = wanted - set(ADAPTERS)
    for manager in sorted(unsupported, key=lambda m: m.value):
        logger.warning(f"No adapter for {manager.display_name}, skipping")
    return adapters


def detect_available_managers(
    adapters: dict[PackageManager, ManagerAdapter],
    max_workers: int = 8,
    check: Callable[[ManagerAdapter], bool] | None = None,
) -> list[PackageManager]:
    """
    Check which adapters' executables are present, in parallel.

    Args:
        adapters: Candidate adapters
        max_workers: Maximum parallel checks
        check: Availability predicate (adapter.is_available by default)

    Returns:
        Available managers, in enum order
    """
    if not adapters:
        return []
    check = check or (lambda adapter: adapter.is_available())

    available = set()
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {executor.submit(check, adapter): manager for manager, adapter in adapters.items()}
        for future in as_completed(futures):
            manager = futures[future]
            try:
                if future.result():
                    available.add(manager)
                else:
                    logger.debug(f"{manager.display_name} not found on PATH")
            except Exception as e:
                logger.debug(f"Availability check failed for {manager.display_name}: {e}")

    return [m for m in PackageManager if m in available]
