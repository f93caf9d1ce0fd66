"""
Package manager adapters.

Importing this package registers every shipped adapter.
"""

from .base import ManagerAdapter, mark_listed_as_current
from .registry import (
    ADAPTERS,
    build_adapters,
    detect_available_managers,
    get_adapter_class,
    register_adapter,
    supported_managers,
)
from .homebrew import HomebrewAdapter
from .npm import NpmAdapter
from .pip import PipAdapter
from .cargo import CargoAdapter
from .gem import GemAdapter

__all__ = [
    "ManagerAdapter",
    "mark_listed_as_current",
    "ADAPTERS",
    "build_adapters",
    "detect_available_managers",
    "get_adapter_class",
    "register_adapter",
    "supported_managers",
    "HomebrewAdapter",
    "NpmAdapter",
    "PipAdapter",
    "CargoAdapter",
    "GemAdapter",
]
