"""
depmgr - Inventory and maintenance of globally installed packages.

Core Modules:
- Foundation: Subprocess executor, TTL cache, HTTP client, config, logging
- Inventory: Data model, version policy, thread-safe inventory store
- Adapters: Homebrew, npm, pip, Cargo and gem behind one interface
- Scanning: Scan orchestration and project usage scanning
- Maintenance: Install, update, uninstall and bulk update operations
"""

__version__ = "0.3.0"
__author__ = "depmgr Contributors"

# Foundation
from .errors import (
    DepMgrError,
    SpawnError,
    CommandTimeoutError,
    ParseError,
    RemoteFetchError,
    CommandFailedError,
    MutationError,
)
from .executor import CommandOutput, run_command, command_exists
from .cache import TTLCache, CacheEntry
from .http_client import create_http_client, get_json
from .config import Config, Preferences, load_config, load_config_file, validate_config
from .logging_config import setup_logging, get_logger

# Inventory
from .models import PackageManager, Package, Dependency, Project, PackageUsage
from .versions import compare_versions, is_newer, UNKNOWN_VERSION
from .inventory import InventoryStore, StatusMessage

# Adapters
from .managers import (
    ManagerAdapter,
    build_adapters,
    detect_available_managers,
    register_adapter,
    HomebrewAdapter,
    NpmAdapter,
    PipAdapter,
    CargoAdapter,
    GemAdapter,
)

# Scanning
from .manifests import parse_manifest
from .scanner import UsageScanner, UsageIndex
from .orchestrator import ScanOrchestrator

# Maintenance
from .mutations import MutationCoordinator, OperationResult, BulkUpdateResult, ManagerProgress, ProgressTracker
from .app import DepMgrApp

__all__ = [
    "__version__",
    # Foundation
    "DepMgrError",
    "SpawnError",
    "CommandTimeoutError",
    "ParseError",
    "RemoteFetchError",
    "CommandFailedError",
    "MutationError",
    "CommandOutput",
    "run_command",
    "command_exists",
    "TTLCache",
    "CacheEntry",
    "create_http_client",
    "get_json",
    "Config",
    "Preferences",
    "load_config",
    "load_config_file",
    "validate_config",
    "setup_logging",
    "get_logger",
    # Inventory
    "PackageManager",
    "Package",
    "Dependency",
    "Project",
    "PackageUsage",
    "compare_versions",
    "is_newer",
    "UNKNOWN_VERSION",
    "InventoryStore",
    "StatusMessage",
    # Adapters
    "ManagerAdapter",
    "build_adapters",
    "detect_available_managers",
    "register_adapter",
    "HomebrewAdapter",
    "NpmAdapter",
    "PipAdapter",
    "CargoAdapter",
    "GemAdapter",
    # Scanning
    "parse_manifest",
    "UsageScanner",
    "UsageIndex",
    "ScanOrchestrator",
    # Maintenance
    "MutationCoordinator",
    "OperationResult",
    "BulkUpdateResult",
    "ManagerProgress",
    "ProgressTracker",
    "DepMgrApp",
]
