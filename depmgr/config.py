"""
Configuration file parsing and management.

Supports YAML configuration files with JSON fallback.
Merges configurations from multiple sources (explicit → project → user → system → defaults).
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .common import get_home_directory, vlog


# Configuration file locations (in priority order)
CONFIG_LOCATIONS = [
    ".depmgr.yml",                                   # Project root (highest priority)
    ".depmgr.yaml",
    os.path.expanduser("~/.config/depmgr/config.yml"),  # User global
    os.path.expanduser("~/.config/depmgr/config.yaml"),
    "/etc/depmgr/config.yml",                        # System global
    "/etc/depmgr/config.yaml",
]

# Conventional development roots under the home directory
DEFAULT_SCAN_DIRECTORIES = (
    "Desktop",
    "Documents",
    "projects",
    "dev",
    "Developer",
    "code",
    "workspace",
)


def _check_range(name: str, value: float, low: float, high: float) -> None:
    if value < low or value > high:
        raise ValueError(f"Invalid {name}: {value}. Must be between {low} and {high}")


def _string_tuple(name: str, value: Any) -> tuple[str, ...]:
    """A YAML list of strings, or a single string, as a tuple."""
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
        return tuple(value)
    raise ValueError(f"Invalid {name}: {value!r}. Must be a string or a list of strings")


@dataclass(frozen=True)
class Preferences:
    """
    Runtime preferences.

    Attributes:
        max_workers: Size of the shared task scheduler
        description_workers: Concurrent calls during description enrichment
        cache_ttl_seconds: Lifetime of cached catalogs and registry lookups
        http_timeout_seconds: Per-request HTTP timeout
        scan_max_depth: How deep the usage scanner descends below each root
        scan_roots: Directories to scan for projects (empty = defaults under HOME)
        managers: Package manager identifiers to scan (empty = all available)
        status_seconds: Visibility of single-operation status messages
        bulk_status_seconds: Visibility of bulk-operation status messages
    """
    max_workers: int = 16
    description_workers: int = 8
    cache_ttl_seconds: int = 3600
    http_timeout_seconds: int = 30
    scan_max_depth: int = 4
    scan_roots: tuple[str, ...] = ()
    managers: tuple[str, ...] = ()
    status_seconds: float = 4.0
    bulk_status_seconds: float = 10.0

    def __post_init__(self):
        """Validate preferences after initialization."""
        _check_range("max_workers", self.max_workers, 2, 64)
        _check_range("description_workers", self.description_workers, 1, 32)
        _check_range("cache_ttl_seconds", self.cache_ttl_seconds, 60, 86400)
        _check_range("http_timeout_seconds", self.http_timeout_seconds, 1, 120)
        _check_range("scan_max_depth", self.scan_max_depth, 1, 10)
        _check_range("status_seconds", self.status_seconds, 1, 60)
        _check_range("bulk_status_seconds", self.bulk_status_seconds, 1, 300)

    @staticmethod
    def from_dict(data: dict[str, Any]) -> Preferences:
        """Create Preferences from dictionary."""
        return Preferences(
            max_workers=data.get("max_workers", 16),
            description_workers=data.get("description_workers", 8),
            cache_ttl_seconds=data.get("cache_ttl_seconds", 3600),
            http_timeout_seconds=data.get("http_timeout_seconds", 30),
            scan_max_depth=data.get("scan_max_depth", 4),
            scan_roots=_string_tuple("scan_roots", data.get("scan_roots")),
            managers=_string_tuple("managers", data.get("managers")),
            status_seconds=data.get("status_seconds", 4.0),
            bulk_status_seconds=data.get("bulk_status_seconds", 10.0),
        )

    def resolve_scan_roots(self) -> list[Path]:
        """Configured scan roots, or the conventional ones under the home directory."""
        if self.scan_roots:
            return [Path(os.path.expanduser(root)) for root in self.scan_roots]
        home = get_home_directory()
        return [home / name for name in DEFAULT_SCAN_DIRECTORIES]


@dataclass(frozen=True)
class Config:
    """
    Complete configuration for depmgr.

    Attributes:
        version: Config schema version
        preferences: Global preferences
        source: Path to the configuration file that was loaded
    """
    version: int = 1
    preferences: Preferences = field(default_factory=Preferences)
    source: str = ""

    def __post_init__(self):
        """Validate config after initialization."""
        if self.version != 1:
            raise ValueError(f"Unsupported config version: {self.version}. Expected version 1")

    @staticmethod
    def from_dict(data: dict[str, Any], source: str = "") -> Config:
        """Create Config from dictionary."""
        preferences = Preferences.from_dict(data.get("preferences", {}) or {})
        return Config(
            version=data.get("version", 1),
            preferences=preferences,
            source=source,
        )

    def merge_with(self, other: Config) -> Config:
        """
        Merge this config with another, preferring values from this config.

        A preference keeps this config's value unless it is the default, in
        which case the other config's value is used.

        Args:
            other: Other config to merge (lower priority)

        Returns:
            New merged Config object
        """
        defaults = Preferences()
        mine = self.preferences
        theirs = other.preferences

        def pick(name: str):
            value = getattr(mine, name)
            return value if value != getattr(defaults, name) else getattr(theirs, name)

        merged_preferences = Preferences(
            max_workers=pick("max_workers"),
            description_workers=pick("description_workers"),
            cache_ttl_seconds=pick("cache_ttl_seconds"),
            http_timeout_seconds=pick("http_timeout_seconds"),
            scan_max_depth=pick("scan_max_depth"),
            scan_roots=pick("scan_roots"),
            managers=pick("managers"),
            status_seconds=pick("status_seconds"),
            bulk_status_seconds=pick("bulk_status_seconds"),
        )

        return Config(
            version=self.version,
            preferences=merged_preferences,
            source=self.source or other.source,
        )


def _load_yaml(file_path: str) -> dict[str, Any] | None:
    """
    Load YAML configuration file.

    Args:
        file_path: Path to YAML file

    Returns:
        Parsed configuration dictionary, or None if the file is unreadable or invalid
    """
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
            return data if isinstance(data, dict) else {}
    except (OSError, yaml.YAMLError):
        return None


def _load_json(file_path: str) -> dict[str, Any] | None:
    """
    Load JSON configuration file.

    Args:
        file_path: Path to JSON file

    Returns:
        Parsed configuration dictionary, or None if file invalid
    """
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = json.load(f)
            return data if isinstance(data, dict) else {}
    except (OSError, json.JSONDecodeError):
        return None


def load_config_file(file_path: str, verbose: bool = False) -> Config | None:
    """
    Load configuration from a single file.

    ``.json`` files are read as JSON; anything else as YAML, falling back to
    a sibling ``.json`` file when the YAML cannot be parsed.

    Args:
        file_path: Path to configuration file
        verbose: Enable verbose logging

    Returns:
        Config object, or None if file cannot be loaded
    """
    if not os.path.exists(file_path):
        return None

    vlog(f"Loading config from: {file_path}", verbose)

    if file_path.endswith(".json"):
        data = _load_json(file_path)
    else:
        data = _load_yaml(file_path)
        if data is None:
            json_path = file_path.replace(".yml", ".json").replace(".yaml", ".json")
            if json_path != file_path and os.path.exists(json_path):
                vlog(f"Invalid YAML, trying JSON: {json_path}", verbose)
                data = _load_json(json_path)

    if data is None:
        vlog(f"Invalid config file: {file_path}", verbose)
        return None

    try:
        config = Config.from_dict(data, source=file_path)
        vlog(f"Loaded config successfully: {file_path}", verbose)
        return config
    except (ValueError, TypeError) as e:
        vlog(f"Config validation failed for {file_path}: {e}", verbose)
        return None


def load_config(
    custom_path: str | None = None,
    verbose: bool = False,
) -> Config:
    """
    Load and merge configuration from all sources.

    Configuration precedence (highest to lowest):
    1. Custom path (argument, or DEPMGR_CONFIG)
    2. Project .depmgr.yml
    3. User ~/.config/depmgr/config.yml
    4. System /etc/depmgr/config.yml
    5. Default configuration

    Args:
        custom_path: Optional path to custom configuration file
        verbose: Enable verbose logging

    Returns:
        Merged Config object (never None, returns defaults if no config found)

    Raises:
        ValueError: If a custom path is given but the file cannot be loaded
    """
    configs: list[Config] = []

    custom_path = custom_path or os.environ.get("DEPMGR_CONFIG")
    if custom_path:
        config = load_config_file(custom_path, verbose)
        if config is None:
            raise ValueError(f"Could not load config from specified path: {custom_path}")
        configs.append(config)
        vlog(f"Using custom config: {custom_path}", verbose)

    for location in CONFIG_LOCATIONS:
        config = load_config_file(location, verbose)
        if config is not None:
            configs.append(config)
            vlog(f"Found config at: {location}", verbose)

    if not configs:
        vlog("No config files found, using defaults", verbose)
        return Config()

    # Merge configs (first config has highest priority)
    merged = configs[0]
    for config in configs[1:]:
        merged = merged.merge_with(config)

    vlog(f"Merged {len(configs)} config files", verbose)
    return merged


def validate_config(config: Config) -> list[str]:
    """
    Validate configuration and return list of warnings.

    Args:
        config: Config object to validate

    Returns:
        List of validation warning messages (empty if valid)
    """
    from .models import PackageManager

    warnings = []
    prefs = config.preferences

    for name in prefs.managers:
        try:
            PackageManager.from_name(name)
        except ValueError:
            warnings.append(f"Unknown package manager in managers list (ignored): {name}")
    if len(prefs.managers) != len(set(prefs.managers)):
        warnings.append("Duplicate entries in managers list")

    for root in prefs.scan_roots:
        if not os.path.isdir(os.path.expanduser(root)):
            warnings.append(f"Scan root does not exist: {root}")

    if prefs.description_workers > prefs.max_workers:
        warnings.append(
            f"description_workers ({prefs.description_workers}) exceeds max_workers ({prefs.max_workers})"
        )

    return warnings
