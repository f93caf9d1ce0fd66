"""
Tests for configuration parsing (depmgr/config.py).
"""

import json
from pathlib import Path

import pytest

from depmgr.config import (
    DEFAULT_SCAN_DIRECTORIES,
    Config,
    Preferences,
    _load_json,
    _load_yaml,
    load_config,
    load_config_file,
    validate_config,
)


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    """Run each test from an empty directory with no DEPMGR_CONFIG and a fake home."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("DEPMGR_CONFIG", raising=False)
    monkeypatch.setattr("depmgr.config.CONFIG_LOCATIONS", [".depmgr.yml", ".depmgr.yaml"])


def _write(path, text):
    path = Path(path)
    path.write_text(text)
    return str(path)


class TestPreferences:
    """Tests for Preferences dataclass."""

    def test_preferences_defaults(self):
        prefs = Preferences()
        assert prefs.max_workers == 16
        assert prefs.description_workers == 8
        assert prefs.cache_ttl_seconds == 3600
        assert prefs.scan_max_depth == 4
        assert prefs.scan_roots == ()
        assert prefs.status_seconds == 4.0
        assert prefs.bulk_status_seconds == 10.0

    @pytest.mark.parametrize("field,value", [
        ("max_workers", 1),
        ("max_workers", 65),
        ("description_workers", 0),
        ("cache_ttl_seconds", 59),
        ("http_timeout_seconds", 121),
        ("scan_max_depth", 11),
        ("status_seconds", 0.5),
        ("bulk_status_seconds", 301),
    ])
    def test_preferences_out_of_range(self, field, value):
        with pytest.raises(ValueError, match=f"Invalid {field}"):
            Preferences(**{field: value})

    def test_preferences_immutable(self):
        prefs = Preferences()
        with pytest.raises(AttributeError):
            prefs.max_workers = 4

    def test_preferences_from_dict(self):
        prefs = Preferences.from_dict({
            "max_workers": 8,
            "managers": ["homebrew", "npm"],
            "scan_roots": ["~/src"],
        })
        assert prefs.max_workers == 8
        assert prefs.managers == ("homebrew", "npm")
        assert prefs.scan_roots == ("~/src",)
        assert prefs.description_workers == 8

    def test_single_string_lists(self):
        """Test a bare string for a list preference is one entry, not its characters."""
        prefs = Preferences.from_dict({"scan_roots": "~/code", "managers": "npm"})
        assert prefs.scan_roots == ("~/code",)
        assert prefs.managers == ("npm",)

    def test_invalid_list_preference(self):
        with pytest.raises(ValueError, match="Invalid scan_roots"):
            Preferences.from_dict({"scan_roots": 42})
        with pytest.raises(ValueError, match="Invalid managers"):
            Preferences.from_dict({"managers": ["npm", 3]})

    def test_single_string_scan_root_from_yaml(self, tmp_path):
        path = _write(tmp_path / "c.yml", "preferences:\n  scan_roots: ~/code\n")
        assert load_config_file(path).preferences.scan_roots == ("~/code",)

    def test_default_scan_roots_under_home(self, monkeypatch, tmp_path):
        monkeypatch.setenv("HOME", str(tmp_path))
        roots = Preferences().resolve_scan_roots()
        assert roots == [tmp_path / name for name in DEFAULT_SCAN_DIRECTORIES]

    def test_configured_scan_roots(self, monkeypatch, tmp_path):
        monkeypatch.setenv("HOME", str(tmp_path))
        roots = Preferences(scan_roots=("~/src", "/opt/work")).resolve_scan_roots()
        assert roots == [tmp_path / "src", Path("/opt/work")]


class TestConfig:
    """Tests for Config dataclass."""

    def test_config_defaults(self):
        config = Config()
        assert config.version == 1
        assert isinstance(config.preferences, Preferences)
        assert config.source == ""

    def test_config_invalid_version(self):
        with pytest.raises(ValueError, match="Unsupported config version"):
            Config(version=999)

    def test_config_from_dict_empty_preferences(self):
        config = Config.from_dict({"version": 1, "preferences": None}, source="x.yml")
        assert config.preferences == Preferences()
        assert config.source == "x.yml"

    def test_merge_prefers_non_default_values(self):
        high = Config(preferences=Preferences(max_workers=8), source="high.yml")
        low = Config(preferences=Preferences(max_workers=4, scan_max_depth=2), source="low.yml")
        merged = high.merge_with(low)
        assert merged.preferences.max_workers == 8
        assert merged.preferences.scan_max_depth == 2
        assert merged.source == "high.yml"


class TestLoaders:
    """Tests for file loading."""

    def test_load_yaml(self, tmp_path):
        path = _write(tmp_path / "c.yml", "version: 1\npreferences:\n  max_workers: 4\n")
        assert _load_yaml(path) == {"version": 1, "preferences": {"max_workers": 4}}

    def test_load_yaml_invalid(self, tmp_path):
        assert _load_yaml(_write(tmp_path / "c.yml", "a: [unclosed")) is None

    def test_load_yaml_scalar_document(self, tmp_path):
        assert _load_yaml(_write(tmp_path / "c.yml", "just a string")) == {}

    def test_load_json(self, tmp_path):
        assert _load_json(_write(tmp_path / "c.json", '{"version": 1}')) == {"version": 1}
        assert _load_json(_write(tmp_path / "bad.json", "{")) is None

    def test_load_config_file_missing(self, tmp_path):
        assert load_config_file(str(tmp_path / "nope.yml")) is None

    def test_load_config_file_json_fallback(self, tmp_path):
        """Test an unparseable YAML file falls back to its JSON sibling."""
        path = _write(tmp_path / "config.yml", "preferences: [unclosed")
        _write(tmp_path / "config.json", json.dumps({"preferences": {"max_workers": 12}}))
        config = load_config_file(path)
        assert config.preferences.max_workers == 12

    def test_load_config_file_invalid_values(self, tmp_path):
        path = _write(tmp_path / "c.yml", "preferences:\n  max_workers: 1000\n")
        assert load_config_file(path) is None


class TestLoadConfig:
    """Tests for merged configuration loading."""

    def test_defaults_when_nothing_found(self):
        assert load_config() == Config()

    def test_project_file(self, tmp_path):
        _write(tmp_path / ".depmgr.yml", "preferences:\n  scan_max_depth: 2\n")
        config = load_config()
        assert config.preferences.scan_max_depth == 2
        assert config.source == ".depmgr.yml"

    def test_custom_path_wins(self, tmp_path):
        _write(tmp_path / ".depmgr.yml", "preferences:\n  max_workers: 4\n  scan_max_depth: 2\n")
        custom = _write(tmp_path / "custom.yml", "preferences:\n  max_workers: 32\n")
        config = load_config(custom)
        assert config.preferences.max_workers == 32
        assert config.preferences.scan_max_depth == 2

    def test_env_var_path(self, tmp_path, monkeypatch):
        custom = _write(tmp_path / "env.yml", "preferences:\n  description_workers: 2\n")
        monkeypatch.setenv("DEPMGR_CONFIG", custom)
        assert load_config().preferences.description_workers == 2

    def test_custom_path_unloadable(self, tmp_path):
        with pytest.raises(ValueError, match="Could not load config"):
            load_config(str(tmp_path / "missing.yml"))


class TestValidateConfig:
    """Tests for configuration warnings."""

    def test_valid(self):
        assert validate_config(Config()) == []

    def test_unknown_and_duplicate_managers(self):
        config = Config(preferences=Preferences(managers=("homebrew", "apt", "homebrew")))
        warnings = validate_config(config)
        assert any("Unknown package manager" in w and "apt" in w for w in warnings)
        assert any("Duplicate" in w for w in warnings)

    def test_missing_scan_root(self, tmp_path):
        config = Config(preferences=Preferences(scan_roots=(str(tmp_path / "nope"),)))
        assert any("Scan root does not exist" in w for w in validate_config(config))

    def test_description_workers_exceed_max_workers(self):
        config = Config(preferences=Preferences(max_workers=4, description_workers=8))
        assert any("exceeds max_workers" in w for w in validate_config(config))
