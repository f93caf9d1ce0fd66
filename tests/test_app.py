"""
Tests for the application facade (depmgr/app.py).
"""

import threading
import time

import httpx
import pytest

from conftest import FakeAdapter
from depmgr.app import DepMgrApp
from depmgr.config import Config, Preferences
from depmgr.models import PackageManager
from depmgr.scanner import UsageIndex

BREW = PackageManager.HOMEBREW
NPM = PackageManager.NPM


class FakeScanner:
    def __init__(self, index):
        self.index = index

    def scan(self):
        return self.index


@pytest.fixture
def app():
    brew = FakeAdapter(BREW, installed={"git": "2.44", "jq": "1.6"}, latest={"jq": "1.7.1"})
    npm = FakeAdapter(NPM, installed={"typescript": "5.3.3"})
    http = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(404)))
    scanner = FakeScanner(UsageIndex(tool_dirs={"git": ["/home/u/code/app"]}))
    application = DepMgrApp(adapters={BREW: brew, NPM: npm}, http=http, scanner=scanner)
    yield application
    application.shutdown()
    http.close()


class TestReads:
    """Tests for renderer-facing reads after one scan."""

    def test_start_scans_available_managers(self, app):
        assert app.start() == [BREW, NPM]
        assert app.wait_idle(timeout=10) is True
        assert app.is_scanning() is False
        assert app.stats() == (3, 1, 2)

    def test_filtered_packages(self, app):
        app.start()
        app.wait_idle(timeout=10)
        assert [p.name for p in app.filtered_packages(outdated_only=True)] == ["jq"]
        assert [p.name for p in app.filtered_packages(selected_managers=[NPM])] == ["typescript"]
        assert [p.name for p in app.filtered_packages(search="G")] == ["git"]
        orphaned = {p.name for p in app.filtered_packages(orphaned_only=True)}
        assert orphaned == {"jq", "typescript"}

    def test_empty_before_start(self, app):
        assert app.filtered_packages() == []
        assert app.available_managers == []
        assert app.current_status() == ""


class TestCommands:
    """Tests for commands routed through the facade."""

    def test_update_then_uninstall(self, app):
        app.start()
        app.wait_idle(timeout=10)

        result = app.update_package("jq", BREW).result(timeout=10)
        assert result.success is True
        assert app.stats()[1] == 0
        assert app.current_status() == "Updated jq"

        result = app.uninstall_package("typescript", NPM).result(timeout=10)
        assert result.success is True
        assert app.is_removed("typescript", NPM) is True
        assert app.is_updating("typescript", NPM) is False

    def test_update_all_outdated(self, app):
        app.start()
        app.wait_idle(timeout=10)
        seen = []
        app.on_bulk_progress(lambda manager, progress: seen.append((manager, progress.state)))
        result = app.update_all_outdated().result(timeout=10)
        assert seen[-1] == (BREW, "success")
        assert result.succeeded == (BREW,)
        assert app.current_status() == "Updated 1 packages"
        assert app.bulk_progress()[BREW].state == "success"

    def test_refresh_after_shutdown_refused(self, app):
        app.start()
        app.wait_idle(timeout=10)
        app.shutdown()
        assert app.request_refresh() is False


class TestShutdown:
    def test_shutdown_does_not_wait_for_descriptions(self):
        """Test shutdown returns promptly while description lookups hang."""
        gate = threading.Event()
        brew = FakeAdapter(BREW, installed={"jq": "1.6"}, descriptions={"jq": "JSON processor"},
                           describe_gate=gate)
        http = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(404)))
        application = DepMgrApp(adapters={BREW: brew}, http=http, scanner=FakeScanner(UsageIndex()))
        try:
            application.start()
            application.wait_idle(timeout=10)
            start = time.monotonic()
            application.shutdown()
            assert time.monotonic() - start < 5
        finally:
            gate.set()
            http.close()


class TestConstruction:
    def test_adapters_built_from_configured_managers(self):
        config = Config(preferences=Preferences(managers=("npm", "pip")))
        http = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(404)))
        with DepMgrApp(config=config, http=http, scanner=FakeScanner(UsageIndex())) as application:
            assert set(application.adapters) == {NPM, PackageManager.PIP}
            assert application.executor._max_workers == 16
        http.close()

    def test_unknown_configured_manager_skipped(self):
        """Test an unknown name in the managers preference is ignored, not fatal."""
        config = Config(preferences=Preferences(managers=("homebrew", "bogus")))
        http = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(404)))
        with DepMgrApp(config=config, http=http, scanner=FakeScanner(UsageIndex())) as application:
            assert set(application.adapters) == {BREW}
        http.close()

    def test_only_unknown_managers_builds_nothing(self):
        config = Config(preferences=Preferences(managers=("bogus",)))
        http = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(404)))
        with DepMgrApp(config=config, http=http, scanner=FakeScanner(UsageIndex())) as application:
            assert application.adapters == {}
        http.close()
