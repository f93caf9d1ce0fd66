"""
Tests for output rendering (depmgr/render.py).
"""

import io
import json

import pytest

from depmgr import render
from depmgr.models import Package, PackageManager


@pytest.fixture(autouse=True)
def plain_output(monkeypatch):
    monkeypatch.setattr(render, "USE_COLOR", False)
    monkeypatch.setattr(render, "USE_EMOJI", False)


def _pkg(name="jq", installed="1.6", latest=None, used_in=None, manager=PackageManager.HOMEBREW):
    pkg = Package(name, manager, installed, used_in=list(used_in or []))
    if latest is not None:
        pkg.set_latest(latest)
    return pkg


class TestFormatUsage:
    def test_unused(self):
        assert render.format_usage([]) == "unused"

    def test_basenames_with_overflow(self):
        dirs = ["/home/u/code/api", "/home/u/code/web/", "/home/u/code/cli"]
        assert render.format_usage(dirs) == "api, web, +1"


class TestStatusIcon:
    """Tests for status_icon precedence."""

    def test_removed_wins(self):
        assert render.status_icon(_pkg(latest="1.7"), updating=True, removed=True) == "x"

    def test_states(self):
        assert render.status_icon(_pkg(latest="1.7")) == "↑"
        assert render.status_icon(_pkg(latest="1.6")) == "✓"
        assert render.status_icon(_pkg()) == "?"
        assert render.status_icon(_pkg(), updating=True) == "~"


class TestRenderRow:
    def test_outdated_row(self):
        row = render.render_row(_pkg(latest="1.7.1", used_in=["/p/tool"]))
        assert row.split("|") == ["↑", "jq", "Homebrew", "1.6", "1.7.1", "tool", ""]

    def test_unknown_latest(self):
        row = render.render_row(_pkg())
        assert row.split("|")[4] == "-"
        assert row.split("|")[5] == "unused"


class TestRenderTable:
    """Tests for render_table."""

    def test_grouped_and_sorted(self, capsys):
        out = io.StringIO()
        packages = [
            _pkg("typescript", "5.3.3", manager=PackageManager.NPM),
            _pkg("zstd", "1.5"),
            _pkg("Git", "2.44"),
        ]
        render.render_table(packages, out=out)
        lines = out.getvalue().splitlines()
        assert lines[0].startswith("state|package")
        assert [line.split("|")[1] for line in lines[1:]] == ["Git", "zstd", "typescript"]
        err = capsys.readouterr().err
        assert "Homebrew (2 packages)" in err
        assert "npm (1 packages)" in err

    def test_app_flags(self):
        class App:
            def is_updating(self, name, manager):
                return name == "jq"

            def is_removed(self, name, manager):
                return False

        out = io.StringIO()
        render.render_table([_pkg()], app=App(), out=out)
        assert out.getvalue().splitlines()[1].startswith("~|jq")


class TestRenderJson:
    def test_json_array(self):
        out = io.StringIO()
        render.render_json([_pkg(latest="1.7")], out=out)
        data = json.loads(out.getvalue())
        assert data[0]["name"] == "jq"
        assert data[0]["manager"] == "homebrew"
        assert data[0]["is_outdated"] is True


class TestPrintSummary:
    def test_summary_with_status(self, capsys):
        render.print_summary((3, 1, 2), "Updated jq")
        err = capsys.readouterr().err
        assert "3 total, 1 outdated, 2 unused" in err
        assert "Status: Updated jq" in err
