"""
Output rendering and formatting.

Tables go to stdout as pipe-delimited rows; headers and the summary go to
stderr so the rows can be piped through a column formatter.
"""

import json
import os
import sys
from typing import Iterable, TextIO

from .models import Package, PackageManager


# Environment options
USE_EMOJI = os.environ.get("DEPMGR_EMOJI", "1") == "1"
USE_COLOR = os.environ.get("DEPMGR_COLOR", "1") == "1"

# ANSI color codes
GREEN = "\033[32m"
BOLD_GREEN = "\033[1;32m"
YELLOW = "\033[33m"
BLUE = "\033[34m"
DIM = "\033[2m"
RESET = "\033[0m"

MANAGER_ICON = {
    PackageManager.HOMEBREW: "🍺",
    PackageManager.NPM: "📦",
    PackageManager.PIP: "🐍",
    PackageManager.CARGO: "🦀",
    PackageManager.GEM: "💎",
}


def status_icon(pkg: Package, updating: bool = False, removed: bool = False) -> str:
    """Get status icon for a package.

    Args:
        pkg: Package to describe
        updating: Whether an operation is in progress for it
        removed: Whether it was uninstalled this session

    Returns:
        Status icon string
    """
    if not USE_EMOJI:
        if removed:
            return "x"
        if updating:
            return "~"
        if pkg.is_outdated:
            return "↑"
        if pkg.latest_version:
            return "✓"
        return "?"

    if removed:
        return "❌"
    if updating:
        return "⏳"
    if pkg.is_outdated:
        return "⬆"
    if pkg.latest_version:
        return "✅"
    return "❓"


def colorize(text: str, color: str) -> str:
    """Apply color to text.

    Args:
        text: Text to colorize
        color: ANSI color code

    Returns:
        Colored text or plain text if colors disabled
    """
    if not USE_COLOR or not text:
        return text
    return f"{color}{text}{RESET}"


def format_usage(used_in: list[str], limit: int = 2) -> str:
    """Short project-usage column: basenames of the first few directories."""
    if not used_in:
        return "unused"
    names = [os.path.basename(p.rstrip("/")) or p for p in used_in[:limit]]
    extra = len(used_in) - limit
    if extra > 0:
        names.append(f"+{extra}")
    return ", ".join(names)


def render_row(pkg: Package, updating: bool = False, removed: bool = False) -> str:
    """Render a single package row."""
    if pkg.is_outdated:
        installed = colorize(pkg.installed_version, YELLOW)
        latest = colorize(pkg.latest_version or "", BOLD_GREEN)
    elif pkg.latest_version:
        installed = colorize(pkg.installed_version, GREEN)
        latest = colorize(pkg.latest_version, GREEN)
    else:
        installed = colorize(pkg.installed_version, BLUE)
        latest = colorize("-", BLUE)

    usage = format_usage(pkg.used_in)
    if not pkg.used_in:
        usage = colorize(usage, DIM)

    return "|".join((
        status_icon(pkg, updating, removed),
        pkg.name,
        pkg.manager.display_name,
        installed,
        latest,
        usage,
        pkg.description or "",
    ))


def render_table(packages: Iterable[Package], app=None, out: TextIO | None = None) -> None:
    """Render packages as a pipe-delimited table, grouped by manager.

    Args:
        packages: Packages to render
        app: Optional DepMgrApp consulted for in-progress and removed flags
        out: Stream for the table rows
    """
    headers = ("state", "package", "manager", "installed", "latest", "used_in", "description")
    print("|".join(headers), file=out)

    grouped: dict[PackageManager, list[Package]] = {}
    for pkg in packages:
        grouped.setdefault(pkg.manager, []).append(pkg)

    for manager in PackageManager:
        group = grouped.get(manager)
        if not group:
            continue
        icon = MANAGER_ICON.get(manager, "📦") if USE_EMOJI else "#"
        print(f"# {icon} {manager.display_name} ({len(group)} packages)", file=sys.stderr)
        for pkg in sorted(group, key=lambda p: p.name.lower()):
            updating = app.is_updating(pkg.name, pkg.manager) if app else False
            removed = app.is_removed(pkg.name, pkg.manager) if app else False
            print(render_row(pkg, updating, removed), file=out)


def render_json(packages: Iterable[Package], out: TextIO | None = None) -> None:
    """Render packages as a JSON array."""
    print(json.dumps([p.to_dict() for p in packages], indent=2, ensure_ascii=False), file=out)


def print_summary(stats: tuple[int, int, int], status: str = "") -> None:
    """Print summary line.

    Args:
        stats: (total, outdated, unused) counts
        status: Current status message, if any
    """
    total, outdated, unused = stats
    print(f"\nPackages: {total} total, {outdated} outdated, {unused} unused", file=sys.stderr)
    if status:
        print(f"Status: {status}", file=sys.stderr)
