#!/usr/bin/env python3
"""
depmgr - inventory and maintain globally installed packages.

Lists what Homebrew, npm, pip, Cargo and gem have installed, which of those
packages are outdated, and which local projects use them.

Usage:
    scan.py                          # Scan and print the package table
    scan.py --outdated --manager npm # Only outdated npm packages
    scan.py --json                   # Machine-readable output
    scan.py --update NAME -m pip     # Update one package
    scan.py --update-all             # Update every outdated package
"""

import argparse
import sys

from depmgr.app import DepMgrApp
from depmgr.config import load_config, validate_config
from depmgr.logging_config import setup_logging
from depmgr.models import PackageManager
from depmgr.render import print_summary, render_json, render_table


def _managers(names: list[str] | None) -> list[PackageManager]:
    return [PackageManager.from_name(n) for n in names or ()]


def _resolve_target(app: DepMgrApp, name: str, managers: list[PackageManager]) -> PackageManager | None:
    """Pick the manager owning ``name``; ambiguous names need --manager."""
    if len(managers) == 1:
        return managers[0]
    owners = [p.manager for p in app.filtered_packages(managers) if p.name == name]
    if len(owners) == 1:
        return owners[0]
    if not owners:
        print(f"Package not found: {name}", file=sys.stderr)
    else:
        choices = ", ".join(m.value for m in owners)
        print(f"{name} is installed by several managers ({choices}); use --manager", file=sys.stderr)
    return None


def cmd_list(app: DepMgrApp, args: argparse.Namespace, managers: list[PackageManager]) -> int:
    """Render the inventory."""
    packages = app.filtered_packages(managers, args.search, args.outdated, args.orphaned)
    if args.json:
        render_json(packages)
        return 0
    render_table(packages, app)
    print_summary(app.stats(), app.current_status())
    return 0


def cmd_mutate(app: DepMgrApp, args: argparse.Namespace, managers: list[PackageManager]) -> int:
    """Run one single-package operation and report it."""
    for action in ("update", "uninstall", "reinstall", "install"):
        name = getattr(args, action)
        if name:
            break

    if action == "install":
        if len(managers) != 1:
            print("--install needs exactly one --manager", file=sys.stderr)
            return 2
        manager = managers[0]
    else:
        manager = _resolve_target(app, name, managers)
        if manager is None:
            return 1

    operation = getattr(app, f"{action}_package")
    result = operation(name, manager).result()
    print(result.message, file=sys.stderr)
    return 0 if result.success else 1


def cmd_update_all(app: DepMgrApp) -> int:
    """Update every outdated package."""
    def report(manager, progress):
        if progress.state != "pending":
            detail = f" ({progress.detail})" if progress.detail else ""
            print(f"  {manager.display_name}: {progress.state}{detail}", file=sys.stderr)

    app.on_bulk_progress(report)
    result = app.update_all_outdated().result()
    print(app.current_status() or "Done", file=sys.stderr)
    return 0 if result.success else 1


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="depmgr - Package Inventory and Maintenance",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--manager", "-m",
        action="append",
        help="Restrict to a package manager (repeatable)",
    )
    parser.add_argument(
        "--search", "-s",
        default="",
        help="Case-insensitive substring of the package name",
    )
    parser.add_argument(
        "--outdated",
        action="store_true",
        help="Only show outdated packages",
    )
    parser.add_argument(
        "--orphaned",
        action="store_true",
        help="Only show packages no local project uses",
    )
    parser.add_argument(
        "--descriptions",
        action="store_true",
        help="Wait for package descriptions before rendering",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output JSON instead of a table",
    )
    parser.add_argument("--update", metavar="NAME", help="Update one package")
    parser.add_argument("--uninstall", metavar="NAME", help="Uninstall one package")
    parser.add_argument("--reinstall", metavar="NAME", help="Reinstall one package")
    parser.add_argument("--install", metavar="NAME", help="Install one package (needs --manager)")
    parser.add_argument(
        "--update-all",
        action="store_true",
        help="Update every outdated package",
    )
    parser.add_argument(
        "--config",
        help="Configuration file (default: DEPMGR_CONFIG or the standard locations)",
    )
    parser.add_argument(
        "--log-file",
        help="Also write a debug log to this file",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output",
    )

    args = parser.parse_args()

    setup_logging(verbose=args.verbose, log_file=args.log_file)

    try:
        config = load_config(args.config, verbose=args.verbose)
        managers = _managers(args.manager)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    for warning in validate_config(config):
        print(f"Warning: {warning}", file=sys.stderr)

    app = DepMgrApp(config)
    try:
        app.start()
        app.wait_idle()
        if args.descriptions:
            app.orchestrator.wait_for_descriptions()

        if args.update_all:
            return cmd_update_all(app)
        if args.update or args.uninstall or args.reinstall or args.install:
            return cmd_mutate(app, args, managers)
        return cmd_list(app, args, managers)
    finally:
        app.shutdown()


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(130)
