"""
Version comparison policy.

A package is outdated when its latest version is newer than the installed
one. Both sides are compared as PEP 440 versions when they parse; when
either does not (Homebrew revisions like ``1.2.3_1``, date-based tags), the
comparison falls back to plain string inequality.
"""

from __future__ import annotations

from packaging import version

UNKNOWN_VERSION = "unknown"


def _parse(v: str) -> version.Version | None:
    try:
        return version.parse(v.strip().lstrip("v"))
    except version.InvalidVersion:
        return None


def compare_versions(v1: str, v2: str) -> int:
    """
    Compare two version strings.

    Args:
        v1: First version
        v2: Second version

    Returns:
        -1 if v1 < v2, 0 if v1 == v2, 1 if v1 > v2
    """
    ver1 = _parse(v1)
    ver2 = _parse(v2)
    if ver1 is not None and ver2 is not None:
        if ver1 < ver2:
            return -1
        elif ver1 > ver2:
            return 1
        return 0

    # Fallback to string comparison
    if v1 < v2:
        return -1
    elif v1 > v2:
        return 1
    return 0


def is_newer(latest: str | None, installed: str) -> bool:
    """
    Decide whether ``latest`` is an upgrade over ``installed``.

    Unparseable versions are outdated whenever the strings differ; an
    unknown installed version is never reported outdated.
    """
    if not latest or not installed or installed == UNKNOWN_VERSION:
        return False

    ver_latest = _parse(latest)
    ver_installed = _parse(installed)
    if ver_latest is not None and ver_installed is not None:
        return ver_latest > ver_installed
    return latest.strip() != installed.strip()
