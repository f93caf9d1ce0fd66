"""
Common utilities shared across depmgr modules.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path


def is_debug_enabled() -> bool:
    """Whether DEPMGR_DEBUG forces verbose output."""
    return os.environ.get("DEPMGR_DEBUG", "0") == "1"


def get_home_directory() -> Path:
    """
    Get the user's home directory.

    HOME takes precedence so tests and sandboxes can redirect it.

    Returns:
        Home directory path
    """
    home = os.environ.get("HOME")
    if home:
        return Path(home)
    return Path.home()


def vlog(msg: str, verbose: bool = False) -> None:
    """
    Log verbose message using structured logging.

    Args:
        msg: Message to log
        verbose: Whether verbose mode is enabled
    """
    if verbose or is_debug_enabled():
        try:
            from .logging_config import get_logger
            logger = get_logger()
            logger.info(msg)
        except Exception:
            # Fallback to stderr if logging fails
            try:
                print(f"[depmgr] {msg}", file=sys.stderr)
            except Exception:
                pass
