"""
Centralized logging configuration for depmgr.

All modules log through ``logging.getLogger(__name__)``, which places them
under the ``depmgr`` logger configured here. Scan phases run on worker
threads, so verbose console output and the log file both carry the thread
name.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional

from .common import is_debug_enabled


ROOT_LOGGER_NAME = "depmgr"

CONSOLE_FORMAT = "%(levelname_colored)s %(message)s"
VERBOSE_CONSOLE_FORMAT = "%(levelname_colored)s [%(threadName)s] %(message)s"
FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s (%(threadName)s): %(message)s"

_logger: Optional[logging.Logger] = None


def _console_colors_enabled() -> bool:
    if os.environ.get("DEPMGR_COLOR", "1") != "1":
        return False
    return sys.stderr.isatty()


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    verbose: bool = False,
    quiet: bool = False,
    propagate: bool = False,
) -> logging.Logger:
    """
    Configure the ``depmgr`` logger.

    Console output goes to stderr, since stdout carries the package table.
    Calling this again replaces the previous handlers.

    Args:
        level: Log level name when neither verbose nor quiet is set
        log_file: Optional file that receives every record at DEBUG
        verbose: DEBUG on the console, with thread names
        quiet: No console handler; WARNING and above only
        propagate: Pass records up to the root logger (pytest's caplog)

    Returns:
        The configured logger
    """
    global _logger

    debug = verbose or is_debug_enabled()
    if debug:
        effective_level = logging.DEBUG
    elif quiet:
        effective_level = logging.WARNING
    else:
        effective_level = logging.getLevelName(level.upper())

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(effective_level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if not quiet:
        console = logging.StreamHandler(sys.stderr)
        console.setLevel(effective_level)
        console.setFormatter(ColoredFormatter(
            VERBOSE_CONSOLE_FORMAT if debug else CONSOLE_FORMAT,
            use_colors=_console_colors_enabled(),
        ))
        logger.addHandler(console)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        logger.addHandler(file_handler)

    logger.propagate = propagate
    _logger = logger
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get the depmgr logger, or one of its children.

    Sets up default logging on first use.
    """
    global _logger
    if _logger is None:
        _logger = setup_logging()
    return _logger.getChild(name) if name else _logger


class ColoredFormatter(logging.Formatter):
    """Adds ``levelname_colored`` to each record: the level name, tinted per level."""

    LEVEL_STYLES = {
        logging.DEBUG: ("\033[2m", "·"),
        logging.INFO: ("\033[32m", "✓"),
        logging.WARNING: ("\033[33m", "⚠"),
        logging.ERROR: ("\033[31m", "✗"),
        logging.CRITICAL: ("\033[1;31m", "✗"),
    }
    RESET = "\033[0m"

    def __init__(self, fmt: str, use_colors: bool = True):
        super().__init__(fmt)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        if self.use_colors:
            color, symbol = self.LEVEL_STYLES.get(record.levelno, ("", ""))
            record.levelname_colored = f"{color}{symbol} {record.levelname}{self.RESET}"
        else:
            record.levelname_colored = record.levelname
        return super().format(record)
