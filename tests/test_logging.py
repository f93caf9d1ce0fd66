"""
Tests for logging configuration module.
"""

import logging
import tempfile
from pathlib import Path

import pytest

from depmgr.common import vlog
from depmgr.logging_config import ColoredFormatter, get_logger, setup_logging


@pytest.fixture(autouse=True)
def no_debug_env(monkeypatch):
    monkeypatch.delenv("DEPMGR_DEBUG", raising=False)


def _record(level=logging.INFO, msg="Test message"):
    return logging.LogRecord(
        name="test",
        level=level,
        pathname="",
        lineno=0,
        msg=msg,
        args=(),
        exc_info=None,
    )


class TestSetupLogging:
    """Test logging setup and configuration."""

    def test_setup_logging_default(self):
        """Test default logging setup."""
        logger = setup_logging()
        assert logger.name == "depmgr"
        assert logger.level == logging.INFO
        assert logger.propagate is False

    def test_setup_logging_verbose(self):
        """Test verbose logging enables DEBUG level."""
        logger = setup_logging(verbose=True)
        assert logger.level == logging.DEBUG

    def test_debug_env_forces_debug(self, monkeypatch):
        """Test DEPMGR_DEBUG=1 enables DEBUG level."""
        monkeypatch.setenv("DEPMGR_DEBUG", "1")
        logger = setup_logging(level="ERROR")
        assert logger.level == logging.DEBUG

    def test_setup_logging_quiet(self):
        """Test quiet mode suppresses console output."""
        logger = setup_logging(quiet=True)
        assert logger.level == logging.WARNING
        console_handlers = [
            h for h in logger.handlers
            if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
        ]
        assert len(console_handlers) == 0

    def test_setup_logging_with_file(self):
        """Test logging to file records the thread name."""
        with tempfile.TemporaryDirectory() as tmpdir:
            log_file = Path(tmpdir) / "subdir" / "depmgr.log"
            logger = setup_logging(log_file=str(log_file), quiet=True)
            logger.warning("Test message")
            for handler in logger.handlers:
                handler.flush()

            content = log_file.read_text()
            assert "Test message" in content
            assert "MainThread" in content
            for handler in list(logger.handlers):
                handler.close()
                logger.removeHandler(handler)

    def test_setup_logging_replaces_handlers(self):
        """Test repeated setup does not stack handlers."""
        setup_logging()
        logger = setup_logging()
        assert len(logger.handlers) == 1

    def test_module_loggers_are_children(self):
        """Test module loggers inherit the configured level."""
        setup_logging(level="WARNING")
        child = logging.getLogger("depmgr.orchestrator")
        assert child.getEffectiveLevel() == logging.WARNING


class TestGetLogger:
    """Test logger retrieval."""

    def test_get_logger_singleton(self):
        """Test get_logger returns same instance."""
        assert get_logger() is get_logger()

    def test_get_logger_child(self):
        assert get_logger("scanner").name == "depmgr.scanner"


class TestColoredFormatter:
    """Test colored log formatter."""

    def test_colored_formatter_with_colors(self):
        formatter = ColoredFormatter("%(levelname_colored)s %(message)s", use_colors=True)
        formatted = formatter.format(_record())
        assert "Test message" in formatted
        assert "\033[" in formatted

    def test_colored_formatter_without_colors(self):
        formatter = ColoredFormatter("%(levelname_colored)s %(message)s", use_colors=False)
        formatted = formatter.format(_record())
        assert formatted == "INFO Test message"


class TestVlog:
    """Test verbose-gated logging."""

    def test_vlog_silent_when_not_verbose(self, caplog):
        logger = setup_logging(propagate=True)
        with caplog.at_level(logging.INFO, logger=logger.name):
            vlog("hidden", verbose=False)
        assert "hidden" not in caplog.text

    def test_vlog_verbose(self, caplog):
        logger = setup_logging(propagate=True)
        with caplog.at_level(logging.INFO, logger=logger.name):
            vlog("shown", verbose=True)
        assert "shown" in caplog.text
