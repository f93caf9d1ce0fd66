"""
Exception hierarchy for depmgr.

Every failure raised by the executor, adapters and HTTP layer derives from
DepMgrError, so the orchestrator and mutation coordinator can contain a
failure to the phase or operation that produced it.
"""

from __future__ import annotations


class DepMgrError(Exception):
    """Base class for all depmgr errors."""
    pass


class SpawnError(DepMgrError):
    """Raised when a command cannot be started (executable missing, not executable)."""

    def __init__(self, command: str, reason: str = ""):
        self.command = command
        self.reason = reason
        message = f"Failed to spawn {command}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class CommandTimeoutError(DepMgrError):
    """
    Raised when a command exceeds its allotted duration.

    Attributes:
        command: Executable that was run
        timeout: Timeout in seconds that was exceeded
        pid: Process id of the killed child
    """

    def __init__(self, command: str, timeout: float, pid: int | None = None):
        self.command = command
        self.timeout = timeout
        self.pid = pid
        super().__init__(f"Command '{command}' timed out after {timeout}s")


class ParseError(DepMgrError):
    """Raised when command output or a response body has an unexpected shape."""
    pass


class RemoteFetchError(DepMgrError):
    """Raised when a remote catalog or API is unreachable or returns a non-success status."""

    def __init__(self, url: str, reason: str = "", status_code: int | None = None):
        self.url = url
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"Failed to fetch {url}: {reason}" if reason else f"Failed to fetch {url}")


class CommandFailedError(DepMgrError):
    """Raised when a command whose exit status matters exits non-zero."""

    def __init__(self, command: str, exit_code: int, stderr: str = ""):
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr[:200]
        message = f"{command} failed with exit code {exit_code}"
        if self.stderr.strip():
            message += f": {self.stderr.strip()}"
        super().__init__(message)


class MutationError(CommandFailedError):
    """
    Raised when install/update/uninstall exits non-zero.

    Attributes:
        action: Operation that failed ("install", "update", "uninstall")
        package: Package name (empty for bulk operations)
        exit_code: Process exit code
        stderr: Captured standard error (truncated)
    """

    def __init__(self, action: str, package: str, exit_code: int, stderr: str = ""):
        self.action = action
        self.package = package
        self.exit_code = exit_code
        self.stderr = stderr[:200]
        self.command = action
        target = package or "packages"
        message = f"Failed to {action} {target} (exit code {exit_code})"
        if self.stderr.strip():
            message += f": {self.stderr.strip()}"
        DepMgrError.__init__(self, message)
