"""
Subprocess execution with enforced timeouts.

Every external command depmgr runs goes through run_command(). The child is
started in its own process group so that a timeout kills the whole tree,
and it is always reaped before run_command() returns or raises.
"""

from __future__ import annotations

import logging
import os
import shutil
import signal
import subprocess
import time
from dataclasses import dataclass
from typing import Sequence

from .errors import CommandTimeoutError, SpawnError

logger = logging.getLogger(__name__)

# Grace period for reaping a killed child
KILL_GRACE_SECONDS = 5.0

_POSIX = os.name == "posix"


@dataclass(frozen=True)
class CommandOutput:
    """
    Result of a finished command.

    The exit status is not interpreted here: some callers treat a non-zero
    exit as an informational result (e.g. ``npm outdated``).

    Attributes:
        command: Executable that was run
        args: Arguments passed to the executable
        returncode: Process exit code
        stdout: Captured standard output
        stderr: Captured standard error
        duration_seconds: Wall-clock time the command took
    """
    command: str
    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return self.returncode == 0

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "command": self.command,
            "args": list(self.args),
            "returncode": self.returncode,
            "stdout": self.stdout,
            "stderr": self.stderr,
            "duration_seconds": self.duration_seconds,
        }


def _kill(proc: subprocess.Popen) -> None:
    """Kill a child and its process group."""
    if _POSIX:
        try:
            os.killpg(proc.pid, signal.SIGKILL)
            return
        except (ProcessLookupError, PermissionError):
            pass
    try:
        proc.kill()
    except ProcessLookupError:
        pass


def run_command(command: str, args: Sequence[str] = (), timeout: float = 30) -> CommandOutput:
    """
    Run an external command and capture its output.

    Args:
        command: Executable name or path
        args: Arguments for the executable
        timeout: Maximum run time in seconds

    Returns:
        CommandOutput with exit code and decoded output

    Raises:
        SpawnError: If the executable cannot be started
        CommandTimeoutError: If the command exceeds timeout; the child has
            been killed and reaped by the time this is raised
    """
    argv = [command, *args]
    start_time = time.monotonic()

    try:
        proc = subprocess.Popen(
            argv,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            errors="replace",
            start_new_session=_POSIX,
        )
    except OSError as e:
        raise SpawnError(command, str(e)) from e

    try:
        stdout, stderr = proc.communicate(timeout=timeout)
    except subprocess.TimeoutExpired:
        _kill(proc)
        try:
            proc.communicate(timeout=KILL_GRACE_SECONDS)
        except subprocess.TimeoutExpired:
            # Pipes held open by an escaped grandchild; the child itself is dead
            proc.wait(timeout=KILL_GRACE_SECONDS)
        logger.warning(f"{command} {' '.join(args)} timed out after {timeout}s (pid {proc.pid} killed)")
        raise CommandTimeoutError(command, timeout, proc.pid)
    except BaseException:
        _kill(proc)
        proc.wait()
        raise

    duration = time.monotonic() - start_time
    logger.debug(f"{command} {' '.join(args)} exited {proc.returncode} in {duration:.2f}s")

    return CommandOutput(
        command=command,
        args=tuple(args),
        returncode=proc.returncode,
        stdout=stdout or "",
        stderr=stderr or "",
        duration_seconds=duration,
    )


def command_exists(command: str) -> bool:
    """
    Check whether an executable is on PATH without running it.

    Args:
        command: Executable name

    Returns:
        True if the executable can be found
    """
    return shutil.which(command) is not None
