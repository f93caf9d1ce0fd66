"""
Shared fixtures: a scripted command runner and a controllable clock.
"""

import threading

import pytest

from depmgr.errors import MutationError
from depmgr.executor import CommandOutput
from depmgr.managers.base import ManagerAdapter


class FakeRunner:
    """
    Stand-in for run_command that returns scripted results.

    Responses are keyed by the argument tuple. A response may be a
    CommandOutput, an exception instance (raised) or a callable taking the
    args and returning either.
    """

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.calls = []
        self._lock = threading.Lock()

    def __call__(self, command, args=(), timeout=30):
        args = tuple(args)
        with self._lock:
            self.calls.append((command, args, timeout))
        response = self.responses.get(args)
        if response is None:
            return CommandOutput(command, args, 127, "", f"unscripted: {command} {' '.join(args)}")
        if callable(response):
            response = response(args)
        if isinstance(response, BaseException):
            raise response
        return response

    def called_with(self, args):
        return any(call_args == tuple(args) for _, call_args, _ in self.calls)


def ok(stdout="", stderr=""):
    return CommandOutput("fake", (), 0, stdout, stderr, 0.01)


def fail(returncode=1, stderr="boom", stdout=""):
    return CommandOutput("fake", (), returncode, stdout, stderr, 0.01)


class FakeAdapter(ManagerAdapter):
    """
    In-memory adapter.

    ``installed`` maps name -> version and ``latest`` maps name -> latest
    version. Mutations edit ``installed`` unless the action is listed in
    ``fail_actions``. An optional ``list_gate`` event blocks listing until set.
    """

    def __init__(self, manager, installed=None, latest=None, descriptions=None,
                 list_gate=None, describe_gate=None, **kwargs):
        super().__init__(**kwargs)
        self.manager = manager
        self.installed = dict(installed or {})
        self.latest = dict(latest or {})
        self.descriptions = dict(descriptions or {})
        self.list_gate = list_gate
        self.describe_gate = describe_gate
        self.list_error = None
        self.outdated_error = None
        self.fail_actions = set()
        self.list_calls = 0
        self.mutations = []
        self._calls_lock = threading.Lock()

    def is_available(self):
        return True

    def list_installed(self):
        with self._calls_lock:
            self.list_calls += 1
        if self.list_gate is not None:
            self.list_gate.wait(timeout=10)
        if self.list_error is not None:
            raise self.list_error
        return [self.new_package(name, version) for name, version in sorted(self.installed.items())]

    def check_outdated(self, packages):
        if self.outdated_error is not None:
            raise self.outdated_error
        for pkg in packages:
            pkg.set_latest(self.latest.get(pkg.name, pkg.installed_version))

    def describe(self, name):
        if self.describe_gate is not None:
            self.describe_gate.wait(timeout=10)
        return self.descriptions.get(name)

    def install_args(self, name):
        return ["install", name]

    def update_args(self, name):
        return ["update", name]

    def uninstall_args(self, name):
        return ["uninstall", name]

    def _record(self, action, name):
        self.mutations.append((action, name))
        if action in self.fail_actions:
            raise MutationError(action, name, 1, "scripted failure")

    def install(self, name):
        self._record("install", name)
        self.installed[name] = self.latest.get(name, "1.0")

    def update(self, name):
        self._record("update", name)
        self.installed[name] = self.latest.get(name, self.installed.get(name, "1.0"))

    def uninstall(self, name):
        self._record("uninstall", name)
        self.installed.pop(name, None)

    def update_all(self, names):
        self._record("update_all", ",".join(names))
        for name in names:
            self.installed[name] = self.latest.get(name, self.installed[name])


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def runner():
    return FakeRunner()
