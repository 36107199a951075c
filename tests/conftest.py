"""
Pytest configuration and shared fixtures for ShuttleBar tests.

The supervisor is exercised with fake processes and hand-fired timers so
restart and termination paths are deterministic.
"""

import itertools
import queue
import threading
from unittest.mock import patch

import pytest


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without external programs")
    config.addinivalue_line("markers", "integration: tests that launch a real subprocess")


class FakeProcess:
    """Stands in for subprocess.Popen; the test decides when it exits."""

    # Above any real pid, so process-group lookups never reach a live process
    _pids = itertools.count(5_000_000)

    def __init__(self, args, **kwargs):
        self.args = list(args)
        self.kwargs = kwargs
        self.pid = next(self._pids)
        self.returncode = None
        self.exit_on_terminate = True
        self.hold_pipe = False
        self.terminated = False
        self.killed = False
        self._lines = queue.Queue()
        self._done = threading.Event()
        self.stdout = self

    def __iter__(self):
        while True:
            item = self._lines.get()
            if item is None:
                return
            yield item

    def emit(self, line):
        self._lines.put(line + "\n")

    def exit(self, returncode):
        """Exit; with hold_pipe set, stdout stays open like a pipe inherited by a child."""
        if self.returncode is None:
            self.returncode = returncode
        if not self.hold_pipe:
            self.close_pipe()
        self._done.set()

    def close_pipe(self):
        self._lines.put(None)

    def wait(self, timeout=None):
        self._done.wait(timeout)
        return self.returncode

    def poll(self):
        return self.returncode

    def terminate(self):
        self.terminated = True
        if self.exit_on_terminate:
            self.exit(-15)

    def kill(self):
        self.killed = True
        self.exit(-9)


class FakeSpawner:
    """Callable replacing subprocess.Popen that records every launch."""

    def __init__(self):
        self.processes = []
        self.error = None
        self.lines = []
        self.exit_on_terminate = True
        self._lock = threading.Lock()

    def __call__(self, args, **kwargs):
        if self.error is not None:
            raise self.error
        process = FakeProcess(args, **kwargs)
        process.exit_on_terminate = self.exit_on_terminate
        for line in self.lines:
            process.emit(line)
        with self._lock:
            self.processes.append(process)
        return process

    @property
    def last(self):
        return self.processes[-1]


class FakeTimer:
    def __init__(self, interval, function, args=None, kwargs=None):
        self.interval = interval
        self.function = function
        self.args = args or ()
        self.kwargs = kwargs or {}
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        """Run the callback regardless of cancellation, like a timer that already expired."""
        self.function(*self.args, **self.kwargs)


class FakeTimerFactory:
    def __init__(self):
        self.timers = []

    def __call__(self, interval, function, args=None, kwargs=None):
        timer = FakeTimer(interval, function, args, kwargs)
        self.timers.append(timer)
        return timer

    def with_interval(self, interval):
        return [t for t in self.timers if t.interval == interval]


class RecordingListener:
    """Collects supervisor events and lets tests wait for them."""

    def __init__(self):
        self.states = []
        self.lines = []
        self.notices = []
        self._cond = threading.Condition()

    def on_state_changed(self, running):
        with self._cond:
            self.states.append(running)
            self._cond.notify_all()

    def on_output_line(self, text):
        with self._cond:
            self.lines.append(text)
            self._cond.notify_all()

    def on_notice(self, notice):
        with self._cond:
            self.notices.append(notice)
            self._cond.notify_all()

    def kinds(self):
        with self._cond:
            return [n.kind for n in self.notices]

    def count(self, kind):
        return self.kinds().count(kind)

    def wait_for(self, predicate, timeout=5.0):
        with self._cond:
            assert self._cond.wait_for(predicate, timeout), "timed out waiting for supervisor event"


@pytest.fixture
def spawner():
    return FakeSpawner()


@pytest.fixture
def timers():
    return FakeTimerFactory()


@pytest.fixture
def listener():
    return RecordingListener()


@pytest.fixture
def target():
    from shuttlebar.tunnel import TunnelTarget

    return TunnelTarget(remote="alice@10.0.0.5", subnet="0.0.0.0/0")


@pytest.fixture
def make_supervisor(spawner, timers, listener, target):
    """Factory for supervisors wired to the fakes; shuts them all down afterwards."""
    from shuttlebar.tunnel import TunnelSupervisor

    created = []

    def factory(**kwargs):
        options = {
            "program_path": "/opt/homebrew/bin/sshuttle",
            "target": target,
            "listener": listener,
            "max_retries": 5,
            "retry_delay": 5.0,
            "termination_grace": 3.0,
            "spawner": spawner,
            "timer_factory": timers,
        }
        options.update(kwargs)
        supervisor = TunnelSupervisor(**options)
        created.append(supervisor)
        return supervisor

    yield factory

    for supervisor in created:
        for process in spawner.processes:
            process.exit(0)
            process.close_pipe()
        supervisor.shutdown(timeout=2)


@pytest.fixture
def mock_config():
    """Provide a configuration dictionary."""
    return {
        "settings": {
            "debug": False,
            "sshuttle_path": "",
            "max_retries": 3,
            "retry_delay": 2.5,
            "termination_grace": 4.0,
        },
        "target": {
            "remote": "alice@10.0.0.5",
            "subnet": "10.0.0.0/8",
            "dns": True,
            "latency_control": False,
            "auto_hosts": True,
        },
    }


@pytest.fixture
def temp_config_dir(tmp_path):
    """Provide a temporary config directory."""
    config_dir = tmp_path / ".config" / "shuttlebar"
    config_dir.mkdir(parents=True)
    return config_dir


@pytest.fixture
def config_file(temp_config_dir):
    """Point the application at a config file inside the temp directory."""
    path = temp_config_dir / "config.toml"
    with patch("shuttlebar.config.get_config_path", return_value=path):
        yield path


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration between tests."""
    import logging

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    root_logger.setLevel(logging.WARNING)
    yield
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
