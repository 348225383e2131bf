"""Pytest configuration and shared fixtures."""

from typing import Any, Optional
from unittest.mock import MagicMock

import pytest

from yoblox_setup.config import Settings
from yoblox_setup.core.context import Context
from yoblox_setup.core.progress import ProgressStore
from yoblox_setup.core.step import CheckResult, Step, StepResult
from yoblox_setup.exceptions import ProcessStartError
from yoblox_setup.services.network import ConnectionResult
from yoblox_setup.services.process import ProcessStatus


class ScriptedPrompter:
    """Prompt provider that replays scripted answers.

    Every question is recorded in ``asked``. Running out of answers fails the
    test instead of blocking.
    """

    def __init__(self, confirms=None, selects=None, inputs=None):
        self.confirms = list(confirms or [])
        self.selects = list(selects or [])
        self.inputs = list(inputs or [])
        self.asked: list[str] = []
        self.pauses: list[str] = []

    def confirm(self, message: str, default: bool = True) -> bool:
        self.asked.append(message)
        if not self.confirms:
            raise AssertionError(f"Unexpected confirm: {message}")
        return self.confirms.pop(0)

    def select(self, message, choices) -> str:
        self.asked.append(message)
        if not self.selects:
            raise AssertionError(f"Unexpected select: {message}")
        answer = self.selects.pop(0)
        assert answer in [c.id for c in choices], f"{answer} not offered"
        return answer

    def input(self, message: str, default: str = "", validate=None) -> str:
        self.asked.append(message)
        if not self.inputs:
            raise AssertionError(f"Unexpected input: {message}")
        value = self.inputs.pop(0)
        if validate is not None:
            assert validate(value) is True, f"scripted input {value!r} rejected"
        return value

    def pause(self, message: str = "Press Enter to continue...") -> None:
        self.pauses.append(message)


class FakeNetwork:
    """Network prober with scripted port state."""

    def __init__(self, occupied=(), opens=True, responds=True):
        self.occupied = set(occupied)
        self.opens = opens
        self.responds = responds
        self.probed: list[int] = []
        self.waited: list[tuple[int, float, float]] = []

    def is_port_available(self, port: int, host: str = "0.0.0.0") -> bool:
        self.probed.append(port)
        return port not in self.occupied

    def is_port_open(self, port: int, host: str = "localhost", timeout: float = 2.0) -> bool:
        return self.opens

    def wait_for_port(self, port, timeout=30.0, host="localhost", interval=0.5) -> bool:
        self.waited.append((port, timeout, interval))
        return self.opens

    def test_connection(self, url: str, timeout: float = 5.0) -> ConnectionResult:
        if self.responds:
            return ConnectionResult(success=True, status_code=200)
        return ConnectionResult(success=False, error="Connection timeout")

    def has_internet_connection(self, urls=()) -> bool:
        return self.responds


class FakeSupervisor:
    """Process supervisor that never spawns anything."""

    def __init__(self, fail_start: bool = False):
        self.fail_start = fail_start
        self.started: list[dict[str, Any]] = []
        self.stopped: list[str] = []
        self.stop_all_calls = 0
        self._running: set[str] = set()

    def start(self, command, args=None, name="process", cwd=None):
        if self.fail_start:
            raise ProcessStartError(name, f'Could not start "{command}"')
        self.started.append({"command": command, "args": list(args or []), "name": name, "cwd": cwd})
        self._running.add(name)
        proc = MagicMock()
        proc.pid = 4242
        return proc

    def stop(self, name: str, grace: Optional[float] = None) -> bool:
        self.stopped.append(name)
        if name in self._running:
            self._running.discard(name)
            return True
        return False

    def stop_all(self) -> None:
        self.stop_all_calls += 1
        for name in list(self._running):
            self.stop(name)

    def is_running(self, name: str) -> bool:
        return name in self._running

    def running(self) -> list[str]:
        return sorted(self._running)

    def status(self, name: str) -> Optional[ProcessStatus]:
        if name not in self._running:
            return None
        return ProcessStatus(
            name=name,
            pid=4242,
            running=True,
            start_time=0.0,
            uptime=1.0,
            stdout="Rojo server listening",
            stderr="",
            exit_code=None,
        )


class RecordingStep(Step):
    """Step that replays scripted results and records what happened to it.

    ``results`` items are StepResults, or exceptions to raise from ``run``.
    """

    def __init__(self, name="step", results=None, check_result=None, events=None, cleanup_error=None):
        self.name = name
        self.results = list(results or [])
        self.check_result = check_result or CheckResult()
        self.events = events if events is not None else []
        self.cleanup_error = cleanup_error
        self.seen_context = []

    def check(self, context: Context) -> CheckResult:
        self.events.append(("check", self.name))
        return self.check_result

    def run(self, context: Context) -> StepResult:
        self.events.append(("run", self.name))
        self.seen_context.append(context.to_dict())
        outcome = self.results.pop(0) if self.results else StepResult.ok()
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def cleanup(self, context: Context) -> None:
        self.events.append(("cleanup", self.name))
        if self.cleanup_error is not None:
            raise self.cleanup_error


@pytest.fixture
def prompter():
    """Factory for ScriptedPrompter instances."""
    return ScriptedPrompter


@pytest.fixture
def network():
    return FakeNetwork()


@pytest.fixture
def supervisor():
    return FakeSupervisor()


@pytest.fixture
def store(tmp_path):
    """ProgressStore writing into a temp directory."""
    return ProgressStore(tmp_path / ".yoblox-setup-state.json")


@pytest.fixture
def settings(tmp_path):
    return Settings(state_file=tmp_path / ".yoblox-setup-state.json")


@pytest.fixture
def events():
    """Shared event log for RecordingSteps."""
    return []


@pytest.fixture
def make_step(events):
    """Factory for RecordingSteps sharing one event log."""

    def _make(name, *results, check=None, cleanup_error=None):
        return RecordingStep(
            name=name,
            results=list(results),
            check_result=check or CheckResult(),
            events=events,
            cleanup_error=cleanup_error,
        )

    return _make
