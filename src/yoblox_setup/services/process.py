"""Background process management.

Starts, tracks, polls and stops long-lived child processes such as the Rojo
server. Each ``ProcessSupervisor`` owns its own registry, so separate
supervisors (e.g. one per test) never see each other's processes.

Output of each process is collected by daemon reader threads into the
process record; everything else runs on the caller's thread.
"""

import logging
import subprocess
import sys
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Optional, Union

from yoblox_setup.exceptions import ProcessStartError

logger = logging.getLogger(__name__)

START_GRACE_PERIOD = 1.0
STOP_GRACE_PERIOD = 5.0


@dataclass
class ManagedProcess:
    """A tracked background process.

    Attributes:
        name: Registry name (e.g. "rojo-server")
        command: Executable
        args: Arguments
        popen: Underlying process handle
        start_time: ``time.time()`` at start
        stdout: Output captured so far
        stderr: Error output captured so far
        end_time: ``time.time()`` at exit, once observed
    """

    name: str
    command: str
    args: list[str]
    popen: subprocess.Popen
    start_time: float = field(default_factory=time.time)
    stdout: str = ""
    stderr: str = ""
    end_time: Optional[float] = None
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def pid(self) -> int:
        return self.popen.pid

    def poll(self) -> Optional[int]:
        """Return the exit code if the process has exited, recording the end time."""
        code = self.popen.poll()
        if code is not None and self.end_time is None:
            self.end_time = time.time()
            logger.debug(f'Process "{self.name}" exited with code {code}')
        return code

    @property
    def exit_code(self) -> Optional[int]:
        return self.poll()

    @property
    def running(self) -> bool:
        return self.exit_code is None

    def append(self, stream: str, text: str) -> None:
        with self._lock:
            setattr(self, stream, getattr(self, stream) + text)


@dataclass(frozen=True)
class ProcessStatus:
    """Point-in-time view of a managed process."""

    name: str
    pid: int
    running: bool
    start_time: float
    uptime: float
    stdout: str
    stderr: str
    exit_code: Optional[int]


class ProcessSupervisor:
    """Registry of named background processes.

    Args:
        start_grace: Seconds to wait after spawning before declaring the
            process started (a process that exits within it failed to start)
        stop_grace: Seconds between terminate and kill when stopping

    Example:
        >>> supervisor = ProcessSupervisor()
        >>> supervisor.start("rojo", ["serve", "--port", "34872"], "rojo-server", cwd=project)
        >>> supervisor.is_running("rojo-server")
        True
        >>> supervisor.stop_all()
    """

    def __init__(self, start_grace: float = START_GRACE_PERIOD, stop_grace: float = STOP_GRACE_PERIOD):
        self.start_grace = start_grace
        self.stop_grace = stop_grace
        self._processes: dict[str, ManagedProcess] = {}

    def start(
        self,
        command: str,
        args: Optional[list[str]] = None,
        name: str = "process",
        cwd: Optional[Union[str, Path]] = None,
    ) -> ManagedProcess:
        """Start ``command`` in the background under ``name``.

        A still-running process already registered under ``name`` is
        returned as is.

        The child gets its own session / process group so a Ctrl+C in the
        wizard's terminal does not reach it; the wizard stops it explicitly.

        Raises:
            ProcessStartError: If the executable cannot be launched or the
                process exits during the start grace period
        """
        existing = self._processes.get(name)
        if existing is not None and existing.running:
            logger.warning(f'Process "{name}" is already running')
            return existing

        args = list(args or [])
        try:
            popen = subprocess.Popen(
                [command, *args],
                cwd=str(cwd) if cwd is not None else None,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                **_detach_kwargs(),
            )
        except OSError as e:
            raise ProcessStartError(name, f'Could not start "{command}"', original_error=e) from e

        proc = ManagedProcess(name=name, command=command, args=args, popen=popen)
        self._processes[name] = proc
        _spawn_reader(proc, "stdout", popen.stdout)
        _spawn_reader(proc, "stderr", popen.stderr)

        if self.start_grace > 0:
            try:
                popen.wait(timeout=self.start_grace)
            except subprocess.TimeoutExpired:
                pass

        if not proc.running:
            raise ProcessStartError(name, f'Process "{name}" exited during startup with code {proc.exit_code}')

        logger.debug(f'Started "{name}" (PID {proc.pid}): {command} {" ".join(args)}')
        return proc

    def stop(self, name: str, grace: Optional[float] = None) -> bool:
        """Stop a process: terminate, then kill after the grace period.

        Returns:
            True if the process was known (and is now stopped), False otherwise
        """
        proc = self._processes.pop(name, None)
        if proc is None:
            return False

        if not proc.running:
            return True

        grace = self.stop_grace if grace is None else grace
        proc.popen.terminate()
        try:
            proc.popen.wait(timeout=grace)
        except subprocess.TimeoutExpired:
            logger.debug(f'Process "{name}" ignored terminate, killing')
            proc.popen.kill()
            proc.popen.wait()
        proc.poll()
        return True

    def stop_all(self) -> None:
        """Stop every managed process. Errors are logged, not raised."""
        for name in list(self._processes):
            try:
                self.stop(name)
            except OSError as e:
                logger.warning(f'Could not stop "{name}": {e}')

    def is_running(self, name: str) -> bool:
        proc = self._processes.get(name)
        return proc is not None and proc.running

    def status(self, name: str) -> Optional[ProcessStatus]:
        proc = self._processes.get(name)
        if proc is None:
            return None

        exit_code = proc.exit_code
        end = proc.end_time or time.time()
        return ProcessStatus(
            name=proc.name,
            pid=proc.pid,
            running=exit_code is None,
            start_time=proc.start_time,
            uptime=end - proc.start_time,
            stdout=proc.stdout,
            stderr=proc.stderr,
            exit_code=exit_code,
        )

    def running(self) -> list[str]:
        """Names of processes that are still running."""
        return [name for name, proc in self._processes.items() if proc.running]


def _detach_kwargs() -> dict:
    if sys.platform == "win32":
        return {"creationflags": subprocess.CREATE_NEW_PROCESS_GROUP}
    return {"start_new_session": True}


def _spawn_reader(proc: ManagedProcess, stream: str, pipe: Optional[IO[str]]) -> None:
    if pipe is None:
        return

    def _read() -> None:
        for line in pipe:
            proc.append(stream, line)
        pipe.close()

    thread = threading.Thread(target=_read, name=f"{proc.name}-{stream}", daemon=True)
    thread.start()
