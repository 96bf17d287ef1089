"""Child process supervision for target servers."""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

logger = logging.getLogger(__name__)


class SupervisorState(str, Enum):
    """Child process lifecycle."""

    ABSENT = "absent"
    STARTING = "starting"
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass(slots=True)
class ProcessState:
    """Current supervisor status."""

    state: SupervisorState
    pid: int | None = None
    returncode: int | None = None

    @property
    def running(self) -> bool:
        return self.state in (SupervisorState.STARTING, SupervisorState.RUNNING)


class ProcessSupervisor:
    """Own at most one child process at a time."""

    def __init__(self, *, stop_grace_seconds: float = 10.0) -> None:
        self._process: subprocess.Popen[bytes] | None = None
        self._state = SupervisorState.ABSENT
        self._returncode: int | None = None
        self._stop_grace_seconds = stop_grace_seconds

    def is_alive(self) -> bool:
        return self._process is not None and self._process.poll() is None

    def returncode(self) -> int | None:
        """Exit code of the child, or None while it runs or before it started."""
        if self._process is None:
            return self._returncode
        return self._process.poll()

    def start(
        self,
        command: Sequence[str],
        *,
        cwd: Path,
        env: Mapping[str, str] | None = None,
    ) -> ProcessState:
        if self.is_alive():
            logger.info("Process %s already running, not spawning again", self.pid)
            return self.status()

        self._state = SupervisorState.STARTING
        self._returncode = None
        child_env = {**os.environ, **(env or {})}
        logger.info("Spawning %s in %s", " ".join(command), cwd)
        try:
            # stdin/stdout/stderr are inherited from the host
            self._process = subprocess.Popen(list(command), cwd=cwd, env=child_env)
        except OSError:
            self._state = SupervisorState.ABSENT
            self._process = None
            raise
        return ProcessState(state=self._state, pid=self._process.pid)

    def mark_running(self) -> None:
        if self.is_alive():
            self._state = SupervisorState.RUNNING

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process is not None else None

    def terminate(self) -> bool:
        """Send a terminate signal without waiting; False when nothing was signalled."""
        process = self._process
        if process is None or process.poll() is not None:
            return False
        try:
            process.terminate()
        except OSError as exc:
            logger.warning("Failed to signal process %s: %s", process.pid, exc)
            return False
        return True

    def stop(self) -> ProcessState:
        process = self._process
        if process is None:
            logger.info("No running process to stop")
            return self.status()

        returncode: int | None = process.poll()
        if returncode is None and self.terminate():
            try:
                returncode = process.wait(timeout=self._stop_grace_seconds)
            except subprocess.TimeoutExpired:
                logger.warning(
                    "Process %s ignored terminate for %ss, killing",
                    process.pid,
                    self._stop_grace_seconds,
                )
                try:
                    process.kill()
                    returncode = process.wait(timeout=5)
                except (OSError, subprocess.TimeoutExpired) as exc:
                    logger.warning("Failed to kill process %s: %s", process.pid, exc)
        else:
            returncode = process.poll()

        logger.info("Process %s stopped with exit code %s", process.pid, returncode)
        self._process = None
        self._returncode = returncode
        self._state = SupervisorState.STOPPED
        return ProcessState(state=self._state, pid=None, returncode=returncode)

    def status(self) -> ProcessState:
        if self._process is None:
            return ProcessState(state=self._state, pid=None, returncode=self._returncode)
        returncode = self._process.poll()
        if returncode is None:
            return ProcessState(state=self._state, pid=self._process.pid)
        self._returncode = returncode
        self._state = SupervisorState.STOPPED
        return ProcessState(state=self._state, pid=self._process.pid, returncode=returncode)
