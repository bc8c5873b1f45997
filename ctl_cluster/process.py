"""
Spawning and signalling of external service processes.

Every spawned process is registered with a process-wide safety net that force-kills it when the
interpreter exits, so child services never outlive the orchestrator.
"""

import atexit
import collections
import contextlib
import logging
import os
import signal
import subprocess
import threading
from typing import IO

from ctl_cluster.errors import ProcessSpawnError

logger = logging.getLogger(__name__)

# Lines kept in memory per process for readiness checks and error reports.
OUTPUT_BUFFER_LINES = 2000

_live: set["ManagedProcess"] = set()
_live_lock = threading.Lock()
_safety_net_installed = False


def _kill_all_live() -> None:
    """atexit hook: force-kill every child that is still registered."""
    with _live_lock:
        procs = list(_live)
    for p in procs:
        with contextlib.suppress(Exception):
            p.kill()


def _register(proc: "ManagedProcess") -> None:
    global _safety_net_installed
    with _live_lock:
        if not _safety_net_installed:
            atexit.register(_kill_all_live)
            _safety_net_installed = True
        _live.add(proc)


def _deregister(proc: "ManagedProcess") -> None:
    with _live_lock:
        _live.discard(proc)


def live_processes() -> list["ManagedProcess"]:
    """Processes currently covered by the exit-time safety net."""
    with _live_lock:
        return list(_live)


class ManagedProcess:
    """
    A spawned external process with captured output.

    Stdout and stderr are merged and read line by line on a background thread. Each line is
    appended to `logfile` (if given), echoed at DEBUG level to the `service.<name>` logger and
    kept in a bounded in-memory buffer that readiness watchers consume.

    Usage:
        proc = ManagedProcess.spawn("ogmios", ["ogmios", "--port", "1338"], port=1338)
        wait_for_output(proc, any_line)
        proc.terminate()
    """

    def __init__(
        self,
        name: str,
        cmd: list[str],
        port: int | None = None,
        host: str = "127.0.0.1",
        logfile: str | None = None,
        env: dict[str, str] | None = None,
    ):
        self.name = name
        self.cmd = cmd
        self.port = port
        self.host = host
        self.logfile = logfile
        self._env = env
        self.proc: subprocess.Popen | None = None
        self._logger = logging.getLogger(f"service.{name}")
        self._cond = threading.Condition()
        self._lines: collections.deque[str] = collections.deque(maxlen=OUTPUT_BUFFER_LINES)
        self._line_count = 0
        self._eof = False
        self._reader: threading.Thread | None = None

    @classmethod
    def spawn(
        cls,
        name: str,
        cmd: list[str],
        port: int | None = None,
        host: str = "127.0.0.1",
        logfile: str | None = None,
        env: dict[str, str] | None = None,
    ) -> "ManagedProcess":
        """Create and start a process in one go."""
        proc = cls(name, cmd, port=port, host=host, logfile=logfile, env=env)
        proc.start()
        return proc

    def start(self) -> None:
        """
        Launch the process. Does not wait for it to become ready.

        Raises:
            ProcessSpawnError: If the executable can't be launched
            RuntimeError: If the process was already started
        """
        if self.is_started():
            raise RuntimeError(f"process '{self.name}' already started")

        log: IO[str] | None = None
        if self.logfile is not None:
            log = open(self.logfile, "a")  # noqa: SIM115
            log.write(f"(process started as: {self.cmd})\n")
            log.flush()

        merged_env = None
        if self._env is not None:
            merged_env = os.environ.copy()
            merged_env.update(self._env)

        try:
            p = subprocess.Popen(
                self.cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                env=merged_env,
                text=True,
                errors="replace",
                bufsize=1,
            )
        except OSError as e:
            if log is not None:
                log.close()
            raise ProcessSpawnError(self.cmd, e) from e

        self.proc = p
        _register(self)
        self._logger.info(f"started (pid {p.pid}): {' '.join(self.cmd)}")

        self._reader = threading.Thread(
            target=self._pump_output,
            args=(p.stdout, log),
            name=f"{self.name}-output",
            daemon=True,
        )
        self._reader.start()

    def _pump_output(self, stream: IO[str], log: IO[str] | None) -> None:
        try:
            for raw in stream:
                line = raw.rstrip("\r\n")
                if log is not None:
                    log.write(line + "\n")
                    log.flush()
                self._logger.debug(line)
                with self._cond:
                    self._lines.append(line)
                    self._line_count += 1
                    self._cond.notify_all()
        finally:
            with contextlib.suppress(Exception):
                stream.close()
            if log is not None:
                with contextlib.suppress(Exception):
                    log.close()
            with self._cond:
                self._eof = True
                self._cond.notify_all()

    def read_output(
        self, index: int, timeout: float | None = None
    ) -> tuple[list[str], int, bool]:
        """
        Block until there is output past `index` or the output stream ended.

        Args:
            index: Number of lines the caller has already seen
            timeout: Maximum time to block in seconds (None waits indefinitely)

        Returns:
            (new lines, new index, whether the stream has ended)
        """
        with self._cond:
            self._cond.wait_for(lambda: self._line_count > index or self._eof, timeout=timeout)
            first_buffered = self._line_count - len(self._lines)
            start = max(index, first_buffered)
            new_lines = list(self._lines)[start - first_buffered :]
            return new_lines, self._line_count, self._eof

    def output_tail(self, n: int = 20) -> list[str]:
        with self._cond:
            return list(self._lines)[-n:]

    def is_started(self) -> bool:
        return self.proc is not None

    def check_status(self) -> bool:
        """True while the process is running."""
        return self.proc is not None and self.proc.poll() is None

    @property
    def pid(self) -> int | None:
        return self.proc.pid if self.proc is not None else None

    def exit_code(self, timeout: float = 1.0) -> int | None:
        """Reap the process if it has exited and return its exit code (None if still running)."""
        if self.proc is None:
            return None
        with contextlib.suppress(subprocess.TimeoutExpired):
            self.proc.wait(timeout=timeout)
        return self.proc.returncode

    def terminate(self, sig: int = signal.SIGINT) -> None:
        """Deliver `sig` to the process. Does not wait for it to exit."""
        if not self.check_status():
            return
        self._logger.debug(f"sending signal {signal.Signals(sig).name}")
        self.proc.send_signal(sig)

    def kill(self) -> None:
        """Force-kill the process if it is still running."""
        if self.check_status():
            self._logger.warning(f"force-killing pid {self.proc.pid}")
            self.proc.kill()

    def wait(self, timeout: float | None = None) -> int:
        """
        Wait for the process to exit.

        Raises:
            subprocess.TimeoutExpired: If it is still running after `timeout`
        """
        if self.proc is None:
            raise RuntimeError(f"process '{self.name}' was never started")
        return self.proc.wait(timeout=timeout)

    def release(self) -> None:
        """Drop the exit-time safety net registration of an exited process."""
        if self.check_status():
            raise RuntimeError(f"process '{self.name}' is still running")
        _deregister(self)
        if self._reader is not None:
            self._reader.join(timeout=1.0)
