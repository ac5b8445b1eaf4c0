"""Start a cache server for testing and find the port it listens on."""

from __future__ import annotations

import os
import signal
import subprocess
import sys
import tempfile
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from memkit.util import safe_strtol

PORT_FILE_ENV = "MEMCACHED_PORT_FILENAME"
TCP_PORT_PREFIX = "TCP INET: "
DEFAULT_BINARY = "./memcached-debug"

STARTUP_TIMEOUT = 30.0
POLL_INTERVAL = 0.001
PID_READ_ATTEMPTS = 20
STOP_TIMEOUT = 10.0


class ServerLaunchError(RuntimeError):
    """Raised when the server cannot be started or its files cannot be read."""


@dataclass
class ServerProcess:
    """A running server: its process id and the TCP port it listens on."""

    pid: int
    port: int
    proc: subprocess.Popen | None = field(default=None, repr=False)
    pid_file: Path | None = None

    def _is_own_child(self) -> bool:
        return self.proc is not None and self.proc.pid == self.pid

    def stop(self) -> bool:
        """Send SIGTERM to the server and reap the launched process.

        Returns False if the server was already gone.
        """
        try:
            os.kill(self.pid, signal.SIGTERM)
            signalled = True
        except ProcessLookupError:
            signalled = False
        if self.proc is not None:
            try:
                self.proc.wait(timeout=STOP_TIMEOUT)
            except subprocess.TimeoutExpired:
                self.proc.kill()
                self.proc.wait()
        return signalled

    def alive(self) -> bool:
        """True while the server process still exists."""
        if self._is_own_child():
            return self.proc.poll() is None
        try:
            os.kill(self.pid, 0)
        except ProcessLookupError:
            return False
        except PermissionError:
            return True
        return True


def read_port_file(path: str | os.PathLike) -> int:
    """Return the TCP port announced in a server's port file.

    The last ``TCP INET:`` line wins. Raises ServerLaunchError if the file
    names no TCP port.
    """
    port = None
    with open(path, encoding="latin-1") as fh:
        for line in fh:
            if line.startswith(TCP_PORT_PREFIX):
                try:
                    port = safe_strtol(line[len(TCP_PORT_PREFIX):])
                except ValueError:
                    raise ServerLaunchError(f"bad port line: {line!r}") from None
    if port is None:
        raise ServerLaunchError(f"no TCP port in {os.fspath(path)}")
    return port


def read_pid_file(path: str | os.PathLike) -> int:
    """Return the process id written on the first line of a pid file."""
    with open(path, encoding="latin-1") as fh:
        line = fh.readline()
    if not line:
        raise ServerLaunchError(f"pid file {os.fspath(path)} is empty")
    try:
        return safe_strtol(line)
    except ValueError:
        raise ServerLaunchError(f"bad pid in {os.fspath(path)}: {line!r}") from None


def build_server_argv(
    binary: str = DEFAULT_BINARY,
    timeout: int = 600,
    daemon: bool = False,
    pid_file: str | os.PathLike | None = None,
    as_root: bool | None = None,
) -> list[str]:
    """Command line that starts the server on an ephemeral TCP port, no UDP.

    Without ``daemon`` the server runs under the time limiter; with it the
    server detaches and writes its pid to ``pid_file``.
    """
    if as_root is None:
        as_root = os.getuid() == 0
    argv: list[str] = []
    if not daemon:
        argv += [sys.executable, "-m", "memkit.timedrun", str(timeout)]
    argv += [binary, "-A", "-p", "-1", "-U", "0"]
    if as_root:
        argv += ["-u", "root"]
    if daemon:
        if pid_file is None:
            raise ValueError("a daemon needs a pid file")
        argv += ["-d", "-P", os.fspath(pid_file)]
    return argv


def _remove(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass


def _wait_for_file(path: Path, proc: subprocess.Popen, daemon: bool) -> None:
    deadline = time.monotonic() + STARTUP_TIMEOUT
    while not path.exists():
        code = proc.poll()
        if code is not None and (not daemon or code != 0):
            raise ServerLaunchError(f"server exited with status {code} before starting")
        if time.monotonic() > deadline:
            raise ServerLaunchError(f"timed out waiting for {path}")
        time.sleep(POLL_INTERVAL)


def _read_pid_with_retries(path: Path) -> int:
    for _ in range(PID_READ_ATTEMPTS - 1):
        try:
            return read_pid_file(path)
        except ServerLaunchError:
            time.sleep(POLL_INTERVAL)
    return read_pid_file(path)


def start_server(
    binary: str = DEFAULT_BINARY, daemon: bool = False, timeout: int = 600
) -> ServerProcess:
    """Start the server and wait until it reports its TCP port."""
    tmpdir = Path(tempfile.gettempdir())
    port_file = tmpdir / f"ports.{os.getpid()}"
    pid_file = tmpdir / f"pid.{os.getpid()}"
    _remove(port_file)
    _remove(pid_file)

    argv: Sequence[str] = build_server_argv(binary, timeout, daemon, pid_file)
    env = dict(os.environ, **{PORT_FILE_ENV: os.fspath(port_file)})
    try:
        proc = subprocess.Popen(list(argv), env=env)
    except OSError as err:
        raise ServerLaunchError(f"cannot start {binary}: {err}") from err

    try:
        _wait_for_file(port_file, proc, daemon)
        port = read_port_file(port_file)
        _remove(port_file)
        if daemon:
            _wait_for_file(pid_file, proc, daemon)
            pid = _read_pid_with_retries(pid_file)
        else:
            pid = proc.pid
    except BaseException:
        if proc.poll() is None:
            proc.kill()
        proc.wait()
        _remove(port_file)
        raise
    return ServerProcess(
        pid=pid, port=port, proc=proc, pid_file=pid_file if daemon else None
    )