"""Run a command with a time limit, forwarding signals and escalating kills."""

from __future__ import annotations

import os
import signal
import subprocess
import sys
from collections.abc import Sequence

EX_USAGE = 64
EX_SOFTWARE = 70
EX_OSERR = 71

GRACE_SECONDS = 5
MAX_NAPTIME = 1800

_FORWARDED_SIGNALS = (
    signal.SIGALRM,
    signal.SIGHUP,
    signal.SIGINT,
    signal.SIGTERM,
    signal.SIGPIPE,
)


class _Signalled(Exception):
    """Raised from the signal handler to break out of a blocking wait."""


def _exit_code(returncode: int) -> int:
    if returncode >= 0:
        return returncode
    return 0x80 | -returncode


def wait_for_process(proc: subprocess.Popen) -> int:
    """Wait for ``proc`` to exit, passing on signals and escalating to SIGKILL.

    The first signal received is forwarded to the child (SIGTERM if none was
    seen); the next attempt sends SIGTERM and any later one SIGKILL, each
    followed by a grace period.  Returns the child's exit status, or
    ``0x80 | signal`` if it was killed by a signal.
    """
    caught = 0

    def handler(signum, frame):
        nonlocal caught
        caught = signum
        raise _Signalled

    previous = {sig: signal.signal(sig, handler) for sig in _FORWARDED_SIGNALS}
    try:
        attempt = 0
        while True:
            try:
                return _exit_code(proc.wait())
            except _Signalled:
                pass

            if attempt == 0:
                sig = caught if caught > 0 else signal.SIGTERM
                if caught == signal.SIGALRM:
                    print("Timeout.. killing the process", file=sys.stderr)
            elif attempt == 1:
                sig = signal.SIGTERM
            else:
                sig = signal.SIGKILL

            try:
                os.kill(proc.pid, sig)
            except OSError as err:
                print(f"lost child when trying to kill: {err.strerror}", file=sys.stderr)
            signal.alarm(GRACE_SECONDS)
            attempt += 1
    finally:
        signal.alarm(0)
        for sig, old in previous.items():
            signal.signal(sig, old)


def spawn_and_wait(argv: Sequence[str]) -> int:
    """Start ``argv`` as a child process and wait for it."""
    try:
        proc = subprocess.Popen(list(argv))
    except OSError as err:
        print(f"exec: {err.strerror or err}", file=sys.stderr)
        return EX_SOFTWARE
    return wait_for_process(proc)


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point: ``timedrun SECONDS COMMAND [ARGS...]``."""
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) < 2:
        raise ValueError("usage: timedrun SECONDS COMMAND [ARGS...]")
    try:
        naptime = int(args[0])
    except ValueError:
        raise ValueError(f"invalid time limit: {args[0]!r}") from None
    if not 0 < naptime < MAX_NAPTIME:
        raise ValueError(f"time limit must be between 1 and {MAX_NAPTIME - 1} seconds")

    signal.alarm(naptime)
    try:
        return spawn_and_wait(args[1:])
    finally:
        signal.alarm(0)


if __name__ == "__main__":
    sys.exit(main())