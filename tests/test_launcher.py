import os
import stat
import sys
from pathlib import Path

import pytest

import memkit
from memkit.launcher import (
    ServerLaunchError,
    ServerProcess,
    build_server_argv,
    read_pid_file,
    read_port_file,
    start_server,
)

FAKE_SERVER = """\
import os, sys, time
args = sys.argv[1:]
with open({args_file!r}, "w") as fh:
    fh.write("\\n".join(args))
port_file = os.environ["MEMCACHED_PORT_FILENAME"]
tmp = port_file + ".tmp"
with open(tmp, "w") as fh:
    fh.write("UDP INET: 0\\n")
    fh.write("TCP INET: {port}\\n")
os.replace(tmp, port_file)
if "-P" in args:
    with open(args[args.index("-P") + 1], "w") as fh:
        fh.write(str(os.getpid()) + "\\n")
time.sleep(30)
"""

FAILING_SERVER = """\
import sys
sys.exit(3)
"""


def _script(tmp_path: Path, name: str, body: str) -> Path:
    path = tmp_path / name
    path.write_text(f"#!{sys.executable}\n{body}")
    path.chmod(path.stat().st_mode | stat.S_IXUSR)
    return path


@pytest.fixture
def fake_server(tmp_path):
    args_file = tmp_path / "args.txt"
    body = FAKE_SERVER.format(args_file=str(args_file), port=4242)
    return _script(tmp_path, "fake-server", body), args_file


def test_build_argv_under_time_limiter():
    argv = build_server_argv("./memcached-debug", 600, False, None, False)
    assert argv == [
        sys.executable,
        "-m",
        "memkit.timedrun",
        "600",
        "./memcached-debug",
        "-A",
        "-p",
        "-1",
        "-U",
        "0",
    ]


def test_build_argv_daemon_as_root(tmp_path):
    pid_file = tmp_path / "pid"
    argv = build_server_argv("srv", 15, True, pid_file, True)
    assert argv[0] == "srv"
    assert argv[-5:] == ["-u", "root", "-d", "-P", str(pid_file)]
    assert "memkit.timedrun" not in argv


def test_build_argv_daemon_needs_pid_file():
    with pytest.raises(ValueError):
        build_server_argv("srv", 15, True, None, False)


def test_read_port_file_takes_tcp_line(tmp_path):
    path = tmp_path / "ports"
    path.write_text("UDP INET: 0\nTCP INET: 11211\n")
    assert read_port_file(path) == 11211


def test_read_port_file_last_tcp_line_wins(tmp_path):
    path = tmp_path / "ports"
    path.write_text("TCP INET: 1000\nTCP INET: 2000\n")
    assert read_port_file(path) == 2000


def test_read_port_file_without_tcp(tmp_path):
    path = tmp_path / "ports"
    path.write_text("UDP INET: 0\n")
    with pytest.raises(ServerLaunchError):
        read_port_file(path)


def test_read_port_file_bad_number(tmp_path):
    path = tmp_path / "ports"
    path.write_text("TCP INET: abc\n")
    with pytest.raises(ServerLaunchError):
        read_port_file(path)


def test_read_pid_file(tmp_path):
    path = tmp_path / "pid"
    path.write_text("31337\n")
    assert read_pid_file(path) == 31337


@pytest.mark.parametrize("content", ["", "not-a-pid\n"])
def test_read_pid_file_errors(tmp_path, content):
    path = tmp_path / "pid"
    path.write_text(content)
    with pytest.raises(ServerLaunchError):
        read_pid_file(path)


def test_start_daemon_server(fake_server):
    binary, args_file = fake_server
    server = start_server(str(binary), daemon=True, timeout=15)
    try:
        assert server.port == 4242
        assert server.pid == server.proc.pid
        assert server.alive() is True
        args = args_file.read_text().split("\n")
        assert args[:5] == ["-A", "-p", "-1", "-U", "0"]
        assert "-d" in args
    finally:
        assert server.stop() is True
    assert server.alive() is False


def test_start_server_under_time_limiter(fake_server, monkeypatch):
    binary, _ = fake_server
    package_root = str(Path(memkit.__file__).resolve().parent.parent)
    existing = os.environ.get("PYTHONPATH")
    monkeypatch.setenv(
        "PYTHONPATH", package_root + (os.pathsep + existing if existing else "")
    )
    server = start_server(str(binary), daemon=False, timeout=60)
    try:
        assert server.port == 4242
        assert server.alive() is True
    finally:
        server.stop()
    assert server.alive() is False


def test_start_server_that_fails(tmp_path):
    binary = _script(tmp_path, "failing-server", FAILING_SERVER)
    with pytest.raises(ServerLaunchError):
        start_server(str(binary), daemon=True, timeout=15)


def test_start_missing_binary(tmp_path):
    with pytest.raises(ServerLaunchError):
        start_server(str(tmp_path / "no-such-server"), daemon=True, timeout=15)


def test_stop_of_vanished_process(tmp_path):
    binary = _script(tmp_path, "quick", "pass\n")
    import subprocess

    proc = subprocess.Popen([str(binary)])
    proc.wait()
    server = ServerProcess(pid=proc.pid, port=1, proc=proc)
    assert server.alive() is False
    assert server.stop() is False