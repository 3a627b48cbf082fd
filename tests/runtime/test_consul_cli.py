"""ConsulCli against a real executable standing in for the consul binary."""

from __future__ import annotations

import signal
import subprocess
import sys
import textwrap
import time

import pytest

from autoconsul.adapters.consul import ConsulCli
from autoconsul.domain import ConsulUnavailable

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals and shebang scripts")

SCRIPT = textwrap.dedent(
    """\
    import os, signal, sys, time

    cmd = sys.argv[1]
    if cmd == "info":
        time.sleep(float(os.environ.get("FAKE_CONSUL_INFO_SLEEP", "0")))
        sys.exit(int(os.environ.get("FAKE_CONSUL_INFO_CODE", "0")))
    if cmd == "join":
        sys.exit(0 if sys.argv[2] == "10.0.0.1" else 1)
    if cmd == "agent":
        if sys.argv[2] == "exit":
            sys.exit(int(sys.argv[3]))
        signal.signal(signal.SIGINT, signal.SIG_DFL)
        open(sys.argv[3], "w").close()
        time.sleep(60)
    sys.exit(64)
    """
)


@pytest.fixture
def consul_bin(tmp_path):
    path = tmp_path / "consul"
    path.write_text(f"#!{sys.executable}\n{SCRIPT}")
    path.chmod(0o755)
    return str(path)


@pytest.fixture
def consul(consul_bin):
    return ConsulCli(consul_bin, timeout_s=5)


def test_spawn_then_wait_returns_exit_code(consul):
    pid = consul.spawn("agent", "exit", "3")
    assert pid > 0
    assert consul.wait(pid) == 3


def test_info_reflects_exit_status(consul, monkeypatch):
    assert consul.info() is True
    monkeypatch.setenv("FAKE_CONSUL_INFO_CODE", "1")
    assert consul.info() is False


def test_info_times_out(consul_bin, monkeypatch):
    monkeypatch.setenv("FAKE_CONSUL_INFO_SLEEP", "5")
    assert ConsulCli(consul_bin, timeout_s=0.2).info() is False


def test_join_reflects_exit_status(consul):
    assert consul.join("10.0.0.1") is True
    assert consul.join("10.0.0.2") is False


def test_missing_binary(tmp_path):
    missing = ConsulCli(str(tmp_path / "nope"))
    assert missing.info() is False
    assert missing.join("10.0.0.1") is False
    with pytest.raises(ConsulUnavailable, match="nope"):
        missing.spawn("agent")


def test_interrupt_ends_agent_with_sigint(consul, tmp_path):
    ready = tmp_path / "ready"
    pid = consul.spawn("agent", "run", str(ready))
    deadline = time.monotonic() + 10
    while not ready.exists() and time.monotonic() < deadline:
        time.sleep(0.01)
    assert ready.exists()
    consul.interrupt(pid)
    assert consul.wait(pid) == -signal.SIGINT


def test_wait_on_process_not_spawned_by_cli(consul_bin, consul):
    # чужой дочерний процесс: только waitpid
    p = subprocess.Popen([consul_bin, "agent", "exit", "5"])
    assert consul.wait(p.pid) == 5
    # процесс уже собран, Popen не должен ждать его повторно
    p.returncode = 5

