"""Tests for the supervised consul agent state machine."""

from __future__ import annotations

import pytest

from autoconsul.domain import AgentAlreadyStarted, AgentNotRunning, AgentNotStarted, AgentStatus
from autoconsul.services.eventbus import LocalEventBus
from autoconsul.services.runtime import AgentProcess

ARGS = ["-bind", "10.0.0.1", "-data-dir", "/tmp/consul", "-node", "n1"]


@pytest.fixture
def make_agent(make_consul, sleeps):
    def _make(*info, **kw):
        consul = make_consul(list(info), **kw)
        return AgentProcess(ARGS, consul=consul, sleep=sleeps), consul

    return _make


# ---------- launch / wait ----------


def test_launch_spawns_agent_and_moves_to_starting(make_agent):
    agent, consul = make_agent()
    assert agent.status is AgentStatus.UNSET
    assert agent.pid is None and agent.thread is None and agent.exit_code is None

    agent.launch()

    assert consul.calls[0] == ("spawn", ("agent", *ARGS))
    assert agent.pid == consul.pid
    assert agent.status is AgentStatus.STARTING
    assert agent.thread is not None
    consul.exit(0)
    agent.wait(timeout=5)


def test_process_exit_moves_to_down_and_fires_on_down_in_order(make_agent):
    agent, consul = make_agent()
    seen = []
    agent.on_down(lambda a: seen.append(("a", a, a.status, a.exit_code)))
    agent.on_down(lambda a: seen.append(("b", a, a.status, a.exit_code)))

    agent.launch()
    consul.exit(2)

    assert agent.wait(timeout=5) == 2
    assert agent.status is AgentStatus.DOWN
    assert agent.exit_code == 2
    assert agent.pid == consul.pid
    assert seen == [
        ("a", agent, AgentStatus.DOWN, 2),
        ("b", agent, AgentStatus.DOWN, 2),
    ]


def test_launch_twice_is_rejected(make_agent):
    agent, consul = make_agent()
    agent.launch()
    with pytest.raises(AgentAlreadyStarted):
        agent.launch()
    consul.exit(0)
    agent.wait(timeout=5)


def test_monitor_failure_is_surfaced_by_wait(make_agent):
    agent, consul = make_agent()
    consul.wait_error = OSError("waitpid failed")
    agent.launch()
    consul.exit(0)
    with pytest.raises(OSError, match="waitpid failed"):
        agent.wait(timeout=5)


def test_monitor_waits_on_pid_captured_at_launch(make_agent):
    agent, consul = make_agent()
    agent.launch()
    launched = agent.pid
    # монитор не перечитывает pid с экземпляра
    agent.pid = None
    consul.exit(4)

    assert agent.wait(timeout=5) == 4
    assert ("wait", launched) in consul.calls


def test_wait_before_launch_fails(make_agent):
    agent, _ = make_agent()
    with pytest.raises(AgentNotStarted, match="has not started"):
        agent.wait()


# ---------- verify_up ----------


def test_verify_up_uses_exponential_backoff_and_fires_callbacks(make_agent, sleeps):
    agent, consul = make_agent(False, False, False, True)
    seen = []

    @agent.on_up
    def first(a):
        seen.append(("first", a, a.status))

    @agent.on_up
    def second(a):
        seen.append(("second", a, a.status))

    assert agent.verify_up() is True
    assert agent.status is AgentStatus.UP
    assert sleeps.delays == [0.1, 2, 4, 8]
    assert consul.names().count("info") == 4
    assert seen == [("first", agent, AgentStatus.UP), ("second", agent, AgentStatus.UP)]


def test_verify_up_failure_leaves_status_and_fires_nothing(make_agent, sleeps):
    agent, consul = make_agent(False, False, False, False, False)
    fired = []
    agent.on_up(fired.append)

    assert agent.verify_up() is False
    assert agent.status is AgentStatus.UNSET
    assert sleeps.delays == [0.1, 2, 4, 8, 16]
    assert consul.names().count("info") == 5
    assert fired == []


def test_verify_up_does_not_revive_a_down_agent(make_agent):
    agent, consul = make_agent(True)
    agent.pid = 1
    agent.status = AgentStatus.DOWN
    assert agent.verify_up() is False
    assert agent.status is AgentStatus.DOWN


def test_run_launches_then_verifies(make_agent):
    agent, consul = make_agent(True)
    assert agent.run() is AgentStatus.UP
    assert consul.names()[:1] == ["spawn"]
    assert "info" in consul.names()
    consul.exit(0)
    assert agent.wait(timeout=5) == 0


def test_run_reports_starting_when_not_ready(make_agent):
    agent, consul = make_agent()
    assert agent.run() is AgentStatus.STARTING
    consul.exit(1)
    agent.wait(timeout=5)


# ---------- stop ----------


@pytest.mark.parametrize("status", list(AgentStatus))
def test_stop_without_pid_fails(make_agent, status):
    agent, consul = make_agent()
    agent.status = status
    with pytest.raises(AgentNotRunning, match="not running"):
        agent.stop()
    assert agent.status is status
    assert consul.interrupts == []


def test_stop_when_down_fails(make_agent):
    agent, consul = make_agent()
    agent.pid = 99
    agent.status = AgentStatus.DOWN
    with pytest.raises(AgentNotRunning):
        agent.stop()
    assert agent.status is AgentStatus.DOWN
    assert consul.interrupts == []


@pytest.mark.parametrize("status", [AgentStatus.UNSET, AgentStatus.STARTING, AgentStatus.UP, AgentStatus.STOPPING])
def test_stop_fires_stopping_callbacks_then_signals(make_agent, status):
    agent, consul = make_agent()
    agent.pid = 99
    agent.status = status
    seen = []

    def cb(name):
        def _cb(a):
            # сигнал ещё не отправлен, статус уже stopping
            seen.append((name, a, a.status, list(consul.interrupts)))

        return _cb

    agent.on_stopping(cb("a"))
    agent.on_stopping(cb("b"))

    agent.stop()

    assert seen == [
        ("a", agent, AgentStatus.STOPPING, []),
        ("b", agent, AgentStatus.STOPPING, []),
    ]
    assert consul.interrupts == [("interrupt", 99)]
    assert agent.status is AgentStatus.STOPPING


def test_stop_without_callbacks_signals(make_agent):
    agent, consul = make_agent()
    agent.pid = 99
    agent.status = AgentStatus.UP
    agent.stop()
    assert consul.interrupts == [("interrupt", 99)]


def test_stop_tolerates_already_exited_process(make_agent):
    agent, consul = make_agent()
    consul.interrupt_error = ProcessLookupError()
    agent.pid = 99
    agent.status = AgentStatus.UP
    agent.stop()
    assert agent.status is AgentStatus.STOPPING


def test_stop_then_exit_reaches_down(make_agent):
    agent, consul = make_agent(True)
    agent.run()
    agent.stop()
    consul.exit(130)
    assert agent.wait(timeout=5) == 130
    assert agent.status is AgentStatus.DOWN


# ---------- events ----------


def test_lifecycle_events_are_published(make_consul, sleeps):
    bus = LocalEventBus()
    events = []
    bus.subscribe("agent.", lambda ev: events.append(ev.type))
    consul = make_consul([True])
    agent = AgentProcess(ARGS, consul=consul, bus=bus, sleep=sleeps)

    agent.run()
    agent.stop()
    consul.exit(0)
    agent.wait(timeout=5)

    assert events == ["agent.starting", "agent.up", "agent.stopping", "agent.down"]
