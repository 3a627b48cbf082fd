"""Supervised consul agent: AgentProcess plus heartbeat, join and signal handling."""

from __future__ import annotations

import logging
import signal
import time
from typing import Callable, Optional

from autoconsul.config import const
from autoconsul.domain import AgentNotRunning, AgentStatus
from autoconsul.ports import ClusterRegistryPort, ConsulCommands, EventBus, LocalStatePort
from autoconsul.services.heartbeat import HeartbeatLoop, HeartbeatService
from autoconsul.services.runner import build_agent_args, pick_peer
from autoconsul.services.runtime import AgentProcess

log = logging.getLogger(__name__)


class Supervisor:
    def __init__(
        self,
        *,
        identity: str,
        bind_ip: str,
        expiry: int,
        local_state: LocalStatePort,
        registry: ClusterRegistryPort,
        consul: ConsulCommands,
        bus: Optional[EventBus] = None,
        heartbeat_interval: float = const.DEFAULT_HEARTBEAT_INTERVAL_SEC,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.identity = identity
        self.bind_ip = bind_ip
        self.expiry = expiry
        self.local_state = local_state
        self.registry = registry
        self.consul = consul
        self.bus = bus
        self.heartbeat_interval = heartbeat_interval
        self._sleep = sleep
        self.heartbeat: Optional[HeartbeatLoop] = None

    def build(self, *, server: bool = False) -> AgentProcess:
        """Собирает AgentProcess с колбэками join/heartbeat, но не запускает его."""
        section = self.registry.servers if server else self.registry.agents
        members = section.members(self.expiry)
        args = build_agent_args(
            self.identity,
            self.bind_ip,
            self.local_state.data_path,
            server=server,
            bootstrap=server and not members,
        )
        agent = AgentProcess(args, consul=self.consul, bus=self.bus, sleep=self._sleep)
        peer = pick_peer(members)
        loop = HeartbeatLoop(
            HeartbeatService(self.registry, self.consul),
            identity=self.identity,
            address=self.bind_ip,
            expiry=self.expiry,
            interval=self.heartbeat_interval,
            server=server,
        )
        self.heartbeat = loop

        @agent.on_up
        def _join(a: AgentProcess) -> None:
            if peer:
                ok = self.consul.join(peer)
                log.info("supervisor.join", extra={"extra": {"peer": peer, "ok": ok}})

        @agent.on_up
        def _start_heartbeat(a: AgentProcess) -> None:
            loop.start()

        @agent.on_stopping
        def _stop_heartbeat(a: AgentProcess) -> None:
            loop.stop()

        @agent.on_down
        def _down(a: AgentProcess) -> None:
            loop.stop()
            log.info("supervisor.agent_down", extra={"extra": {"pid": a.pid, "exit_code": a.exit_code}})

        return agent

    def run(self, *, server: bool = False, install_signals: bool = True) -> int:
        agent = self.build(server=server)
        previous = {}
        stop_requested = False

        def _on_signal(signum, frame) -> None:
            nonlocal stop_requested
            log.info("supervisor.signal", extra={"extra": {"signal": signum}})
            stop_requested = True
            if agent.pid is None:
                # ещё не запущен: остановим сразу после run()
                return
            try:
                agent.stop()
            except AgentNotRunning:
                pass

        if install_signals:
            for sig in (signal.SIGINT, signal.SIGTERM):
                previous[sig] = signal.signal(sig, _on_signal)
        try:
            status = agent.run()
            if stop_requested and agent.status not in (AgentStatus.STOPPING, AgentStatus.DOWN):
                try:
                    agent.stop()
                except AgentNotRunning:
                    pass
            log.info("supervisor.started", extra={"extra": {"status": status.value, "pid": agent.pid}})
            return agent.wait()
        finally:
            for sig, handler in previous.items():
                signal.signal(sig, handler)
