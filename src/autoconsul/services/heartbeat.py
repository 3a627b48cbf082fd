from __future__ import annotations
import logging
import threading
from typing import Optional

from autoconsul.domain import AutoConsulError
from autoconsul.ports import ClusterRegistryPort, ConsulCommands

log = logging.getLogger(__name__)


class HeartbeatService:
    """Пишет heartbeat узла в реестр, если локальный агент отвечает на `consul info`."""

    def __init__(self, registry: ClusterRegistryPort, consul: ConsulCommands) -> None:
        self._registry = registry
        self._consul = consul

    def beat(self, identity: str, address: str, expiry: int, *, server: bool = False) -> bool:
        if not self._consul.info():
            log.warning("heartbeat.agent_down", extra={"extra": {"node": identity}})
            return False
        self._registry.agents.heartbeat(identity, address, expiry)
        if server:
            self._registry.servers.heartbeat(identity, address, expiry)
        log.debug("heartbeat.sent", extra={"extra": {"node": identity, "server": server}})
        return True


class HeartbeatLoop:
    """Периодический beat в фоновом потоке, пока не вызван stop()."""

    def __init__(
        self,
        service: HeartbeatService,
        *,
        identity: str,
        address: str,
        expiry: int,
        interval: float,
        server: bool = False,
    ) -> None:
        self._service = service
        self.identity = identity
        self.address = address
        self.expiry = expiry
        self.interval = interval
        self.server = server
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.beats = 0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name=f"heartbeat-{self.identity}", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop.set()
        t = self._thread
        if t is not None and t is not threading.current_thread():
            t.join(timeout)

    def tick(self) -> bool:
        try:
            ok = self._service.beat(self.identity, self.address, self.expiry, server=self.server)
        except AutoConsulError:
            # реестр временно недоступен - пробуем на следующем тике
            log.exception("heartbeat.failed", extra={"extra": {"node": self.identity}})
            return False
        if ok:
            self.beats += 1
        return ok

    def _loop(self) -> None:
        while not self._stop.is_set():
            self.tick()
            self._stop.wait(self.interval)
