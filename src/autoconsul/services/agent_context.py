# src/autoconsul/services/agent_context.py
from __future__ import annotations
import socket
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Optional

from autoconsul.adapters.consul import ConsulCli
from autoconsul.adapters.fs.local_state import LocalState
from autoconsul.domain import AutoConsulError
from autoconsul.ports import EventBus
from autoconsul.services.registry.cluster import ClusterRegistry
from autoconsul.services.settings import Settings

_CTX: ContextVar[Optional["AgentContext"]] = ContextVar("autoconsul_agent_ctx", default=None)


def set_ctx(ctx: AgentContext) -> None:
    """Устанавливает текущий AgentContext (делает доступным через get_ctx)."""
    _CTX.set(ctx)


def get_ctx() -> AgentContext:
    """Возвращает текущий AgentContext или бросает ошибку, если не инициализирован."""
    ctx = _CTX.get()
    if ctx is None:
        raise RuntimeError("AgentContext is not initialized. Call init_ctx(...) during app bootstrap.")
    return ctx


def clear_ctx() -> None:
    """Очищает текущий контекст (для тестов/завершения)."""
    _CTX.set(None)


@contextmanager
def use_ctx(ctx: AgentContext):
    """Временная подмена контекста (удобно в тестах)."""
    token = _CTX.set(ctx)
    try:
        yield
    finally:
        _CTX.reset(token)


@dataclass(slots=True)
class AgentContext:
    settings: Settings
    paths: LocalState
    bus: EventBus
    consul: ConsulCli
    _registry: Optional[ClusterRegistry] = field(default=None, init=False, repr=False)

    @property
    def registry(self) -> ClusterRegistry:
        reg = self._registry
        if reg is None:
            if not self.settings.registry_url:
                raise AutoConsulError("registry is not configured (set AUTOCONSUL_REGISTRY or --registry)")
            reg = ClusterRegistry.from_uri(self.settings.registry_url)
            self._registry = reg
        return reg

    @property
    def identity(self) -> str:
        return self.settings.node_name or self.paths.load_node().node_id

    @property
    def bind_ip(self) -> str:
        if self.settings.bind_ip:
            return self.settings.bind_ip
        advertise = self.paths.load_node().advertise
        return advertise or socket.gethostbyname(socket.gethostname())
