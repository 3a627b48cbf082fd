# src/autoconsul/apps/bootstrap.py
from __future__ import annotations
from threading import RLock
from typing import Optional

from autoconsul.adapters.consul import ConsulCli
from autoconsul.adapters.fs.local_state import LocalState
from autoconsul.services.agent_context import AgentContext, set_ctx
from autoconsul.services.eventbus import LocalEventBus
from autoconsul.services.logging import attach_event_logger, setup_logging
from autoconsul.services.settings import Settings


class _CtxHolder:
    _ctx: Optional[AgentContext] = None
    _lock = RLock()

    @classmethod
    def get(cls) -> AgentContext:
        with cls._lock:
            if cls._ctx is None:
                cls._ctx = cls._build(Settings.from_sources())
                set_ctx(cls._ctx)
            return cls._ctx

    @classmethod
    def init(cls, settings: Optional[Settings] = None) -> AgentContext:
        with cls._lock:
            cls._ctx = cls._build(settings or Settings.from_sources())
            set_ctx(cls._ctx)
            return cls._ctx

    @staticmethod
    def _build(settings: Settings) -> AgentContext:
        paths = LocalState(settings)
        paths.ensure_tree()

        bus = LocalEventBus()
        root_logger = setup_logging(paths, settings.log_level)
        attach_event_logger(bus, root_logger.getChild("events"))

        return AgentContext(
            settings=settings,
            paths=paths,
            bus=bus,
            consul=ConsulCli(settings.consul_bin),
        )


def get_ctx() -> AgentContext:
    return _CtxHolder.get()


def init_ctx(settings: Optional[Settings] = None) -> AgentContext:
    """Явная инициализация приложения и публикация контекста."""
    return _CtxHolder.init(settings)
