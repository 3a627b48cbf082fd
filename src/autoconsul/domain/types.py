# src/autoconsul/domain/types.py
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Mapping, Optional


class AgentStatus(str, Enum):
    UNSET = "unset"
    STARTING = "starting"
    UP = "up"
    STOPPING = "stopping"
    DOWN = "down"


@dataclass(frozen=True, slots=True)
class Event:
    type: str
    payload: Mapping[str, Any]
    source: str
    ts: float


@dataclass(eq=False)
class Member:
    """
    Один heartbeat участника кластера.
    payload читается из хранилища лениво (при первом обращении) и кэшируется.
    """

    key: str
    identifier: str
    timestamp: datetime
    _loader: Optional[Callable[[str], bytes]] = field(default=None, repr=False)
    _payload: Optional[bytes] = field(default=None, repr=False)
    _loaded: bool = field(default=False, repr=False)

    @property
    def payload(self) -> bytes:
        if not self._loaded:
            self._payload = self._loader(self.key) if self._loader is not None else b""
            self._loaded = True
        return self._payload or b""

    @property
    def address(self) -> str:
        """payload как строка (адрес для `consul join`)."""
        return self.payload.decode("utf-8").strip()
