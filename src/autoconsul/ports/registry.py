from __future__ import annotations
from typing import Any, List, Optional, Protocol

from autoconsul.domain import Member


class Registry(Protocol):
    def heartbeat(self, identifier: str, payload: bytes | str, expiry: Optional[int] = None) -> Any: ...
    def members(self, expiry: int) -> List[Member]: ...
    def purge(self, expiry: int) -> List[str]: ...


class ClusterRegistryPort(Protocol):
    @property
    def agents(self) -> Registry: ...

    @property
    def servers(self) -> Registry: ...
