from __future__ import annotations
from typing import Protocol


class ConsulCommands(Protocol):
    """Граница с внешним бинарником consul."""

    def spawn(self, *args: str) -> int: ...
    def info(self) -> bool: ...
    def join(self, address: str) -> bool: ...
    def wait(self, pid: int) -> int: ...
    def interrupt(self, pid: int) -> None: ...
