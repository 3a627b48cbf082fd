from __future__ import annotations
from typing import Any, Callable, Protocol

from autoconsul.domain import Event


class EventBus(Protocol):
    def publish(self, event: Event) -> None: ...
    def subscribe(self, type_prefix: str, handler: Callable[[Event], Any]) -> None: ...
