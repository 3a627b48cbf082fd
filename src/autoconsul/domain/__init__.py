from .types import AgentStatus, Event, Member
from .errors import (
    AutoConsulError,
    StorageUnavailable,
    MalformedKey,
    UnsupportedRegistry,
    ConsulUnavailable,
    AgentError,
    AgentNotRunning,
    AgentNotStarted,
    AgentAlreadyStarted,
)

__all__ = [
    "AgentStatus",
    "Event",
    "Member",
    "AutoConsulError",
    "StorageUnavailable",
    "MalformedKey",
    "UnsupportedRegistry",
    "ConsulUnavailable",
    "AgentError",
    "AgentNotRunning",
    "AgentNotStarted",
    "AgentAlreadyStarted",
]
