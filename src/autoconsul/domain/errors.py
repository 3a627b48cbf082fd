"""Error hierarchy shared by the registry, the runtime and the CLI."""

from __future__ import annotations

from typing import Optional


class AutoConsulError(RuntimeError):
    """Base class for all autoconsul runtime errors."""


class StorageUnavailable(AutoConsulError):
    """Raised when the backing object store fails an I/O operation."""

    def __init__(self, operation: str, key: Optional[str] = None, detail: Optional[str] = None) -> None:
        self.operation = operation
        self.key = key
        self.detail = detail
        message = f"object store unavailable during {operation}"
        if key:
            message = f"{message} ({key})"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class MalformedKey(AutoConsulError, ValueError):
    """Raised when a registry key does not match ``<timestamp>-<identifier>``."""

    def __init__(self, key: str, detail: Optional[str] = None) -> None:
        self.key = key
        super().__init__(f"malformed registry key {key!r}" if detail is None else f"malformed registry key {key!r}: {detail}")


class UnsupportedRegistry(AutoConsulError):
    """Raised when a registry URI uses a scheme without a store backend."""

    def __init__(self, uri: str) -> None:
        self.uri = uri
        super().__init__(f"unsupported registry uri: {uri!r}")


class ConsulUnavailable(AutoConsulError):
    """Raised when the consul binary cannot be started."""

    def __init__(self, binary: str, detail: Optional[str] = None) -> None:
        self.binary = binary
        super().__init__(f"cannot run consul binary {binary!r}" if detail is None else f"cannot run consul binary {binary!r}: {detail}")


class AgentError(AutoConsulError):
    """Raised when the agent lifecycle API is used in the wrong state."""


class AgentNotRunning(AgentError):
    def __init__(self, message: str = "consul agent is not running") -> None:
        super().__init__(message)


class AgentNotStarted(AgentError):
    def __init__(self, message: str = "consul agent has not started") -> None:
        super().__init__(message)


class AgentAlreadyStarted(AgentError):
    def __init__(self, status: str) -> None:
        self.status = status
        super().__init__(f"consul agent already launched (status: {status})")


__all__ = [
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
