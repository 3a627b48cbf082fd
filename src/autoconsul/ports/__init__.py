from .contracts import EventBus
from .object_store import ObjectStore
from .registry import Registry, ClusterRegistryPort
from .consul import ConsulCommands
from .local_state import LocalStatePort

__all__ = [
    "EventBus",
    "ObjectStore",
    "Registry",
    "ClusterRegistryPort",
    "ConsulCommands",
    "LocalStatePort",
]
