from .memory import InMemoryObjectStore, get_memory_store, reset_memory_stores
from .fs import FileObjectStore

__all__ = ["InMemoryObjectStore", "FileObjectStore", "get_memory_store", "reset_memory_stores"]
