from __future__ import annotations
from threading import RLock
from typing import Dict, Iterable, List

from autoconsul.domain import StorageUnavailable


class InMemoryObjectStore:
    """Хранилище в памяти процесса: тесты и локальные демо (memory://name/prefix)."""

    def __init__(self) -> None:
        self._objects: Dict[str, bytes] = {}
        self._lock = RLock()

    def list_keys(self, prefix: str) -> List[str]:
        with self._lock:
            return sorted(k for k in self._objects if k.startswith(prefix))

    def get(self, key: str) -> bytes:
        with self._lock:
            try:
                return self._objects[key]
            except KeyError:
                raise StorageUnavailable("get", key, "no such key") from None

    def put(self, key: str, data: bytes) -> str:
        with self._lock:
            self._objects[key] = bytes(data)
        return key

    def delete_many(self, keys: Iterable[str]) -> int:
        deleted = 0
        with self._lock:
            for key in keys:
                if self._objects.pop(key, None) is not None:
                    deleted += 1
        return deleted


# именованные экземпляры для memory:// (singleton на имя)
_STORES: Dict[str, InMemoryObjectStore] = {}
_STORES_LOCK = RLock()


def get_memory_store(name: str) -> InMemoryObjectStore:
    with _STORES_LOCK:
        store = _STORES.get(name)
        if store is None:
            store = _STORES[name] = InMemoryObjectStore()
        return store


def reset_memory_stores() -> None:
    with _STORES_LOCK:
        _STORES.clear()
