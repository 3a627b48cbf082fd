from __future__ import annotations
from typing import Any, Iterable, List, Protocol


class ObjectStore(Protocol):
    """Плоское key/value хранилище объектов (S3-подобное)."""

    def list_keys(self, prefix: str) -> List[str]: ...
    def get(self, key: str) -> bytes: ...
    def put(self, key: str, data: bytes) -> Any: ...
    def delete_many(self, keys: Iterable[str]) -> int: ...
