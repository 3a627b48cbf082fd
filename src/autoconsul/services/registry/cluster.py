from __future__ import annotations
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

from autoconsul.config import const
from autoconsul.domain import UnsupportedRegistry
from autoconsul.ports import ObjectStore
from autoconsul.services.registry import keys
from autoconsul.services.registry.provider import Clock, ObjectStoreRegistry, utcnow


def open_store(uri: str) -> tuple[ObjectStore, str]:
    """
    URI -> (хранилище, префикс ключей).
      s3://bucket/prefix        - бакет S3 (boto3)
      file:///abs/dir           - каталог на диске (префикс пустой)
      memory://name/prefix      - общий in-process store по имени
    """
    parsed = urlparse(uri)
    scheme = parsed.scheme.lower()
    prefix = parsed.path.strip("/")
    if scheme == "s3":
        if not parsed.netloc:
            raise UnsupportedRegistry(uri)
        # boto3 нужен только для s3://
        from autoconsul.adapters.store.s3 import S3ObjectStore

        return S3ObjectStore(parsed.netloc), prefix
    if scheme == "file":
        from autoconsul.adapters.store.fs import FileObjectStore

        return FileObjectStore((parsed.netloc or "") + parsed.path), ""
    if scheme == "memory":
        from autoconsul.adapters.store.memory import get_memory_store

        return get_memory_store(parsed.netloc or "default"), prefix
    raise UnsupportedRegistry(uri)


@dataclass
class ClusterRegistry:
    """Два именованных реестра (`agents`, `servers`) в одном хранилище под разными префиксами."""

    store: ObjectStore
    prefix: str = ""
    clock: Clock = utcnow
    uri: Optional[str] = None

    def __post_init__(self) -> None:
        self._agents = ObjectStoreRegistry(keys.join_key(self.prefix, const.AGENTS_SECTION), self.store, clock=self.clock)
        self._servers = ObjectStoreRegistry(keys.join_key(self.prefix, const.SERVERS_SECTION), self.store, clock=self.clock)

    @classmethod
    def from_uri(cls, uri: str, *, clock: Clock = utcnow) -> "ClusterRegistry":
        store, prefix = open_store(uri)
        return cls(store=store, prefix=prefix, clock=clock, uri=uri)

    @property
    def agents(self) -> ObjectStoreRegistry:
        return self._agents

    @property
    def servers(self) -> ObjectStoreRegistry:
        return self._servers

    def section(self, name: str) -> ObjectStoreRegistry:
        if name == const.AGENTS_SECTION:
            return self._agents
        if name == const.SERVERS_SECTION:
            return self._servers
        raise KeyError(name)
