from __future__ import annotations
import os, tempfile
from pathlib import Path
from typing import Iterable, List

from autoconsul.domain import StorageUnavailable

_TMP_SUFFIX = ".tmp"


class FileObjectStore:
    """
    Объектное хранилище поверх каталога (например, общий NFS-том).
    Ключ `a/b/c` -> файл `<root>/a/b/c`. Запись атомарная: temp-файл + os.replace.
    """

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root).expanduser().resolve()

    @property
    def root(self) -> Path:
        return self._root

    def _path(self, key: str) -> Path:
        p = (self._root / key).resolve()
        try:
            p.relative_to(self._root)
        except ValueError:
            raise PermissionError(f"object key escapes store root: {key!r}") from None
        return p

    def list_keys(self, prefix: str) -> List[str]:
        # обходим только каталог префикса, а не весь root
        start = self._root / prefix.rpartition("/")[0] if "/" in prefix else self._root
        if not start.is_dir():
            return []
        keys: List[str] = []
        try:
            for p in start.rglob("*"):
                if not p.is_file() or (p.name.startswith(".") and p.name.endswith(_TMP_SUFFIX)):
                    continue
                key = p.relative_to(self._root).as_posix()
                if key.startswith(prefix):
                    keys.append(key)
        except OSError as e:
            raise StorageUnavailable("list", prefix, str(e)) from e
        return sorted(keys)

    def get(self, key: str) -> bytes:
        try:
            return self._path(key).read_bytes()
        except OSError as e:
            raise StorageUnavailable("get", key, str(e)) from e

    def put(self, key: str, data: bytes) -> str:
        p = self._path(key)
        try:
            p.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(prefix="." + p.name + ".", suffix=_TMP_SUFFIX, dir=str(p.parent))
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(data)
                os.replace(tmp, p)
            finally:
                try:
                    os.unlink(tmp)
                except FileNotFoundError:
                    pass
        except OSError as e:
            raise StorageUnavailable("put", key, str(e)) from e
        return key

    def delete_many(self, keys: Iterable[str]) -> int:
        deleted = 0
        for key in keys:
            try:
                self._path(key).unlink()
                deleted += 1
            except FileNotFoundError:
                # уже удалён другим узлом
                continue
            except OSError as e:
                raise StorageUnavailable("delete", key, str(e)) from e
        return deleted
