from __future__ import annotations
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from autoconsul.domain import MalformedKey, Member
from autoconsul.ports import ObjectStore
from autoconsul.services.registry import keys

log = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ObjectStoreRegistry:
    """
    Реестр участников поверх префикса в объектном хранилище.

      - heartbeat(identifier, payload, expiry=None): новый объект `<prefix>/<now>-<identifier>`
        (старые heartbeat'ы того же узла не трогаем; с expiry дополнительно purge)
      - members(expiry): живые участники, по одному на identifier (последний ключ),
        устаревшие ключи удаляются по ходу
      - purge(expiry): удалить всё, что старше окна

    Ошибки хранилища (StorageUnavailable) не ретраятся: это забота вызывающего.
    """

    def __init__(self, prefix: str, store: ObjectStore, *, clock: Clock = utcnow) -> None:
        self.prefix = prefix.strip("/")
        self.store = store
        self._clock = clock

    def now(self) -> datetime:
        return self._clock()

    def __repr__(self) -> str:
        return f"ObjectStoreRegistry(prefix={self.prefix!r})"

    # ---------- keys ----------

    def _list_prefix(self) -> str:
        return f"{self.prefix}/" if self.prefix else ""

    def write_key(self, ts: datetime, identifier: str) -> str:
        return keys.join_key(self.prefix, keys.encode(ts, identifier))

    def min_key(self, expiry: int) -> str:
        # Окно включает ключи ровно `expiry` секунд назад (разрешение - секунда):
        # граница - это самая старая секунда, которая ещё считается живой.
        min_time = self.now() - timedelta(seconds=expiry)
        return keys.join_key(self.prefix, keys.encode(min_time, ""))

    # ---------- API ----------

    def heartbeat(self, identifier: str, payload: bytes | str, expiry: Optional[int] = None) -> Any:
        data = payload.encode("utf-8") if isinstance(payload, str) else bytes(payload)
        key = self.write_key(self.now(), identifier)
        result = self.store.put(key, data)
        log.debug("registry.heartbeat", extra={"extra": {"key": key}})
        if expiry is not None:
            self.purge(expiry)
        return result

    def purge(self, expiry: int) -> List[str]:
        min_key = self.min_key(expiry)
        stale = [k for k in self.store.list_keys(self._list_prefix()) if k < min_key]
        self._delete(stale)
        return stale

    def members(self, expiry: int) -> List[Member]:
        min_key = self.min_key(expiry)
        deletes: List[str] = []
        actives: Dict[str, Member] = {}
        offset = len(self._list_prefix())
        # ключи по возрастанию: более поздний heartbeat перезаписывает более ранний
        for key in sorted(self.store.list_keys(self._list_prefix())):
            if key < min_key:
                deletes.append(key)
                continue
            try:
                ts, identifier = keys.decode(key[offset:])
            except MalformedKey as e:
                log.warning("registry.malformed_key", extra={"extra": {"key": key, "error": str(e)}})
                continue
            actives[identifier] = Member(key=key, identifier=identifier, timestamp=ts, _loader=self.store.get)
        self._delete(deletes)
        return sorted(actives.values(), key=lambda m: (m.timestamp, m.identifier))

    def _delete(self, stale: List[str]) -> None:
        if not stale:
            return
        deleted = self.store.delete_many(stale)
        log.info("registry.purged", extra={"extra": {"prefix": self.prefix, "count": deleted}})
