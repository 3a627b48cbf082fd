"""Кодек ключей реестра: `<YYYYmmddHHMMSS>-<identifier>`.

Временная метка фиксированной ширины в UTC, поэтому строковый порядок ключей
совпадает с хронологическим, и отсечка по сроку делается сравнением строк.
"""

from __future__ import annotations
import re
from datetime import datetime, timezone
from typing import Tuple

from autoconsul.config import const
from autoconsul.domain import MalformedKey

_STAMP_RE = re.compile(r"^\d{14}$")


def write_stamp(ts: datetime) -> str:
    # naive datetime считаем UTC
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).strftime(const.KEY_TIMESTAMP_FORMAT)


def read_stamp(stamp: str) -> datetime:
    if not _STAMP_RE.match(stamp):
        raise MalformedKey(stamp, "timestamp must be 14 digits")
    try:
        t = datetime.strptime(stamp, const.KEY_TIMESTAMP_FORMAT)
    except ValueError as e:
        raise MalformedKey(stamp, str(e)) from e
    return t.replace(tzinfo=timezone.utc)


def encode(ts: datetime, identifier: str) -> str:
    return f"{write_stamp(ts)}{const.KEY_SEPARATOR}{identifier}"


def decode(key_base: str) -> Tuple[datetime, str]:
    # делим только по первому разделителю: в identifier "-" допустим
    stamp, sep, identifier = key_base.partition(const.KEY_SEPARATOR)
    if not sep:
        raise MalformedKey(key_base, "missing separator")
    try:
        return read_stamp(stamp), identifier
    except MalformedKey:
        raise MalformedKey(key_base, "bad timestamp segment") from None


def join_key(prefix: str, key_base: str) -> str:
    prefix = prefix.strip("/")
    return f"{prefix}/{key_base}" if prefix else key_base
