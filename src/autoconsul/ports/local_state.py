from __future__ import annotations
from pathlib import Path
from typing import Protocol


class LocalStatePort(Protocol):
    @property
    def data_path(self) -> str: ...

    def base_dir(self) -> Path: ...
    def logs_dir(self) -> Path: ...
