# src/autoconsul/adapters/fs/local_state.py
from __future__ import annotations
import socket
import uuid
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Optional

import yaml

from autoconsul.services.settings import Settings


@dataclass
class NodeConfig:
    node_id: str
    advertise: Optional[str] = None


def _default_node_id() -> str:
    host = socket.gethostname().split(".", 1)[0] or "node"
    return f"{host}-{uuid.uuid4().hex[:8]}"


class LocalState:
    """Единая точка истины для локальных путей узла (data dir consul, логи, node.yaml)."""

    def __init__(self, settings: Settings | str | Path):
        base = settings.base_dir if isinstance(settings, Settings) else settings
        self.base = Path(base).expanduser().resolve()

    # --- каталоги ---
    def base_dir(self) -> Path:
        return self.base

    def data_dir(self) -> Path:
        return (self.base / "data").resolve()

    @property
    def data_path(self) -> str:
        # передаётся в consul как -data-dir как есть
        return str(self.data_dir())

    def logs_dir(self) -> Path:
        return (self.base / "logs").resolve()

    def node_file(self) -> Path:
        return self.base / "node.yaml"

    def ensure_tree(self) -> None:
        for p in (self.base_dir(), self.data_dir(), self.logs_dir()):
            p.mkdir(parents=True, exist_ok=True)

    # --- node.yaml ---
    def load_node(self) -> NodeConfig:
        path = self.node_file()
        if not path.exists():
            conf = NodeConfig(node_id=_default_node_id())
            self.save_node(conf)
            return conf
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        node_id = data.get("node_id")
        if not node_id:
            conf = NodeConfig(node_id=_default_node_id(), advertise=data.get("advertise"))
            self.save_node(conf)
            return conf
        return NodeConfig(node_id=str(node_id), advertise=data.get("advertise"))

    def save_node(self, conf: NodeConfig) -> None:
        path = self.node_file()
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(yaml.safe_dump(asdict(conf), allow_unicode=True, sort_keys=False), encoding="utf-8")
