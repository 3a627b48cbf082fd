# src/autoconsul/services/settings.py
from __future__ import annotations
from dataclasses import dataclass, replace
import os
from pathlib import Path
from typing import Optional, Dict
from autoconsul.config import const


def _parse_env_file(path: str) -> Dict[str, str]:
    data: Dict[str, str] = {}
    p = Path(path)
    if not p.exists():
        return data
    for line in p.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" in line:
            k, v = line.split("=", 1)
            data[k.strip()] = v.strip().strip('"').strip("'")
    return data


_OVERRIDABLE = frozenset(
    {"base_dir", "profile", "registry_url", "node_name", "bind_ip", "expiry", "heartbeat_interval", "consul_bin", "log_level"}
)


@dataclass(frozen=True, slots=True)
class Settings:
    base_dir: Path
    profile: str = "default"
    registry_url: Optional[str] = const.DEFAULT_REGISTRY_URL
    node_name: Optional[str] = None
    bind_ip: Optional[str] = None
    expiry: int = const.DEFAULT_EXPIRY_SEC
    heartbeat_interval: float = const.DEFAULT_HEARTBEAT_INTERVAL_SEC
    consul_bin: str = const.CONSUL_BIN
    log_level: str = "INFO"

    @staticmethod
    def from_sources(env_file: Optional[str] = ".env") -> "Settings":
        env_file_vars = _parse_env_file(env_file) if env_file else {}

        def pick_env(key: str, default: Optional[str] = None) -> str:
            return os.environ.get(key) or env_file_vars.get(key) or (default or "")

        def _get_base_dir() -> Path:
            override_base = pick_env("AUTOCONSUL_BASE_DIR")
            if override_base:
                return Path(override_base).expanduser().resolve()
            return (Path.home() / ".autoconsul").resolve()

        expiry = pick_env("AUTOCONSUL_EXPIRY", str(const.DEFAULT_EXPIRY_SEC))
        interval = pick_env("AUTOCONSUL_HEARTBEAT_INTERVAL", str(const.DEFAULT_HEARTBEAT_INTERVAL_SEC))
        try:
            expiry_sec = int(expiry)
            interval_sec = float(interval)
        except ValueError as e:
            raise ValueError(f"invalid numeric setting: {e}") from e

        return Settings(
            base_dir=_get_base_dir(),
            profile=pick_env("AUTOCONSUL_PROFILE", "default"),
            registry_url=pick_env("AUTOCONSUL_REGISTRY") or const.DEFAULT_REGISTRY_URL,
            node_name=pick_env("AUTOCONSUL_NODE") or None,
            bind_ip=pick_env("AUTOCONSUL_BIND") or None,
            expiry=expiry_sec,
            heartbeat_interval=interval_sec,
            consul_bin=pick_env("AUTOCONSUL_CONSUL_BIN", const.CONSUL_BIN),
            log_level=pick_env("AUTOCONSUL_LOG_LEVEL", "INFO"),
        )

    def with_overrides(self, **kw) -> "Settings":
        # перегружать можно ТОЛЬКО поля из белого списка; None = "не задано"
        safe = {k: v for k, v in kw.items() if k in _OVERRIDABLE and v is not None}
        if "base_dir" in safe:
            safe["base_dir"] = Path(safe["base_dir"]).expanduser().resolve()
        return replace(self, **safe)
