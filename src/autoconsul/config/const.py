# src/autoconsul/config/const.py
from __future__ import annotations

# ЖЁСТКИЕ значения по умолчанию (переопределяются через ENV/.env, см. services/settings.py)
CONSUL_BIN: str = "consul"
DEFAULT_EXPIRY_SEC: int = 120
DEFAULT_HEARTBEAT_INTERVAL_SEC: float = 30.0
DEFAULT_REGISTRY_URL: str | None = None

# имена разделов реестра
AGENTS_SECTION: str = "agents"
SERVERS_SECTION: str = "servers"

# ключи реестра: <prefix>/<YYYYmmddHHMMSS>-<identifier>
KEY_TIMESTAMP_FORMAT: str = "%Y%m%d%H%M%S"
KEY_SEPARATOR: str = "-"

# AgentProcess.verify_up: первая проверка через INITIAL, дальше BASE * 2**n
VERIFY_INITIAL_DELAY_SEC: float = 0.1
VERIFY_BACKOFF_BASE_SEC: float = 2.0
VERIFY_ATTEMPTS: int = 5

# Runner: линейный backoff STEP, 2*STEP, 3*STEP ...
RUNNER_PROBE_STEP_SEC: float = 2.0
RUNNER_PROBE_ATTEMPTS: int = 5

# S3 DeleteObjects принимает не больше 1000 ключей за запрос
S3_DELETE_BATCH: int = 1000
