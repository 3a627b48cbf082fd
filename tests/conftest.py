# tests/conftest.py
from __future__ import annotations
import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence

import pytest

from autoconsul.adapters.store.memory import InMemoryObjectStore, reset_memory_stores
from autoconsul.services.agent_context import clear_ctx
from autoconsul.services.registry.cluster import ClusterRegistry

T0 = datetime(2024, 3, 5, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Подменяемое "сейчас" для реестра."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)

    def set(self, when: datetime) -> None:
        self.now = when


class FakeConsul:
    """
    Скриптуемая граница consul: записывает вызовы, info() отдаёт заранее
    заданные ответы, wait() блокируется до exit().
    """

    def __init__(
        self,
        info_results: Sequence[bool] = (),
        *,
        info_default: bool = False,
        join_result: bool = True,
        pid: int = 4242,
    ) -> None:
        self.calls: List[tuple] = []
        self._info = list(info_results)
        self.info_default = info_default
        self.join_result = join_result
        self.pid = pid
        self.exit_code: Optional[int] = None
        self.exited = threading.Event()
        self.wait_error: Optional[BaseException] = None
        self.interrupt_error: Optional[BaseException] = None
        self._lock = threading.Lock()

    def _record(self, *call) -> None:
        with self._lock:
            self.calls.append(call)

    def names(self) -> List[str]:
        return [c[0] for c in self.calls]

    def spawn(self, *args: str) -> int:
        self._record("spawn", args)
        return self.pid

    def info(self) -> bool:
        self._record("info")
        with self._lock:
            return self._info.pop(0) if self._info else self.info_default

    def join(self, address: str) -> bool:
        self._record("join", address)
        return self.join_result

    def wait(self, pid: int) -> int:
        self._record("wait", pid)
        if not self.exited.wait(10):
            raise TimeoutError("fake consul never exited")
        if self.wait_error is not None:
            raise self.wait_error
        return self.exit_code if self.exit_code is not None else 0

    def interrupt(self, pid: int) -> None:
        self._record("interrupt", pid)
        if self.interrupt_error is not None:
            raise self.interrupt_error

    def exit(self, code: int = 0) -> None:
        self.exit_code = code
        self.exited.set()

    @property
    def interrupts(self) -> List[tuple]:
        return [c for c in self.calls if c[0] == "interrupt"]

    @property
    def joins(self) -> List[str]:
        return [c[1] for c in self.calls if c[0] == "join"]


class SleepRecorder:
    def __init__(self) -> None:
        self.delays: List[float] = []

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path, monkeypatch):
    base_dir = tmp_path / "base"
    monkeypatch.setenv("AUTOCONSUL_BASE_DIR", str(base_dir))
    for key in (
        "AUTOCONSUL_REGISTRY",
        "AUTOCONSUL_NODE",
        "AUTOCONSUL_BIND",
        "AUTOCONSUL_EXPIRY",
        "AUTOCONSUL_HEARTBEAT_INTERVAL",
        "AUTOCONSUL_CONSUL_BIN",
        "AUTOCONSUL_PROFILE",
        "AUTOCONSUL_LOG_LEVEL",
    ):
        monkeypatch.delenv(key, raising=False)
    reset_memory_stores()
    try:
        yield base_dir
    finally:
        clear_ctx()
        reset_memory_stores()
        # setup_logging вешает хендлеры на "autoconsul" - снимаем между тестами
        logger = logging.getLogger("autoconsul")
        for h in list(logger.handlers):
            logger.removeHandler(h)
            h.close()
        logger.propagate = True


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryObjectStore:
    return InMemoryObjectStore()


@pytest.fixture
def cluster(store, clock) -> ClusterRegistry:
    return ClusterRegistry(store=store, prefix="consul", clock=clock)


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def make_consul():
    """Фабрика FakeConsul: make_consul([False, True], info_default=...)."""
    return FakeConsul
