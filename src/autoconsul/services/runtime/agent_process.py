# src/autoconsul/services/runtime/agent_process.py
from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future
from typing import Callable, Dict, List, Optional, Sequence

from autoconsul.config import const
from autoconsul.domain import AgentAlreadyStarted, AgentNotRunning, AgentNotStarted, AgentStatus
from autoconsul.ports import ConsulCommands, EventBus
from autoconsul.services.eventbus import emit

log = logging.getLogger(__name__)

Callback = Callable[["AgentProcess"], object]

_EVENTS = ("up", "down", "stopping")


class AgentProcess:
    """
    Долгоживущий consul-агент под присмотром:
      unset -> starting -> up -> stopping -> down
      (а также starting -> down и stopping -> down, если процесс умер сам)

      - launch(): spawn + поток-монитор, который блокируется на ожидании процесса
        и по выходу переводит статус в down и вызывает on_down
      - verify_up(): опрос `consul info` с экспоненциальным backoff; успех -> up + on_up
      - stop(): stopping + on_stopping, затем SIGINT; down выставит монитор
      - wait(): ждёт монитор и возвращает код выхода
    Колбэки вызываются в порядке регистрации, каждый получает сам экземпляр.
    """

    def __init__(
        self,
        args: Sequence[str],
        *,
        consul: ConsulCommands,
        bus: Optional[EventBus] = None,
        sleep: Callable[[float], None] = time.sleep,
        initial_delay: float = const.VERIFY_INITIAL_DELAY_SEC,
        backoff_base: float = const.VERIFY_BACKOFF_BASE_SEC,
        attempts: int = const.VERIFY_ATTEMPTS,
    ) -> None:
        self.args = list(args)
        self._consul = consul
        self._bus = bus
        self._sleep = sleep
        self._initial_delay = initial_delay
        self._backoff_base = backoff_base
        self._attempts = attempts

        self.status: AgentStatus = AgentStatus.UNSET
        self.pid: Optional[int] = None
        self.exit_code: Optional[int] = None
        self.thread: Optional[threading.Thread] = None
        self._done: Optional[Future[int]] = None
        self._lock = threading.RLock()
        self._callbacks: Dict[str, List[Callback]] = {name: [] for name in _EVENTS}

    def __repr__(self) -> str:
        return f"AgentProcess(status={self.status.value}, pid={self.pid}, exit_code={self.exit_code})"

    # ---------- callbacks ----------

    def on_up(self, callback: Callback) -> Callback:
        self._callbacks["up"].append(callback)
        return callback

    def on_down(self, callback: Callback) -> Callback:
        self._callbacks["down"].append(callback)
        return callback

    def on_stopping(self, callback: Callback) -> Callback:
        self._callbacks["stopping"].append(callback)
        return callback

    def _fire(self, name: str) -> None:
        if self._bus is not None:
            emit(self._bus, f"agent.{name}", {"pid": self.pid, "status": self.status.value, "exit_code": self.exit_code}, "runtime")
        for cb in list(self._callbacks[name]):
            cb(self)

    # ---------- lifecycle ----------

    def launch(self) -> None:
        with self._lock:
            if self.status is not AgentStatus.UNSET:
                raise AgentAlreadyStarted(self.status.value)
            self.pid = self._consul.spawn("agent", *self.args)
            self.status = AgentStatus.STARTING
            pid = self.pid
            done: Future[int] = Future()
            self._done = done
        if self._bus is not None:
            emit(self._bus, "agent.starting", {"pid": pid, "args": self.args}, "runtime")
        self.thread = threading.Thread(target=self._monitor, args=(pid, done), name=f"consul-agent-{pid}", daemon=True)
        self.thread.start()

    def _monitor(self, pid: int, done: Future[int]) -> None:
        try:
            exit_code = self._consul.wait(pid)
            with self._lock:
                self.exit_code = exit_code
                self.status = AgentStatus.DOWN
            self._fire("down")
        except BaseException as e:
            # ошибка монитора не теряется: лог + wait() перевыбросит её
            log.exception("agent.monitor_failed", extra={"extra": {"pid": pid}})
            done.set_exception(e)
            return
        done.set_result(exit_code)

    def verify_up(self) -> bool:
        """
        Первая проверка через initial_delay, далее backoff_base * 2**n между попытками.
        Если все попытки неуспешны - статус не меняется, колбэки не вызываются.
        """
        delay = self._backoff_base
        self._sleep(self._initial_delay)
        for attempt in range(1, self._attempts + 1):
            if self._consul.info():
                with self._lock:
                    if self.status in (AgentStatus.STOPPING, AgentStatus.DOWN):
                        log.warning("agent.up_after_exit", extra={"extra": {"pid": self.pid, "status": self.status.value}})
                        return False
                    self.status = AgentStatus.UP
                log.info("agent.up", extra={"extra": {"pid": self.pid, "attempt": attempt}})
                self._fire("up")
                return True
            if attempt < self._attempts:
                self._sleep(delay)
                delay *= 2
        log.warning("agent.not_ready", extra={"extra": {"pid": self.pid, "attempts": self._attempts}})
        return False

    def stop(self) -> None:
        with self._lock:
            if self.pid is None or self.status is AgentStatus.DOWN:
                raise AgentNotRunning()
            pid = self.pid
            self.status = AgentStatus.STOPPING
        self._fire("stopping")
        try:
            self._consul.interrupt(pid)
        except ProcessLookupError:
            # процесс уже завершился; down выставит монитор
            pass

    def run(self) -> AgentStatus:
        self.launch()
        self.verify_up()
        return self.status

    def wait(self, timeout: Optional[float] = None) -> int:
        done = self._done
        if done is None:
            raise AgentNotStarted()
        return done.result(timeout=timeout)
