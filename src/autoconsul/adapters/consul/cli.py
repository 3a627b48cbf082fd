from __future__ import annotations
import logging
import os
import signal
import subprocess
from threading import RLock
from typing import Dict, Sequence

from autoconsul.config import const
from autoconsul.domain import ConsulUnavailable

log = logging.getLogger(__name__)


class ConsulCli:
    """
    Вызовы бинарника consul:
      - spawn("agent", ...) -> pid (не блокирует)
      - info()  -> `consul info` завершился с кодом 0
      - join(ip) -> `consul join <ip>` завершился с кодом 0
      - wait(pid) -> код выхода (блокирует до завершения процесса)
      - interrupt(pid) -> SIGINT
    """

    def __init__(self, binary: str = const.CONSUL_BIN, *, timeout_s: float | None = 30.0) -> None:
        self.binary = binary
        self.timeout_s = timeout_s
        self._children: Dict[int, subprocess.Popen] = {}
        self._lock = RLock()

    def command(self, *args: str) -> list[str]:
        return [self.binary, *args]

    def spawn(self, *args: str) -> int:
        cmd = self.command(*args)
        try:
            p = subprocess.Popen(cmd)
        except OSError as e:
            raise ConsulUnavailable(self.binary, str(e)) from e
        with self._lock:
            self._children[p.pid] = p
        log.info("consul.spawned", extra={"extra": {"pid": p.pid, "cmd": cmd}})
        return p.pid

    def _check(self, args: Sequence[str]) -> bool:
        try:
            r = subprocess.run(
                self.command(*args),
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                timeout=self.timeout_s,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            log.debug("consul.command_failed", extra={"extra": {"args": list(args), "error": repr(e)}})
            return False
        return r.returncode == 0

    def info(self) -> bool:
        return self._check(["info"])

    def join(self, address: str) -> bool:
        return self._check(["join", address])

    def wait(self, pid: int) -> int:
        with self._lock:
            p = self._children.pop(pid, None)
        if p is not None:
            return p.wait()
        # процесс запущен не нами: только waitpid
        _, status = os.waitpid(pid, 0)
        return os.waitstatus_to_exitcode(status)

    def interrupt(self, pid: int) -> None:
        os.kill(pid, signal.SIGINT)
