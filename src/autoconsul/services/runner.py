"""Synchronous bootstrap path: read the registry, launch consul, join a peer, wait.

This is the fire-and-forget entry point. Long-running supervision with
stop/callbacks lives in :mod:`autoconsul.services.supervisor`.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, List, Optional, Sequence

from autoconsul.config import const
from autoconsul.domain import Member
from autoconsul.ports import ClusterRegistryPort, ConsulCommands, LocalStatePort

log = logging.getLogger(__name__)

Sleep = Callable[[float], None]


def build_agent_args(
    identity: str,
    bind_ip: str,
    data_dir: str,
    *,
    server: bool = False,
    bootstrap: bool = False,
) -> List[str]:
    """Flags passed after ``consul agent``."""
    args = ["-bind", bind_ip, "-data-dir", data_dir, "-node", identity]
    if server:
        args.append("-server")
        if bootstrap:
            args.append("-bootstrap")
    return args


def pick_peer(members: Sequence[Member]) -> Optional[str]:
    """Peer address to join: the freshest heartbeat among live members."""
    if not members:
        return None
    return members[-1].address


def wait_until_ready(
    consul: ConsulCommands,
    *,
    sleep: Optional[Sleep] = None,
    step: float = const.RUNNER_PROBE_STEP_SEC,
    attempts: int = const.RUNNER_PROBE_ATTEMPTS,
) -> bool:
    """Linear backoff: sleep step, 2*step, 3*step ... before each `consul info`."""
    sleep = sleep or time.sleep
    for attempt in range(1, attempts + 1):
        sleep(step * attempt)
        if consul.info():
            log.info("runner.ready", extra={"extra": {"attempt": attempt}})
            return True
        log.debug("runner.not_ready", extra={"extra": {"attempt": attempt}})
    log.warning("runner.never_ready", extra={"extra": {"attempts": attempts}})
    return False


def _run(
    section: str,
    identity: str,
    bind_ip: str,
    expiry: int,
    local_state: LocalStatePort,
    registry: ClusterRegistryPort,
    *,
    server: bool,
    consul: ConsulCommands,
    sleep: Optional[Sleep],
) -> int:
    reg = registry.servers if section == const.SERVERS_SECTION else registry.agents
    members = reg.members(expiry)
    args = build_agent_args(
        identity,
        bind_ip,
        local_state.data_path,
        server=server,
        bootstrap=server and not members,
    )
    # payload пира читается из хранилища до spawn
    peer = pick_peer(members)
    log.info(
        "runner.launch",
        extra={"extra": {"section": section, "members": len(members), "args": args}},
    )
    pid = consul.spawn("agent", *args)

    # результат проверки не влияет на ход: join всё равно пробуем
    wait_until_ready(consul, sleep=sleep)

    if peer:
        joined = consul.join(peer)
        log.info("runner.join", extra={"extra": {"peer": peer, "ok": joined}})

    exit_code = consul.wait(pid)
    log.info("runner.exited", extra={"extra": {"pid": pid, "exit_code": exit_code}})
    return exit_code


def run_agent(
    identity: str,
    bind_ip: str,
    expiry: int,
    local_state: LocalStatePort,
    registry: ClusterRegistryPort,
    *,
    consul: ConsulCommands,
    sleep: Optional[Sleep] = None,
) -> int:
    return _run(
        const.AGENTS_SECTION, identity, bind_ip, expiry, local_state, registry,
        server=False, consul=consul, sleep=sleep,
    )


def run_server(
    identity: str,
    bind_ip: str,
    expiry: int,
    local_state: LocalStatePort,
    registry: ClusterRegistryPort,
    *,
    consul: ConsulCommands,
    sleep: Optional[Sleep] = None,
) -> int:
    return _run(
        const.SERVERS_SECTION, identity, bind_ip, expiry, local_state, registry,
        server=True, consul=consul, sleep=sleep,
    )
