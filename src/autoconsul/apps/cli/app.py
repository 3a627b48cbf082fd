# src/autoconsul/apps/cli/app.py
from __future__ import annotations

import os
import traceback
from contextlib import contextmanager
from typing import Optional

import typer
from dotenv import find_dotenv, load_dotenv
from rich import print
from rich.markup import escape
from rich.table import Table

# загружаем .env один раз (AUTOCONSUL_REGISTRY и т.п.)
load_dotenv(find_dotenv(usecwd=True))

from autoconsul.apps.bootstrap import get_ctx, init_ctx
from autoconsul.domain import AutoConsulError
from autoconsul.services import runner
from autoconsul.services.heartbeat import HeartbeatService
from autoconsul.services.settings import Settings
from autoconsul.services.supervisor import Supervisor

app = typer.Typer(help="autoconsul: bootstrap and supervise a consul cluster through an object-store registry")


@contextmanager
def _cli_errors():
    try:
        yield
    except AutoConsulError as e:
        if os.getenv("AUTOCONSUL_CLI_DEBUG") == "1":
            traceback.print_exc()
        print(f"[red]error:[/red] {escape(str(e))}")
        raise typer.Exit(1)


# -------- корневой callback (composition root) --------


@app.callback()
def main(
    base_dir: Optional[str] = typer.Option(None, "--base-dir", help="Base directory (default ~/.autoconsul or AUTOCONSUL_BASE_DIR)"),
    registry: Optional[str] = typer.Option(None, "--registry", help="Registry URI: s3://bucket/prefix, file:///dir, memory://name/prefix"),
    node: Optional[str] = typer.Option(None, "--node", help="Node identity (default from node.yaml)"),
    bind: Optional[str] = typer.Option(None, "--bind", help="IP to bind and advertise"),
    expiry: Optional[int] = typer.Option(None, "--expiry", help="Heartbeat expiry window, seconds"),
):
    """
    Вызывается перед любыми подкомандами: строит контекст процесса.
    """
    settings = Settings.from_sources().with_overrides(
        base_dir=base_dir,
        registry_url=registry,
        node_name=node,
        bind_ip=bind,
        expiry=expiry,
    )
    init_ctx(settings)


# -------- команды --------


@app.command("run")
def run(server: bool = typer.Option(False, "--server", help="Run as consul server")):
    """Запустить consul (bootstrap или join) и ждать его завершения."""
    ctx = get_ctx()
    with _cli_errors():
        fn = runner.run_server if server else runner.run_agent
        code = fn(
            ctx.identity,
            ctx.bind_ip,
            ctx.settings.expiry,
            ctx.paths,
            ctx.registry,
            consul=ctx.consul,
        )
    raise typer.Exit(code)


@app.command("supervise")
def supervise(server: bool = typer.Option(False, "--server", help="Run as consul server")):
    """Запустить consul под присмотром: heartbeat в реестр, остановка по SIGINT/SIGTERM."""
    ctx = get_ctx()
    with _cli_errors():
        sup = Supervisor(
            identity=ctx.identity,
            bind_ip=ctx.bind_ip,
            expiry=ctx.settings.expiry,
            local_state=ctx.paths,
            registry=ctx.registry,
            consul=ctx.consul,
            bus=ctx.bus,
            heartbeat_interval=ctx.settings.heartbeat_interval,
        )
        code = sup.run(server=server)
    raise typer.Exit(code)


@app.command("heartbeat")
def heartbeat(server: bool = typer.Option(False, "--server", help="Also heartbeat into the servers registry")):
    """Один heartbeat, если локальный агент отвечает на `consul info`."""
    ctx = get_ctx()
    with _cli_errors():
        ok = HeartbeatService(ctx.registry, ctx.consul).beat(ctx.identity, ctx.bind_ip, ctx.settings.expiry, server=server)
    if not ok:
        print("[yellow]consul agent is not running; heartbeat skipped[/yellow]")
        raise typer.Exit(1)
    print(f"[green]heartbeat[/green] {ctx.identity} -> {ctx.bind_ip}")


@app.command("members")
def members(servers: bool = typer.Option(False, "--servers", help="List servers instead of agents")):
    """Живые участники реестра."""
    ctx = get_ctx()
    with _cli_errors():
        reg = ctx.registry.servers if servers else ctx.registry.agents
        rows = [(m.identifier, m.timestamp.isoformat(), m.address) for m in reg.members(ctx.settings.expiry)]
    table = Table(title="servers" if servers else "agents")
    table.add_column("node")
    table.add_column("heartbeat (UTC)")
    table.add_column("address")
    for row in rows:
        table.add_row(*row)
    print(table)


@app.command("purge")
def purge(servers: bool = typer.Option(False, "--servers", help="Purge servers instead of agents")):
    """Удалить устаревшие heartbeat'ы."""
    ctx = get_ctx()
    with _cli_errors():
        reg = ctx.registry.servers if servers else ctx.registry.agents
        removed = reg.purge(ctx.settings.expiry)
    print(f"purged: {len(removed)}")


@app.command("where")
def where():
    ctx = get_ctx()
    print("base_dir:", ctx.paths.base_dir())
    print("data_dir:", ctx.paths.data_path)
    print("registry:", ctx.settings.registry_url or "-")


if __name__ == "__main__":
    app()
