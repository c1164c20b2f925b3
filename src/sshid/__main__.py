from __future__ import annotations

from pathlib import Path
from typing import Callable

import click
from pydantic import ValidationError
from rich.console import Console

from .agent.base import AgentClient, AgentState
from .agent.openssh import OpenSSHAgentClient
from .agent.registry import BACKENDS
from .config import Config, save_to_env
from .errors import AgentUnreachable, FingerprintError
from .logutil import init_logging
from .reconciler import IdentityReconciler
from .run_logger import NullRunLogger, RunLogger
from .session import SHELLS, SessionContext
from .settings import settings

console = Console()
err_console = Console(stderr=True)

EXIT_KEY_FAILURES = 2


def _make_client_factory(backend: str) -> Callable[[], AgentClient]:
    if backend == "openssh":

        def _factory() -> AgentClient:
            return OpenSSHAgentClient(
                ssh_agent=settings.ssh_agent,
                ssh_add=settings.ssh_add,
                ssh_keygen=settings.ssh_keygen,
                timeout=settings.command_timeout,
            )

        return _factory
    if backend in BACKENDS:
        return BACKENDS[backend]
    raise click.ClickException(f"Unknown backend: {backend}")


def _reconciler(ctx: click.Context, run_logger: NullRunLogger | None = None, lifetime: int | None = None) -> IdentityReconciler:
    cfg: Config = ctx.obj["config"]
    # the in-memory agent dies with the process; never point a real env file at it
    env_file = None if ctx.obj["backend"] == "memory" else cfg.agent_env_file
    return IdentityReconciler(
        ctx.obj["client_factory"](),
        SessionContext.from_environ(),
        key_dir=ctx.obj["key_dir"],
        key_prefix=cfg.key_prefix,
        lifetime=lifetime if lifetime is not None else cfg.lifetime_sec,
        env_file=env_file,
        run_logger=run_logger,
    )


def _loaded_fingerprints(reconciler: IdentityReconciler) -> set[str]:
    try:
        return reconciler.loaded_fingerprints()
    except AgentUnreachable as exc:
        raise click.ClickException(f"Agent unreachable: {exc}") from exc


@click.group()
@click.version_option()
@click.option(
    "--backend",
    type=click.Choice(list(BACKENDS.keys())),
    default=lambda: settings.backend,
    help="Agent backend: openssh|memory",
)
@click.option("--key-dir", type=click.Path(file_okay=False), default=None, help="Directory holding id_* keys")
@click.pass_context
def cli_main(ctx: click.Context, backend: str, key_dir: str | None) -> None:
    """sshid: keep ssh-agent loaded with your keys, without asking twice."""
    ctx.ensure_object(dict)
    try:
        cfg = Config.from_env()
    except ValidationError as exc:
        raise click.ClickException(f"Invalid configuration: {exc}") from exc
    init_logging(cfg)
    ctx.obj["config"] = cfg
    ctx.obj["backend"] = backend
    ctx.obj["client_factory"] = _make_client_factory(backend)
    ctx.obj["key_dir"] = key_dir or cfg.key_dir


@cli_main.command("reconcile")
@click.option("--lifetime", type=click.IntRange(min=1), default=None, help="Identity lifetime in seconds (default 4h)")
@click.option("--strict/--no-strict", default=None, help="Exit with status 2 if any key failed to load")
@click.option("--trace/--no-trace", default=True, help="Print one line per action")
@click.option("--fingerprints", is_flag=True, default=False, help="Show fingerprints in the trace")
@click.pass_context
def reconcile_cmd(
    ctx: click.Context,
    lifetime: int | None,
    strict: bool | None,
    trace: bool,
    fingerprints: bool,
) -> None:
    """Start an agent if needed and add every key it does not hold yet."""
    cfg: Config = ctx.obj["config"]
    logger = RunLogger(console, show_fingerprints=fingerprints) if trace else NullRunLogger()
    reconciler = _reconciler(ctx, logger, lifetime)
    try:
        result = reconciler.run()
    except AgentUnreachable as exc:
        raise click.ClickException(f"Agent unreachable: {exc}") from exc

    for message in result.errors.values():
        err_console.print(f"[yellow]warning:[/yellow] {message}")

    if reconciler.context != SessionContext.from_environ():
        headline = "New agent started." if result.spawned else "This shell is not connected to the agent."
        console.print(
            f"[bold]{headline}[/bold] Run [cyan]eval \"$(sshid env)\"[/cyan]"
            + (f" or [cyan]. {reconciler.env_file}[/cyan]" if reconciler.env_file else "")
            + " to use it in this shell."
        )

    effective_strict = cfg.strict if strict is None else strict
    if effective_strict and result.failed:
        raise click.exceptions.Exit(EXIT_KEY_FAILURES)


@cli_main.command("env")
@click.option("--shell", "shell_name", type=click.Choice(list(SHELLS)), default="sh", show_default=True)
@click.pass_context
def env_cmd(ctx: click.Context, shell_name: str) -> None:
    """Print export statements for the session's agent, starting one if needed.

    Use as: eval "$(sshid env)"
    """
    reconciler = _reconciler(ctx)
    try:
        reconciler.ensure_agent_running()
    except AgentUnreachable as exc:
        raise click.ClickException(f"Agent unreachable: {exc}") from exc
    click.echo(reconciler.context.render(shell_name), nl=False)


@cli_main.command("status")
@click.pass_context
def status_cmd(ctx: click.Context) -> None:
    """Show whether an agent is reachable and which identities it holds."""
    reconciler = _reconciler(ctx)
    state = reconciler.client.probe(reconciler.context)
    if not state.running:
        console.print("[yellow]No agent reachable.[/]")
        ctx.exit(1)
    console.print(f"[bold]Agent[/bold] {reconciler.context.auth_sock} ({state.value})")
    if state is AgentState.RUNNING_EMPTY:
        console.print("- (no identities)")
        return
    for fp in sorted(_loaded_fingerprints(reconciler)):
        console.print(f"- {fp}")


@cli_main.command("keys")
@click.pass_context
def keys_cmd(ctx: click.Context) -> None:
    """List candidate key files and whether the agent already holds them."""
    reconciler = _reconciler(ctx)
    state = reconciler.client.probe(reconciler.context)
    loaded = _loaded_fingerprints(reconciler) if state is AgentState.RUNNING_WITH_KEYS else set()

    keys = sorted(reconciler.list_candidate_keys(), key=lambda k: k.name)
    if not keys:
        console.print(f"[yellow]No keys found in {reconciler.key_dir}.[/]")
        return
    for key in keys:
        try:
            fp = reconciler.fingerprint(key)
        except FingerprintError:
            fp = "?"
        mark = "[green]loaded[/green]" if fp in loaded else "[dim]not loaded[/dim]"
        console.print(f"- {key.name} {fp} {mark}")


@cli_main.group("config")
def config_cmd() -> None:
    """Configuration helpers."""


@config_cmd.command("save")
@click.option("--path", "path", type=click.Path(dir_okay=False), default=None, help="Target env file (default .env)")
@click.pass_context
def config_save_cmd(ctx: click.Context, path: str | None) -> None:
    cfg: Config = ctx.obj["config"]
    written = save_to_env(cfg, path)
    console.print(f"[green]Saved →[/green] {Path(written)}")


if __name__ == "__main__":
    cli_main()
