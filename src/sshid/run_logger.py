from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console

if TYPE_CHECKING:  # pragma: no cover - import only for type checking
    from .agent.base import AgentState
    from .keys import KeyFile
    from .reconciler import ReconcileResult
    from .session import SessionContext


class NullRunLogger:
    """No-op logger used when tracing is disabled."""

    def on_start(self, key_dir: str) -> None:  # pragma: no cover - no behaviour
        return

    def on_agent(self, state: "AgentState", ctx: "SessionContext", spawned: bool) -> None:  # pragma: no cover
        return

    def on_skip(self, key: "KeyFile", fingerprint: str | None) -> None:  # pragma: no cover
        return

    def on_load(self, key: "KeyFile", fingerprint: str | None) -> None:  # pragma: no cover
        return

    def on_fail(self, key: "KeyFile", error: BaseException) -> None:  # pragma: no cover
        return

    def on_final(self, result: "ReconcileResult") -> None:  # pragma: no cover
        return


class RunLogger(NullRunLogger):
    """Rich-powered logger printing one line per action taken."""

    def __init__(self, console: Console, *, show_fingerprints: bool = False) -> None:
        self.console = console
        self.show_fingerprints = show_fingerprints

    def _fp(self, fingerprint: str | None) -> str:
        if self.show_fingerprints and fingerprint:
            return f" [dim]{fingerprint}[/dim]"
        return ""

    def on_start(self, key_dir: str) -> None:
        self.console.log(f"scanning {key_dir}")

    def on_agent(self, state: "AgentState", ctx: "SessionContext", spawned: bool) -> None:
        if spawned:
            self.console.log(f"[bold cyan]starting agent[/] pid={ctx.agent_pid} sock={ctx.auth_sock}")
        else:
            self.console.log(f"agent running ({state.value}) sock={ctx.auth_sock}")

    def on_skip(self, key: "KeyFile", fingerprint: str | None) -> None:
        self.console.log(f"identity exists: {key.path}{self._fp(fingerprint)}")

    def on_load(self, key: "KeyFile", fingerprint: str | None) -> None:
        self.console.log(f"[green]adding identity[/]: {key.path}{self._fp(fingerprint)}")

    def on_fail(self, key: "KeyFile", error: BaseException) -> None:
        self.console.log(f"[bold red]failed[/]: {key.path} ({error})")

    def on_final(self, result: "ReconcileResult") -> None:
        self.console.log(
            f"loaded={len(result.loaded)} skipped={len(result.skipped)} failed={len(result.failed)}"
        )


__all__ = [
    "RunLogger",
    "NullRunLogger",
]
