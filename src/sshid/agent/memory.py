from __future__ import annotations

import itertools
from collections import Counter
from typing import Iterable

from ..errors import AgentUnreachable, KeyLoadFailed
from ..fingerprint import fingerprint_public_key
from ..keys import KeyFile
from ..session import SessionContext
from .base import DEFAULT_LIFETIME, AgentClient, AgentState

_PIDS = itertools.count(40000)


class MemoryAgentClient(AgentClient):
    """In-process agent used by tests and ``--backend memory`` dry runs.

    Every call is counted in ``calls`` so tests can assert which agent
    operations a run performed.
    """

    name = "memory"

    def __init__(self, *, fail_paths: Iterable[str] = (), spawn_fails: bool = False) -> None:
        self.identities: dict[str, str] = {}
        self.lifetimes: dict[str, int] = {}
        self.context: SessionContext | None = None
        self.fail_paths = {str(p) for p in fail_paths}
        self.spawn_fails = spawn_fails
        self.calls: Counter[str] = Counter()
        self.load_order: list[str] = []

    def _reachable(self, ctx: SessionContext) -> bool:
        return self.context is not None and ctx.is_set and ctx.auth_sock == self.context.auth_sock

    def probe(self, ctx: SessionContext) -> AgentState:
        self.calls["probe"] += 1
        if not self._reachable(ctx):
            return AgentState.NO_AGENT
        return AgentState.RUNNING_WITH_KEYS if self.identities else AgentState.RUNNING_EMPTY

    def spawn(self) -> SessionContext:
        self.calls["spawn"] += 1
        if self.spawn_fails:
            raise AgentUnreachable("memory agent refused to start")
        pid = next(_PIDS)
        self.context = SessionContext(auth_sock=f"memory://agent.{pid}", agent_pid=pid)
        self.identities.clear()
        return SessionContext(self.context.auth_sock, self.context.agent_pid)

    def list_loaded(self, ctx: SessionContext) -> list[str]:
        self.calls["list_loaded"] += 1
        if not self._reachable(ctx):
            raise AgentUnreachable("memory agent is not running")
        return list(self.identities.values())

    def load(self, ctx: SessionContext, key: KeyFile, lifetime: int = DEFAULT_LIFETIME) -> None:
        self.calls["load"] += 1
        self.load_order.append(key.name)
        if not self._reachable(ctx):
            raise KeyLoadFailed(str(key.path), "agent is not running")
        if str(key.path) in self.fail_paths:
            raise KeyLoadFailed(str(key.path), "simulated failure")
        try:
            line = key.public_path.read_text(encoding="utf-8").strip()
            fp = fingerprint_public_key(line)
        except (OSError, ValueError) as exc:
            raise KeyLoadFailed(str(key.path), str(exc)) from exc
        self.identities[fp] = line
        self.lifetimes[fp] = int(lifetime)

    def fingerprint(self, key: KeyFile) -> str:
        self.calls["fingerprint"] += 1
        return super().fingerprint(key)

    def add_public_key(self, line: str) -> str:
        """Preload an identity, as if another session had added it."""
        fp = fingerprint_public_key(line)
        self.identities[fp] = line.strip()
        return fp
