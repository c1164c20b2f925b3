from __future__ import annotations

import logging
import os
import subprocess
from typing import Optional

from ..errors import AgentUnreachable, FingerprintError, KeyLoadFailed
from ..keys import KeyFile
from ..session import SessionContext
from .base import DEFAULT_LIFETIME, AgentClient, AgentState

logger = logging.getLogger("sshid")


class OpenSSHAgentClient(AgentClient):
    """Talks to ``ssh-agent`` through the OpenSSH command line tools.

    ``ssh-add -l`` exit codes: 0 identities loaded, 1 agent has none,
    2 agent unreachable.
    """

    name = "openssh"

    def __init__(
        self,
        ssh_agent: str = "ssh-agent",
        ssh_add: str = "ssh-add",
        ssh_keygen: str = "ssh-keygen",
        timeout: float = 30.0,
    ) -> None:
        self.ssh_agent = ssh_agent
        self.ssh_add = ssh_add
        self.ssh_keygen = ssh_keygen
        self.timeout = timeout

    @staticmethod
    def _env(ctx: Optional[SessionContext]) -> dict[str, str]:
        env = dict(os.environ)
        if ctx is not None:
            ctx.apply(env)
        return env

    def _capture(self, cmd: list[str], ctx: Optional[SessionContext] = None) -> subprocess.CompletedProcess:
        logger.debug("run: %s", " ".join(cmd))
        return subprocess.run(
            cmd,
            env=self._env(ctx),
            capture_output=True,
            text=True,
            timeout=self.timeout,
            stdin=subprocess.DEVNULL,
        )

    def probe(self, ctx: SessionContext) -> AgentState:
        if not ctx.is_set:
            return AgentState.NO_AGENT
        try:
            proc = self._capture([self.ssh_add, "-l"], ctx)
        except (OSError, subprocess.TimeoutExpired) as exc:
            logger.debug("probe failed: %s", exc)
            return AgentState.NO_AGENT
        if proc.returncode == 0:
            return AgentState.RUNNING_WITH_KEYS
        if proc.returncode == 1:
            return AgentState.RUNNING_EMPTY
        logger.debug("agent at %s unreachable (rc=%s): %s", ctx.auth_sock, proc.returncode, proc.stderr.strip())
        return AgentState.NO_AGENT

    def spawn(self) -> SessionContext:
        try:
            proc = self._capture([self.ssh_agent, "-s"])
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise AgentUnreachable(f"cannot start {self.ssh_agent}: {exc}") from exc
        if proc.returncode != 0:
            raise AgentUnreachable(f"{self.ssh_agent} exited with {proc.returncode}: {proc.stderr.strip()}")
        ctx = SessionContext.parse(proc.stdout)
        if not ctx.is_set:
            raise AgentUnreachable(f"{self.ssh_agent} did not report SSH_AUTH_SOCK")
        return ctx

    def list_loaded(self, ctx: SessionContext) -> list[str]:
        proc = self._capture([self.ssh_add, "-L"], ctx)
        if proc.returncode == 1:
            return []
        if proc.returncode != 0:
            raise AgentUnreachable(f"{self.ssh_add} -L failed ({proc.returncode}): {proc.stderr.strip()}")
        return [line for line in proc.stdout.splitlines() if line.strip()]

    def load(self, ctx: SessionContext, key: KeyFile, lifetime: int = DEFAULT_LIFETIME) -> None:
        # stdin/stdout/stderr stay attached so ssh-add can ask for the passphrase
        try:
            rc = subprocess.call([self.ssh_add, "-t", str(int(lifetime)), str(key.path)], env=self._env(ctx))
        except OSError as exc:
            raise KeyLoadFailed(str(key.path), str(exc)) from exc
        if rc != 0:
            raise KeyLoadFailed(str(key.path), f"{self.ssh_add} exited with {rc}")

    def fingerprint(self, key: KeyFile) -> str:
        if key.has_public:
            return super().fingerprint(key)
        try:
            proc = self._capture([self.ssh_keygen, "-l", "-E", "sha256", "-f", str(key.path)])
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise FingerprintError(f"{key.path}: {exc}") from exc
        fields = proc.stdout.split()
        if proc.returncode != 0 or len(fields) < 2 or not fields[1].startswith("SHA256:"):
            raise FingerprintError(f"{key.path}: {proc.stderr.strip() or 'no fingerprint'}")
        return fields[1]
