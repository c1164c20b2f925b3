from __future__ import annotations

import os
import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import MutableMapping, Mapping, Optional

AUTH_SOCK = "SSH_AUTH_SOCK"
AGENT_PID = "SSH_AGENT_PID"

SHELLS = ("sh", "csh", "fish")


def _statements(line: str):
    """Split one line of shell text into quote-aware statements."""
    lexer = shlex.shlex(line, posix=True, punctuation_chars=";")
    lexer.whitespace_split = True
    stmt: list[str] = []
    for token in lexer:
        if set(token) == {";"}:
            if stmt:
                yield stmt
            stmt = []
        else:
            stmt.append(token)
    if stmt:
        yield stmt


@dataclass
class SessionContext:
    """Where the agent for this session lives.

    Carried explicitly between operations instead of relying on the process
    environment; ``apply`` and ``render`` hand it to child processes and to
    the calling shell.
    """

    auth_sock: Optional[str] = None
    agent_pid: Optional[int] = None

    @property
    def is_set(self) -> bool:
        return bool(self.auth_sock)

    @classmethod
    def from_environ(cls, environ: Mapping[str, str] | None = None) -> "SessionContext":
        env = os.environ if environ is None else environ
        pid = env.get(AGENT_PID) or ""
        return cls(auth_sock=env.get(AUTH_SOCK) or None, agent_pid=int(pid) if pid.isdigit() else None)

    @classmethod
    def parse(cls, text: str) -> "SessionContext":
        """Parse ``ssh-agent -s`` / ``ssh-agent -c`` output or a saved env file."""
        values: dict[str, str] = {}
        for line in (text or "").splitlines():
            try:
                statements = list(_statements(line))
            except ValueError:
                # unbalanced quotes
                continue
            for stmt in statements:
                if stmt[0] in ("setenv", "set") and len(stmt) >= 3:
                    key, value = stmt[-2], stmt[-1]
                elif "=" in stmt[0]:
                    key, value = stmt[0].split("=", 1)
                else:
                    continue
                if key in (AUTH_SOCK, AGENT_PID) and value:
                    values[key] = value
        pid = values.get(AGENT_PID, "")
        return cls(auth_sock=values.get(AUTH_SOCK), agent_pid=int(pid) if pid.isdigit() else None)

    def environ(self) -> dict[str, str]:
        env: dict[str, str] = {}
        if self.auth_sock:
            env[AUTH_SOCK] = self.auth_sock
        if self.agent_pid is not None:
            env[AGENT_PID] = str(self.agent_pid)
        return env

    def apply(self, environ: MutableMapping[str, str] | None = None) -> None:
        target = os.environ if environ is None else environ
        for key in (AUTH_SOCK, AGENT_PID):
            target.pop(key, None)
        target.update(self.environ())

    def render(self, shell: str = "sh") -> str:
        if shell not in SHELLS:
            raise ValueError(f"unsupported shell: {shell}")
        lines = []
        for key, value in self.environ().items():
            quoted = shlex.quote(value)
            if shell == "csh":
                lines.append(f"setenv {key} {quoted};")
            elif shell == "fish":
                lines.append(f"set -gx {key} {quoted};")
            else:
                lines.append(f"{key}={quoted}; export {key};")
        return "\n".join(lines) + ("\n" if lines else "")

    def save(self, path: Path | str) -> Path:
        p = Path(path).expanduser()
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(self.render("sh"), encoding="utf-8")
        p.chmod(0o600)
        return p

    @classmethod
    def load(cls, path: Path | str) -> "SessionContext":
        p = Path(path).expanduser()
        try:
            return cls.parse(p.read_text(encoding="utf-8"))
        except (FileNotFoundError, PermissionError, IsADirectoryError):
            return cls()
