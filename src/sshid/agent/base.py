from __future__ import annotations
from abc import ABC, abstractmethod
from enum import Enum

from ..errors import FingerprintError
from ..fingerprint import fingerprint_public_key
from ..keys import KeyFile
from ..session import SessionContext

DEFAULT_LIFETIME = 4 * 60 * 60


class AgentState(str, Enum):
    NO_AGENT = "no-agent"
    RUNNING_EMPTY = "running-empty"
    RUNNING_WITH_KEYS = "running-with-keys"

    @property
    def running(self) -> bool:
        return self is not AgentState.NO_AGENT


class AgentClient(ABC):
    """Operations sshid needs from an SSH agent."""

    name: str = "agent"

    @abstractmethod
    def probe(self, ctx: SessionContext) -> AgentState:
        ...

    @abstractmethod
    def spawn(self) -> SessionContext:
        """Start a new agent. Raises ``AgentUnreachable`` on failure."""

    @abstractmethod
    def list_loaded(self, ctx: SessionContext) -> list[str]:
        """Public key lines of the identities the agent holds."""

    @abstractmethod
    def load(self, ctx: SessionContext, key: KeyFile, lifetime: int = DEFAULT_LIFETIME) -> None:
        """Add *key* with a bounded lifetime. Raises ``KeyLoadFailed``."""

    def fingerprint(self, key: KeyFile) -> str:
        try:
            line = key.public_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise FingerprintError(f"cannot read {key.public_path}: {exc}") from exc
        try:
            return fingerprint_public_key(line)
        except ValueError as exc:
            raise FingerprintError(f"{key.public_path}: {exc}") from exc
