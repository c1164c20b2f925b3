from __future__ import annotations


class SshIdError(RuntimeError):
    """Base error for sshid."""


class AgentUnreachable(SshIdError):
    """No agent could be reached or started. Aborts the whole run."""


class KeyLoadFailed(SshIdError):
    """A single identity could not be added to the agent."""

    def __init__(self, path: str, reason: str = "") -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"failed to add {path}" + (f": {reason}" if reason else ""))


class FingerprintError(ValueError):
    """Fingerprint of a key could not be computed."""
