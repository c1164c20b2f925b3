from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, Optional

from .agent.base import DEFAULT_LIFETIME, AgentClient, AgentState
from .errors import FingerprintError, KeyLoadFailed
from .fingerprint import fingerprint_public_key
from .keys import DEFAULT_PREFIX, KeyFile, default_key_dir, list_candidate_keys
from .run_logger import NullRunLogger
from .session import SessionContext

logger = logging.getLogger("sshid")


@dataclass
class ReconcileResult:
    state: AgentState = AgentState.NO_AGENT
    spawned: bool = False
    loaded: list[KeyFile] = field(default_factory=list)
    skipped: list[KeyFile] = field(default_factory=list)
    failed: list[KeyFile] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


class IdentityReconciler:
    """Bring the agent's identities in line with the key files on disk.

    Only adds keys; identities already held by the agent are never removed or
    re-added, so their passphrases are not asked for again.
    """

    def __init__(
        self,
        client: AgentClient,
        context: Optional[SessionContext] = None,
        *,
        key_dir: Path | str | None = None,
        key_prefix: str = DEFAULT_PREFIX,
        lifetime: int = DEFAULT_LIFETIME,
        env_file: Path | str | None = None,
        run_logger: NullRunLogger | None = None,
    ) -> None:
        self.client = client
        self.context = context if context is not None else SessionContext.from_environ()
        self.key_dir = Path(key_dir).expanduser() if key_dir else default_key_dir()
        self.key_prefix = key_prefix
        self.lifetime = lifetime
        self.env_file = Path(env_file).expanduser() if env_file else None
        self.run_logger = run_logger or NullRunLogger()
        self.spawned = False

    def ensure_agent_running(self) -> AgentState:
        """Probe the session's agent, fall back to the env file, spawn as a last resort.

        Raises ``AgentUnreachable`` if a new agent cannot be started.
        """
        state = self.client.probe(self.context)
        if state.running:
            self.run_logger.on_agent(state, self.context, False)
            return state

        if self.env_file is not None:
            saved = SessionContext.load(self.env_file)
            if saved.is_set and saved != self.context:
                state = self.client.probe(saved)
                if state.running:
                    logger.info("reusing agent from %s (sock=%s)", self.env_file, saved.auth_sock)
                    self.context = saved
                    self.run_logger.on_agent(state, self.context, False)
                    return state

        logger.info("no reachable agent (sock=%s), starting one", self.context.auth_sock)
        self.context = self.client.spawn()
        self.spawned = True
        if self.env_file is not None:
            try:
                self.context.save(self.env_file)
            except OSError as exc:
                logger.warning("could not write agent env file %s: %s", self.env_file, exc)
        self.run_logger.on_agent(AgentState.RUNNING_EMPTY, self.context, True)
        return AgentState.RUNNING_EMPTY

    def list_candidate_keys(self) -> Iterator[KeyFile]:
        return list_candidate_keys(self.key_dir, prefix=self.key_prefix)

    def fingerprint(self, key: KeyFile) -> str:
        return self.client.fingerprint(key)

    def loaded_fingerprints(self) -> set[str]:
        fingerprints: set[str] = set()
        for line in self.client.list_loaded(self.context):
            try:
                fingerprints.add(fingerprint_public_key(line))
            except ValueError as exc:
                logger.warning("ignoring unparsable agent key %r: %s", line[:40], exc)
        return fingerprints

    def _safe_fingerprint(self, key: KeyFile) -> str | None:
        try:
            return self.fingerprint(key)
        except FingerprintError as exc:
            logger.info("no fingerprint for %s, treating as not loaded: %s", key.path, exc)
            return None

    def reconcile(
        self,
        candidates: Iterable[KeyFile],
        loaded: set[str],
        state: AgentState,
    ) -> ReconcileResult:
        result = ReconcileResult(state=state, spawned=self.spawned)
        known = set(loaded)
        empty_agent = state is AgentState.RUNNING_EMPTY

        for key in candidates:
            fp = self._safe_fingerprint(key)
            if not empty_agent and fp is not None and fp in known:
                logger.info("identity exists: %s", key.path)
                result.skipped.append(key)
                self.run_logger.on_skip(key, fp)
                continue

            try:
                self.client.load(self.context, key, self.lifetime)
            except KeyLoadFailed as exc:
                logger.warning("%s", exc)
                result.failed.append(key)
                result.errors[str(key.path)] = str(exc)
                self.run_logger.on_fail(key, exc)
                continue

            logger.info("adding identity: %s", key.path)
            result.loaded.append(key)
            if fp is not None:
                known.add(fp)
            self.run_logger.on_load(key, fp)

        return result

    def run(self) -> ReconcileResult:
        self.run_logger.on_start(str(self.key_dir))
        state = self.ensure_agent_running()
        candidates = self.list_candidate_keys()
        loaded = self.loaded_fingerprints() if state is AgentState.RUNNING_WITH_KEYS else set()
        result = self.reconcile(candidates, loaded, state)
        self.run_logger.on_final(result)
        return result
