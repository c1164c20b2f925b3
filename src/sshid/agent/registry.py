from __future__ import annotations

from typing import Dict, Type

from .base import AgentClient
from .memory import MemoryAgentClient
from .openssh import OpenSSHAgentClient


BackendName = str


BACKENDS: Dict[BackendName, Type[AgentClient]] = {
    "openssh": OpenSSHAgentClient,
    "memory": MemoryAgentClient,
}
