from __future__ import annotations
from pydantic import BaseModel, Field
from pathlib import Path
import os

ENV_FILE = Path(".env")

class Config(BaseModel):
    # identities
    key_dir: str = "~/.ssh"
    key_prefix: str = "id_"
    lifetime_sec: int = Field(default=4 * 60 * 60, gt=0)
    strict: bool = False               # exit non-zero when any key failed to load
    agent_env_file: str | None = "~/.ssh/agent.env"
    # logging
    log_level: str = "WARNING"         # DEBUG|INFO|WARNING|ERROR
    log_file: str | None = None        # e.g., sshid.log
    log_console: bool = True

    @classmethod
    def from_env(cls) -> "Config":
        data: dict = {}
        if ENV_FILE.exists():
            for line in ENV_FILE.read_text().splitlines():
                line = line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue
                k, v = line.split("=", 1)
                os.environ.setdefault(k.strip(), v.strip())
        data["key_dir"] = os.environ.get("SSHID_KEY_DIR") or "~/.ssh"
        data["key_prefix"] = os.environ.get("SSHID_KEY_PREFIX") or "id_"
        data["lifetime_sec"] = os.environ.get("SSHID_LIFETIME", str(4 * 60 * 60))
        data["strict"] = (os.environ.get("SSHID_STRICT", "false").lower() == "true")
        # an explicitly empty value disables the env file
        data["agent_env_file"] = os.environ.get("SSHID_AGENT_ENV_FILE", "~/.ssh/agent.env") or None
        # logging
        data["log_level"] = os.environ.get("SSHID_LOG_LEVEL", "WARNING").upper()
        data["log_file"] = os.environ.get("SSHID_LOG_FILE") or None
        data["log_console"] = (os.environ.get("SSHID_LOG_CONSOLE", "true").lower() == "true")
        return cls(**data)

def save_to_env(cfg: Config, path: str | None = None) -> Path:
    p = Path(path) if path else ENV_FILE
    lines: list[str] = []
    lines.append(f"SSHID_KEY_DIR={cfg.key_dir}")
    lines.append(f"SSHID_KEY_PREFIX={cfg.key_prefix}")
    lines.append(f"SSHID_LIFETIME={cfg.lifetime_sec}")
    lines.append(f"SSHID_STRICT={'true' if cfg.strict else 'false'}")
    lines.append(f"SSHID_AGENT_ENV_FILE={cfg.agent_env_file or ''}")
    # logging
    lines.append(f"SSHID_LOG_LEVEL={cfg.log_level}")
    lines.append(f"SSHID_LOG_FILE={cfg.log_file or ''}")
    lines.append(f"SSHID_LOG_CONSOLE={'true' if cfg.log_console else 'false'}")
    p.write_text("\n".join(lines) + "\n")
    return p
