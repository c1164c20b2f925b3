from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

DEFAULT_PREFIX = "id_"
PUBLIC_SUFFIX = ".pub"


@dataclass(frozen=True)
class KeyFile:
    path: Path
    public_suffix: str = PUBLIC_SUFFIX

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def public_path(self) -> Path:
        return self.path.with_name(self.path.name + self.public_suffix)

    @property
    def has_public(self) -> bool:
        return self.public_path.is_file()

    def __str__(self) -> str:
        return str(self.path)


def default_key_dir() -> Path:
    return Path.home() / ".ssh"


def list_candidate_keys(
    directory: Path | str | None = None,
    prefix: str = DEFAULT_PREFIX,
    public_suffix: str = PUBLIC_SUFFIX,
) -> Iterator[KeyFile]:
    """Yield private key files (``id_*`` but not ``*.pub``) found in *directory*.

    Enumeration order is whatever the filesystem returns. A missing directory
    yields nothing.
    """
    root = Path(directory).expanduser() if directory else default_key_dir()
    try:
        entries = list(root.iterdir())
    except (FileNotFoundError, NotADirectoryError, PermissionError):
        return
    for entry in entries:
        name = entry.name
        if not name.startswith(prefix) or name.endswith(public_suffix):
            continue
        if entry.is_file():
            yield KeyFile(entry, public_suffix=public_suffix)
