from __future__ import annotations

import base64
import binascii
import hashlib
import struct
from dataclasses import dataclass


@dataclass(frozen=True)
class PublicKey:
    key_type: str
    blob: bytes
    comment: str = ""


def _embedded_type(blob: bytes) -> str:
    # wire format: uint32 length + key type name, followed by key parameters
    if len(blob) < 4:
        raise ValueError("public key blob too short")
    (size,) = struct.unpack(">I", blob[:4])
    if size == 0 or len(blob) < 4 + size:
        raise ValueError("public key blob truncated")
    return blob[4:4 + size].decode("ascii", errors="replace")


def parse_public_key(line: str) -> PublicKey:
    """Parse an OpenSSH public key line: ``<type> <base64> [comment]``."""
    parts = (line or "").strip().split(None, 2)
    if len(parts) < 2:
        raise ValueError(f"not a public key line: {line!r}")
    key_type, data = parts[0], parts[1]
    comment = parts[2] if len(parts) > 2 else ""
    try:
        blob = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"invalid base64 in public key: {exc}") from exc
    embedded = _embedded_type(blob)
    if embedded != key_type:
        raise ValueError(f"key type mismatch: {key_type} != {embedded}")
    return PublicKey(key_type=key_type, blob=blob, comment=comment)


def fingerprint_blob(blob: bytes) -> str:
    digest = hashlib.sha256(blob).digest()
    return "SHA256:" + base64.b64encode(digest).decode("ascii").rstrip("=")


def fingerprint_public_key(line: str) -> str:
    """SHA-256 fingerprint in the form ``ssh-keygen -l -E sha256`` prints it."""
    return fingerprint_blob(parse_public_key(line).blob)
