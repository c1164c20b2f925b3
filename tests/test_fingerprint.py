import base64
import hashlib

import pytest

from sshid.fingerprint import fingerprint_blob, fingerprint_public_key, parse_public_key


def test_fingerprint_is_stable(public_key_line):
    line = public_key_line("alice")
    assert fingerprint_public_key(line) == fingerprint_public_key(line)


def test_fingerprint_format_matches_ssh_keygen(public_key_line):
    fp = fingerprint_public_key(public_key_line("alice"))
    assert fp.startswith("SHA256:")
    assert "=" not in fp
    assert len(fp) == len("SHA256:") + 43


def test_fingerprint_is_sha256_of_blob(public_key_line):
    line = public_key_line("bob", "ssh-rsa")
    blob = base64.b64decode(line.split()[1])
    expected = base64.b64encode(hashlib.sha256(blob).digest()).decode().rstrip("=")
    assert fingerprint_public_key(line) == "SHA256:" + expected
    assert fingerprint_blob(blob) == "SHA256:" + expected


def test_comment_does_not_change_fingerprint(public_key_line):
    line = public_key_line("carol")
    key_type, data, _ = line.split(" ", 2)
    bare = f"{key_type} {data}"
    renamed = f"{key_type} {data} someone-else@laptop"
    assert fingerprint_public_key(bare) == fingerprint_public_key(line) == fingerprint_public_key(renamed)


def test_distinct_keys_have_distinct_fingerprints(public_key_line):
    assert fingerprint_public_key(public_key_line("a")) != fingerprint_public_key(public_key_line("b"))


def test_parse_public_key_fields(public_key_line):
    key = parse_public_key(public_key_line("dave", "ecdsa-sha2-nistp256") + "\n")
    assert key.key_type == "ecdsa-sha2-nistp256"
    assert key.comment == "dave@example"
    assert key.blob[4:4 + len("ecdsa-sha2-nistp256")] == b"ecdsa-sha2-nistp256"


@pytest.mark.parametrize(
    "line",
    [
        "",
        "ssh-ed25519",
        "ssh-ed25519 not*base64",
        "ssh-ed25519 AAAA",
    ],
)
def test_malformed_lines_raise(line):
    with pytest.raises(ValueError):
        fingerprint_public_key(line)


def test_type_mismatch_raises(public_key_line):
    _, data, comment = public_key_line("eve", "ssh-ed25519").split(" ", 2)
    with pytest.raises(ValueError, match="mismatch"):
        parse_public_key(f"ssh-rsa {data} {comment}")
