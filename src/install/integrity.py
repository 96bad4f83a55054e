"""Content hashing and integrity checks."""

from __future__ import annotations

import base64
import binascii
import hashlib
import os
import re
from typing import Optional, Tuple

from constants import Constants
from errors import IntegrityError

_HEX = re.compile(r"^[0-9a-fA-F]+$")
_SRI = re.compile(r"^(sha1|sha224|sha256|sha384|sha512)-([A-Za-z0-9+/=]+)$")
_DOTTED = re.compile(r"^(sha1|sha224|sha256|sha384|sha512)\.([0-9a-fA-F]+)$")


def parse_integrity(value: str) -> Tuple[str, str]:
    """Normalize an integrity string to ``(algorithm, hex digest)``.

    Accepts SRI (``sha512-<base64>``, first entry when several are listed),
    dotted hex (``sha224.<hex>``) and a bare 40-character sha1 shasum.
    """
    first = value.strip().split()[0] if value.strip() else ""
    m = _SRI.match(first)
    if m:
        try:
            raw = base64.b64decode(m.group(2), validate=True)
        except binascii.Error as exc:
            raise ValueError(f"Invalid base64 digest in integrity '{value}'") from exc
        return m.group(1), raw.hex()
    m = _DOTTED.match(first)
    if m:
        return m.group(1), m.group(2).lower()
    if len(first) == 40 and _HEX.match(first):
        return "sha1", first.lower()
    raise ValueError(f"Unsupported integrity format '{value}'")


def hash_bytes(data: bytes, algorithm: str) -> str:
    return hashlib.new(algorithm, data).hexdigest()


def verify_integrity(data: bytes, expected: Optional[str], subject: str) -> None:
    """Raise IntegrityError when ``data`` does not hash to ``expected``."""
    if not expected:
        return
    try:
        algorithm, digest = parse_integrity(expected)
    except ValueError as exc:
        raise IntegrityError(subject, expected, str(exc)) from exc
    actual = hash_bytes(data, algorithm)
    if actual != digest:
        raise IntegrityError(subject, f"{algorithm}.{digest}", f"{algorithm}.{actual}")


def tree_digest(root: str) -> str:
    """Hash an install tree: sorted relative paths plus file contents.

    The completion marker is excluded so the digest can be stored inside it.
    """
    sha = hashlib.sha256()
    entries = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for filename in filenames:
            full = os.path.join(dirpath, filename)
            rel = os.path.relpath(full, root).replace(os.sep, "/")
            if rel == Constants.INSTALL_MARKER:
                continue
            entries.append((rel, full))
    for rel, full in sorted(entries):
        sha.update(rel.encode("utf-8") + b"\0")
        if os.path.islink(full):
            sha.update(b"L" + os.readlink(full).encode("utf-8"))
        else:
            with open(full, "rb") as fh:
                for chunk in iter(lambda: fh.read(65536), b""):
                    sha.update(chunk)
        sha.update(b"\0")
    return f"sha256.{sha.hexdigest()}"
