"""Descriptor parsing: ``name@range[+algorithm.hexdigest]``."""

import re
from typing import Optional, Tuple

from constants import Constants, PackageManagers
from errors import MalformedSpecError
from .models import Descriptor

SUPPORTED_HASHES = ("sha1", "sha224", "sha256", "sha384", "sha512")

_INTEGRITY_SUFFIX = re.compile(r"^([a-z][a-z0-9]*)\.([0-9a-fA-F]{32,})$")


def is_url(range_: str) -> bool:
    """Return True when the range is a download URL rather than a version."""
    return range_.startswith(("https://", "http://"))


def split_integrity(raw: str, range_: str, source: Optional[str]) -> Tuple[str, Optional[str]]:
    """Split a trailing ``+algo.hex`` off ``range_``.

    A ``+`` that does not introduce a hash (semver build metadata) is kept as
    part of the range.
    """
    if "+" not in range_:
        return range_, None
    head, tail = range_.rsplit("+", 1)
    m = _INTEGRITY_SUFFIX.match(tail)
    if not m:
        return range_, None
    algorithm = m.group(1)
    if algorithm not in SUPPORTED_HASHES:
        raise MalformedSpecError(raw, source, f"unsupported hash algorithm '{algorithm}'")
    if not head:
        raise MalformedSpecError(raw, source, "missing version before the hash")
    return head, f"{algorithm}.{m.group(2).lower()}"


def parse_spec(raw: str, source: Optional[str] = None) -> Descriptor:
    """Parse a descriptor string.

    Args:
        raw: The descriptor, e.g. ``yarn@^1.22.0``.
        source: Where the string came from, for error messages only.

    Raises:
        MalformedSpecError: if the separator is missing, the range is empty or
            the manager is not supported.
    """
    if not isinstance(raw, str):
        raise MalformedSpecError(str(raw), source, "expected a string")
    text = raw.strip()
    if "@" not in text:
        raise MalformedSpecError(raw, source, "expected the form name@range")
    name, range_ = text.split("@", 1)
    manager = PackageManagers.from_name(name)
    if manager is None:
        raise MalformedSpecError(
            raw, source,
            f"unsupported package manager '{name}' (expected one of "
            f"{', '.join(Constants.SUPPORTED_PACKAGES)})",
        )
    range_, integrity = split_integrity(raw, range_.strip(), source)
    if not range_:
        raise MalformedSpecError(raw, source, "the version range is empty")
    return Descriptor(name=manager, range=range_, integrity=integrity, source=source)
