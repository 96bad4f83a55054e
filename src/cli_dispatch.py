"""CLI entry point for transparent dispatch (``corepack yarn install``)."""

from __future__ import annotations

import logging
import os
from typing import List, Optional, Tuple

from constants import Constants
from definitions import manager_for_binary
from engine.core import Engine
from engine.dispatcher import Dispatcher
from specs.models import Descriptor
from specs.parser import parse_spec

logger = logging.getLogger(__name__)

_SIGINT_EXIT = 130


def split_invocation(token: str) -> Tuple[str, Optional[Descriptor]]:
    """Split ``yarn`` / ``yarn@1.22.4`` into the binary and an explicit descriptor."""
    if "@" in token:
        descriptor = parse_spec(token, "command line")
        return descriptor.name.value, descriptor
    return token, None


def is_dispatch_token(token: str) -> bool:
    """Return True when ``token`` names a package manager binary or descriptor."""
    binary = token.split("@", 1)[0]
    return manager_for_binary(binary) is not None


def binary_from_prog(prog: Optional[str]) -> Optional[str]:
    """Return the binary name when invoked through a shim such as ``yarn``."""
    if not prog:
        return None
    name = os.path.basename(prog)
    stem, ext = os.path.splitext(name)
    if ext.lower() in (".exe", ".cmd", ".bat"):
        name = stem
    return name if manager_for_binary(name) is not None else None


def run_dispatch(binary: str, args: List[str], explicit: Optional[Descriptor] = None,
                 cwd: Optional[str] = None) -> int:
    """Run ``binary args...`` through the engine and return its exit code."""
    engine = Engine.from_environment()
    logger.debug("Dispatching %s with %d argument(s) via %s",
                 binary, len(args), Constants.NODE_EXECUTABLE)
    try:
        return Dispatcher(engine).run(binary, args, explicit=explicit, cwd=cwd)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return _SIGINT_EXIT
