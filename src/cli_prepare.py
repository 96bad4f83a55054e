"""CLI entry point for ``corepack prepare``.

Resolves and installs one or more package managers, optionally records them
as the active defaults and packs them into archives for offline hydration.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from typing import Any, List, Optional, Tuple

from engine.core import Engine
from errors import NoProjectError, NoSpecError, UsageError
from install.archive import default_archive_name, export_install
from specs.lookup import load_spec
from specs.models import Descriptor, Found, NoProject, NoSpec
from specs.parser import parse_spec

logger = logging.getLogger(__name__)


def _requested_descriptors(args: Any, engine: Engine, cwd: str) -> List[Tuple[Descriptor, bool]]:
    """Return ``(descriptor, explicit)`` pairs to prepare.

    ``explicit`` is False only when the descriptor came from the project
    manifest, which selects the version-less archive name.
    """
    if args.ALL and args.SPEC:
        raise UsageError("The --all option cannot be used along with an explicit package manager specification")
    if args.ALL:
        return [(descriptor, True) for descriptor in engine.get_default_descriptors()]
    if args.SPEC:
        return [(parse_spec(args.SPEC, "CLI arguments"), True)]

    lookup = load_spec(cwd)
    if isinstance(lookup, NoProject):
        raise NoProjectError(
            f"Couldn't find a project in the local directory ({lookup.start_dir}); "
            "please explicitly specify a package manager to prepare, or run 'corepack prepare --all'"
        )
    if isinstance(lookup, NoSpec):
        raise NoSpecError(
            f"The local project ({lookup.manifest_path}) doesn't define a 'packageManager' field; "
            "please explicitly specify a package manager to prepare, or run 'corepack prepare --all'"
        )
    if isinstance(lookup, Found):
        return [(lookup.descriptor, False)]
    raise AssertionError(f"Unhandled lookup result: {lookup!r}")


def _output_path(output: Any, default_name: str, cwd: str) -> str:
    if output is True:
        return os.path.join(cwd, default_name)
    return os.path.join(cwd, output)


def prepare(args: Any, engine: Optional[Engine] = None, cwd: Optional[str] = None) -> int:
    """Run the prepare command with parsed ``args``; returns the exit code."""
    engine = engine or Engine.from_environment()
    cwd = cwd or os.getcwd()

    if args.CACHE_ONLY and args.OUTPUT:
        logger.warning("--cache-only given, no archive will be written")

    for descriptor, explicit in _requested_descriptors(args, engine, cwd):
        logger.debug("Preparing %s (from %s)", descriptor, descriptor.source or "defaults")
        locator = engine.resolve_descriptor(descriptor)
        record = engine.ensure_package_manager(locator)
        logger.info("Prepared %s in %s", locator, record.location)

        if args.ACTIVATE:
            engine.activate_package_manager(locator)

        if not args.OUTPUT or args.CACHE_ONLY:
            continue

        filename = _output_path(args.OUTPUT, default_archive_name(locator, explicit), cwd)
        export_install(record, engine.home, filename)
        if args.JSON:
            sys.stdout.write(json.dumps(filename) + "\n")
        else:
            sys.stdout.write(f"Packed {filename}\n")

    return 0
