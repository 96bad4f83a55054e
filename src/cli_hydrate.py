"""CLI entry point for ``corepack hydrate``."""

from __future__ import annotations

import logging
import os
import sys
from typing import Any, Optional

from engine.core import Engine
from install.archive import hydrate_archive
from specs.models import Locator
from versioning.resolver import is_exact_version

logger = logging.getLogger(__name__)


def hydrate(args: Any, engine: Optional[Engine] = None, cwd: Optional[str] = None) -> int:
    """Import the archive named by ``args.ARCHIVE``; never touches the network."""
    engine = engine or Engine.from_environment()
    archive = os.path.join(cwd or os.getcwd(), args.ARCHIVE)

    for record in hydrate_archive(archive, engine.install_cache):
        if args.ACTIVATE:
            if is_exact_version(record.reference):
                engine.activate_package_manager(Locator(record.name, record.reference))
            else:
                # URL installs are keyed by content hash, not a resolvable version
                logger.warning("Not activating %s@%s: not a release version",
                               record.name.value, record.reference)
        sys.stdout.write(f"Hydrated {record.name.value}@{record.reference}\n")
    return 0
