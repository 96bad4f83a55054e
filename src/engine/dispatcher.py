"""Transparent dispatch of package manager commands."""

from __future__ import annotations

import logging
import os
import subprocess
from typing import List, Optional, Sequence

from constants import Constants
from definitions import get_definition, manager_for_binary
from errors import ExecutionError, UsageError, WrongPackageManagerError
from common.logging_utils import extra_context, is_debug_enabled
from specs.lookup import load_spec
from specs.models import Descriptor, Found, InstallRecord, NoProject, NoSpec
from .core import Engine

logger = logging.getLogger(__name__)


class Dispatcher:
    """Runs the package manager a project asks for in place of the invoked one."""

    def __init__(self, engine: Engine):
        self.engine = engine

    @staticmethod
    def is_transparent(binary: str, args: Sequence[str]) -> bool:
        """Return True when ``binary args...`` may run under any project.

        A transparent command is a prefix of the command line declared by the
        manager definition, e.g. ``("yarn", "dlx")`` or ``("npx",)``.
        """
        manager = manager_for_binary(binary)
        if manager is None:
            return False
        command = (binary, *args)
        return any(
            command[:len(prefix)] == prefix
            for prefix in get_definition(manager).transparent_commands
        )

    def find_effective_descriptor(self, binary: str, args: Sequence[str],
                                  explicit: Optional[Descriptor] = None,
                                  cwd: Optional[str] = None) -> Descriptor:
        """Pick the descriptor to run.

        Priority: explicit descriptor > project manifest > activation state >
        embedded default.

        Raises:
            WrongPackageManagerError: the project pins another manager and the
                command is not transparent.
        """
        manager = manager_for_binary(binary)
        if manager is None:
            raise UsageError(f"Unsupported package manager binary '{binary}'")
        if explicit is not None:
            return explicit

        lookup = load_spec(cwd or os.getcwd())
        if isinstance(lookup, Found):
            pinned = lookup.descriptor
            if pinned.name == manager:
                return pinned
            if self.is_transparent(binary, args):
                logger.debug("Transparent command %s %s in a %s project",
                             binary, " ".join(args), pinned.name.value)
                return self.engine.get_default_descriptor(manager, transparent=True)
            raise WrongPackageManagerError(binary, str(pinned), lookup.manifest_path)
        if isinstance(lookup, (NoProject, NoSpec)):
            return self.engine.get_default_descriptor(manager)
        raise AssertionError(f"Unhandled lookup result: {lookup!r}")

    def run(self, binary: str, args: Sequence[str], explicit: Optional[Descriptor] = None,
            cwd: Optional[str] = None) -> int:
        """Resolve, install and execute; returns the child's exit code."""
        descriptor = self.find_effective_descriptor(binary, args, explicit=explicit, cwd=cwd)
        locator = self.engine.resolve_descriptor(descriptor)
        record = self.engine.ensure_package_manager(locator)
        return self.execute(record, binary, list(args), cwd=cwd)

    def execute(self, record: InstallRecord, binary: str, args: List[str],
                cwd: Optional[str] = None) -> int:
        """Run ``binary`` from ``record`` to completion with inherited stdio."""
        bin_path = record.bin_path(binary)
        if bin_path is None:
            available = ", ".join(sorted(record.bin)) or "none"
            raise ExecutionError(
                f"{record.name.value}@{record.reference} does not provide a '{binary}' "
                f"binary (available: {available})"
            )
        cmd = [Constants.NODE_EXECUTABLE, bin_path, *args]
        if is_debug_enabled(logger):
            logger.debug(
                "Spawning package manager",
                extra=extra_context(
                    event="spawn",
                    component="dispatcher",
                    package_manager=record.name.value,
                    target=record.reference,
                    action=binary,
                )
            )
        try:
            result = subprocess.run(cmd, cwd=cwd, check=False)  # noqa: S603
        except OSError as exc:
            raise ExecutionError(
                f"Failed to run {binary} from {record.location} with "
                f"'{Constants.NODE_EXECUTABLE}': {exc}"
            ) from exc
        # Killed by a signal: report it the way shells do
        if result.returncode < 0:
            return 128 - result.returncode
        return result.returncode
