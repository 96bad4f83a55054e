"""corepack: run the package manager a project asks for.

Usage:
    corepack <npm|npx|yarn|yarnpkg|pnpm|pnpx>[@range] [args...]
    corepack prepare [descriptor] [--activate] [--all] [-o [path]] [--json] [--cache-only]
    corepack hydrate <archive> [--activate]

When installed under a manager's name (``yarn``, ``pnpm``...) the program
dispatches directly to that manager.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import List, Optional

import cli_config
from args import build_parser
from cli_dispatch import binary_from_prog, is_dispatch_token, run_dispatch, split_invocation
from cli_hydrate import hydrate
from cli_prepare import prepare
from common.logging_utils import configure_logging, extra_context, is_debug_enabled
from constants import Constants, ExitCodes
from errors import CorepackError

logger = logging.getLogger(__name__)


def _report(exc: CorepackError) -> int:
    sys.stderr.write(f"{exc.label}: {exc}\n")
    return exc.exit_code


def _dispatch(binary: str, args: List[str], cwd: Optional[str], explicit=None) -> int:
    # Package managers own the terminal; stay quiet unless asked otherwise
    configure_logging(os.environ.get(Constants.ENV_LOG_LEVEL) or Constants.DISPATCH_LOG_LEVEL)
    cli_config.configure()
    return run_dispatch(binary, args, explicit=explicit, cwd=cwd)


def run(argv: Optional[List[str]] = None, prog: Optional[str] = None,
        cwd: Optional[str] = None) -> int:
    """Run one invocation and return its exit code.

    Args:
        argv: Arguments after the program name; defaults to ``sys.argv[1:]``.
        prog: Name the program was invoked as; a manager binary name
            (``yarn``, ``pnpx``...) dispatches straight to that manager.
        cwd: Directory the command runs in; defaults to the process cwd.
    """
    argv = list(sys.argv[1:] if argv is None else argv)
    try:
        shim = binary_from_prog(prog)
        if shim is not None:
            return _dispatch(shim, argv, cwd)

        if argv and is_dispatch_token(argv[0]):
            binary, explicit = split_invocation(argv[0])
            return _dispatch(binary, argv[1:], cwd, explicit=explicit)

        parser = build_parser()
        args = parser.parse_args(argv)
        configure_logging(args.LOG_LEVEL if args.action else None,
                          getattr(args, "LOG_FILE", None))
        cli_config.configure(getattr(args, "CONFIG", None))

        if is_debug_enabled(logger):
            logger.debug(
                "CLI start",
                extra=extra_context(event="function_entry", component="cli", action=args.action)
            )

        if args.action == "prepare":
            return prepare(args, cwd=cwd)
        if args.action == "hydrate":
            return hydrate(args, cwd=cwd)

        parser.print_help(sys.stderr)
        return ExitCodes.FAILURE.value
    except CorepackError as exc:
        logger.debug("Command failed", exc_info=True)
        return _report(exc)


def main() -> None:
    """Console script entry point."""
    sys.exit(run(prog=sys.argv[0]))


if __name__ == "__main__":
    main()
