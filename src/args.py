"""Argument parsing for the prepare and hydrate commands.

Dispatch (``corepack <name> [args...]``) is routed before argparse so the
package manager's own arguments reach it untouched.
"""

import argparse

from errors import UsageError


class _Parser(argparse.ArgumentParser):
    """ArgumentParser that reports bad usage as UsageError instead of exiting with 2."""

    def error(self, message):
        raise UsageError(message)


def _add_logging_args(parser):
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str.upper,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='INFO')
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to a YAML configuration file",
                        action="store",
                        type=str)


def build_parser():
    """Build the parser for the management commands."""
    parser = _Parser(
        prog="corepack",
        description=(
            "corepack - run the package manager a project asks for. "
            "Use 'corepack <npm|yarn|pnpm>[@range] [args...]' to dispatch."
        ),
        add_help=True,
    )
    sub = parser.add_subparsers(dest="action", parser_class=_Parser)

    prepare = sub.add_parser(
        "prepare",
        help="Install a package manager in the cache and optionally pack it",
    )
    prepare.add_argument("SPEC",
                         nargs="?",
                         help="Descriptor such as yarn@2.2.2 (defaults to the local project's)",
                         default=None)
    prepare.add_argument("--activate",
                         dest="ACTIVATE",
                         help="Record the prepared version as the default for its manager",
                         action="store_true")
    prepare.add_argument("--all",
                         dest="ALL",
                         help="Prepare the default version of every supported manager",
                         action="store_true")
    prepare.add_argument("-o", "--output",
                         dest="OUTPUT",
                         help="Write an archive suitable for 'corepack hydrate' (optionally to PATH)",
                         nargs="?",
                         const=True,
                         default=None,
                         metavar="PATH")
    prepare.add_argument("--json",
                         dest="JSON",
                         help="Print the archive path as JSON",
                         action="store_true")
    prepare.add_argument("--cache-only",
                         dest="CACHE_ONLY",
                         help="Only populate the cache, never write an archive",
                         action="store_true")
    _add_logging_args(prepare)

    hydrate = sub.add_parser(
        "hydrate",
        help="Import a package manager archive generated by 'corepack prepare'",
    )
    hydrate.add_argument("ARCHIVE",
                         help="Path to the archive")
    hydrate.add_argument("--activate",
                         dest="ACTIVATE",
                         help="Record the hydrated versions as defaults",
                         action="store_true")
    _add_logging_args(hydrate)

    return parser


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    return build_parser().parse_args(argv)
