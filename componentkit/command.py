"""Options shared by every command."""

from __future__ import annotations

import argparse
from dataclasses import dataclass

from .terminal import Color, Terminal, Verbosity, parse_color


@dataclass
class CommonOptions:
    """Common options for commands."""

    quiet: bool = False
    verbose: int = 0
    color: Color | None = None

    def new_terminal(self) -> Terminal:
        """Create a terminal from these options."""
        if self.quiet:
            verbosity = Verbosity.QUIET
        elif self.verbose == 0:
            verbosity = Verbosity.NORMAL
        else:
            verbosity = Verbosity.VERBOSE
        return Terminal(verbosity, self.color or Color.AUTO)


def _color_argument(value: str) -> Color:
    try:
        return parse_color(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from None


def add_common_options(parser: argparse.ArgumentParser) -> argparse.ArgumentParser:
    """Add the common ``--quiet``, ``--verbose`` and ``--color`` options to a parser."""
    parser.add_argument(
        "-q", "--quiet", action="store_true", default=False, help="Do not print log messages"
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Use verbose output (-vv very verbose output)",
    )
    parser.add_argument(
        "--color",
        metavar="WHEN",
        type=_color_argument,
        default=None,
        help="Coloring: auto, always, never",
    )
    return parser