"""Terminal output that honours verbosity and color preferences."""

from __future__ import annotations

import enum
import os
import sys
from typing import TextIO

_BOLD = "\x1b[1m"
_RESET = "\x1b[0m"
_DEFAULT_FG = "\x1b[39m"
_ERASE_LINE = "\x1b[K"


class Color(enum.Enum):
    """When colorized output is used."""

    AUTO = "auto"
    NEVER = "never"
    ALWAYS = "always"

    def __str__(self) -> str:
        return self.value


def parse_color(value: str) -> Color:
    """Parse a ``--color`` argument value."""
    try:
        return Color(value)
    except ValueError:
        raise ValueError(
            f"argument for --color must be auto, always, or never, but found `{value}`"
        ) from None


class Verbosity(enum.Enum):
    """The requested verbosity of output."""

    VERBOSE = "verbose"
    NORMAL = "normal"
    QUIET = "quiet"


class Colors(enum.Enum):
    """ANSI foreground colors, valued by their SGR code."""

    BLACK = 30
    RED = 31
    GREEN = 32
    YELLOW = 33
    BLUE = 34
    MAGENTA = 35
    CYAN = 36
    WHITE = 37
    DEFAULT = 39
    BRIGHT_BLACK = 90
    BRIGHT_RED = 91
    BRIGHT_GREEN = 92
    BRIGHT_YELLOW = 93
    BRIGHT_BLUE = 94
    BRIGHT_MAGENTA = 95
    BRIGHT_CYAN = 96
    BRIGHT_WHITE = 97

    def paint(self, text: str) -> str:
        """Wrap ``text`` in this color's escape sequences."""
        return f"\x1b[{self.value}m{text}{_DEFAULT_FG}"


def _bold(text: str) -> str:
    return f"{_BOLD}{text}{_RESET}"


def _stderr_width() -> int | None:
    try:
        columns = os.get_terminal_size(sys.stderr.fileno()).columns
    except (OSError, ValueError, AttributeError):
        return None
    return columns if columns > 0 else None


class Terminal:
    """Writes status messages to stderr, or to a plain writable object."""

    def __init__(self, verbosity: Verbosity = Verbosity.NORMAL, color: Color = Color.AUTO):
        self._setup(verbosity, color, None)

    def _setup(self, verbosity: Verbosity, color: Color, out: TextIO | None) -> None:
        self.verbosity = verbosity
        self.color = color
        self.needs_clear = False
        self._out = out
        if out is None:
            isatty = getattr(sys.stderr, "isatty", None)
            self._is_terminal = bool(isatty and isatty())
        else:
            self._is_terminal = False

    @classmethod
    def from_write(cls, out: TextIO) -> "Terminal":
        """Create a terminal over a writable object, uncolored and fully verbose."""
        terminal = cls.__new__(cls)
        terminal._setup(Verbosity.VERBOSE, Color.NEVER, out)
        return terminal

    def __repr__(self) -> str:
        if self._out is not None:
            return f"Terminal(verbosity={self.verbosity})"
        return f"Terminal(verbosity={self.verbosity}, color={self.color})"

    def supports_color(self) -> bool:
        """Whether colored output is written."""
        if self._out is not None:
            return False
        if self.color is Color.AUTO:
            return self._is_terminal
        return self.color is Color.ALWAYS

    def status(self, status: object, message: object) -> None:
        """Print a green, right-justified status followed by a message."""
        self._print(status, message, True, Colors.GREEN)

    def status_with_color(self, status: object, message: object, color: Colors) -> None:
        """Print a right-justified status in ``color`` followed by a message."""
        self._print(status, message, True, color)

    def note(self, message: object) -> None:
        """Print a cyan note."""
        self._print("note", message, False, Colors.CYAN)

    def warn(self, message: object) -> None:
        """Print a yellow warning."""
        self._print("warning", message, False, Colors.YELLOW)

    def error(self, message: object) -> None:
        """Print a red error; errors are printed even when quiet."""
        self.clear_stderr()
        self._output_print("error", message, False, Colors.RED)

    def write_stdout(self, fragment: object, color: Colors | None = None) -> None:
        """Write a fragment to stdout, colored when supported."""
        text = str(fragment)
        if self._out is not None:
            self._out.write(text)
            return
        if color is not None and self.supports_color():
            text = color.paint(text)
        sys.stdout.write(text)
        sys.stdout.flush()

    def width(self) -> int | None:
        """The width of the terminal in columns, if known."""
        if self._out is not None:
            return None
        return _stderr_width()

    def clear_stderr(self) -> None:
        """Erase the current stderr line if something is pending there."""
        if self.needs_clear:
            if self.supports_color():
                self._write_stderr(_ERASE_LINE)
            self.needs_clear = False

    def _print(
        self,
        status: object,
        message: object | None,
        justified: bool,
        color: Colors | None = None,
    ) -> None:
        if self.verbosity is Verbosity.QUIET:
            return
        self.clear_stderr()
        self._output_print(status, message, justified, color)

    def _output_print(
        self,
        status: object,
        message: object | None,
        justified: bool,
        color: Colors | None = None,
    ) -> None:
        text = f"{status!s:>12}" if justified else str(status)
        if self.supports_color():
            if color is not None:
                text = color.paint(text)
            text = _bold(text)
        if not justified:
            text += ":"
        text += f" {message}\n" if message is not None else " "
        if self._out is not None:
            self._out.write(text)
        else:
            self._write_stderr(text)

    def _write_stderr(self, text: str) -> None:
        sys.stderr.write(text)
        sys.stderr.flush()