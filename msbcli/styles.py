"""ANSI text styles used by the command-line interfaces."""

from __future__ import annotations

import os
from dataclasses import dataclass

_BOLD = "\x1b[1m"
_RESET = "\x1b[0m"

_RED = 31
_GREEN = 32
_YELLOW = 33
_BLUE = 34


@dataclass(frozen=True)
class Style:
    """A foreground colour (ANSI code) with an optional bold effect."""

    fg: int | None = None
    bold: bool = False

    @property
    def is_plain(self) -> bool:
        return self.fg is None and not self.bold

    def render(self) -> str:
        """Return the escape sequence that switches this style on."""
        parts = []
        if self.bold:
            parts.append(_BOLD)
        if self.fg is not None:
            parts.append(f"\x1b[{self.fg}m")
        return "".join(parts)

    def render_reset(self) -> str:
        """Return the escape sequence that switches this style off."""
        return "" if self.is_plain else _RESET


HEADER = Style(_YELLOW, bold=True)
USAGE = Style(_YELLOW, bold=True)
LITERAL = Style(_BLUE, bold=True)
PLACEHOLDER = Style(_GREEN)
ERROR = Style(_RED, bold=True)
VALID = Style(_GREEN, bold=True)
INVALID = Style(_RED, bold=True)


def styles_enabled() -> bool:
    """Return whether styled output should be produced for the current terminal."""
    return os.environ.get("TERM", "") != "dumb"


def apply_style(text: str, style: Style) -> str:
    """Wrap ``text`` in the escape sequences of ``style`` when styling is enabled."""
    if not styles_enabled():
        return text
    return f"{style.render()}{text}{style.render_reset()}"


def header(text: str) -> str:
    """Apply the header style."""
    return apply_style(text, HEADER)


def usage(text: str) -> str:
    """Apply the usage style."""
    return apply_style(text, USAGE)


def literal(text: str) -> str:
    """Apply the literal style."""
    return apply_style(text, LITERAL)


def placeholder(text: str) -> str:
    """Apply the placeholder style."""
    return apply_style(text, PLACEHOLDER)


def error(text: str) -> str:
    """Apply the error style."""
    return apply_style(text, ERROR)


def valid(text: str) -> str:
    """Apply the valid style."""
    return apply_style(text, VALID)


def invalid(text: str) -> str:
    """Apply the invalid style."""
    return apply_style(text, INVALID)