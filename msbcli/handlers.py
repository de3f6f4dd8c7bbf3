"""Checks and helpers behind the msb subcommands."""

from __future__ import annotations

import argparse
import os
from datetime import timedelta
from pathlib import Path

from msbcli.styles import literal, placeholder

SANDBOX_SCRIPT_SEPARATOR = "~"
LOG_LEVEL_ENV = "RUST_LOG"
MAX_DURATION_VALUE = 8760

_ARGUMENT_CONFLICT = "argument_conflict"
_INVALID_VALUE = "invalid_value"
_LEVELS = ("trace", "debug", "info", "warn", "error")
_I64_MAX = (1 << 63) - 1

_DURATION_UNITS = {
    "s": timedelta(seconds=1),
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
    "d": timedelta(days=1),
    "w": timedelta(weeks=1),
    "mo": timedelta(days=30),
    "y": timedelta(days=365),
    "": timedelta(hours=1),
}


class UsageError(Exception):
    """A command-line usage error, carrying the usage line to show with it."""

    def __init__(self, message: str, usage: str, kind: str = _ARGUMENT_CONFLICT) -> None:
        super().__init__(message)
        self.message = message
        self.usage = usage
        self.kind = kind

    def __str__(self) -> str:
        return f"error: {self.message}\n\nUsage: {self.usage}"


class InvalidArgumentError(ValueError):
    """An argument value that cannot be interpreted."""


def log_level_filter(args: argparse.Namespace) -> str | None:
    """Return the log filter for the most verbose level flag set, or None."""
    for level in _LEVELS:
        if getattr(args, level, False):
            return f"micro={level},msb={level}"
    return None


def apply_log_level(args: argparse.Namespace) -> str | None:
    """Export the log filter chosen by the flags, if any, and return it."""
    level = log_level_filter(args)
    if level is not None:
        os.environ[LOG_LEVEL_ENV] = level
    return level


def usage_line(
    command: str, positional_placeholder: str | None = None, varargs: str | None = None
) -> str:
    """Build the usage line shown with an error for ``command``."""
    line = (
        f"{literal('msb')} {literal(command)} {placeholder('[OPTIONS]')} "
        f"{placeholder(positional_placeholder or '')}"
    )
    if varargs is not None:
        line += f" {literal('[--')} {placeholder(f'{varargs}...')} {literal(']')}"
    return line


def _conflict(arg1: str, arg2: str, command: str, positional_placeholder: str | None) -> UsageError:
    return UsageError(
        f"cannot specify both `{literal('--' + arg1)}` and `{literal('--' + arg2)}` flags",
        usage_line(command, positional_placeholder),
    )


def check_trio_conflict(
    build: bool,
    sandbox: bool,
    group: bool,
    command: str,
    positional_placeholder: str | None = None,
) -> None:
    """Raise UsageError when two of the build, sandbox and group flags are set."""
    if build and sandbox:
        raise _conflict("build", "sandbox", command, positional_placeholder)
    if build and group:
        raise _conflict("build", "group", command, positional_placeholder)
    if sandbox and group:
        raise _conflict("sandbox", "group", command, positional_placeholder)


def check_unsupported_build_group(
    build: bool, group: bool, command: str, positional_placeholder: str | None = None
) -> None:
    """Raise UsageError when the not yet supported build or group flag is set."""
    if build or group:
        flags = ", ".join(f"`{literal(f)}`" for f in ("--build", "-b", "--group"))
        raise UsageError(
            f"{flags}, and `{literal('-g')}` flags are not yet supported.",
            usage_line(command, positional_placeholder),
        )


def parse_name_and_script(name_and_script: str) -> tuple[str, str | None]:
    """Split ``NAME~SCRIPT`` at the first separator; the script is None if absent."""
    name, sep, script = name_and_script.partition(SANDBOX_SCRIPT_SEPARATOR)
    return (name, script) if sep else (name_and_script, None)


def parse_duration_string(duration_str: str) -> timedelta:
    """Parse durations such as ``1s``, ``2m``, ``3h``, ``4d``, ``5w``, ``6mo``, ``7y``.

    A bare number is taken as hours.
    """
    text = duration_str.strip()
    if not text:
        raise InvalidArgumentError("Empty duration string")

    split = next((i for i, c in enumerate(text) if c not in "0123456789"), len(text))
    value_str, unit = text[:split], text[split:]

    if not value_str:
        raise InvalidArgumentError(
            f"Invalid duration format: {text}. "
            "Expected format like 1s, 2m, 3h, 4d, 5w, 6mo, 7y"
        )

    value = int(value_str)
    if value > _I64_MAX:
        raise InvalidArgumentError(f"Invalid numeric value in duration: {value_str}")
    if value > MAX_DURATION_VALUE:
        raise InvalidArgumentError(
            f"Duration value too large or negative: {value}. "
            "Maximum allowed is 8760 hours (1 year)"
        )

    try:
        return _DURATION_UNITS[unit] * value
    except KeyError:
        raise InvalidArgumentError(
            f"Invalid duration unit: {unit}. Expected one of: s, m, h, d, w, mo, y"
        ) from None


def select_init_path(path: Path | None, path_with_flag: Path | None) -> Path | None:
    """Pick the init directory given positionally or with ``--path``, but not both."""
    if path is not None and path_with_flag is not None:
        raise UsageError(
            "cannot specify path both as a positional argument and with "
            f"`{placeholder('--path')}` or `{placeholder('-p')}` flag",
            usage_line("init", "[PATH]"),
        )
    return path if path is not None else path_with_flag


def tail_lines(contents: str, tail: int | None = None) -> list[str]:
    """Split ``contents`` into lines and keep only the last ``tail`` of them."""
    if not contents:
        lines: list[str] = []
    else:
        body = contents[:-1] if contents.endswith("\n") else contents
        lines = [line[:-1] if line.endswith("\r") else line for line in body.split("\n")]

    if tail is None or tail >= len(lines):
        return lines
    return lines[len(lines) - tail :]


def check_server_key(secure: bool, key: str | None) -> None:
    """Raise UsageError when a key is given without the secure flag."""
    if not secure and key is not None:
        raise UsageError(
            f"cannot specify `{literal('--key')}` flag without `{literal('--secure')}` flag",
            usage_line("server start", "[OPTIONS]"),
            kind=_INVALID_VALUE,
        )