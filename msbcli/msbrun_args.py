"""Argument parsing for the msbrun command: microvm, supervisor and server modes."""

from __future__ import annotations

import argparse
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Sequence

_ARGS_SEPARATOR = "--"


def _unsigned(bits: int) -> Callable[[str], int]:
    limit = (1 << bits) - 1

    def convert(value: str) -> int:
        try:
            number = int(value, 10)
        except ValueError:
            raise argparse.ArgumentTypeError(f"invalid digit found in string: {value!r}") from None
        if not 0 <= number <= limit:
            raise argparse.ArgumentTypeError(f"{value} is not in 0..={limit}")
        return number

    convert.__name__ = f"u{bits}"
    return convert


_u8 = _unsigned(8)
_u16 = _unsigned(16)
_u32 = _unsigned(32)


def _utc_datetime(value: str) -> datetime:
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid timestamp: {value!r}") from None
    if parsed.tzinfo is None:
        raise argparse.ArgumentTypeError(f"timestamp has no timezone offset: {value!r}")
    return parsed.astimezone(timezone.utc)


def _add_sandbox_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--log-level", type=_u8, help="Log level")
    parser.add_argument("--native-rootfs", type=Path, help="Native root filesystem path")
    parser.add_argument(
        "--overlayfs-layer",
        type=Path,
        action="append",
        default=[],
        help="Overlayfs root filesystem layers",
    )
    parser.add_argument("--num-vcpus", type=_u8, help="Number of virtual CPUs")
    parser.add_argument("--memory-mib", type=_u32, help="Memory size in MiB")
    parser.add_argument("--workdir-path", help="Working directory path")
    parser.add_argument("--exec-path", required=True, help="Executable path")
    parser.add_argument(
        "--env", action="append", default=[], help="Environment variables (KEY=VALUE format)"
    )
    parser.add_argument(
        "--mapped-dir", action="append", default=[], help="Directory mappings (host:guest format)"
    )
    parser.add_argument(
        "--port-map", action="append", default=[], help="Port mappings (host:guest format)"
    )
    parser.add_argument("--scope", help="Network communication scope")
    parser.add_argument("--ip", help="Assigned IP address")
    parser.add_argument("--subnet", help="Assigned subnet")


def build_parser() -> argparse.ArgumentParser:
    """Build the msbrun argument parser."""
    parser = argparse.ArgumentParser(
        prog="msbrun",
        description="Arguments for the msbrun command",
        allow_abbrev=False,
    )
    subparsers = parser.add_subparsers(dest="subcommand", required=True, metavar="COMMAND")

    microvm = subparsers.add_parser("microvm", help="Run as microvm", allow_abbrev=False)
    _add_sandbox_options(microvm)

    supervisor = subparsers.add_parser("supervisor", help="Run as supervisor", allow_abbrev=False)
    supervisor.add_argument("--log-dir", type=Path, required=True, help="Directory for log files")
    supervisor.add_argument(
        "--sandbox-db-path",
        type=Path,
        required=True,
        help="Path to the sandbox metrics and metadata database file",
    )
    supervisor.add_argument("--sandbox-name", required=True, help="Name of the child process")
    supervisor.add_argument("--config-file", required=True, help="Path to the sandbox config file")
    supervisor.add_argument(
        "--config-last-modified",
        type=_utc_datetime,
        required=True,
        help="Last modified timestamp of the sandbox config file",
    )
    supervisor.add_argument(
        "--forward-output",
        action="store_true",
        default=True,
        help="Whether to forward output to stdout/stderr",
    )
    _add_sandbox_options(supervisor)

    server = subparsers.add_parser("server", help="Start the sandbox server", allow_abbrev=False)
    server.add_argument("--port", type=_u16, help="Port to listen on")
    server.add_argument("--path", type=Path, help="Path to the namespace directory")
    server.add_argument(
        "--disable-default", action="store_true", default=False, help="Disable default namespace"
    )
    server.add_argument("--key", help="Set server secret key to authenticate API requests")

    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse msbrun arguments; anything after ``--`` ends up in ``args``."""
    tokens = list(sys.argv[1:] if argv is None else argv)
    if _ARGS_SEPARATOR in tokens:
        split = tokens.index(_ARGS_SEPARATOR)
        head, trailing = tokens[:split], tokens[split + 1 :]
    else:
        head, trailing = tokens, []

    parser = build_parser()
    namespace = parser.parse_args(head)
    if trailing and namespace.subcommand == "server":
        parser.error(f"unexpected arguments after '--': {' '.join(trailing)}")
    if namespace.subcommand != "server":
        namespace.args = trailing
    return namespace