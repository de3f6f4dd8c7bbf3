"""Supervisor-side helpers for msbrun: root filesystem choice and child process setup."""

from __future__ import annotations

import argparse
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping

LOG_LEVEL_ENV = "RUST_LOG"
MICROVM_SUBCOMMAND = "microvm"
_ARGS_SEPARATOR = "--"

# Optional single-valued options forwarded to the microvm child, in order.
_SINGLE_OPTIONS = (
    ("num_vcpus", "--num-vcpus"),
    ("memory_mib", "--memory-mib"),
    ("workdir_path", "--workdir-path"),
    ("native_rootfs", "--native-rootfs"),
)
# Repeatable options forwarded to the microvm child, in order.
_REPEATED_OPTIONS = (
    ("overlayfs_layer", "--overlayfs-layer"),
    ("env", "--env"),
    ("mapped_dir", "--mapped-dir"),
    ("port_map", "--port-map"),
)
# Optional options forwarded after the repeatable ones, in order.
_TRAILING_OPTIONS = (
    ("scope", "--scope"),
    ("ip", "--ip"),
    ("subnet", "--subnet"),
    ("log_level", "--log-level"),
)


class RootfsError(ValueError):
    """The root filesystem options given are missing or contradictory."""


@dataclass(frozen=True)
class Rootfs:
    """The root filesystem of a microVM: a native directory or a stack of overlay layers."""

    native: Path | None = None
    overlayfs_layers: tuple[Path, ...] = ()

    def __post_init__(self) -> None:
        if self.native is not None and self.overlayfs_layers:
            raise RootfsError("Cannot specify both native_rootfs and overlayfs_rootfs")
        if self.native is None and not self.overlayfs_layers:
            raise RootfsError("Must specify either native_rootfs or overlayfs_rootfs")

    @property
    def is_native(self) -> bool:
        return self.native is not None

    @property
    def is_overlayfs(self) -> bool:
        return bool(self.overlayfs_layers)


def resolve_rootfs(
    native_rootfs: Path | str | None, overlayfs_layers: Iterable[Path | str] = ()
) -> Rootfs:
    """Choose the root filesystem from exactly one of a native path or overlay layers."""
    layers = tuple(Path(layer) for layer in overlayfs_layers)
    native = Path(native_rootfs) if native_rootfs is not None else None
    return Rootfs(native=native, overlayfs_layers=layers)


def supervisor_child_args(options: argparse.Namespace) -> list[str]:
    """Compose the command-line arguments of the microvm child started by the supervisor."""
    child_args = [MICROVM_SUBCOMMAND, f"--exec-path={options.exec_path}"]

    for attr, flag in _SINGLE_OPTIONS:
        value = getattr(options, attr, None)
        if value is not None:
            child_args.append(f"{flag}={value}")

    for attr, flag in _REPEATED_OPTIONS:
        child_args.extend(f"{flag}={value}" for value in getattr(options, attr, None) or ())

    for attr, flag in _TRAILING_OPTIONS:
        value = getattr(options, attr, None)
        if value is not None:
            child_args.append(f"{flag}={value}")

    trailing = list(getattr(options, "args", None) or ())
    if trailing:
        child_args.append(_ARGS_SEPARATOR)
        child_args.extend(trailing)

    return child_args


def supervisor_child_env(environ: Mapping[str, str] | None = None) -> list[tuple[str, str]]:
    """Return the environment passed to the child: the log filter, only if it is set."""
    source = os.environ if environ is None else environ
    if LOG_LEVEL_ENV in source:
        return [(LOG_LEVEL_ENV, source[LOG_LEVEL_ENV])]
    return []