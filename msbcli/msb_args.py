"""Argument parsing for the msb command, which manages sandboxes and images."""

from __future__ import annotations

import argparse
import sys
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Sequence

from msbcli.msbrun_args import _u8, _u16, _u32

_ARGS_SEPARATOR = "--"
_GLOBAL_FLAGS = (
    ("-v", "--version", "Show version"),
    (None, "--error", "Show logs with error level"),
    (None, "--warn", "Show logs with warn level"),
    (None, "--info", "Show logs with info level"),
    (None, "--debug", "Show logs with debug level"),
    (None, "--trace", "Show logs with trace level"),
)
_TRAILING_ARGS_COMMANDS = frozenset({"run", "shell", "tmp", "install"})


class SelfAction(str, Enum):
    """Actions for the ``self`` subcommand."""

    UPGRADE = "upgrade"
    UNINSTALL = "uninstall"

    def __str__(self) -> str:
        return self.value


def parse_key_val(s: str) -> tuple[str, str]:
    """Split ``KEY=value`` at the first ``=`` into a key and a value."""
    key, sep, value = s.partition("=")
    if not sep:
        raise argparse.ArgumentTypeError(f"invalid KEY=value: no `=` found in `{s}`")
    return key, value


def _global_parent() -> argparse.ArgumentParser:
    # Defaults are suppressed so that flags given before the subcommand are kept.
    parent = argparse.ArgumentParser(add_help=False)
    for short, long, help_text in _GLOBAL_FLAGS:
        names = [n for n in (short, long) if n]
        parent.add_argument(*names, action="store_true", default=argparse.SUPPRESS, help=help_text)
    return parent


def _add_kind_flags(parser: argparse.ArgumentParser, *, group: bool = True) -> None:
    parser.add_argument(
        "-s", "--sandbox", action="store_true", help="Whether command should apply for a sandbox"
    )
    parser.add_argument(
        "-b", "--build", action="store_true", help="Whether command should apply for a build sandbox"
    )
    if group:
        parser.add_argument(
            "-g", "--group", action="store_true", help="Whether command should apply for a group"
        )


def _add_project_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-p", "--path", type=Path, help="Project path")
    parser.add_argument("-c", "--config", help="Config path")


def _add_mapping_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--volume",
        dest="volumes",
        metavar="VOLUME",
        action="append",
        default=[],
        help="Volume mappings, format: <host_path>:<container_path>",
    )
    parser.add_argument(
        "--port",
        dest="ports",
        metavar="PORT",
        action="append",
        default=[],
        help="Port mappings, format: <host_port>:<container_port>",
    )
    parser.add_argument(
        "--env",
        dest="envs",
        metavar="ENV",
        action="append",
        default=[],
        help="Environment variables, format: <key>=<value>",
    )


def _add_image_run_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-i", "--image", action="store_true", help="Whether command should apply for a sandbox"
    )
    parser.add_argument("name", metavar="NAME[~SCRIPT]", help="Name of the image")


def _add_image_run_settings(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--cpus", "--cpu", dest="cpus", type=_u8, help="Number of CPUs")
    parser.add_argument("--memory", type=_u32, help="Memory in MB")
    _add_mapping_options(parser)
    parser.add_argument("--workdir", type=PurePosixPath, help="Working directory")
    parser.add_argument("--scope", help="Network scope, options: local, public, any, none")
    parser.add_argument("-e", "--exec", help="Execute a command within the sandbox")


def _add_key_val_option(parser: argparse.ArgumentParser, flag: str, dest: str, help_text: str) -> None:
    parser.add_argument(
        flag,
        dest=dest,
        metavar=dest[:-1].upper(),
        type=parse_key_val,
        action="append",
        default=[],
        help=help_text,
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the msb argument parser."""
    parent = _global_parent()
    parser = argparse.ArgumentParser(
        prog="msb",
        description="msb (microsandbox) is a tool for managing lightweight sandboxes and images",
        allow_abbrev=False,
    )
    for short, long, help_text in _GLOBAL_FLAGS:
        names = [n for n in (short, long) if n]
        parser.add_argument(*names, action="store_true", default=False, help=help_text)

    subparsers = parser.add_subparsers(dest="subcommand", metavar="COMMAND")

    def add(name: str, help_text: str, aliases: Sequence[str] = ()) -> argparse.ArgumentParser:
        sub = subparsers.add_parser(
            name, aliases=list(aliases), help=help_text, parents=[parent], allow_abbrev=False
        )
        sub.set_defaults(subcommand=name)
        return sub

    init = add("init", "Initialize a new microsandbox project")
    init.add_argument(
        "path", nargs="?", type=Path, metavar="PATH",
        help="Specifies the directory to initialize the project in",
    )
    init.add_argument(
        "-p", "--path", dest="path_with_flag", type=Path, metavar="PATH",
        help="Specifies the directory to initialize the project in",
    )

    add_cmd = add("add", "Add a new sandbox to the project")
    _add_kind_flags(add_cmd)
    add_cmd.add_argument("names", nargs="+", help="Names of components to add")
    add_cmd.add_argument("-i", "--image", required=True, help="Image to use")
    add_cmd.add_argument("--memory", type=_u32, help="Memory in MiB")
    add_cmd.add_argument("--cpus", "--cpu", dest="cpus", type=_u32, help="Number of CPUs")
    _add_mapping_options(add_cmd)
    add_cmd.add_argument("--env-file", type=PurePosixPath, help="Environment file")
    add_cmd.add_argument("--depends-on", action="append", default=[], help="Dependencies")
    add_cmd.add_argument("--workdir", type=PurePosixPath, help="Working directory")
    add_cmd.add_argument("--shell", help="Shell to use")
    _add_key_val_option(add_cmd, "--script", "scripts", "Scripts to add")
    _add_key_val_option(add_cmd, "--import", "imports", "Files to import, format: <name>=<path>")
    _add_key_val_option(add_cmd, "--export", "exports", "Files to export, format: <name>=<path>")
    add_cmd.add_argument("--scope", help="Network scope, options: local, public, any, none")
    _add_project_options(add_cmd)

    remove = add("remove", "Remove a sandbox from the project")
    _add_kind_flags(remove)
    remove.add_argument("names", nargs="+", help="Names of components to remove")
    _add_project_options(remove)

    list_cmd = add("list", "List sandboxes in the project")
    _add_kind_flags(list_cmd)
    _add_project_options(list_cmd)

    log = add("log", "Show logs of a running build, sandbox, or group")
    _add_kind_flags(log)
    log.add_argument("name", help="Name of the component")
    _add_project_options(log)
    log.add_argument("-f", "--follow", action="store_true", help="Follow the logs")
    log.add_argument("-n", "--tail", type=_u32, help="Number of lines to show from the end")

    tree = add("tree", "Show tree of layers that make up a sandbox")
    _add_kind_flags(tree)
    tree.add_argument("names", nargs="+", help="Names of components to show")
    tree.add_argument("-L", dest="level", type=_u32, help="Maximum depth level")

    run = add("run", "Run a sandbox script", aliases=("r",))
    _add_kind_flags(run, group=False)
    run.add_argument("name", metavar="NAME[~SCRIPT]", help="Name of the component")
    _add_project_options(run)
    run.add_argument("-d", "--detach", action="store_true", help="Run sandbox in the background")
    run.add_argument("-e", "--exec", help="Execute a command within the sandbox")

    shell = add("shell", "Open a shell in a sandbox")
    _add_kind_flags(shell, group=False)
    shell.add_argument("name", help="Name of the component")
    _add_project_options(shell)
    shell.add_argument("-d", "--detach", action="store_true", help="Run sandbox in the background")

    tmp = add("tmp", "Create a temporary sandbox", aliases=("t",))
    _add_image_run_options(tmp)
    _add_image_run_settings(tmp)

    install = add("install", "Install a script from an image", aliases=("i",))
    _add_image_run_options(install)
    install.add_argument("alias", nargs="?", help="Alias for the script")
    _add_image_run_settings(install)

    uninstall = add("uninstall", "Uninstall a script")
    uninstall.add_argument("script", nargs="?", help="Script to uninstall")

    apply = add("apply", "Start or stop project sandboxes based on configuration")
    _add_project_options(apply)

    for name, help_text in (("up", "Start project sandboxes"), ("down", "Stop project sandboxes")):
        sub = add(name, help_text)
        _add_kind_flags(sub)
        sub.add_argument("names", nargs="+", help=f"Names of components to {'start' if name == 'up' else 'stop'}")
        _add_project_options(sub)

    status = add("status", "Show running status")
    _add_kind_flags(status)
    status.add_argument("name", help="Name of the component")
    _add_project_options(status)

    clean = add("clean", "Clean cached sandbox layers, metadata, etc.")
    clean.add_argument("--global", dest="global_", action="store_true",
                       help="Clean globally. This cleans $MICROSANDBOX_HOME")
    clean.add_argument("--all", action="store_true", help="Clean all")
    clean.add_argument("-p", "--path", type=Path, help="Project path")

    build = add("build", "Build images")
    build.add_argument("-b", "--build", action="store_true", help="Build from build definition")
    build.add_argument("-s", "--sandbox", action="store_true", help="Build from sandbox")
    build.add_argument("-g", "--group", action="store_true", help="Build from group")
    build.add_argument("names", nargs="+", help="Names of components to build")
    build.add_argument("--snapshot", action="store_true", help="Create a snapshot")

    pull = add("pull", "Pull an image")
    pull.add_argument("-i", "--image", action="store_true",
                      help="Whether command should apply for an image")
    pull.add_argument("-G", "--image-group", action="store_true",
                      help="Whether command should apply for an image group")
    pull.add_argument("name", help="Name of the image or image group")
    pull.add_argument("-L", "--layer-path", type=Path, help="Path to store the layer files")

    push = add("push", "Push an image")
    push.add_argument("-i", "--image", action="store_true",
                      help="Whether command should apply for an image")
    push.add_argument("-G", "--image-group", action="store_true",
                      help="Whether command should apply for an image group")
    push.add_argument("name", help="Name of the image or image group")

    self_cmd = add("self", "Manage microsandbox itself")
    self_cmd.add_argument(
        "action", type=SelfAction, choices=list(SelfAction),
        metavar="{" + ",".join(a.value for a in SelfAction) + "}", help="Action to perform",
    )

    server = add("server", "Start a server for orchestrating sandboxes")
    server_sub = server.add_subparsers(dest="server_subcommand", required=True, metavar="COMMAND")
    start = server_sub.add_parser("start", help="Start the sandbox server", allow_abbrev=False)
    start.add_argument("--port", type=_u16, help="Port to listen on")
    start.add_argument("-p", "--path", type=Path, help="Path to the namespace directory")
    start.add_argument("--disable-default", action="store_true", help="Disable default namespace")
    start.add_argument("--secure", action="store_true", help="Make server require a secure API key")
    start.add_argument("--key", help="Set secret key for server. Automatically generated if not provided.")
    start.add_argument("-d", "--detach", action="store_true", help="Run server in the background")
    server_sub.add_parser("stop", help="Stop the sandbox server", allow_abbrev=False)
    keygen = server_sub.add_parser("keygen", help="Generate a new API key", allow_abbrev=False)
    keygen.add_argument("--expire", help="Token expiration duration. format: 1s, 2m, 3h, 4d, 5w, 6mo, 7y")

    add("version", "Version of microsandbox")

    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse msb arguments; for commands that take them, words after ``--`` go to ``args``."""
    tokens = list(sys.argv[1:] if argv is None else argv)
    if _ARGS_SEPARATOR in tokens:
        split = tokens.index(_ARGS_SEPARATOR)
        head, trailing = tokens[:split], tokens[split + 1 :]
    else:
        head, trailing = tokens, []

    parser = build_parser()
    namespace = parser.parse_args(head)
    if namespace.subcommand in _TRAILING_ARGS_COMMANDS:
        namespace.args = trailing
    elif trailing:
        parser.error(f"unexpected arguments after '--': {' '.join(trailing)}")
    return namespace