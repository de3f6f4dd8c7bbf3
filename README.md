# msbcli

Argument parsing, terminal styling and input checks for a tool that
manages lightweight sandboxes and the microVMs that run them.

The package is a library. It builds the `argparse` parsers for the two
front ends (the project tool `msb` and the VM runner `msbrun`),
validates what the user typed, and composes the argument list and
environment a supervisor hands to its microVM child. It uses only the
standard library.

## Modules

### `msbcli.styles`

ANSI styling for usage and error text. `Style` is a frozen dataclass of
a foreground colour code and a bold flag; `render()` and
`render_reset()` give its escape sequences. `header`, `usage`,
`literal`, `placeholder`, `error`, `valid` and `invalid` wrap a string
in the matching style. `apply_style(text, style)` applies any `Style`.
When `styles_enabled()` is false (the `TERM` environment variable is
`dumb`) text is returned unchanged.

### `msbcli.msb_args`

`build_parser()` returns the parser for the project tool, with the
subcommands `init`, `add`, `remove`, `list`, `log`, `tree`, `run` (alias
`r`), `shell`, `tmp` (alias `t`), `install` (alias `i`), `uninstall`,
`apply`, `up`, `down`, `status`, `clean`, `build`, `pull`, `push`,
`self`, `server` (with `start`, `stop` and `keygen`) and `version`, plus
the global flags `-v/--version`, `--error`, `--warn`, `--info`,
`--debug` and `--trace`.

`parse_args(argv=None)` parses a command line. For `run`, `shell`,
`tmp` and `install`, the words after `--` are stored in `args`; for
any other subcommand, words after `--` are a parse error.

`parse_key_val(s)` splits `KEY=value` at the first `=` and is used for
`--script`, `--import` and `--export`. `SelfAction` enumerates the
actions of `self`: `upgrade` and `uninstall`.

### `msbcli.msbrun_args`

`build_parser()` and `parse_args(argv=None)` for the runner's
`microvm`, `supervisor` and `server` modes. Integer options are range
checked (`--num-vcpus` and `--log-level` 0–255, `--memory-mib` a 32-bit
unsigned value, `--port` 0–65535). `--config-last-modified` takes an
ISO 8601 timestamp with an offset (or `Z`) and is converted to UTC.
Words after `--` go to `args` for `microvm` and `supervisor`; `server`
rejects them.

### `msbcli.handlers`

The checks between parsing and acting:

- `check_trio_conflict(build, sandbox, group, command, positional_placeholder)`
  raises `UsageError` when two of the three flags are set.
- `check_unsupported_build_group(build, group, command, positional_placeholder)`
  raises `UsageError` when `--build` or `--group` is used.
- `select_init_path(path, path_with_flag)` accepts the `init` directory
  positionally or with `--path`, but not both.
- `check_server_key(secure, key)` rejects `--key` without `--secure`.
- `parse_name_and_script(name_and_script)` splits `NAME~SCRIPT`.
- `parse_duration_string(duration_str)` turns `1s`, `2m`, `3h`, `4d`,
  `5w`, `6mo` or `7y` into a `timedelta`. A bare number means hours,
  a month is 30 days and a year 365. Values above 8760 and unknown
  units raise `InvalidArgumentError`.
- `tail_lines(contents, tail)` splits text into lines and keeps the
  last `tail` of them.
- `log_level_filter(args)` picks the most verbose level flag set and
  returns a filter such as `micro=debug,msb=debug`;
  `apply_log_level(args)` also stores it in the `RUST_LOG` environment
  variable.
- `usage_line(command, positional_placeholder, varargs)` builds the
  styled usage line carried by `UsageError`. `str()` of a `UsageError`
  gives the message followed by that usage line.

### `msbcli.runner`

- `resolve_rootfs(native_rootfs, overlayfs_layers)` returns a `Rootfs`
  holding either a native root directory or a tuple of overlay layers.
  Giving both, or neither, raises `RootfsError`.
- `supervisor_child_args(options)` composes the `microvm` argument list
  from parsed supervisor options, in a fixed order, with trailing
  arguments after `--`.
- `supervisor_child_env(environ=None)` returns `[("RUST_LOG", value)]`
  when that variable is set, otherwise an empty list.

## Examples

```python
from msbcli.msb_args import parse_args

args = parse_args(["run", "app~start", "--detach", "--", "--verbose"])
# args.subcommand == "run", args.name == "app~start",
# args.detach is True, args.args == ["--verbose"]
```

```python
from msbcli.handlers import InvalidArgumentError, parse_duration_string, parse_name_and_script

parse_name_and_script("app~start")   # ("app", "start")
parse_name_and_script("app")         # ("app", None)

parse_duration_string("3h")          # timedelta(hours=3)
try:
    parse_duration_string("5x")
except InvalidArgumentError as exc:
    print(exc)
```

```python
from msbcli.handlers import UsageError, check_trio_conflict

try:
    check_trio_conflict(True, True, False, "up", "[NAMES]")
except UsageError as exc:
    print(exc)
```

```python
from msbcli.msbrun_args import parse_args
from msbcli.runner import resolve_rootfs, supervisor_child_args

options = parse_args([
    "supervisor",
    "--log-dir=/tmp/logs",
    "--sandbox-db-path=/tmp/sandbox.db",
    "--sandbox-name=app",
    "--config-file=sandbox.yaml",
    "--config-last-modified=2024-01-01T00:00:00Z",
    "--native-rootfs=/srv/rootfs",
    "--exec-path=/usr/bin/python3",
    "--", "-m", "http.server",
])
rootfs = resolve_rootfs(options.native_rootfs, options.overlayfs_layer)
child_args = supervisor_child_args(options)
```

## What this package does not do

It parses and checks input only. It installs no commands, and it does
not start or supervise microVMs, run a sandbox server, read or write
project configuration files, create project directories, pull or push
images, generate API keys or show log files. Those actions belong to the
program that uses these parsers and helpers.