import argparse
import os
from datetime import timedelta
from pathlib import Path

import pytest

from msbcli.handlers import (
    InvalidArgumentError,
    UsageError,
    apply_log_level,
    check_server_key,
    check_trio_conflict,
    check_unsupported_build_group,
    log_level_filter,
    parse_duration_string,
    parse_name_and_script,
    select_init_path,
    tail_lines,
    usage_line,
)
from msbcli.msb_args import parse_args


@pytest.fixture(autouse=True)
def plain_terminal(monkeypatch):
    monkeypatch.setenv("TERM", "dumb")


def _flags(**levels):
    base = {name: False for name in ("trace", "debug", "info", "warn", "error")}
    base.update(levels)
    return argparse.Namespace(**base)


def test_log_level_none_when_no_flags():
    assert log_level_filter(_flags()) is None


def test_log_level_most_verbose_wins():
    result = log_level_filter(_flags(trace=True, error=True))
    assert result == "micro=trace,msb=trace"


def test_log_level_from_parsed_arguments():
    result = log_level_filter(parse_args(["--warn", "list"]))
    assert result is not None
    assert "warn" in result
    assert "msb=" in result


def test_apply_log_level_sets_environment(monkeypatch):
    monkeypatch.setenv("RUST_LOG", "prior")
    result = apply_log_level(_flags(info=True))
    assert os.environ["RUST_LOG"] == result
    assert "info" in result


def test_apply_log_level_leaves_environment_when_unset(monkeypatch):
    monkeypatch.setenv("RUST_LOG", "keep")
    assert apply_log_level(_flags()) is None
    assert os.environ["RUST_LOG"] == "keep"


def test_usage_line_plain():
    assert usage_line("add", "[NAMES]") == "msb add [OPTIONS] [NAMES]"


def test_usage_line_with_varargs():
    line = usage_line("run", "[NAME]", "<ARGS>")
    assert line.startswith("msb run [OPTIONS] [NAME]")
    assert line.endswith("[-- <ARGS>... ]")


def test_usage_line_styled(monkeypatch):
    monkeypatch.setenv("TERM", "xterm-256color")
    line = usage_line("list")
    assert "\x1b[34m" in line
    assert "\x1b[32m" in line
    assert "list" in line


@pytest.mark.parametrize(
    "build,sandbox,group,first,second",
    [
        (True, True, False, "--build", "--sandbox"),
        (True, False, True, "--build", "--group"),
        (False, True, True, "--sandbox", "--group"),
        (True, True, True, "--build", "--sandbox"),
    ],
)
def test_trio_conflict(build, sandbox, group, first, second):
    with pytest.raises(UsageError) as info:
        check_trio_conflict(build, sandbox, group, "up", "[NAMES]")
    assert first in info.value.message
    assert second in info.value.message
    assert info.value.usage == usage_line("up", "[NAMES]")


@pytest.mark.parametrize(
    "build,sandbox,group",
    [(False, False, False), (True, False, False), (False, True, False), (False, False, True)],
)
def test_trio_no_conflict(build, sandbox, group):
    assert check_trio_conflict(build, sandbox, group, "up") is None


@pytest.mark.parametrize("build,group", [(True, False), (False, True), (True, True)])
def test_unsupported_build_group(build, group):
    with pytest.raises(UsageError) as info:
        check_unsupported_build_group(build, group, "list")
    assert "not yet supported" in info.value.message
    assert "--group" in info.value.message


def test_supported_without_build_or_group():
    assert check_unsupported_build_group(False, False, "list") is None


def test_parse_name_and_script():
    assert parse_name_and_script("app~start") == ("app", "start")
    assert parse_name_and_script("app") == ("app", None)
    assert parse_name_and_script("app~a~b") == ("app", "a~b")
    assert parse_name_and_script("app~") == ("app", "")


@pytest.mark.parametrize(
    "text,expected",
    [
        ("1s", timedelta(seconds=1)),
        ("2m", timedelta(minutes=2)),
        ("3h", timedelta(hours=3)),
        ("4d", timedelta(days=4)),
        ("5w", timedelta(weeks=5)),
        ("6mo", timedelta(days=6 * 30)),
        ("7y", timedelta(days=7 * 365)),
        ("12", timedelta(hours=12)),
        ("  8h  ", timedelta(hours=8)),
        ("8760", timedelta(hours=8760)),
    ],
)
def test_parse_duration(text, expected):
    assert parse_duration_string(text) == expected


@pytest.mark.parametrize("text", ["", "   ", "h", "-5h", "8761h", "5x", "5mm", "99999999999999999999"])
def test_parse_duration_errors(text):
    with pytest.raises(InvalidArgumentError):
        parse_duration_string(text)


def test_parse_duration_unit_message():
    with pytest.raises(InvalidArgumentError, match="Invalid duration unit: q"):
        parse_duration_string("3q")


def test_select_init_path():
    assert select_init_path(Path("a"), None) == Path("a")
    assert select_init_path(None, Path("b")) == Path("b")
    assert select_init_path(None, None) is None


def test_select_init_path_conflict():
    with pytest.raises(UsageError) as info:
        select_init_path(Path("a"), Path("b"))
    assert "--path" in info.value.message
    assert info.value.usage == usage_line("init", "[PATH]")


def test_tail_lines_all():
    assert tail_lines("a\nb\nc\n") == ["a", "b", "c"]
    assert tail_lines("") == []
    assert tail_lines("a\r\nb") == ["a", "b"]


def test_tail_lines_last_n():
    assert tail_lines("a\nb\nc\n", 2) == ["b", "c"]
    assert tail_lines("a\nb\nc\n", 10) == ["a", "b", "c"]
    assert tail_lines("a\nb\nc\n", 0) == []


def test_tail_lines_keeps_blank_lines():
    assert tail_lines("a\n\nb\n") == ["a", "", "b"]
    assert tail_lines("\n") == [""]


def test_server_key_requires_secure():
    with pytest.raises(UsageError) as info:
        check_server_key(False, "secret")
    assert "--secure" in info.value.message
    assert info.value.kind != "argument_conflict"


def test_server_key_allowed():
    assert check_server_key(True, "secret") is None
    assert check_server_key(False, None) is None


def test_usage_error_str_contains_parts():
    err = UsageError("bad thing", "msb x")
    text = str(err)
    assert "bad thing" in text
    assert text.endswith("msb x")