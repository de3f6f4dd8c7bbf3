from datetime import datetime, timezone
from pathlib import Path

import pytest

from msbcli.msbrun_args import build_parser, parse_args


def test_microvm_full_options():
    ns = parse_args(
        [
            "microvm",
            "--log-level=3",
            "--native-rootfs=/path/to/rootfs",
            "--num-vcpus=2",
            "--memory-mib=1024",
            "--workdir-path=/app",
            "--exec-path=/usr/bin/python3",
            "--mapped-dir=/host/path:/guest/path",
            "--port-map=8080:80",
            "--scope=group",
            "--ip=192.168.1.1",
            "--subnet=192.168.1.0/24",
            "--env=KEY=VALUE",
            "--",
            "-m",
            "http.server",
            "8080",
        ]
    )
    assert ns.subcommand == "microvm"
    assert ns.log_level == 3
    assert ns.native_rootfs == Path("/path/to/rootfs")
    assert ns.num_vcpus == 2
    assert ns.memory_mib == 1024
    assert ns.workdir_path == "/app"
    assert ns.exec_path == "/usr/bin/python3"
    assert ns.mapped_dir == ["/host/path:/guest/path"]
    assert ns.port_map == ["8080:80"]
    assert ns.scope == "group"
    assert ns.ip == "192.168.1.1"
    assert ns.subnet == "192.168.1.0/24"
    assert ns.env == ["KEY=VALUE"]
    assert ns.args == ["-m", "http.server", "8080"]


def test_microvm_defaults():
    ns = parse_args(["microvm", "--exec-path", "/bin/sh"])
    assert ns.native_rootfs is None
    assert ns.overlayfs_layer == []
    assert ns.env == []
    assert ns.mapped_dir == []
    assert ns.port_map == []
    assert ns.num_vcpus is None
    assert ns.args == []


def test_repeated_overlay_layers_keep_order():
    ns = parse_args(
        ["microvm", "--exec-path=/bin/sh", "--overlayfs-layer=/a", "--overlayfs-layer=/b"]
    )
    assert ns.overlayfs_layer == [Path("/a"), Path("/b")]


def test_missing_exec_path_is_an_error():
    with pytest.raises(SystemExit):
        parse_args(["microvm"])


def test_positional_without_separator_is_an_error():
    with pytest.raises(SystemExit):
        parse_args(["microvm", "--exec-path=/bin/sh", "extra"])


@pytest.mark.parametrize("value", ["256", "-1", "two"])
def test_u8_bounds(value):
    with pytest.raises(SystemExit):
        parse_args(["microvm", "--exec-path=/bin/sh", f"--num-vcpus={value}"])


def test_u8_upper_bound_accepted():
    assert parse_args(["microvm", "--exec-path=/bin/sh", "--num-vcpus=255"]).num_vcpus == 255


def _supervisor(*extra):
    return [
        "supervisor",
        "--log-dir=/path/to/logs",
        "--sandbox-db-path=/path/to/msbrun.db",
        "--sandbox-name=my_vm",
        "--config-file=microsandbox.yaml",
        "--exec-path=/usr/bin/python3",
        *extra,
    ]


def test_supervisor_parses_timestamp_in_utc():
    ns = parse_args(_supervisor("--config-last-modified=2024-01-02T03:04:05+02:00"))
    assert ns.config_last_modified == datetime(2024, 1, 2, 1, 4, 5, tzinfo=timezone.utc)
    assert ns.config_last_modified.utcoffset().total_seconds() == 0
    assert ns.log_dir == Path("/path/to/logs")
    assert ns.sandbox_name == "my_vm"
    assert ns.forward_output is True


def test_supervisor_accepts_z_suffix_and_trailing_args():
    ns = parse_args(_supervisor("--config-last-modified=2024-01-02T03:04:05Z", "--", "x"))
    assert ns.config_last_modified == datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    assert ns.args == ["x"]


def test_supervisor_rejects_naive_timestamp():
    with pytest.raises(SystemExit):
        parse_args(_supervisor("--config-last-modified=2024-01-02T03:04:05"))


def test_supervisor_requires_timestamp():
    with pytest.raises(SystemExit):
        parse_args(_supervisor())


def test_server_options():
    ns = parse_args(
        ["server", "--port", "8080", "--path", "/ns", "--disable-default", "--key", "secret"]
    )
    assert ns.port == 8080
    assert ns.path == Path("/ns")
    assert ns.disable_default is True
    assert ns.key == "secret"


def test_server_defaults():
    ns = parse_args(["server"])
    assert ns.port is None
    assert ns.disable_default is False
    assert ns.key is None


def test_server_port_out_of_range():
    with pytest.raises(SystemExit):
        parse_args(["server", "--port", "65536"])


def test_subcommand_required():
    with pytest.raises(SystemExit):
        parse_args([])


def test_no_abbreviated_options():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["server", "--disable"])