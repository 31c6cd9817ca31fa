"""Tests for the command line entry point."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from conftest import free_port
from ledgersession.cli import main
from ledgersession.config import AppConfig, EndpointConfig, NetworkEndpointsConfig, TimingConfig, save_config


def _write_config(tmp_path: Path) -> Path:
    config = AppConfig(
        credential_root=tmp_path / "credentials",
        profile_root=tmp_path / "profiles",
        endpoints=NetworkEndpointsConfig(
            orderer=EndpointConfig(host="127.0.0.1", port=free_port()),
        ),
        timing=TimingConfig(port_wait_secs=0, probe_interval=0.0625, grace_period=0.0, connect_timeout=0.25),
    )
    path = tmp_path / "config.toml"
    save_config(config, path)
    return path


def test_profile_command_prints_options(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    config_path = _write_config(tmp_path)

    code = main(["--config", str(config_path), "profile", "--mode", "networked", "--name", "cli-net"], environ={})

    assert code == 0
    options = json.loads(capsys.readouterr().out)
    assert options["type"] == "hlf"
    assert options["keyValStore"] == str(tmp_path / "credentials" / "cli-net")
    assert (tmp_path / "credentials" / "cli-net").is_dir()


def test_wait_command_succeeds_immediately_for_embedded(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code = main(["--config", str(tmp_path / "missing.toml"), "wait", "--mode", "embedded"], environ={})

    assert code == 0
    assert "ready in 0.0s" in capsys.readouterr().out


def test_wait_command_reports_timeout(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    config_path = _write_config(tmp_path)

    code = main(["--config", str(config_path), "wait", "--mode", "networked"], environ={})

    assert code == 1
    assert "not reachable" in capsys.readouterr().err


def test_invalid_override_exits_with_usage_error(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code = main(
        ["--config", str(tmp_path / "missing.toml"), "profile", "--mode", "web"],
        environ={"LEDGER_PORT_WAIT_SECS": "later"},
    )

    assert code == 2
    assert "LEDGER_PORT_WAIT_SECS" in capsys.readouterr().err


def test_negative_max_wait_exits_with_usage_error(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code = main(
        ["--config", str(tmp_path / "missing.toml"), "wait", "--mode", "embedded", "--max-wait=-5"],
        environ={},
    )

    assert code == 2
    assert "port_wait_secs" in capsys.readouterr().err
