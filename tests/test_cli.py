"""Tests for the sysmaster-testkit command line."""

from unittest.mock import patch

import pytest
import yaml
from typer.testing import CliRunner

from sysmaster_testkit import __version__
from sysmaster_testkit.cli.main import app

runner = CliRunner()

ACTIVE_OUTPUT = "foo.service\n  Loaded: loaded\n  Active: active (running)\n  PID:\n    101 foo\n    202 foo\n"


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "harness.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "lib_path": str(tmp_path / "lib"),
                "log_path": str(tmp_path / "sysmaster.log"),
                "daemon": {"units_dir": str(tmp_path / "no-units"), "grace_period": 0},
                "poll": {"attempts": 2, "interval": 0},
            }
        )
    )
    return path


@pytest.fixture
def log_file(tmp_path):
    path = tmp_path / "sysmaster.log"
    path.write_bytes(b"ready\n\x00\x00listening\n")
    return path


class TestCheckLogCommand:
    def test_patterns_found(self, log_file):
        result = runner.invoke(app, ["check-log", str(log_file), "^ready$", "^listening$"])

        assert result.exit_code == 0

    def test_pattern_missing(self, log_file):
        result = runner.invoke(app, ["check-log", str(log_file), "^ready$", "^stopped$"])

        assert result.exit_code == 1
        assert "^stopped$" in result.output

    def test_no_patterns(self, log_file):
        result = runner.invoke(app, ["check-log", str(log_file)])

        assert result.exit_code == 1
        assert "Parameter missing" in result.output


class TestStateCommands:
    def test_check_status_passes(self, config_file):
        with patch("sysmaster_testkit.core.sctl.SctlClient.status", return_value=ACTIVE_OUTPUT):
            result = runner.invoke(app, ["-c", str(config_file), "check-status", "foo.service", "active"])

        assert result.exit_code == 0

    def test_check_status_fails(self, config_file):
        with patch("sysmaster_testkit.core.sctl.SctlClient.status", return_value=ACTIVE_OUTPUT) as status:
            result = runner.invoke(app, ["-c", str(config_file), "check-status", "foo.service", "failed"])

        assert result.exit_code == 1
        assert status.call_count == 2

    def test_check_load(self, config_file):
        with patch("sysmaster_testkit.core.sctl.SctlClient.status", return_value=ACTIVE_OUTPUT):
            result = runner.invoke(app, ["-c", str(config_file), "check-load", "foo.service", "loaded"])

        assert result.exit_code == 0

    def test_missing_sctl(self, tmp_path):
        path = tmp_path / "harness.yaml"
        path.write_text("poll:\n  sctl: definitely-not-a-real-sctl-binary\n  interval: 0\n")

        result = runner.invoke(app, ["-c", str(path), "check-status", "foo.service", "active"])

        assert result.exit_code == 1

    def test_pids(self, config_file):
        with patch("sysmaster_testkit.core.sctl.SctlClient.status", return_value=ACTIVE_OUTPUT):
            result = runner.invoke(app, ["-c", str(config_file), "pids", "foo.service"])

        assert result.exit_code == 0
        assert result.output.splitlines()[-2:] == ["101", "202"]


class TestRunDaemonCommand:
    def test_install_failure(self, config_file):
        result = runner.invoke(app, ["-c", str(config_file), "run-daemon"])

        assert result.exit_code == 1
        assert "failed to install unit files" in result.output


class TestConfigCommands:
    def test_show_yaml(self, config_file, tmp_path):
        result = runner.invoke(app, ["-c", str(config_file), "config", "show", "--yaml"])

        assert result.exit_code == 0
        dumped = yaml.safe_load(result.output)
        assert dumped["lib_path"] == str(tmp_path / "lib")
        assert dumped["poll"]["attempts"] == 2

    def test_show_table(self, config_file):
        result = runner.invoke(app, ["-c", str(config_file), "config", "show"])

        assert result.exit_code == 0
        assert "poll.attempts" in result.output

    def test_invalid_config(self, tmp_path):
        path = tmp_path / "harness.yaml"
        path.write_text("poll:\n  attempts: 0\n")

        result = runner.invoke(app, ["-c", str(path), "config", "show"])

        assert result.exit_code == 1


def test_version():
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output
