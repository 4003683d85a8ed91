"""
CLI tests for ``vestlock locking`` commands.
"""

import json
import logging

import pytest
import yaml
from click.testing import CliRunner

from vestlock import __version__
from vestlock.cli.main import cli

from locking_helpers import BENEFICIARIES, CLIFF, DURATION, OWNER, START, TREASURY


@pytest.fixture(autouse=True)
def reset_package_logger():
    yield
    package_logger = logging.getLogger("vestlock")
    package_logger.handlers = []
    package_logger.setLevel(logging.NOTSET)


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def manifest_path(tmp_path):
    path = tmp_path / "deployment.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "owner": OWNER,
                "funding_address": TREASURY,
                "beneficiaries": BENEFICIARIES,
                "start_time": START,
                "locking_duration": DURATION,
                "cliff_duration": CLIFF,
                "funding_amount": 1_000_000,
                "steps": [
                    {"at": START, "action": "withdraw", "caller": OWNER, "basis_points": 9_500},
                    {"at": START + DURATION, "action": "release", "caller": BENEFICIARIES[0]},
                    {"action": "withdraw_amount", "caller": OWNER, "amount": 1, "expect_error": True},
                ],
            }
        )
    )
    return path


def test_version(runner):
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_schedule_json(runner):
    result = runner.invoke(
        cli,
        [
            "--json", "--log-level", "ERROR",
            "locking", "schedule",
            "--principal", "1000000",
            "--start", str(START),
            "--duration", str(DURATION),
            "--cliff", str(CLIFF),
            "--points", "9",
        ],
    )
    assert result.exit_code == 0, result.output

    rows = {row["elapsed"]: row for row in json.loads(result.stdout)}
    assert rows[CLIFF - 1]["freed"] == 0
    assert rows[CLIFF - 1]["phase"] == "cliff_locked"
    assert rows[CLIFF]["freed"] == 555_555
    assert rows[CLIFF]["share"] == 185_185
    assert rows[DURATION]["share"] == 333_333
    assert rows[DURATION]["dust"] == 1
    assert rows[DURATION]["phase"] == "fully_vested"


def test_schedule_table(runner):
    result = runner.invoke(
        cli,
        ["--log-level", "ERROR", "locking", "schedule", "--principal", "1000", "--duration", "100"],
    )
    assert result.exit_code == 0
    assert "Vesting Projection" in result.output


def test_schedule_invalid_cliff(runner):
    result = runner.invoke(
        cli,
        [
            "--log-level", "ERROR",
            "locking", "schedule",
            "--principal", "1000", "--duration", "100", "--cliff", "200",
        ],
    )
    assert result.exit_code == 1
    assert "Cliff duration cannot exceed" in result.output


def test_simulate_json(runner, manifest_path):
    result = runner.invoke(cli, ["--json", "--log-level", "ERROR", "locking", "simulate", str(manifest_path)])
    assert result.exit_code == 0, result.output

    payload = json.loads(result.stdout)
    assert [step["result"] for step in payload["steps"][:2]] == [950_000, 49_998]
    assert payload["steps"][2]["error"].startswith("LockingValidationError")

    summary = payload["summary"]
    assert summary["funding_balance"] == 950_000
    assert summary["custody_balance"] == 2
    assert summary["phase"] == "fully_vested"
    assert summary["contract"]["cumulative_released"] == 49_998
    assert {"Funded", "Withdrawal", "Released"} <= {event["type"] for event in summary["events"]}


def test_simulate_table(runner, manifest_path):
    result = runner.invoke(cli, ["--log-level", "ERROR", "locking", "simulate", str(manifest_path)])
    assert result.exit_code == 0, result.output
    assert "Final State" in result.output


def test_simulate_rejects_incomplete_manifest(runner, tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text(yaml.safe_dump({"owner": OWNER}))
    result = runner.invoke(cli, ["--log-level", "ERROR", "locking", "simulate", str(path)])
    assert result.exit_code == 1
    assert "missing keys" in result.output


def test_invalid_environment_config(runner, monkeypatch):
    monkeypatch.setenv("VESTLOCK_WITHDRAWAL_POLICY", "bogus")
    result = runner.invoke(cli, ["locking", "schedule", "--principal", "1", "--duration", "1"])
    assert result.exit_code == 1
    assert "Invalid withdrawal policy" in result.output
