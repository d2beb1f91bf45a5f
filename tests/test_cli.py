"""
tests/test_cli.py

The treasurehunt command group, driven through click's CliRunner.
"""

import json

import pytest
import yaml
from click.testing import CliRunner

from treasurehunt import make_commitment
from treasurehunt.cli import cli


OWNER       = "charity-owner-0xaa"
ADMIN       = "admin-0x01"
CONTENT_REF = "Qm" + "a" * 44
SECRET      = "under the old oak"


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def config(tmp_path):
    path = tmp_path / "hunt.yaml"
    path.write_text(yaml.safe_dump({
        "admins":    [ADMIN],
        "audit_log": "ledger",
        "key_path":  "signing.pem",
        "charities": {1: {"owner": OWNER, "revenue_share": 20}},
    }), encoding="utf-8")
    return str(path)


def _invoke(runner, *args):
    return runner.invoke(cli, list(args), catch_exceptions=False)


def _play_round(runner, config):
    commitment = make_commitment(SECRET)
    _invoke(runner, "create", "-c", config, "--caller", OWNER, "--charity", "1",
            "--content-ref", CONTENT_REF, "--commitment", commitment)
    _invoke(runner, "deposit", "-c", config, "--caller", "p1", "--round", "1",
            "--amount", "100")
    return commitment


class TestCommit:

    def test_prints_sha3_commitment(self, runner):
        result = _invoke(runner, "commit", SECRET)
        assert result.exit_code == 0
        assert result.output.strip() == make_commitment(SECRET)


class TestOperations:

    def test_full_round(self, runner, config):
        commitment = _play_round(runner, config)
        result = _invoke(runner, "claim", "-c", config, "--caller", "p1",
                         "--round", "1", "--reveal", commitment)
        assert result.exit_code == 0
        assert "fee 1, charity 19, player 80" in result.output

        result = _invoke(runner, "withdraw", "-c", config, "--caller", ADMIN,
                         "--to", "treasury")
        assert result.exit_code == 0
        assert "Withdrew 1 to treasury" in result.output

    def test_rejection_prints_code_and_exits_1(self, runner, config):
        _play_round(runner, config)
        result = _invoke(runner, "claim", "-c", config, "--caller", "p1",
                         "--round", "1", "--reveal", make_commitment("wrong"))
        assert result.exit_code == 1
        assert "ERROR SECRET_MISMATCH" in result.output

    def test_unauthorized_withdraw(self, runner, config):
        result = _invoke(runner, "withdraw", "-c", config, "--caller", OWNER,
                         "--to", OWNER)
        assert result.exit_code == 1
        assert "ERROR UNAUTHORIZED" in result.output

    def test_update_and_close(self, runner, config):
        _play_round(runner, config)
        result = _invoke(runner, "update", "-c", config, "--caller", OWNER,
                         "--charity", "1", "--round", "1",
                         "--content-ref", "Qm" + "b" * 44)
        assert result.exit_code == 0
        result = _invoke(runner, "close", "-c", config, "--caller", OWNER,
                         "--charity", "1", "--round", "1")
        assert result.exit_code == 0
        assert "100 left in contract" in result.output

    def test_show_round(self, runner, config):
        _play_round(runner, config)
        result = _invoke(runner, "show", "-c", config, "--round", "1")
        data = json.loads(result.output)
        assert data["total_deposit"] == 100
        assert data["deposits"] == {"p1": 100}

    def test_show_stats(self, runner, config):
        _play_round(runner, config)
        result = _invoke(runner, "show", "-c", config)
        data = json.loads(result.output)
        assert data["rounds"] == 1
        assert data["balance"] == 100

    def test_missing_config(self, runner, tmp_path):
        result = _invoke(runner, "show", "-c", str(tmp_path / "none.yaml"))
        assert result.exit_code == 1
        assert "ERROR CONFIG_ERROR" in result.output


class TestVerify:

    def test_clean_log(self, runner, config, tmp_path):
        _play_round(runner, config)
        result = _invoke(runner, "verify", str(tmp_path / "ledger"), "--no-color")
        assert result.exit_code == 0
        assert "VALID" in result.output

    def test_json_format(self, runner, config, tmp_path):
        _play_round(runner, config)
        result = _invoke(runner, "verify", str(tmp_path / "ledger"), "--format", "json")
        data = json.loads(result.output)["treasurehunt_verify"]
        assert data["ledger_valid"] is True
        assert data["total_entries"] == 3

    def test_tampered_log_exits_1(self, runner, config, tmp_path):
        _play_round(runner, config)
        path = tmp_path / "ledger" / "audit.jsonl"
        lines = path.read_text().splitlines()
        event = json.loads(lines[2])
        event["payload"]["amount"] = "1000000"
        lines[2] = json.dumps(event)
        path.write_text("\n".join(lines) + "\n")

        result = _invoke(runner, "verify", str(path), "--quiet")
        assert result.exit_code == 1

    def test_missing_log_exits_2(self, runner, tmp_path):
        result = _invoke(runner, "verify", str(tmp_path / "absent.jsonl"), "--quiet")
        assert result.exit_code == 2

    def test_export(self, runner, config, tmp_path):
        _play_round(runner, config)
        out = tmp_path / "report.json"
        result = _invoke(runner, "verify", str(tmp_path / "ledger"),
                         "--format", "compact", "--export", str(out))
        assert result.exit_code == 0
        assert out.exists()


class TestRounds:

    def test_table(self, runner, config, tmp_path):
        _play_round(runner, config)
        result = _invoke(runner, "rounds", str(tmp_path / "ledger"))
        assert result.exit_code == 0
        assert CONTENT_REF in result.output
        assert "Contract balance: 100" in result.output

    def test_json(self, runner, config, tmp_path):
        _play_round(runner, config)
        result = _invoke(runner, "rounds", str(tmp_path / "ledger"), "--format", "json")
        data = json.loads(result.output)
        assert data["next_id"] == 2
        assert data["rounds"][0]["status"] == "open"
