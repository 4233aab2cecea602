"""Tests for the ballotbox CLI — proves CLI dispatches correctly."""

import json
from pathlib import Path

import pytest

from ballotbox.cli import build_parser, main


ENV_VARS = (
    "BALLOTBOX_ADMIN",
    "BALLOTBOX_CALLER",
    "BALLOTBOX_DATA_DIR",
    "BALLOTBOX_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ENV_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


@pytest.fixture
def run(tmp_path: Path):
    """Invoke the CLI against a per-test data directory."""
    def _run(*argv: str) -> int:
        return main([
            "--data-dir", str(tmp_path / "data"),
            "--env-file", str(tmp_path / "none.env"),
            *argv,
        ])
    return _run


class TestCLIParsing:
    def test_status_command(self) -> None:
        args = build_parser().parse_args(["status"])
        assert args.command == "status"

    def test_global_options(self) -> None:
        args = build_parser().parse_args(
            ["--as", "0xalice", "--admin", "0xadmin", "vote", "--proposal", "1"],
        )
        assert args.caller == "0xalice"
        assert args.admin == "0xadmin"
        assert args.proposal == 1

    def test_register_voter_requires_address(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["register-voter"])


class TestCLIExecution:
    def test_no_command_shows_help(self) -> None:
        assert main([]) == 0

    def test_new_election_needs_admin(self, run, capsys) -> None:
        assert run("status") == 1
        assert "administrator is required" in capsys.readouterr().err

    def test_status_runs(self, run, capsys) -> None:
        assert run("--admin", "0xadmin", "status") == 0
        status = json.loads(capsys.readouterr().out)
        assert status["phase"] == "REGISTERING_VOTERS"
        assert status["administrator"] == "0xadmin"

    def test_rejection_exits_nonzero(self, run, capsys) -> None:
        run("--admin", "0xadmin", "status")
        capsys.readouterr()
        assert run("--as", "0xmallory", "start-proposals") == 1
        assert "Caller is not the administrator" in capsys.readouterr().err

    def test_mismatched_admin_rejected(self, run, capsys) -> None:
        run("--admin", "0xadmin", "status")
        capsys.readouterr()
        assert run("--admin", "0xother", "status") == 1
        assert "does not match" in capsys.readouterr().err

    def test_full_election_e2e(self, run, capsys) -> None:
        admin = ("--admin", "0xadmin", "--as", "0xadmin")
        alice = ("--as", "0xalice")
        assert run(*admin, "register-voter", "--address", "0xalice") == 0
        assert run(*admin, "start-proposals") == 0
        assert run(*alice, "add-proposal", "--description", "Proposal 1") == 0
        assert run(*admin, "end-proposals") == 0
        assert run(*admin, "start-voting") == 0
        assert run(*alice, "vote", "--proposal", "1") == 0
        assert run(*alice, "vote", "--proposal", "1") == 1
        assert run(*admin, "end-voting") == 0
        assert run(*admin, "tally") == 0
        capsys.readouterr()

        assert run("winner") == 0
        assert json.loads(capsys.readouterr().out) == {
            "winning_proposal_id": 1, "tallied": True,
        }

        assert run(*alice, "get-proposal", "--id", "1") == 0
        assert json.loads(capsys.readouterr().out)["vote_count"] == 1

        assert run(*alice, "get-voter", "--address", "0xalice") == 0
        assert json.loads(capsys.readouterr().out)["has_voted"] is True

        assert run("check-invariants") == 0
        assert "All election invariants hold" in capsys.readouterr().out

    def test_tampered_log_fails(self, run, tmp_path: Path, capsys) -> None:
        run("--admin", "0xadmin", "--as", "0xadmin", "register-voter", "--address", "0xalice")
        events = tmp_path / "data" / "events.jsonl"
        events.write_text(
            events.read_text(encoding="utf-8").replace("0xalice", "0xmallory"),
            encoding="utf-8",
        )
        capsys.readouterr()
        assert run("status") == 1
        assert "Integrity check failed" in capsys.readouterr().err
