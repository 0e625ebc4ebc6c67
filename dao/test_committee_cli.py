#!/usr/bin/env python3
"""
Committee CLI tests
"""

import pytest
from typer.testing import CliRunner

from dao.committee_cli import app


runner = CliRunner()


@pytest.fixture(autouse=True)
def committee_env(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("COMMITTEE_DATA_DIR", str(tmp_path / "committee"))
    monkeypatch.setenv("COMMITTEE_MIN_NOTICE_PERIOD_SECONDS", "120")
    monkeypatch.setenv("COMMITTEE_MIN_VOTING_PERIOD_SECONDS", "300")
    return tmp_path


def invoke(*args):
    return runner.invoke(app, list(args))


@pytest.fixture
def seated():
    """Three candidates with stake holding every slot"""
    for index, name in enumerate(["alice", "bob", "carol"]):
        assert invoke("stake", name, "1500").exit_code == 0
        assert invoke("candidate", "register", name, f"{name}-layer2", "--name", name).exit_code == 0
        assert invoke("member", "change", name, str(index)).exit_code == 0


class TestCommitteeCli:
    """dao-committee commands"""

    def test_params(self):
        result = invoke("params")
        assert result.exit_code == 0
        assert "create_agenda_fee" in result.output
        assert "120" in result.output

    def test_member_change_needs_stake(self):
        invoke("candidate", "register", "dave", "dave-layer2")
        result = invoke("member", "change", "dave", "0")
        assert result.exit_code == 1
        assert "Error" in result.output

    def test_members_listed(self, seated):
        result = invoke("member", "list")
        assert result.exit_code == 0
        assert "alice" in result.output
        assert "3/3" in result.output

    def test_create_and_show_agenda(self, seated):
        result = invoke("agenda", "create", "user1", "set_max_member", "-p", "max_member=4")
        assert result.exit_code == 0
        assert "Agenda created: 0" in result.output

        result = invoke("agenda", "show", "0")
        assert result.exit_code == 0
        assert "NOTICE" in result.output
        assert "set_max_member" in result.output

    def test_create_with_low_fee_fails(self):
        result = invoke("agenda", "create", "user1", "set_max_member", "-p", "max_member=4", "--fee", "1")
        assert result.exit_code == 1
        assert "below required" in result.output

    def test_create_unknown_operation_fails(self):
        result = invoke("agenda", "create", "user1", "mint_tokens")
        assert result.exit_code == 1
        assert "Unknown operation" in result.output

    def test_create_missing_parameter_fails(self):
        result = invoke("agenda", "create", "user1", "set_max_member")
        assert result.exit_code == 1
        assert "missing parameters" in result.output

    def test_vote_during_notice_fails(self, seated):
        invoke("agenda", "create", "user1", "set_max_member", "-p", "max_member=4")
        result = invoke("agenda", "vote", "alice", "0", "yes")
        assert result.exit_code == 1
        assert "not open for voting" in result.output

    def test_invalid_vote_choice(self, seated):
        result = invoke("agenda", "vote", "alice", "0", "maybe")
        assert result.exit_code == 1

    def test_admin_set_status(self, seated):
        invoke("agenda", "create", "user1", "set_max_member", "-p", "max_member=4")
        result = invoke("admin", "set-status", "owner", "0", "ended", "rejected")
        assert result.exit_code == 0
        assert "overridden" in result.output

        assert invoke("agenda", "list", "--status", "ended").exit_code == 0
        result = invoke("agenda", "show", "0")
        assert "ENDED / REJECTED" in result.output
        assert "override" in result.output

    def test_admin_requires_owner(self, seated):
        invoke("agenda", "create", "user1", "set_max_member", "-p", "max_member=4")
        result = invoke("admin", "set-status", "alice", "0", "ended", "rejected")
        assert result.exit_code == 1

    def test_renounce_ownership(self):
        assert invoke("admin", "renounce-ownership", "owner").exit_code == 0
        result = invoke("params")
        assert "(renounced)" in result.output
        assert invoke("admin", "transfer-ownership", "owner", "owner2").exit_code == 1

    def test_reward_claim_unknown_candidate(self):
        result = invoke("reward", "claim", "nobody")
        assert result.exit_code == 1

    def test_create_with_nan_fee_fails(self):
        result = invoke("agenda", "create", "user1", "set_max_member", "-p", "max_member=4", "--fee", "nan")
        assert result.exit_code == 1
        assert "Invalid fee" in result.output

    def test_invalid_stake_amount(self):
        assert invoke("stake", "alice", "lots").exit_code == 1
        assert invoke("stake", "alice", "Infinity").exit_code == 1

    def test_backup_without_state_fails(self):
        result = invoke("backup", "create")
        assert result.exit_code == 1

    def test_backup_create_and_list(self):
        assert invoke("candidate", "register", "alice", "alice-layer2").exit_code == 0
        assert "No backups" in invoke("backup", "list").output

        result = invoke("backup", "create", "--tag", "nightly")
        assert result.exit_code == 0
        assert "Backup written" in result.output

        result = invoke("backup", "list")
        assert result.exit_code == 0
        assert "_nightly.json" in result.output
