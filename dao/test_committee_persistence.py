#!/usr/bin/env python3
"""
Committee persistence tests
"""

import json
from decimal import Decimal

import pytest

from dao.committee import (
    AgendaResult,
    AgendaStatus,
    CommitteeConfig,
    CommitteeEngine,
    CommitteePersistence,
    ManualClock,
    Operation,
    VoteChoice,
)


class TestCommitteePersistence:
    """CommitteePersistence"""

    @pytest.fixture
    def persistence(self, tmp_path):
        return CommitteePersistence(data_dir=tmp_path / "committee")

    def test_init_creates_directory(self, tmp_path):
        data_dir = tmp_path / "nested" / "committee"
        CommitteePersistence(data_dir=data_dir)
        assert data_dir.is_dir()

    def test_load_missing_returns_none(self, persistence):
        assert persistence.exists() is False
        assert persistence.load() is None

    def test_save_writes_metadata(self, persistence):
        assert persistence.save({"owner": "owner"}) is True
        with open(persistence.state_path, "r", encoding="utf-8") as f:
            data = json.load(f)
        assert data["owner"] == "owner"
        assert data["_metadata"]["version"] == "1.0"
        assert not persistence.state_path.with_suffix(".tmp").exists()

        assert persistence.load() == {"owner": "owner"}

    def test_save_unserializable_fails(self, persistence):
        assert persistence.save({"bad": object()}) is False
        assert not persistence.state_path.with_suffix(".tmp").exists()

    def test_backups(self, persistence):
        assert persistence.create_backup() is None
        persistence.save({"owner": "owner"})
        backup = persistence.create_backup(tag="before_upgrade")
        assert backup is not None
        assert backup.name.endswith("_before_upgrade.json")
        assert persistence.list_backups() == [backup]


class TestEngineRestore:
    """Engine state survives a restart"""

    @pytest.fixture
    def clock(self):
        return ManualClock()

    @pytest.fixture
    def persistence(self, tmp_path):
        return CommitteePersistence(data_dir=tmp_path)

    def _engine(self, persistence, clock):
        return CommitteeEngine.restore(persistence, config=CommitteeConfig.testing(), clock=clock)

    def test_fresh_engine_when_nothing_saved(self, persistence, clock):
        engine = self._engine(persistence, clock)
        assert engine.num_agendas == 0
        assert engine.roster.max_member == 3

    def test_every_entry_point_persists(self, persistence, clock):
        engine = self._engine(persistence, clock)
        engine.register_candidate("alice", "alice-layer2", "Alice")
        assert persistence.exists()
        assert "alice" in persistence.load()["roster"]["candidates"]

    def test_round_trip(self, persistence, clock):
        engine = self._engine(persistence, clock)
        for index, member in enumerate(["alice", "bob", "carol"]):
            engine.register_candidate(member, f"{member}-layer2", member)
            engine.change_member(member, index)

        executed = engine.create_agenda(
            "user1", engine.address, 120, 300, Operation.set_create_agenda_fees("250.5"), 100
        )
        pending = engine.create_agenda(
            "user1", engine.address, 120, 300, Operation.set_max_member(4), 100
        )
        clock.advance(120)
        engine.cast_vote("alice", executed, VoteChoice.YES, "ok")
        engine.cast_vote("bob", executed, VoteChoice.YES)
        engine.cast_vote("carol", pending, VoteChoice.NO)
        clock.advance(300)
        engine.execute_agenda("user1", executed)

        restored = self._engine(persistence, clock)
        assert restored.num_agendas == 2
        assert restored.parameters.create_agenda_fee == Decimal("250.5")
        assert restored.roster.members() == ["alice", "bob", "carol"]

        agenda = restored.get_agenda(executed)
        assert agenda.status == AgendaStatus.EXECUTED
        assert agenda.executed is True
        assert agenda.votes["alice"].memo == "ok"
        assert agenda.operation.params["fees"] == "250.5"

        # Evaluated lazily after the restart
        agenda = restored.get_agenda(pending)
        assert agenda.status == AgendaStatus.ENDED
        assert agenda.result == AgendaResult.DISMISSED
        assert restored.get_vote_status(pending, "carol") == (True, VoteChoice.NO)

    def test_ownership_persisted(self, persistence, clock):
        engine = self._engine(persistence, clock)
        engine.renounce_ownership("owner")
        assert self._engine(persistence, clock).owner is None

    def test_execution_records_persisted(self, persistence, clock):
        engine = self._engine(persistence, clock)
        for index, member in enumerate(["alice", "bob", "carol"]):
            engine.register_candidate(member, f"{member}-layer2", member)
            engine.change_member(member, index)
        agenda_id = engine.create_agenda(
            "user1", engine.address, 120, 300, Operation.set_max_member(4), 100
        )
        clock.advance(120)
        engine.cast_vote("alice", agenda_id, VoteChoice.YES)
        engine.cast_vote("bob", agenda_id, VoteChoice.YES)
        clock.advance(300)
        engine.execute_agenda("user1", agenda_id)

        record = self._engine(persistence, clock).execution_engine.get_execution_status(agenda_id)
        assert record is not None
        assert record["success"] is True
        assert record["executor"] == "user1"
        assert record["operation"] == "set_max_member"
