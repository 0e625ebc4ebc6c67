#!/usr/bin/env python3
"""
Vote tally tests
"""

from decimal import Decimal

import pytest

from dao.committee import (
    AgendaStatus,
    CommitteeConfig,
    CommitteeEngine,
    ManualClock,
    NotAuthorized,
    Operation,
    TransitionConflict,
    ValidationError,
    VoteChoice,
    AgendaNotFound,
)


@pytest.fixture
def clock():
    return ManualClock(start=2_000_000)


@pytest.fixture
def engine(clock):
    engine = CommitteeEngine(CommitteeConfig.testing(), clock=clock)
    for index, member in enumerate(["alice", "bob", "carol"]):
        engine.register_candidate(member, f"{member}-layer2", member.title())
        engine.change_member(member, index)
    engine.register_candidate("dave", "dave-layer2", "Dave")
    return engine


@pytest.fixture
def open_agenda(engine, clock):
    """Agenda whose notice period has elapsed"""
    agenda_id = engine.create_agenda(
        "user1", engine.address, 120, 300, Operation.set_max_member(4), Decimal("100")
    )
    clock.advance(120)
    return agenda_id


class TestCastVote:
    """cast_vote"""

    def test_vote_recorded(self, engine, open_agenda):
        vote = engine.cast_vote("alice", open_agenda, VoteChoice.YES, "looks good")
        assert vote.has_voted is True
        assert vote.choice == VoteChoice.YES
        assert vote.memo == "looks good"

        assert engine.get_vote_status(open_agenda, "alice") == (True, VoteChoice.YES)
        assert engine.get_vote_status(open_agenda, "bob") == (False, VoteChoice.ABSTAIN)
        assert engine.voting_manager.get_voters(open_agenda) == ["alice"]

    def test_choice_given_as_int(self, engine, open_agenda):
        engine.cast_vote("alice", open_agenda, 2)
        engine.cast_vote("bob", open_agenda, 0)
        agenda = engine.get_agenda(open_agenda)
        assert agenda.count_no == 1
        assert agenda.count_abstain == 1
        assert agenda.count_yes == 0

    def test_double_vote_rejected(self, engine, open_agenda):
        """A second vote conflicts and leaves the counters unchanged"""
        engine.cast_vote("alice", open_agenda, VoteChoice.YES)
        with pytest.raises(TransitionConflict):
            engine.cast_vote("alice", open_agenda, VoteChoice.NO)
        agenda = engine.get_agenda(open_agenda)
        assert agenda.count_yes == 1
        assert agenda.count_no == 0
        assert agenda.votes["alice"].choice == VoteChoice.YES

    def test_non_member_rejected(self, engine, open_agenda):
        with pytest.raises(NotAuthorized):
            engine.cast_vote("dave", open_agenda, VoteChoice.YES)
        with pytest.raises(NotAuthorized):
            engine.cast_vote("stranger", open_agenda, VoteChoice.YES)
        agenda = engine.get_agenda(open_agenda)
        assert agenda.total_votes == 0
        assert agenda.status == AgendaStatus.NOTICE

    def test_invalid_choice_rejected(self, engine, open_agenda):
        with pytest.raises(ValidationError):
            engine.cast_vote("alice", open_agenda, 3)
        assert engine.get_agenda(open_agenda).total_votes == 0

    def test_unknown_agenda(self, engine):
        with pytest.raises(AgendaNotFound):
            engine.cast_vote("alice", 42, VoteChoice.YES)

    def test_membership_checked_at_vote_time(self, engine, open_agenda):
        """A retired member can no longer vote, its earlier vote stays"""
        engine.cast_vote("alice", open_agenda, VoteChoice.YES)
        engine.retire_member("alice")
        engine.change_member("dave", 0)

        engine.cast_vote("dave", open_agenda, VoteChoice.YES)
        with pytest.raises(NotAuthorized):
            engine.cast_vote("alice", open_agenda, VoteChoice.NO)

        agenda = engine.get_agenda(open_agenda)
        assert agenda.count_yes == 2
        assert set(agenda.voters) == {"alice", "dave"}

    def test_vote_on_executed_agenda_rejected(self, engine, open_agenda, clock):
        engine.cast_vote("alice", open_agenda, VoteChoice.YES)
        engine.cast_vote("bob", open_agenda, VoteChoice.YES)
        clock.advance(300)
        engine.execute_agenda("user1", open_agenda)
        with pytest.raises(ValidationError):
            engine.cast_vote("carol", open_agenda, VoteChoice.YES)
