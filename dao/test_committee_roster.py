#!/usr/bin/env python3
"""
Committee roster tests
Slots, capacity changes and activity reward accrual
"""

from decimal import Decimal

import pytest

from dao.committee import CommitteeRoster, ValidationError


RATE = Decimal("1")


@pytest.fixture
def roster():
    roster = CommitteeRoster(max_member=3)
    for name in ["alice", "bob", "carol", "dave"]:
        roster.add_candidate(name, f"{name}-layer2", name.title())
    return roster


def _fill(roster, now=100):
    for index, name in enumerate(["alice", "bob", "carol"]):
        roster.change_member(index, name, now, RATE)


class TestCandidates:
    """Candidate registration"""

    def test_duplicate_candidate_rejected(self, roster):
        with pytest.raises(ValidationError):
            roster.add_candidate("alice", "other", "Alice again")
        assert roster.get_candidate("alice").candidate_contract == "alice-layer2"

    def test_empty_address_rejected(self, roster):
        with pytest.raises(ValidationError):
            roster.add_candidate("", "x")


class TestChangeMember:
    """change_member"""

    def test_fill_empty_slots(self, roster):
        _fill(roster)
        assert roster.members() == ["alice", "bob", "carol"]
        assert roster.occupied_count() == 3
        assert roster.get_candidate("bob").member_index == 1
        assert roster.get_candidate("bob").member_joined_at == 100

    def test_displaces_occupant(self, roster):
        _fill(roster)
        displaced = roster.change_member(1, "dave", 200, RATE)
        assert displaced == "bob"
        assert not roster.is_member("bob")
        assert roster.is_member("dave")
        assert roster.slots()[1].occupant == "dave"

    def test_eligibility_check_sees_occupant(self, roster):
        _fill(roster)
        seen = []

        def check(candidate, occupant):
            seen.append((candidate, occupant))
            raise ValidationError("not enough stake")

        with pytest.raises(ValidationError):
            roster.change_member(2, "dave", 200, RATE, eligibility_check=check)
        assert seen == [("dave", "carol")]
        assert roster.is_member("carol")
        assert not roster.is_member("dave")

    def test_slot_out_of_range(self, roster):
        with pytest.raises(ValidationError):
            roster.change_member(3, "alice", 100, RATE)
        with pytest.raises(ValidationError):
            roster.change_member(-1, "alice", 100, RATE)

    def test_member_cannot_take_second_slot(self, roster):
        roster.change_member(0, "alice", 100, RATE)
        with pytest.raises(ValidationError):
            roster.change_member(1, "alice", 100, RATE)

    def test_unregistered_candidate_rejected(self, roster):
        with pytest.raises(ValidationError):
            roster.change_member(0, "mallory", 100, RATE)

    def test_retire_member(self, roster):
        _fill(roster)
        assert roster.retire_member("bob", 150, RATE) == 1
        assert roster.slots()[1].is_empty
        assert roster.occupied_count() == 2
        with pytest.raises(ValidationError):
            roster.retire_member("bob", 160, RATE)


class TestCapacity:
    """set_max_member and reduce_member_slot"""

    def test_grow(self, roster):
        _fill(roster)
        roster.set_max_member(5)
        assert roster.max_member == 5
        assert [s.occupant for s in roster.slots()] == ["alice", "bob", "carol", None, None]

    def test_shrink_below_occupied_rejected(self, roster):
        _fill(roster)
        with pytest.raises(ValidationError):
            roster.set_max_member(2)
        assert roster.max_member == 3

    def test_shrink_compacts_trailing_members(self, roster):
        roster.set_max_member(5)
        roster.change_member(0, "alice", 100, RATE)
        roster.change_member(4, "bob", 100, RATE)
        roster.set_max_member(2)
        assert roster.max_member == 2
        assert [s.occupant for s in roster.slots()] == ["alice", "bob"]
        assert roster.get_candidate("bob").member_index == 1

    def test_invalid_capacity(self, roster):
        with pytest.raises(ValidationError):
            roster.set_max_member(0)
        with pytest.raises(ValidationError):
            roster.set_max_member("4")

    def test_reduce_empty_last_slot(self, roster):
        _fill(roster)
        roster.set_max_member(5)
        assert roster.reduce_member_slot(4, 200, RATE) is None
        assert roster.reduce_member_slot(3, 200, RATE) is None
        assert roster.max_member == 3
        assert roster.members() == ["alice", "bob", "carol"]

    def test_reduce_occupied_slot_moves_last(self, roster):
        _fill(roster)
        retired = roster.reduce_member_slot(0, 200, RATE)
        assert retired == "alice"
        assert roster.max_member == 2
        assert [s.occupant for s in roster.slots()] == ["carol", "bob"]
        assert roster.get_candidate("carol").member_index == 0
        assert not roster.is_member("alice")

    def test_cannot_reduce_last_slot(self):
        roster = CommitteeRoster(max_member=1)
        with pytest.raises(ValidationError):
            roster.reduce_member_slot(0, 100, RATE)


class TestActivityReward:
    """Lazy reward accrual"""

    def test_accrues_while_member(self, roster):
        roster.change_member(0, "alice", 100, RATE)
        assert roster.claimable_reward("alice", 160, RATE) == Decimal("60")
        assert roster.claimable_reward("dave", 160, RATE) == Decimal("0")
        assert roster.claimable_reward("nobody", 160, RATE) == Decimal("0")

    def test_rate_applies_from_checkpoint(self, roster):
        roster.change_member(0, "alice", 100, RATE)
        assert roster.claimable_reward("alice", 110, Decimal("2")) == Decimal("20")

    def test_claim_resets_checkpoint(self, roster):
        roster.change_member(0, "alice", 100, RATE)
        assert roster.claim_reward("alice", 130, RATE) == Decimal("30")
        assert roster.claimable_reward("alice", 130, RATE) == Decimal("0")
        assert roster.claimable_reward("alice", 140, RATE) == Decimal("10")
        assert roster.get_candidate("alice").claimed_reward == Decimal("30")

    def test_pending_kept_after_leaving(self, roster):
        _fill(roster)
        roster.change_member(0, "dave", 150, RATE)
        assert roster.claimable_reward("alice", 500, RATE) == Decimal("50")
        assert roster.claim_reward("alice", 500, RATE) == Decimal("50")
        assert roster.claimable_reward("alice", 900, RATE) == Decimal("0")


class TestRosterSerialization:
    def test_round_trip(self, roster):
        _fill(roster)
        roster.retire_member("bob", 150, RATE)
        restored = CommitteeRoster.from_dict(roster.to_dict())
        assert [s.occupant for s in restored.slots()] == ["alice", None, "carol"]
        assert restored.get_candidate("bob").pending_reward == Decimal("50")
        assert restored.is_candidate("dave")
