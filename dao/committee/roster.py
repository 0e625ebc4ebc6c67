"""
Committee Roster

Fixed-capacity ordered set of member slots, plus the candidate records
members are drawn from. Activity rewards accrue lazily per member as
rate x seconds since the member's reward checkpoint.
"""

import logging
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Any

from .errors import ValidationError
from .models import Candidate, MemberSlot

logger = logging.getLogger(__name__)


EligibilityCheck = Callable[[str, Optional[str]], None]
"""Raises ValidationError when candidate may not take the slot held by occupant"""


class CommitteeRoster:
    """Ordered member slots with a capacity (max_member)"""

    def __init__(self, max_member: int = 3):
        if max_member < 1:
            raise ValidationError("Committee needs at least one slot")
        self._slots: List[Optional[str]] = [None] * max_member
        self.candidates: Dict[str, Candidate] = {}

    # ===== Queries =====

    @property
    def max_member(self) -> int:
        return len(self._slots)

    def occupied_count(self) -> int:
        return sum(1 for s in self._slots if s is not None)

    def members(self) -> List[str]:
        return [s for s in self._slots if s is not None]

    def is_member(self, address: str) -> bool:
        info = self.candidates.get(address)
        return info is not None and info.is_member

    def is_candidate(self, address: str) -> bool:
        return address in self.candidates

    def get_candidate(self, address: str) -> Optional[Candidate]:
        return self.candidates.get(address)

    def slots(self) -> List[MemberSlot]:
        result = []
        for index, occupant in enumerate(self._slots):
            if occupant is None:
                result.append(MemberSlot(index=index))
            else:
                info = self.candidates[occupant]
                result.append(MemberSlot(
                    index=index,
                    occupant=occupant,
                    joined_at=info.member_joined_at,
                    reward_checkpoint=info.reward_checkpoint,
                ))
        return result

    # ===== Candidates =====

    def add_candidate(self, address: str, candidate_contract: str, name: str = "") -> Candidate:
        if not address:
            raise ValidationError("Candidate address cannot be empty")
        if address in self.candidates:
            raise ValidationError(f"{address} is already a registered candidate")
        info = Candidate(candidate=address, candidate_contract=candidate_contract, name=name)
        self.candidates[address] = info
        logger.info(f"Candidate registered: {address} (contract={candidate_contract}, name={name!r})")
        return info

    # ===== Membership =====

    def change_member(
        self,
        slot: int,
        candidate: str,
        now: int,
        reward_rate: Decimal,
        eligibility_check: Optional[EligibilityCheck] = None,
    ) -> Optional[str]:
        """
        Put candidate into slot, displacing any current occupant

        Returns:
            The displaced member, if any

        Raises:
            ValidationError: If the slot or candidate is not acceptable
        """
        if not isinstance(slot, int) or slot < 0 or slot >= self.max_member:
            raise ValidationError(f"Slot {slot} out of range (max_member={self.max_member})")
        info = self.candidates.get(candidate)
        if info is None:
            raise ValidationError(f"{candidate} is not a registered candidate")
        if info.is_member:
            raise ValidationError(f"{candidate} is already a member (slot {info.member_index})")

        occupant = self._slots[slot]
        if eligibility_check is not None:
            eligibility_check(candidate, occupant)

        if occupant is not None:
            self._vacate(occupant, now, reward_rate)
            logger.info(f"Member {occupant} displaced from slot {slot} by {candidate}")

        self._seat(candidate, slot, now)
        return occupant

    def retire_member(self, address: str, now: int, reward_rate: Decimal) -> int:
        """Remove a member from its slot, returns the slot index it held"""
        info = self.candidates.get(address)
        if info is None or not info.is_member:
            raise ValidationError(f"{address} is not a member")
        index = info.member_index
        self._vacate(address, now, reward_rate)
        logger.info(f"Member {address} retired from slot {index}")
        return index

    # ===== Capacity =====

    def set_max_member(self, max_member: int) -> None:
        if not isinstance(max_member, int) or isinstance(max_member, bool):
            raise ValidationError(f"Invalid max_member: {max_member!r}")
        occupied = self.occupied_count()
        if max_member < occupied:
            raise ValidationError(
                f"max_member {max_member} below occupied slots ({occupied})"
            )
        if max_member < 1:
            raise ValidationError("Committee needs at least one slot")

        old = self.max_member
        if max_member >= old:
            self._slots.extend([None] * (max_member - old))
        else:
            self._compact_into(max_member)
            del self._slots[max_member:]
        logger.info(f"max_member changed {old} -> {max_member}")

    def reduce_member_slot(self, slot_index: int, now: int, reward_rate: Decimal) -> Optional[str]:
        """
        Drop one slot: retire its occupant and move the last slot into its
        place. Capacity shrinks by exactly one per call.

        Returns:
            The retired occupant, if the slot was occupied
        """
        if not isinstance(slot_index, int) or slot_index < 0 or slot_index >= self.max_member:
            raise ValidationError(f"Slot {slot_index} out of range (max_member={self.max_member})")
        if self.max_member <= 1:
            raise ValidationError("Cannot reduce the last committee slot")

        retired = self._slots[slot_index]
        if retired is not None:
            self._vacate(retired, now, reward_rate)

        last = len(self._slots) - 1
        if slot_index != last:
            moved = self._slots[last]
            self._slots[slot_index] = moved
            if moved is not None:
                self.candidates[moved].member_index = slot_index
        self._slots.pop()

        logger.info(
            f"Slot {slot_index} reduced, max_member now {self.max_member}"
            + (f" (retired {retired})" if retired else "")
        )
        return retired

    # ===== Activity reward =====

    def claimable_reward(self, address: str, now: int, reward_rate: Decimal) -> Decimal:
        info = self.candidates.get(address)
        if info is None:
            return Decimal("0")
        return info.pending_reward + self._accrued(info, now, reward_rate)

    def claim_reward(self, address: str, now: int, reward_rate: Decimal) -> Decimal:
        info = self.candidates.get(address)
        if info is None:
            raise ValidationError(f"{address} is not a registered candidate")
        self._settle(info, now, reward_rate)
        amount = info.pending_reward
        info.pending_reward = Decimal("0")
        info.claimed_reward += amount
        return amount

    # ===== Serialization =====

    def to_dict(self) -> Dict[str, Any]:
        return {
            "slots": list(self._slots),
            "candidates": {k: v.to_dict() for k, v in self.candidates.items()},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CommitteeRoster':
        slots = list(data["slots"])
        roster = cls(max_member=max(len(slots), 1))
        roster._slots = slots
        roster.candidates = {
            k: Candidate.from_dict(v) for k, v in data.get("candidates", {}).items()
        }
        return roster

    # ===== Internals =====

    @staticmethod
    def _accrued(info: Candidate, now: int, reward_rate: Decimal) -> Decimal:
        if not info.is_member or info.reward_checkpoint is None:
            return Decimal("0")
        elapsed = max(0, now - info.reward_checkpoint)
        return reward_rate * elapsed

    def _settle(self, info: Candidate, now: int, reward_rate: Decimal) -> None:
        info.pending_reward += self._accrued(info, now, reward_rate)
        if info.is_member:
            info.reward_checkpoint = now

    def _seat(self, address: str, slot: int, now: int) -> None:
        info = self.candidates[address]
        self._slots[slot] = address
        info.member_index = slot
        info.member_joined_at = now
        info.reward_checkpoint = now
        logger.info(f"Member {address} joined slot {slot}")

    def _vacate(self, address: str, now: int, reward_rate: Decimal) -> None:
        info = self.candidates[address]
        self._settle(info, now, reward_rate)
        self._slots[info.member_index] = None
        info.member_index = None
        info.member_joined_at = None
        info.reward_checkpoint = None

    def _compact_into(self, size: int) -> None:
        """Move occupants of slots >= size into the lowest empty slots below size"""
        empty = [i for i in range(size) if self._slots[i] is None]
        for index in range(size, len(self._slots)):
            occupant = self._slots[index]
            if occupant is None:
                continue
            target = empty.pop(0)
            self._slots[target] = occupant
            self._slots[index] = None
            self.candidates[occupant].member_index = target
            logger.info(f"Member {occupant} moved from slot {index} to slot {target}")
