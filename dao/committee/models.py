"""
Data models for the Agenda Committee
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import IntEnum
from typing import List, Optional, Dict, Any

from .operations import Operation


class AgendaStatus(IntEnum):
    """Agenda lifecycle statuses"""
    NONE = 0
    NOTICE = 1
    VOTING = 2
    WAITING_EXEC = 3
    EXECUTED = 4
    ENDED = 5


class AgendaResult(IntEnum):
    """Outcome of an agenda"""
    NONE = 0
    ACCEPTED = 1
    REJECTED = 2
    DISMISSED = 3


class VoteChoice(IntEnum):
    """Vote options"""
    ABSTAIN = 0
    YES = 1
    NO = 2


# Position of each status along the normal lifecycle. WAITING_EXEC and
# ENDED share a rank because either can follow VOTING.
STATUS_RANK = {
    AgendaStatus.NONE: 0,
    AgendaStatus.NOTICE: 1,
    AgendaStatus.VOTING: 2,
    AgendaStatus.WAITING_EXEC: 3,
    AgendaStatus.EXECUTED: 4,
    AgendaStatus.ENDED: 4,
}


@dataclass
class Vote:
    """Individual vote record"""
    voter: str
    has_voted: bool = False
    choice: VoteChoice = VoteChoice.ABSTAIN
    memo: str = ""
    cast_at: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "voter": self.voter,
            "has_voted": self.has_voted,
            "choice": int(self.choice),
            "memo": self.memo,
            "cast_at": self.cast_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Vote':
        return cls(
            voter=data["voter"],
            has_voted=data.get("has_voted", False),
            choice=VoteChoice(data.get("choice", 0)),
            memo=data.get("memo", ""),
            cast_at=data.get("cast_at"),
        )


@dataclass
class HistoryEntry:
    """One line of an agenda's audit trail"""
    kind: str                   # "transition" | "override" | "execution"
    at: int
    from_status: AgendaStatus
    to_status: AgendaStatus
    result: AgendaResult
    actor: Optional[str] = None
    note: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "at": self.at,
            "from_status": int(self.from_status),
            "to_status": int(self.to_status),
            "result": int(self.result),
            "actor": self.actor,
            "note": self.note,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'HistoryEntry':
        return cls(
            kind=data["kind"],
            at=data["at"],
            from_status=AgendaStatus(data["from_status"]),
            to_status=AgendaStatus(data["to_status"]),
            result=AgendaResult(data["result"]),
            actor=data.get("actor"),
            note=data.get("note", ""),
        )


@dataclass
class Agenda:
    """Committee agenda"""
    id: int
    creator: str
    target: str
    operation: Operation

    # Timing
    created_at: int
    notice_end_at: int
    voting_period_seconds: int
    voting_started_at: Optional[int] = None
    voting_end_at: Optional[int] = None
    executed_at: Optional[int] = None

    # Vote tallies
    count_yes: int = 0
    count_no: int = 0
    count_abstain: int = 0

    # Status
    status: AgendaStatus = AgendaStatus.NOTICE
    result: AgendaResult = AgendaResult.NONE
    executed: bool = False

    fee_paid: Decimal = Decimal("0")
    votes: Dict[str, Vote] = field(default_factory=dict)
    history: List[HistoryEntry] = field(default_factory=list)

    @property
    def total_votes(self) -> int:
        return self.count_yes + self.count_no + self.count_abstain

    @property
    def voters(self) -> List[str]:
        return [v.voter for v in self.votes.values() if v.has_voted]

    def has_voted(self, voter: str) -> bool:
        vote = self.votes.get(voter)
        return vote is not None and vote.has_voted

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "id": self.id,
            "creator": self.creator,
            "target": self.target,
            "operation": self.operation.to_dict(),
            "created_at": self.created_at,
            "notice_end_at": self.notice_end_at,
            "voting_period_seconds": self.voting_period_seconds,
            "voting_started_at": self.voting_started_at,
            "voting_end_at": self.voting_end_at,
            "executed_at": self.executed_at,
            "count_yes": self.count_yes,
            "count_no": self.count_no,
            "count_abstain": self.count_abstain,
            "status": int(self.status),
            "result": int(self.result),
            "executed": self.executed,
            "fee_paid": str(self.fee_paid),
            "votes": [v.to_dict() for v in self.votes.values()],
            "history": [h.to_dict() for h in self.history],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Agenda':
        votes = [Vote.from_dict(v) for v in data.get("votes", [])]
        return cls(
            id=data["id"],
            creator=data.get("creator", ""),
            target=data["target"],
            operation=Operation.from_dict(data["operation"]),
            created_at=data["created_at"],
            notice_end_at=data["notice_end_at"],
            voting_period_seconds=data["voting_period_seconds"],
            voting_started_at=data.get("voting_started_at"),
            voting_end_at=data.get("voting_end_at"),
            executed_at=data.get("executed_at"),
            count_yes=data.get("count_yes", 0),
            count_no=data.get("count_no", 0),
            count_abstain=data.get("count_abstain", 0),
            status=AgendaStatus(data.get("status", AgendaStatus.NOTICE)),
            result=AgendaResult(data.get("result", AgendaResult.NONE)),
            executed=data.get("executed", False),
            fee_paid=Decimal(data.get("fee_paid", "0")),
            votes={v.voter: v for v in votes},
            history=[HistoryEntry.from_dict(h) for h in data.get("history", [])],
        )


@dataclass
class Candidate:
    """Registered candidate, and member state while it holds a slot"""
    candidate: str
    candidate_contract: str
    name: str = ""
    member_joined_at: Optional[int] = None
    member_index: Optional[int] = None
    reward_checkpoint: Optional[int] = None
    pending_reward: Decimal = Decimal("0")
    claimed_reward: Decimal = Decimal("0")

    @property
    def is_member(self) -> bool:
        return self.member_index is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "candidate": self.candidate,
            "candidate_contract": self.candidate_contract,
            "name": self.name,
            "member_joined_at": self.member_joined_at,
            "member_index": self.member_index,
            "reward_checkpoint": self.reward_checkpoint,
            "pending_reward": str(self.pending_reward),
            "claimed_reward": str(self.claimed_reward),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Candidate':
        return cls(
            candidate=data["candidate"],
            candidate_contract=data.get("candidate_contract", ""),
            name=data.get("name", ""),
            member_joined_at=data.get("member_joined_at"),
            member_index=data.get("member_index"),
            reward_checkpoint=data.get("reward_checkpoint"),
            pending_reward=Decimal(data.get("pending_reward", "0")),
            claimed_reward=Decimal(data.get("claimed_reward", "0")),
        )


@dataclass
class MemberSlot:
    """View of one roster slot"""
    index: int
    occupant: Optional[str] = None
    joined_at: Optional[int] = None
    reward_checkpoint: Optional[int] = None

    @property
    def is_empty(self) -> bool:
        return self.occupant is None
