"""
Agenda Committee

Governance for a bounded committee of members:
- Fee-gated agenda creation with notice and voting periods
- One-member-one-vote tally with a half-of-slots quorum
- Exactly-once execution of accepted agendas
- Self-amending parameters and committee capacity
- Per-member activity reward accrual
"""

from .models import (
    Agenda,
    AgendaStatus,
    AgendaResult,
    Candidate,
    MemberSlot,
    Vote,
    VoteChoice,
)
from .operations import Operation, OperationKind
from .errors import (
    CommitteeError,
    ValidationError,
    NotAuthorized,
    AgendaNotFound,
    TransitionConflict,
    ExecutionFailure,
)
from .clock import SystemClock, ManualClock
from .config import CommitteeConfig
from .parameters import ParameterRegistry
from .roster import CommitteeRoster
from .agenda import AgendaManager
from .voting import VotingManager
from .lifecycle import LifecycleController, advance, evaluate_quorum, quorum_for
from .execution import ExecutionEngine
from .persistence import CommitteePersistence
from .engine import CommitteeEngine

__all__ = [
    'Agenda',
    'AgendaStatus',
    'AgendaResult',
    'Candidate',
    'MemberSlot',
    'Vote',
    'VoteChoice',
    'Operation',
    'OperationKind',
    'CommitteeError',
    'ValidationError',
    'NotAuthorized',
    'AgendaNotFound',
    'TransitionConflict',
    'ExecutionFailure',
    'SystemClock',
    'ManualClock',
    'CommitteeConfig',
    'ParameterRegistry',
    'CommitteeRoster',
    'AgendaManager',
    'VotingManager',
    'LifecycleController',
    'advance',
    'evaluate_quorum',
    'quorum_for',
    'ExecutionEngine',
    'CommitteePersistence',
    'CommitteeEngine',
]
