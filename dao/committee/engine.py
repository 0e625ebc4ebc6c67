"""
Committee Engine - Main Integration Module

Ties the parameter registry, roster, agenda store, vote tally, lifecycle
controller and execution dispatcher together behind one facade. Every
public call takes the caller identity explicitly as `sender`.

Parameter and roster changes are ordinary operations: an agenda targeting
the committee's own address is dispatched back into the setters below with
the committee as sender, which is the only sender the setters accept.
"""

import copy
import functools
import logging
import threading
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Tuple

from .agenda import AgendaManager
from .clock import SystemClock
from .config import CommitteeConfig
from .errors import NotAuthorized, ValidationError
from .execution import ExecutionEngine, ExecutionHandler
from .lifecycle import LifecycleController, quorum_for
from .models import Agenda, AgendaResult, AgendaStatus, Vote, VoteChoice
from .operations import Operation, OperationKind
from .parameters import ParameterRegistry
from .persistence import CommitteePersistence
from .roster import CommitteeRoster
from .voting import VotingManager

logger = logging.getLogger(__name__)


def atomic(method):
    """Run an entry point as one step under the engine lock, then persist"""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            self._depth += 1
            try:
                return method(self, *args, **kwargs)
            finally:
                self._depth -= 1
                if self._depth == 0:
                    self._persist()

    return wrapper


class CommitteeEngine:
    """
    Agenda-based governance for a bounded committee

    Features:
    - Fee-gated agenda creation with notice and voting windows
    - One vote per member, half-of-slots quorum
    - Exactly-once execution of accepted agendas
    - Self-amending parameters and roster capacity
    - Lazy activity reward accrual for members
    """

    def __init__(
        self,
        config: Optional[CommitteeConfig] = None,
        clock=None,
        persistence: Optional[CommitteePersistence] = None,
    ):
        self.config = config or CommitteeConfig.default()
        self.clock = clock or SystemClock()
        self.persistence = persistence
        self.address = self.config.COMMITTEE_ADDRESS
        self.owner: Optional[str] = self.config.OWNER_ADDRESS

        # Sub-components
        self.parameters = ParameterRegistry(self.config)
        self.roster = CommitteeRoster(self.config.MAX_MEMBER)
        self.agenda_manager = AgendaManager(self.parameters)
        self.lifecycle = LifecycleController(
            self.agenda_manager, self.clock, lambda: self.roster.max_member
        )
        self.voting_manager = VotingManager(self.lifecycle, self.roster.is_member)
        self.execution_engine = ExecutionEngine(self.lifecycle)
        self.execution_engine.register_handler(self.address, self._run_committee_operation)

        # Collaborator callbacks (set by integrator)
        self._stake_lookup: Optional[Callable[[str], Decimal]] = None
        self._fee_collector: Optional[Callable[[str, Decimal], None]] = None
        self._reward_collector: Optional[Callable[[str, Decimal], None]] = None

        self._lock = threading.RLock()
        self._depth = 0

        logger.info(f"CommitteeEngine initialized (address={self.address}, owner={self.owner})")

    # ===== Collaborators =====

    def set_stake_lookup(self, lookup: Callable[[str], Decimal]) -> None:
        """
        Set callback for retrieving a candidate's stake

        Args:
            lookup: Function(address) -> stake
        """
        self._stake_lookup = lookup

    def set_fee_collector(self, collector: Callable[[str, Decimal], None]) -> None:
        """Set callback charging the agenda fee; raising aborts creation"""
        self._fee_collector = collector

    def set_reward_collector(self, collector: Callable[[str, Decimal], None]) -> None:
        """Set callback paying out claimed activity rewards"""
        self._reward_collector = collector

    def register_handler(self, target: str, handler: ExecutionHandler) -> None:
        """Register an execution handler for an external target"""
        if target == self.address:
            raise ValidationError("The committee's own handler cannot be replaced")
        self.execution_engine.register_handler(target, handler)

    def _get_stake(self, address: str) -> Decimal:
        if self._stake_lookup:
            return Decimal(str(self._stake_lookup(address)))
        return Decimal("0")

    # ===== Agenda Lifecycle =====

    @atomic
    def create_agenda(
        self,
        sender: str,
        target: str,
        notice_period: int,
        voting_period: int,
        operation: Operation,
        fee,
    ) -> int:
        """
        Create a new agenda

        Args:
            sender: Address paying the fee
            target: Target the operation is dispatched to
            notice_period: Seconds before voting may start
            voting_period: Length of the voting window in seconds
            operation: Operation to run if accepted
            fee: Fee paid, at least the configured create_agenda_fee

        Returns:
            The new agenda id
        """
        now = self.clock.now()
        fee = self.agenda_manager.validate_agenda(target, notice_period, voting_period, operation, fee)
        if self._fee_collector:
            self._fee_collector(sender, fee)
        agenda = self.agenda_manager.create_agenda(
            creator=sender,
            target=target,
            notice_period=notice_period,
            voting_period=voting_period,
            operation=operation,
            fee=fee,
            now=now,
        )
        return agenda.id

    @atomic
    def cast_vote(self, sender: str, agenda_id: int, choice, memo: str = "") -> Vote:
        """Cast sender's vote on an agenda"""
        return self.voting_manager.cast_vote(agenda_id, sender, choice, memo, self.clock.now())

    @atomic
    def execute_agenda(self, sender: str, agenda_id: int) -> bool:
        """Execute an accepted agenda. Anyone may trigger execution."""
        return self.execution_engine.execute_agenda(agenda_id, sender, self.clock.now())

    @atomic
    def get_agenda(self, agenda_id: int) -> Agenda:
        """Get a copy of an agenda caught up to the current time"""
        return copy.deepcopy(self.lifecycle.touch(agenda_id))

    @atomic
    def get_agenda_status(self, agenda_id: int) -> AgendaStatus:
        return self.lifecycle.get_status(agenda_id)

    @atomic
    def can_execute(self, agenda_id: int) -> bool:
        return self.lifecycle.can_execute(self.lifecycle.touch(agenda_id))

    @atomic
    def list_agendas(self, status: Optional[AgendaStatus] = None) -> List[Agenda]:
        now = self.clock.now()
        for agenda_id in list(self.agenda_manager.agendas):
            self.lifecycle.touch(agenda_id, now)
        return [copy.deepcopy(a) for a in self.agenda_manager.list_agendas(status)]

    @property
    def num_agendas(self) -> int:
        return self.agenda_manager.num_agendas

    def get_vote_status(self, agenda_id: int, voter: str) -> Tuple[bool, VoteChoice]:
        return self.voting_manager.get_vote_status(agenda_id, voter)

    @atomic
    def set_agenda_status(self, sender: str, agenda_id: int, status, result) -> Agenda:
        """Administrative override of an agenda's status and result"""
        self._require_privileged(sender, "set_agenda_status")
        return self.lifecycle.override(agenda_id, status, result, actor=sender)

    # ===== Committee Membership =====

    @atomic
    def register_candidate(self, sender: str, candidate_contract: str, name: str = "") -> None:
        """Register sender as a candidate"""
        self.roster.add_candidate(sender, candidate_contract, name)

    @atomic
    def register_operator_by_owner(self, sender: str, operator: str, target: str, name: str) -> None:
        """Register a candidate on its behalf, bypassing eligibility"""
        self._require_privileged(sender, "register_operator_by_owner")
        self.roster.add_candidate(operator, target, name)
        logger.info(f"Operator {operator} registered by {sender}")

    @atomic
    def change_member(self, candidate: str, slot: int) -> Optional[str]:
        """
        Take a committee slot as candidate (the caller)

        An empty slot needs the minimum stake; an occupied one needs more
        stake than its current member.

        Returns:
            The displaced member, if any
        """
        now = self.clock.now()
        self.lifecycle.catch_up(now)
        return self.roster.change_member(
            slot,
            candidate,
            now,
            self.parameters.activity_reward_per_second,
            eligibility_check=self._check_eligibility,
        )

    @atomic
    def retire_member(self, sender: str) -> int:
        """Give up sender's slot, returns the slot index"""
        now = self.clock.now()
        self.lifecycle.catch_up(now)
        return self.roster.retire_member(sender, now, self.parameters.activity_reward_per_second)

    @atomic
    def set_max_member(self, sender: str, max_member: int) -> None:
        self._require_committee(sender, "set_max_member")
        # Closed agendas are judged against the capacity they closed under
        self.lifecycle.catch_up()
        self.roster.set_max_member(max_member)

    @atomic
    def reduce_member_slot(self, sender: str, slot_index: int) -> Optional[str]:
        self._require_committee(sender, "reduce_member_slot")
        now = self.clock.now()
        self.lifecycle.catch_up(now)
        return self.roster.reduce_member_slot(
            slot_index, now, self.parameters.activity_reward_per_second
        )

    def is_member(self, address: str) -> bool:
        return self.roster.is_member(address)

    def is_candidate(self, address: str) -> bool:
        return self.roster.is_candidate(address)

    def _check_eligibility(self, candidate: str, occupant: Optional[str]) -> None:
        stake = self._get_stake(candidate)
        if stake < self.config.MIN_STAKE_TO_JOIN:
            raise ValidationError(
                f"{candidate} stake {stake} below minimum {self.config.MIN_STAKE_TO_JOIN}"
            )
        if occupant is not None:
            occupant_stake = self._get_stake(occupant)
            if stake <= occupant_stake:
                raise ValidationError(
                    f"{candidate} stake {stake} does not exceed member {occupant} ({occupant_stake})"
                )

    # ===== Parameters =====

    @atomic
    def set_create_agenda_fees(self, sender: str, fees) -> None:
        self._require_committee(sender, "set_create_agenda_fees")
        self.parameters.set_create_agenda_fee(fees)

    @atomic
    def set_min_notice_period(self, sender: str, seconds: int) -> None:
        self._require_committee(sender, "set_min_notice_period")
        self.parameters.set_min_notice_period(seconds)

    @atomic
    def set_min_voting_period(self, sender: str, seconds: int) -> None:
        self._require_committee(sender, "set_min_voting_period")
        self.parameters.set_min_voting_period(seconds)

    @atomic
    def set_activity_reward_per_second(self, sender: str, value) -> None:
        self._require_committee(sender, "set_activity_reward_per_second")
        self.parameters.set_activity_reward_per_second(value)

    @atomic
    def set_collaborator(self, sender: str, name: str, address: str) -> None:
        self._require_committee(sender, "set_collaborator")
        self.parameters.set_collaborator(name, address)

    def get_parameters(self) -> Dict[str, Any]:
        """Current parameter set"""
        return {
            "create_agenda_fee": self.parameters.create_agenda_fee,
            "min_notice_period_seconds": self.parameters.min_notice_period_seconds,
            "min_voting_period_seconds": self.parameters.min_voting_period_seconds,
            "activity_reward_per_second": self.parameters.activity_reward_per_second,
            "max_member": self.roster.max_member,
            "quorum": quorum_for(self.roster.max_member),
            "collaborators": dict(self.parameters.collaborators),
        }

    # ===== Activity Reward =====

    def get_claimable_activity_reward(self, candidate: str) -> Decimal:
        return self.roster.claimable_reward(
            candidate, self.clock.now(), self.parameters.activity_reward_per_second
        )

    @atomic
    def claim_activity_reward(self, sender: str) -> Decimal:
        """Claim sender's accrued reward, returns the amount"""
        now = self.clock.now()
        rate = self.parameters.activity_reward_per_second
        if not self.roster.is_candidate(sender):
            raise ValidationError(f"{sender} is not a registered candidate")
        amount = self.roster.claimable_reward(sender, now, rate)
        if amount <= 0:
            raise ValidationError(f"{sender} has no claimable reward")
        if self._reward_collector:
            self._reward_collector(sender, amount)
        self.roster.claim_reward(sender, now, rate)
        logger.info(f"Activity reward {amount} claimed by {sender}")
        return amount

    # ===== Ownership =====

    @atomic
    def transfer_ownership(self, sender: str, new_owner: str) -> None:
        self._require_privileged(sender, "transfer_ownership")
        if not new_owner:
            raise ValidationError("New owner cannot be empty")
        previous = self.owner
        self.owner = new_owner
        logger.warning(f"Ownership transferred {previous} -> {new_owner} by {sender}")

    @atomic
    def renounce_ownership(self, sender: str) -> None:
        self._require_privileged(sender, "renounce_ownership")
        previous = self.owner
        self.owner = None
        logger.warning(f"Ownership renounced (was {previous}) by {sender}")

    def _require_committee(self, sender: str, action: str) -> None:
        if sender != self.address:
            logger.warning(f"{action} rejected: {sender} is not the committee")
            raise NotAuthorized(f"{action} can only run as an executed agenda")

    def _require_privileged(self, sender: str, action: str) -> None:
        if sender == self.address:
            return
        if self.owner is not None and sender == self.owner:
            return
        logger.warning(f"{action} rejected: {sender} is not the owner")
        raise NotAuthorized(f"{sender} is not allowed to call {action}")

    # ===== Dispatch =====

    def _run_committee_operation(self, operation: Operation) -> bool:
        """Run an operation targeting the committee itself"""
        p = operation.params
        kind = operation.kind
        me = self.address

        if kind == OperationKind.SET_CREATE_AGENDA_FEES:
            self.set_create_agenda_fees(me, p["fees"])
        elif kind == OperationKind.SET_MIN_NOTICE_PERIOD:
            self.set_min_notice_period(me, p["seconds"])
        elif kind == OperationKind.SET_MIN_VOTING_PERIOD:
            self.set_min_voting_period(me, p["seconds"])
        elif kind == OperationKind.SET_ACTIVITY_REWARD_PER_SECOND:
            self.set_activity_reward_per_second(me, p["value"])
        elif kind == OperationKind.SET_MAX_MEMBER:
            self.set_max_member(me, p["max_member"])
        elif kind == OperationKind.REDUCE_MEMBER_SLOT:
            self.reduce_member_slot(me, p["slot_index"])
        elif kind == OperationKind.REGISTER_OPERATOR_BY_OWNER:
            self.register_operator_by_owner(me, p["operator"], p["target"], p["name"])
        elif kind == OperationKind.SET_AGENDA_STATUS:
            self.set_agenda_status(me, p["agenda_id"], p["status"], p["result"])
        elif kind == OperationKind.TRANSFER_OWNERSHIP:
            self.transfer_ownership(me, p["new_owner"])
        elif kind == OperationKind.RENOUNCE_OWNERSHIP:
            self.renounce_ownership(me)
        elif kind == OperationKind.SET_COLLABORATOR:
            self.set_collaborator(me, p["name"], p["address"])
        else:
            raise ValidationError(f"Committee has no function {operation.name!r}")
        return True

    # ===== Persistence =====

    def snapshot(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "owner": self.owner,
            "parameters": self.parameters.to_dict(),
            "roster": self.roster.to_dict(),
            "agendas": [a.to_dict() for a in self.agenda_manager.list_agendas()],
            "executions": list(self.execution_engine.execution_history.values()),
        }

    def load_snapshot(self, state: Dict[str, Any]) -> None:
        with self._lock:
            self.owner = state.get("owner")
            self.parameters.load_dict(state["parameters"])
            roster = CommitteeRoster.from_dict(state["roster"])
            self.roster._slots = roster._slots
            self.roster.candidates = roster.candidates
            self.agenda_manager.agendas = {
                a["id"]: Agenda.from_dict(a) for a in state.get("agendas", [])
            }
            self.execution_engine.execution_history = {
                r["agenda_id"]: r for r in state.get("executions", [])
            }
        logger.info(
            f"Committee state restored: {self.num_agendas} agendas, "
            f"{self.roster.occupied_count()}/{self.roster.max_member} members"
        )

    @classmethod
    def restore(
        cls,
        persistence: CommitteePersistence,
        config: Optional[CommitteeConfig] = None,
        clock=None,
    ) -> 'CommitteeEngine':
        """Build an engine from saved state, or a fresh one if none exists"""
        engine = cls(config=config, clock=clock, persistence=persistence)
        state = persistence.load()
        if state is not None:
            engine.load_snapshot(state)
        return engine

    def save(self) -> bool:
        if self.persistence is None:
            return False
        return self.persistence.save(self.snapshot())

    def _persist(self) -> None:
        if self.persistence is not None:
            self.save()

    # ===== Statistics =====

    def get_statistics(self) -> Dict[str, Any]:
        """Get committee statistics"""
        agendas = self.list_agendas()
        return {
            "total_agendas": len(agendas),
            "by_status": {
                status.name: len([a for a in agendas if a.status == status])
                for status in AgendaStatus
            },
            "by_result": {
                result.name: len([a for a in agendas if a.result == result])
                for result in AgendaResult
            },
            "members": self.roster.occupied_count(),
            "max_member": self.roster.max_member,
            "candidates": len(self.roster.candidates),
            "owner": self.owner,
        }
