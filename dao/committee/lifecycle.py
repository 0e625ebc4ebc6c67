"""
Agenda lifecycle state machine.

Time-triggered transitions are pulled, never pushed: every entry point calls
LifecycleController.touch() which projects the agenda forward to the current
clock with the pure advance() function and commits the result.

    NONE -> NOTICE -> VOTING -> WAITING_EXEC -> EXECUTED
                             \\-> ENDED        \\-> ENDED (execution failed)

NOTICE -> VOTING happens on the first valid vote at or after notice end.
VOTING -> WAITING_EXEC/ENDED happens once the voting window has elapsed.
"""

import dataclasses
import logging
from typing import Callable, Optional

from .agenda import AgendaManager
from .errors import TransitionConflict, ValidationError
from .models import (
    Agenda,
    AgendaResult,
    AgendaStatus,
    HistoryEntry,
    STATUS_RANK,
)

logger = logging.getLogger(__name__)


def quorum_for(committee_size: int) -> int:
    """Votes required: half of the committee's slots, rounded up"""
    return (committee_size + 1) // 2


def evaluate_quorum(count_yes: int, count_no: int, count_abstain: int, committee_size: int) -> AgendaResult:
    """
    Decide an agenda's result from its final counters.

    DISMISSED when fewer than quorum members voted at all. ACCEPTED when the
    YES votes alone reach quorum and outnumber the NO votes. REJECTED
    otherwise.
    """
    quorum = quorum_for(committee_size)
    if count_yes + count_no + count_abstain < quorum:
        return AgendaResult.DISMISSED
    if count_yes >= quorum and count_yes > count_no:
        return AgendaResult.ACCEPTED
    return AgendaResult.REJECTED


def is_votable(agenda: Agenda, now: int) -> bool:
    if agenda.status == AgendaStatus.VOTING:
        return agenda.voting_end_at is not None and now < agenda.voting_end_at
    if agenda.status == AgendaStatus.NOTICE:
        return now >= agenda.notice_end_at
    return False


def advance(agenda: Agenda, now: int, committee_size: int) -> Agenda:
    """
    Project agenda forward to now.

    Returns the same object when nothing changes, otherwise an updated copy.
    Calling it again with the same or a later time is a no-op once the
    agenda has left VOTING.
    """
    if agenda.status != AgendaStatus.VOTING:
        return agenda
    if agenda.voting_end_at is None or now < agenda.voting_end_at:
        return agenda

    result = evaluate_quorum(agenda.count_yes, agenda.count_no, agenda.count_abstain, committee_size)
    status = AgendaStatus.WAITING_EXEC if result == AgendaResult.ACCEPTED else AgendaStatus.ENDED
    entry = HistoryEntry(
        kind="transition",
        at=agenda.voting_end_at,
        from_status=agenda.status,
        to_status=status,
        result=result,
        note=(
            f"yes={agenda.count_yes} no={agenda.count_no} abstain={agenda.count_abstain} "
            f"quorum={quorum_for(committee_size)}/{committee_size}"
        ),
    )
    return dataclasses.replace(agenda, status=status, result=result, history=agenda.history + [entry])


class LifecycleController:
    """Applies lifecycle transitions to stored agendas"""

    def __init__(
        self,
        agenda_manager: AgendaManager,
        clock,
        committee_size: Callable[[], int],
    ):
        self.agenda_manager = agenda_manager
        self.clock = clock
        self._committee_size = committee_size

    def touch(self, agenda_id: int, now: Optional[int] = None) -> Agenda:
        """Catch the agenda up to now and return the stored record"""
        now = self.clock.now() if now is None else now
        agenda = self.agenda_manager.get_agenda(agenda_id)
        advanced = advance(agenda, now, self._committee_size())
        if advanced is not agenda:
            if STATUS_RANK[advanced.status] <= STATUS_RANK[agenda.status]:
                raise TransitionConflict(
                    f"Agenda {agenda_id} cannot move {agenda.status.name} -> {advanced.status.name}"
                )
            self.agenda_manager.replace(advanced)
            logger.info(
                f"Agenda {agenda_id} voting ended: {advanced.status.name} / {advanced.result.name} "
                f"({advanced.history[-1].note})"
            )
        return advanced

    def catch_up(self, now: Optional[int] = None) -> int:
        """
        Evaluate every agenda whose voting window has closed.

        Runs before any roster change so that an elapsed agenda is judged
        against the committee size it closed under, whichever agenda the
        next caller happens to touch first.

        Returns:
            Number of agendas evaluated
        """
        now = self.clock.now() if now is None else now
        evaluated = 0
        for agenda in self.agenda_manager.list_agendas(AgendaStatus.VOTING):
            if agenda.voting_end_at is not None and now >= agenda.voting_end_at:
                self.touch(agenda.id, now)
                evaluated += 1
        return evaluated

    def get_status(self, agenda_id: int) -> AgendaStatus:
        return self.touch(agenda_id).status

    def start_voting(self, agenda: Agenda, now: int) -> None:
        """NOTICE -> VOTING, fired by the triggering vote"""
        if agenda.status != AgendaStatus.NOTICE:
            raise ValidationError(f"Agenda {agenda.id} is not in NOTICE (status: {agenda.status.name})")
        if now < agenda.notice_end_at:
            raise ValidationError(f"Agenda {agenda.id} notice period ends at {agenda.notice_end_at}")
        agenda.voting_started_at = now
        agenda.voting_end_at = now + agenda.voting_period_seconds
        agenda.status = AgendaStatus.VOTING
        agenda.history.append(HistoryEntry(
            kind="transition",
            at=now,
            from_status=AgendaStatus.NOTICE,
            to_status=AgendaStatus.VOTING,
            result=agenda.result,
        ))
        logger.info(f"Agenda {agenda.id} is now VOTING until {agenda.voting_end_at}")

    def can_execute(self, agenda: Agenda) -> bool:
        return agenda.status == AgendaStatus.WAITING_EXEC and not agenda.executed

    def override(
        self,
        agenda_id: int,
        status: AgendaStatus,
        result: AgendaResult,
        actor: str,
        now: Optional[int] = None,
    ) -> Agenda:
        """Write (status, result) directly, bypassing the transition table"""
        now = self.clock.now() if now is None else now
        try:
            status = AgendaStatus(status)
            result = AgendaResult(result)
        except ValueError as e:
            raise ValidationError(str(e))

        agenda = self.touch(agenda_id, now)
        previous = agenda.status
        agenda.status = status
        agenda.result = result
        agenda.history.append(HistoryEntry(
            kind="override",
            at=now,
            from_status=previous,
            to_status=status,
            result=result,
            actor=actor,
        ))
        logger.warning(
            f"ADMINISTRATIVE OVERRIDE: agenda {agenda_id} {previous.name} -> {status.name} "
            f"(result {result.name}) by {actor}"
        )
        return agenda
