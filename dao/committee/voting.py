"""
Vote Tally for committee agendas
"""

import logging
from typing import Callable, List, Tuple

from .errors import NotAuthorized, TransitionConflict, ValidationError
from .lifecycle import LifecycleController, is_votable
from .models import Agenda, AgendaStatus, Vote, VoteChoice

logger = logging.getLogger(__name__)


class VotingManager:
    """
    Records member votes on agendas

    Features:
    - One vote per member per agenda, no withdrawal
    - Membership checked at the time of the vote
    - The first valid vote after notice end starts the voting window
    """

    def __init__(self, lifecycle: LifecycleController, is_member: Callable[[str], bool]):
        self.lifecycle = lifecycle
        self._is_member = is_member
        logger.info("VotingManager initialized")

    def cast_vote(self, agenda_id: int, voter: str, choice, memo: str, now: int) -> Vote:
        """
        Cast a vote on an agenda

        Raises:
            NotAuthorized: If voter is not a current member
            ValidationError: If the agenda is not open for voting or choice is invalid
            TransitionConflict: If voter already voted on this agenda
        """
        agenda = self.lifecycle.touch(agenda_id, now)

        try:
            choice = VoteChoice(choice)
        except ValueError:
            raise ValidationError(f"Invalid vote choice: {choice!r}")
        if not self._is_member(voter):
            raise NotAuthorized(f"{voter} is not a committee member")
        if agenda.has_voted(voter):
            raise TransitionConflict(f"{voter} has already voted on agenda {agenda_id}")
        if not is_votable(agenda, now):
            raise ValidationError(
                f"Agenda {agenda_id} is not open for voting (status: {agenda.status.name})"
            )

        if agenda.status == AgendaStatus.NOTICE:
            self.lifecycle.start_voting(agenda, now)

        vote = Vote(voter=voter, has_voted=True, choice=choice, memo=memo or "", cast_at=now)
        agenda.votes[voter] = vote
        self._count(agenda, choice)

        logger.info(f"Vote cast: {voter} voted {choice.name} on agenda {agenda_id} ({memo!r})")
        return vote

    @staticmethod
    def _count(agenda: Agenda, choice: VoteChoice) -> None:
        if choice == VoteChoice.YES:
            agenda.count_yes += 1
        elif choice == VoteChoice.NO:
            agenda.count_no += 1
        else:
            agenda.count_abstain += 1

    def get_vote_status(self, agenda_id: int, voter: str) -> Tuple[bool, VoteChoice]:
        agenda = self.lifecycle.agenda_manager.get_agenda(agenda_id)
        vote = agenda.votes.get(voter)
        if vote is None:
            return False, VoteChoice.ABSTAIN
        return vote.has_voted, vote.choice

    def get_voters(self, agenda_id: int) -> List[str]:
        return self.lifecycle.agenda_manager.get_agenda(agenda_id).voters
