"""
Agenda Management Module
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional

from .models import Agenda, AgendaStatus, HistoryEntry, AgendaResult
from .operations import Operation
from .parameters import ParameterRegistry
from .errors import AgendaNotFound, ValidationError

logger = logging.getLogger(__name__)


class AgendaManager:
    """Owns agenda records. Agendas are append-only and never deleted."""

    def __init__(self, parameters: ParameterRegistry):
        self.parameters = parameters
        self.agendas: Dict[int, Agenda] = {}
        logger.info("AgendaManager initialized")

    @property
    def num_agendas(self) -> int:
        return len(self.agendas)

    def create_agenda(
        self,
        creator: str,
        target: str,
        notice_period: int,
        voting_period: int,
        operation: Operation,
        fee,
        now: int,
    ) -> Agenda:
        """
        Create a new agenda in NOTICE

        Args:
            creator: Address paying the fee
            target: Identifier the operation is dispatched to
            notice_period: Seconds before voting may start
            voting_period: Length of the voting window in seconds
            operation: Opaque operation to run if accepted
            fee: Amount paid for creation
            now: Current timestamp

        Returns:
            Created agenda

        Raises:
            ValidationError: If fee or periods are below the configured minimums
        """
        fee = self.validate_agenda(target, notice_period, voting_period, operation, fee)

        agenda = Agenda(
            id=self.num_agendas,
            creator=creator,
            target=target,
            operation=operation,
            created_at=now,
            notice_end_at=now + notice_period,
            voting_period_seconds=voting_period,
            status=AgendaStatus.NOTICE,
            fee_paid=fee,
        )
        agenda.history.append(HistoryEntry(
            kind="transition",
            at=now,
            from_status=AgendaStatus.NONE,
            to_status=AgendaStatus.NOTICE,
            result=AgendaResult.NONE,
            actor=creator,
        ))
        self.agendas[agenda.id] = agenda

        logger.info(
            f"Created agenda {agenda.id} by {creator} "
            f"(target: {target}, operation: {operation.name}, notice_end: {agenda.notice_end_at})"
        )
        return agenda

    def validate_agenda(
        self,
        target: str,
        notice_period: int,
        voting_period: int,
        operation: Operation,
        fee,
    ) -> Decimal:
        """Check creation arguments without storing anything, returns the fee"""
        try:
            fee = Decimal(str(fee))
        except InvalidOperation:
            raise ValidationError(f"Invalid fee: {fee!r}")
        if not fee.is_finite():
            raise ValidationError(f"Invalid fee: {fee}")

        if fee < self.parameters.create_agenda_fee:
            raise ValidationError(
                f"Agenda fee {fee} below required {self.parameters.create_agenda_fee}"
            )
        for label, value in (("notice", notice_period), ("voting", voting_period)):
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValidationError(f"Invalid {label} period: {value!r}")
        self.parameters.validate_periods(notice_period, voting_period)
        if not target:
            raise ValidationError("Agenda target cannot be empty")
        if not isinstance(operation, Operation):
            raise ValidationError(f"Invalid operation: {operation!r}")
        return fee

    def get_agenda(self, agenda_id: int) -> Agenda:
        agenda = self.agendas.get(agenda_id)
        if agenda is None:
            raise AgendaNotFound(agenda_id)
        return agenda

    def replace(self, agenda: Agenda) -> None:
        """Store an updated copy of an existing agenda"""
        if agenda.id not in self.agendas:
            raise AgendaNotFound(agenda.id)
        self.agendas[agenda.id] = agenda

    def list_agendas(self, status: Optional[AgendaStatus] = None) -> List[Agenda]:
        """Get all agendas in id order, optionally filtered by status"""
        agendas = [self.agendas[i] for i in sorted(self.agendas)]
        if status is not None:
            agendas = [a for a in agendas if a.status == status]
        return agendas
