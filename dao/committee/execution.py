"""
Agenda Execution Dispatcher

Runs the operation of an accepted agenda against its target exactly once.
"""

import logging
from typing import Callable, Dict, Optional, Any

from .errors import CommitteeError, ExecutionFailure, TransitionConflict, ValidationError
from .lifecycle import LifecycleController
from .models import Agenda, AgendaResult, AgendaStatus, HistoryEntry
from .operations import Operation

logger = logging.getLogger(__name__)


ExecutionHandler = Callable[[Operation], Optional[bool]]
"""Runs an operation for a target. Returning False or raising means failure."""


class ExecutionEngine:
    """
    Dispatches accepted agendas to their targets

    Features:
    - Executed flag committed before the operation runs, so a re-entrant
      call for the same agenda is refused
    - A failed operation finalizes the agenda to ENDED / DISMISSED
    - No retry: operations are not assumed idempotent
    """

    def __init__(self, lifecycle: LifecycleController):
        self.lifecycle = lifecycle
        self.handlers: Dict[str, ExecutionHandler] = {}  # target -> handler
        self.execution_history: Dict[int, Dict[str, Any]] = {}  # agenda_id -> record
        logger.info("ExecutionEngine initialized")

    def register_handler(self, target: str, handler: ExecutionHandler) -> None:
        """
        Register an execution handler for a target

        Args:
            target: Target identifier agendas refer to
            handler: Function that runs an operation for the target
        """
        self.handlers[target] = handler
        logger.info(f"Registered execution handler for {target}")

    def execute_agenda(self, agenda_id: int, executor: str, now: int) -> bool:
        """
        Execute an accepted agenda

        Returns:
            True once the operation has run

        Raises:
            TransitionConflict: If the agenda was already executed (or is executing)
            ValidationError: If the agenda is not waiting for execution
            ExecutionFailure: If the operation failed; the agenda is now ENDED
        """
        agenda = self.lifecycle.touch(agenda_id, now)

        if agenda.executed:
            raise TransitionConflict(f"Agenda {agenda_id} has already been executed")
        if agenda.status != AgendaStatus.WAITING_EXEC:
            raise ValidationError(
                f"Cannot execute agenda {agenda_id} with status {agenda.status.name}"
            )

        self._mark_executed(agenda, executor, now)
        record = {
            "agenda_id": agenda_id,
            "target": agenda.target,
            "operation": agenda.operation.name,
            "executor": executor,
            "started_at": now,
            "success": False,
        }
        self.execution_history[agenda_id] = record

        logger.info(f"Executing agenda {agenda_id}: {agenda.operation.name} on {agenda.target}")
        try:
            self._dispatch(agenda)
        except Exception as e:
            if isinstance(e, CommitteeError):
                logger.error(f"Agenda {agenda_id} operation rejected: {e}")
            else:
                logger.exception(f"Agenda {agenda_id} operation raised")
            self._finalize_failed(agenda, now, str(e))
            record["error"] = str(e)
            raise ExecutionFailure(agenda_id, str(e), cause=e) from e

        record["success"] = True
        logger.info(f"Agenda {agenda_id} executed successfully")
        return True

    def get_execution_status(self, agenda_id: int) -> Optional[Dict[str, Any]]:
        """Get execution record for an agenda"""
        return self.execution_history.get(agenda_id)

    def _dispatch(self, agenda: Agenda) -> None:
        handler = self.handlers.get(agenda.target)
        if handler is None:
            raise ValidationError(f"No handler registered for target: {agenda.target}")
        if handler(agenda.operation) is False:
            raise ValidationError(f"Target {agenda.target} rejected {agenda.operation.name}")

    @staticmethod
    def _mark_executed(agenda: Agenda, executor: str, now: int) -> None:
        agenda.executed = True
        agenda.executed_at = now
        agenda.status = AgendaStatus.EXECUTED
        agenda.history.append(HistoryEntry(
            kind="execution",
            at=now,
            from_status=AgendaStatus.WAITING_EXEC,
            to_status=AgendaStatus.EXECUTED,
            result=agenda.result,
            actor=executor,
        ))

    @staticmethod
    def _finalize_failed(agenda: Agenda, now: int, reason: str) -> None:
        agenda.executed = False
        agenda.executed_at = None
        agenda.status = AgendaStatus.ENDED
        agenda.result = AgendaResult.DISMISSED
        agenda.history.append(HistoryEntry(
            kind="execution",
            at=now,
            from_status=AgendaStatus.EXECUTED,
            to_status=AgendaStatus.ENDED,
            result=AgendaResult.DISMISSED,
            note=f"operation failed: {reason}",
        ))
