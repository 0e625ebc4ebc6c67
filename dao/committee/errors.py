"""
Error types for the agenda committee.

The classes keep the standard library bases callers already catch
(ValueError, PermissionError, KeyError, RuntimeError).
"""

from typing import Optional


class CommitteeError(Exception):
    """Base class for every error raised by the committee"""


class ValidationError(CommitteeError, ValueError):
    """Bad parameters or a call made in the wrong state. Nothing was mutated."""


class NotAuthorized(ValidationError, PermissionError):
    """The caller is not allowed to perform the operation"""


class AgendaNotFound(ValidationError, KeyError):
    """No agenda with the given id"""

    def __init__(self, agenda_id: int):
        super().__init__(f"Agenda {agenda_id} not found")
        self.agenda_id = agenda_id

    def __str__(self) -> str:
        return f"Agenda {self.agenda_id} not found"


class TransitionConflict(CommitteeError, ValueError):
    """The precondition already changed (double vote, double execution)"""


class ExecutionFailure(CommitteeError, RuntimeError):
    """The dispatched operation rejected; the agenda has been finalized"""

    def __init__(self, agenda_id: int, reason: str, cause: Optional[BaseException] = None):
        super().__init__(f"Agenda {agenda_id} execution failed: {reason}")
        self.agenda_id = agenda_id
        self.reason = reason
        self.cause = cause
