"""
Opaque operations carried by agendas.

An operation is a tagged command: a closed set of kinds the committee knows
how to run against itself, plus CUSTOM whose meaning belongs to whichever
target handler receives it.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Dict, Any, Optional

from .errors import ValidationError


class OperationKind(Enum):
    """Known operation kinds"""
    SET_CREATE_AGENDA_FEES = "set_create_agenda_fees"
    SET_MIN_NOTICE_PERIOD = "set_min_notice_period_seconds"
    SET_MIN_VOTING_PERIOD = "set_min_voting_period_seconds"
    SET_ACTIVITY_REWARD_PER_SECOND = "set_activity_reward_per_second"
    SET_MAX_MEMBER = "set_max_member"
    REDUCE_MEMBER_SLOT = "reduce_member_slot"
    REGISTER_OPERATOR_BY_OWNER = "register_operator_by_owner"
    SET_AGENDA_STATUS = "set_agenda_status"
    TRANSFER_OWNERSHIP = "transfer_ownership"
    RENOUNCE_OWNERSHIP = "renounce_ownership"
    SET_COLLABORATOR = "set_collaborator"
    CUSTOM = "custom"


# Required parameter names per known kind
REQUIRED_PARAMS = {
    OperationKind.SET_CREATE_AGENDA_FEES: ("fees",),
    OperationKind.SET_MIN_NOTICE_PERIOD: ("seconds",),
    OperationKind.SET_MIN_VOTING_PERIOD: ("seconds",),
    OperationKind.SET_ACTIVITY_REWARD_PER_SECOND: ("value",),
    OperationKind.SET_MAX_MEMBER: ("max_member",),
    OperationKind.REDUCE_MEMBER_SLOT: ("slot_index",),
    OperationKind.REGISTER_OPERATOR_BY_OWNER: ("operator", "target", "name"),
    OperationKind.SET_AGENDA_STATUS: ("agenda_id", "status", "result"),
    OperationKind.TRANSFER_OWNERSHIP: ("new_owner",),
    OperationKind.RENOUNCE_OWNERSHIP: (),
    OperationKind.SET_COLLABORATOR: ("name", "address"),
    OperationKind.CUSTOM: (),
}


def _encode(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    return value


@dataclass
class Operation:
    """Executable command for an agenda"""
    kind: OperationKind
    params: Dict[str, Any] = field(default_factory=dict)
    function: Optional[str] = None  # CUSTOM only

    def __post_init__(self):
        missing = [p for p in REQUIRED_PARAMS[self.kind] if p not in self.params]
        if missing:
            raise ValidationError(f"Operation {self.kind.value} missing parameters: {', '.join(missing)}")
        if self.kind == OperationKind.CUSTOM and not self.function:
            raise ValidationError("Custom operation requires a function name")

    @property
    def name(self) -> str:
        if self.kind == OperationKind.CUSTOM:
            return self.function
        return self.kind.value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "function": self.function,
            "params": {k: _encode(v) for k, v in self.params.items()},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Operation':
        return cls(
            kind=OperationKind(data["kind"]),
            params=dict(data.get("params", {})),
            function=data.get("function"),
        )

    # ===== Constructors =====

    @classmethod
    def set_create_agenda_fees(cls, fees) -> 'Operation':
        return cls(OperationKind.SET_CREATE_AGENDA_FEES, {"fees": Decimal(str(fees))})

    @classmethod
    def set_min_notice_period(cls, seconds: int) -> 'Operation':
        return cls(OperationKind.SET_MIN_NOTICE_PERIOD, {"seconds": seconds})

    @classmethod
    def set_min_voting_period(cls, seconds: int) -> 'Operation':
        return cls(OperationKind.SET_MIN_VOTING_PERIOD, {"seconds": seconds})

    @classmethod
    def set_activity_reward_per_second(cls, value) -> 'Operation':
        return cls(OperationKind.SET_ACTIVITY_REWARD_PER_SECOND, {"value": Decimal(str(value))})

    @classmethod
    def set_max_member(cls, max_member: int) -> 'Operation':
        return cls(OperationKind.SET_MAX_MEMBER, {"max_member": max_member})

    @classmethod
    def reduce_member_slot(cls, slot_index: int) -> 'Operation':
        return cls(OperationKind.REDUCE_MEMBER_SLOT, {"slot_index": slot_index})

    @classmethod
    def register_operator_by_owner(cls, operator: str, target: str, name: str) -> 'Operation':
        return cls(
            OperationKind.REGISTER_OPERATOR_BY_OWNER,
            {"operator": operator, "target": target, "name": name},
        )

    @classmethod
    def set_agenda_status(cls, agenda_id: int, status: int, result: int) -> 'Operation':
        return cls(
            OperationKind.SET_AGENDA_STATUS,
            {"agenda_id": agenda_id, "status": int(status), "result": int(result)},
        )

    @classmethod
    def transfer_ownership(cls, new_owner: str) -> 'Operation':
        return cls(OperationKind.TRANSFER_OWNERSHIP, {"new_owner": new_owner})

    @classmethod
    def renounce_ownership(cls) -> 'Operation':
        return cls(OperationKind.RENOUNCE_OWNERSHIP)

    @classmethod
    def set_collaborator(cls, name: str, address: str) -> 'Operation':
        return cls(OperationKind.SET_COLLABORATOR, {"name": name, "address": address})

    @classmethod
    def custom(cls, function: str, **params) -> 'Operation':
        return cls(OperationKind.CUSTOM, params, function=function)
