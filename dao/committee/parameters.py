"""
Parameter Registry

Mutable policy knobs consulted by every other component. Authorization is
enforced by the engine: setters are only reachable through an executed
agenda.
"""

import logging
from decimal import Decimal
from typing import Dict, Optional, Any

from .config import CommitteeConfig
from .errors import ValidationError

logger = logging.getLogger(__name__)


COLLABORATOR_NAMES = (
    "seig_manager",
    "dao_vault",
    "layer2_registry",
    "candidate_factory",
    "ton",
)


class ParameterRegistry:
    """Holds the committee's policy parameters"""

    def __init__(self, config: Optional[CommitteeConfig] = None):
        config = config or CommitteeConfig.default()
        self.create_agenda_fee: Decimal = Decimal(config.CREATE_AGENDA_FEE)
        self.min_notice_period_seconds: int = config.MIN_NOTICE_PERIOD_SECONDS
        self.min_voting_period_seconds: int = config.MIN_VOTING_PERIOD_SECONDS
        self.activity_reward_per_second: Decimal = Decimal(config.ACTIVITY_REWARD_PER_SECOND)
        self.collaborators: Dict[str, Optional[str]] = {name: None for name in COLLABORATOR_NAMES}

    def set_create_agenda_fee(self, fees) -> None:
        fees = _to_decimal(fees, "fees")
        if fees < 0:
            raise ValidationError(f"Agenda fee cannot be negative ({fees})")
        old = self.create_agenda_fee
        self.create_agenda_fee = fees
        logger.info(f"create_agenda_fee changed {old} -> {fees}")

    def set_min_notice_period(self, seconds: int) -> None:
        seconds = _to_seconds(seconds, "notice period")
        old = self.min_notice_period_seconds
        self.min_notice_period_seconds = seconds
        logger.info(f"min_notice_period_seconds changed {old} -> {seconds}")

    def set_min_voting_period(self, seconds: int) -> None:
        seconds = _to_seconds(seconds, "voting period")
        old = self.min_voting_period_seconds
        self.min_voting_period_seconds = seconds
        logger.info(f"min_voting_period_seconds changed {old} -> {seconds}")

    def set_activity_reward_per_second(self, value) -> None:
        value = _to_decimal(value, "activity reward")
        if value < 0:
            raise ValidationError(f"Activity reward cannot be negative ({value})")
        old = self.activity_reward_per_second
        self.activity_reward_per_second = value
        logger.info(f"activity_reward_per_second changed {old} -> {value}")

    def set_collaborator(self, name: str, address: str) -> None:
        if name not in self.collaborators:
            raise ValidationError(
                f"Unknown collaborator '{name}'. Valid options: {', '.join(COLLABORATOR_NAMES)}"
            )
        if not address:
            raise ValidationError("Collaborator address cannot be empty")
        self.collaborators[name] = address
        logger.info(f"Collaborator {name} set to {address}")

    def validate_periods(self, notice_period: int, voting_period: int) -> None:
        """Check agenda periods against the configured minimums"""
        if notice_period < self.min_notice_period_seconds:
            raise ValidationError(
                f"Notice period {notice_period}s below minimum {self.min_notice_period_seconds}s"
            )
        if voting_period < self.min_voting_period_seconds:
            raise ValidationError(
                f"Voting period {voting_period}s below minimum {self.min_voting_period_seconds}s"
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "create_agenda_fee": str(self.create_agenda_fee),
            "min_notice_period_seconds": self.min_notice_period_seconds,
            "min_voting_period_seconds": self.min_voting_period_seconds,
            "activity_reward_per_second": str(self.activity_reward_per_second),
            "collaborators": dict(self.collaborators),
        }

    def load_dict(self, data: Dict[str, Any]) -> None:
        self.create_agenda_fee = Decimal(data["create_agenda_fee"])
        self.min_notice_period_seconds = int(data["min_notice_period_seconds"])
        self.min_voting_period_seconds = int(data["min_voting_period_seconds"])
        self.activity_reward_per_second = Decimal(data["activity_reward_per_second"])
        for name, address in data.get("collaborators", {}).items():
            if name in self.collaborators:
                self.collaborators[name] = address


def _to_decimal(value, label: str) -> Decimal:
    try:
        result = Decimal(str(value))
    except ArithmeticError:
        raise ValidationError(f"Invalid {label}: {value!r}")
    if not result.is_finite():
        raise ValidationError(f"Invalid {label}: {value!r}")
    return result


def _to_seconds(value, label: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"Invalid {label}: {value!r} (expected whole seconds)")
    if value < 0:
        raise ValidationError(f"Invalid {label}: {value} (negative)")
    return value
