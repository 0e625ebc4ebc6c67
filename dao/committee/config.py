"""
Agenda Committee Configuration
"""

import os
from decimal import Decimal
from dataclasses import dataclass


@dataclass
class CommitteeConfig:
    """Initial configuration for the agenda committee.

    These values seed the parameter registry on first start. Once the
    committee is running its registry (persisted) is authoritative and
    changes only through executed agendas.
    """

    # Agenda creation
    CREATE_AGENDA_FEE: Decimal = Decimal("100")

    # Time periods (in seconds)
    MIN_NOTICE_PERIOD_SECONDS: int = 10000
    MIN_VOTING_PERIOD_SECONDS: int = 10000

    # Committee
    MAX_MEMBER: int = 3
    MIN_STAKE_TO_JOIN: Decimal = Decimal("1000")
    ACTIVITY_REWARD_PER_SECOND: Decimal = Decimal("1")

    # Identity of the committee itself, used as the sender of dispatched
    # operations and as the target of self-amending agendas
    COMMITTEE_ADDRESS: str = "committee"
    OWNER_ADDRESS: str = "owner"

    # Runtime
    DATA_DIR: str = "data/committee"
    LOG_LEVEL: str = "INFO"

    @classmethod
    def default(cls) -> 'CommitteeConfig':
        """Get default configuration"""
        return cls()

    @classmethod
    def testing(cls) -> 'CommitteeConfig':
        """Get configuration with short periods for local runs"""
        return cls(
            MIN_NOTICE_PERIOD_SECONDS=120,
            MIN_VOTING_PERIOD_SECONDS=300,
            MIN_STAKE_TO_JOIN=Decimal("0"),
        )

    @classmethod
    def from_env(cls) -> 'CommitteeConfig':
        """Build configuration from COMMITTEE_* environment variables"""
        base = cls()
        env = os.environ
        return cls(
            CREATE_AGENDA_FEE=Decimal(env.get("COMMITTEE_CREATE_AGENDA_FEE", str(base.CREATE_AGENDA_FEE))),
            MIN_NOTICE_PERIOD_SECONDS=int(env.get("COMMITTEE_MIN_NOTICE_PERIOD_SECONDS", base.MIN_NOTICE_PERIOD_SECONDS)),
            MIN_VOTING_PERIOD_SECONDS=int(env.get("COMMITTEE_MIN_VOTING_PERIOD_SECONDS", base.MIN_VOTING_PERIOD_SECONDS)),
            MAX_MEMBER=int(env.get("COMMITTEE_MAX_MEMBER", base.MAX_MEMBER)),
            MIN_STAKE_TO_JOIN=Decimal(env.get("COMMITTEE_MIN_STAKE_TO_JOIN", str(base.MIN_STAKE_TO_JOIN))),
            ACTIVITY_REWARD_PER_SECOND=Decimal(
                env.get("COMMITTEE_ACTIVITY_REWARD_PER_SECOND", str(base.ACTIVITY_REWARD_PER_SECOND))
            ),
            COMMITTEE_ADDRESS=env.get("COMMITTEE_ADDRESS", base.COMMITTEE_ADDRESS),
            OWNER_ADDRESS=env.get("COMMITTEE_OWNER_ADDRESS", base.OWNER_ADDRESS),
            DATA_DIR=env.get("COMMITTEE_DATA_DIR", base.DATA_DIR),
            LOG_LEVEL=env.get("COMMITTEE_LOG_LEVEL", base.LOG_LEVEL),
        )
