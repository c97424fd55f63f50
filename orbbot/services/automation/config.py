"""
Automation Configuration

Loop timing and execution limits. Timing defaults come from config.config (env).
"""
from dataclasses import dataclass, field
from typing import Dict

from config.config import (
    AUTOMATION_ENABLED,
    AUTO_CLAIM_INTERVAL,
    AUTO_CLAIM_FIRST_RUN,
    AUTO_CLAIM_USER_DELAY,
    AUTO_SWAP_INTERVAL,
    AUTO_SWAP_FIRST_RUN,
    AUTO_SWAP_USER_DELAY,
    AUTO_STAKE_INTERVAL,
    AUTO_STAKE_FIRST_RUN,
    AUTO_STAKE_USER_DELAY,
    ROUND_CHECK_INTERVAL,
    ROUND_FIRST_RUN,
    ROUND_USER_DELAY,
)
from orbbot.core.enums import ActionClass


@dataclass
class LoopConfig:
    """Timer for one action class."""
    interval_sec: int
    first_run_sec: int     # delay after process start
    user_delay_sec: float  # pause between users inside one pass


@dataclass
class LimitsConfig:
    """Fixed floors, base units."""
    min_stake_amount: int = 1_000_000_000  # 1 ORB


@dataclass
class AutomationConfig:
    enabled: bool = AUTOMATION_ENABLED
    loops: Dict[ActionClass, LoopConfig] = field(
        default_factory=lambda: {
            ActionClass.CLAIM: LoopConfig(
                AUTO_CLAIM_INTERVAL, AUTO_CLAIM_FIRST_RUN, AUTO_CLAIM_USER_DELAY
            ),
            ActionClass.SWAP: LoopConfig(
                AUTO_SWAP_INTERVAL, AUTO_SWAP_FIRST_RUN, AUTO_SWAP_USER_DELAY
            ),
            ActionClass.STAKE: LoopConfig(
                AUTO_STAKE_INTERVAL, AUTO_STAKE_FIRST_RUN, AUTO_STAKE_USER_DELAY
            ),
        }
    )
    # Round automation poll (deploys at most once per round)
    rounds: LoopConfig = field(
        default_factory=lambda: LoopConfig(ROUND_CHECK_INTERVAL, ROUND_FIRST_RUN, ROUND_USER_DELAY)
    )
    limits: LimitsConfig = field(default_factory=LimitsConfig)


# Singleton instance
AUTOMATION_CONFIG = AutomationConfig()


def get_config() -> AutomationConfig:
    return AUTOMATION_CONFIG
