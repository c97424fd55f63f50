"""
Automation schemas.

AutomationSettings is the validated, closed view of a user's settings row.
Everything else is an immutable value passed between decoder, evaluator,
executor and notifier. Amounts are integer base units unless noted.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from orbbot.core.enums import ActionKind, Platform


class AutomationSettings(BaseModel):
    """User automation settings (display units: SOL / ORB / USD)."""

    model_config = ConfigDict(extra="forbid", from_attributes=True, validate_assignment=True)

    # Mining
    motherload_threshold: Decimal = Field(default=Decimal("5000"), ge=0)
    sol_per_block: Decimal = Field(default=Decimal("0.001"), ge=0)
    num_blocks: int = Field(default=10, ge=1, le=25)
    automation_budget_percent: int = Field(default=50, ge=0, le=100)

    # Auto-claim (0 disables)
    auto_claim_sol_threshold: Decimal = Field(default=Decimal("0.01"), ge=0)
    auto_claim_orb_threshold: Decimal = Field(default=Decimal("10000"), ge=0)
    auto_claim_staking_threshold: Decimal = Field(default=Decimal("1"), ge=0)

    # Auto-swap
    auto_swap_enabled: bool = False
    swap_threshold: Decimal = Field(default=Decimal("100"), ge=0)
    min_orb_price: Decimal = Field(default=Decimal("0"), ge=0)
    min_orb_to_keep: Decimal = Field(default=Decimal("10"), ge=0)
    min_swap_amount: Decimal = Field(default=Decimal("1"), ge=0)
    slippage_bps: int = Field(default=300, ge=0, le=10_000)

    # Auto-stake
    auto_stake_enabled: bool = False
    stake_threshold: Decimal = Field(default=Decimal("50"), ge=0)

    # Auto-transfer
    auto_transfer_enabled: bool = False
    orb_transfer_threshold: Decimal = Field(default=Decimal("100"), ge=0)
    transfer_recipient_address: Optional[str] = None


SETTINGS_FIELDS: tuple[str, ...] = tuple(AutomationSettings.model_fields)


@dataclass(frozen=True)
class AutomationSnapshot:
    amount_per_square: int
    balance: int
    square_mask: int


@dataclass(frozen=True)
class MinerSnapshot:
    rewards_sol: int
    rewards_orb: int
    deployed_per_square: tuple[int, ...] = ()


@dataclass(frozen=True)
class StakeSnapshot:
    staked: int
    rewards_sol: int
    rewards_orb: int


@dataclass(frozen=True)
class AutomationStatus:
    active: bool
    balance: int = 0
    cost_per_round: int = 0
    estimated_rounds: int = 0


@dataclass(frozen=True)
class RoundState:
    """Current mining round. motherload in ORB base units."""

    round_id: int
    motherload: int
    accepting: bool = True  # False once the round has reached its end slot


@dataclass(frozen=True)
class AutomationPlan:
    """Deposit for a new automation account, sized from the SOL balance."""

    amount_per_square: int
    square_mask: int
    rounds: int
    deposit: int


@dataclass(frozen=True)
class RewardsSnapshot:
    """Claimable rewards from the miner and stake accounts."""

    mining_sol: int = 0
    mining_orb: int = 0
    staking_sol: int = 0
    staking_orb: int = 0


@dataclass(frozen=True)
class Balances:
    """Wallet balances: SOL in lamports, ORB normalised to 9 decimals."""

    sol: int = 0
    orb: int = 0


@dataclass(frozen=True)
class PriceQuote:
    """ORB price in USD and in SOL."""

    usd: Decimal
    native_ratio: Decimal


@dataclass(frozen=True)
class DueAction:
    kind: ActionKind
    amount: int
    slippage_bps: Optional[int] = None
    recipient: Optional[str] = None


@dataclass(frozen=True)
class ActionResult:
    kind: ActionKind
    success: bool
    requested_amount: int = 0
    sol_amount: int = 0
    orb_amount: int = 0
    signature: Optional[str] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class EnrolledUser:
    platform: Platform
    user_id: str
    public_key: str

    @property
    def key(self) -> tuple[str, str]:
        return (self.platform.value, self.user_id)

    def __str__(self) -> str:
        return f"{self.platform.value}:{self.user_id}"


@dataclass(frozen=True)
class MessageHandle:
    chat_id: int | str
    message_id: int


@dataclass(frozen=True)
class ClaimEntry:
    description: str
    timestamp: datetime


@dataclass
class ClaimHistoryEntry:
    """In-memory claim message state for one user, entries newest first."""

    user_key: tuple[str, str]
    handle: MessageHandle
    entries: list[ClaimEntry] = field(default_factory=list)
