"""
Account decoder.

Parses raw program account data into snapshots. Byte offsets are the
on-chain layout of the ORB program and must not change.

All fields are little-endian u64. A missing account or a buffer shorter than
the layout minimum decodes to None, which callers treat as "inactive".
"""

import struct
from typing import Optional, Union

from loguru import logger
from solders.pubkey import Pubkey

from config.config import ORB_PROGRAM_ID
from orbbot.core.enums import AccountKind
from orbbot.services.automation.schemas import (
    AutomationSnapshot,
    AutomationStatus,
    MinerSnapshot,
    StakeSnapshot,
)

Snapshot = Union[AutomationSnapshot, MinerSnapshot, StakeSnapshot]

_U64 = struct.Struct("<Q")

# Automation account
AUTOMATION_MIN_SIZE = 112
AUTOMATION_AMOUNT_OFFSET = 8
AUTOMATION_BALANCE_OFFSET = 48
AUTOMATION_MASK_OFFSET = 104

# Miner account: 8 discriminator + 32 authority + deployed[25] + cumulative[25]
# + checkpoint fee/id + claim timestamps + rewards factor (16) + rewards
SQUARE_COUNT = 25
MINER_DEPLOYED_OFFSET = 40
MINER_REWARDS_SOL_OFFSET = 488
MINER_REWARDS_ORB_OFFSET = 496
MINER_MIN_SIZE = 504

# Stake account: 8 discriminator + 32 authority + balance + 3 timestamps
# + rewards factor (16) + rewards
STAKE_BALANCE_OFFSET = 40
STAKE_REWARDS_SOL_OFFSET = 88
STAKE_REWARDS_ORB_OFFSET = 96
STAKE_MIN_SIZE = 104

def _u64(data: bytes, offset: int) -> int:
    return _U64.unpack_from(data, offset)[0]


def decode_automation(data: Optional[bytes]) -> Optional[AutomationSnapshot]:
    if data is None or len(data) < AUTOMATION_MIN_SIZE:
        return None
    return AutomationSnapshot(
        amount_per_square=_u64(data, AUTOMATION_AMOUNT_OFFSET),
        balance=_u64(data, AUTOMATION_BALANCE_OFFSET),
        square_mask=_u64(data, AUTOMATION_MASK_OFFSET),
    )


def decode_miner(data: Optional[bytes]) -> Optional[MinerSnapshot]:
    if data is None or len(data) < MINER_MIN_SIZE:
        return None
    deployed = struct.unpack_from(f"<{SQUARE_COUNT}Q", data, MINER_DEPLOYED_OFFSET)
    return MinerSnapshot(
        rewards_sol=_u64(data, MINER_REWARDS_SOL_OFFSET),
        rewards_orb=_u64(data, MINER_REWARDS_ORB_OFFSET),
        deployed_per_square=tuple(deployed),
    )


def decode_stake(data: Optional[bytes]) -> Optional[StakeSnapshot]:
    if data is None or len(data) < STAKE_MIN_SIZE:
        return None
    return StakeSnapshot(
        staked=_u64(data, STAKE_BALANCE_OFFSET),
        rewards_sol=_u64(data, STAKE_REWARDS_SOL_OFFSET),
        rewards_orb=_u64(data, STAKE_REWARDS_ORB_OFFSET),
    )


_DECODERS = {
    AccountKind.AUTOMATION: decode_automation,
    AccountKind.MINER: decode_miner,
    AccountKind.STAKE: decode_stake,
}


def decode(kind: AccountKind, data: Optional[bytes]) -> Optional[Snapshot]:
    """
    Decode an account of the given kind.

    Args:
        kind: Account layout
        data: Raw account data, None if the account does not exist

    Returns:
        Snapshot, or None when the account is absent or too short
    """
    snapshot = _DECODERS[kind](data)
    if snapshot is None:
        size = "absent" if data is None else f"{len(data)} bytes"
        logger.debug(f"{kind.value} account not decodable ({size})")
    return snapshot


def selected_squares(square_mask: int) -> list[int]:
    """Positions of set bits in the mask, ascending."""
    return [i for i in range(64) if square_mask >> i & 1]


def cost_per_round(snapshot: AutomationSnapshot) -> int:
    return snapshot.amount_per_square * bin(snapshot.square_mask).count("1")


def estimated_rounds(snapshot: AutomationSnapshot) -> int:
    cost = cost_per_round(snapshot)
    return snapshot.balance // cost if cost > 0 else 0


def automation_status(snapshot: Optional[AutomationSnapshot]) -> AutomationStatus:
    if snapshot is None:
        return AutomationStatus(active=False)
    return AutomationStatus(
        active=True,
        balance=snapshot.balance,
        cost_per_round=cost_per_round(snapshot),
        estimated_rounds=estimated_rounds(snapshot),
    )


def derive_account_address(
    kind: AccountKind, owner: Pubkey, program_id: Optional[Pubkey] = None
) -> Pubkey:
    """PDA for a user's program account, seeds = [kind, owner]."""
    program = program_id or Pubkey.from_string(ORB_PROGRAM_ID)
    address, _bump = Pubkey.find_program_address(
        [kind.value.encode(), bytes(owner)], program
    )
    return address
