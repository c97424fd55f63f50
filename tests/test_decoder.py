"""
Unit tests for the account decoder
"""
import struct

from solders.pubkey import Pubkey

from orbbot.core.enums import AccountKind
from orbbot.services.automation.decoder import (
    AUTOMATION_MIN_SIZE,
    MINER_MIN_SIZE,
    STAKE_MIN_SIZE,
    automation_status,
    cost_per_round,
    decode,
    decode_automation,
    decode_miner,
    decode_stake,
    derive_account_address,
    estimated_rounds,
    selected_squares,
)
from orbbot.services.automation.schemas import AutomationSnapshot


def automation_buffer(amount: int, balance: int, mask: int, size: int = AUTOMATION_MIN_SIZE) -> bytes:
    data = bytearray(size)
    struct.pack_into("<Q", data, 8, amount)
    struct.pack_into("<Q", data, 48, balance)
    struct.pack_into("<Q", data, 104, mask)
    return bytes(data)


def test_decode_automation_offsets():
    """Fields are read little-endian at offsets 8, 48 and 104"""
    snapshot = decode_automation(automation_buffer(10_000_000, 500_000_000, 0b11111))

    assert snapshot == AutomationSnapshot(
        amount_per_square=10_000_000,
        balance=500_000_000,
        square_mask=0b11111,
    )


def test_decode_automation_ignores_trailing_bytes():
    data = automation_buffer(7, 8, 9, size=200)

    snapshot = decode_automation(data)

    assert (snapshot.amount_per_square, snapshot.balance, snapshot.square_mask) == (7, 8, 9)


def test_short_automation_buffer_is_not_found():
    """A 100-byte automation account yields nothing, never a partial struct"""
    assert decode(AccountKind.AUTOMATION, bytes(100)) is None
    assert decode(AccountKind.AUTOMATION, bytes(AUTOMATION_MIN_SIZE - 1)) is None


def test_absent_account_is_not_found():
    for kind in AccountKind:
        assert decode(kind, None) is None


def test_mask_arithmetic():
    """5 squares at 0.01 SOL each cost 0.05 SOL per round"""
    snapshot = AutomationSnapshot(amount_per_square=10_000_000, balance=0, square_mask=0b11111)

    assert cost_per_round(snapshot) == 50_000_000
    assert selected_squares(snapshot.square_mask) == [0, 1, 2, 3, 4]


def test_rounds_estimate():
    snapshot = AutomationSnapshot(
        amount_per_square=10_000_000, balance=500_000_000, square_mask=0b11111
    )

    assert estimated_rounds(snapshot) == 10


def test_rounds_estimate_floors_partial_round():
    snapshot = AutomationSnapshot(
        amount_per_square=10_000_000, balance=549_999_999, square_mask=0b11111
    )

    assert estimated_rounds(snapshot) == 10


def test_rounds_estimate_zero_cost():
    empty_mask = AutomationSnapshot(amount_per_square=10_000_000, balance=10**9, square_mask=0)
    zero_amount = AutomationSnapshot(amount_per_square=0, balance=10**9, square_mask=0b1)

    assert estimated_rounds(empty_mask) == 0
    assert estimated_rounds(zero_amount) == 0


def test_sparse_mask_uses_popcount():
    """Cost depends on how many squares are selected, not on the mask value"""
    snapshot = AutomationSnapshot(
        amount_per_square=1_000, balance=0, square_mask=(1 << 24) | (1 << 12) | 1
    )

    assert cost_per_round(snapshot) == 3_000
    assert selected_squares(snapshot.square_mask) == [0, 12, 24]


def test_automation_status():
    active = automation_status(
        AutomationSnapshot(amount_per_square=10_000_000, balance=500_000_000, square_mask=0b11111)
    )
    inactive = automation_status(None)

    assert active.active is True
    assert active.cost_per_round == 50_000_000
    assert active.estimated_rounds == 10
    assert inactive.active is False
    assert inactive.balance == 0


def test_decode_miner():
    data = bytearray(MINER_MIN_SIZE)
    deployed = list(range(1, 26))
    struct.pack_into("<25Q", data, 40, *deployed)
    struct.pack_into("<Q", data, 488, 123_456_789)
    struct.pack_into("<Q", data, 496, 42 * 10**9)

    snapshot = decode_miner(bytes(data))

    assert snapshot.rewards_sol == 123_456_789
    assert snapshot.rewards_orb == 42 * 10**9
    assert snapshot.deployed_per_square == tuple(deployed)
    assert decode_miner(bytes(MINER_MIN_SIZE - 1)) is None


def test_decode_stake():
    data = bytearray(STAKE_MIN_SIZE)
    struct.pack_into("<Q", data, 40, 500 * 10**9)
    struct.pack_into("<Q", data, 88, 1_000)
    struct.pack_into("<Q", data, 96, 3 * 10**9)

    snapshot = decode_stake(bytes(data))

    assert snapshot.staked == 500 * 10**9
    assert snapshot.rewards_sol == 1_000
    assert snapshot.rewards_orb == 3 * 10**9
    assert decode_stake(bytes(STAKE_MIN_SIZE - 1)) is None


def test_decode_is_pure():
    data = automation_buffer(1, 2, 3)

    assert decode(AccountKind.AUTOMATION, data) == decode(AccountKind.AUTOMATION, data)


def test_derive_account_address_is_deterministic():
    owner = Pubkey.new_unique()

    first = derive_account_address(AccountKind.AUTOMATION, owner)
    second = derive_account_address(AccountKind.AUTOMATION, owner)
    miner = derive_account_address(AccountKind.MINER, owner)

    assert first == second
    assert first != miner
    assert derive_account_address(AccountKind.AUTOMATION, Pubkey.new_unique()) != first
