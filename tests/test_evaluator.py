"""
Unit tests for the threshold evaluator
"""
from decimal import Decimal

from orbbot.core.enums import ActionKind
from orbbot.services.automation.evaluator import evaluate, price_allows_swap
from orbbot.services.automation.schemas import (
    AutomationSettings,
    Balances,
    DueAction,
    PriceQuote,
    RewardsSnapshot,
)

ORB = 10**9
NO_REWARDS = RewardsSnapshot()


def quote(usd: str) -> PriceQuote:
    return PriceQuote(usd=Decimal(usd), native_ratio=Decimal("0.01"))


def test_swap_amount_keeps_reserve(swap_settings):
    """120 ORB, threshold 100, keep 10 -> swap 110"""
    actions = evaluate(swap_settings, NO_REWARDS, Balances(orb=120 * ORB), None)

    assert actions == [DueAction(kind=ActionKind.SWAP, amount=110 * ORB, slippage_bps=300)]


def test_evaluate_is_idempotent(swap_settings, recipient):
    settings = swap_settings.model_copy(
        update={
            "auto_claim_orb_threshold": Decimal("1"),
            "auto_stake_enabled": True,
            "stake_threshold": Decimal("1"),
            "auto_transfer_enabled": True,
            "orb_transfer_threshold": Decimal("1"),
            "transfer_recipient_address": recipient,
        }
    )
    rewards = RewardsSnapshot(mining_orb=5 * ORB)
    balances = Balances(sol=ORB, orb=300 * ORB)

    first = evaluate(settings, rewards, balances, quote("1"))
    second = evaluate(settings, rewards, balances, quote("1"))

    assert first == second
    assert [a.kind for a in first] == [ActionKind.CLAIM_ORB, ActionKind.SWAP, ActionKind.TRANSFER]


def test_price_below_floor_blocks_swap(swap_settings):
    """min price $10, current $5 -> no swap"""
    settings = swap_settings.model_copy(update={"min_orb_price": Decimal("10")})

    actions = evaluate(settings, NO_REWARDS, Balances(orb=120 * ORB), quote("5"))

    assert actions == []


def test_unknown_price_blocks_swap_when_floor_set(swap_settings):
    settings = swap_settings.model_copy(update={"min_orb_price": Decimal("10")})

    assert evaluate(settings, NO_REWARDS, Balances(orb=120 * ORB), None) == []


def test_price_at_floor_allows_swap(swap_settings):
    settings = swap_settings.model_copy(update={"min_orb_price": Decimal("10")})

    actions = evaluate(settings, NO_REWARDS, Balances(orb=120 * ORB), quote("10"))

    assert [a.kind for a in actions] == [ActionKind.SWAP]


def test_price_gate_ignored_without_floor(swap_settings):
    assert price_allows_swap(swap_settings, None) is True


def test_swap_below_threshold(swap_settings):
    assert evaluate(swap_settings, NO_REWARDS, Balances(orb=99 * ORB), None) == []


def test_swap_disabled(swap_settings):
    settings = swap_settings.model_copy(update={"auto_swap_enabled": False})

    assert evaluate(settings, NO_REWARDS, Balances(orb=500 * ORB), None) == []


def test_swap_skipped_below_min_swap_amount(swap_settings):
    settings = swap_settings.model_copy(
        update={"min_orb_to_keep": Decimal("100"), "min_swap_amount": Decimal("25")}
    )

    # 120 - 100 = 20 < 25
    assert evaluate(settings, NO_REWARDS, Balances(orb=120 * ORB), None) == []


def test_swap_skipped_when_reserve_exceeds_balance(swap_settings):
    settings = swap_settings.model_copy(update={"min_orb_to_keep": Decimal("200")})

    assert evaluate(settings, NO_REWARDS, Balances(orb=120 * ORB), None) == []


def test_claims_follow_thresholds():
    settings = AutomationSettings(
        auto_claim_sol_threshold=Decimal("0.01"),
        auto_claim_orb_threshold=Decimal("10"),
        auto_claim_staking_threshold=Decimal("1"),
    )
    rewards = RewardsSnapshot(
        mining_sol=10_000_000,  # exactly 0.01 SOL
        mining_orb=9 * ORB,
        staking_orb=2 * ORB,
    )

    actions = evaluate(settings, rewards, Balances(), None)

    assert actions == [
        DueAction(kind=ActionKind.CLAIM_SOL, amount=10_000_000),
        DueAction(kind=ActionKind.CLAIM_STAKE, amount=2 * ORB),
    ]


def test_zero_threshold_disables_claim():
    settings = AutomationSettings(
        auto_claim_sol_threshold=Decimal("0"),
        auto_claim_orb_threshold=Decimal("0"),
        auto_claim_staking_threshold=Decimal("0"),
    )
    rewards = RewardsSnapshot(mining_sol=ORB, mining_orb=ORB, staking_orb=ORB)

    assert evaluate(settings, rewards, Balances(), None) == []


def test_swap_sees_claimed_orb(swap_settings):
    """90 ORB in wallet + 20 ORB claimed crosses the 100 ORB swap threshold"""
    settings = swap_settings.model_copy(update={"auto_claim_orb_threshold": Decimal("10")})
    rewards = RewardsSnapshot(mining_orb=20 * ORB)

    actions = evaluate(settings, rewards, Balances(orb=90 * ORB), None)

    assert actions == [
        DueAction(kind=ActionKind.CLAIM_ORB, amount=20 * ORB),
        DueAction(kind=ActionKind.SWAP, amount=100 * ORB, slippage_bps=300),
    ]


def test_claimed_sol_does_not_count_as_orb(swap_settings):
    settings = swap_settings.model_copy(update={"auto_claim_sol_threshold": Decimal("0.01")})
    rewards = RewardsSnapshot(mining_sol=50 * ORB)

    actions = evaluate(settings, rewards, Balances(orb=90 * ORB), None)

    assert [a.kind for a in actions] == [ActionKind.CLAIM_SOL]


def test_stake_amount_and_floor():
    settings = AutomationSettings(
        auto_stake_enabled=True,
        stake_threshold=Decimal("50"),
        min_orb_to_keep=Decimal("10"),
    )

    staked = evaluate(settings, NO_REWARDS, Balances(orb=60 * ORB), None)
    below_floor = evaluate(
        settings.model_copy(update={"stake_threshold": Decimal("10")}),
        NO_REWARDS,
        Balances(orb=10 * ORB + ORB // 2),
        None,
    )

    assert staked == [DueAction(kind=ActionKind.STAKE, amount=50 * ORB)]
    # 10.5 - 10 = 0.5 ORB is under the 1 ORB floor
    assert below_floor == []


def test_stake_sees_balance_after_swap(swap_settings):
    settings = swap_settings.model_copy(
        update={"auto_stake_enabled": True, "stake_threshold": Decimal("50")}
    )

    actions = evaluate(settings, NO_REWARDS, Balances(orb=120 * ORB), None)

    # Swap leaves the 10 ORB reserve, below the stake threshold
    assert [a.kind for a in actions] == [ActionKind.SWAP]


def test_transfer_sweeps_remaining_balance(recipient):
    settings = AutomationSettings(
        auto_transfer_enabled=True,
        orb_transfer_threshold=Decimal("100"),
        transfer_recipient_address=recipient,
    )

    actions = evaluate(settings, NO_REWARDS, Balances(orb=150 * ORB), None)

    assert actions == [
        DueAction(kind=ActionKind.TRANSFER, amount=150 * ORB, recipient=recipient)
    ]


def test_transfer_after_stake_uses_remaining_balance(recipient):
    settings = AutomationSettings(
        auto_stake_enabled=True,
        stake_threshold=Decimal("50"),
        min_orb_to_keep=Decimal("10"),
        auto_transfer_enabled=True,
        orb_transfer_threshold=Decimal("5"),
        transfer_recipient_address=recipient,
    )

    actions = evaluate(settings, NO_REWARDS, Balances(orb=60 * ORB), None)

    assert actions == [
        DueAction(kind=ActionKind.STAKE, amount=50 * ORB),
        DueAction(kind=ActionKind.TRANSFER, amount=10 * ORB, recipient=recipient),
    ]


def test_transfer_blocked_by_invalid_recipient():
    settings = AutomationSettings(
        auto_transfer_enabled=True,
        orb_transfer_threshold=Decimal("1"),
        transfer_recipient_address="not-a-solana-address",
    )

    assert evaluate(settings, NO_REWARDS, Balances(orb=150 * ORB), None) == []


def test_transfer_without_recipient():
    settings = AutomationSettings(auto_transfer_enabled=True, orb_transfer_threshold=Decimal("1"))

    assert evaluate(settings, NO_REWARDS, Balances(orb=150 * ORB), None) == []


def test_transfer_below_threshold(recipient):
    settings = AutomationSettings(
        auto_transfer_enabled=True,
        orb_transfer_threshold=Decimal("100"),
        transfer_recipient_address=recipient,
    )

    assert evaluate(settings, NO_REWARDS, Balances(orb=99 * ORB), None) == []


def test_kinds_limit_evaluation_and_projection(swap_settings, recipient):
    """A transfer-only evaluation sweeps the balance a swap would have reduced"""
    settings = swap_settings.model_copy(
        update={
            "auto_transfer_enabled": True,
            "orb_transfer_threshold": Decimal("100"),
            "transfer_recipient_address": recipient,
        }
    )
    balances = Balances(orb=200 * ORB)

    assert evaluate(settings, NO_REWARDS, balances, None, kinds=[ActionKind.TRANSFER]) == [
        DueAction(kind=ActionKind.TRANSFER, amount=200 * ORB, recipient=recipient)
    ]
    assert [a.kind for a in evaluate(settings, NO_REWARDS, balances, None)] == [ActionKind.SWAP]


def test_stake_only_evaluation_ignores_swap(swap_settings):
    settings = swap_settings.model_copy(
        update={"auto_stake_enabled": True, "stake_threshold": Decimal("50")}
    )

    actions = evaluate(
        settings, NO_REWARDS, Balances(orb=200 * ORB), None, kinds=[ActionKind.STAKE]
    )

    assert actions == [DueAction(kind=ActionKind.STAKE, amount=190 * ORB)]
