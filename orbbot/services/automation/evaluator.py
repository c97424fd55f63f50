"""
Threshold evaluator.

evaluate() is a pure function of its inputs: identical arguments always
yield an identical, identically ordered list of due actions.

Actions are returned in execution order (claims, swap, stake, transfer) and
each rule sees the ORB balance as it would be after the actions before it:
claimed ORB is added, swapped and staked ORB is removed, and the transfer
sweeps whatever remains. Restricting the rule kinds leaves the other rules
out of that projection entirely.
"""

from typing import Iterable, Optional

from orbbot.core.enums import ActionKind
from orbbot.services.automation.schemas import (
    AutomationSettings,
    Balances,
    DueAction,
    PriceQuote,
    RewardsSnapshot,
)
from orbbot.utils.formatters import to_base_units
from orbbot.utils.validators import validate_recipient

DEFAULT_MIN_STAKE_AMOUNT = 1_000_000_000


def _claims(settings: AutomationSettings, rewards: RewardsSnapshot) -> list[DueAction]:
    rules = (
        (ActionKind.CLAIM_SOL, settings.auto_claim_sol_threshold, rewards.mining_sol),
        (ActionKind.CLAIM_ORB, settings.auto_claim_orb_threshold, rewards.mining_orb),
        (ActionKind.CLAIM_STAKE, settings.auto_claim_staking_threshold, rewards.staking_orb),
    )
    due = []
    for kind, threshold, available in rules:
        if threshold > 0 and available > 0 and available >= to_base_units(threshold):
            due.append(DueAction(kind=kind, amount=available))
    return due


def price_allows_swap(settings: AutomationSettings, price: Optional[PriceQuote]) -> bool:
    """Price floor check. Unknown price never passes an active floor."""
    if settings.min_orb_price <= 0:
        return True
    if price is None:
        return False
    return price.usd >= settings.min_orb_price


def _swap(
    settings: AutomationSettings, orb: int, price: Optional[PriceQuote]
) -> Optional[DueAction]:
    if not settings.auto_swap_enabled:
        return None
    if orb < to_base_units(settings.swap_threshold):
        return None
    if not price_allows_swap(settings, price):
        return None

    amount = orb - to_base_units(settings.min_orb_to_keep)
    if amount <= 0 or amount < to_base_units(settings.min_swap_amount):
        return None
    return DueAction(kind=ActionKind.SWAP, amount=amount, slippage_bps=settings.slippage_bps)


def _stake(
    settings: AutomationSettings, orb: int, min_stake_amount: int
) -> Optional[DueAction]:
    if not settings.auto_stake_enabled:
        return None
    if orb < to_base_units(settings.stake_threshold):
        return None

    amount = orb - to_base_units(settings.min_orb_to_keep)
    if amount <= 0 or amount < min_stake_amount:
        return None
    return DueAction(kind=ActionKind.STAKE, amount=amount)


def _transfer(settings: AutomationSettings, orb: int) -> Optional[DueAction]:
    if not settings.auto_transfer_enabled:
        return None
    recipient = settings.transfer_recipient_address
    is_valid, _error = validate_recipient(recipient)
    if not is_valid:
        return None
    if orb <= 0 or orb < to_base_units(settings.orb_transfer_threshold):
        return None
    return DueAction(kind=ActionKind.TRANSFER, amount=orb, recipient=recipient.strip())


def evaluate(
    settings: AutomationSettings,
    rewards: RewardsSnapshot,
    balances: Balances,
    price: Optional[PriceQuote],
    min_stake_amount: int = DEFAULT_MIN_STAKE_AMOUNT,
    kinds: Optional[Iterable[ActionKind]] = None,
) -> list[DueAction]:
    """
    Compute the actions due for one user.

    Args:
        settings: Validated user settings
        rewards: Claimable rewards, base units
        balances: Wallet balances, base units
        price: Current ORB price, None when unavailable
        min_stake_amount: Smallest stake worth sending, base units
        kinds: Only evaluate these rules. Skipped rules are not projected
            into the balance seen by the remaining ones. None evaluates all.

    Returns:
        Due actions in execution order
    """
    wanted = set(ActionKind) if kinds is None else set(kinds)
    actions = [action for action in _claims(settings, rewards) if action.kind in wanted]

    orb = balances.orb
    for action in actions:
        if action.kind is not ActionKind.CLAIM_SOL:
            orb += action.amount

    swap = _swap(settings, orb, price) if ActionKind.SWAP in wanted else None
    if swap:
        actions.append(swap)
        orb -= swap.amount

    stake = _stake(settings, orb, min_stake_amount) if ActionKind.STAKE in wanted else None
    if stake:
        actions.append(stake)
        orb -= stake.amount

    transfer = _transfer(settings, orb) if ActionKind.TRANSFER in wanted else None
    if transfer:
        actions.append(transfer)

    return actions
