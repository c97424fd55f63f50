"""
Tests for round automation: motherload gate, deploys and budget restarts
"""

import struct
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from solders.keypair import Keypair

from orbbot.core.enums import ActionKind, Platform
from orbbot.core.exceptions import SubmissionError
from orbbot.database.crud import update_user_settings
from orbbot.services.automation.config import LoopConfig
from orbbot.services.automation.decoder import AUTOMATION_MIN_SIZE
from orbbot.services.automation.rounds import RoundExecutor, plan_automation
from orbbot.services.automation.schemas import (
    ActionResult,
    AutomationPlan,
    AutomationSettings,
    Balances,
    DueAction,
    EnrolledUser,
    RoundState,
)

ORB = 10**9
SOL = 10**9


def automation_account(amount_per_square: int, balance: int, mask: int) -> bytes:
    data = bytearray(AUTOMATION_MIN_SIZE)
    struct.pack_into("<Q", data, 8, amount_per_square)
    struct.pack_into("<Q", data, 48, balance)
    struct.pack_into("<Q", data, 104, mask)
    return bytes(data)


# 5 squares x 0.01 SOL = 0.05 SOL per round, 10 rounds left
HEALTHY = automation_account(10_000_000, 500_000_000, 0b11111)
DEPLETED = automation_account(10_000_000, 10_000_000, 0b11111)


def confirm(user, action):
    return ActionResult(
        kind=action.kind, success=True, requested_amount=action.amount, signature="sig"
    )


@pytest.fixture
def reader():
    reader = MagicMock()
    reader.read_account = AsyncMock(return_value=HEALTHY)
    reader.get_balances = AsyncMock(return_value=Balances(sol=2 * SOL))
    return reader


@pytest.fixture
def executor(wallet):
    executor = MagicMock()
    executor.execute = AsyncMock(side_effect=confirm)
    executor.builder.current_round = AsyncMock(return_value=RoundState(7, 6_000 * ORB))
    executor.builder.close_automation = AsyncMock(return_value=["close-ix"])
    executor.builder.open_automation = AsyncMock(return_value=["open-ix"])
    executor.submitter.submit = AsyncMock(side_effect=["sig-close", "sig-open"])
    executor.signers.get_signer = AsyncMock(return_value=wallet)
    return executor


def build(reader, executor, session_maker, users) -> RoundExecutor:
    async def user_source(session):
        return users

    return RoundExecutor(
        reader,
        executor,
        session_maker,
        config=LoopConfig(15, 0, 0),
        user_source=user_source,
        restart_delay_sec=0,
    )


def test_plan_automation():
    """1 SOL, 50% budget, 10 blocks x 0.001 SOL -> 50 rounds"""
    plan = plan_automation(AutomationSettings(), 1 * SOL)

    assert plan == AutomationPlan(
        amount_per_square=1_000_000,
        square_mask=0b1111111111,
        rounds=50,
        deposit=500_000_000,
    )


def test_plan_automation_caps_rounds():
    plan = plan_automation(AutomationSettings(automation_budget_percent=100), 100_000 * SOL)

    assert plan.rounds == 1000
    assert plan.deposit == 1000 * 10_000_000


def test_plan_automation_budget_below_one_round():
    assert plan_automation(AutomationSettings(), SOL // 100) is None
    assert plan_automation(AutomationSettings(sol_per_block=Decimal("0")), 10 * SOL) is None


@pytest.mark.asyncio
async def test_deploys_once_per_round(reader, executor, session_maker, enrolled_user):
    rounds = build(reader, executor, session_maker, [enrolled_user])

    assert await rounds.run_once() == 1
    assert await rounds.run_once() == 0

    executor.execute.assert_awaited_once_with(
        enrolled_user, DueAction(kind=ActionKind.DEPLOY, amount=50_000_000)
    )
    assert rounds.last_round_id == 7
    assert rounds.last_deployed == 1


@pytest.mark.asyncio
async def test_new_round_deploys_again(reader, executor, session_maker, enrolled_user):
    rounds = build(reader, executor, session_maker, [enrolled_user])

    await rounds.run_once()
    executor.builder.current_round.return_value = RoundState(8, 6_000 * ORB)
    await rounds.run_once()

    assert executor.execute.await_count == 2


@pytest.mark.asyncio
async def test_motherload_below_threshold(reader, executor, session_maker, enrolled_user):
    executor.builder.current_round.return_value = RoundState(7, 4_999 * ORB)
    rounds = build(reader, executor, session_maker, [enrolled_user])

    assert await rounds.run_once() == 0
    reader.read_account.assert_not_awaited()
    executor.execute.assert_not_awaited()


@pytest.mark.asyncio
async def test_motherload_threshold_is_per_user(reader, executor, session_maker, db_session, enrolled_user):
    await update_user_settings(
        db_session, enrolled_user.platform, enrolled_user.user_id, {"motherload_threshold": "100"}
    )
    executor.builder.current_round.return_value = RoundState(7, 150 * ORB)
    rounds = build(reader, executor, session_maker, [enrolled_user])

    assert await rounds.run_once() == 1


@pytest.mark.asyncio
async def test_no_automation_account(reader, executor, session_maker, enrolled_user):
    reader.read_account.return_value = None
    rounds = build(reader, executor, session_maker, [enrolled_user])

    assert await rounds.run_once() == 0
    executor.execute.assert_not_awaited()


@pytest.mark.asyncio
async def test_ended_round_is_not_deployed(reader, executor, session_maker, enrolled_user):
    executor.builder.current_round.return_value = RoundState(7, 6_000 * ORB, accepting=False)
    rounds = build(reader, executor, session_maker, [enrolled_user])

    assert await rounds.run_once() == 0
    executor.execute.assert_not_awaited()


@pytest.mark.asyncio
async def test_depleted_budget_restarts_automation(reader, executor, session_maker, wallet, enrolled_user):
    reader.read_account.return_value = DEPLETED
    rounds = build(reader, executor, session_maker, [enrolled_user])

    assert await rounds.run_once() == 0

    # Reopened with 50% of 2 SOL, not deployed until the next round
    executor.builder.close_automation.assert_awaited_once_with(wallet.pubkey())
    executor.builder.open_automation.assert_awaited_once_with(
        wallet.pubkey(),
        AutomationPlan(
            amount_per_square=1_000_000,
            square_mask=0b1111111111,
            rounds=100,
            deposit=1_000_000_000,
        ),
    )
    assert [c.args[0] for c in executor.submitter.submit.await_args_list] == [
        ["close-ix"],
        ["open-ix"],
    ]
    executor.execute.assert_not_awaited()


@pytest.mark.asyncio
async def test_restart_left_closed_without_budget(reader, executor, session_maker, enrolled_user):
    reader.read_account.return_value = DEPLETED
    reader.get_balances.return_value = Balances(sol=1_000_000)
    rounds = build(reader, executor, session_maker, [enrolled_user])

    await rounds.run_once()

    executor.builder.close_automation.assert_awaited_once()
    executor.builder.open_automation.assert_not_awaited()


@pytest.mark.asyncio
async def test_restart_failure_is_contained(reader, executor, session_maker, enrolled_user):
    reader.read_account.return_value = DEPLETED
    executor.submitter.submit.side_effect = SubmissionError("blockhash expired")
    rounds = build(reader, executor, session_maker, [enrolled_user])

    assert await rounds.run_once() == 0
    executor.builder.open_automation.assert_not_awaited()


@pytest.mark.asyncio
async def test_user_failure_is_contained(reader, executor, session_maker):
    users = [
        EnrolledUser(platform=Platform.TELEGRAM, user_id=str(i), public_key=str(Keypair().pubkey()))
        for i in (1, 2)
    ]
    reader.read_account.side_effect = [RuntimeError("rpc exploded"), HEALTHY]
    rounds = build(reader, executor, session_maker, users)

    assert await rounds.run_once() == 1
    assert executor.execute.await_args.args[0] == users[1]
