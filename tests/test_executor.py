"""
Unit tests for ActionExecutor
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from solders.pubkey import Pubkey

from orbbot.core.enums import ActionKind
from orbbot.core.exceptions import InstructionBuildError, SubmissionError
from orbbot.database.crud import get_action_history
from orbbot.services.automation.executor import ActionExecutor
from orbbot.services.automation.schemas import DueAction

ORB = 10**9


@pytest.fixture
def builder():
    builder = MagicMock()
    for name in ("claim_sol", "claim_orb", "claim_yield", "swap", "stake", "transfer"):
        setattr(builder, name, AsyncMock(return_value=[f"{name}-ix"]))
    return builder


@pytest.fixture
def submitter():
    submitter = MagicMock()
    submitter.submit = AsyncMock(return_value="5igSig")
    return submitter


@pytest.fixture
def signers(wallet):
    signers = MagicMock()
    signers.get_signer = AsyncMock(return_value=wallet)
    return signers


@pytest.fixture
def executor(builder, submitter, signers, session_maker):
    return ActionExecutor(builder, submitter, signers, session_maker)


@pytest.mark.asyncio
async def test_swap_success(executor, builder, submitter, wallet, enrolled_user):
    action = DueAction(kind=ActionKind.SWAP, amount=110 * ORB, slippage_bps=300)

    result = await executor.execute(enrolled_user, action)

    assert result.success is True
    assert result.signature == "5igSig"
    assert result.orb_amount == 110 * ORB
    assert result.sol_amount == 0
    builder.swap.assert_awaited_once_with(wallet.pubkey(), 110 * ORB, 300)
    submitter.submit.assert_awaited_once_with(["swap-ix"], wallet)


@pytest.mark.asyncio
async def test_claim_sol_counts_sol(executor, builder, wallet, enrolled_user):
    result = await executor.execute(enrolled_user, DueAction(kind=ActionKind.CLAIM_SOL, amount=50_000_000))

    assert (result.sol_amount, result.orb_amount) == (50_000_000, 0)
    builder.claim_sol.assert_awaited_once_with(wallet.pubkey())


@pytest.mark.asyncio
async def test_transfer_passes_recipient(executor, builder, wallet, enrolled_user, recipient):
    action = DueAction(kind=ActionKind.TRANSFER, amount=5 * ORB, recipient=recipient)

    await executor.execute(enrolled_user, action)

    builder.transfer.assert_awaited_once_with(wallet.pubkey(), Pubkey.from_string(recipient), 5 * ORB)


@pytest.mark.asyncio
async def test_submission_failure_is_returned(executor, submitter, enrolled_user):
    submitter.submit.side_effect = SubmissionError("slippage tolerance exceeded")

    result = await executor.execute(enrolled_user, DueAction(kind=ActionKind.STAKE, amount=50 * ORB))

    assert result.success is False
    assert result.error == "slippage tolerance exceeded"
    assert result.signature is None
    assert result.orb_amount == 0


@pytest.mark.asyncio
async def test_build_failure_skips_submit(executor, builder, submitter, enrolled_user):
    builder.claim_orb.side_effect = InstructionBuildError("miner account missing")

    result = await executor.execute(enrolled_user, DueAction(kind=ActionKind.CLAIM_ORB, amount=ORB))

    assert result.success is False
    assert result.error == "miner account missing"
    submitter.submit.assert_not_awaited()


@pytest.mark.asyncio
async def test_missing_signer(executor, signers, submitter, enrolled_user):
    signers.get_signer.return_value = None

    result = await executor.execute(enrolled_user, DueAction(kind=ActionKind.SWAP, amount=ORB))

    assert result.success is False
    assert result.error == "Wallet not found"
    submitter.submit.assert_not_awaited()


@pytest.mark.asyncio
async def test_every_result_is_recorded(executor, submitter, enrolled_user, db_session):
    await executor.execute(enrolled_user, DueAction(kind=ActionKind.CLAIM_SOL, amount=1_000))
    submitter.submit.side_effect = SubmissionError("blockhash expired")
    await executor.execute(enrolled_user, DueAction(kind=ActionKind.SWAP, amount=ORB))

    history = await get_action_history(db_session, enrolled_user.platform, enrolled_user.user_id)

    assert [(r.kind, r.success) for r in history] == [("swap", False), ("claim_sol", True)]
    assert history[0].error == "blockhash expired"


@pytest.mark.asyncio
async def test_invalid_recipient_is_not_submitted(executor, builder, submitter, enrolled_user):
    action = DueAction(kind=ActionKind.TRANSFER, amount=5 * ORB, recipient="not-an-address")

    result = await executor.execute(enrolled_user, action)

    assert result.success is False
    assert result.error == "Invalid Solana address format"
    builder.transfer.assert_not_awaited()
    submitter.submit.assert_not_awaited()


@pytest.mark.asyncio
async def test_deploy_counts_sol(executor, builder, wallet, enrolled_user):
    builder.execute_automation = AsyncMock(return_value=["deploy-ix"])

    result = await executor.execute(enrolled_user, DueAction(kind=ActionKind.DEPLOY, amount=50_000_000))

    assert result.success is True
    assert (result.sol_amount, result.orb_amount) == (50_000_000, 0)
    builder.execute_automation.assert_awaited_once_with(wallet.pubkey())
