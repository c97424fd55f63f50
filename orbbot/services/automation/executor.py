"""
Action executor.

One due action -> one instruction-builder call -> one transaction -> one
ledger record. Failures are returned, never retried: the next scheduled
pass re-evaluates from fresh state.
"""

from typing import Awaitable, Callable, Optional, Protocol, Sequence

from loguru import logger
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from orbbot.core.enums import ActionKind
from orbbot.core.exceptions import (
    InstructionBuildError,
    InvalidRecipientError,
    SubmissionError,
)
from orbbot.database.crud import record_action_result
from orbbot.services.automation.schemas import ActionResult, DueAction, EnrolledUser
from orbbot.services.solana_service import InstructionBuilder, SignerProvider
from orbbot.utils.validators import validate_recipient


class Submitter(Protocol):
    async def submit(self, instructions: Sequence[Instruction], signer: Keypair) -> str: ...


def _amounts(action: DueAction) -> tuple[int, int]:
    """(sol_amount, orb_amount) moved by an action."""
    if action.kind in (ActionKind.CLAIM_SOL, ActionKind.DEPLOY):
        return action.amount, 0
    return 0, action.amount


def _recipient(action: DueAction) -> Pubkey:
    is_valid, error = validate_recipient(action.recipient)
    if not is_valid:
        raise InvalidRecipientError(error)
    return Pubkey.from_string(action.recipient)


class ActionExecutor:
    def __init__(
        self,
        builder: InstructionBuilder,
        submitter: Submitter,
        signers: SignerProvider,
        session_maker: async_sessionmaker[AsyncSession],
    ):
        self.builder = builder
        self.submitter = submitter
        self.signers = signers
        self.session_maker = session_maker

        self._builders: dict[
            ActionKind, Callable[[Pubkey, DueAction], Awaitable[Sequence[Instruction]]]
        ] = {
            ActionKind.CLAIM_SOL: lambda owner, a: builder.claim_sol(owner),
            ActionKind.CLAIM_ORB: lambda owner, a: builder.claim_orb(owner),
            ActionKind.CLAIM_STAKE: lambda owner, a: builder.claim_yield(owner, a.amount),
            ActionKind.SWAP: lambda owner, a: builder.swap(owner, a.amount, a.slippage_bps or 0),
            ActionKind.STAKE: lambda owner, a: builder.stake(owner, a.amount),
            ActionKind.TRANSFER: lambda owner, a: builder.transfer(owner, _recipient(a), a.amount),
            ActionKind.DEPLOY: lambda owner, a: builder.execute_automation(owner),
        }

    async def _submit(self, signer: Keypair, action: DueAction) -> ActionResult:
        sol_amount, orb_amount = _amounts(action)
        failed = dict(kind=action.kind, success=False, requested_amount=action.amount)

        try:
            instructions = await self._builders[action.kind](signer.pubkey(), action)
        except (InstructionBuildError, InvalidRecipientError, ValueError) as e:
            return ActionResult(**failed, error=str(e))

        try:
            signature = await self.submitter.submit(instructions, signer)
        except SubmissionError as e:
            return ActionResult(**failed, error=str(e))

        return ActionResult(
            kind=action.kind,
            success=True,
            requested_amount=action.amount,
            sol_amount=sol_amount,
            orb_amount=orb_amount,
            signature=signature,
        )

    async def execute(self, user: EnrolledUser, action: DueAction) -> ActionResult:
        """
        Perform one action and record the outcome

        Args:
            user: Enrolled user owning the wallet
            action: Due action from the evaluator

        Returns:
            ActionResult (success=False carries the raw error text)
        """
        signer: Optional[Keypair] = await self.signers.get_signer(user)
        if signer is None:
            result = ActionResult(
                kind=action.kind,
                success=False,
                requested_amount=action.amount,
                error="Wallet not found",
            )
        else:
            result = await self._submit(signer, action)

        async with self.session_maker() as session:
            await record_action_result(session, user, result)

        if result.success:
            logger.info(f"{action.kind.value} for {user} confirmed: {result.signature}")
        else:
            logger.warning(f"{action.kind.value} for {user} failed: {result.error}")
        return result
