"""
Per-user automation pipeline.

A stage reads fresh ledger state, evaluates the user's thresholds, executes
the due actions belonging to that stage in order, and reports the outcome.
"""

from typing import List, Optional

from loguru import logger
from solders.pubkey import Pubkey
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from orbbot.core.enums import ActionKind, Stage
from orbbot.core.exceptions import PriceUnavailableError
from orbbot.database.crud import get_user_settings
from orbbot.services.automation.evaluator import DEFAULT_MIN_STAKE_AMOUNT, evaluate
from orbbot.services.automation.executor import ActionExecutor
from orbbot.services.automation.notifications import (
    ClaimNotificationAggregator,
    NotificationService,
    claim_description,
    stake_failed_text,
    stake_success_text,
    swap_failed_text,
    swap_success_text,
    transfer_failed_text,
    transfer_success_text,
)
from orbbot.services.automation.schemas import (
    ActionResult,
    AutomationSettings,
    Balances,
    DueAction,
    EnrolledUser,
    PriceQuote,
    RewardsSnapshot,
)
from orbbot.services.price_service import PriceService
from orbbot.services.solana_service import SolanaLedgerReader
from orbbot.utils.validators import validate_recipient


def stage_enabled(settings: AutomationSettings, stage: Stage) -> bool:
    if stage is Stage.CLAIM:
        return any(
            threshold > 0
            for threshold in (
                settings.auto_claim_sol_threshold,
                settings.auto_claim_orb_threshold,
                settings.auto_claim_staking_threshold,
            )
        )
    if stage is Stage.SWAP:
        return settings.auto_swap_enabled
    if stage is Stage.STAKE:
        return settings.auto_stake_enabled
    return settings.auto_transfer_enabled


class AutomationPipeline:
    def __init__(
        self,
        reader: SolanaLedgerReader,
        executor: ActionExecutor,
        price_service: PriceService,
        notifications: NotificationService,
        aggregator: ClaimNotificationAggregator,
        session_maker: async_sessionmaker[AsyncSession],
        min_stake_amount: int = DEFAULT_MIN_STAKE_AMOUNT,
    ):
        self.reader = reader
        self.executor = executor
        self.price_service = price_service
        self.notifications = notifications
        self.aggregator = aggregator
        self.session_maker = session_maker
        self.min_stake_amount = min_stake_amount

    async def _price(self, user: EnrolledUser) -> Optional[PriceQuote]:
        try:
            return await self.price_service.get_price()
        except PriceUnavailableError as e:
            logger.warning(f"ORB price unavailable for {user}, swap suppressed: {e}")
            return None

    async def run_stage(self, user: EnrolledUser, stage: Stage) -> List[ActionResult]:
        """
        Run one stage for one user

        Args:
            user: Enrolled user
            stage: Stage to run

        Returns:
            Results of executed actions (empty when nothing was due)
        """
        async with self.session_maker() as session:
            settings = await get_user_settings(session, user.platform, user.user_id)

        if not stage_enabled(settings, stage):
            return []

        if stage is Stage.TRANSFER:
            is_valid, error = validate_recipient(settings.transfer_recipient_address)
            if not is_valid:
                logger.warning(f"Auto-transfer blocked for {user}: {error}")
                return []

        owner = Pubkey.from_string(user.public_key)
        if stage is Stage.CLAIM:
            rewards = await self.reader.get_claimable_rewards(owner)
            balances = Balances()
        else:
            rewards = RewardsSnapshot()
            balances = await self.reader.get_balances(owner)

        price = None
        if stage is Stage.SWAP and settings.min_orb_price > 0:
            price = await self._price(user)

        # Only this stage's rules: other stages act on their own fresh read
        due = evaluate(
            settings, rewards, balances, price, self.min_stake_amount, kinds=stage.kinds
        )
        if not due:
            logger.debug(f"[{stage.value}] {user}: nothing due")
            return []

        results = []
        for action in due:
            results.append(await self.executor.execute(user, action))

        await self._report(user, stage, due, results)
        return results

    async def run_all(self, user: EnrolledUser) -> List[ActionResult]:
        """Every stage in execution order. Used by the manual trigger."""
        results = []
        for stage in Stage:
            results.extend(await self.run_stage(user, stage))
        return results

    async def _report(
        self,
        user: EnrolledUser,
        stage: Stage,
        due: List[DueAction],
        results: List[ActionResult],
    ) -> None:
        if stage is Stage.CLAIM:
            # Failed claims are retried by the next pass; only the log records them
            claimed = [
                claim_description(result.kind.value, result.requested_amount)
                for result in results
                if result.success
            ]
            await self.aggregator.add_claims(user, claimed)
            return

        for action, result in zip(due, results):
            text = result_text(action, result)
            if text:
                await self.notifications.notify(user, text)


def result_text(action: DueAction, result: ActionResult) -> Optional[str]:
    """User-facing outcome message for swap, stake and transfer."""
    error = result.error or "Unknown error"
    if action.kind is ActionKind.SWAP:
        if result.success:
            return swap_success_text(action.amount, result.signature)
        return swap_failed_text(action.amount, error)
    if action.kind is ActionKind.STAKE:
        if result.success:
            return stake_success_text(action.amount, result.signature)
        return stake_failed_text(action.amount, error)
    if action.kind is ActionKind.TRANSFER:
        if result.success:
            return transfer_success_text(action.amount, action.recipient, result.signature)
        return transfer_failed_text(action.amount, error)
    return None
