"""
Round automation

Deploys each enrolled user's automation account once per mining round.

A pass does nothing until the board reports a new round id. Then, per user:
- motherload below the user's motherload_threshold -> skip
- no automation account -> skip
- balance below one round's cost -> the account is closed and reopened with
  automation_budget_percent of the wallet's SOL (sol_per_block x num_blocks
  per round); the new account deploys from the next round on
- otherwise one DEPLOY action through the executor
"""
import asyncio
from typing import Awaitable, Callable, List, Optional

from loguru import logger
from solders.pubkey import Pubkey
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from orbbot.core.enums import AccountKind, ActionKind
from orbbot.core.exceptions import InstructionBuildError, SubmissionError
from orbbot.database.crud import get_user_settings, list_enrolled_users
from orbbot.services.automation.config import LoopConfig, get_config
from orbbot.services.automation.decoder import (
    cost_per_round,
    decode_automation,
    estimated_rounds,
)
from orbbot.services.automation.executor import ActionExecutor
from orbbot.services.automation.schemas import (
    AutomationPlan,
    AutomationSettings,
    AutomationSnapshot,
    DueAction,
    EnrolledUser,
    RoundState,
)
from orbbot.services.solana_service import SolanaLedgerReader
from orbbot.utils.formatters import format_orb, format_sol, to_base_units

UserSource = Callable[[AsyncSession], Awaitable[List[EnrolledUser]]]

MAX_AUTOMATION_ROUNDS = 1000


def plan_automation(settings: AutomationSettings, sol_balance: int) -> Optional[AutomationPlan]:
    """
    Size a new automation account

    Args:
        settings: User settings (sol_per_block, num_blocks, automation_budget_percent)
        sol_balance: Wallet SOL, lamports

    Returns:
        Plan, or None when the budget does not cover a single round
    """
    amount_per_square = to_base_units(settings.sol_per_block)
    round_cost = amount_per_square * settings.num_blocks
    if round_cost <= 0:
        return None

    budget = sol_balance * settings.automation_budget_percent // 100
    rounds = min(budget // round_cost, MAX_AUTOMATION_ROUNDS)
    if rounds < 1:
        return None

    return AutomationPlan(
        amount_per_square=amount_per_square,
        square_mask=(1 << settings.num_blocks) - 1,
        rounds=rounds,
        deposit=rounds * round_cost,
    )


class RoundExecutor:
    def __init__(
        self,
        reader: SolanaLedgerReader,
        executor: ActionExecutor,
        session_maker: async_sessionmaker[AsyncSession],
        config: Optional[LoopConfig] = None,
        user_source: UserSource = list_enrolled_users,
        restart_delay_sec: float = 2.0,
    ):
        self.reader = reader
        self.executor = executor
        self.session_maker = session_maker
        self.config = config or get_config().rounds
        self.user_source = user_source
        self.restart_delay_sec = restart_delay_sec
        self.last_round_id: Optional[int] = None
        self.last_deployed = 0

    async def run_once(self) -> int:
        """
        Check for a new round and deploy for every eligible user

        Returns:
            Number of successful deploys (0 when the round was already handled)
        """
        round_state = await self.executor.builder.current_round()
        if round_state.round_id == self.last_round_id:
            return 0

        self.last_round_id = round_state.round_id
        logger.info(
            f"[auto-rounds] new round {round_state.round_id}, "
            f"motherload {format_orb(round_state.motherload)}"
        )

        async with self.session_maker() as session:
            users = await self.user_source(session)

        deployed = 0
        for index, user in enumerate(users):
            try:
                if await self.run_user(user, round_state):
                    deployed += 1
            except Exception:
                logger.exception(f"[auto-rounds] error processing {user}")

            if index < len(users) - 1 and self.config.user_delay_sec:
                await asyncio.sleep(self.config.user_delay_sec)

        self.last_deployed = deployed
        logger.info(f"[auto-rounds] round {round_state.round_id}: {deployed}/{len(users)} deployed")
        return deployed

    async def run_user(self, user: EnrolledUser, round_state: RoundState) -> bool:
        async with self.session_maker() as session:
            settings = await get_user_settings(session, user.platform, user.user_id)

        if round_state.motherload < to_base_units(settings.motherload_threshold):
            logger.debug(
                f"[auto-rounds] {user}: motherload {format_orb(round_state.motherload)} "
                f"below threshold {settings.motherload_threshold}"
            )
            return False

        owner = Pubkey.from_string(user.public_key)
        snapshot = decode_automation(await self.reader.read_account(AccountKind.AUTOMATION, owner))
        if snapshot is None:
            logger.debug(f"[auto-rounds] {user}: no automation account")
            return False

        cost = cost_per_round(snapshot)
        if snapshot.balance == 0 or snapshot.balance < cost:
            logger.info(
                f"[auto-rounds] {user}: budget depleted "
                f"({format_sol(snapshot.balance)} < {format_sol(cost)})"
            )
            await self.restart(user, settings, snapshot)
            return False

        if not round_state.accepting:
            logger.debug(f"[auto-rounds] {user}: round {round_state.round_id} has ended")
            return False

        result = await self.executor.execute(user, DueAction(kind=ActionKind.DEPLOY, amount=cost))
        if result.success:
            logger.info(
                f"[auto-rounds] {user}: deployed {format_sol(cost)}, "
                f"{estimated_rounds(snapshot) - 1} rounds left"
            )
        return result.success

    async def restart(
        self, user: EnrolledUser, settings: AutomationSettings, snapshot: AutomationSnapshot
    ) -> bool:
        """
        Close a depleted automation account and open a new one

        Returns:
            True when a new account was opened
        """
        signer = await self.executor.signers.get_signer(user)
        if signer is None:
            logger.warning(f"[auto-rounds] {user}: wallet not found, automation not restarted")
            return False

        owner = signer.pubkey()
        builder = self.executor.builder
        submitter = self.executor.submitter

        try:
            signature = await submitter.submit(await builder.close_automation(owner), signer)
            logger.info(
                f"[auto-rounds] {user}: closed automation, "
                f"{format_sol(snapshot.balance)} returned | {signature}"
            )

            await asyncio.sleep(self.restart_delay_sec)

            balances = await self.reader.get_balances(owner)
            plan = plan_automation(settings, balances.sol)
            if plan is None:
                logger.warning(
                    f"[auto-rounds] {user}: {format_sol(balances.sol)} does not cover "
                    f"one round, automation left closed"
                )
                return False

            signature = await submitter.submit(await builder.open_automation(owner, plan), signer)
        except (InstructionBuildError, SubmissionError) as e:
            logger.warning(f"[auto-rounds] {user}: automation restart failed: {e}")
            return False

        logger.info(
            f"[auto-rounds] {user}: new automation, {plan.rounds} rounds "
            f"@ {format_sol(plan.deposit)} | {signature}"
        )
        return True
