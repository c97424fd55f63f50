"""
Automation Scheduler

APScheduler jobs, one per action class:
- claim: every 5 min, first run after 60 s (claims, then auto-transfer)
- swap:  every 10 min, first run after 2 min
- stake: every 15 min, first run after 3 min
- rounds: every 15 s when a RoundExecutor is wired (deploys once per new round)

Within a pass users are processed one at a time with a pause between them.
A class never runs two passes at once: a tick arriving while its pass is
still running is dropped.
"""
import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta, UTC
from typing import Awaitable, Callable, Dict, List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from orbbot.core.enums import ActionClass, LoopStatus
from orbbot.database.crud import list_enrolled_users
from orbbot.services.automation.config import AutomationConfig, LoopConfig, get_config
from orbbot.services.automation.pipeline import AutomationPipeline
from orbbot.services.automation.rounds import RoundExecutor
from orbbot.services.automation.schemas import ActionResult, EnrolledUser

UserSource = Callable[[AsyncSession], Awaitable[List[EnrolledUser]]]


@dataclass
class LoopState:
    """State machine of one action class: IDLE -> RUNNING -> IDLE."""

    action_class: ActionClass
    config: LoopConfig
    status: LoopStatus = LoopStatus.IDLE
    stop: asyncio.Event = field(default_factory=asyncio.Event)
    passes: int = 0
    skipped_ticks: int = 0
    last_started_at: Optional[datetime] = None
    last_finished_at: Optional[datetime] = None
    last_users: int = 0


class AutomationScheduler:
    """
    Jobs:
    - automation_claim
    - automation_swap
    - automation_stake
    - automation_rounds (optional)
    """

    def __init__(
        self,
        pipeline: AutomationPipeline,
        session_maker: async_sessionmaker[AsyncSession],
        config: Optional[AutomationConfig] = None,
        user_source: UserSource = list_enrolled_users,
        rounds: Optional[RoundExecutor] = None,
    ):
        self.pipeline = pipeline
        self.rounds = rounds
        self.session_maker = session_maker
        self.config = config or get_config()
        self.user_source = user_source
        self.scheduler: Optional[AsyncIOScheduler] = None
        self._running = False
        self.loops: Dict[ActionClass, LoopState] = {
            action_class: LoopState(action_class, self.config.loops[action_class])
            for action_class in ActionClass
        }

    def start(self) -> None:
        if self._running:
            logger.warning("Automation scheduler already running")
            return
        if not self.config.enabled:
            logger.info("Automation disabled - scheduler not started")
            return

        self.scheduler = AsyncIOScheduler()
        now = datetime.now(UTC)

        for action_class, state in self.loops.items():
            state.stop.clear()
            self.scheduler.add_job(
                self.run_pass,
                IntervalTrigger(seconds=state.config.interval_sec),
                args=[action_class],
                id=f"automation_{action_class.value}",
                name=f"Auto-{action_class.value.capitalize()}",
                next_run_time=now + timedelta(seconds=state.config.first_run_sec),
                max_instances=1,
                coalesce=True,
                replace_existing=True,
            )

        if self.rounds:
            self.scheduler.add_job(
                self.run_rounds,
                IntervalTrigger(seconds=self.config.rounds.interval_sec),
                id="automation_rounds",
                name="Auto-Rounds",
                next_run_time=now + timedelta(seconds=self.config.rounds.first_run_sec),
                max_instances=1,
                coalesce=True,
                replace_existing=True,
            )

        self.scheduler.start()
        self._running = True

        logger.info(
            "Automation scheduler started: "
            + ", ".join(
                f"{c.value} every {s.config.interval_sec}s (first in {s.config.first_run_sec}s)"
                for c, s in self.loops.items()
            )
        )

    def stop(self) -> None:
        """
        Remove all timers. A pass in progress finishes its current user, then exits.
        """
        for state in self.loops.values():
            state.stop.set()

        if self.scheduler and self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        self._running = False
        logger.info("Automation scheduler stopped")

    @property
    def running(self) -> bool:
        return self._running

    async def _pause(self, state: LoopState) -> bool:
        """Inter-user delay. Returns True if a stop was requested meanwhile."""
        try:
            await asyncio.wait_for(state.stop.wait(), timeout=state.config.user_delay_sec)
            return True
        except asyncio.TimeoutError:
            return False

    async def run_pass(self, action_class: ActionClass) -> int:
        """
        Process every enrolled user once for an action class

        Args:
            action_class: Loop to run

        Returns:
            Number of users processed
        """
        state = self.loops[action_class]
        if state.status is LoopStatus.RUNNING:
            state.skipped_ticks += 1
            logger.debug(f"[auto-{action_class.value}] previous pass still running, tick skipped")
            return 0

        state.status = LoopStatus.RUNNING
        state.last_started_at = datetime.now(UTC)
        processed = 0

        try:
            try:
                async with self.session_maker() as session:
                    users = await self.user_source(session)
            except Exception:
                logger.exception(f"[auto-{action_class.value}] failed to load users")
                return 0

            if not users:
                logger.debug(f"[auto-{action_class.value}] no enrolled users")
                return 0

            logger.info(f"[auto-{action_class.value}] checking {len(users)} users")

            for index, user in enumerate(users):
                if state.stop.is_set():
                    break

                try:
                    for stage in action_class.stages:
                        await self.pipeline.run_stage(user, stage)
                except Exception:
                    logger.exception(f"[auto-{action_class.value}] error processing {user}")
                processed += 1

                if index < len(users) - 1 and await self._pause(state):
                    break

            if state.stop.is_set():
                logger.info(
                    f"[auto-{action_class.value}] stopped after {processed}/{len(users)} users"
                )
            return processed

        finally:
            state.status = LoopStatus.IDLE
            state.passes += 1
            state.last_users = processed
            state.last_finished_at = datetime.now(UTC)

    async def run_rounds(self) -> int:
        """Round automation tick. Errors are logged, the timer keeps running."""
        try:
            return await self.rounds.run_once()
        except Exception:
            logger.exception("[auto-rounds] round check failed")
            return 0

    async def run_user_now(self, user: EnrolledUser) -> List[ActionResult]:
        """
        Manual trigger: full pipeline for one user, outside the schedule
        """
        logger.info(f"Manual automation run for {user}")
        return await self.pipeline.run_all(user)

    def get_status(self) -> dict:
        jobs = {}
        if self.scheduler and self._running:
            for job in self.scheduler.get_jobs():
                jobs[job.id] = job.next_run_time.isoformat() if job.next_run_time else None

        rounds = None
        if self.rounds:
            rounds = {
                "last_round": self.rounds.last_round_id,
                "last_deployed": self.rounds.last_deployed,
                "interval_sec": self.config.rounds.interval_sec,
                "next_run": jobs.get("automation_rounds"),
            }

        return {
            "running": self._running,
            "enabled": self.config.enabled,
            "rounds": rounds,
            "loops": [
                {
                    "class": action_class.value,
                    "status": state.status.value,
                    "interval_sec": state.config.interval_sec,
                    "passes": state.passes,
                    "skipped_ticks": state.skipped_ticks,
                    "last_users": state.last_users,
                    "last_finished_at": (
                        state.last_finished_at.isoformat() if state.last_finished_at else None
                    ),
                    "next_run": jobs.get(f"automation_{action_class.value}"),
                }
                for action_class, state in self.loops.items()
            ],
        }
