"""
ORB Automation Bot - Main Bot Entry Point
"""

import asyncio
import sys
from pathlib import Path

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.fsm.storage.memory import MemoryStorage
from aiogram.types import BotCommand
from loguru import logger

from config.config import (
    BOT_TOKEN,
    DATABASE_URL,
    INSTRUCTION_BUILDER,
    WALLET_PROVIDER,
    validate_config,
)
from config.logging import setup_logging
from config.sentry import init_sentry
from orbbot.bot.handlers import automation as automation_handlers
from orbbot.bot.middleware import AdminMiddleware, DatabaseMiddleware
from orbbot.core.enums import Platform
from orbbot.database.engine import check_connection, dispose_engine, get_session_maker, init_db
from orbbot.services.automation.config import get_config
from orbbot.services.automation.executor import ActionExecutor
from orbbot.services.automation.notifications import (
    ClaimNotificationAggregator,
    NotificationService,
    TelegramNotifier,
)
from orbbot.services.automation.pipeline import AutomationPipeline
from orbbot.services.automation.rounds import RoundExecutor
from orbbot.services.automation.scheduler import AutomationScheduler
from orbbot.services.price_service import PriceService
from orbbot.services.solana_service import (
    SolanaLedgerReader,
    SolanaSubmitter,
    create_client,
    load_object,
)


def build_automation(bot: Bot) -> AutomationScheduler:
    """
    Wire reader, executor, notifier, round loop and scheduler together

    INSTRUCTION_BUILDER and WALLET_PROVIDER point at zero-argument factories.
    """
    config = get_config()
    session_maker = get_session_maker()
    client = create_client()

    notifications = NotificationService()
    notifications.register(Platform.TELEGRAM, TelegramNotifier(bot))

    executor = ActionExecutor(
        builder=load_object(INSTRUCTION_BUILDER)(),
        submitter=SolanaSubmitter(client),
        signers=load_object(WALLET_PROVIDER)(),
        session_maker=session_maker,
    )
    reader = SolanaLedgerReader(client)
    pipeline = AutomationPipeline(
        reader=reader,
        executor=executor,
        price_service=PriceService(),
        notifications=notifications,
        aggregator=ClaimNotificationAggregator(notifications),
        session_maker=session_maker,
        min_stake_amount=config.limits.min_stake_amount,
    )
    rounds = RoundExecutor(reader, executor, session_maker, config.rounds)
    return AutomationScheduler(pipeline, session_maker, config, rounds=rounds)


async def setup_bot_commands(bot: Bot) -> None:
    commands = [
        BotCommand(command="autostatus", description="🤖 Automation status"),
        BotCommand(command="autorun", description="▶️ Run automation for a user"),
        BotCommand(command="autoreset", description="🔄 Reset claim notification grouping"),
        BotCommand(command="autosettings", description="⚙️ Show a user's settings"),
        BotCommand(command="autohistory", description="📜 Recent actions for a user"),
    ]

    await bot.set_my_commands(commands)


async def on_startup(bot: Bot, automation: AutomationScheduler, **kwargs) -> None:
    """Actions to perform on bot startup"""
    logger.info("Starting ORB Automation Bot...")

    if DATABASE_URL.startswith("sqlite"):
        Path("data").mkdir(exist_ok=True)
    await init_db()
    if not await check_connection():
        raise RuntimeError("Database is not reachable")

    await setup_bot_commands(bot)

    automation.start()

    bot_info = await bot.get_me()
    logger.info(f"Bot started: @{bot_info.username} (ID: {bot_info.id})")


async def on_shutdown(bot: Bot, automation: AutomationScheduler, **kwargs) -> None:
    """Actions to perform on bot shutdown"""
    logger.info("Shutting down ORB Automation Bot...")

    automation.stop()

    await automation.pipeline.reader.client.close()
    logger.info("Solana RPC client closed")

    await dispose_engine()
    await bot.session.close()
    logger.info("Bot session closed")


async def main() -> None:
    """Main bot function"""
    setup_logging()
    init_sentry()

    try:
        validate_config()
    except ValueError as e:
        logger.error(str(e))
        sys.exit(1)

    logger.info("Configuration validated successfully")

    bot = Bot(
        token=BOT_TOKEN,
        default=DefaultBotProperties(
            parse_mode=ParseMode.HTML, link_preview_is_disabled=True
        ),
    )

    dp = Dispatcher(storage=MemoryStorage())
    dp["automation"] = build_automation(bot)

    # Database first: handlers and admin checks rely on the session
    dp.message.middleware(DatabaseMiddleware())
    dp.message.middleware(AdminMiddleware())

    dp.include_router(automation_handlers.router)

    dp.startup.register(on_startup)
    dp.shutdown.register(on_shutdown)

    try:
        logger.info("Starting bot polling...")
        await dp.start_polling(
            bot,
            allowed_updates=dp.resolve_used_update_types(),
            drop_pending_updates=True,
        )
    except Exception as e:
        logger.exception(f"Critical error during bot operation: {e}")
        raise


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Bot stopped by user (KeyboardInterrupt)")
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        sys.exit(1)
