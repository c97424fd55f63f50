"""
Database middleware - provides a database session to handlers
"""

from typing import Callable, Dict, Any, Awaitable

from aiogram import BaseMiddleware
from aiogram.types import TelegramObject, Message
from loguru import logger

from orbbot.core.enums import Platform
from orbbot.database.crud import get_or_create_user
from orbbot.database.engine import get_session_maker


class DatabaseMiddleware(BaseMiddleware):
    """
    Opens one session per update and registers the Telegram sender as a user.

    Usage in handler:
        async def my_handler(message: Message, session: AsyncSession):
            ...
    """

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        session_maker = get_session_maker()
        async with session_maker() as session:
            data["session"] = session

            if isinstance(event, Message) and event.from_user:
                telegram_user = event.from_user
                db_user, is_new_user = await get_or_create_user(
                    session,
                    Platform.TELEGRAM,
                    str(telegram_user.id),
                    username=telegram_user.username,
                )
                data["user"] = db_user
                if is_new_user:
                    logger.debug(f"Registered Telegram user {telegram_user.id}")

            try:
                result = await handler(event, data)
                await session.commit()
                return result
            except Exception as e:
                await session.rollback()
                logger.error(f"Database error in handler: {e}")
                raise
