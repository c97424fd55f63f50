"""
Admin middleware - blocks automation admin commands for non-admins
"""

from typing import Callable, Dict, Any, Awaitable

from aiogram import BaseMiddleware
from aiogram.types import TelegramObject, Message
from loguru import logger

from config.config import ADMIN_IDS


class AdminMiddleware(BaseMiddleware):
    """
    Only users listed in ADMIN_IDS may run admin commands.
    Every message gets an `is_admin` flag in handler data.
    """

    ADMIN_COMMANDS = {
        "/autostatus",
        "/autorun",
        "/autoreset",
        "/autosettings",
        "/autohistory",
    }

    def __init__(self, admin_ids: list[int] | None = None):
        self.admin_ids = set(ADMIN_IDS if admin_ids is None else admin_ids)

    def is_admin(self, user_id: int) -> bool:
        return user_id in self.admin_ids

    def is_admin_command(self, text: str) -> bool:
        if not text:
            return False
        # "/autorun@orb_bot telegram 1" -> "/autorun"
        command = text.split()[0].split("@")[0].lower()
        return command in self.ADMIN_COMMANDS

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        if not isinstance(event, Message) or not event.from_user:
            return await handler(event, data)

        user = event.from_user
        data["is_admin"] = self.is_admin(user.id)

        if not self.is_admin_command(event.text or ""):
            return await handler(event, data)

        if not data["is_admin"]:
            logger.warning(f"Non-admin user {user.id} (@{user.username}) attempted admin command")
            await event.answer("⛔ <b>Access denied</b>\n\nThis command is for administrators only.")
            return None

        logger.info(f"Admin {user.id} (@{user.username}): {event.text}")
        return await handler(event, data)
