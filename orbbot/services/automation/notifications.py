"""
Automation notifications

TelegramNotifier            - aiogram-backed send/edit
NotificationService         - per-platform notifier registry, best-effort delivery
ClaimNotificationAggregator - one evolving "Auto-Claim Successful" message per user

All texts are HTML (the bot runs with ParseMode.HTML).
"""

import asyncio
from datetime import datetime, UTC
from html import escape
from typing import Callable, Dict, List, Optional, Protocol

from aiogram import Bot
from aiogram.enums import ParseMode
from aiogram.exceptions import TelegramAPIError, TelegramBadRequest
from loguru import logger

from orbbot.core.enums import Platform
from orbbot.core.exceptions import MessageNotEditableError, NotificationError
from orbbot.services.automation.schemas import (
    AutomationSettings,
    ClaimEntry,
    ClaimHistoryEntry,
    EnrolledUser,
    MessageHandle,
)
from orbbot.utils.formatters import format_orb, format_relative_time, format_sol, short_address

SOLSCAN_TX_URL = "https://solscan.io/tx/{signature}"

NOT_EDITABLE_MARKERS = ("message to edit not found", "message can't be edited")


class Notifier(Protocol):
    async def send(self, chat_id: int | str, text: str) -> MessageHandle: ...

    async def edit(self, handle: MessageHandle, text: str) -> None: ...


class TelegramNotifier:
    """Notifier over an aiogram Bot."""

    def __init__(self, bot: Bot):
        self.bot = bot

    async def send(self, chat_id: int | str, text: str) -> MessageHandle:
        try:
            message = await self.bot.send_message(
                chat_id=int(chat_id),
                text=text,
                parse_mode=ParseMode.HTML,
            )
        except TelegramAPIError as e:
            raise NotificationError(str(e)) from e
        return MessageHandle(chat_id=message.chat.id, message_id=message.message_id)

    async def edit(self, handle: MessageHandle, text: str) -> None:
        try:
            await self.bot.edit_message_text(
                text=text,
                chat_id=handle.chat_id,
                message_id=handle.message_id,
                parse_mode=ParseMode.HTML,
            )
        except TelegramBadRequest as e:
            error = str(e).lower()
            if "message is not modified" in error:
                return
            if any(marker in error for marker in NOT_EDITABLE_MARKERS):
                raise MessageNotEditableError(str(e)) from e
            raise NotificationError(str(e)) from e
        except TelegramAPIError as e:
            raise NotificationError(str(e)) from e


class NotificationService:
    """
    Routes messages to the notifier registered for the user's platform.

    A platform without a notifier only suppresses the message.
    """

    def __init__(self):
        self._notifiers: Dict[Platform, Notifier] = {}

    def register(self, platform: Platform, notifier: Notifier) -> None:
        self._notifiers[platform] = notifier

    def get_notifier(self, platform: Platform) -> Optional[Notifier]:
        return self._notifiers.get(platform)

    async def notify(self, user: EnrolledUser, text: str) -> bool:
        """
        Best-effort delivery

        Returns:
            True if the message was sent
        """
        notifier = self.get_notifier(user.platform)
        if notifier is None:
            logger.debug(f"No notifier for {user.platform.value}, message to {user} dropped")
            return False

        try:
            await notifier.send(user.user_id, text)
            return True
        except NotificationError as e:
            logger.warning(f"Failed to notify {user}: {e}")
            return False


# ===========================
# MESSAGE TEMPLATES
# ===========================


def _solscan_link(signature: str) -> str:
    return f'<a href="{SOLSCAN_TX_URL.format(signature=signature)}">View on Solscan</a>'


def swap_success_text(amount: int, signature: str) -> str:
    return (
        "✅ <b>Auto-Swap Successful</b>\n\n"
        f"Swapped: {format_orb(amount)}\n\n"
        f"{_solscan_link(signature)}"
    )


def swap_failed_text(amount: int, error: str) -> str:
    return (
        "⚠️ <b>Auto-Swap Failed</b>\n\n"
        f"Failed to swap {format_orb(amount)}\n\n"
        f"Error: {escape(error)}\n\n"
        "Please check your settings or try manual swap."
    )


def stake_success_text(amount: int, signature: str) -> str:
    return (
        "✅ <b>Auto-Stake Successful</b>\n\n"
        f"Staked: {format_orb(amount)}\n\n"
        "Your ORB is now earning staking rewards!\n\n"
        f"{_solscan_link(signature)}"
    )


def stake_failed_text(amount: int, error: str) -> str:
    return (
        "⚠️ <b>Auto-Stake Failed</b>\n\n"
        f"Failed to stake {format_orb(amount)}\n\n"
        f"Error: {escape(error)}\n\n"
        "Please check your balance or try manual staking."
    )


def transfer_success_text(amount: int, recipient: str, signature: str) -> str:
    return (
        "✅ <b>Auto-Transfer Completed</b>\n\n"
        f"Transferred {format_orb(amount)} to:\n<code>{escape(recipient)}</code>\n\n"
        f"{_solscan_link(signature)}"
    )


def transfer_failed_text(amount: int, error: str) -> str:
    return (
        "❌ <b>Auto-Transfer Failed</b>\n\n"
        f"Failed to transfer {format_orb(amount)}\n\n"
        f"Error: {escape(error)}"
    )


def claim_description(kind_value: str, amount: int) -> str:
    if kind_value == "claim_sol":
        return f"{format_sol(amount)} from mining"
    if kind_value == "claim_orb":
        return f"{format_orb(amount)} from mining"
    return f"{format_orb(amount)} from staking"


def render_claim_message(entries: List[ClaimEntry], now: datetime) -> str:
    """Newest entry first and unlabelled, older ones with a relative-time suffix."""
    lines = ["✅ <b>Auto-Claim Successful</b>", "", "Claimed:"]
    for index, entry in enumerate(entries):
        if index == 0:
            lines.append(f"• {escape(entry.description)}")
        else:
            age = format_relative_time(entry.timestamp, now)
            lines.append(f"• {escape(entry.description)} - {age}")
    return "\n".join(lines)


def format_settings_display(settings: AutomationSettings) -> str:
    def toggle(enabled: bool) -> str:
        return "✅ Enabled" if enabled else "❌ Disabled"

    recipient = settings.transfer_recipient_address
    recipient_text = f"<code>{short_address(recipient, 8)}</code>" if recipient else "Not set"

    return "\n".join([
        "⚙️ <b>Your Mining Settings</b>",
        "",
        "<b>Mining Configuration:</b>",
        f"• Motherload Threshold: {settings.motherload_threshold} ORB",
        f"• SOL Per Block: {settings.sol_per_block} SOL",
        f"• Number of Blocks: {settings.num_blocks} blocks",
        "",
        "<b>Automation:</b>",
        f"• Budget Allocation: {settings.automation_budget_percent}%",
        f"• Auto-claim SOL: ≥{settings.auto_claim_sol_threshold} SOL",
        f"• Auto-claim ORB: ≥{settings.auto_claim_orb_threshold} ORB",
        f"• Auto-claim Staking: ≥{settings.auto_claim_staking_threshold} ORB",
        "",
        "<b>Swap Settings:</b>",
        f"• Auto-swap: {toggle(settings.auto_swap_enabled)}",
        f"• Swap Threshold: {settings.swap_threshold} ORB",
        f"• Min ORB Price: ${settings.min_orb_price}",
        f"• Min ORB to Keep: {settings.min_orb_to_keep} ORB",
        f"• Min Swap Amount: {settings.min_swap_amount} ORB",
        f"• Slippage: {settings.slippage_bps / 100:.2f}%",
        "",
        "<b>Staking:</b>",
        f"• Auto-stake: {toggle(settings.auto_stake_enabled)}",
        f"• Stake Threshold: {settings.stake_threshold} ORB",
        "",
        "<b>Auto-Transfer:</b>",
        f"• Auto-transfer: {toggle(settings.auto_transfer_enabled)}",
        f"• Transfer Threshold: {settings.orb_transfer_threshold} ORB",
        f"• Recipient: {recipient_text}",
    ])


# ===========================
# CLAIM AGGREGATOR
# ===========================


class ClaimNotificationAggregator:
    """
    Coalesces claim notifications into one message per user.

    History lives in memory only; losing it on restart just starts a new message.
    """

    def __init__(
        self,
        notifications: NotificationService,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ):
        self.notifications = notifications
        self.clock = clock
        self._history: Dict[tuple[str, str], ClaimHistoryEntry] = {}
        self._lock = asyncio.Lock()

    def get_history(self, user: EnrolledUser) -> Optional[ClaimHistoryEntry]:
        return self._history.get(user.key)

    def reset(self, user: EnrolledUser) -> bool:
        """Forget the user's claim message; the next claim starts a new one."""
        return self._history.pop(user.key, None) is not None

    async def _send_new(
        self, notifier: Notifier, user: EnrolledUser, entries: List[ClaimEntry], now: datetime
    ) -> Optional[MessageHandle]:
        try:
            handle = await notifier.send(user.user_id, render_claim_message(entries, now))
        except NotificationError as e:
            logger.warning(f"Failed to send claim notification to {user}: {e}")
            return None
        self._history[user.key] = ClaimHistoryEntry(user_key=user.key, handle=handle, entries=entries)
        return handle

    async def add_claims(
        self, user: EnrolledUser, descriptions: List[str]
    ) -> Optional[MessageHandle]:
        """
        Add a batch of claimed rewards to the user's claim message

        Args:
            user: User that claimed
            descriptions: One line per claimed reward, e.g. "0.0500 SOL from mining"

        Returns:
            Handle of the message now showing the claims, None if nothing was delivered
        """
        if not descriptions:
            return None

        notifier = self.notifications.get_notifier(user.platform)
        if notifier is None:
            logger.debug(f"No notifier for {user.platform.value}, claim message to {user} dropped")
            return None

        async with self._lock:
            now = self.clock()
            new_entries = [ClaimEntry(description=d, timestamp=now) for d in descriptions]

            existing = self._history.get(user.key)
            if existing is None:
                return await self._send_new(notifier, user, new_entries, now)

            entries = new_entries + existing.entries
            try:
                await notifier.edit(existing.handle, render_claim_message(entries, now))
            except MessageNotEditableError:
                logger.debug(f"Claim message for {user} no longer editable, sending a new one")
                return await self._send_new(notifier, user, new_entries, now)
            except NotificationError as e:
                logger.warning(f"Failed to update claim notification for {user}: {e}")

            existing.entries = entries
            return existing.handle
