# coding: utf-8
"""
Automation admin commands

/autostatus                        - loop status and next runs
/autorun [platform] <user_id>      - run the full pipeline for one user now
/autoreset [platform] <user_id>    - start a fresh claim notification message
/autosettings [platform] <user_id> - show a user's automation settings
/autohistory [platform] <user_id>  - last executed actions
"""
from html import escape
from typing import Optional

from aiogram import Router
from aiogram.filters import Command, CommandObject
from aiogram.types import Message
from loguru import logger
from solders.pubkey import Pubkey
from sqlalchemy.ext.asyncio import AsyncSession

from orbbot.core.enums import Platform
from orbbot.database.crud import get_action_history, get_user, get_user_settings
from orbbot.services.automation.notifications import format_settings_display
from orbbot.services.automation.scheduler import AutomationScheduler
from orbbot.services.automation.schemas import EnrolledUser
from orbbot.utils.formatters import format_orb, format_sol

router = Router(name="automation")

USAGE = "Usage: <code>{command} [telegram|discord] &lt;user_id&gt;</code>"


def parse_target(args: Optional[str]) -> Optional[tuple[Platform, str]]:
    """
    "123" -> (telegram, "123"); "discord 123" -> (discord, "123")
    """
    parts = (args or "").split()
    if len(parts) == 1:
        return Platform.TELEGRAM, parts[0]
    if len(parts) == 2:
        try:
            return Platform(parts[0].lower()), parts[1]
        except ValueError:
            return None
    return None


async def _enrolled_user(
    message: Message, session: AsyncSession, command: CommandObject
) -> Optional[EnrolledUser]:
    target = parse_target(command.args)
    if target is None:
        await message.answer(USAGE.format(command=f"/{command.command}"))
        return None

    platform, user_id = target
    user = await get_user(session, platform, user_id)
    if user is None or not user.public_key:
        await message.answer(f"❌ No wallet for {platform.value}:{escape(user_id)}")
        return None

    return EnrolledUser(platform=platform, user_id=user_id, public_key=user.public_key)


@router.message(Command("autostatus"))
async def cmd_autostatus(message: Message, automation: AutomationScheduler):
    status = automation.get_status()

    lines = [
        "🤖 <b>Automation</b>",
        "",
        f"Scheduler: {'🟢 running' if status['running'] else '🔴 stopped'}",
        "",
    ]
    for loop in status["loops"]:
        lines.append(
            f"<b>{loop['class']}</b>: {loop['status']}, every {loop['interval_sec']}s\n"
            f"  passes: {loop['passes']}, skipped ticks: {loop['skipped_ticks']}, "
            f"last users: {loop['last_users']}\n"
            f"  next run: {loop['next_run'] or '-'}"
        )

    rounds = status["rounds"]
    if rounds:
        lines.append(
            f"<b>rounds</b>: every {rounds['interval_sec']}s\n"
            f"  last round: {rounds['last_round'] or '-'}, deployed: {rounds['last_deployed']}\n"
            f"  next run: {rounds['next_run'] or '-'}"
        )

    await message.answer("\n".join(lines))


@router.message(Command("autorun"))
async def cmd_autorun(
    message: Message,
    command: CommandObject,
    session: AsyncSession,
    automation: AutomationScheduler,
):
    user = await _enrolled_user(message, session, command)
    if user is None:
        return

    status_message = await message.answer(f"⏳ Running automation for {user}...")

    try:
        results = await automation.run_user_now(user)
        mining = await automation.pipeline.reader.get_automation_status(
            Pubkey.from_string(user.public_key)
        )
    except Exception as e:
        logger.exception(f"Manual automation run failed for {user}")
        await status_message.edit_text(f"❌ Run failed: {escape(str(e))}")
        return

    lines = [f"✅ <b>Automation run for {user}</b>", ""]
    for result in results:
        mark = "✅" if result.success else "❌"
        detail = result.signature or escape(result.error or "")
        lines.append(f"{mark} {result.kind.value}: <code>{detail}</code>")
    if not results:
        lines.append("Nothing due")

    if mining.active:
        lines.append(
            f"\n⛏ Mining automation: {format_sol(mining.balance)}, "
            f"{format_sol(mining.cost_per_round)}/round, ~{mining.estimated_rounds} rounds left"
        )
    else:
        lines.append("\n⛏ Mining automation: inactive")
    await status_message.edit_text("\n".join(lines))


@router.message(Command("autoreset"))
async def cmd_autoreset(
    message: Message,
    command: CommandObject,
    session: AsyncSession,
    automation: AutomationScheduler,
):
    user = await _enrolled_user(message, session, command)
    if user is None:
        return

    had_history = automation.pipeline.aggregator.reset(user)
    if had_history:
        await message.answer(f"🔄 Claim history reset for {user}")
    else:
        await message.answer(f"ℹ️ No claim history for {user}")


@router.message(Command("autosettings"))
async def cmd_autosettings(message: Message, command: CommandObject, session: AsyncSession):
    target = parse_target(command.args)
    if target is None:
        await message.answer(USAGE.format(command="/autosettings"))
        return

    platform, user_id = target
    if await get_user(session, platform, user_id) is None:
        await message.answer(f"❌ Unknown user {platform.value}:{escape(user_id)}")
        return

    settings = await get_user_settings(session, platform, user_id)
    await message.answer(format_settings_display(settings))


@router.message(Command("autohistory"))
async def cmd_autohistory(message: Message, command: CommandObject, session: AsyncSession):
    target = parse_target(command.args)
    if target is None:
        await message.answer(USAGE.format(command="/autohistory"))
        return

    records = await get_action_history(session, *target, limit=10)
    if not records:
        await message.answer("📭 No actions recorded")
        return

    lines = ["📜 <b>Recent actions</b>", ""]
    for record in records:
        mark = "✅" if record.success else "❌"
        amount = format_sol(record.sol_amount) if record.sol_amount else format_orb(record.orb_amount)
        lines.append(f"{mark} {record.created_at:%Y-%m-%d %H:%M} {record.kind} {amount}")
    await message.answer("\n".join(lines))
