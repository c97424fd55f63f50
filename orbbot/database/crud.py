"""
CRUD operations for ORB Automation Bot

Async database operations using SQLAlchemy 2.0
"""

import logging
from datetime import datetime, UTC
from typing import Any, List, Optional

from pydantic import ValidationError
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from orbbot.core.enums import Platform
from orbbot.core.exceptions import SettingsValidationError
from orbbot.database.models import User, UserSettings, ActionRecord
from orbbot.services.automation.schemas import (
    ActionResult,
    AutomationSettings,
    EnrolledUser,
    SETTINGS_FIELDS,
)

logger = logging.getLogger(__name__)


# ===========================
# USERS
# ===========================


async def get_user(
    session: AsyncSession, platform: Platform, platform_user_id: str
) -> Optional[User]:
    result = await session.execute(
        select(User).where(
            User.platform == platform.value,
            User.platform_user_id == str(platform_user_id),
        )
    )
    return result.scalar_one_or_none()


async def get_or_create_user(
    session: AsyncSession,
    platform: Platform,
    platform_user_id: str,
    username: Optional[str] = None,
) -> tuple[User, bool]:
    """
    Get existing user or create new one

    Args:
        session: Database session
        platform: Chat platform
        platform_user_id: User ID on that platform
        username: Display name

    Returns:
        Tuple of (User model, is_created)
    """
    user = await get_user(session, platform, platform_user_id)
    if user:
        if username and user.username != username:
            user.username = username
            await session.commit()
        return user, False

    user = User(
        platform=platform.value,
        platform_user_id=str(platform_user_id),
        username=username,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    logger.info(f"Created user {platform.value}:{platform_user_id}")
    return user, True


async def set_user_wallet(
    session: AsyncSession,
    platform: Platform,
    platform_user_id: str,
    public_key: Optional[str],
) -> User:
    """
    Attach (or detach with None) a wallet public key, enrolling the user in automation
    """
    user, _ = await get_or_create_user(session, platform, platform_user_id)
    user.public_key = public_key
    await session.commit()
    return user


async def list_enrolled_users(session: AsyncSession) -> List[EnrolledUser]:
    """
    Users with a wallet, in stable (id) order
    """
    result = await session.execute(
        select(User).where(User.public_key.is_not(None)).order_by(User.id)
    )
    return [
        EnrolledUser(
            platform=Platform(user.platform),
            user_id=user.platform_user_id,
            public_key=user.public_key,
        )
        for user in result.scalars().all()
    ]


# ===========================
# SETTINGS
# ===========================


async def _get_settings_row(
    session: AsyncSession, platform: Platform, platform_user_id: str
) -> Optional[UserSettings]:
    result = await session.execute(
        select(UserSettings).where(
            UserSettings.platform == platform.value,
            UserSettings.platform_user_id == str(platform_user_id),
        )
    )
    return result.scalar_one_or_none()


async def _create_default_settings(
    session: AsyncSession, platform: Platform, platform_user_id: str
) -> UserSettings:
    row = UserSettings(
        platform=platform.value,
        platform_user_id=str(platform_user_id),
        **AutomationSettings().model_dump(),
    )
    session.add(row)
    await session.commit()
    await session.refresh(row)
    return row


async def get_user_settings(
    session: AsyncSession, platform: Platform, platform_user_id: str
) -> AutomationSettings:
    """
    Get user settings, creating the default row on first access

    Returns:
        Validated settings

    Raises:
        SettingsValidationError: Stored row violates field constraints
    """
    row = await _get_settings_row(session, platform, platform_user_id)
    if row is None:
        row = await _create_default_settings(session, platform, platform_user_id)
        logger.info(f"Created default settings for {platform.value}:{platform_user_id}")

    try:
        return AutomationSettings.model_validate(row)
    except ValidationError as e:
        raise SettingsValidationError(
            f"Stored settings for {platform.value}:{platform_user_id} are invalid: {e}"
        ) from e


async def update_user_settings(
    session: AsyncSession,
    platform: Platform,
    platform_user_id: str,
    updates: dict[str, Any],
) -> AutomationSettings:
    """
    Update several settings at once

    Args:
        session: Database session
        platform: Chat platform
        platform_user_id: User ID on that platform
        updates: Field name -> new value

    Returns:
        Updated settings

    Raises:
        SettingsValidationError: Unknown field or invalid value (nothing is written)
    """
    unknown = sorted(set(updates) - set(SETTINGS_FIELDS))
    if unknown:
        raise SettingsValidationError(f"Unknown settings: {', '.join(unknown)}")

    current = await get_user_settings(session, platform, platform_user_id)
    try:
        validated = AutomationSettings.model_validate({**current.model_dump(), **updates})
    except ValidationError as e:
        raise SettingsValidationError(str(e)) from e

    row = await _get_settings_row(session, platform, platform_user_id)
    for name in updates:
        setattr(row, name, getattr(validated, name))
    row.updated_at = datetime.now(UTC)
    await session.commit()

    logger.info(
        f"Updated settings for {platform.value}:{platform_user_id}: {', '.join(sorted(updates))}"
    )
    return validated


async def update_user_setting(
    session: AsyncSession,
    platform: Platform,
    platform_user_id: str,
    name: str,
    value: Any,
) -> AutomationSettings:
    return await update_user_settings(session, platform, platform_user_id, {name: value})


async def reset_user_settings(
    session: AsyncSession, platform: Platform, platform_user_id: str
) -> AutomationSettings:
    """
    Delete the user's settings and recreate defaults
    """
    await session.execute(
        delete(UserSettings).where(
            UserSettings.platform == platform.value,
            UserSettings.platform_user_id == str(platform_user_id),
        )
    )
    await session.commit()

    row = await _create_default_settings(session, platform, platform_user_id)
    logger.info(f"Reset settings for {platform.value}:{platform_user_id}")
    return AutomationSettings.model_validate(row)


async def list_users_with_setting(
    session: AsyncSession, name: str, value: Any
) -> List[tuple[Platform, str]]:
    """
    Users whose setting `name` equals `value`

    Returns:
        List of (platform, platform_user_id)
    """
    if name not in SETTINGS_FIELDS:
        raise SettingsValidationError(f"Unknown setting: {name}")

    column = getattr(UserSettings, name)
    result = await session.execute(
        select(UserSettings.platform, UserSettings.platform_user_id)
        .where(column == value)
        .order_by(UserSettings.id)
    )
    return [(Platform(platform), user_id) for platform, user_id in result.all()]


# ===========================
# ACTION LEDGER
# ===========================


async def record_action_result(
    session: AsyncSession, user: EnrolledUser, result: ActionResult
) -> ActionRecord:
    """
    Append one executed action to the ledger
    """
    record = ActionRecord(
        platform=user.platform.value,
        platform_user_id=user.user_id,
        kind=result.kind.value,
        success=result.success,
        requested_amount=result.requested_amount,
        sol_amount=result.sol_amount,
        orb_amount=result.orb_amount,
        signature=result.signature,
        error=result.error,
    )
    session.add(record)
    await session.commit()
    return record


async def get_action_history(
    session: AsyncSession,
    platform: Platform,
    platform_user_id: str,
    limit: int = 20,
) -> List[ActionRecord]:
    """
    Latest ledger records for a user, newest first
    """
    result = await session.execute(
        select(ActionRecord)
        .where(
            ActionRecord.platform == platform.value,
            ActionRecord.platform_user_id == str(platform_user_id),
        )
        .order_by(ActionRecord.created_at.desc(), ActionRecord.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())
