"""
Automation Service

Threshold-driven claim / swap / stake / transfer for enrolled users.

NOTE: pipeline, executor and scheduler are imported from their own modules
to avoid circular imports with orbbot.database.crud:
    from orbbot.services.automation.scheduler import AutomationScheduler
"""
from orbbot.services.automation.config import AutomationConfig, LoopConfig, get_config
from orbbot.services.automation.schemas import (
    AutomationSettings,
    DueAction,
    ActionResult,
    EnrolledUser,
)

__all__ = [
    "AutomationConfig",
    "LoopConfig",
    "get_config",
    "AutomationSettings",
    "DueAction",
    "ActionResult",
    "EnrolledUser",
]
