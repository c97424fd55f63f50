"""
Core module - shared enums and exceptions.
"""

from orbbot.core.enums import (
    Platform,
    AccountKind,
    ActionKind,
    Stage,
    ActionClass,
    LoopStatus,
)
from orbbot.core.exceptions import (
    OrbBotError,
    PriceUnavailableError,
    SubmissionError,
    InstructionBuildError,
    InvalidRecipientError,
    SettingsValidationError,
    NotificationError,
    MessageNotEditableError,
)

__all__ = [
    "Platform",
    "AccountKind",
    "ActionKind",
    "Stage",
    "ActionClass",
    "LoopStatus",
    "OrbBotError",
    "PriceUnavailableError",
    "SubmissionError",
    "InstructionBuildError",
    "InvalidRecipientError",
    "SettingsValidationError",
    "NotificationError",
    "MessageNotEditableError",
]
