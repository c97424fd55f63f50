"""
Exception hierarchy for the ORB automation bot.

A missing or short on-chain account is not an error: decoders return None.
"""


class OrbBotError(Exception):
    """Base error for the project."""


class PriceUnavailableError(OrbBotError):
    """Price oracle returned nothing usable."""


class SubmissionError(OrbBotError):
    """Transaction rejected, RPC failure or confirmation timeout."""


class InstructionBuildError(OrbBotError):
    """The instruction builder could not produce instructions for an action."""


class InvalidRecipientError(OrbBotError):
    """Transfer recipient is not a valid ledger public key."""


class SettingsValidationError(OrbBotError):
    """Unknown setting name or out-of-range value."""


class NotificationError(OrbBotError):
    """Chat platform refused a send or edit."""


class MessageNotEditableError(NotificationError):
    """Message is too old or was deleted; a new one must be sent."""
