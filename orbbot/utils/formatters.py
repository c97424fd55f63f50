"""
Display helpers.

Ledger amounts are integers in base units (1e9 per SOL / ORB).
Conversion to decimals happens only here, for presentation.
"""

from datetime import datetime
from decimal import Decimal, ROUND_FLOOR

BASE_UNITS = 10**9


def to_base_units(amount: Decimal | int | str) -> int:
    """Convert a display amount to base units, rounding down."""
    scaled = Decimal(str(amount)) * BASE_UNITS
    return int(scaled.to_integral_value(rounding=ROUND_FLOOR))


def from_base_units(amount: int) -> Decimal:
    return Decimal(amount) / BASE_UNITS


def format_sol(lamports: int) -> str:
    return f"{from_base_units(lamports):.4f} SOL"


def format_orb(amount: int) -> str:
    return f"{from_base_units(amount):.2f} ORB"


def format_usd(value: float | Decimal) -> str:
    return f"${value:.2f}"


def format_relative_time(then: datetime, now: datetime) -> str:
    """
    Coarse "time ago" label.

    Args:
        then: Moment being described
        now: Reference moment

    Returns:
        "just now", "N min(s) ago" or "N hour(s) ago"
    """
    minutes = int((now - then).total_seconds() // 60)
    if minutes < 1:
        return "just now"
    if minutes == 1:
        return "1 min ago"
    if minutes < 60:
        return f"{minutes} mins ago"
    hours = minutes // 60
    if hours == 1:
        return "1 hour ago"
    return f"{hours} hours ago"


def short_address(address: str, chars: int = 4) -> str:
    """Shorten a base58 address for chat output: abcd...wxyz"""
    if not address or len(address) <= chars * 2 + 3:
        return address
    return f"{address[:chars]}...{address[-chars:]}"
