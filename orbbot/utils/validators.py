"""
Input validators
"""

from typing import Optional

import base58

PUBKEY_LENGTH = 32


def validate_recipient(address: Optional[str]) -> tuple[bool, Optional[str]]:
    """
    Check that an address is a base58 Solana public key

    Args:
        address: Candidate recipient address

    Returns:
        Tuple of (is_valid, error message or None)
    """
    if not address or not address.strip():
        return False, "Address cannot be empty"

    try:
        raw = base58.b58decode(address.strip())
    except ValueError:
        return False, "Invalid Solana address format"

    if len(raw) != PUBKEY_LENGTH:
        return False, "Invalid Solana address format"

    return True, None
