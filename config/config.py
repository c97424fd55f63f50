"""
Configuration module for ORB Automation Bot

Loads configuration from environment variables using python-dotenv
"""

import os
from pathlib import Path
from typing import List
from dotenv import load_dotenv

# Load .env file (override=True ensures .env has priority over shell environment)
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path, override=True)


# Telegram Bot Configuration
BOT_TOKEN: str = os.getenv("BOT_TOKEN", "")
ADMIN_IDS: List[int] = [
    int(admin_id.strip())
    for admin_id in os.getenv("ADMIN_IDS", "").split(",")
    if admin_id.strip()
]

# Database Configuration
DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./data/orbbot.db")

# Solana RPC
SOLANA_RPC_URL: str = os.getenv("SOLANA_RPC_URL", "https://api.mainnet-beta.solana.com")
# Seconds to wait for "confirmed" commitment before giving up on a transaction
TX_CONFIRM_TIMEOUT: float = float(os.getenv("TX_CONFIRM_TIMEOUT", "60"))

# ORB program and mints
ORB_PROGRAM_ID: str = os.getenv(
    "ORB_PROGRAM_ID", "boreXQWsKpsJz5RR9BMtN8Vk4ndAk23sutj8spWYhwk"
)
ORB_MINT: str = os.getenv("ORB_MINT", "orebyr4mDiPDVgnfqvF5xiu5gKnh94Szuz8dqgNqdJn")
SOL_MINT: str = "So11111111111111111111111111111111111111112"

# Jupiter Price API
JUPITER_PRICE_URL: str = os.getenv("JUPITER_PRICE_URL", "https://lite-api.jup.ag/price/v3")
PRICE_CACHE_TTL: int = int(os.getenv("PRICE_CACHE_TTL", "30"))

# Pluggable collaborators ("package.module:attribute")
# Instruction builder: produces one instruction list per action kind and
# reads the current mining round
INSTRUCTION_BUILDER: str = os.getenv("INSTRUCTION_BUILDER", "")
# Wallet provider: returns the signing keypair for an enrolled user
WALLET_PROVIDER: str = os.getenv("WALLET_PROVIDER", "")

# Automation loops (seconds)
AUTOMATION_ENABLED: bool = os.getenv("AUTOMATION_ENABLED", "true").lower() == "true"
AUTO_CLAIM_INTERVAL: int = int(os.getenv("AUTO_CLAIM_INTERVAL", "300"))
AUTO_CLAIM_FIRST_RUN: int = int(os.getenv("AUTO_CLAIM_FIRST_RUN", "60"))
AUTO_CLAIM_USER_DELAY: float = float(os.getenv("AUTO_CLAIM_USER_DELAY", "1"))
AUTO_SWAP_INTERVAL: int = int(os.getenv("AUTO_SWAP_INTERVAL", "600"))
AUTO_SWAP_FIRST_RUN: int = int(os.getenv("AUTO_SWAP_FIRST_RUN", "120"))
AUTO_SWAP_USER_DELAY: float = float(os.getenv("AUTO_SWAP_USER_DELAY", "2"))
AUTO_STAKE_INTERVAL: int = int(os.getenv("AUTO_STAKE_INTERVAL", "900"))
AUTO_STAKE_FIRST_RUN: int = int(os.getenv("AUTO_STAKE_FIRST_RUN", "180"))
AUTO_STAKE_USER_DELAY: float = float(os.getenv("AUTO_STAKE_USER_DELAY", "2"))
# Round automation: polls for a new mining round, deploys once per round
ROUND_CHECK_INTERVAL: int = int(os.getenv("ROUND_CHECK_INTERVAL", "15"))
ROUND_FIRST_RUN: int = int(os.getenv("ROUND_FIRST_RUN", "10"))
ROUND_USER_DELAY: float = float(os.getenv("ROUND_USER_DELAY", "1"))

# Environment
ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

# Optional: Sentry
SENTRY_DSN: str = os.getenv("SENTRY_DSN", "")


# Validation
def validate_config() -> bool:
    """Validate required configuration variables"""
    errors = []

    if not BOT_TOKEN:
        errors.append("BOT_TOKEN is required")

    if not DATABASE_URL:
        errors.append("DATABASE_URL is required")

    if not SOLANA_RPC_URL:
        errors.append("SOLANA_RPC_URL is required")

    if not ADMIN_IDS:
        errors.append("ADMIN_IDS is required (at least one admin)")

    for name, value in (
        ("INSTRUCTION_BUILDER", INSTRUCTION_BUILDER),
        ("WALLET_PROVIDER", WALLET_PROVIDER),
    ):
        if not value:
            errors.append(f"{name} is required")
        elif ":" not in value:
            errors.append(f"{name} must look like 'package.module:attribute'")

    if errors:
        error_message = "\n".join(f"  - {error}" for error in errors)
        raise ValueError(
            f"Configuration validation failed:\n{error_message}\n\n"
            "Please check your .env file and ensure all required variables are set."
        )

    return True
