"""
Database models for ORB Automation Bot

SQLAlchemy 2.0 models with full type hints
"""

from datetime import datetime, UTC
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    String,
    BigInteger,
    Text,
    Integer,
    Boolean,
    DateTime,
    UniqueConstraint,
    Numeric,
    Index,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models"""

    pass


# Display-unit amounts (SOL / ORB / USD)
Amount = Numeric(28, 9)


class User(Base):
    """
    Enrolled bot user

    A user is identified by (platform, platform_user_id).
    Users with a public_key are picked up by the automation loops.
    """

    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("platform", "platform_user_id", name="uq_users_platform_user"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    platform: Mapped[str] = mapped_column(
        String(20), nullable=False, comment="Chat platform (telegram/discord)"
    )
    platform_user_id: Mapped[str] = mapped_column(
        String(64), nullable=False, comment="User ID on the chat platform"
    )
    username: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    public_key: Mapped[Optional[str]] = mapped_column(
        String(64), nullable=True, index=True, comment="Wallet public key (base58)"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<User(platform={self.platform}, id={self.platform_user_id})>"


class UserSettings(Base):
    """
    Automation settings - exactly one row per user

    Created lazily with defaults, replaced on reset.
    """

    __tablename__ = "user_settings"
    __table_args__ = (
        UniqueConstraint(
            "platform", "platform_user_id", name="uq_user_settings_platform_user"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    platform: Mapped[str] = mapped_column(String(20), nullable=False)
    platform_user_id: Mapped[str] = mapped_column(String(64), nullable=False)

    # Mining
    motherload_threshold: Mapped[Decimal] = mapped_column(Amount, default=Decimal("5000"))
    sol_per_block: Mapped[Decimal] = mapped_column(Amount, default=Decimal("0.001"))
    num_blocks: Mapped[int] = mapped_column(Integer, default=10)
    automation_budget_percent: Mapped[int] = mapped_column(Integer, default=50)

    # Auto-claim
    auto_claim_sol_threshold: Mapped[Decimal] = mapped_column(Amount, default=Decimal("0.01"))
    auto_claim_orb_threshold: Mapped[Decimal] = mapped_column(Amount, default=Decimal("10000"))
    auto_claim_staking_threshold: Mapped[Decimal] = mapped_column(Amount, default=Decimal("1"))

    # Auto-swap
    auto_swap_enabled: Mapped[bool] = mapped_column(Boolean, default=False)
    swap_threshold: Mapped[Decimal] = mapped_column(Amount, default=Decimal("100"))
    min_orb_price: Mapped[Decimal] = mapped_column(Amount, default=Decimal("0"))
    min_orb_to_keep: Mapped[Decimal] = mapped_column(Amount, default=Decimal("10"))
    min_swap_amount: Mapped[Decimal] = mapped_column(Amount, default=Decimal("1"))
    slippage_bps: Mapped[int] = mapped_column(Integer, default=300)

    # Auto-stake
    auto_stake_enabled: Mapped[bool] = mapped_column(Boolean, default=False)
    stake_threshold: Mapped[Decimal] = mapped_column(Amount, default=Decimal("50"))

    # Auto-transfer
    auto_transfer_enabled: Mapped[bool] = mapped_column(Boolean, default=False)
    orb_transfer_threshold: Mapped[Decimal] = mapped_column(Amount, default=Decimal("100"))
    transfer_recipient_address: Mapped[Optional[str]] = mapped_column(
        String(64), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )


class ActionRecord(Base):
    """
    Append-only ledger of executed actions

    One row per executed action, never updated.
    Amounts are base units (1e9 per SOL/ORB).
    """

    __tablename__ = "action_records"
    __table_args__ = (
        Index("ix_action_records_user_created", "platform", "platform_user_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    platform: Mapped[str] = mapped_column(String(20), nullable=False)
    platform_user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    kind: Mapped[str] = mapped_column(
        String(20), nullable=False, comment="claim_sol/claim_orb/claim_stake/swap/stake/transfer/deploy"
    )
    success: Mapped[bool] = mapped_column(Boolean, nullable=False)
    requested_amount: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    sol_amount: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    orb_amount: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    signature: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        status = "ok" if self.success else "failed"
        return f"<ActionRecord({self.kind} {status} user={self.platform_user_id})>"
