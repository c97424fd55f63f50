"""
Pytest configuration and fixtures for ORB Automation Bot tests
"""

from datetime import datetime, timedelta, UTC
from decimal import Decimal
from typing import AsyncGenerator

import pytest
from solders.keypair import Keypair
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from orbbot.core.enums import Platform
from orbbot.database.models import Base
from orbbot.services.automation.schemas import AutomationSettings, EnrolledUser


# Test database URL (in-memory SQLite for testing)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"



@pytest.fixture(scope="function")
async def test_db_engine():
    """
    Create test database engine
    """
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture(scope="function")
def session_maker(test_db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture(scope="function")
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """
    Create test database session
    """
    async with session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture
def wallet() -> Keypair:
    return Keypair()


@pytest.fixture
def enrolled_user(wallet) -> EnrolledUser:
    return EnrolledUser(
        platform=Platform.TELEGRAM,
        user_id="111222333",
        public_key=str(wallet.pubkey()),
    )


@pytest.fixture
def recipient() -> str:
    return str(Keypair().pubkey())


@pytest.fixture
def swap_settings() -> AutomationSettings:
    """Swap enabled, claims disabled, default swap limits"""
    return AutomationSettings(
        auto_claim_sol_threshold=Decimal("0"),
        auto_claim_orb_threshold=Decimal("0"),
        auto_claim_staking_threshold=Decimal("0"),
        auto_swap_enabled=True,
        swap_threshold=Decimal("100"),
        min_orb_to_keep=Decimal("10"),
        min_swap_amount=Decimal("1"),
        min_orb_price=Decimal("0"),
    )


class FixedClock:
    """Manually advanced clock for time-dependent tests"""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()
