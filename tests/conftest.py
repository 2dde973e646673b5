import os

# Must be set before `app.config` is imported
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"

from collections.abc import AsyncGenerator
from datetime import UTC, datetime

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.dependencies import get_session, verify_telegram_authentication
from app.models.schemas import Category, Transaction, TransactionType
from app.models.sql import Base
from app.services.storage import MemoryStore
from main import app

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

MOCK_USER = {"id": "12345", "first_name": "Ana", "username": "ana"}

# Mid-month, mid-day: keeps month and night-hour bucketing away from edges
NOW = datetime(2024, 3, 15, 12, 0)


@pytest.fixture(scope="function")
async def db_engine():
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
async def session(db_engine) -> AsyncGenerator[AsyncSession]:
    async_session_maker = async_sessionmaker(db_engine, expire_on_commit=False)
    async with async_session_maker() as session:
        yield session
        await session.close()


@pytest.fixture(scope="function")
async def client(session):
    app.dependency_overrides[get_session] = lambda: session
    app.dependency_overrides[verify_telegram_authentication] = lambda: MOCK_USER
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def frozen_now(mocker):
    """Pins the API clock to NOW (UTC)."""
    fixed = NOW.replace(tzinfo=UTC)
    mocked = mocker.patch("app.routers.mentor.datetime")
    mocked.now.return_value = fixed
    return fixed


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def make_tx():
    counter = iter(range(1, 10_000))

    def _make(amount, category=Category.OTHERS, type_=TransactionType.EXPENSE, date=NOW, description=""):
        return Transaction(
            id=str(next(counter)),
            description=description,
            amount=amount,
            date=date,
            category=category,
            type=type_,
        )

    return _make
