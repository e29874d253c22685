"""Pytest configuration and fixtures for backend tests."""

from collections.abc import AsyncGenerator
from datetime import date
from decimal import Decimal
from typing import Any

import pytest
import pytest_asyncio
from fakeredis import aioredis as fakeredis
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from ispdesk.api.deps import get_today
from ispdesk.core.limiter import limiter
from ispdesk.core.public_id import CITY_PREFIX, CUSTOMER_PREFIX, generate_public_id
from ispdesk.db.base import Base
from ispdesk.db.session import get_db
from ispdesk.main import app

# Import all models to ensure they're registered with Base.metadata
from ispdesk.models import City, Customer, Expense, Income  # noqa: F401

# Test database URL (using in-memory SQLite for tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Calendar day the API sees as "today" in tests
TODAY = date(2024, 6, 15)


@pytest_asyncio.fixture(scope="function")
async def test_engine() -> AsyncGenerator[Any, None]:
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
    )

    # Enable foreign keys for SQLite so city deletes cascade
    @event.listens_for(engine.sync_engine, "connect")
    def set_sqlite_pragma(dbapi_connection: Any, _connection_record: Any) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_session(test_engine: Any) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async_session = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture(scope="function")
async def test_redis() -> AsyncGenerator[Any, None]:
    """Create fake Redis client for testing."""
    redis_client = fakeredis.FakeRedis(decode_responses=True)
    yield redis_client
    await redis_client.flushall()
    await redis_client.aclose()


@pytest.fixture
def use_test_redis(test_redis: Any, monkeypatch: pytest.MonkeyPatch) -> Any:
    """Point every Redis consumer at the fake client."""

    async def override_get_redis() -> Any:
        return test_redis

    monkeypatch.setattr("ispdesk.core.cache.get_redis", override_get_redis)
    monkeypatch.setattr("ispdesk.api.health.get_redis", override_get_redis)
    return test_redis


@pytest.fixture(autouse=True)
def disable_rate_limits() -> Any:
    """Rate limits are exercised separately; keep them out of API tests."""
    limiter.enabled = False
    yield
    limiter.enabled = True


@pytest_asyncio.fixture(scope="function")
async def test_client(
    test_session: AsyncSession,
    use_test_redis: Any,
) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client with dependency overrides."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield test_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_today] = lambda: TODAY

    transport = ASGITransport(app=app)  # type: ignore[arg-type]
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def create_test_city(test_session: AsyncSession) -> Any:
    """Factory fixture to create test cities."""

    async def _create_city(**kwargs: Any) -> City:
        city_data = {
            "id": generate_public_id(CITY_PREFIX),
            "name": "Riyadh",
        }
        city_data.update(kwargs)
        city = City(**city_data)
        test_session.add(city)
        await test_session.commit()
        await test_session.refresh(city)
        return city

    return _create_city


@pytest_asyncio.fixture
async def create_test_customer(test_session: AsyncSession) -> Any:
    """Factory fixture to create test customers."""

    async def _create_customer(city_id: str, **kwargs: Any) -> Customer:
        customer_data = {
            "id": generate_public_id(CUSTOMER_PREFIX),
            "city_id": city_id,
            "name": "Test Customer",
            "phone": "0500000000",
            "subscription_value": Decimal("100"),
            "start_date": date(2024, 1, 1),
            "monthly_payments": {},
            "partial_payments": {},
            "additional_routers": [],
        }
        customer_data.update(kwargs)
        customer = Customer(**customer_data)
        test_session.add(customer)
        await test_session.commit()
        await test_session.refresh(customer)
        return customer

    return _create_customer
