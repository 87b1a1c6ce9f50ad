"""
Test fixtures for fenceline tests.

Provides:
- In-memory SQLite database for isolated testing (portable spatial backend)
- Async test client with proper session management
- Test data factories for merchants, rules, fences and orders
"""
# IMPORTANT: Set environment variables BEFORE any other imports
import os

# DB settings required by Settings validation (tests use SQLite in-memory, these are not actually used)
os.environ.setdefault("DB_USER", "test")
os.environ.setdefault("DB_PASSWORD", "test")
os.environ.setdefault("DB_NAME", "test")
# Development mode for tests (disables ALLOWED_ORIGINS requirement)
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from decimal import Decimal
from typing import AsyncGenerator, Dict, Any

from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncSession,
    async_sessionmaker,
)
from sqlalchemy.pool import StaticPool

from fenceline.app.core.base import Base
from fenceline.app.main import app
from fenceline.app.api.deps import get_session, get_cache
from fenceline.app.services.fences import FenceService
from fenceline.app.services.merchants import MerchantService
from fenceline.app.services.orders import OrderService
from fenceline.app.services.rules import RuleService

MERCHANT_ID = "10001"
OTHER_MERCHANT_ID = "20002"

# Beijing, Tiananmen
CENTER = [116.397, 39.909]

# Square of roughly 8.5 km x 11 km around CENTER
CITY_SQUARE = [
    [116.35, 39.86],
    [116.45, 39.86],
    [116.45, 39.96],
    [116.35, 39.96],
]

# Test database URL - SQLite in-memory
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# Create test engine with StaticPool for in-memory SQLite
test_engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
    echo=False,
)

TestSessionLocal = async_sessionmaker(
    bind=test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


def merchant_headers(merchant_id: str = MERCHANT_ID) -> Dict[str, str]:
    return {"X-Merchant-Id": merchant_id}


class MockCacheService:
    """Mock Redis cache for testing without actual Redis."""

    def __init__(self):
        self._cache = {}

    async def get(self, key: str):
        return self._cache.get(key)

    async def set(self, key: str, value, ttl: int = 300):
        self._cache[key] = value

    async def delete(self, key: str):
        self._cache.pop(key, None)

    async def get_rules(self):
        return self._cache.get("delivery_rules:all")

    async def set_rules(self, rules):
        self._cache["delivery_rules:all"] = rules

    async def invalidate_rules(self):
        self._cache.pop("delivery_rules:all", None)


@pytest.fixture(scope="function")
async def test_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Create a fresh database session for each test.
    Creates all tables before and drops after each test.
    """
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def mock_cache() -> MockCacheService:
    """Provide mock cache service for testing."""
    return MockCacheService()


@pytest.fixture
async def client(
    test_session: AsyncSession,
    mock_cache: MockCacheService,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Async HTTP client for testing API endpoints.
    Overrides database and cache dependencies.

    Each request gets its own session so API calls never share a
    transaction with the fixtures' session.
    """
    async def override_get_session():
        async with TestSessionLocal() as session:
            yield session

    async def override_get_cache():
        yield mock_cache

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_cache] = override_get_cache

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


# --- Test Data Factories ---

@pytest.fixture
async def test_merchant(test_session: AsyncSession) -> Dict[str, Any]:
    """Merchant with a shop location at CENTER."""
    config = await MerchantService(test_session).register_merchant(MERCHANT_ID, "Test Shop", CENTER)
    await test_session.commit()
    return config


@pytest.fixture
async def other_merchant(test_session: AsyncSession) -> Dict[str, Any]:
    """Second tenant, without a shop location."""
    config = await MerchantService(test_session).register_merchant(OTHER_MERCHANT_ID, "Other Shop")
    await test_session.commit()
    return config


@pytest.fixture
async def test_rule(test_session: AsyncSession) -> Dict[str, Any]:
    rule = await RuleService(test_session).create_rule("Same day", 1)
    await test_session.commit()
    return rule


@pytest.fixture
async def second_rule(test_session: AsyncSession) -> Dict[str, Any]:
    rule = await RuleService(test_session).create_rule("Next day", 2)
    await test_session.commit()
    return rule


@pytest.fixture
async def circle_fence(
    test_session: AsyncSession,
    test_merchant: Dict[str, Any],
    test_rule: Dict[str, Any],
) -> Dict[str, Any]:
    """1 km circle around CENTER."""
    fence = await FenceService(test_session).create_fence(MERCHANT_ID, {
        "fence_name": "Inner circle",
        "fence_desc": "Within one kilometre",
        "rule_id": test_rule["id"],
        "shape_type": "circle",
        "coordinates": [CENTER],
        "radius": 1000,
    })
    await test_session.commit()
    return fence


@pytest.fixture
async def polygon_fence(
    test_session: AsyncSession,
    test_merchant: Dict[str, Any],
    second_rule: Dict[str, Any],
) -> Dict[str, Any]:
    fence = await FenceService(test_session).create_fence(MERCHANT_ID, {
        "fence_name": "City square",
        "fence_desc": None,
        "rule_id": second_rule["id"],
        "shape_type": "polygon",
        "coordinates": CITY_SQUARE,
    })
    await test_session.commit()
    return fence


@pytest.fixture
async def test_order(
    test_session: AsyncSession,
    circle_fence: Dict[str, Any],
) -> Dict[str, Any]:
    """Pending order inside the circle fence."""
    order = await OrderService(test_session).create_order(
        merchant_id=MERCHANT_ID,
        user_id="user-1",
        amount=Decimal("99.50"),
        recipient_name="Li Lei",
        recipient_address="1 Chang'an Avenue",
        recipient_coords=[116.3975, 39.9092],
    )
    await test_session.commit()
    return order
