"""
Centralized Test Configuration.
"""

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from backend.app.main import app
from backend.app.core.config import settings
from backend.app.db.session import get_db, get_session_factory, Base
from backend.app.domain.ledger.balance_mutator import BalanceMutator
from backend.app.domain.ledger.ledger_store import LedgerStore
from backend.app.domain.ledger.redemption_coordinator import RedemptionCoordinator
from backend.app.models.inventory_item import InventoryItem
from backend.app.services.coupon_queries import CouponQueryService

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


def make_token(claims, expires_in=timedelta(minutes=30)):
    """Sign a bearer token the way the accounts service does."""
    payload = {**claims, "exp": datetime.now(timezone.utc) + expires_in}
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest.fixture(autouse=True)
def fast_retries(monkeypatch):
    """No real backoff sleeps in tests."""
    monkeypatch.setattr(settings, "db_retry_base_delay", 0.0)


@pytest.fixture
async def engine():
    """Fresh in-memory database per test."""
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(test_engine.sync_engine, "connect", set_sqlite_pragma)
    
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    
    yield test_engine
    
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )


@pytest.fixture
def apply_overrides(session_factory):
    """Point the app's DB dependencies at the test database."""
    async def override_get_db():
        async with session_factory() as session:
            yield session
    
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    yield
    app.dependency_overrides = {}


@pytest.fixture
async def client(apply_overrides):
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# Shared session for fixture data creation
@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def store(session_factory):
    return LedgerStore(session_factory)


@pytest.fixture
def mutator(store):
    return BalanceMutator(store)


@pytest.fixture
def coordinator(store):
    return RedemptionCoordinator(store)


@pytest.fixture
def queries(store):
    return CouponQueryService(store)


@pytest.fixture
def token_factory():
    return make_token


@pytest.fixture
def admin_headers():
    token = make_token({"sub": "admin", "user_id": 1, "role": "ADMIN"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_headers():
    token = make_token({"sub": "resident", "user_id": 2, "role": "USER"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_item(session_factory):
    """Insert an inventory item directly."""
    async def _make_item(name="Reusable Bag", cost=10, stock=5, is_active=True, description=None):
        async with session_factory() as session:
            item = InventoryItem(
                name=name, description=description, cost=cost, stock=stock, is_active=is_active
            )
            session.add(item)
            await session.commit()
            return item
    return _make_item
