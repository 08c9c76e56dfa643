"""Pytest configuration and shared fixtures for all tests."""

import os
import sys
import tempfile
from pathlib import Path

# Settings are read at import time, so the environment must be prepared first
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="brokerdesk-test-logs-"))
os.environ.setdefault("SECRET_KEY", "test_secret_key_for_testing_only")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("PAYMENT_WEBHOOK_SECRET", "test_webhook_secret")

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest
import pytest_asyncio
from decimal import Decimal
from unittest.mock import AsyncMock

from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import sessionmaker

from brokerdesk.core.security import USER_TYPE_ADMIN, USER_TYPE_CLIENT, create_access_token, get_password_hash
from brokerdesk.crud import admin_user as crud_admin_user
from brokerdesk.crud import deposit as crud_deposit
from brokerdesk.crud import trading_account as crud_trading_account
from brokerdesk.crud import user as crud_user
from brokerdesk.database.session import build_engine, create_all_tables, get_db
from brokerdesk.dependencies.redis_client import get_optional_redis_client, get_redis_client
from brokerdesk.services.admin_scope import AdminRole

TEST_PASSWORD = "password123"
_TEST_PASSWORD_HASH = get_password_hash(TEST_PASSWORD)


@pytest_asyncio.fixture
async def engine(tmp_path):
    """File-backed SQLite engine with working SAVEPOINT support."""
    test_engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'brokerdesk.db'}")

    @event.listens_for(test_engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(test_engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    await create_all_tables(bind=test_engine)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def redis_client():
    """AsyncMock Redis backed by a dict, enough for refresh tokens and publish."""
    store = {}

    async def _set(key, value, ex=None):
        store[key] = value
        return True

    async def _get(key):
        return store.get(key)

    async def _delete(*keys):
        return sum(1 for key in keys if store.pop(key, None) is not None)

    client = AsyncMock()
    client.set = AsyncMock(side_effect=_set)
    client.get = AsyncMock(side_effect=_get)
    client.delete = AsyncMock(side_effect=_delete)
    client.publish = AsyncMock(return_value=1)
    client.store = store
    return client


@pytest.fixture
def make_user(db):
    async def _make(
        email="client@example.com",
        full_name="Test Client",
        country="Kenya",
        referrer=None,
        referral_status=None,
    ):
        return await crud_user.create_user(
            db,
            email=email,
            hashed_password=_TEST_PASSWORD_HASH,
            full_name=full_name,
            country=country,
            referred_by_id=referrer.id if referrer else None,
            referral_status=referral_status,
        )
    return _make


@pytest.fixture
def make_account(db):
    async def _make(user, currency="USD"):
        return await crud_trading_account.create_account(
            db,
            user_id=user.id,
            account_type="Live",
            group_name="Standard",
            leverage=100,
            currency=currency,
        )
    return _make


@pytest.fixture
def make_deposit(db):
    async def _make(user, account, amount="1000.00", merchant="Bank Transfer", transaction_id=None):
        return await crud_deposit.create_deposit(
            db,
            user_id=user.id,
            account_id=account.id,
            merchant=merchant,
            amount=Decimal(amount),
            currency=account.currency,
            transaction_id=transaction_id,
        )
    return _make


@pytest.fixture
def make_admin(db):
    async def _make(username="superadmin", role=AdminRole.SUPER_ADMIN.value, countries=()):
        admin = await crud_admin_user.create_admin(
            db,
            username=username,
            email=f"{username}@brokerdesk.test",
            hashed_password=_TEST_PASSWORD_HASH,
            full_name=username.title(),
            role=role,
        )
        for country in countries:
            await crud_admin_user.add_country_assignment(db, admin.id, country)
        return admin
    return _make


def bearer(subject_id: int, user_type: str = USER_TYPE_CLIENT) -> dict:
    token = create_access_token({"sub": str(subject_id), "user_type": user_type})
    return {"Authorization": f"Bearer {token}"}


def admin_bearer(admin_id: int) -> dict:
    return bearer(admin_id, USER_TYPE_ADMIN)


@pytest_asyncio.fixture
async def client(session_factory, redis_client):
    """HTTP client against the app with the test database and Redis mock wired in."""
    from brokerdesk.main import app

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis_client] = lambda: redis_client
    app.dependency_overrides[get_optional_redis_client] = lambda: redis_client

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http_client:
        yield http_client

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    return bearer


@pytest.fixture
def admin_headers():
    return admin_bearer
