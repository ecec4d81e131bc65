"""
Test fixtures for the Due Ledger test suite.

This module provides shared fixtures used across all test files:

  - db_engine / db_session: Fresh in-memory SQLite database for each test
  - create_txn: Factory that inserts a transaction through the service layer
  - client: Async HTTP test client (unauthenticated)
  - authenticated_client: Test client logged in with the default passkey

Key design decisions:
  - In-memory SQLite (sqlite+aiosqlite://) is used for speed and isolation.
    Each test gets a completely fresh database — no state leaks between tests.
  - We override FastAPI's get_db dependency to inject our test engine,
    so the application code works exactly as it does in production.
  - authenticated_client logs in through the real /auth/login endpoint.
"""

import os
from datetime import date

# Settings() requires SECRET_KEY at import time
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("DEFAULT_PASSKEY", "1234")

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from app.database import Base, get_db
from app.main import app
from app.models.transaction import TransactionType
from app.services import transaction_service


# In-memory SQLite for fast, isolated tests
TEST_DATABASE_URL = "sqlite+aiosqlite://"

DEFAULT_PASSKEY = "1234"


@pytest_asyncio.fixture
async def db_engine():
    """Create a fresh async engine with all tables for each test."""
    engine = create_async_engine(TEST_DATABASE_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    """Provide an async session bound to the test engine."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with async_session() as session:
        yield session


@pytest_asyncio.fixture
async def create_txn(db_session):
    """
    Factory for transactions created through the service layer.

    Usage:
        t1 = await create_txn(amount=1000, due_date=date(2024, 1, 1))
        t2 = await create_txn(
            txn_type=TransactionType.WITHDRAW, amount=400,
            relative_to=t1, offset=5,
        )
    """
    async def _create(
        amount: int = 1000,
        txn_type: TransactionType = TransactionType.DEPOSIT,
        due_date: date | None = None,
        relative_to=None,
        offset: int | None = None,
        party: str = "Test Party",
        description: str = "",
        include_in_balance: bool = True,
    ):
        return await transaction_service.create_transaction(
            db_session,
            txn_type=txn_type,
            amount=amount,
            party=party,
            description=description,
            due_date=due_date,
            relative_due_date_transaction_id=relative_to.id if relative_to else None,
            relative_due_date_offset_days=offset,
            include_in_balance=include_in_balance,
        )

    return _create


@pytest_asyncio.fixture
async def client(db_engine):
    """
    Async HTTP test client with the test database injected.

    This overrides the get_db dependency so all requests hit the
    in-memory test database instead of the real one.
    """
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async def override_get_db():
        async with async_session() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def authenticated_client(client):
    """
    Test client logged in with the default passkey.

    Logs in via the real login endpoint, then sets the Authorization
    header on the client for all subsequent requests.
    """
    response = await client.post("/auth/login", json={"passkey": DEFAULT_PASSKEY})
    assert response.status_code == 200, f"Login failed: {response.text}"
    token = response.json()["token"]
    client.headers["Authorization"] = f"Bearer {token}"
    return client
