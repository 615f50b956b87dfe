"""
Memory Locks API — Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures: an in-memory SQLite database with the real
       schema, service-level sessions and an HTTP client bound to the app.

Fixture Hierarchy (all function-scoped, fresh database per test):
    engine
    └── session_factory
        ├── db_session: AsyncSession for service tests
        └── test_client: httpx AsyncClient with get_db_session overridden

SQLite notes:
    - StaticPool keeps the single in-memory connection alive across sessions
    - PRAGMA foreign_keys=ON so ON DELETE CASCADE / SET NULL behave like PostgreSQL
    - pysqlite's own BEGIN handling is switched off and BEGIN emitted
      explicitly, otherwise SAVEPOINTs (begin_nested) do not work
"""

import os

# Settings are read at import time: configure the environment first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["WORKER_API_KEY"] = "test-worker-key"
os.environ["HASHIDS_SALT"] = "test-salt"
os.environ["HASHIDS_MIN_LENGTH"] = "6"
os.environ["CORE_API_BASE_URL"] = ""
os.environ["CORE_API_SHARED_SECRET"] = ""
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from memorylocks.database import Base, get_db_session
from memorylocks.middleware.rate_limit import rate_limiter


API_KEY = "test-worker-key"


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    """
    Session for service tests. Services only flush; nothing is committed,
    and the whole database is discarded with the engine.
    """
    async with session_factory() as session:
        yield session


# ══════════════════════════════════════════════════════════════════════════
# HTTP Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture(autouse=True)
def reset_rate_limiter():
    rate_limiter.reset()
    yield
    rate_limiter.reset()


@pytest_asyncio.fixture
async def test_client(session_factory):
    """
    HTTPX AsyncClient talking to the app over ASGI, sending the worker key.

    Usage:
        async def test_get_lock(test_client):
            response = await test_client.get("/locks/1")
    """
    from memorylocks.main import app

    async def override_get_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_get_db_session
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"Worker-API-Key": API_KEY},
    ) as client:
        yield client
    app.dependency_overrides.clear()
