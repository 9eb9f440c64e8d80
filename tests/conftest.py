"""Pytest configuration and fixtures."""

import os
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Set test environment BEFORE importing servicehub modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test_servicehub.db"
os.environ["REDIS_URL"] = "redis://localhost:6379"
os.environ["GOOGLE_MAPS_API_KEY"] = "test_key"
os.environ["ON_DUPLICATE_CHECK_IN"] = "reject"


@pytest.fixture
def anyio_backend():
    return "asyncio"


# Track if DB is initialized
_db_initialized = False


async def _ensure_db():
    """Ensure database is initialized."""
    global _db_initialized
    if not _db_initialized:
        from sqlmodel import SQLModel
        from servicehub.db.session import engine
        # Import models to register them with SQLModel metadata
        from servicehub.db import models  # noqa: F401

        # Remove existing test database
        test_db = "./test_servicehub.db"
        if os.path.exists(test_db):
            os.remove(test_db)

        # Create all tables
        async with engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)

        _db_initialized = True


@pytest_asyncio.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database."""
    await _ensure_db()

    from servicehub.main import app

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as test_client:
        yield test_client


@pytest_asyncio.fixture
async def db_session():
    """Session on the test database, outside of any request."""
    await _ensure_db()

    from sqlmodel.ext.asyncio.session import AsyncSession
    from servicehub.db.session import engine

    async with AsyncSession(engine, expire_on_commit=False) as session:
        yield session
