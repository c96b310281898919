"""Pytest configuration and fixtures for test suite."""

import os

# Never touch the on-disk database from tests
os.environ.setdefault("CRM_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("CRM_CREATE_TABLES_ON_STARTUP", "false")

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.db.database import init_db
from tests.factories import FakeCompanyStore


@pytest.fixture
def fake_store():
    return FakeCompanyStore()


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session
