"""Shared pytest fixtures for OrderLens integration tests."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from orderlens.core.config import get_settings
from orderlens.core.database import Base
from orderlens.features.orders import models  # noqa: F401  (registers tables)


@pytest.fixture
async def session_maker():
    """Session maker over freshly created tables for integration tests.

    Creates all tables, yields the session maker, and drops them afterwards.
    Requires PostgreSQL to be running (docker-compose up -d).
    """
    settings = get_settings()
    engine = create_async_engine(settings.database_url, echo=False)

    # Create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    # Cleanup: drop all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()
