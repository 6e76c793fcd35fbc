"""Async SQLAlchemy 2.0 access to the order store.

OrderLens only reads: analytics queries go through OrderRepository with the
shared session maker, and the readiness probe uses get_db.
"""

from collections.abc import AsyncGenerator
from functools import lru_cache

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from orderlens.core.config import get_settings


class Base(DeclarativeBase):
    """Declarative base for the order-store tables."""

    pass


@lru_cache
def get_engine() -> AsyncEngine:
    """Engine for DATABASE_URL, created on first use and disposed at shutdown."""
    settings = get_settings()
    return create_async_engine(
        settings.database_url,
        echo=settings.debug,
        pool_pre_ping=True,
    )


def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """Session factory on the shared engine; objects stay usable after commit."""
    return async_sessionmaker(
        get_engine(),
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency yielding a session on the order store.

    Nothing is written, so the transaction is rolled back when the request
    ends instead of being committed.
    """
    async with get_session_maker()() as session:
        try:
            yield session
        finally:
            await session.rollback()
