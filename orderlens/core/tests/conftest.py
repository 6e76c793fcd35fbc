"""Fixtures for the core tests: an HTTP client over the OrderLens app."""

from collections.abc import AsyncGenerator, Iterator
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from orderlens.core.database import get_db
from orderlens.main import app


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the app in-process; no server is started."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def unreachable_order_store() -> Iterator[AsyncMock]:
    """Replace get_db with a session whose first query is refused.

    asyncpg raises ConnectionRefusedError unwrapped when the pool cannot
    connect, so the mock does the same.
    """
    session = AsyncMock()
    session.execute.side_effect = ConnectionRefusedError(111, "Connection refused")

    async def _get_db() -> AsyncGenerator[AsyncMock, None]:
        yield session

    app.dependency_overrides[get_db] = _get_db
    yield session
    app.dependency_overrides.pop(get_db, None)
