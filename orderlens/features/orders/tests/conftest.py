"""Test fixtures for the orders module."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from orderlens.core.config import Settings


@pytest.fixture
def mock_session() -> AsyncMock:
    """Async session mock; tests set execute.side_effect / return_value."""
    session = AsyncMock()
    session.execute = AsyncMock()
    return session


@pytest.fixture
def mock_session_maker(mock_session: AsyncMock) -> MagicMock:
    """Session maker whose sessions are all `mock_session`."""
    maker = MagicMock()
    maker.return_value.__aenter__ = AsyncMock(return_value=mock_session)
    maker.return_value.__aexit__ = AsyncMock(return_value=False)
    return maker


@pytest.fixture
def small_batches() -> Settings:
    """Settings with tiny fetch batches and row cap."""
    return Settings(
        analytics_timezone="UTC",
        analytics_fetch_batch_size=2,
        analytics_max_rows=3,
    )
