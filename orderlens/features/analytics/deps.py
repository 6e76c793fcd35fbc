"""FastAPI dependencies for the analytics routes."""

from datetime import date, datetime

from fastapi import Depends

from orderlens.core.config import get_settings
from orderlens.core.database import get_session_maker
from orderlens.features.analytics.service import AnalyticsService
from orderlens.features.analytics.sources import OrderRowSource
from orderlens.features.orders.repository import OrderRepository


def get_row_source() -> OrderRowSource:
    """Database-backed row source."""
    return OrderRepository(get_session_maker())


def get_as_of() -> date:
    """Today in the analytics timezone; anchor for default date ranges."""
    return datetime.now(get_settings().tzinfo).date()


def get_analytics_service(
    source: OrderRowSource = Depends(get_row_source),
) -> AnalyticsService:
    """Analytics service bound to the request's row source."""
    return AnalyticsService(source)
