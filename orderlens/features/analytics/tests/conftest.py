"""Test fixtures for analytics module."""

from collections.abc import AsyncGenerator, Callable
from datetime import UTC, date, datetime
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

from orderlens.core.config import Settings
from orderlens.features.analytics.deps import get_as_of, get_row_source
from orderlens.features.analytics.periods import AnalyticsPeriod
from orderlens.features.orders.schemas import (
    OrderItemRecord,
    OrderRecord,
    OrderStatus,
    TenantScope,
)
from orderlens.main import app

AS_OF = date(2024, 3, 31)


# =============================================================================
# In-memory row source
# =============================================================================


class InMemoryRowSource:
    """OrderRowSource over plain lists, recording every call it receives."""

    def __init__(self) -> None:
        self.orders: list[OrderRecord] = []
        self.items: list[OrderItemRecord] = []
        self.brand_branches: dict[str, list[str]] = {}
        self.branch_names: dict[str, str] = {}
        self.product_names: dict[str, str] = {}
        self.stock: dict[str, float] = {}
        self.first_order_dates: dict[str, datetime] | None = None
        self.calls: list[tuple[str, Any]] = []

    def _in_scope(self, scope: TenantScope, order: OrderRecord) -> bool:
        if scope.is_brand:
            return order.branch_id in self.brand_branches.get(scope.scope_id, [])
        return order.branch_id == scope.scope_id

    async def fetch_orders(self, scope: TenantScope, period: AnalyticsPeriod) -> list[OrderRecord]:
        self.calls.append(("fetch_orders", period))
        start, end = period.bounds(UTC)
        return sorted(
            (o for o in self.orders if self._in_scope(scope, o) and start <= o.created_at < end),
            key=lambda o: (o.created_at, o.id),
        )

    async def fetch_order_history(self, scope: TenantScope, until: date) -> list[OrderRecord]:
        self.calls.append(("fetch_order_history", until))
        return sorted(
            (
                o
                for o in self.orders
                if self._in_scope(scope, o) and o.created_at.astimezone(UTC).date() <= until
            ),
            key=lambda o: (o.created_at, o.id),
        )

    async def fetch_order_items(
        self, scope: TenantScope, order_ids: list[str]
    ) -> list[OrderItemRecord]:
        self.calls.append(("fetch_order_items", list(order_ids)))
        wanted = set(order_ids)
        return [i for i in self.items if i.order_id in wanted]

    async def fetch_customer_first_order_dates(self, scope: TenantScope) -> dict[str, datetime]:
        self.calls.append(("fetch_customer_first_order_dates", scope))
        if self.first_order_dates is not None:
            return dict(self.first_order_dates)
        first: dict[str, datetime] = {}
        for o in self.orders:
            if not self._in_scope(scope, o) or not o.counts_as_revenue or not o.customer_phone:
                continue
            if o.customer_phone not in first or o.created_at < first[o.customer_phone]:
                first[o.customer_phone] = o.created_at
        return first

    async def fetch_stock_levels(
        self, scope: TenantScope, product_ids: list[str]
    ) -> dict[str, float]:
        self.calls.append(("fetch_stock_levels", list(product_ids)))
        return {pid: qty for pid, qty in self.stock.items() if pid in product_ids}

    async def fetch_branch_names(self, scope: TenantScope) -> dict[str, str]:
        self.calls.append(("fetch_branch_names", scope))
        return dict(self.branch_names)

    async def fetch_product_names(self, product_ids: list[str]) -> dict[str, str]:
        self.calls.append(("fetch_product_names", list(product_ids)))
        return {pid: n for pid, n in self.product_names.items() if pid in product_ids}


# =============================================================================
# Record factories
# =============================================================================


@pytest.fixture
def make_order() -> Callable[..., OrderRecord]:
    """Factory for OrderRecord with sensible defaults."""

    def _make(
        order_id: str,
        created_at: datetime,
        *,
        branch_id: str = "branch-1",
        phone: str | None = "010-0000-0001",
        status: OrderStatus = OrderStatus.COMPLETED,
        total: float = 100.0,
    ) -> OrderRecord:
        return OrderRecord(
            id=order_id,
            branch_id=branch_id,
            customer_phone=phone,
            created_at=created_at,
            status=status,
            total_amount=total,
        )

    return _make


@pytest.fixture
def make_item() -> Callable[..., OrderItemRecord]:
    """Factory for OrderItemRecord with sensible defaults."""

    def _make(
        order_id: str,
        product_id: str,
        *,
        quantity: int = 1,
        unit_price: float = 10.0,
        name: str | None = None,
    ) -> OrderItemRecord:
        return OrderItemRecord(
            order_id=order_id,
            product_id=product_id,
            product_name=name or f"Product {product_id}",
            quantity=quantity,
            unit_price=unit_price,
        )

    return _make


@pytest.fixture
def utc_settings() -> Settings:
    """Settings bucketing by UTC."""
    return Settings(analytics_timezone="UTC")


@pytest.fixture
def march() -> AnalyticsPeriod:
    """March 2024 (31 days)."""
    return AnalyticsPeriod(start_date=date(2024, 3, 1), end_date=date(2024, 3, 31))


@pytest.fixture
def row_source() -> InMemoryRowSource:
    """Empty in-memory row source."""
    return InMemoryRowSource()


@pytest.fixture
async def analytics_client(row_source: InMemoryRowSource) -> AsyncGenerator[AsyncClient, None]:
    """Test client with the row source and clock overridden."""
    app.dependency_overrides[get_row_source] = lambda: row_source
    app.dependency_overrides[get_as_of] = lambda: AS_OF

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
