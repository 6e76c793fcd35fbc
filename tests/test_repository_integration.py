"""Integration tests for OrderRepository against PostgreSQL.

Requires PostgreSQL to be running: docker-compose up -d
"""

from datetime import UTC, date, datetime
from decimal import Decimal

import pytest

from orderlens.core.config import Settings
from orderlens.features.analytics.periods import AnalyticsPeriod
from orderlens.features.analytics.service import AnalyticsService
from orderlens.features.orders.models import (
    Branch,
    Brand,
    Order,
    OrderItem,
    Product,
    ProductInventory,
)
from orderlens.features.orders.repository import OrderRepository
from orderlens.features.orders.schemas import TenantScope

MARCH = AnalyticsPeriod(date(2024, 3, 1), date(2024, 3, 31))
BRANCH = TenantScope.for_branch("branch-1")
BRAND = TenantScope.for_brand("brand-1")


def at(month: int, d: int, hour: int = 12) -> datetime:
    return datetime(2024, month, d, hour, tzinfo=UTC)


@pytest.fixture
def settings() -> Settings:
    """UTC settings with small batches so paging is exercised."""
    return Settings(analytics_timezone="UTC", analytics_fetch_batch_size=2)


@pytest.fixture
async def seeded(session_maker):
    """One brand with two branches, a catalog and a handful of orders."""
    async with session_maker() as session:
        session.add(Brand(id="brand-1", name="Bean There"))
        session.add(Brand(id="brand-2", name="Other"))
        await session.flush()
        session.add_all(
            [
                Branch(id="branch-1", brand_id="brand-1", name="Hongdae"),
                Branch(id="branch-2", brand_id="brand-1", name="Gangnam"),
                Branch(id="branch-9", brand_id="brand-2", name="Elsewhere"),
            ]
        )
        await session.flush()
        session.add_all(
            [
                Product(id="p1", branch_id="branch-1", name="Americano", price=Decimal("4.00")),
                Product(id="p2", branch_id="branch-1", name="Bagel", price=Decimal("3.00")),
            ]
        )
        await session.flush()
        session.add_all(
            [
                ProductInventory(product_id="p1", branch_id="branch-1", qty_available=10),
                ProductInventory(product_id="p1", branch_id="branch-2", qty_available=5),
                ProductInventory(product_id="p2", branch_id="branch-1", qty_available=8),
            ]
        )
        orders = [
            ("o1", "branch-1", "010-1", "COMPLETED", "8.00", at(2, 10)),
            ("o2", "branch-1", "010-1", "COMPLETED", "7.00", at(3, 2)),
            ("o3", "branch-1", "010-2", "CANCELLED", "3.00", at(3, 3)),
            ("o4", "branch-1", None, "COMPLETED", "4.00", at(3, 4)),
            ("o5", "branch-2", "010-3", "COMPLETED", "8.00", at(3, 4)),
            ("o6", "branch-9", "010-4", "COMPLETED", "99.00", at(3, 5)),
        ]
        for order_id, branch_id, phone, status, total, created_at in orders:
            brand_id = "brand-2" if branch_id == "branch-9" else "brand-1"
            session.add(
                Order(
                    id=order_id,
                    branch_id=branch_id,
                    brand_id=brand_id,
                    customer_phone=phone,
                    status=status,
                    total_amount=Decimal(total),
                    created_at=created_at,
                )
            )
        await session.flush()
        items = [
            ("o1", "p1", "Americano", 2, "4.00"),
            ("o2", "p1", "Drip", 1, "4.00"),
            ("o2", "p2", "Bagel", 1, "3.00"),
            ("o4", None, None, 1, "4.00"),
            ("o5", "p1", "Americano", 2, "4.00"),
        ]
        session.add_all(
            OrderItem(
                order_id=order_id,
                product_id=product_id,
                product_name_snapshot=name,
                qty=qty,
                unit_price_snapshot=Decimal(price),
            )
            for order_id, product_id, name, qty, price in items
        )
        await session.commit()
    return session_maker


@pytest.mark.integration
@pytest.mark.asyncio
class TestOrderRepositoryIntegration:
    """OrderRepository queries against a real database."""

    async def test_fetch_orders_scoped_and_paged(self, seeded, settings) -> None:
        """Branch scope returns only the branch's March orders, in time order."""
        repo = OrderRepository(seeded, settings)

        records = await repo.fetch_orders(BRANCH, MARCH)

        assert [r.id for r in records] == ["o2", "o3", "o4"]
        assert records[2].customer_phone is None

    async def test_fetch_orders_brand_scope(self, seeded, settings) -> None:
        """Brand scope spans its branches and nothing else."""
        repo = OrderRepository(seeded, settings)

        records = await repo.fetch_orders(BRAND, MARCH)

        assert {r.branch_id for r in records} == {"branch-1", "branch-2"}
        assert "o6" not in {r.id for r in records}

    async def test_fetch_order_items(self, seeded, settings) -> None:
        """Items keep the requested order sequence; deleted products get placeholders."""
        repo = OrderRepository(seeded, settings)

        items = await repo.fetch_order_items(BRANCH, ["o4", "o2", "o5"])

        assert [i.order_id for i in items] == ["o4", "o2", "o2"]
        assert items[0].product_id == "unknown"

    async def test_first_order_dates(self, seeded, settings) -> None:
        """Cancelled orders do not make a customer."""
        repo = OrderRepository(seeded, settings)

        first = await repo.fetch_customer_first_order_dates(BRANCH)

        assert set(first) == {"010-1"}
        assert first["010-1"] == at(2, 10)

    async def test_lookups(self, seeded, settings) -> None:
        """Stock, branch and product lookups follow the scope."""
        repo = OrderRepository(seeded, settings)

        assert await repo.fetch_stock_levels(BRAND, ["p1", "p2"]) == {"p1": 15.0, "p2": 8.0}
        assert await repo.fetch_stock_levels(BRANCH, ["p1"]) == {"p1": 10.0}
        assert await repo.fetch_branch_names(BRAND) == {
            "branch-1": "Hongdae",
            "branch-2": "Gangnam",
        }
        assert await repo.fetch_product_names(["p1"]) == {"p1": "Americano"}

    async def test_service_end_to_end(self, seeded, settings) -> None:
        """The service computes product metrics from database rows."""
        service = AnalyticsService(OrderRepository(seeded, settings), settings)

        result = await service.products(
            BRANCH, "2024-03-01", "2024-03-31", as_of=date(2024, 3, 31)
        )

        names = [p.product_name for p in result.data.top_products]
        assert names == ["Americano", "Unknown Product", "Bagel"]
        assert result.data.sales_by_product[0].revenue == 4.0
