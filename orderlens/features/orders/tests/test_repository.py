"""Unit tests for OrderRepository (mocked sessions, no database)."""

from datetime import UTC, date, datetime
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from orderlens.core.exceptions import DatabaseError, RowLimitExceededError
from orderlens.features.analytics.periods import AnalyticsPeriod
from orderlens.features.orders.models import Order, OrderItem
from orderlens.features.orders.repository import OrderRepository, to_item_record
from orderlens.features.orders.schemas import (
    UNKNOWN_PRODUCT_ID,
    UNKNOWN_PRODUCT_NAME,
    OrderStatus,
    TenantScope,
)

BRANCH = TenantScope.for_branch("branch-1")
MARCH = AnalyticsPeriod(date(2024, 3, 1), date(2024, 3, 31))


def orm_order(order_id: str, minute: int, phone: str | None = "010-1") -> Order:
    return Order(
        id=order_id,
        branch_id="branch-1",
        brand_id="brand-1",
        customer_phone=phone,
        status="COMPLETED",
        total_amount=Decimal("12.50"),
        created_at=datetime(2024, 3, 5, 12, minute, tzinfo=UTC),
    )


def orm_item(order_id: str, product_id: str | None, name: str | None = "Latte") -> OrderItem:
    return OrderItem(
        order_id=order_id,
        product_id=product_id,
        product_name_snapshot=name,
        qty=2,
        unit_price_snapshot=Decimal("4.50"),
    )


def scalars_result(rows: list) -> MagicMock:
    result = MagicMock()
    result.scalars.return_value.all.return_value = rows
    return result


def rows_result(rows: list[tuple]) -> MagicMock:
    result = MagicMock()
    result.all.return_value = rows
    return result


class TestRecordConversion:
    """Tests for ORM to record conversion."""

    def test_item_snapshot_values(self) -> None:
        """Decimal snapshots become floats."""
        record = to_item_record(orm_item("o1", "p1"))

        assert record.product_id == "p1"
        assert record.product_name == "Latte"
        assert record.unit_price == 4.5
        assert record.revenue == 9.0

    def test_deleted_product_gets_placeholders(self) -> None:
        """Null product id and name map to the unknown placeholders."""
        record = to_item_record(orm_item("o1", None, name=None))

        assert record.product_id == UNKNOWN_PRODUCT_ID
        assert record.product_name == UNKNOWN_PRODUCT_NAME


@pytest.mark.asyncio
class TestFetchOrders:
    """Tests for keyset-paged order fetching."""

    async def test_pages_until_short_page(
        self, mock_session_maker, mock_session, small_batches
    ) -> None:
        """A page shorter than the batch size ends the scan."""
        mock_session.execute.side_effect = [
            scalars_result([orm_order("o1", 0), orm_order("o2", 1)]),
            scalars_result([orm_order("o3", 2)]),
        ]
        repo = OrderRepository(mock_session_maker, small_batches)

        records = await repo.fetch_orders(BRANCH, MARCH)

        assert [r.id for r in records] == ["o1", "o2", "o3"]
        assert records[0].status == OrderStatus.COMPLETED
        assert records[0].total_amount == 12.5
        assert mock_session.execute.await_count == 2

    async def test_row_limit(self, mock_session_maker, mock_session, small_batches) -> None:
        """More rows than analytics_max_rows aborts the request."""
        mock_session.execute.side_effect = [
            scalars_result([orm_order("o1", 0), orm_order("o2", 1)]),
            scalars_result([orm_order("o3", 2), orm_order("o4", 3)]),
        ]
        repo = OrderRepository(mock_session_maker, small_batches)

        with pytest.raises(RowLimitExceededError) as exc_info:
            await repo.fetch_orders(BRANCH, MARCH)

        assert exc_info.value.details["max_rows"] == 3

    async def test_database_failure_is_wrapped(
        self, mock_session_maker, mock_session, small_batches
    ) -> None:
        """SQLAlchemy errors surface as DatabaseError."""
        mock_session.execute.side_effect = OperationalError("SELECT", {}, Exception("down"))
        repo = OrderRepository(mock_session_maker, small_batches)

        with pytest.raises(DatabaseError):
            await repo.fetch_order_history(BRANCH, date(2024, 3, 31))


@pytest.mark.asyncio
class TestLookups:
    """Tests for item and lookup fetches."""

    async def test_items_follow_caller_order(
        self, mock_session_maker, mock_session, small_batches
    ) -> None:
        """Items come back in the order ids' sequence across batches."""
        mock_session.execute.side_effect = [
            scalars_result([orm_item("a", "p1"), orm_item("b", "p2")]),
            scalars_result([orm_item("c", "p3")]),
        ]
        repo = OrderRepository(mock_session_maker, small_batches)

        records = await repo.fetch_order_items(BRANCH, ["b", "a", "c"])

        assert [r.order_id for r in records] == ["b", "a", "c"]
        assert mock_session.execute.await_count == 2

    async def test_first_order_dates_skip_blank_phones(
        self, mock_session_maker, mock_session, small_batches
    ) -> None:
        """Phones are trimmed and blank phones dropped."""
        first = datetime(2024, 1, 2, tzinfo=UTC)
        mock_session.execute.return_value = rows_result([(" 010-1 ", first), ("  ", first)])
        repo = OrderRepository(mock_session_maker, small_batches)

        assert await repo.fetch_customer_first_order_dates(BRANCH) == {"010-1": first}

    async def test_empty_lookups_skip_the_database(
        self, mock_session_maker, small_batches
    ) -> None:
        """No ids means no query."""
        repo = OrderRepository(mock_session_maker, small_batches)

        assert await repo.fetch_product_names([]) == {}
        assert await repo.fetch_stock_levels(BRANCH, []) == {}
        mock_session_maker.assert_not_called()

    async def test_stock_levels_are_floats(
        self, mock_session_maker, mock_session, small_batches
    ) -> None:
        """Summed stock is returned per product."""
        mock_session.execute.return_value = rows_result([("p1", 12), ("p2", None)])
        repo = OrderRepository(mock_session_maker, small_batches)

        assert await repo.fetch_stock_levels(BRANCH, ["p1", "p2"]) == {"p1": 12.0, "p2": 0.0}
