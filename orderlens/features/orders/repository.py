"""Database-backed row source for the analytics service.

Each fetch opens its own session from the session maker so that current and
previous period fetches can run concurrently. Rows are converted to frozen
`OrderRecord` / `OrderItemRecord` models here and nowhere else.
"""

from collections.abc import Sequence
from datetime import date, datetime, time, timedelta
from typing import Any

from sqlalchemy import ColumnElement, Select, and_, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from orderlens.core.config import Settings, get_settings
from orderlens.core.exceptions import DatabaseError, RowLimitExceededError
from orderlens.core.logging import get_logger
from orderlens.features.analytics.periods import AnalyticsPeriod
from orderlens.features.orders.models import Branch, Order, OrderItem, Product, ProductInventory
from orderlens.features.orders.schemas import (
    NON_REVENUE_STATUSES,
    OrderItemRecord,
    OrderRecord,
    TenantScope,
)

logger = get_logger(__name__)

_NON_REVENUE = [s.value for s in NON_REVENUE_STATUSES]


def scope_filter(scope: TenantScope) -> ColumnElement[bool]:
    """WHERE clause restricting orders to the tenant scope."""
    if scope.is_brand:
        return Order.brand_id == scope.scope_id
    return Order.branch_id == scope.scope_id


def to_order_record(order: Order) -> OrderRecord:
    """Convert an ORM order into the analytics record."""
    return OrderRecord(
        id=order.id,
        branch_id=order.branch_id,
        customer_phone=order.customer_phone,
        created_at=order.created_at,
        status=order.status,
        total_amount=float(order.total_amount or 0),
    )


def to_item_record(item: OrderItem) -> OrderItemRecord:
    """Convert an ORM order item into the analytics record."""
    return OrderItemRecord.model_validate(
        {
            "order_id": item.order_id,
            "product_id": item.product_id,
            "product_name": item.product_name_snapshot,
            "quantity": item.qty or 0,
            "unit_price": float(item.unit_price_snapshot or 0),
        }
    )


class OrderRepository:
    """Fetches order data for a tenant scope.

    Implements the analytics `OrderRowSource` protocol.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        settings: Settings | None = None,
    ) -> None:
        """Initialize the repository.

        Args:
            session_maker: Factory for per-fetch sessions.
            settings: Application settings (defaults to the cached settings).
        """
        self.session_maker = session_maker
        self.settings = settings or get_settings()

    async def _fetch_order_pages(
        self,
        scope: TenantScope,
        conditions: Sequence[ColumnElement[bool]],
        operation: str,
    ) -> list[OrderRecord]:
        """Fetch orders in keyset pages ordered by (created_at, id).

        Raises:
            RowLimitExceededError: If more than `analytics_max_rows` match.
            DatabaseError: If a query fails.
        """
        batch_size = self.settings.analytics_fetch_batch_size
        max_rows = self.settings.analytics_max_rows
        base: Select[Any] = (
            select(Order)
            .where(scope_filter(scope), *conditions)
            .order_by(Order.created_at, Order.id)
            .limit(batch_size)
        )

        records: list[OrderRecord] = []
        last: tuple[datetime, str] | None = None
        try:
            async with self.session_maker() as session:
                while True:
                    stmt = base
                    if last is not None:
                        stmt = stmt.where(
                            or_(
                                Order.created_at > last[0],
                                and_(Order.created_at == last[0], Order.id > last[1]),
                            )
                        )
                    result = await session.execute(stmt)
                    page = result.scalars().all()
                    records.extend(to_order_record(o) for o in page)

                    if len(records) > max_rows:
                        raise RowLimitExceededError(
                            f"More than {max_rows} orders match; narrow the date range",
                            details={"max_rows": max_rows, "scope_id": scope.scope_id},
                        )
                    if len(page) < batch_size:
                        break
                    last = (page[-1].created_at, page[-1].id)
        except SQLAlchemyError as e:
            logger.error(
                "orders.fetch_failed",
                operation=operation,
                scope_kind=scope.kind.value,
                scope_id=scope.scope_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise DatabaseError(f"Failed to fetch orders: {operation}") from e

        logger.debug(
            "orders.fetched",
            operation=operation,
            scope_kind=scope.kind.value,
            scope_id=scope.scope_id,
            row_count=len(records),
        )
        return records

    async def fetch_orders(self, scope: TenantScope, period: AnalyticsPeriod) -> list[OrderRecord]:
        """Orders of the scope placed inside the period (local-day bounds)."""
        start, end = period.bounds(self.settings.tzinfo)
        return await self._fetch_order_pages(
            scope,
            [Order.created_at >= start, Order.created_at < end],
            operation="fetch_orders",
        )

    async def fetch_order_history(self, scope: TenantScope, until: date) -> list[OrderRecord]:
        """Every order of the scope placed up to the end of local day `until`."""
        end = datetime.combine(until + timedelta(days=1), time.min, tzinfo=self.settings.tzinfo)
        return await self._fetch_order_pages(
            scope,
            [Order.created_at < end],
            operation="fetch_order_history",
        )

    async def fetch_order_items(
        self,
        scope: TenantScope,
        order_ids: list[str],
    ) -> list[OrderItemRecord]:
        """Items of the given orders, queried in batches of order ids.

        Orders outside the scope contribute no items.
        """
        batch_size = self.settings.analytics_fetch_batch_size
        records: list[OrderItemRecord] = []
        try:
            async with self.session_maker() as session:
                for i in range(0, len(order_ids), batch_size):
                    batch = order_ids[i : i + batch_size]
                    stmt = (
                        select(OrderItem)
                        .join(Order, OrderItem.order_id == Order.id)
                        .where(OrderItem.order_id.in_(batch), scope_filter(scope))
                        .order_by(OrderItem.order_id, OrderItem.id)
                    )
                    result = await session.execute(stmt)
                    records.extend(to_item_record(item) for item in result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(
                "orders.fetch_failed",
                operation="fetch_order_items",
                scope_id=scope.scope_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise DatabaseError("Failed to fetch order items") from e

        # Restore the caller's order sequence across batches
        position = {order_id: idx for idx, order_id in enumerate(order_ids)}
        records.sort(key=lambda r: position.get(r.order_id, len(position)))
        return records

    async def fetch_customer_first_order_dates(self, scope: TenantScope) -> dict[str, datetime]:
        """First revenue-bearing order timestamp per customer phone."""
        stmt = (
            select(Order.customer_phone, func.min(Order.created_at))
            .where(
                scope_filter(scope),
                Order.customer_phone.is_not(None),
                Order.status.not_in(_NON_REVENUE),
            )
            .group_by(Order.customer_phone)
        )
        rows = await self._execute(stmt, "fetch_customer_first_order_dates", scope)
        return {phone.strip(): first for phone, first in rows if phone and phone.strip()}

    async def fetch_stock_levels(
        self,
        scope: TenantScope,
        product_ids: list[str],
    ) -> dict[str, float]:
        """Available quantity per product, summed over the scope's branches."""
        if not product_ids:
            return {}
        stmt = select(ProductInventory.product_id, func.sum(ProductInventory.qty_available)).where(
            ProductInventory.product_id.in_(product_ids)
        )
        if scope.is_brand:
            stmt = stmt.join(Branch, ProductInventory.branch_id == Branch.id).where(
                Branch.brand_id == scope.scope_id
            )
        else:
            stmt = stmt.where(ProductInventory.branch_id == scope.scope_id)
        stmt = stmt.group_by(ProductInventory.product_id)

        rows = await self._execute(stmt, "fetch_stock_levels", scope)
        return {product_id: float(qty or 0) for product_id, qty in rows}

    async def fetch_branch_names(self, scope: TenantScope) -> dict[str, str]:
        """Branch display names of the scope."""
        stmt = select(Branch.id, Branch.name)
        if scope.is_brand:
            stmt = stmt.where(Branch.brand_id == scope.scope_id)
        else:
            stmt = stmt.where(Branch.id == scope.scope_id)
        rows = await self._execute(stmt, "fetch_branch_names", scope)
        return {branch_id: name for branch_id, name in rows}

    async def fetch_product_names(self, product_ids: list[str]) -> dict[str, str]:
        """Latest catalog name per product id."""
        if not product_ids:
            return {}
        stmt = select(Product.id, Product.name).where(Product.id.in_(product_ids))
        rows = await self._execute(stmt, "fetch_product_names", None)
        return {product_id: name for product_id, name in rows}

    async def _execute(
        self,
        stmt: Select[Any],
        operation: str,
        scope: TenantScope | None,
    ) -> list[Any]:
        """Run a single statement in its own session and return all rows."""
        try:
            async with self.session_maker() as session:
                result = await session.execute(stmt)
                return list(result.all())
        except SQLAlchemyError as e:
            logger.error(
                "orders.fetch_failed",
                operation=operation,
                scope_id=scope.scope_id if scope else None,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise DatabaseError(f"Failed to fetch rows: {operation}") from e
