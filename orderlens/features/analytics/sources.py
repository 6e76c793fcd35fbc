"""Row-fetch interface consumed by the analytics service.

The database-backed implementation is `OrderRepository`; tests substitute an
in-memory implementation.
"""

from datetime import date, datetime
from typing import Protocol

from orderlens.features.analytics.periods import AnalyticsPeriod
from orderlens.features.orders.schemas import OrderItemRecord, OrderRecord, TenantScope


class OrderRowSource(Protocol):
    """Supplies validated order and order-item records for a tenant scope."""

    async def fetch_orders(self, scope: TenantScope, period: AnalyticsPeriod) -> list[OrderRecord]:
        """Orders of the scope placed inside the period, oldest first."""
        ...

    async def fetch_order_history(self, scope: TenantScope, until: date) -> list[OrderRecord]:
        """Every order of the scope placed up to the end of day `until`."""
        ...

    async def fetch_order_items(
        self, scope: TenantScope, order_ids: list[str]
    ) -> list[OrderItemRecord]:
        """Items of the given orders."""
        ...

    async def fetch_customer_first_order_dates(self, scope: TenantScope) -> dict[str, datetime]:
        """First-ever revenue-bearing order timestamp per customer phone."""
        ...

    async def fetch_stock_levels(
        self, scope: TenantScope, product_ids: list[str]
    ) -> dict[str, float]:
        """Available quantity per product, summed over the scope's branches."""
        ...

    async def fetch_branch_names(self, scope: TenantScope) -> dict[str, str]:
        """Branch display names of the scope."""
        ...

    async def fetch_product_names(self, product_ids: list[str]) -> dict[str, str]:
        """Latest catalog name per product id (deleted products are absent)."""
        ...
