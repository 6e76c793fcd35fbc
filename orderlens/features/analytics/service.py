"""Service layer for analytics operations.

Resolves the request period, fetches rows through an `OrderRowSource` and
runs the pure analyzers. With `compare=True` the current and previous
periods are fetched and computed concurrently.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from datetime import date

from pydantic import BaseModel

from orderlens.core.config import Settings, get_settings
from orderlens.core.logging import get_logger
from orderlens.features.analytics.abc import classify_abc
from orderlens.features.analytics.basket import analyze_combinations
from orderlens.features.analytics.cohort import analyze_cohorts, parse_granularity
from orderlens.features.analytics.comparison import compare as compare_results
from orderlens.features.analytics.comparison import single
from orderlens.features.analytics.hourly import analyze_hourly_demand
from orderlens.features.analytics.metrics import (
    compute_branch_breakdown,
    compute_customer_metrics,
    compute_order_metrics,
    compute_product_metrics,
    compute_sales_metrics,
)
from orderlens.features.analytics.periods import AnalyticsPeriod, previous_period, resolve_period
from orderlens.features.analytics.rfm import segment_customers
from orderlens.features.analytics.schemas import (
    AbcAnalysis,
    BrandSalesAnalytics,
    CohortAnalysis,
    CohortGranularity,
    CombinationAnalysis,
    ComparisonResult,
    CustomerAnalytics,
    HourlyDemandAnalysis,
    OrderAnalytics,
    ProductAnalytics,
    RfmAnalysis,
    SalesAnalytics,
    SingleResult,
)
from orderlens.features.analytics.sources import OrderRowSource
from orderlens.features.orders.schemas import (
    UNKNOWN_PRODUCT_ID,
    OrderItemRecord,
    OrderRecord,
    TenantScope,
)

logger = get_logger(__name__)

HOURLY_TOP_PRODUCTS = 5

type AnalyticsResult[T] = SingleResult[T] | ComparisonResult[T]


class AnalyticsService:
    """Service for computing order analytics.

    Every public method takes a tenant scope and optional ISO date bounds,
    validates caller input before any fetch, and returns either a single
    result or a current/previous comparison.
    """

    def __init__(self, source: OrderRowSource, settings: Settings | None = None) -> None:
        """Initialize analytics service.

        Args:
            source: Row-fetch collaborator.
            settings: Application settings (defaults to the cached settings).
        """
        self.source = source
        self.settings = settings or get_settings()
        self.tz = self.settings.tzinfo

    def resolve_period(
        self,
        start_date: str | date | None,
        end_date: str | date | None,
        as_of: date,
    ) -> AnalyticsPeriod:
        """Resolve request dates using the configured defaults and limits."""
        return resolve_period(
            start_date,
            end_date,
            as_of=as_of,
            default_days=self.settings.analytics_default_range_days,
            max_days=self.settings.analytics_max_date_range_days,
        )

    async def _run[T: BaseModel](
        self,
        view: str,
        scope: TenantScope,
        period: AnalyticsPeriod,
        compare: bool,
        compute: Callable[[AnalyticsPeriod], Awaitable[T]],
    ) -> AnalyticsResult[T]:
        """Compute a view for the period, and for the previous one if asked."""
        started = time.perf_counter()

        result: AnalyticsResult[T]
        if compare:
            prev = previous_period(period)
            current, previous = await asyncio.gather(compute(period), compute(prev))
            result = compare_results(current, previous, period, prev)
        else:
            result = single(await compute(period), period)

        logger.info(
            f"analytics.{view}_computed",
            scope_kind=scope.kind.value,
            scope_id=scope.scope_id,
            start_date=period.start_date.isoformat(),
            end_date=period.end_date.isoformat(),
            compare=compare,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return result

    async def _fetch_items(
        self,
        scope: TenantScope,
        orders: list[OrderRecord],
    ) -> list[OrderItemRecord]:
        """Items of the revenue-bearing orders, named with current product names."""
        order_ids = [o.id for o in orders if o.counts_as_revenue]
        if not order_ids:
            return []
        items = await self.source.fetch_order_items(scope, order_ids)

        product_ids = sorted({i.product_id for i in items if i.product_id != UNKNOWN_PRODUCT_ID})
        if not product_ids:
            return items
        names = await self.source.fetch_product_names(product_ids)
        return [
            item.model_copy(update={"product_name": names[item.product_id]})
            if item.product_id in names
            else item
            for item in items
        ]

    # =========================================================================
    # Basic metrics
    # =========================================================================

    async def sales(
        self,
        scope: TenantScope,
        start_date: str | date | None = None,
        end_date: str | date | None = None,
        *,
        compare: bool = False,
        as_of: date,
    ) -> AnalyticsResult[SalesAnalytics] | AnalyticsResult[BrandSalesAnalytics]:
        """Revenue totals and daily trend; brand scopes add a per-branch roll-up.

        Args:
            scope: Branch or brand.
            start_date: Period start (inclusive), optional.
            end_date: Period end (inclusive), optional.
            compare: Also compute the previous period.
            as_of: Anchor for default dates.

        Returns:
            Single or comparison result of SalesAnalytics
            (BrandSalesAnalytics for brand scopes).

        Raises:
            InvalidRangeError: If the dates are invalid.
        """
        period = self.resolve_period(start_date, end_date, as_of)

        if not scope.is_brand:

            async def compute(p: AnalyticsPeriod) -> SalesAnalytics:
                orders = await self.source.fetch_orders(scope, p)
                return compute_sales_metrics(orders, self.tz)

            return await self._run("sales", scope, period, compare, compute)

        branch_names = await self.source.fetch_branch_names(scope)

        async def compute_brand(p: AnalyticsPeriod) -> BrandSalesAnalytics:
            orders = await self.source.fetch_orders(scope, p)
            metrics = compute_sales_metrics(orders, self.tz)
            return BrandSalesAnalytics(
                **metrics.model_dump(),
                by_branch=compute_branch_breakdown(orders, branch_names),
            )

        return await self._run("sales", scope, period, compare, compute_brand)

    async def products(
        self,
        scope: TenantScope,
        start_date: str | date | None = None,
        end_date: str | date | None = None,
        *,
        compare: bool = False,
        as_of: date,
    ) -> AnalyticsResult[ProductAnalytics]:
        """Product rankings and inventory turnover."""
        period = self.resolve_period(start_date, end_date, as_of)

        async def compute(p: AnalyticsPeriod) -> ProductAnalytics:
            orders = await self.source.fetch_orders(scope, p)
            items = await self._fetch_items(scope, orders)
            product_ids = sorted(
                {i.product_id for i in items if i.product_id != UNKNOWN_PRODUCT_ID}
            )
            stock = await self.source.fetch_stock_levels(scope, product_ids) if product_ids else {}
            return compute_product_metrics(orders, items, p, stock)

        return await self._run("products", scope, period, compare, compute)

    async def orders(
        self,
        scope: TenantScope,
        start_date: str | date | None = None,
        end_date: str | date | None = None,
        *,
        compare: bool = False,
        as_of: date,
    ) -> AnalyticsResult[OrderAnalytics]:
        """Status distribution, daily counts and peak hours."""
        period = self.resolve_period(start_date, end_date, as_of)

        async def compute(p: AnalyticsPeriod) -> OrderAnalytics:
            return compute_order_metrics(await self.source.fetch_orders(scope, p), self.tz)

        return await self._run("orders", scope, period, compare, compute)

    async def customers(
        self,
        scope: TenantScope,
        start_date: str | date | None = None,
        end_date: str | date | None = None,
        *,
        compare: bool = False,
        as_of: date,
    ) -> AnalyticsResult[CustomerAnalytics]:
        """Customer counts, CLV and repeat behaviour.

        Lifetime figures use every order of the scope up to the period end.
        """
        period = self.resolve_period(start_date, end_date, as_of)

        async def compute(p: AnalyticsPeriod) -> CustomerAnalytics:
            history = await self.source.fetch_order_history(scope, p.end_date)
            return compute_customer_metrics(history, p, self.tz)

        return await self._run("customers", scope, period, compare, compute)

    # =========================================================================
    # Advanced analyses
    # =========================================================================

    async def abc(
        self,
        scope: TenantScope,
        start_date: str | date | None = None,
        end_date: str | date | None = None,
        *,
        compare: bool = False,
        as_of: date,
    ) -> AnalyticsResult[AbcAnalysis]:
        """ABC classification of products by revenue."""
        period = self.resolve_period(start_date, end_date, as_of)

        async def compute(p: AnalyticsPeriod) -> AbcAnalysis:
            orders = await self.source.fetch_orders(scope, p)
            return classify_abc(await self._fetch_items(scope, orders), orders)

        return await self._run("abc", scope, period, compare, compute)

    async def hourly(
        self,
        scope: TenantScope,
        start_date: str | date | None = None,
        end_date: str | date | None = None,
        *,
        compare: bool = False,
        as_of: date,
    ) -> AnalyticsResult[HourlyDemandAnalysis]:
        """Top products per hour of day."""
        period = self.resolve_period(start_date, end_date, as_of)

        async def compute(p: AnalyticsPeriod) -> HourlyDemandAnalysis:
            orders = await self.source.fetch_orders(scope, p)
            items = await self._fetch_items(scope, orders)
            return analyze_hourly_demand(orders, items, self.tz, top_n=HOURLY_TOP_PRODUCTS)

        return await self._run("hourly", scope, period, compare, compute)

    async def combinations(
        self,
        scope: TenantScope,
        start_date: str | date | None = None,
        end_date: str | date | None = None,
        *,
        min_count: int = 1,
        max_items: int = 20,
        compare: bool = False,
        as_of: date,
    ) -> AnalyticsResult[CombinationAnalysis]:
        """Product pairs frequently ordered together."""
        period = self.resolve_period(start_date, end_date, as_of)

        async def compute(p: AnalyticsPeriod) -> CombinationAnalysis:
            orders = await self.source.fetch_orders(scope, p)
            items = await self._fetch_items(scope, orders)
            return analyze_combinations(orders, items, min_count=min_count, max_items=max_items)

        return await self._run("combinations", scope, period, compare, compute)

    async def cohort(
        self,
        scope: TenantScope,
        start_date: str | date | None = None,
        end_date: str | date | None = None,
        *,
        granularity: str | CohortGranularity | None = None,
        compare: bool = False,
        as_of: date,
    ) -> AnalyticsResult[CohortAnalysis]:
        """Cohort retention table.

        Raises:
            UnsupportedGranularityError: If granularity is not WEEK or MONTH.
            InvalidRangeError: If the dates are invalid.
        """
        resolved = parse_granularity(granularity)
        period = self.resolve_period(start_date, end_date, as_of)
        first_orders = await self.source.fetch_customer_first_order_dates(scope)

        async def compute(p: AnalyticsPeriod) -> CohortAnalysis:
            orders = await self.source.fetch_orders(scope, p)
            return analyze_cohorts(orders, first_orders, p, resolved, self.tz)

        return await self._run("cohort", scope, period, compare, compute)

    async def rfm(
        self,
        scope: TenantScope,
        start_date: str | date | None = None,
        end_date: str | date | None = None,
        *,
        compare: bool = False,
        as_of: date,
    ) -> AnalyticsResult[RfmAnalysis]:
        """RFM segmentation of customers active in the period.

        Recency is measured against the period end date.
        """
        period = self.resolve_period(start_date, end_date, as_of)

        async def compute(p: AnalyticsPeriod) -> RfmAnalysis:
            orders = await self.source.fetch_orders(scope, p)
            return segment_customers(orders, p.end_date, self.tz)

        return await self._run("rfm", scope, period, compare, compute)
