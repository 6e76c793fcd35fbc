"""API routes for analytics endpoints.

Every view exists for a single branch (`/analytics/...?branch_id=`) and for a
whole brand (`/analytics/brand/...?brand_id=`). Dates are inclusive ISO dates
in the analytics timezone; `compare=true` adds the preceding period of equal
length together with percent changes.
"""

from datetime import date

from fastapi import APIRouter, Depends, Query

from orderlens.core.logging import get_logger
from orderlens.features.analytics.deps import get_analytics_service, get_as_of
from orderlens.features.analytics.schemas import (
    AbcAnalysis,
    BrandSalesAnalytics,
    CohortAnalysis,
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
from orderlens.features.analytics.service import AnalyticsService
from orderlens.features.orders.schemas import TenantScope

logger = get_logger(__name__)

router = APIRouter(prefix="/analytics", tags=["analytics"])

SalesResponse = SingleResult[SalesAnalytics] | ComparisonResult[SalesAnalytics]
BrandSalesResponse = SingleResult[BrandSalesAnalytics] | ComparisonResult[BrandSalesAnalytics]
ProductResponse = SingleResult[ProductAnalytics] | ComparisonResult[ProductAnalytics]
OrderResponse = SingleResult[OrderAnalytics] | ComparisonResult[OrderAnalytics]
CustomerResponse = SingleResult[CustomerAnalytics] | ComparisonResult[CustomerAnalytics]
AbcResponse = SingleResult[AbcAnalysis] | ComparisonResult[AbcAnalysis]
HourlyResponse = SingleResult[HourlyDemandAnalysis] | ComparisonResult[HourlyDemandAnalysis]
CombinationResponse = SingleResult[CombinationAnalysis] | ComparisonResult[CombinationAnalysis]
CohortResponse = SingleResult[CohortAnalysis] | ComparisonResult[CohortAnalysis]
RfmResponse = SingleResult[RfmAnalysis] | ComparisonResult[RfmAnalysis]

BRANCH_ID = Query(None, description="Branch to analyze.")
BRAND_ID = Query(None, description="Brand to analyze (all of its branches).")
START_DATE = Query(
    None,
    description="Start of analysis period (inclusive). Format: YYYY-MM-DD. "
    "Defaults to 29 days before end_date.",
)
END_DATE = Query(
    None,
    description="End of analysis period (inclusive). Format: YYYY-MM-DD. Defaults to today.",
)
COMPARE = Query(
    False,
    description="Also compute the preceding period of equal length and percent changes.",
)
GRANULARITY = Query(
    "MONTH",
    description="Cohort bucket size: WEEK (Monday start) or MONTH.",
)
MIN_COUNT = Query(
    1,
    ge=1,
    description="Drop pairs ordered together fewer times than this.",
)
MAX_ITEMS = Query(
    20,
    ge=1,
    le=100,
    description="Maximum number of pairs to return (1-100, default 20).",
)


# =============================================================================
# Basic Metrics
# =============================================================================


@router.get(
    "/sales",
    response_model=SalesResponse,
    summary="Sales metrics for a branch",
    description="""
Revenue totals and the daily revenue trend of a branch.

**Metrics Computed**:
- `total_revenue`: Sum of order totals
- `order_count`: Number of orders
- `avg_order_value`: total_revenue / order_count (0 when there are no orders)
- `revenue_by_day`: Revenue per calendar day, ascending; days without orders are omitted

Cancelled and refunded orders are excluded.
""",
)
async def get_sales(
    branch_id: str | None = BRANCH_ID,
    start_date: str | None = START_DATE,
    end_date: str | None = END_DATE,
    compare: bool = COMPARE,
    as_of: date = Depends(get_as_of),
    service: AnalyticsService = Depends(get_analytics_service),
) -> SalesResponse:
    """Compute sales metrics for a branch.

    Args:
        branch_id: Branch to analyze.
        start_date: Start of analysis period (inclusive).
        end_date: End of analysis period (inclusive).
        compare: Whether to include the previous period.
        as_of: Today, for default dates.
        service: Analytics service.

    Returns:
        Sales metrics, optionally with comparison.
    """
    scope = TenantScope.for_branch(branch_id)
    return await service.sales(scope, start_date, end_date, compare=compare, as_of=as_of)


@router.get(
    "/brand/sales",
    response_model=BrandSalesResponse,
    summary="Sales metrics for a brand",
    description="""
Revenue totals of all branches of a brand, plus `by_branch`: revenue and
order count per branch, highest revenue first.
""",
)
async def get_brand_sales(
    brand_id: str | None = BRAND_ID,
    start_date: str | None = START_DATE,
    end_date: str | None = END_DATE,
    compare: bool = COMPARE,
    as_of: date = Depends(get_as_of),
    service: AnalyticsService = Depends(get_analytics_service),
) -> BrandSalesResponse:
    """Compute sales metrics for a brand with a per-branch roll-up."""
    scope = TenantScope.for_brand(brand_id)
    return await service.sales(scope, start_date, end_date, compare=compare, as_of=as_of)


@router.get(
    "/products",
    response_model=ProductResponse,
    summary="Product metrics for a branch",
    description="""
Product rankings for a branch.

**Metrics Computed**:
- `top_products`: Top 10 products by revenue (ties keep first-seen order)
- `sales_by_product`: All products with their share of revenue
- `inventory_turnover`: Mean of sold quantity / stock on hand, and the period length in days
""",
)
async def get_products(
    branch_id: str | None = BRANCH_ID,
    start_date: str | None = START_DATE,
    end_date: str | None = END_DATE,
    compare: bool = COMPARE,
    as_of: date = Depends(get_as_of),
    service: AnalyticsService = Depends(get_analytics_service),
) -> ProductResponse:
    """Compute product metrics for a branch."""
    scope = TenantScope.for_branch(branch_id)
    return await service.products(scope, start_date, end_date, compare=compare, as_of=as_of)


@router.get(
    "/brand/products",
    response_model=ProductResponse,
    summary="Product metrics for a brand",
)
async def get_brand_products(
    brand_id: str | None = BRAND_ID,
    start_date: str | None = START_DATE,
    end_date: str | None = END_DATE,
    compare: bool = COMPARE,
    as_of: date = Depends(get_as_of),
    service: AnalyticsService = Depends(get_analytics_service),
) -> ProductResponse:
    """Compute product metrics across all branches of a brand."""
    scope = TenantScope.for_brand(brand_id)
    return await service.products(scope, start_date, end_date, compare=compare, as_of=as_of)


@router.get(
    "/orders",
    response_model=OrderResponse,
    summary="Order metrics for a branch",
    description="""
Order status and timing breakdown. Unlike the revenue views, every status
(including cancelled and refunded) is counted.

**Metrics Computed**:
- `status_distribution`: Count and percentage per status, most frequent first
- `orders_by_day`: Orders, completed and cancelled counts per day
- `peak_hours`: Orders per hour of day (hours without orders are omitted)
""",
)
async def get_orders(
    branch_id: str | None = BRANCH_ID,
    start_date: str | None = START_DATE,
    end_date: str | None = END_DATE,
    compare: bool = COMPARE,
    as_of: date = Depends(get_as_of),
    service: AnalyticsService = Depends(get_analytics_service),
) -> OrderResponse:
    """Compute order metrics for a branch."""
    scope = TenantScope.for_branch(branch_id)
    return await service.orders(scope, start_date, end_date, compare=compare, as_of=as_of)


@router.get(
    "/brand/orders",
    response_model=OrderResponse,
    summary="Order metrics for a brand",
)
async def get_brand_orders(
    brand_id: str | None = BRAND_ID,
    start_date: str | None = START_DATE,
    end_date: str | None = END_DATE,
    compare: bool = COMPARE,
    as_of: date = Depends(get_as_of),
    service: AnalyticsService = Depends(get_analytics_service),
) -> OrderResponse:
    """Compute order metrics across all branches of a brand."""
    scope = TenantScope.for_brand(brand_id)
    return await service.orders(scope, start_date, end_date, compare=compare, as_of=as_of)


@router.get(
    "/customers",
    response_model=CustomerResponse,
    summary="Customer metrics for a branch",
    description="""
Customer base metrics. Customers are identified by phone number; orders
without one are not attributed to any customer.

**Metrics Computed**:
- `total_customers`: Customers who ever ordered (up to the period end)
- `new_customers`: Customers whose first-ever order is inside the period
- `returning_customers`: Customers with two or more orders inside the period
- `clv`: Mean lifetime revenue per customer
- `repeat_customer_rate`: returning_customers / total_customers * 100
- `avg_orders_per_customer`: Orders in period / customers active in period
""",
)
async def get_customers(
    branch_id: str | None = BRANCH_ID,
    start_date: str | None = START_DATE,
    end_date: str | None = END_DATE,
    compare: bool = COMPARE,
    as_of: date = Depends(get_as_of),
    service: AnalyticsService = Depends(get_analytics_service),
) -> CustomerResponse:
    """Compute customer metrics for a branch."""
    scope = TenantScope.for_branch(branch_id)
    return await service.customers(scope, start_date, end_date, compare=compare, as_of=as_of)


@router.get(
    "/brand/customers",
    response_model=CustomerResponse,
    summary="Customer metrics for a brand",
)
async def get_brand_customers(
    brand_id: str | None = BRAND_ID,
    start_date: str | None = START_DATE,
    end_date: str | None = END_DATE,
    compare: bool = COMPARE,
    as_of: date = Depends(get_as_of),
    service: AnalyticsService = Depends(get_analytics_service),
) -> CustomerResponse:
    """Compute customer metrics across all branches of a brand."""
    scope = TenantScope.for_brand(brand_id)
    return await service.customers(scope, start_date, end_date, compare=compare, as_of=as_of)


# =============================================================================
# Product Analyses
# =============================================================================


@router.get(
    "/products/abc",
    response_model=AbcResponse,
    summary="ABC analysis for a branch",
    description="""
Pareto classification of products by cumulative revenue share.

**Grades**:
- `A`: cumulative share up to 80%
- `B`: cumulative share up to 95%
- `C`: the rest

The product that crosses a threshold takes the lower grade. The top product
is always graded A.
""",
)
async def get_abc(
    branch_id: str | None = BRANCH_ID,
    start_date: str | None = START_DATE,
    end_date: str | None = END_DATE,
    compare: bool = COMPARE,
    as_of: date = Depends(get_as_of),
    service: AnalyticsService = Depends(get_analytics_service),
) -> AbcResponse:
    """Compute ABC analysis for a branch."""
    scope = TenantScope.for_branch(branch_id)
    return await service.abc(scope, start_date, end_date, compare=compare, as_of=as_of)


@router.get(
    "/brand/products/abc",
    response_model=AbcResponse,
    summary="ABC analysis for a brand",
)
async def get_brand_abc(
    brand_id: str | None = BRAND_ID,
    start_date: str | None = START_DATE,
    end_date: str | None = END_DATE,
    compare: bool = COMPARE,
    as_of: date = Depends(get_as_of),
    service: AnalyticsService = Depends(get_analytics_service),
) -> AbcResponse:
    """Compute ABC analysis across all branches of a brand."""
    scope = TenantScope.for_brand(brand_id)
    return await service.abc(scope, start_date, end_date, compare=compare, as_of=as_of)


@router.get(
    "/products/hourly",
    response_model=HourlyResponse,
    summary="Hourly product demand for a branch",
    description="""
Top 5 products by quantity for each hour of the day (analytics timezone).
Ties are broken by revenue, then by first appearance. Hours without orders
are omitted.
""",
)
async def get_hourly(
    branch_id: str | None = BRANCH_ID,
    start_date: str | None = START_DATE,
    end_date: str | None = END_DATE,
    compare: bool = COMPARE,
    as_of: date = Depends(get_as_of),
    service: AnalyticsService = Depends(get_analytics_service),
) -> HourlyResponse:
    """Compute hourly product demand for a branch."""
    scope = TenantScope.for_branch(branch_id)
    return await service.hourly(scope, start_date, end_date, compare=compare, as_of=as_of)


@router.get(
    "/brand/products/hourly",
    response_model=HourlyResponse,
    summary="Hourly product demand for a brand",
)
async def get_brand_hourly(
    brand_id: str | None = BRAND_ID,
    start_date: str | None = START_DATE,
    end_date: str | None = END_DATE,
    compare: bool = COMPARE,
    as_of: date = Depends(get_as_of),
    service: AnalyticsService = Depends(get_analytics_service),
) -> HourlyResponse:
    """Compute hourly product demand across all branches of a brand."""
    scope = TenantScope.for_brand(brand_id)
    return await service.hourly(scope, start_date, end_date, compare=compare, as_of=as_of)


@router.get(
    "/products/combinations",
    response_model=CombinationResponse,
    summary="Product combinations for a branch",
    description="""
Pairs of distinct products bought in the same order.

**Fields**:
- `co_order_count`: Orders containing both products
- `support_rate`: co_order_count / total_orders_analyzed (fraction 0-1)
- `total_orders_analyzed`: Orders containing at least two distinct products

Pairs are sorted by co_order_count (highest first).
""",
)
async def get_combinations(
    branch_id: str | None = BRANCH_ID,
    start_date: str | None = START_DATE,
    end_date: str | None = END_DATE,
    min_count: int = MIN_COUNT,
    max_items: int = MAX_ITEMS,
    compare: bool = COMPARE,
    as_of: date = Depends(get_as_of),
    service: AnalyticsService = Depends(get_analytics_service),
) -> CombinationResponse:
    """Compute product combinations for a branch."""
    scope = TenantScope.for_branch(branch_id)
    return await service.combinations(
        scope,
        start_date,
        end_date,
        min_count=min_count,
        max_items=max_items,
        compare=compare,
        as_of=as_of,
    )


@router.get(
    "/brand/products/combinations",
    response_model=CombinationResponse,
    summary="Product combinations for a brand",
)
async def get_brand_combinations(
    brand_id: str | None = BRAND_ID,
    start_date: str | None = START_DATE,
    end_date: str | None = END_DATE,
    min_count: int = MIN_COUNT,
    max_items: int = MAX_ITEMS,
    compare: bool = COMPARE,
    as_of: date = Depends(get_as_of),
    service: AnalyticsService = Depends(get_analytics_service),
) -> CombinationResponse:
    """Compute product combinations across all branches of a brand."""
    scope = TenantScope.for_brand(brand_id)
    return await service.combinations(
        scope,
        start_date,
        end_date,
        min_count=min_count,
        max_items=max_items,
        compare=compare,
        as_of=as_of,
    )


# =============================================================================
# Customer Analyses
# =============================================================================


@router.get(
    "/customers/cohort",
    response_model=CohortResponse,
    summary="Cohort retention for a branch",
    description="""
Customers grouped by the bucket of their first-ever order; retention is the
share of each cohort ordering again in each following bucket.

Only customers whose first order falls inside the period form cohorts.
Retention offsets run up to the bucket containing end_date; offset 0 is
always 100%.
""",
)
async def get_cohort(
    branch_id: str | None = BRANCH_ID,
    start_date: str | None = START_DATE,
    end_date: str | None = END_DATE,
    granularity: str = GRANULARITY,
    compare: bool = COMPARE,
    as_of: date = Depends(get_as_of),
    service: AnalyticsService = Depends(get_analytics_service),
) -> CohortResponse:
    """Compute cohort retention for a branch."""
    scope = TenantScope.for_branch(branch_id)
    return await service.cohort(
        scope, start_date, end_date, granularity=granularity, compare=compare, as_of=as_of
    )


@router.get(
    "/brand/customers/cohort",
    response_model=CohortResponse,
    summary="Cohort retention for a brand",
)
async def get_brand_cohort(
    brand_id: str | None = BRAND_ID,
    start_date: str | None = START_DATE,
    end_date: str | None = END_DATE,
    granularity: str = GRANULARITY,
    compare: bool = COMPARE,
    as_of: date = Depends(get_as_of),
    service: AnalyticsService = Depends(get_analytics_service),
) -> CohortResponse:
    """Compute cohort retention across all branches of a brand."""
    scope = TenantScope.for_brand(brand_id)
    return await service.cohort(
        scope, start_date, end_date, granularity=granularity, compare=compare, as_of=as_of
    )


@router.get(
    "/customers/rfm",
    response_model=RfmResponse,
    summary="RFM segmentation for a branch",
    description="""
Scores every customer active in the period 1-5 on Recency, Frequency and
Monetary value, relative to the other customers, and assigns a segment.

**Segments** (first match wins):
- `Champions`: R>=4, F>=4, M>=4
- `Loyal`: F>=4
- `Potential`: R>=3, F>=2
- `New`: R>=4, F<=2
- `At Risk`: R<=2, F>=3
- `Lost`: everything else

Recency is measured in days before end_date.
""",
)
async def get_rfm(
    branch_id: str | None = BRANCH_ID,
    start_date: str | None = START_DATE,
    end_date: str | None = END_DATE,
    compare: bool = COMPARE,
    as_of: date = Depends(get_as_of),
    service: AnalyticsService = Depends(get_analytics_service),
) -> RfmResponse:
    """Compute RFM segmentation for a branch."""
    scope = TenantScope.for_branch(branch_id)
    return await service.rfm(scope, start_date, end_date, compare=compare, as_of=as_of)


@router.get(
    "/brand/customers/rfm",
    response_model=RfmResponse,
    summary="RFM segmentation for a brand",
)
async def get_brand_rfm(
    brand_id: str | None = BRAND_ID,
    start_date: str | None = START_DATE,
    end_date: str | None = END_DATE,
    compare: bool = COMPARE,
    as_of: date = Depends(get_as_of),
    service: AnalyticsService = Depends(get_analytics_service),
) -> RfmResponse:
    """Compute RFM segmentation across all branches of a brand."""
    scope = TenantScope.for_brand(brand_id)
    return await service.rfm(scope, start_date, end_date, compare=compare, as_of=as_of)
