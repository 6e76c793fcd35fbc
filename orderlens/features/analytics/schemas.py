"""Pydantic schemas for analytics endpoints.

Every analyzer returns one of the response models below; the transport layer
serializes them as-is. Percentages are on a 0-100 scale and rounded to two
decimals unless stated otherwise.
"""

from datetime import date as date_type
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

from orderlens.features.orders.schemas import OrderStatus

# =============================================================================
# Enums
# =============================================================================


class CohortGranularity(str, Enum):
    """Bucket size for cohort assignment and retention offsets."""

    WEEK = "WEEK"
    MONTH = "MONTH"


class AbcGrade(str, Enum):
    """ABC tier by cumulative revenue contribution."""

    A = "A"
    B = "B"
    C = "C"


class RfmSegment(str, Enum):
    """Customer segment derived from R/F/M scores."""

    CHAMPIONS = "Champions"
    LOYAL = "Loyal"
    POTENTIAL = "Potential"
    NEW = "New"
    AT_RISK = "At Risk"
    LOST = "Lost"


# =============================================================================
# Sales
# =============================================================================


class RevenueByDay(BaseModel):
    """Revenue of one calendar day that had at least one order."""

    date: date_type = Field(..., description="Calendar day in the analytics timezone.")
    revenue: float = Field(..., ge=0, description="Sum of order totals for the day.")
    order_count: int = Field(..., ge=0, description="Revenue-bearing orders placed that day.")


class SalesAnalytics(BaseModel):
    """Revenue totals for a period.

    Cancelled and refunded orders are excluded.
    """

    total_revenue: float = Field(..., ge=0, description="Sum of order totals.")
    order_count: int = Field(..., ge=0, description="Number of revenue-bearing orders.")
    avg_order_value: float = Field(
        ..., ge=0, description="total_revenue / order_count; 0 when there are no orders."
    )
    revenue_by_day: list[RevenueByDay] = Field(
        default_factory=list,
        description="Daily revenue, ascending by date. Days without orders are omitted.",
    )


class BranchBreakdown(BaseModel):
    """Revenue of one branch inside a brand."""

    branch_id: str
    branch_name: str = Field(..., description="Branch name; falls back to the id.")
    revenue: float = Field(..., ge=0)
    order_count: int = Field(..., ge=0)


class BrandSalesAnalytics(SalesAnalytics):
    """Brand-level sales with a per-branch roll-up."""

    by_branch: list[BranchBreakdown] = Field(
        default_factory=list,
        description="Branches ordered by revenue (highest first).",
    )


# =============================================================================
# Products
# =============================================================================


class TopProduct(BaseModel):
    """A best-selling product by revenue."""

    product_id: str
    product_name: str
    sold_quantity: int = Field(..., ge=0)
    total_revenue: float = Field(..., ge=0)


class SalesByProduct(BaseModel):
    """Sales of one product with its share of total revenue."""

    product_id: str
    product_name: str
    quantity: int = Field(..., ge=0)
    revenue: float = Field(..., ge=0)
    revenue_percentage: float = Field(
        ..., ge=0, le=100, description="revenue / total revenue * 100; 0 when total is 0."
    )


class InventoryTurnover(BaseModel):
    """Sold quantity relative to stock on hand."""

    average_turnover_rate: float = Field(
        ...,
        ge=0,
        description="Mean of sold_qty / stock over products with a positive stock figure.",
    )
    period_days: int = Field(..., ge=1, description="Inclusive day count of the period.")


class ProductAnalytics(BaseModel):
    """Product rankings for a period."""

    top_products: list[TopProduct] = Field(
        default_factory=list, description="Top 10 products by revenue."
    )
    sales_by_product: list[SalesByProduct] = Field(
        default_factory=list, description="All products, highest revenue first."
    )
    inventory_turnover: InventoryTurnover


# =============================================================================
# Orders
# =============================================================================


class StatusShare(BaseModel):
    """Count and share of one order status."""

    status: OrderStatus
    count: int = Field(..., ge=1)
    percentage: float = Field(..., ge=0, le=100)


class OrdersByDay(BaseModel):
    """Order counts of one calendar day."""

    date: date_type
    order_count: int = Field(..., ge=1)
    completed_count: int = Field(..., ge=0)
    cancelled_count: int = Field(..., ge=0)


class PeakHour(BaseModel):
    """Orders placed during one hour of the day."""

    hour: int = Field(..., ge=0, le=23)
    order_count: int = Field(..., ge=1)


class OrderAnalytics(BaseModel):
    """Order status and timing breakdown (all statuses included)."""

    total_orders: int = Field(..., ge=0)
    status_distribution: list[StatusShare] = Field(
        default_factory=list, description="Statuses present, most frequent first."
    )
    orders_by_day: list[OrdersByDay] = Field(
        default_factory=list, description="Days with orders, ascending."
    )
    peak_hours: list[PeakHour] = Field(
        default_factory=list, description="Hours with at least one order, ascending."
    )


# =============================================================================
# Customers
# =============================================================================


class CustomerAnalytics(BaseModel):
    """Customer base metrics. Customers are identified by phone number."""

    total_customers: int = Field(
        ..., ge=0, description="Distinct customers who ever ordered (up to period end)."
    )
    new_customers: int = Field(
        ..., ge=0, description="Customers whose first-ever order falls inside the period."
    )
    returning_customers: int = Field(
        ..., ge=0, description="Customers with at least two orders inside the period."
    )
    clv: float = Field(..., ge=0, description="Mean lifetime revenue per customer.")
    repeat_customer_rate: float = Field(
        ..., ge=0, description="returning_customers / total_customers * 100."
    )
    avg_orders_per_customer: float = Field(
        ..., ge=0, description="Orders in period / distinct customers in period."
    )


# =============================================================================
# ABC Analysis
# =============================================================================


class AbcItem(BaseModel):
    """One product graded by cumulative revenue contribution."""

    product_id: str
    product_name: str
    revenue: float = Field(..., ge=0)
    revenue_percentage: float = Field(..., ge=0, le=100)
    cumulative_percentage: float = Field(..., ge=0, le=100)
    grade: AbcGrade


class AbcGradeSummary(BaseModel):
    """Totals of one ABC grade."""

    count: int = Field(0, ge=0)
    revenue_percentage: float = Field(0.0, ge=0)


class AbcSummary(BaseModel):
    """Per-grade totals."""

    grade_a: AbcGradeSummary = Field(default_factory=AbcGradeSummary)
    grade_b: AbcGradeSummary = Field(default_factory=AbcGradeSummary)
    grade_c: AbcGradeSummary = Field(default_factory=AbcGradeSummary)


class AbcAnalysis(BaseModel):
    """Pareto classification of products (A <= 80%, B <= 95%, C rest)."""

    total_revenue: float = Field(0.0, ge=0)
    items: list[AbcItem] = Field(
        default_factory=list, description="Products ordered by revenue (highest first)."
    )
    summary: AbcSummary = Field(default_factory=AbcSummary)


# =============================================================================
# Hourly Demand
# =============================================================================


class HourlyTopProduct(BaseModel):
    """Product demand within one hour of the day."""

    product_id: str
    product_name: str
    quantity: int = Field(..., ge=0)
    revenue: float = Field(..., ge=0)


class HourlyDemand(BaseModel):
    """Top products of one hour of the day."""

    hour: int = Field(..., ge=0, le=23)
    top_products: list[HourlyTopProduct] = Field(default_factory=list)
    total_orders: int = Field(..., ge=1, description="Orders placed during this hour.")


class HourlyDemandAnalysis(BaseModel):
    """Per-hour product ranking. Hours without orders are omitted."""

    hourly_data: list[HourlyDemand] = Field(default_factory=list)


# =============================================================================
# Combination (Market Basket) Analysis
# =============================================================================


class CombinationProduct(BaseModel):
    """Product taking part in a combination."""

    product_id: str
    product_name: str


class ProductCombination(BaseModel):
    """Unordered product pair bought together."""

    products: list[CombinationProduct] = Field(
        ..., min_length=2, max_length=2, description="Pair ordered by product id."
    )
    co_order_count: int = Field(..., ge=1, description="Orders containing both products.")
    support_rate: float = Field(
        ..., ge=0, le=1, description="co_order_count / total_orders_analyzed (fraction)."
    )


class CombinationAnalysis(BaseModel):
    """Frequently co-ordered product pairs."""

    combinations: list[ProductCombination] = Field(default_factory=list)
    total_orders_analyzed: int = Field(
        0, ge=0, description="Orders containing at least two distinct products."
    )
    min_count: int = Field(1, ge=1)


# =============================================================================
# Cohort Analysis
# =============================================================================


class CohortRetention(BaseModel):
    """Activity of a cohort `period` buckets after its start."""

    period: int = Field(..., ge=0)
    active_customers: int = Field(..., ge=0)
    retention_rate: float = Field(..., ge=0, le=100)


class CohortRow(BaseModel):
    """Customers whose first-ever order fell into the same bucket."""

    cohort: str = Field(..., description="Bucket key: 'YYYY-MM' (month) or Monday 'YYYY-MM-DD'.")
    cohort_size: int = Field(..., ge=1)
    retention: list[CohortRetention] = Field(
        ...,
        description="Offsets 0..horizon; offset 0 is always 100%. "
        "Offsets past the period end are not reported.",
    )


class CohortAnalysis(BaseModel):
    """Cohort retention table."""

    granularity: CohortGranularity
    cohorts: list[CohortRow] = Field(default_factory=list)


# =============================================================================
# RFM Analysis
# =============================================================================


class RfmCustomer(BaseModel):
    """Recency/frequency/monetary profile of one customer."""

    customer_phone: str
    recency: int = Field(..., ge=0, description="Days between period end and last order.")
    frequency: int = Field(..., ge=1, description="Orders inside the period.")
    monetary: float = Field(..., ge=0, description="Order totals inside the period.")
    r_score: int = Field(..., ge=1, le=5)
    f_score: int = Field(..., ge=1, le=5)
    m_score: int = Field(..., ge=1, le=5)
    rfm_score: str = Field(..., pattern=r"^[1-5]-[1-5]-[1-5]$", description="'R-F-M'.")
    segment: RfmSegment


class RfmSegmentSummary(BaseModel):
    """Customer count and mean R/F/M of a segment."""

    segment: RfmSegment
    customer_count: int = Field(..., ge=1)
    avg_recency: float = Field(..., ge=0)
    avg_frequency: float = Field(..., ge=0)
    avg_monetary: float = Field(..., ge=0)


class RfmAnalysis(BaseModel):
    """RFM segmentation of customers active in the period."""

    customers: list[RfmCustomer] = Field(default_factory=list)
    summary: list[RfmSegmentSummary] = Field(default_factory=list)


# =============================================================================
# Period Comparison
# =============================================================================


class PeriodRange(BaseModel):
    """Resolved inclusive date range."""

    start_date: date_type
    end_date: date_type
    days: int = Field(..., ge=1)


class SingleResult[T](BaseModel):
    """Analytics for one period (no comparison requested)."""

    kind: Literal["single"] = "single"
    period: PeriodRange
    data: T


class ComparisonResult[T](BaseModel):
    """Analytics for a period and the preceding period of equal length."""

    kind: Literal["comparison"] = "comparison"
    period: PeriodRange
    previous_period: PeriodRange
    current: T
    previous: T
    changes: dict[str, float | None] = Field(
        default_factory=dict,
        description="Percent change per top-level numeric metric. "
        "Null when the previous value is 0 and the current value is not.",
    )
