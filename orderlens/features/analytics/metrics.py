"""Basic sales, product, order and customer metrics.

All functions are pure: they take already-fetched records and return
response models. Calendar days and hours are taken in the analytics timezone
passed by the caller.

CRITICAL: Cancelled and refunded orders never count toward revenue or
customer activity; the order breakdown is the only view that includes them.
"""

from collections import Counter
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime, tzinfo

from orderlens.features.analytics.periods import AnalyticsPeriod
from orderlens.features.analytics.ratios import percentage, round_amount, safe_divide
from orderlens.features.analytics.schemas import (
    BranchBreakdown,
    CustomerAnalytics,
    InventoryTurnover,
    OrderAnalytics,
    OrdersByDay,
    PeakHour,
    ProductAnalytics,
    RevenueByDay,
    SalesAnalytics,
    SalesByProduct,
    StatusShare,
    TopProduct,
)
from orderlens.features.orders.schemas import OrderItemRecord, OrderRecord, OrderStatus

TOP_PRODUCTS_LIMIT = 10


def local_date(ts: datetime, tz: tzinfo) -> date:
    """Calendar day of a timestamp in the analytics timezone."""
    return ts.astimezone(tz).date()


def local_hour(ts: datetime, tz: tzinfo) -> int:
    """Hour of day (0-23) of a timestamp in the analytics timezone."""
    return ts.astimezone(tz).hour


def revenue_orders(orders: Iterable[OrderRecord]) -> list[OrderRecord]:
    """Orders that count toward revenue (not cancelled or refunded)."""
    return [o for o in orders if o.counts_as_revenue]


@dataclass
class ProductTotals:
    """Running totals of one product, in first-seen order."""

    product_id: str
    product_name: str
    quantity: int = 0
    revenue: float = 0.0


def aggregate_products(
    orders: Iterable[OrderRecord],
    items: Iterable[OrderItemRecord],
) -> dict[str, ProductTotals]:
    """Sum quantity and revenue per product over revenue-bearing orders.

    Items whose parent order is not among `orders` (or is cancelled/refunded)
    are ignored. The returned dict preserves first-seen product order, which
    is the tie-break for every ranking built on top of it.

    Args:
        orders: Orders in scope.
        items: Order items fetched for those orders.

    Returns:
        Mapping of product_id to totals.
    """
    valid_ids = {o.id for o in orders if o.counts_as_revenue}
    totals: dict[str, ProductTotals] = {}
    for item in items:
        if item.order_id not in valid_ids:
            continue
        entry = totals.get(item.product_id)
        if entry is None:
            entry = ProductTotals(product_id=item.product_id, product_name=item.product_name)
            totals[item.product_id] = entry
        entry.quantity += item.quantity
        entry.revenue += item.revenue
    return totals


# =============================================================================
# Sales
# =============================================================================


def compute_sales_metrics(orders: Sequence[OrderRecord], tz: tzinfo) -> SalesAnalytics:
    """Revenue totals and daily revenue trend.

    Args:
        orders: Orders of the period (any status).
        tz: Timezone for calendar-day bucketing.

    Returns:
        SalesAnalytics; all zeros and an empty trend when there are no orders.
    """
    valid = revenue_orders(orders)
    total_revenue = sum(o.total_amount for o in valid)
    order_count = len(valid)

    by_day: dict[date, list[float]] = {}
    for order in valid:
        by_day.setdefault(local_date(order.created_at, tz), []).append(order.total_amount)

    revenue_by_day = [
        RevenueByDay(date=day, revenue=round_amount(sum(amounts)), order_count=len(amounts))
        for day, amounts in sorted(by_day.items())
    ]

    return SalesAnalytics(
        total_revenue=round_amount(total_revenue),
        order_count=order_count,
        avg_order_value=round_amount(safe_divide(total_revenue, order_count)),
        revenue_by_day=revenue_by_day,
    )


def compute_branch_breakdown(
    orders: Sequence[OrderRecord],
    branch_names: Mapping[str, str],
) -> list[BranchBreakdown]:
    """Brand roll-up: revenue and order count per branch, highest revenue first."""
    revenue: dict[str, float] = {}
    counts: Counter[str] = Counter()
    for order in revenue_orders(orders):
        revenue[order.branch_id] = revenue.get(order.branch_id, 0.0) + order.total_amount
        counts[order.branch_id] += 1

    rows = [
        BranchBreakdown(
            branch_id=branch_id,
            branch_name=branch_names.get(branch_id, branch_id),
            revenue=round_amount(amount),
            order_count=counts[branch_id],
        )
        for branch_id, amount in revenue.items()
    ]
    return sorted(rows, key=lambda r: r.revenue, reverse=True)


# =============================================================================
# Products
# =============================================================================


def compute_product_metrics(
    orders: Sequence[OrderRecord],
    items: Sequence[OrderItemRecord],
    period: AnalyticsPeriod,
    stock_levels: Mapping[str, float] | None = None,
) -> ProductAnalytics:
    """Product rankings, revenue shares and inventory turnover.

    Args:
        orders: Orders of the period.
        items: Items of those orders.
        period: Analysis period (for period_days).
        stock_levels: Stock on hand per product id, supplied by the store.

    Returns:
        ProductAnalytics.
    """
    totals = aggregate_products(orders, items)
    total_revenue = sum(p.revenue for p in totals.values())

    # sorted() is stable, so equal revenue keeps first-seen order
    ranked = sorted(totals.values(), key=lambda p: p.revenue, reverse=True)

    top_products = [
        TopProduct(
            product_id=p.product_id,
            product_name=p.product_name,
            sold_quantity=p.quantity,
            total_revenue=round_amount(p.revenue),
        )
        for p in ranked[:TOP_PRODUCTS_LIMIT]
    ]
    sales_by_product = [
        SalesByProduct(
            product_id=p.product_id,
            product_name=p.product_name,
            quantity=p.quantity,
            revenue=round_amount(p.revenue),
            revenue_percentage=percentage(p.revenue, total_revenue),
        )
        for p in ranked
    ]

    stock_levels = stock_levels or {}
    rates = [
        p.quantity / stock_levels[p.product_id]
        for p in ranked
        if stock_levels.get(p.product_id, 0) > 0
    ]

    return ProductAnalytics(
        top_products=top_products,
        sales_by_product=sales_by_product,
        inventory_turnover=InventoryTurnover(
            average_turnover_rate=round_amount(safe_divide(sum(rates), len(rates))),
            period_days=period.days,
        ),
    )


# =============================================================================
# Orders
# =============================================================================


def compute_order_metrics(orders: Sequence[OrderRecord], tz: tzinfo) -> OrderAnalytics:
    """Status distribution, daily counts and peak hours over all orders.

    Args:
        orders: Orders of the period (every status is included).
        tz: Timezone for day and hour bucketing.

    Returns:
        OrderAnalytics.
    """
    total = len(orders)
    status_counts: Counter[OrderStatus] = Counter(o.status for o in orders)
    hour_counts: Counter[int] = Counter(local_hour(o.created_at, tz) for o in orders)

    day_counts: dict[date, list[int]] = {}
    for order in orders:
        counts = day_counts.setdefault(local_date(order.created_at, tz), [0, 0, 0])
        counts[0] += 1
        if order.status == OrderStatus.COMPLETED:
            counts[1] += 1
        elif order.status == OrderStatus.CANCELLED:
            counts[2] += 1

    # most_common() orders ties by first occurrence
    status_distribution = [
        StatusShare(status=status, count=count, percentage=percentage(count, total))
        for status, count in status_counts.most_common()
    ]
    orders_by_day = [
        OrdersByDay(date=day, order_count=c[0], completed_count=c[1], cancelled_count=c[2])
        for day, c in sorted(day_counts.items())
    ]
    peak_hours = [
        PeakHour(hour=hour, order_count=count) for hour, count in sorted(hour_counts.items())
    ]

    return OrderAnalytics(
        total_orders=total,
        status_distribution=status_distribution,
        orders_by_day=orders_by_day,
        peak_hours=peak_hours,
    )


# =============================================================================
# Customers
# =============================================================================


def compute_customer_metrics(
    history: Sequence[OrderRecord],
    period: AnalyticsPeriod,
    tz: tzinfo,
) -> CustomerAnalytics:
    """Customer base metrics.

    `history` holds every order of the scope up to the period end; the
    period's own orders are selected from it by local calendar day. Orders
    without a customer phone are not attributed to anyone.

    Args:
        history: All orders of the scope up to period end.
        period: Analysis period.
        tz: Timezone for calendar-day comparison.

    Returns:
        CustomerAnalytics; all zeros when nobody ordered.
    """
    lifetime_revenue: dict[str, float] = {}
    first_order: dict[str, datetime] = {}
    period_orders: Counter[str] = Counter()

    for order in revenue_orders(history):
        phone = order.customer_phone
        if phone is None:
            continue
        lifetime_revenue[phone] = lifetime_revenue.get(phone, 0.0) + order.total_amount
        if phone not in first_order or order.created_at < first_order[phone]:
            first_order[phone] = order.created_at
        if period.contains(local_date(order.created_at, tz)):
            period_orders[phone] += 1

    total_customers = len(lifetime_revenue)
    new_customers = sum(
        1 for ts in first_order.values() if period.contains(local_date(ts, tz))
    )
    returning_customers = sum(1 for count in period_orders.values() if count >= 2)

    return CustomerAnalytics(
        total_customers=total_customers,
        new_customers=new_customers,
        returning_customers=returning_customers,
        clv=round_amount(safe_divide(sum(lifetime_revenue.values()), total_customers)),
        repeat_customer_rate=percentage(returning_customers, total_customers),
        avg_orders_per_customer=round_amount(
            safe_divide(sum(period_orders.values()), len(period_orders))
        ),
    )
