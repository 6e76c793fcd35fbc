"""Per-hour product demand ranking."""

from collections import Counter
from collections.abc import Sequence
from datetime import tzinfo

from orderlens.features.analytics.metrics import ProductTotals, local_hour
from orderlens.features.analytics.ratios import round_amount
from orderlens.features.analytics.schemas import (
    HourlyDemand,
    HourlyDemandAnalysis,
    HourlyTopProduct,
)
from orderlens.features.orders.schemas import OrderItemRecord, OrderRecord


def analyze_hourly_demand(
    orders: Sequence[OrderRecord],
    items: Sequence[OrderItemRecord],
    tz: tzinfo,
    top_n: int = 5,
) -> HourlyDemandAnalysis:
    """Rank products by quantity for every hour of the day with orders.

    Products are ranked by quantity, then revenue, then first appearance.
    Hours without revenue-bearing orders are omitted.

    Args:
        orders: Orders of the period; cancelled/refunded are ignored.
        items: Items of those orders.
        tz: Timezone the hour of day is taken in.
        top_n: Products kept per hour.

    Returns:
        HourlyDemandAnalysis sorted by hour.
    """
    order_hour: dict[str, int] = {}
    orders_per_hour: Counter[int] = Counter()
    for order in orders:
        if not order.counts_as_revenue:
            continue
        hour = local_hour(order.created_at, tz)
        order_hour[order.id] = hour
        orders_per_hour[hour] += 1

    by_hour: dict[int, dict[str, ProductTotals]] = {}
    for item in items:
        hour = order_hour.get(item.order_id)
        if hour is None:
            continue
        products = by_hour.setdefault(hour, {})
        entry = products.get(item.product_id)
        if entry is None:
            entry = ProductTotals(product_id=item.product_id, product_name=item.product_name)
            products[item.product_id] = entry
        entry.quantity += item.quantity
        entry.revenue += item.revenue

    hourly_data = []
    for hour in sorted(orders_per_hour):
        # stable sort keeps first-seen order for full ties
        ranked = sorted(
            by_hour.get(hour, {}).values(),
            key=lambda p: (p.quantity, p.revenue),
            reverse=True,
        )
        hourly_data.append(
            HourlyDemand(
                hour=hour,
                top_products=[
                    HourlyTopProduct(
                        product_id=p.product_id,
                        product_name=p.product_name,
                        quantity=p.quantity,
                        revenue=round_amount(p.revenue),
                    )
                    for p in ranked[:top_n]
                ],
                total_orders=orders_per_hour[hour],
            )
        )

    return HourlyDemandAnalysis(hourly_data=hourly_data)
