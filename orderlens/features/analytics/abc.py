"""ABC (Pareto) classification of products by revenue contribution.

Grades:
- A: cumulative revenue share up to 80%
- B: cumulative revenue share up to 95%
- C: the rest

The grade of an item is decided by the cumulative share *after* including it,
so the item that crosses a threshold falls into the lower grade. The single
highest-revenue product is always graded A.
"""

from collections.abc import Sequence

from orderlens.features.analytics.metrics import aggregate_products
from orderlens.features.analytics.ratios import percentage, round_amount
from orderlens.features.analytics.schemas import (
    AbcAnalysis,
    AbcGrade,
    AbcGradeSummary,
    AbcItem,
    AbcSummary,
)
from orderlens.features.orders.schemas import OrderItemRecord, OrderRecord

GRADE_A_THRESHOLD = 80.0
GRADE_B_THRESHOLD = 95.0


def grade_for(cumulative_percentage: float, rank: int) -> AbcGrade:
    """Grade of the item at 0-based `rank` with the given cumulative share."""
    if rank == 0 and cumulative_percentage > 0:
        return AbcGrade.A
    if 0 < cumulative_percentage <= GRADE_A_THRESHOLD:
        return AbcGrade.A
    if 0 < cumulative_percentage <= GRADE_B_THRESHOLD:
        return AbcGrade.B
    return AbcGrade.C


def classify_abc(
    items: Sequence[OrderItemRecord],
    orders: Sequence[OrderRecord],
) -> AbcAnalysis:
    """Grade every sold product A, B or C.

    Args:
        items: Order items of the period.
        orders: Orders of the period; cancelled/refunded orders are excluded.

    Returns:
        AbcAnalysis with items ordered by revenue and a per-grade summary.
        Empty input gives no items and a zeroed summary; a zero total revenue
        grades every item C with zero percentages.
    """
    totals = aggregate_products(orders, items)
    ranked = sorted(totals.values(), key=lambda p: p.revenue, reverse=True)
    total_revenue = sum(p.revenue for p in ranked)

    abc_items: list[AbcItem] = []
    summaries = {grade: AbcGradeSummary() for grade in AbcGrade}
    cumulative = 0.0

    for rank, product in enumerate(ranked):
        cumulative += product.revenue
        cumulative_pct = min(percentage(cumulative, total_revenue), 100.0)
        revenue_pct = percentage(product.revenue, total_revenue)
        grade = grade_for(cumulative_pct, rank)

        abc_items.append(
            AbcItem(
                product_id=product.product_id,
                product_name=product.product_name,
                revenue=round_amount(product.revenue),
                revenue_percentage=revenue_pct,
                cumulative_percentage=cumulative_pct,
                grade=grade,
            )
        )
        summary = summaries[grade]
        summary.count += 1
        summary.revenue_percentage = round_amount(summary.revenue_percentage + revenue_pct)

    return AbcAnalysis(
        total_revenue=round_amount(total_revenue),
        items=abc_items,
        summary=AbcSummary(
            grade_a=summaries[AbcGrade.A],
            grade_b=summaries[AbcGrade.B],
            grade_c=summaries[AbcGrade.C],
        ),
    )
