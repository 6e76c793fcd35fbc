"""Market-basket analysis over product pairs.

Only pairs of two distinct products bought in the same order are counted. A
pair is identified regardless of order: (A, B) and (B, A) are the same pair,
reported with the lower product id first.
"""

from collections import Counter
from collections.abc import Sequence
from itertools import combinations

from orderlens.features.analytics.ratios import safe_divide
from orderlens.features.analytics.schemas import (
    CombinationAnalysis,
    CombinationProduct,
    ProductCombination,
)
from orderlens.features.orders.schemas import OrderItemRecord, OrderRecord


def analyze_combinations(
    orders: Sequence[OrderRecord],
    items: Sequence[OrderItemRecord],
    min_count: int = 1,
    max_items: int = 20,
) -> CombinationAnalysis:
    """Count product pairs that were ordered together.

    Args:
        orders: Orders of the period; cancelled/refunded are ignored.
        items: Items of those orders.
        min_count: Pairs co-ordered fewer times are dropped.
        max_items: Maximum number of pairs returned.

    Returns:
        CombinationAnalysis sorted by co-order count (highest first), then
        product ids. The support denominator counts only orders holding at
        least two distinct products.
    """
    valid_ids = {o.id for o in orders if o.counts_as_revenue}

    products_by_order: dict[str, set[str]] = {}
    names: dict[str, str] = {}
    for item in items:
        if item.order_id not in valid_ids:
            continue
        products_by_order.setdefault(item.order_id, set()).add(item.product_id)
        names.setdefault(item.product_id, item.product_name)

    pair_counts: Counter[tuple[str, str]] = Counter()
    orders_analyzed = 0
    for product_ids in products_by_order.values():
        if len(product_ids) < 2:
            continue
        orders_analyzed += 1
        pair_counts.update(combinations(sorted(product_ids), 2))

    ranked = sorted(
        ((pair, count) for pair, count in pair_counts.items() if count >= min_count),
        key=lambda entry: (-entry[1], entry[0]),
    )

    return CombinationAnalysis(
        combinations=[
            ProductCombination(
                products=[
                    CombinationProduct(product_id=pid, product_name=names[pid]) for pid in pair
                ],
                co_order_count=count,
                support_rate=round(safe_divide(count, orders_analyzed), 4),
            )
            for pair, count in ranked[:max_items]
        ],
        total_orders_analyzed=orders_analyzed,
        min_count=min_count,
    )
