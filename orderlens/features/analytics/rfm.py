"""RFM (Recency, Frequency, Monetary) customer segmentation.

Scoring:
- Each dimension is scored 1-5 relative to the customers of the current call.
- score = ceil(rank * 5 / n). Higher frequency and monetary are better and
  rank counts the values at or below the first position of the value in
  ascending order. Lower recency is better and rank counts the values at or
  above it, so customers tied on the latest order all score 5.
- A tie group is ranked by its first position in ascending order and shares
  one score.

Segments (first matching rule wins):
- Champions: R >= 4, F >= 4, M >= 4
- Loyal: F >= 4
- Potential: R >= 3, F >= 2
- New: R >= 4, F <= 2
- At Risk: R <= 2, F >= 3
- Lost: everything else
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, tzinfo
from typing import Any

import numpy as np

from orderlens.features.analytics.metrics import local_date
from orderlens.features.analytics.ratios import round_amount
from orderlens.features.analytics.schemas import (
    RfmAnalysis,
    RfmCustomer,
    RfmSegment,
    RfmSegmentSummary,
)
from orderlens.features.orders.schemas import OrderRecord

SCORE_BUCKETS = 5

SEGMENT_ORDER = list(RfmSegment)


@dataclass
class CustomerActivity:
    """Raw R/F/M inputs of one customer."""

    last_order: date
    frequency: int = 0
    monetary: float = 0.0


def quintile_scores(
    values: np.ndarray[Any, np.dtype[Any]],
    lower_is_better: bool = False,
) -> np.ndarray[Any, np.dtype[Any]]:
    """Score values 1-5 by rank within the population.

    Args:
        values: One value per customer.
        lower_is_better: Score the smallest values highest (recency).

    Returns:
        Integer scores aligned with `values`.
    """
    n = len(values)
    if n == 0:
        return np.array([], dtype=int)
    first = np.searchsorted(np.sort(values), values, side="left")
    ranks = n - first if lower_is_better else first + 1
    scores = (ranks * SCORE_BUCKETS + n - 1) // n
    return np.clip(scores, 1, SCORE_BUCKETS)


def rfm_segment(r: int, f: int, m: int) -> RfmSegment:
    """Map R/F/M scores to a segment. Total over 1..5 for every dimension."""
    if r >= 4 and f >= 4 and m >= 4:
        return RfmSegment.CHAMPIONS
    if f >= 4:
        return RfmSegment.LOYAL
    if r >= 3 and f >= 2:
        return RfmSegment.POTENTIAL
    if r >= 4 and f <= 2:
        return RfmSegment.NEW
    if r <= 2 and f >= 3:
        return RfmSegment.AT_RISK
    return RfmSegment.LOST


def segment_customers(
    orders: Sequence[OrderRecord],
    as_of: date,
    tz: tzinfo,
) -> RfmAnalysis:
    """Score and segment every customer active in the period.

    Args:
        orders: Orders of the period; cancelled/refunded and anonymous
            orders are ignored.
        as_of: Recency anchor (the period end date).
        tz: Timezone for calendar-day conversion.

    Returns:
        RfmAnalysis with customers in first-seen order and a per-segment
        summary ordered by customer count.
    """
    activity: dict[str, CustomerActivity] = {}
    for order in orders:
        if not order.counts_as_revenue or order.customer_phone is None:
            continue
        day = local_date(order.created_at, tz)
        entry = activity.setdefault(order.customer_phone, CustomerActivity(last_order=day))
        entry.last_order = max(entry.last_order, day)
        entry.frequency += 1
        entry.monetary += order.total_amount

    if not activity:
        return RfmAnalysis()

    phones = list(activity)
    recency = np.array([max((as_of - activity[p].last_order).days, 0) for p in phones])
    frequency = np.array([activity[p].frequency for p in phones])
    monetary = np.array([activity[p].monetary for p in phones], dtype=float)

    r_scores = quintile_scores(recency, lower_is_better=True)
    f_scores = quintile_scores(frequency)
    m_scores = quintile_scores(monetary)

    customers = []
    for i, phone in enumerate(phones):
        r, f, m = int(r_scores[i]), int(f_scores[i]), int(m_scores[i])
        customers.append(
            RfmCustomer(
                customer_phone=phone,
                recency=int(recency[i]),
                frequency=int(frequency[i]),
                monetary=round_amount(float(monetary[i])),
                r_score=r,
                f_score=f,
                m_score=m,
                rfm_score=f"{r}-{f}-{m}",
                segment=rfm_segment(r, f, m),
            )
        )

    return RfmAnalysis(customers=customers, summary=summarize_segments(customers))


def summarize_segments(customers: Sequence[RfmCustomer]) -> list[RfmSegmentSummary]:
    """Count and mean R/F/M per segment, largest segment first."""
    grouped: dict[RfmSegment, list[RfmCustomer]] = {}
    for customer in customers:
        grouped.setdefault(customer.segment, []).append(customer)

    summary = [
        RfmSegmentSummary(
            segment=segment,
            customer_count=len(members),
            avg_recency=round_amount(float(np.mean([c.recency for c in members]))),
            avg_frequency=round_amount(float(np.mean([c.frequency for c in members]))),
            avg_monetary=round_amount(float(np.mean([c.monetary for c in members]))),
        )
        for segment, members in grouped.items()
    ]
    return sorted(summary, key=lambda s: (-s.customer_count, SEGMENT_ORDER.index(s.segment)))
