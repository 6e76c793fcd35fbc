"""Cohort retention analysis.

A customer's cohort is the bucket (ISO week starting Monday, or calendar
month) containing their first-ever order. Only customers whose first order
falls inside the analysis period form cohorts. For each cohort, retention at
offset p is the share of its members with at least one order in bucket
cohort_start + p.

Offsets run from 0 to the bucket containing the period end. Offsets inside
that horizon without activity are reported as explicit zeros; nothing is
reported beyond it.
"""

from collections.abc import Mapping, Sequence
from datetime import date, datetime, timedelta, tzinfo

from orderlens.core.exceptions import UnsupportedGranularityError
from orderlens.features.analytics.metrics import local_date
from orderlens.features.analytics.periods import AnalyticsPeriod
from orderlens.features.analytics.ratios import percentage
from orderlens.features.analytics.schemas import (
    CohortAnalysis,
    CohortGranularity,
    CohortRetention,
    CohortRow,
)
from orderlens.features.orders.schemas import OrderRecord


def parse_granularity(value: str | CohortGranularity | None) -> CohortGranularity:
    """Parse a cohort granularity, case-insensitively. Defaults to MONTH.

    Raises:
        UnsupportedGranularityError: For anything but WEEK or MONTH.
    """
    if value is None:
        return CohortGranularity.MONTH
    if isinstance(value, CohortGranularity):
        return value
    try:
        return CohortGranularity(value.strip().upper())
    except ValueError as e:
        raise UnsupportedGranularityError(
            f"Unsupported granularity '{value}'; expected WEEK or MONTH",
            details={"granularity": value},
        ) from e


def bucket_start(day: date, granularity: CohortGranularity) -> date:
    """First day of the bucket containing `day`."""
    if granularity == CohortGranularity.WEEK:
        return day - timedelta(days=day.weekday())
    return day.replace(day=1)


def bucket_key(start: date, granularity: CohortGranularity) -> str:
    """Display key of a bucket: 'YYYY-MM-DD' for weeks, 'YYYY-MM' for months."""
    if granularity == CohortGranularity.WEEK:
        return start.isoformat()
    return start.strftime("%Y-%m")


def bucket_offset(cohort: date, day: date, granularity: CohortGranularity) -> int:
    """Number of buckets between the cohort start and the bucket of `day`."""
    current = bucket_start(day, granularity)
    if granularity == CohortGranularity.WEEK:
        return (current - cohort).days // 7
    return (current.year - cohort.year) * 12 + current.month - cohort.month


def analyze_cohorts(
    orders: Sequence[OrderRecord],
    first_order_dates: Mapping[str, datetime],
    period: AnalyticsPeriod,
    granularity: CohortGranularity,
    tz: tzinfo,
) -> CohortAnalysis:
    """Build the cohort retention table.

    Args:
        orders: Orders of the period; cancelled/refunded and anonymous
            orders are ignored.
        first_order_dates: True first-ever order timestamp per customer,
            independent of the period.
        period: Analysis period.
        granularity: Bucket size.
        tz: Timezone for calendar-day conversion.

    Returns:
        CohortAnalysis with cohorts sorted by key.
    """
    activity: dict[str, list[date]] = {}
    for order in orders:
        if not order.counts_as_revenue or order.customer_phone is None:
            continue
        activity.setdefault(order.customer_phone, []).append(local_date(order.created_at, tz))

    members: dict[date, list[str]] = {}
    for phone, days in activity.items():
        first_seen = min(days)
        known = first_order_dates.get(phone)
        if known is not None:
            first_seen = min(first_seen, local_date(known, tz))
        if not period.contains(first_seen):
            continue
        members.setdefault(bucket_start(first_seen, granularity), []).append(phone)

    cohorts = []
    for cohort_start in sorted(members):
        phones = members[cohort_start]
        horizon = bucket_offset(cohort_start, period.end_date, granularity)
        active: list[set[str]] = [set() for _ in range(horizon + 1)]
        for phone in phones:
            # a member's first order defines the cohort bucket
            active[0].add(phone)
            for day in activity[phone]:
                offset = bucket_offset(cohort_start, day, granularity)
                if 0 <= offset <= horizon:
                    active[offset].add(phone)

        size = len(phones)
        cohorts.append(
            CohortRow(
                cohort=bucket_key(cohort_start, granularity),
                cohort_size=size,
                retention=[
                    CohortRetention(
                        period=offset,
                        active_customers=len(customers),
                        retention_rate=percentage(len(customers), size),
                    )
                    for offset, customers in enumerate(active)
                ],
            )
        )

    return CohortAnalysis(granularity=granularity, cohorts=cohorts)
