"""Current vs previous period comparison.

Percent changes are computed for every top-level numeric field of the two
results. When the previous value is 0 the change is 0 if the current value
is also 0, and None (null in JSON) otherwise.
"""

from pydantic import BaseModel

from orderlens.features.analytics.periods import AnalyticsPeriod
from orderlens.features.analytics.schemas import ComparisonResult, PeriodRange, SingleResult


def percent_change(current: float, previous: float) -> float | None:
    """(current - previous) / previous * 100, rounded to one decimal."""
    if previous == 0:
        return 0.0 if current == 0 else None
    return round((current - previous) / previous * 100, 1)


def compute_changes(current: BaseModel, previous: BaseModel) -> dict[str, float | None]:
    """Percent change of each top-level numeric field.

    Args:
        current: Result of the current period.
        previous: Result of the previous period, same type as `current`.

    Returns:
        Mapping of field name to percent change, in field declaration order.
    """
    changes: dict[str, float | None] = {}
    for name in type(current).model_fields:
        value = getattr(current, name)
        # bool is an int subclass but not a metric
        if isinstance(value, bool) or not isinstance(value, int | float):
            continue
        changes[name] = percent_change(float(value), float(getattr(previous, name)))
    return changes


def period_range(period: AnalyticsPeriod) -> PeriodRange:
    """Response representation of a period."""
    return PeriodRange(start_date=period.start_date, end_date=period.end_date, days=period.days)


def single[T: BaseModel](data: T, period: AnalyticsPeriod) -> SingleResult[T]:
    """Wrap a result without comparison."""
    return SingleResult(period=period_range(period), data=data)


def compare[T: BaseModel](
    current: T,
    previous: T,
    period: AnalyticsPeriod,
    prev_period: AnalyticsPeriod,
) -> ComparisonResult[T]:
    """Wrap a current and previous result with their percent changes."""
    return ComparisonResult(
        period=period_range(period),
        previous_period=period_range(prev_period),
        current=current,
        previous=previous,
        changes=compute_changes(current, previous),
    )
