"""Analytics module for order business intelligence.

Pure analyzers turn order and order-item records of a period into sales,
product, order and customer metrics, ABC grades, hourly demand, product
combinations, cohort retention and RFM segments. Routes live in
`orderlens.features.analytics.routes`.
"""

from orderlens.features.analytics.periods import AnalyticsPeriod, previous_period, resolve_period
from orderlens.features.analytics.schemas import (
    CohortGranularity,
    ComparisonResult,
    SingleResult,
)

__all__ = [
    "AnalyticsPeriod",
    "CohortGranularity",
    "ComparisonResult",
    "SingleResult",
    "previous_period",
    "resolve_period",
]
