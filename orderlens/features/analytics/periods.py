"""Date range resolution for analytics requests.

Both bounds of an analytics period are inclusive calendar dates in the
analytics timezone. The previous period used for comparisons has the same
number of days and ends the day before the current period starts.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo

from orderlens.core.exceptions import InvalidRangeError


@dataclass(frozen=True)
class AnalyticsPeriod:
    """Inclusive [start_date, end_date] analysis window.

    Attributes:
        start_date: First day of the period (inclusive).
        end_date: Last day of the period (inclusive).
    """

    start_date: date
    end_date: date

    def __post_init__(self) -> None:
        if self.start_date > self.end_date:
            raise InvalidRangeError(
                "start_date must be on or before end_date",
                details={
                    "start_date": self.start_date.isoformat(),
                    "end_date": self.end_date.isoformat(),
                },
            )

    @property
    def days(self) -> int:
        """Inclusive day count."""
        return (self.end_date - self.start_date).days + 1

    def contains(self, day: date) -> bool:
        """Whether a calendar date falls inside the period."""
        return self.start_date <= day <= self.end_date

    def bounds(self, tz: tzinfo) -> tuple[datetime, datetime]:
        """Timestamp bounds for querying the store.

        Returns:
            (start, end) as aware datetimes; start inclusive, end exclusive
            (midnight after end_date).
        """
        start = datetime.combine(self.start_date, time.min, tzinfo=tz)
        end = datetime.combine(self.end_date + timedelta(days=1), time.min, tzinfo=tz)
        return start, end


def parse_date(value: str | date | None, field: str) -> date | None:
    """Parse an ISO date (or datetime) string.

    Args:
        value: 'YYYY-MM-DD', an ISO datetime, a date, or None.
        field: Parameter name used in the error details.

    Returns:
        Parsed date or None.

    Raises:
        InvalidRangeError: If the string is not an ISO date.
    """
    if value is None or isinstance(value, date):
        # datetime is a date subclass; keep only its calendar day
        return value.date() if isinstance(value, datetime) else value

    text = value.strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError as e:
        raise InvalidRangeError(
            f"{field} must be an ISO date (YYYY-MM-DD)",
            details={field: value},
        ) from e


def resolve_period(
    start_date: str | date | None,
    end_date: str | date | None,
    as_of: date,
    default_days: int = 30,
    max_days: int | None = None,
) -> AnalyticsPeriod:
    """Normalize optional request dates into an analytics period.

    Missing bounds default to a trailing window of `default_days` days
    ending on `as_of`:
    - neither given: [as_of - (default_days - 1), as_of]
    - only start given: [start, as_of]
    - only end given: [end - (default_days - 1), end]

    Args:
        start_date: Requested start (inclusive), optional.
        end_date: Requested end (inclusive), optional.
        as_of: Reference "today" for defaults.
        default_days: Length of the default trailing window.
        max_days: Longest accepted period, if limited.

    Returns:
        Resolved period.

    Raises:
        InvalidRangeError: If a date is unparsable, start is after end,
            or the period exceeds max_days.
    """
    start = parse_date(start_date, "start_date")
    end = parse_date(end_date, "end_date")

    if end is None:
        end = as_of
    if start is None:
        start = end - timedelta(days=default_days - 1)

    period = AnalyticsPeriod(start_date=start, end_date=end)

    if max_days is not None and period.days > max_days:
        raise InvalidRangeError(
            f"Date range spans {period.days} days; the maximum is {max_days}",
            details={
                "start_date": start.isoformat(),
                "end_date": end.isoformat(),
                "max_days": max_days,
            },
        )
    return period


def previous_period(period: AnalyticsPeriod) -> AnalyticsPeriod:
    """Period of identical length immediately preceding `period`."""
    prev_end = period.start_date - timedelta(days=1)
    prev_start = prev_end - timedelta(days=period.days - 1)
    return AnalyticsPeriod(start_date=prev_start, end_date=prev_end)
