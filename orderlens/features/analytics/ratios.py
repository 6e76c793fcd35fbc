"""Zero-safe ratio helpers shared by the analyzers.

CRITICAL: A zero denominator yields 0, never NaN or inf. Every ratio in the
analytics goes through these helpers instead of bare division.
"""


def safe_divide(numerator: float, denominator: float) -> float:
    """numerator / denominator, or 0.0 when the denominator is 0."""
    if denominator == 0:
        return 0.0
    return numerator / denominator


def percentage(part: float, whole: float, ndigits: int = 2) -> float:
    """part / whole * 100 rounded to `ndigits`; 0.0 when whole is 0."""
    return round(safe_divide(part, whole) * 100, ndigits)


def round_amount(value: float, ndigits: int = 2) -> float:
    """Round a money amount or mean for output."""
    return round(value, ndigits)
