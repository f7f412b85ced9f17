"""
Business-Day Deadline Calculator.

Pure-function module.  Weekends are the only non-working days; public
holidays are not modelled.
"""

from __future__ import annotations

from datetime import datetime, timedelta

__all__ = ["add_business_days"]

_SATURDAY: int = 5


def add_business_days(start: datetime, n: int) -> datetime:
    """Return the moment *n* Monday-to-Friday days after *start*.

    Walks forward one calendar day at a time and counts a day only when it
    is a weekday.  The starting day itself is never counted, so a Friday
    start with ``n=1`` lands on Monday.  Time of day and tzinfo are carried
    over unchanged.

    Args:
        start: Upload moment.
        n: Number of business days; ``0`` returns *start*.

    Raises:
        ValueError: If *n* is negative.
    """
    if n < 0:
        raise ValueError(f"Business day count must be non-negative, got {n}")

    current = start
    counted = 0
    while counted < n:
        current += timedelta(days=1)
        if current.weekday() < _SATURDAY:
            counted += 1
    return current
