"""
UTC time utilities for the price history lookback window.
All timestamps passed to the cloud APIs are timezone-aware UTC.
"""

import datetime
from typing import Optional, Tuple


def utc_now() -> datetime.datetime:
    """
    Return current time in UTC (timezone-aware).

    Returns:
        Current UTC time as a timezone-aware datetime.
    """
    return datetime.datetime.now(datetime.timezone.utc)


def lookback_window(
    minutes: int, end: Optional[datetime.datetime] = None
) -> Tuple[datetime.datetime, datetime.datetime]:
    """
    Return the (start, end) pair covering the trailing number of minutes.

    Parameters:
        minutes: Length of the window in minutes; must be positive.
        end: End of the window; defaults to now. Naive datetimes are assumed to be UTC.

    Returns:
        Tuple of timezone-aware UTC datetimes (start, end).

    Raises:
        ValueError: If minutes is not positive.
    """
    if minutes <= 0:
        raise ValueError(f"Lookback window must be positive, got {minutes} minutes")
    if end is None:
        end = utc_now()
    elif end.tzinfo is None:
        end = end.replace(tzinfo=datetime.timezone.utc)
    end = end.astimezone(datetime.timezone.utc)
    return end - datetime.timedelta(minutes=minutes), end
