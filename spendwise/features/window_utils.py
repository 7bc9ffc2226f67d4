"""
Time Window Utilities

Helper functions for handling 30-day and 180-day time windows
for feature engineering calculations.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Iterable, List, Tuple

SUPPORTED_WINDOWS = (30, 180)


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the form stored in DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_date(value) -> date:
    """Normalize a date, datetime or ISO string to a date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return datetime.strptime(value[:10], '%Y-%m-%d').date()
    raise TypeError(f"Unsupported date value: {value!r}")


def get_date_range(days: int, reference_date=None) -> Tuple[date, date]:
    """
    Get start and end dates for a time window.

    The window is inclusive on both ends.

    Args:
        days: Number of days in the window (30 or 180)
        reference_date: End date of the window (defaults to today)

    Returns:
        Tuple of (start_date, end_date)
    """
    end_date = date.today() if reference_date is None else to_date(reference_date)
    start_date = end_date - timedelta(days=days)
    return start_date, end_date


def filter_transactions_by_window(transactions: Iterable, days: int, reference_date=None) -> List:
    """
    Filter transactions to only those within the specified time window.

    Args:
        transactions: Transactions to filter
        days: Number of days in the window
        reference_date: End date of the window (defaults to today)

    Returns:
        List of transactions within the time window
    """
    start_date, end_date = get_date_range(days, reference_date)
    return [txn for txn in transactions if start_date <= to_date(txn.date) <= end_date]


def monthly_normalize(total: float, window_days: int) -> float:
    """Convert a window total into a 30-day rate."""
    if window_days <= 0:
        return 0.0
    return total / window_days * 30


def get_window_label(days: int) -> str:
    """Get a human-readable label for a time window."""
    return f"{days}d"
