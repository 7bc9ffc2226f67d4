"""
Subscription Detection Module

Detects recurring merchants and calculates subscription-related metrics.

Features computed:
- Recurring merchants (>=3 outflows in the trailing 90 days at a monthly
  or weekly cadence with consistent amounts)
- Monthly recurring spend
- Subscription share of total spend
"""

import logging
from collections import defaultdict
from datetime import timedelta
from statistics import mean
from typing import Dict, List, Literal, Optional

from .payload import SignalPayload
from .window_utils import filter_transactions_by_window, monthly_normalize, to_date, get_date_range

logger = logging.getLogger(__name__)

LOOKBACK_DAYS = 90
MIN_OCCURRENCES = 3
MONTHLY_GAP_RANGE = (20, 40)
WEEKLY_GAP_RANGE = (2, 12)
AMOUNT_TOLERANCE_PERCENT = 0.10
AMOUNT_TOLERANCE_FLOOR = 5.0
WEEKS_PER_MONTH = 4


class SubscriptionSignal(SignalPayload):
    """Subscription behavior signals."""
    signal_type: Literal['subscription'] = 'subscription'
    count: int = 0  # Number of recurring merchants
    recurring_merchants: List[str] = []  # Sorted merchant names
    cadences: Dict[str, str] = {}  # merchant -> monthly | weekly
    monthly_spend: float = 0.0  # Monthly-normalized recurring spend
    total_monthly_spend: float = 0.0  # Monthly-normalized total outflow in the window
    share_of_total: float = 0.0  # monthly_spend / total_monthly_spend, in [0, 1]


def detect_subscriptions(transactions: List, window_days: int, reference_date=None) -> SubscriptionSignal:
    """
    Detect subscription patterns in transactions.

    Recurrence is always judged on the trailing 90 days before the reference
    date, independent of the window, so a merchant with plenty of older
    history but fewer than three recent charges is not recurring. The window
    only drives the total-spend denominator.

    Args:
        transactions: All of the user's transactions across all accounts
        window_days: Size of the time window (30 or 180 days)
        reference_date: End date of the window (defaults to today)

    Returns:
        SubscriptionSignal with calculated metrics
    """
    _, end_date = get_date_range(window_days, reference_date)
    lookback_start = end_date - timedelta(days=LOOKBACK_DAYS)

    by_merchant = defaultdict(list)
    for txn in transactions:
        if txn.amount >= 0 or not txn.merchant_name:
            continue
        txn_date = to_date(txn.date)
        if lookback_start <= txn_date <= end_date:
            by_merchant[txn.merchant_name].append(txn)

    cadences = {}
    amounts = {}
    for merchant, merchant_txns in by_merchant.items():
        cadence = classify_recurrence(merchant_txns)
        if cadence:
            cadences[merchant] = cadence
            amounts[merchant] = mean(abs(t.amount) for t in merchant_txns)

    monthly_spend = 0.0
    for merchant, cadence in cadences.items():
        multiplier = WEEKS_PER_MONTH if cadence == 'weekly' else 1
        monthly_spend += amounts[merchant] * multiplier

    window_txns = filter_transactions_by_window(transactions, window_days, end_date)
    total_outflow = sum(abs(t.amount) for t in window_txns if t.amount < 0)
    total_monthly_spend = monthly_normalize(total_outflow, window_days)

    share = 0.0
    if total_monthly_spend > 0:
        share = min(monthly_spend / total_monthly_spend, 1.0)

    logger.debug("Detected %d recurring merchants over %dd", len(cadences), window_days)

    return SubscriptionSignal(
        window_days=window_days,
        count=len(cadences),
        recurring_merchants=sorted(cadences),
        cadences=cadences,
        monthly_spend=round(monthly_spend, 2),
        total_monthly_spend=round(total_monthly_spend, 2),
        share_of_total=round(share, 4),
    )


def classify_recurrence(merchant_txns: List) -> Optional[str]:
    """
    Classify a merchant's charges as 'monthly', 'weekly' or not recurring.

    Args:
        merchant_txns: Outflow transactions for a single merchant

    Returns:
        'monthly', 'weekly' or None
    """
    if len(merchant_txns) < MIN_OCCURRENCES:
        return None

    dates = sorted(to_date(t.date) for t in merchant_txns)
    gaps = [(b - a).days for a, b in zip(dates, dates[1:])]

    cadence = None
    if all(MONTHLY_GAP_RANGE[0] <= g <= MONTHLY_GAP_RANGE[1] for g in gaps):
        cadence = 'monthly'
    elif all(WEEKLY_GAP_RANGE[0] <= g <= WEEKLY_GAP_RANGE[1] for g in gaps):
        cadence = 'weekly'
    if cadence is None:
        return None

    if not _amounts_consistent([abs(t.amount) for t in merchant_txns]):
        return None
    return cadence


def _amounts_consistent(values: List[float]) -> bool:
    """Every amount within max(10% of mean, $5) of the mean."""
    avg = mean(values)
    tolerance = max(avg * AMOUNT_TOLERANCE_PERCENT, AMOUNT_TOLERANCE_FLOOR)
    return all(abs(v - avg) <= tolerance for v in values)
