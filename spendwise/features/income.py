"""
Income Stability Module

Analyzes income patterns and cash flow stability on checking accounts.

Features computed:
- Payroll frequency (weekly, bi_weekly, monthly, irregular)
- Median pay gap in days
- Income variability (coefficient of variation)
- Cash-flow buffer in months
- Average monthly income
"""

from statistics import mean, median, pstdev
from typing import List, Literal

from .payload import SignalPayload
from .window_utils import filter_transactions_by_window, monthly_normalize, to_date

INCOME_MIN_AMOUNT = 500.0
INCOME_CATEGORY = 'INCOME'
PAYROLL_KEYWORDS = ('payroll', 'direct deposit', 'adp', 'paychex', 'salary')

FREQUENCY_BANDS = (
    ('weekly', 6, 9),
    ('bi_weekly', 12, 18),
    ('monthly', 25, 35),
)


class IncomeSignal(SignalPayload):
    """Income stability signals."""
    signal_type: Literal['income'] = 'income'
    frequency: Literal['weekly', 'bi_weekly', 'monthly', 'irregular'] = 'irregular'
    median_gap_days: float = 0.0
    income_variability: float = 0.0  # Population std dev / mean of payroll amounts
    cash_flow_buffer: float = 0.0  # Months of checking spend covered by checking balance
    average_monthly_income: float = 0.0
    payroll_count: int = 0


def is_payroll(txn) -> bool:
    """True if the merchant name looks like a payroll deposit."""
    name = (txn.merchant_name or '').lower()
    return any(keyword in name for keyword in PAYROLL_KEYWORDS)


def classify_frequency(median_gap: float) -> str:
    """Map a median pay gap in days to a frequency label."""
    for label, low, high in FREQUENCY_BANDS:
        if low <= median_gap <= high:
            return label
    return 'irregular'


def calculate_income_stability(
    accounts: List,
    transactions: List,
    window_days: int,
    reference_date=None
) -> IncomeSignal:
    """
    Calculate income stability metrics.

    A user with no payroll-like deposits gets an 'irregular' signal with
    no gap or variability; the income average and cash-flow buffer still apply.

    Args:
        accounts: All of the user's accounts (only checking is used)
        transactions: Transactions on those accounts (filtered here)
        window_days: Size of the time window (30 or 180 days)
        reference_date: End date of the window (defaults to today)

    Returns:
        IncomeSignal with calculated metrics
    """
    checking = [a for a in accounts if a.type == 'checking']
    checking_ids = {a.account_id for a in checking}
    window_txns = [
        t for t in filter_transactions_by_window(transactions, window_days, reference_date)
        if t.account_id in checking_ids
    ]

    income_txns = [
        t for t in window_txns
        if t.amount > INCOME_MIN_AMOUNT and t.category_primary == INCOME_CATEGORY
    ]
    average_monthly_income = monthly_normalize(sum(t.amount for t in income_txns), window_days)

    checking_balance = sum(a.balance_current or 0.0 for a in checking)
    monthly_outflow = monthly_normalize(
        sum(abs(t.amount) for t in window_txns if t.amount < 0), window_days
    )
    buffer = checking_balance / monthly_outflow if monthly_outflow > 0 else 0.0

    payroll = sorted((t for t in income_txns if is_payroll(t)), key=lambda t: to_date(t.date))
    if not payroll:
        return IncomeSignal(
            window_days=window_days,
            cash_flow_buffer=round(buffer, 2),
            average_monthly_income=round(average_monthly_income, 2),
        )

    dates = [to_date(t.date) for t in payroll]
    gaps = [(b - a).days for a, b in zip(dates, dates[1:])]
    median_gap = float(median(gaps)) if gaps else 0.0

    amounts = [t.amount for t in payroll]
    avg_amount = mean(amounts)
    variability = pstdev(amounts) / avg_amount if avg_amount else 0.0

    return IncomeSignal(
        window_days=window_days,
        frequency=classify_frequency(median_gap) if gaps else 'irregular',
        median_gap_days=median_gap,
        income_variability=round(variability, 4),
        cash_flow_buffer=round(buffer, 2),
        average_monthly_income=round(average_monthly_income, 2),
        payroll_count=len(payroll),
    )
