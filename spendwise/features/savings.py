"""
Savings Behavior Module

Analyzes savings patterns and emergency fund adequacy.

Features computed:
- Net inflow to savings-like accounts (monthly rate)
- Savings growth rate over the window
- Emergency fund coverage (months of checking spend)
"""

from typing import List, Literal

from .payload import SignalPayload
from .window_utils import filter_transactions_by_window, monthly_normalize

SAVINGS_ACCOUNT_TYPES = ('savings', 'money_market', 'hsa')


class SavingsSignal(SignalPayload):
    """Savings behavior signals."""
    signal_type: Literal['savings'] = 'savings'
    net_inflow: float = 0.0  # Monthly-normalized net flow into savings
    raw_net_inflow: float = 0.0  # Net flow over the whole window
    growth_rate: float = 0.0  # (current - starting) / starting
    savings_balance: float = 0.0  # Current total savings balance
    monthly_checking_spend: float = 0.0  # Monthly-normalized checking outflow
    emergency_fund_coverage: float = 0.0  # Months of spend covered by savings


def calculate_savings_behavior(
    accounts: List,
    transactions: List,
    window_days: int,
    reference_date=None
) -> SavingsSignal:
    """
    Calculate savings behavior metrics.

    The starting balance is derived backward from the current balance and
    the window's net flow; no balance history is required.

    Args:
        accounts: All of the user's accounts
        transactions: Transactions on those accounts (any range; filtered here)
        window_days: Size of the time window (30 or 180 days)
        reference_date: End date of the window (defaults to today)

    Returns:
        SavingsSignal with calculated metrics
    """
    savings_ids = {a.account_id for a in accounts if a.type in SAVINGS_ACCOUNT_TYPES}
    checking_ids = {a.account_id for a in accounts if a.type == 'checking'}
    window_txns = filter_transactions_by_window(transactions, window_days, reference_date)

    raw_net_inflow = sum(t.amount for t in window_txns if t.account_id in savings_ids)
    savings_balance = sum(
        a.balance_current or 0.0 for a in accounts if a.account_id in savings_ids
    )

    starting_balance = savings_balance - raw_net_inflow
    if starting_balance > 0:
        growth_rate = (savings_balance - starting_balance) / starting_balance
    elif savings_balance > 0:
        growth_rate = 1.0
    else:
        growth_rate = 0.0

    checking_outflow = sum(
        abs(t.amount) for t in window_txns
        if t.account_id in checking_ids and t.amount < 0
    )
    monthly_checking_spend = monthly_normalize(checking_outflow, window_days)

    coverage = 0.0
    if monthly_checking_spend > 0:
        coverage = savings_balance / monthly_checking_spend

    return SavingsSignal(
        window_days=window_days,
        net_inflow=round(monthly_normalize(raw_net_inflow, window_days), 2),
        raw_net_inflow=round(raw_net_inflow, 2),
        growth_rate=round(growth_rate, 4),
        savings_balance=round(savings_balance, 2),
        monthly_checking_spend=round(monthly_checking_spend, 2),
        emergency_fund_coverage=round(coverage, 2),
    )
