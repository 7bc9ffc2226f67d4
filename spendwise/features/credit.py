"""
Credit Utilization Module

Analyzes credit card usage patterns and payment behavior.

Features computed:
- Per-card utilization (balance / limit)
- Max and average utilization across cards
- Utilization tier (none, low, medium, high, critical)
- Minimum-payment-only detection
- Interest charges (monthly rate)
- Overdue status
"""

from typing import Dict, List, Literal, Optional

from .payload import SignalPayload
from .window_utils import filter_transactions_by_window, monthly_normalize, to_date

UTILIZATION_TIERS = (
    (0.8, 'critical'),
    (0.5, 'high'),
    (0.3, 'medium'),
)
INTEREST_MARKER = 'Interest'
PAYMENT_CATEGORY_DETAILED = 'LOAN_PAYMENTS_CREDIT_CARD_PAYMENT'
PAYMENT_CATEGORY_PRIMARY = 'LOAN_PAYMENTS'
RECENT_PAYMENTS = 3
MINIMUM_PAYMENT_TOLERANCE = 0.10


class CreditSignal(SignalPayload):
    """Credit utilization and payment behavior signals."""
    signal_type: Literal['credit'] = 'credit'
    card_utilizations: Dict[str, float] = {}  # account_id -> utilization ratio
    max_utilization: float = 0.0
    avg_utilization: float = 0.0
    utilization_flag: Literal['none', 'low', 'medium', 'high', 'critical'] = 'none'
    interest_charges: float = 0.0  # Monthly-normalized interest paid
    minimum_payment_only: bool = False
    any_overdue: bool = False
    num_cards: int = 0


def card_utilization(account) -> Optional[float]:
    """Utilization ratio for a credit card, or None if it has no usable limit."""
    if account.type != 'credit_card' or not account.credit_limit or account.credit_limit <= 0:
        return None
    return (account.balance_current or 0.0) / account.credit_limit


def max_card_utilization(accounts: List) -> float:
    """Highest utilization across the user's credit cards (0 if none)."""
    values = [u for u in (card_utilization(a) for a in accounts) if u is not None]
    return max(values) if values else 0.0


def utilization_tier(max_utilization: float) -> str:
    """Map a utilization ratio to its tier label."""
    for threshold, label in UTILIZATION_TIERS:
        if max_utilization >= threshold:
            return label
    return 'low'


def calculate_credit_utilization(
    accounts: List,
    liabilities: List,
    transactions: List,
    window_days: int,
    reference_date=None
) -> CreditSignal:
    """
    Calculate credit utilization and payment behavior metrics.

    Args:
        accounts: All of the user's accounts (non-card accounts are ignored)
        liabilities: Liability records for the user's credit cards
        transactions: Transactions on the user's accounts (filtered here)
        window_days: Size of the time window (30 or 180 days)
        reference_date: End date of the window (defaults to today)

    Returns:
        CreditSignal with calculated metrics
    """
    cards = [a for a in accounts if a.type == 'credit_card']
    if not cards:
        return CreditSignal(window_days=window_days)

    utilizations = {}
    for card in cards:
        util = card_utilization(card)
        if util is not None:
            utilizations[card.account_id] = round(util, 4)

    values = list(utilizations.values())
    max_util = max(values) if values else 0.0
    avg_util = sum(values) / len(values) if values else 0.0

    card_ids = {c.account_id for c in cards}
    card_txns = [
        t for t in filter_transactions_by_window(transactions, window_days, reference_date)
        if t.account_id in card_ids
    ]

    interest_total = sum(
        abs(t.amount) for t in card_txns
        if t.amount < 0 and t.merchant_name and INTEREST_MARKER in t.merchant_name
    )

    first_liability = _liability_for(cards[0], liabilities)
    minimum_payment_only = _detect_minimum_payment_only(first_liability, card_txns)

    return CreditSignal(
        window_days=window_days,
        card_utilizations=utilizations,
        max_utilization=round(max_util, 4),
        avg_utilization=round(avg_util, 4),
        utilization_flag=utilization_tier(max_util),
        interest_charges=round(monthly_normalize(interest_total, window_days), 2),
        minimum_payment_only=minimum_payment_only,
        any_overdue=any(bool(lib.is_overdue) for lib in liabilities),
        num_cards=len(cards),
    )


def _liability_for(account, liabilities: List):
    for lib in liabilities:
        if lib.account_id == account.account_id:
            return lib
    return None


def _is_card_payment(txn) -> bool:
    return txn.amount > 0 and (
        txn.category_detailed == PAYMENT_CATEGORY_DETAILED
        or txn.category_primary == PAYMENT_CATEGORY_PRIMARY
    )


def _detect_minimum_payment_only(liability, card_txns: List) -> bool:
    """
    Check whether the most recent card payments all sit at the minimum.

    Only the first card's on-file minimum is compared against, even when
    the payments were made to other cards.
    """
    if liability is None or not liability.minimum_payment_amount:
        return False

    payments = sorted(
        (t for t in card_txns if _is_card_payment(t)),
        key=lambda t: to_date(t.date),
        reverse=True,
    )[:RECENT_PAYMENTS]
    if not payments:
        return False

    minimum = liability.minimum_payment_amount
    return all(
        abs(p.amount - minimum) <= minimum * MINIMUM_PAYMENT_TOLERANCE
        for p in payments
    )
