"""
Main Signals Orchestrator

Loads a user's accounts and transactions through the data store, runs every
analyzer, and persists the resulting payloads for both 30-day and 180-day
windows.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Annotated, Dict, Union

from pydantic import Field, TypeAdapter, ValidationError

from .window_utils import SUPPORTED_WINDOWS, get_date_range, utcnow
from .subscriptions import detect_subscriptions, SubscriptionSignal, LOOKBACK_DAYS
from .savings import calculate_savings_behavior, SavingsSignal
from .credit import calculate_credit_utilization, max_card_utilization, CreditSignal
from .income import calculate_income_stability, IncomeSignal

logger = logging.getLogger(__name__)

SIGNAL_TYPES = ('subscription', 'savings', 'credit', 'income')

AnySignal = Annotated[
    Union[SubscriptionSignal, SavingsSignal, CreditSignal, IncomeSignal],
    Field(discriminator='signal_type'),
]
_signal_adapter = TypeAdapter(AnySignal)


def parse_signal(data: dict):
    """
    Validate a stored payload and return the matching signal model.

    Raises:
        pydantic.ValidationError: if the payload is malformed or untagged
    """
    return _signal_adapter.validate_python(data)


@dataclass
class SignalSet:
    """
    Complete set of behavioral signals for a user.

    Contains signals for a specific time window (30d or 180d), plus the max
    credit utilization read straight from account balances.
    """
    user_id: str
    window_days: int
    subscriptions: SubscriptionSignal
    savings: SavingsSignal
    credit: CreditSignal
    income: IncomeSignal
    max_utilization: float = 0.0
    calculated_at: datetime = field(default_factory=utcnow)

    def payloads(self) -> Dict[str, object]:
        """Signal payloads keyed by signal type."""
        return {
            'subscription': self.subscriptions,
            'savings': self.savings,
            'credit': self.credit,
            'income': self.income,
        }

    def to_dict(self) -> dict:
        """Convert to dictionary for storage and trace snapshots."""
        return {
            'user_id': self.user_id,
            'window_days': self.window_days,
            'calculated_at': self.calculated_at.isoformat(),
            'max_utilization': self.max_utilization,
            'subscription': self.subscriptions.to_dict(),
            'savings': self.savings.to_dict(),
            'credit': self.credit.to_dict(),
            'income': self.income.to_dict(),
        }


def calculate_signals(store, user_id: str, window_days: int = 30, reference_date=None) -> SignalSet:
    """
    Calculate all behavioral signals for a user and one window.

    Args:
        store: FinancialDataStore to read accounts and transactions from
        user_id: User ID
        window_days: Size of the time window (30 or 180 days)
        reference_date: End date of the window (defaults to today)

    Returns:
        SignalSet for the window
    """
    if window_days not in SUPPORTED_WINDOWS:
        raise ValueError(f"Unsupported window: {window_days} (expected one of {SUPPORTED_WINDOWS})")

    _, end_date = get_date_range(window_days, reference_date)
    start_date = end_date - timedelta(days=max(window_days, LOOKBACK_DAYS))

    accounts = store.get_accounts(user_id)
    account_ids = [a.account_id for a in accounts]
    transactions = store.get_transactions(account_ids, start_date, end_date)
    liabilities = [
        lib for lib in (store.get_liability(a.account_id) for a in accounts if a.type == 'credit_card')
        if lib is not None
    ]

    return SignalSet(
        user_id=user_id,
        window_days=window_days,
        subscriptions=detect_subscriptions(transactions, window_days, end_date),
        savings=calculate_savings_behavior(accounts, transactions, window_days, end_date),
        credit=calculate_credit_utilization(accounts, liabilities, transactions, window_days, end_date),
        income=calculate_income_stability(accounts, transactions, window_days, end_date),
        max_utilization=round(max_card_utilization(accounts), 4),
    )


def compute_and_store_signals(store, user_id: str, reference_date=None) -> Dict[int, SignalSet]:
    """
    Calculate and persist signals for both windows.

    Each (user, signal type, window) payload is replaced as a whole.

    Returns:
        Dict mapping window_days to SignalSet
    """
    results = {}
    for window_days in SUPPORTED_WINDOWS:
        signal_set = calculate_signals(store, user_id, window_days, reference_date)
        for signal_type, payload in signal_set.payloads().items():
            store.upsert_signal(
                user_id, signal_type, window_days, payload.to_dict(), payload.schema_version
            )
        results[window_days] = signal_set
        logger.debug("Stored %dd signals for %s", window_days, user_id)
    return results


def load_signal_payloads(store, user_id: str, window_days: int) -> Dict[str, object]:
    """
    Load stored payloads for a user and window, skipping malformed ones.

    Returns:
        Dict mapping signal type to validated payload model
    """
    loaded = {}
    for signal_type, data in store.get_signals(user_id, window_days).items():
        try:
            loaded[signal_type] = parse_signal(data)
        except ValidationError as exc:
            logger.debug("Skipping malformed %s signal for %s: %s", signal_type, user_id, exc)
    return loaded


def count_detected_payloads(payloads: Dict[str, object]) -> int:
    """Number of signal payloads showing any detected behavior."""
    detected = 0
    sub = payloads.get('subscription')
    if sub is not None and sub.count > 0:
        detected += 1
    sav = payloads.get('savings')
    if sav is not None and (sav.savings_balance > 0 or sav.raw_net_inflow != 0):
        detected += 1
    cred = payloads.get('credit')
    if cred is not None and cred.num_cards > 0:
        detected += 1
    inc = payloads.get('income')
    if inc is not None and inc.average_monthly_income > 0:
        detected += 1
    return detected
