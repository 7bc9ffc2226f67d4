"""
Unit Tests for Credit Utilization Analysis
"""

from datetime import date, timedelta

import pytest

from spendwise.features.credit import (
    calculate_credit_utilization,
    card_utilization,
    max_card_utilization,
    utilization_tier,
)
from spendwise.ingest.schema import Account, Liability, Transaction

REF = date(2024, 6, 30)


def create_card(account_id: str, balance: float, limit, name: str = None) -> Account:
    """Helper to create a credit card account."""
    acc = Account()
    acc.account_id = account_id
    acc.type = 'credit_card'
    acc.name = name
    acc.balance_current = balance
    acc.credit_limit = limit
    return acc


def create_liability(account_id: str, minimum: float, overdue: bool = False) -> Liability:
    """Helper to create a credit card liability."""
    lib = Liability()
    lib.account_id = account_id
    lib.minimum_payment_amount = minimum
    lib.is_overdue = overdue
    return lib


def create_payment(account_id: str, amount: float, days_ago: int) -> Transaction:
    """Helper to create a card payment."""
    txn = Transaction()
    txn.transaction_id = f"pay_{account_id}_{days_ago}"
    txn.account_id = account_id
    txn.amount = amount
    txn.date = REF - timedelta(days=days_ago)
    txn.merchant_name = 'Card Payment'
    txn.category_primary = 'LOAN_PAYMENTS'
    txn.category_detailed = 'LOAN_PAYMENTS_CREDIT_CARD_PAYMENT'
    return txn


def create_charge(account_id: str, merchant: str, amount: float, days_ago: int) -> Transaction:
    """Helper to create a card charge."""
    txn = Transaction()
    txn.transaction_id = f"chg_{account_id}_{merchant}_{days_ago}"
    txn.account_id = account_id
    txn.amount = amount
    txn.date = REF - timedelta(days=days_ago)
    txn.merchant_name = merchant
    txn.category_primary = 'GENERAL_MERCHANDISE'
    txn.category_detailed = None
    return txn


class TestUtilizationTiers:
    """Tests for utilization tier thresholds."""

    @pytest.mark.parametrize("value,tier", [
        (0.0, 'low'),
        (0.29, 'low'),
        (0.3, 'medium'),
        (0.49, 'medium'),
        (0.5, 'high'),
        (0.8, 'critical'),
        (1.2, 'critical'),
    ])
    def test_tier_boundaries(self, value, tier):
        assert utilization_tier(value) == tier

    def test_card_without_limit_ignored(self):
        assert card_utilization(create_card('c1', 500.0, 0)) is None
        assert card_utilization(create_card('c2', 500.0, None)) is None

    def test_max_card_utilization(self):
        cards = [create_card('c1', 250.0, 1000.0), create_card('c2', 700.0, 1000.0)]
        assert max_card_utilization(cards) == pytest.approx(0.7)

    def test_max_card_utilization_no_cards(self):
        assert max_card_utilization([]) == 0.0


class TestCreditUtilization:
    """Tests for the credit signal calculation."""

    def test_two_cards_average_and_max(self):
        cards = [create_card('c1', 250.0, 1000.0), create_card('c2', 700.0, 1000.0)]

        result = calculate_credit_utilization(cards, [], [], 30, REF)

        assert result.num_cards == 2
        assert result.max_utilization == pytest.approx(0.7)
        assert result.avg_utilization == pytest.approx(0.475)
        assert result.utilization_flag == 'high'
        assert result.card_utilizations == {'c1': 0.25, 'c2': 0.7}

    def test_no_cards(self):
        """No credit cards gives the 'none' tier."""
        result = calculate_credit_utilization([], [], [], 30, REF)

        assert result.num_cards == 0
        assert result.utilization_flag == 'none'
        assert result.minimum_payment_only is False

    def test_minimum_payment_only(self):
        cards = [create_card('c1', 3400.0, 5000.0)]
        libs = [create_liability('c1', 100.0)]
        txns = [create_payment('c1', 100.0, d) for d in (3, 33, 63)]

        result = calculate_credit_utilization(cards, libs, txns, 180, REF)

        assert result.minimum_payment_only is True

    def test_larger_payment_breaks_minimum_only(self):
        cards = [create_card('c1', 3400.0, 5000.0)]
        libs = [create_liability('c1', 100.0)]
        txns = [
            create_payment('c1', 100.0, 3),
            create_payment('c1', 500.0, 33),
            create_payment('c1', 100.0, 63),
        ]

        result = calculate_credit_utilization(cards, libs, txns, 180, REF)

        assert result.minimum_payment_only is False

    def test_only_three_most_recent_payments_count(self):
        cards = [create_card('c1', 3400.0, 5000.0)]
        libs = [create_liability('c1', 100.0)]
        txns = [create_payment('c1', 105.0, d) for d in (3, 33, 63)]
        txns.append(create_payment('c1', 900.0, 93))

        result = calculate_credit_utilization(cards, libs, txns, 180, REF)

        assert result.minimum_payment_only is True

    def test_no_payments_not_minimum_only(self):
        cards = [create_card('c1', 3400.0, 5000.0)]
        libs = [create_liability('c1', 100.0)]

        result = calculate_credit_utilization(cards, libs, [], 30, REF)

        assert result.minimum_payment_only is False

    def test_interest_charges_normalized(self):
        cards = [create_card('c1', 3400.0, 5000.0)]
        txns = [
            create_charge('c1', 'Interest Charge', -45.0, 10),
            create_charge('c1', 'Interest Charge', -45.0, 40),
            create_charge('c1', 'Grocery Mart', -80.0, 12),
        ]

        assert calculate_credit_utilization(cards, [], txns, 30, REF).interest_charges == 45.0
        assert calculate_credit_utilization(cards, [], txns, 180, REF).interest_charges == 15.0

    def test_interest_match_is_case_sensitive(self):
        cards = [create_card('c1', 3400.0, 5000.0)]
        txns = [create_charge('c1', 'interest charge', -45.0, 10)]

        result = calculate_credit_utilization(cards, [], txns, 30, REF)

        assert result.interest_charges == 0.0

    def test_any_overdue(self):
        cards = [create_card('c1', 100.0, 5000.0), create_card('c2', 100.0, 5000.0)]
        libs = [create_liability('c1', 25.0), create_liability('c2', 25.0, overdue=True)]

        result = calculate_credit_utilization(cards, libs, [], 30, REF)

        assert result.any_overdue is True
        assert result.utilization_flag == 'low'
