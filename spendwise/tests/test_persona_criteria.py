"""
Unit Tests for Persona Scoring and Assignment
"""

import pytest

from spendwise.features.credit import CreditSignal
from spendwise.features.income import IncomeSignal
from spendwise.features.savings import SavingsSignal
from spendwise.features.signals import SignalSet
from spendwise.features.subscriptions import SubscriptionSignal
from spendwise.ingest.schema import User
from spendwise.personas.assignment import (
    PersonaMatch,
    assign_and_store_personas,
    assign_persona,
    rank_personas,
    select_personas,
)
from spendwise.personas.criteria import (
    HIGH_UTILIZATION,
    NET_WORTH_MAXIMIZER,
    SAVINGS_BUILDER,
    SUBSCRIPTION_HEAVY,
    VARIABLE_INCOME,
    savings_rate,
    score_high_utilization,
    score_net_worth_maximizer,
    score_savings_builder,
    score_subscription_heavy,
    score_variable_income,
)


def create_signals(max_utilization=0.0, credit=None, income=None, savings=None,
                   subscriptions=None, window_days=30) -> SignalSet:
    """Helper to build a signal set with neutral defaults."""
    return SignalSet(
        user_id='u_test',
        window_days=window_days,
        subscriptions=SubscriptionSignal(window_days=window_days, **(subscriptions or {})),
        savings=SavingsSignal(window_days=window_days, **(savings or {})),
        credit=CreditSignal(window_days=window_days, **(credit or {})),
        income=IncomeSignal(
            window_days=window_days,
            **(income or {'frequency': 'bi_weekly', 'median_gap_days': 14.0, 'cash_flow_buffer': 2.0})
        ),
        max_utilization=max_utilization,
    )


class TestHighUtilization:
    """Tests for High Utilization scoring."""

    def test_critical_utilization_with_interest(self):
        signals = create_signals(max_utilization=0.85, credit={'interest_charges': 30.0})

        score, criteria = score_high_utilization(signals)

        assert score == pytest.approx(0.7)
        assert criteria == ['max_utilization>=0.8', 'interest_charges>0']

    def test_high_utilization_with_minimum_payments(self):
        signals = create_signals(
            max_utilization=0.68,
            credit={'interest_charges': 45.0, 'minimum_payment_only': True},
        )

        score, _ = score_high_utilization(signals)

        assert score == pytest.approx(0.7)

    def test_score_capped_at_one(self):
        signals = create_signals(
            max_utilization=0.9,
            credit={'interest_charges': 45.0, 'minimum_payment_only': True, 'any_overdue': True},
        )

        score, _ = score_high_utilization(signals)

        assert score == 1.0

    def test_monotonic_in_utilization(self):
        credit = {'interest_charges': 10.0, 'minimum_payment_only': True, 'any_overdue': True}
        scores = [
            score_high_utilization(create_signals(max_utilization=u, credit=credit))[0]
            for u in (0.0, 0.3, 0.5, 0.79, 0.8, 1.5)
        ]

        assert scores == sorted(scores)
        assert max(scores) <= 1.0

    def test_low_utilization_scores_zero(self):
        score, criteria = score_high_utilization(create_signals(max_utilization=0.2))

        assert score == 0.0
        assert criteria == []


class TestVariableIncome:
    """Tests for Variable Income Budgeter scoring."""

    def test_wide_gap_and_thin_buffer(self):
        signals = create_signals(income={
            'frequency': 'irregular', 'median_gap_days': 60.0, 'cash_flow_buffer': 0.5,
        })

        score, criteria = score_variable_income(signals)

        assert score == pytest.approx(0.9)
        assert 'frequency=irregular' in criteria

    def test_wide_gap_only(self):
        signals = create_signals(income={
            'frequency': 'monthly', 'median_gap_days': 50.0, 'cash_flow_buffer': 3.0,
        })

        assert score_variable_income(signals)[0] == pytest.approx(0.4)

    def test_thin_buffer_only(self):
        signals = create_signals(income={
            'frequency': 'bi_weekly', 'median_gap_days': 14.0, 'cash_flow_buffer': 0.5,
        })

        assert score_variable_income(signals)[0] == pytest.approx(0.3)

    def test_stable_income(self):
        assert score_variable_income(create_signals())[0] == 0.0


class TestSubscriptionHeavy:
    """Tests for Subscription-Heavy scoring."""

    def test_three_merchants_with_spend(self):
        signals = create_signals(subscriptions={'count': 3, 'monthly_spend': 60.0})

        assert score_subscription_heavy(signals)[0] == 0.7

    def test_three_merchants_with_share(self):
        signals = create_signals(subscriptions={
            'count': 3, 'monthly_spend': 30.0, 'share_of_total': 0.15,
        })

        score, criteria = score_subscription_heavy(signals)

        assert score == 0.7
        assert 'subscription_share>=0.1' in criteria

    def test_three_merchants_only(self):
        signals = create_signals(subscriptions={
            'count': 3, 'monthly_spend': 30.0, 'share_of_total': 0.05,
        })

        assert score_subscription_heavy(signals)[0] == 0.4

    def test_two_merchants_scores_zero(self):
        signals = create_signals(subscriptions={'count': 2, 'monthly_spend': 300.0})

        assert score_subscription_heavy(signals)[0] == 0.0


class TestSavingsBuilder:
    """Tests for Savings Builder scoring."""

    def test_growth_rate(self):
        signals = create_signals(max_utilization=0.1, savings={'growth_rate': 0.05})

        assert score_savings_builder(signals)[0] == 0.7

    def test_net_inflow_threshold(self):
        signals = create_signals(savings={'net_inflow': 250.0, 'growth_rate': 0.01})

        assert score_savings_builder(signals)[0] == 0.7

    def test_small_positive_inflow(self):
        signals = create_signals(savings={'net_inflow': 50.0, 'growth_rate': 0.01})

        assert score_savings_builder(signals)[0] == 0.4

    def test_requires_low_utilization(self):
        signals = create_signals(max_utilization=0.3, savings={'growth_rate': 0.05})

        assert score_savings_builder(signals)[0] == 0.0


class TestNetWorthMaximizer:
    """Tests for Net Worth Maximizer scoring."""

    def test_top_tier_liquid_savings(self):
        signals = create_signals(
            max_utilization=0.05,
            savings={'savings_balance': 50000.0},
            income={'cash_flow_buffer': 8.0, 'average_monthly_income': 10000.0},
        )

        score, criteria = score_net_worth_maximizer(signals)

        assert score == 0.9
        assert 'liquid_savings>=40000' in criteria

    def test_middle_tier_savings_rate(self):
        signals = create_signals(
            max_utilization=0.15,
            savings={'net_inflow': 1500.0},
            income={'cash_flow_buffer': 4.0, 'average_monthly_income': 6000.0},
        )

        assert savings_rate(signals) == pytest.approx(0.25)
        assert score_net_worth_maximizer(signals)[0] == 0.6

    def test_high_utilization_blocks(self):
        signals = create_signals(
            max_utilization=0.25,
            savings={'savings_balance': 50000.0, 'net_inflow': 5000.0},
            income={'cash_flow_buffer': 8.0, 'average_monthly_income': 10000.0},
        )

        assert score_net_worth_maximizer(signals)[0] == 0.0

    def test_savings_rate_without_income(self):
        signals = create_signals(savings={'net_inflow': 500.0}, income={})

        assert savings_rate(signals) == 0.0


class TestAssignment:
    """Tests for primary and secondary selection."""

    def test_ties_broken_by_fixed_order(self):
        scores = {
            SUBSCRIPTION_HEAVY: (0.7, ['a']),
            HIGH_UTILIZATION: (0.7, ['b']),
            SAVINGS_BUILDER: (0.0, []),
        }

        ranked = rank_personas(scores)

        assert [m.persona_type for m in ranked] == [HIGH_UTILIZATION, SUBSCRIPTION_HEAVY]

    def test_secondary_requires_minimum_score(self):
        ranked = [
            PersonaMatch(HIGH_UTILIZATION, 0.7, []),
            PersonaMatch(VARIABLE_INCOME, 0.2, []),
        ]

        primary, secondary = select_personas(ranked)

        assert primary.persona_type == HIGH_UTILIZATION
        assert secondary is None

    def test_net_worth_maximizer_takes_primary(self):
        ranked = [
            PersonaMatch(SAVINGS_BUILDER, 0.7, []),
            PersonaMatch(NET_WORTH_MAXIMIZER, 0.6, []),
        ]

        primary, secondary = select_personas(ranked)

        assert primary.persona_type == NET_WORTH_MAXIMIZER
        assert secondary.persona_type == SAVINGS_BUILDER

    def test_default_persona_when_nothing_scores(self):
        primary, secondary = select_personas([])

        assert primary.persona_type == SAVINGS_BUILDER
        assert primary.score == 0.1
        assert primary.criteria_met == ['default']
        assert secondary is None

    def test_assign_persona_builds_full_result(self):
        signals = create_signals(
            max_utilization=0.68,
            credit={'interest_charges': 45.0, 'minimum_payment_only': True},
            subscriptions={'count': 3, 'monthly_spend': 44.97, 'share_of_total': 0.02},
        )

        assignment = assign_persona(signals)

        assert assignment.primary.persona_type == HIGH_UTILIZATION
        assert assignment.secondary.persona_type == SUBSCRIPTION_HEAVY
        assert assignment.secondary.score == 0.4
        assert set(assignment.all_scores) == {
            HIGH_UTILIZATION, VARIABLE_INCOME, SUBSCRIPTION_HEAVY, SAVINGS_BUILDER, NET_WORTH_MAXIMIZER,
        }
        assert [e['rank'] for e in assignment.to_entries()] == [1, 2]


class TestPersonaStorage:
    """Tests for persisting persona assignments."""

    def test_reassignment_replaces_rows(self, store):
        store_user = 'u_persona'
        store.session.add(User(user_id=store_user, name='Persona Test', consent_status=True))
        store.session.flush()

        high = create_signals(max_utilization=0.85, credit={'interest_charges': 30.0})
        high.user_id = store_user
        assign_and_store_personas(store, {30: high})

        low = create_signals()
        low.user_id = store_user
        assign_and_store_personas(store, {30: low})

        rows = store.get_personas(store_user, 30)
        assert len(rows) == 1
        assert rows[0].persona_type == SAVINGS_BUILDER
        assert rows[0].rank == 1
