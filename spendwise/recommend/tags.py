"""
User Signal Tags

Discrete tags and a flat user-data record derived from a SignalSet. Tags
drive content/offer matching; the record feeds offer eligibility rules.
"""

from typing import Dict, List, Set, Union

from spendwise.features.signals import SignalSet

MONTHS_PER_YEAR = 12


def build_user_tags(signals: SignalSet) -> Set[str]:
    """
    Derive user signal tags from numeric signals.

    Args:
        signals: SignalSet for the recommendation window

    Returns:
        Set of tag names
    """
    credit = signals.credit
    subs = signals.subscriptions
    savings = signals.savings
    income = signals.income
    util = signals.max_utilization
    tags = set()

    if util >= 0.5:
        tags.add('high_utilization')
    elif util >= 0.3:
        tags.add('moderate_utilization')
    if credit.interest_charges > 0:
        tags.add('interest_charges')
    if credit.minimum_payment_only:
        tags.add('minimum_payment_only')
    if credit.any_overdue:
        tags.add('overdue')
    if credit.num_cards > 0 and util < 0.3:
        tags.add('low_utilization')

    if subs.count >= 3:
        tags.add('subscription_heavy')
    if subs.count > 0:
        tags.add('has_subscriptions')

    if savings.net_inflow > 0:
        tags.add('positive_savings')
    if savings.growth_rate >= 0.02:
        tags.add('savings_growth')
    if savings.emergency_fund_coverage < 3:
        tags.add('low_emergency_fund')

    if income.frequency == 'irregular':
        tags.add('variable_income')
    if income.cash_flow_buffer < 1:
        tags.add('low_cash_buffer')

    return tags


def build_user_data(signals: SignalSet) -> Dict[str, Union[float, int, bool]]:
    """Flat numeric/boolean record that eligibility rules are evaluated against."""
    credit = signals.credit
    subs = signals.subscriptions
    savings = signals.savings
    income = signals.income
    return {
        'max_utilization': signals.max_utilization,
        'avg_utilization': credit.avg_utilization,
        'interest_charges': credit.interest_charges,
        'is_overdue': credit.any_overdue,
        'minimum_payment_only': credit.minimum_payment_only,
        'num_credit_cards': credit.num_cards,
        'subscription_count': subs.count,
        'monthly_recurring_spend': subs.monthly_spend,
        'savings_balance': savings.savings_balance,
        'net_savings_inflow': savings.net_inflow,
        'savings_growth_rate': savings.growth_rate,
        'emergency_fund_months': savings.emergency_fund_coverage,
        'monthly_income': income.average_monthly_income,
        'annual_income': round(income.average_monthly_income * MONTHS_PER_YEAR, 2),
        'income_variability': income.income_variability,
        'median_pay_gap_days': income.median_gap_days,
        'cash_flow_buffer_months': income.cash_flow_buffer,
    }


def held_account_types(accounts: List) -> Set[str]:
    """Every account type and subtype the user holds."""
    held = set()
    for account in accounts:
        held.add(account.type)
        if account.subtype:
            held.add(account.subtype)
    return held
