"""
Persona Criteria Scoring

Contains functions to score each of the 5 personas. Personas are not
mutually exclusive; each is scored independently in [0, 1].
Each function returns a tuple of (score: float, criteria_met: list).
"""

from typing import Callable, Dict, List, Tuple

from spendwise.features.signals import SignalSet

HIGH_UTILIZATION = 'high_utilization'
VARIABLE_INCOME = 'variable_income'
SUBSCRIPTION_HEAVY = 'subscription_heavy'
SAVINGS_BUILDER = 'savings_builder'
NET_WORTH_MAXIMIZER = 'net_worth_maximizer'

# Fixed order, also used to break score ties
PERSONA_ORDER = (
    HIGH_UTILIZATION,
    VARIABLE_INCOME,
    SUBSCRIPTION_HEAVY,
    SAVINGS_BUILDER,
    NET_WORTH_MAXIMIZER,
)

PERSONA_NAMES = {
    HIGH_UTILIZATION: 'High Utilization',
    VARIABLE_INCOME: 'Variable Income Budgeter',
    SUBSCRIPTION_HEAVY: 'Subscription-Heavy',
    SAVINGS_BUILDER: 'Savings Builder',
    NET_WORTH_MAXIMIZER: 'Net Worth Maximizer',
}

ScoreResult = Tuple[float, List[str]]


def score_high_utilization(signals: SignalSet) -> ScoreResult:
    """
    Score Persona: High Utilization

    Criteria:
    - +0.5 if max utilization >= 80%, else +0.3 if >= 50%
    - +0.2 if interest charges > 0
    - +0.3 if any card is overdue
    - +0.2 if only minimum payments are made
    """
    credit = signals.credit
    score = 0.0
    criteria = []

    if signals.max_utilization >= 0.8:
        score += 0.5
        criteria.append('max_utilization>=0.8')
    elif signals.max_utilization >= 0.5:
        score += 0.3
        criteria.append('max_utilization>=0.5')

    if credit.interest_charges > 0:
        score += 0.2
        criteria.append('interest_charges>0')

    if credit.any_overdue:
        score += 0.3
        criteria.append('overdue')

    if credit.minimum_payment_only:
        score += 0.2
        criteria.append('minimum_payment_only')

    return min(score, 1.0), criteria


def score_variable_income(signals: SignalSet) -> ScoreResult:
    """
    Score Persona: Variable Income Budgeter

    Criteria:
    - 0.7 if median pay gap > 45 days AND cash-flow buffer < 1 month
    - 0.4 if only the pay gap condition holds
    - 0.3 if only the buffer condition holds
    - +0.2 if income frequency is irregular
    """
    income = signals.income
    wide_gap = income.median_gap_days > 45
    thin_buffer = income.cash_flow_buffer < 1
    criteria = []

    if wide_gap and thin_buffer:
        score = 0.7
        criteria += ['median_gap_days>45', 'cash_flow_buffer<1']
    elif wide_gap:
        score = 0.4
        criteria.append('median_gap_days>45')
    elif thin_buffer:
        score = 0.3
        criteria.append('cash_flow_buffer<1')
    else:
        score = 0.0

    if income.frequency == 'irregular':
        score += 0.2
        criteria.append('frequency=irregular')

    return min(score, 1.0), criteria


def score_subscription_heavy(signals: SignalSet) -> ScoreResult:
    """
    Score Persona: Subscription-Heavy

    Criteria:
    - 0.7 if >= 3 recurring merchants AND (monthly spend >= $50 OR share >= 10%)
    - 0.4 if >= 3 recurring merchants alone
    """
    subs = signals.subscriptions
    if subs.count < 3:
        return 0.0, []

    if subs.monthly_spend >= 50:
        return 0.7, ['recurring_merchants>=3', 'monthly_recurring_spend>=50']
    if subs.share_of_total >= 0.1:
        return 0.7, ['recurring_merchants>=3', 'subscription_share>=0.1']
    return 0.4, ['recurring_merchants>=3']


def score_savings_builder(signals: SignalSet) -> ScoreResult:
    """
    Score Persona: Savings Builder

    Criteria (only when max utilization < 30%):
    - 0.7 if savings growth >= 2% OR net inflow >= $200/month
    - 0.4 if net inflow > 0
    """
    if signals.max_utilization >= 0.3:
        return 0.0, []

    savings = signals.savings
    if savings.growth_rate >= 0.02:
        return 0.7, ['max_utilization<0.3', 'savings_growth>=0.02']
    if savings.net_inflow >= 200:
        return 0.7, ['max_utilization<0.3', 'net_inflow>=200']
    if savings.net_inflow > 0:
        return 0.4, ['max_utilization<0.3', 'net_inflow>0']
    return 0.0, []


def savings_rate(signals: SignalSet) -> float:
    """Monthly net savings inflow as a fraction of monthly income."""
    income = signals.income.average_monthly_income
    if income <= 0:
        return 0.0
    return signals.savings.net_inflow / income


def score_net_worth_maximizer(signals: SignalSet) -> ScoreResult:
    """
    Score Persona: Net Worth Maximizer

    Criteria:
    - 0.9 if (savings rate >= 30% OR net savings >= $4,000/month OR liquid
      savings >= $40,000) AND max utilization < 10% AND buffer > 6 months
    - 0.6 if (savings rate >= 20% OR net savings >= $2,000/month) AND max
      utilization < 20% AND buffer > 3 months
    """
    rate = savings_rate(signals)
    net_savings = signals.savings.net_inflow
    liquid = signals.savings.savings_balance
    util = signals.max_utilization
    buffer = signals.income.cash_flow_buffer

    if (rate >= 0.3 or net_savings >= 4000 or liquid >= 40000) and util < 0.1 and buffer > 6:
        criteria = []
        if rate >= 0.3:
            criteria.append('savings_rate>=0.3')
        if net_savings >= 4000:
            criteria.append('net_savings>=4000')
        if liquid >= 40000:
            criteria.append('liquid_savings>=40000')
        return 0.9, criteria + ['max_utilization<0.1', 'cash_flow_buffer>6']

    if (rate >= 0.2 or net_savings >= 2000) and util < 0.2 and buffer > 3:
        criteria = []
        if rate >= 0.2:
            criteria.append('savings_rate>=0.2')
        if net_savings >= 2000:
            criteria.append('net_savings>=2000')
        return 0.6, criteria + ['max_utilization<0.2', 'cash_flow_buffer>3']

    return 0.0, []


PERSONA_SCORERS: Dict[str, Callable[[SignalSet], ScoreResult]] = {
    HIGH_UTILIZATION: score_high_utilization,
    VARIABLE_INCOME: score_variable_income,
    SUBSCRIPTION_HEAVY: score_subscription_heavy,
    SAVINGS_BUILDER: score_savings_builder,
    NET_WORTH_MAXIMIZER: score_net_worth_maximizer,
}


def score_all_personas(signals: SignalSet) -> Dict[str, ScoreResult]:
    """Score every persona for a signal set, in fixed persona order."""
    return {persona: PERSONA_SCORERS[persona](signals) for persona in PERSONA_ORDER}
