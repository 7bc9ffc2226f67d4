"""
Rationale Generator

Plain-language explanations of why a recommendation was made, filled in
with the user's own numbers. Templates are tried in priority order; any
template that cannot be fully rendered is skipped for the next one, so
output never contains an unfilled ``{placeholder}``.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from spendwise.exceptions import TemplateRenderError
from spendwise.features.credit import card_utilization
from spendwise.features.signals import SignalSet

logger = logging.getLogger(__name__)

PLACEHOLDER_PATTERN = re.compile(r"\{[^{}]*\}")
SUBSCRIPTION_CANCELLATION_RATE = 0.4

CREDIT_TOPICS = {'credit', 'utilization', 'debt'}
CREDIT_TAGS = {'high_utilization', 'moderate_utilization', 'interest_charges', 'minimum_payment_only', 'overdue'}
SUBSCRIPTION_TOPICS = {'subscriptions'}
SUBSCRIPTION_TAGS = {'subscription_heavy', 'has_subscriptions'}
SAVINGS_TOPICS = {'savings', 'emergency_fund'}
SAVINGS_TAGS = {'positive_savings', 'savings_growth', 'low_emergency_fund'}
INCOME_TOPICS = {'income', 'budgeting'}
INCOME_TAGS = {'variable_income', 'low_cash_buffer'}

EDUCATION_TEMPLATES = {
    'edu_credit_utilization': (
        "Your {card_name} is at {utilization_pct}% utilization (${balance} balance). "
        "Utilization above 30% is one of the factors credit scores weigh, and "
        "\"{title}\" walks through ways people bring it down."
    ),
    'edu_subscription_audit': (
        "We noticed {subscription_count} recurring subscriptions adding up to about "
        "${monthly_spend} a month. Trimming 40% of them could free up roughly "
        "${projected_savings} each month, and \"{title}\" has a simple checklist for reviewing them."
    ),
    'edu_savings_coverage': (
        "Your savings of ${savings_balance} cover about {coverage_months} months of typical "
        "spending. \"{title}\" looks at how people set emergency fund targets."
    ),
    'edu_income_buffer': (
        "Your income arrives on a {frequency} pattern and your checking balance covers about "
        "{buffer_months} months of expenses. \"{title}\" covers budgeting approaches built "
        "around uneven deposits."
    ),
    'edu_generic': "\"{title}\" was selected based on your recent financial activity.",
}

PERSONA_TEMPLATES = {
    'high_utilization': (
        "Based on your recent credit card activity, \"{title}\" may help you think through "
        "ways to manage balances and interest."
    ),
    'variable_income': (
        "Since your deposits vary from month to month, \"{title}\" offers ideas for planning "
        "around uneven income."
    ),
    'subscription_heavy': (
        "With several recurring charges on your accounts, \"{title}\" can help you keep them in view."
    ),
    'savings_builder': (
        "You have been building savings, and \"{title}\" has ideas for keeping that momentum."
    ),
    'net_worth_maximizer': (
        "With a solid savings cushion in place, \"{title}\" explores options for putting "
        "surplus cash to work."
    ),
}

OFFER_TEMPLATES = {
    'offer_utilization': (
        "With your highest card utilization at {utilization_pct}%, {offer_title} from "
        "{provider} is one option {benefit}."
    ),
    'offer_subscriptions': (
        "You have {subscription_count} recurring subscriptions, and {offer_title} from "
        "{provider} is one option {benefit}."
    ),
    'offer_generic': (
        "{offer_title} from {provider} matches your current financial profile and is one "
        "option {benefit}."
    ),
}

PERSONA_BENEFITS = {
    'high_utilization': "that some people use to lower interest costs while paying down balances",
    'variable_income': "that can help smooth out uneven months",
    'subscription_heavy': "for keeping recurring charges visible",
    'savings_builder': "that can help your savings grow",
    'net_worth_maximizer': "for putting surplus savings to work",
}
DEFAULT_BENEFIT = "worth comparing with what you have today"


@dataclass
class RationaleResult:
    """Rendered rationale with the template and values that produced it."""
    text: str
    template_id: str
    variables: Dict[str, str] = field(default_factory=dict)


def _sanitize(value) -> str:
    return str(value).replace("{", "").replace("}", "")


def render_template(template: str, variables: Dict[str, object]) -> str:
    """
    Substitute variables into a template.

    Raises:
        TemplateRenderError: if a placeholder is missing or left unfilled
    """
    clean = {key: _sanitize(value) for key, value in variables.items()}
    try:
        text = template.format_map(clean)
    except (KeyError, IndexError, ValueError) as exc:
        raise TemplateRenderError(f"Cannot render template: {exc}") from exc
    if PLACEHOLDER_PATTERN.search(text):
        raise TemplateRenderError(f"Unfilled placeholder in: {text}")
    return text


def card_display_name(account) -> str:
    """Human-readable card name, e.g. 'Visa ending in 4523' or 'card ending in 4523'."""
    last_four = str(account.account_id)[-4:]
    if getattr(account, 'name', None):
        return account.name
    return f"card ending in {last_four}"


def highest_utilization_card(accounts: List) -> Optional[Tuple[object, float]]:
    """The credit card with the highest utilization, with that utilization."""
    best = None
    for account in accounts:
        util = card_utilization(account)
        if util is not None and (best is None or util > best[1]):
            best = (account, util)
    return best


def _money(value: float) -> str:
    return f"{value:,.2f}"


def _tags(item) -> set:
    return set(item.topic_tags or []) | set(item.signal_tags or [])


def _credit_variables(item, signals: SignalSet, accounts: List) -> Optional[dict]:
    tags = _tags(item)
    if not (tags & CREDIT_TOPICS or tags & CREDIT_TAGS):
        return None
    card = highest_utilization_card(accounts)
    if card is None:
        return None
    account, util = card
    return {
        'card_name': card_display_name(account),
        'utilization_pct': f"{util * 100:.0f}",
        'balance': _money(account.balance_current or 0.0),
    }


def _subscription_variables(item, signals: SignalSet, accounts: List) -> Optional[dict]:
    tags = _tags(item)
    if not (tags & SUBSCRIPTION_TOPICS or tags & SUBSCRIPTION_TAGS):
        return None
    subs = signals.subscriptions
    if subs.count <= 0:
        return None
    return {
        'subscription_count': subs.count,
        'monthly_spend': _money(subs.monthly_spend),
        'projected_savings': _money(subs.monthly_spend * SUBSCRIPTION_CANCELLATION_RATE),
    }


def _savings_variables(item, signals: SignalSet, accounts: List) -> Optional[dict]:
    tags = _tags(item)
    if not (tags & SAVINGS_TOPICS or tags & SAVINGS_TAGS):
        return None
    savings = signals.savings
    if savings.monthly_checking_spend <= 0:
        return None
    return {
        'savings_balance': _money(savings.savings_balance),
        'coverage_months': f"{savings.emergency_fund_coverage:.1f}",
    }


def _income_variables(item, signals: SignalSet, accounts: List) -> Optional[dict]:
    tags = _tags(item)
    if not (tags & INCOME_TOPICS or tags & INCOME_TAGS):
        return None
    income = signals.income
    if income.average_monthly_income <= 0:
        return None
    return {
        'frequency': income.frequency.replace('_', '-'),
        'buffer_months': f"{income.cash_flow_buffer:.1f}",
    }


TOPIC_CHECKS: List[Tuple[str, Callable]] = [
    ('edu_credit_utilization', _credit_variables),
    ('edu_subscription_audit', _subscription_variables),
    ('edu_savings_coverage', _savings_variables),
    ('edu_income_buffer', _income_variables),
]


def _first_renderable(candidates: List[Tuple[str, str, dict]]) -> Optional[RationaleResult]:
    for template_id, template, variables in candidates:
        try:
            text = render_template(template, variables)
        except TemplateRenderError as exc:
            logger.debug("Skipping template %s: %s", template_id, exc)
            continue
        return RationaleResult(
            text=text,
            template_id=template_id,
            variables={k: _sanitize(v) for k, v in variables.items()},
        )
    return None


def generate_education_rationale(
    item,
    signals: SignalSet,
    persona_type: Optional[str],
    accounts: List
) -> RationaleResult:
    """
    Generate rationale for an education recommendation.

    Topic checks run in fixed order (credit, subscriptions, savings, income)
    against the content item's own tags. A check that matches but lacks the
    live data it needs falls through to the next.

    Args:
        item: Content item being recommended
        signals: SignalSet for the recommendation window
        persona_type: User's primary persona
        accounts: User accounts (for card names and balances)

    Returns:
        RationaleResult
    """
    title = {'title': item.title}
    candidates = []
    for template_id, build_variables in TOPIC_CHECKS:
        variables = build_variables(item, signals, accounts)
        if variables is not None:
            candidates.append((template_id, EDUCATION_TEMPLATES[template_id], dict(variables, **title)))

    if persona_type in PERSONA_TEMPLATES:
        candidates.append((f'edu_persona_{persona_type}', PERSONA_TEMPLATES[persona_type], title))
    candidates.append(('edu_generic', EDUCATION_TEMPLATES['edu_generic'], title))

    result = _first_renderable(candidates)
    if result is None:
        raise TemplateRenderError(f"No rationale template renders for {item.content_id}")
    return result


def generate_offer_rationale(
    offer,
    signals: SignalSet,
    persona_type: Optional[str],
    accounts: List
) -> RationaleResult:
    """
    Generate rationale for a partner offer.

    References the single most salient signal: utilization, then
    subscription count, then a generic fallback.
    """
    base = {
        'offer_title': offer.title,
        'provider': offer.provider or 'a partner',
        'benefit': PERSONA_BENEFITS.get(persona_type, DEFAULT_BENEFIT),
    }
    candidates = []

    card = highest_utilization_card(accounts)
    if card is not None and card[1] >= 0.3:
        candidates.append((
            'offer_utilization', OFFER_TEMPLATES['offer_utilization'],
            dict(base, utilization_pct=f"{card[1] * 100:.0f}"),
        ))
    if signals.subscriptions.count > 0:
        candidates.append((
            'offer_subscriptions', OFFER_TEMPLATES['offer_subscriptions'],
            dict(base, subscription_count=signals.subscriptions.count),
        ))
    candidates.append(('offer_generic', OFFER_TEMPLATES['offer_generic'], base))

    result = _first_renderable(candidates)
    if result is None:
        raise TemplateRenderError(f"No rationale template renders for {offer.offer_id}")
    return result
