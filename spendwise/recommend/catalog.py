"""
Default Content and Offer Catalog

Static education content and partner offers covering every persona. The
catalog is read-only to the pipeline; ``seed_catalog`` loads it into the
database.
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import List

from spendwise.ingest.schema import ContentItem, Offer

logger = logging.getLogger(__name__)


@dataclass
class EducationContent:
    """Education content definition."""
    content_id: str
    title: str
    summary: str
    persona_fit: List[str]
    signal_tags: List[str]  # User signal tags this content speaks to
    topic_tags: List[str]  # credit, utilization, subscriptions, savings, emergency_fund, income, budgeting
    editorial_priority: int = 100  # Lower = more important
    content_type: str = 'article'
    url: str = ''


@dataclass
class PartnerOffer:
    """Partner offer definition."""
    offer_id: str
    title: str
    provider: str
    description: str
    offer_type: str
    persona_fit: List[str]
    required_signals: List[str] = field(default_factory=list)
    eligibility_rules: List[dict] = field(default_factory=list)  # [{field, operator, value}]
    excluded_account_types: List[str] = field(default_factory=list)
    url: str = ''


EDUCATION_CONTENT = [
    EducationContent(
        content_id="edu_credit_utilization_101",
        title="How Credit Utilization Affects Your Score",
        summary="What utilization is, why the 30% mark matters, and ways people bring balances down.",
        persona_fit=["high_utilization"],
        signal_tags=["high_utilization", "moderate_utilization", "interest_charges"],
        topic_tags=["credit", "utilization"],
        editorial_priority=10,
        url="/learn/credit-utilization",
    ),
    EducationContent(
        content_id="edu_paying_beyond_minimum",
        title="Paying More Than the Minimum",
        summary="How interest accrues on revolving balances and what an extra payment each month can do.",
        persona_fit=["high_utilization"],
        signal_tags=["minimum_payment_only", "interest_charges"],
        topic_tags=["credit", "debt"],
        editorial_priority=20,
        url="/learn/beyond-minimum-payments",
    ),
    EducationContent(
        content_id="edu_autopay_setup",
        title="Setting Up Autopay to Avoid Late Fees",
        summary="A walkthrough of autopay options and payment reminders.",
        persona_fit=["high_utilization"],
        signal_tags=["overdue"],
        topic_tags=["credit"],
        editorial_priority=30,
        url="/learn/autopay",
    ),
    EducationContent(
        content_id="edu_subscription_audit",
        title="The 10-Minute Subscription Audit",
        summary="A simple checklist for reviewing recurring charges and deciding which ones still earn their keep.",
        persona_fit=["subscription_heavy"],
        signal_tags=["subscription_heavy", "has_subscriptions"],
        topic_tags=["subscriptions"],
        editorial_priority=10,
        url="/learn/subscription-audit",
    ),
    EducationContent(
        content_id="edu_negotiating_bills",
        title="Negotiating Recurring Bills",
        summary="Scripts and timing tips for lowering phone, internet and streaming bills.",
        persona_fit=["subscription_heavy"],
        signal_tags=["has_subscriptions"],
        topic_tags=["subscriptions", "budgeting"],
        editorial_priority=40,
        url="/learn/negotiating-bills",
    ),
    EducationContent(
        content_id="edu_emergency_fund_basics",
        title="Emergency Fund Basics",
        summary="How many months of expenses to aim for and where to keep the money.",
        persona_fit=["savings_builder", "variable_income"],
        signal_tags=["low_emergency_fund", "positive_savings"],
        topic_tags=["savings", "emergency_fund"],
        editorial_priority=10,
        url="/learn/emergency-fund",
    ),
    EducationContent(
        content_id="edu_automating_savings",
        title="Automating Your Savings",
        summary="Recurring transfers, round-ups, and naming goals so progress is visible.",
        persona_fit=["savings_builder"],
        signal_tags=["positive_savings", "savings_growth"],
        topic_tags=["savings"],
        editorial_priority=20,
        url="/learn/automate-savings",
    ),
    EducationContent(
        content_id="edu_irregular_income_budget",
        title="Budgeting on an Irregular Income",
        summary="Baseline budgets, income smoothing and percentage-based plans for uneven paychecks.",
        persona_fit=["variable_income"],
        signal_tags=["variable_income", "low_cash_buffer"],
        topic_tags=["income", "budgeting"],
        editorial_priority=10,
        url="/learn/irregular-income",
    ),
    EducationContent(
        content_id="edu_cash_flow_buffer",
        title="Building a Cash-Flow Buffer",
        summary="Keeping a month of expenses in checking to ride out gaps between deposits.",
        persona_fit=["variable_income"],
        signal_tags=["low_cash_buffer"],
        topic_tags=["income", "savings"],
        editorial_priority=20,
        url="/learn/cash-flow-buffer",
    ),
    EducationContent(
        content_id="edu_investing_next_steps",
        title="Next Steps After a Full Emergency Fund",
        summary="Tax-advantaged accounts, index funds and how people think about allocation.",
        persona_fit=["net_worth_maximizer"],
        signal_tags=["savings_growth", "low_utilization"],
        topic_tags=["investing"],
        editorial_priority=10,
        url="/learn/investing-next-steps",
    ),
    EducationContent(
        content_id="edu_money_habits",
        title="Small Money Habits That Add Up",
        summary="Weekly check-ins, spending categories and celebrating progress.",
        persona_fit=[],
        signal_tags=["low_utilization", "positive_savings"],
        topic_tags=[],
        editorial_priority=90,
        url="/learn/money-habits",
    ),
]


OFFERS = [
    PartnerOffer(
        offer_id="offer_balance_transfer_card",
        title="0% Intro APR Balance Transfer Card",
        provider="ZeroRate Financial",
        description="18 months of 0% intro APR on transferred balances, no annual fee.",
        offer_type="balance_transfer_card",
        persona_fit=["high_utilization"],
        required_signals=["high_utilization"],
        eligibility_rules=[
            {"field": "max_utilization", "operator": ">=", "value": 0.5},
            {"field": "annual_income", "operator": ">=", "value": 40000},
            {"field": "is_overdue", "operator": "==", "value": False},
        ],
        url="https://zerorate-financial.com/balance-transfer",
    ),
    PartnerOffer(
        offer_id="offer_debt_coaching",
        title="Free Nonprofit Credit Counseling Session",
        provider="Clearpath Counseling",
        description="A one-on-one session to map out a repayment plan.",
        offer_type="credit_counseling",
        persona_fit=["high_utilization"],
        required_signals=["interest_charges"],
        eligibility_rules=[
            {"field": "num_credit_cards", "operator": ">=", "value": 1},
        ],
        url="https://clearpath.org/counseling",
    ),
    PartnerOffer(
        offer_id="offer_subscription_manager",
        title="Subscription Tracking App",
        provider="SubTrack",
        description="Finds recurring charges and cancels unwanted ones in a few taps.",
        offer_type="subscription_tool",
        persona_fit=["subscription_heavy"],
        required_signals=["subscription_heavy"],
        eligibility_rules=[
            {"field": "subscription_count", "operator": ">=", "value": 3},
        ],
        url="https://subtrack.app",
    ),
    PartnerOffer(
        offer_id="offer_high_yield_savings",
        title="4.5% APY High-Yield Savings Account",
        provider="Thrive Bank",
        description="No monthly fees or minimums, FDIC insured.",
        offer_type="high_yield_savings",
        persona_fit=["savings_builder", "variable_income"],
        required_signals=[],
        eligibility_rules=[
            {"field": "max_utilization", "operator": "<", "value": 0.5},
        ],
        excluded_account_types=["money_market", "high_yield_savings"],
        url="https://thrivebank.com/high-yield-savings",
    ),
    PartnerOffer(
        offer_id="offer_budgeting_app",
        title="Income-Smoothing Budget App",
        provider="EvenKeel",
        description="Budgets built around uneven paychecks, with a buffer goal tracker.",
        offer_type="budgeting_app",
        persona_fit=["variable_income"],
        required_signals=["variable_income"],
        eligibility_rules=[],
        url="https://evenkeel.app",
    ),
    PartnerOffer(
        offer_id="offer_robo_advisor",
        title="Low-Fee Automated Investing Account",
        provider="Summit Invest",
        description="Diversified index portfolios with a 0.25% annual fee.",
        offer_type="investment_account",
        persona_fit=["net_worth_maximizer"],
        required_signals=["low_utilization"],
        eligibility_rules=[
            {"field": "emergency_fund_months", "operator": ">=", "value": 3},
            {"field": "max_utilization", "operator": "<", "value": 0.2},
        ],
        url="https://summitinvest.com",
    ),
]


def seed_catalog(session, content: List[EducationContent] = None, offers: List[PartnerOffer] = None) -> int:
    """
    Load catalog entries into the database, replacing rows with the same id.

    Args:
        session: Database session
        content: Education content (defaults to EDUCATION_CONTENT)
        offers: Partner offers (defaults to OFFERS)

    Returns:
        Number of rows written
    """
    content = EDUCATION_CONTENT if content is None else content
    offers = OFFERS if offers is None else offers

    for item in content:
        session.merge(ContentItem(**asdict(item)))
    for offer in offers:
        session.merge(Offer(**asdict(offer)))
    session.commit()

    written = len(content) + len(offers)
    logger.info("Seeded %d content items and %d offers", len(content), len(offers))
    return written
