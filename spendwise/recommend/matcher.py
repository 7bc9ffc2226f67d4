"""
Content and Offer Matcher

Scores education content by persona fit and signal-tag overlap, and
filters partner offers down to the ones a user is eligible for.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Set, Tuple

from pydantic import ValidationError

from spendwise.guardrails.eligibility import EligibilityResult, check_eligibility

logger = logging.getLogger(__name__)

PERSONA_FIT_WEIGHT = 0.7
SIGNAL_OVERLAP_WEIGHT = 0.3


@dataclass
class ContentMatch:
    """A candidate content item with its relevance breakdown."""
    item: object  # ContentItem row or EducationContent
    relevance: float
    persona_fit: bool
    signal_overlap: float  # Fraction of the item's signal tags the user has
    matched_tags: List[str] = field(default_factory=list)


@dataclass
class OfferMatch:
    """An eligible offer with its eligibility detail."""
    offer: object  # Offer row or PartnerOffer
    persona_fit: bool
    matched_required: List[str]
    eligibility: EligibilityResult


def match_content(catalog: Iterable, persona_type: str, user_tags: Set[str]) -> List[ContentMatch]:
    """
    Rank content candidates for a user.

    relevance = 0.7 * persona_fit + 0.3 * signal_overlap. An item is a
    candidate if it fits the persona or shares any signal tag.

    Args:
        catalog: Content items
        persona_type: User's primary persona
        user_tags: User signal tags

    Returns:
        Candidates sorted by relevance, then editorial priority, then id
    """
    candidates = []
    for item in catalog:
        persona_fit = persona_type in (item.persona_fit or [])
        declared = list(item.signal_tags or [])
        matched = [tag for tag in declared if tag in user_tags]
        overlap = len(matched) / len(declared) if declared else 0.0

        if not persona_fit and not matched:
            continue

        relevance = PERSONA_FIT_WEIGHT * (1 if persona_fit else 0) + SIGNAL_OVERLAP_WEIGHT * overlap
        candidates.append(ContentMatch(
            item=item,
            relevance=round(relevance, 4),
            persona_fit=persona_fit,
            signal_overlap=round(overlap, 2),
            matched_tags=matched,
        ))

    candidates.sort(key=lambda m: (-m.relevance, m.item.editorial_priority, m.item.content_id))
    return candidates


def match_offers(
    catalog: Iterable,
    persona_type: str,
    user_tags: Set[str],
    user_data: Dict,
    held_types: Set[str],
) -> Tuple[List[OfferMatch], Dict[str, dict]]:
    """
    Filter offers to those the user is eligible for.

    An offer is eligible only when all its eligibility rules pass, all its
    required signal tags are present, and the user holds none of its
    excluded account types or subtypes.

    Args:
        catalog: Offers in catalog order
        persona_type: User's primary persona
        user_tags: User signal tags
        user_data: Flat user-data record for eligibility rules
        held_types: Account types and subtypes the user holds

    Returns:
        Tuple of (eligible offers sorted persona-fit first then by matched
        required-signal count, eligibility detail keyed by offer_id)
    """
    eligible = []
    details = {}

    for offer in catalog:
        try:
            result = check_eligibility(offer.eligibility_rules or [], user_data)
        except ValidationError as exc:
            logger.warning("Offer %s has malformed eligibility rules: %s", offer.offer_id, exc)
            details[offer.offer_id] = {'eligible': False, 'reasons': ['malformed_rules']}
            continue

        required = list(offer.required_signals or [])
        missing = [tag for tag in required if tag not in user_tags]
        excluded = [t for t in (offer.excluded_account_types or []) if t in held_types]

        reasons = []
        if not result.passed:
            reasons.append('rules_failed')
        if missing:
            reasons.append('missing_signals')
        if excluded:
            reasons.append('excluded_account_held')

        details[offer.offer_id] = {
            'eligible': not reasons,
            'reasons': reasons,
            'rules': result.to_dict(),
            'missing_signals': missing,
            'excluded_accounts_held': excluded,
        }
        if reasons:
            continue

        eligible.append(OfferMatch(
            offer=offer,
            persona_fit=persona_type in (offer.persona_fit or []),
            matched_required=[tag for tag in required if tag in user_tags],
            eligibility=result,
        ))

    eligible.sort(key=lambda m: (not m.persona_fit, -len(m.matched_required)))
    return eligible, details
