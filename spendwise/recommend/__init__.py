"""
Recommendation Engine Module

Main exports for the recommendation system.
"""

from .engine import (
    RecommendationPipeline,
    BatchRunner,
    BatchResult,
    GeneratedRecommendation,
    generate_recommendations,
)
from .catalog import EDUCATION_CONTENT, OFFERS, EducationContent, PartnerOffer, seed_catalog
from .matcher import match_content, match_offers, ContentMatch, OfferMatch
from .rationale import generate_education_rationale, generate_offer_rationale, RationaleResult
from .tags import build_user_tags, build_user_data
from .trace import DecisionTrace, build_trace, parse_trace
from .lifecycle import (
    record_feedback,
    approve_recommendation,
    hide_recommendation,
    get_review_queue,
    get_visible_recommendations,
)

__all__ = [
    # Engine
    'RecommendationPipeline',
    'BatchRunner',
    'BatchResult',
    'GeneratedRecommendation',
    'generate_recommendations',

    # Catalog
    'EDUCATION_CONTENT',
    'OFFERS',
    'EducationContent',
    'PartnerOffer',
    'seed_catalog',

    # Matching
    'match_content',
    'match_offers',
    'ContentMatch',
    'OfferMatch',
    'build_user_tags',
    'build_user_data',

    # Rationale
    'generate_education_rationale',
    'generate_offer_rationale',
    'RationaleResult',

    # Trace
    'DecisionTrace',
    'build_trace',
    'parse_trace',

    # Lifecycle
    'record_feedback',
    'approve_recommendation',
    'hide_recommendation',
    'get_review_queue',
    'get_visible_recommendations',
]
