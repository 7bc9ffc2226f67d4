"""
Recommendation Lifecycle

User feedback actions and operator review actions. These are the only
ways a stored recommendation changes after generation; its rationale and
decision trace are never touched.
"""

import logging
from typing import List

from spendwise.exceptions import InvalidStatusTransitionError, RecommendationNotFoundError
from spendwise.guardrails.consent import require_consent
from spendwise.guardrails.review import APPROVED, FLAGGED, OPERATOR_APPROVED

logger = logging.getLogger(__name__)

ACTIVE = 'active'
DISMISSED = 'dismissed'
COMPLETED = 'completed'
SAVED = 'saved'
HIDDEN = 'hidden'

RECOMMENDATION_STATUSES = (ACTIVE, DISMISSED, COMPLETED, SAVED, HIDDEN)
FEEDBACK_ACTIONS = (DISMISSED, COMPLETED, SAVED)
VISIBLE_STATUSES = (ACTIVE, SAVED)
VISIBLE_REVIEW_STATUSES = (APPROVED, OPERATOR_APPROVED)

# Allowed user feedback transitions
FEEDBACK_TRANSITIONS = {
    ACTIVE: {DISMISSED, COMPLETED, SAVED},
    SAVED: {DISMISSED, COMPLETED},
}


def _get(store, recommendation_id: str):
    rec = store.get_recommendation(recommendation_id)
    if rec is None:
        raise RecommendationNotFoundError(recommendation_id)
    return rec


def record_feedback(store, user_id: str, recommendation_id: str, action: str):
    """
    Apply a user feedback action (dismissed, completed, saved).

    Raises:
        ConsentRequiredError: if the user has not consented
        RecommendationNotFoundError: if the recommendation is not the user's
        InvalidStatusTransitionError: if the action is not allowed from the current status
    """
    if action not in FEEDBACK_ACTIONS:
        raise ValueError(f"Unknown feedback action: {action}")
    require_consent(store, user_id)

    rec = _get(store, recommendation_id)
    if rec.user_id != user_id:
        raise RecommendationNotFoundError(recommendation_id)
    if action not in FEEDBACK_TRANSITIONS.get(rec.status, set()):
        raise InvalidStatusTransitionError(recommendation_id, rec.status, action)

    rec.status = action
    store.commit()
    logger.info("Recommendation %s marked %s by %s", recommendation_id, action, user_id)
    return rec


def approve_recommendation(store, recommendation_id: str, notes: str = None):
    """
    Operator approval of a flagged recommendation.

    Raises:
        RecommendationNotFoundError: if it does not exist
        InvalidStatusTransitionError: if it is not flagged
    """
    rec = _get(store, recommendation_id)
    if rec.agentic_review_status != FLAGGED:
        raise InvalidStatusTransitionError(recommendation_id, rec.agentic_review_status, OPERATOR_APPROVED)

    rec.agentic_review_status = OPERATOR_APPROVED
    if notes:
        rec.review_reason = f"{rec.review_reason or ''} | operator: {notes}".lstrip(" |")
    store.commit()
    logger.info("Recommendation %s approved by operator", recommendation_id)
    return rec


def hide_recommendation(store, recommendation_id: str):
    """Operator hide. Hiding an already hidden recommendation is a no-op."""
    rec = _get(store, recommendation_id)
    if rec.status != HIDDEN:
        rec.status = HIDDEN
        store.commit()
        logger.info("Recommendation %s hidden by operator", recommendation_id)
    return rec


def get_review_queue(store) -> List:
    """Active recommendations flagged by review, oldest first."""
    return store.list_recommendations(status=ACTIVE, review_status=FLAGGED)


def get_visible_recommendations(store, user_id: str) -> List:
    """
    Recommendations a user may see: active or saved, approved by review or
    by an operator. Empty for users without consent.
    """
    if not store.has_consent(user_id):
        return []
    return [
        rec for rec in store.list_recommendations(user_id=user_id)
        if rec.status in VISIBLE_STATUSES and rec.agentic_review_status in VISIBLE_REVIEW_STATUSES
    ]
