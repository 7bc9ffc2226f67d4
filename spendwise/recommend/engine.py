"""
Recommendation Engine

Runs the full per-user pipeline: consent gate, signal extraction for both
windows, persona scoring, content/offer matching, rationale generation,
guardrail review and decision-trace assembly. Re-running for a user
replaces that user's signals, personas and recommendations for the
window rather than merging with them.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from spendwise.config import Settings, get_settings
from spendwise.exceptions import ConsentRequiredError, UserNotFoundError
from spendwise.features.signals import SignalSet, compute_and_store_signals
from spendwise.guardrails.consent import require_consent
from spendwise.guardrails.disclosure import append_disclosure
from spendwise.guardrails.review import ComplianceReviewer, ReviewResult, agentic_review, build_reviewer
from spendwise.guardrails.tone import check_tone_blocklist
from spendwise.personas.assignment import PersonaAssignment, assign_and_store_personas
from .matcher import ContentMatch, OfferMatch, match_content, match_offers
from .rationale import generate_education_rationale, generate_offer_rationale
from .tags import build_user_data, build_user_tags, held_account_types
from .trace import DecisionTrace, build_trace

logger = logging.getLogger(__name__)

RECOMMENDATION_WINDOW_DAYS = 30


@dataclass
class GeneratedRecommendation:
    """A generated recommendation."""
    recommendation_id: str
    user_id: str
    recommendation_type: str  # 'education' or 'offer'
    item_id: str
    title: str
    rationale: str
    persona_type: Optional[str]
    template_id: str
    relevance_score: float
    signals_used: List[str]
    review: ReviewResult
    trace: DecisionTrace

    def to_dict(self) -> dict:
        return {
            'recommendation_id': self.recommendation_id,
            'user_id': self.user_id,
            'recommendation_type': self.recommendation_type,
            'item_id': self.item_id,
            'title': self.title,
            'rationale': self.rationale,
            'persona_type': self.persona_type,
            'template_id': self.template_id,
            'relevance_score': self.relevance_score,
            'signals_used': list(self.signals_used),
            'review': self.review.to_dict(),
            'decision_trace': self.trace.to_dict(),
        }


@dataclass
class PipelineResult:
    """Everything one pipeline run produced for a user."""
    user_id: str
    signals: Dict[int, SignalSet]
    personas: Dict[int, PersonaAssignment]
    recommendations: List[GeneratedRecommendation]
    duration_seconds: float = 0.0


def _new_recommendation_id() -> str:
    return f"rec_{uuid.uuid4().hex}"


def _persona_summary(assignment: PersonaAssignment) -> dict:
    return {
        'primary': {
            'persona_type': assignment.primary.persona_type,
            'score': assignment.primary.score,
            'criteria_met': list(assignment.primary.criteria_met),
        },
        'secondary': None if assignment.secondary is None else {
            'persona_type': assignment.secondary.persona_type,
            'score': assignment.secondary.score,
            'criteria_met': list(assignment.secondary.criteria_met),
        },
    }


def _persona_tokens(assignment: PersonaAssignment) -> List[str]:
    tokens = [f"persona:primary={assignment.primary.persona_type}"]
    if assignment.secondary is not None:
        tokens.append(f"persona:secondary={assignment.secondary.persona_type}")
    return tokens


class RecommendationPipeline:
    """Per-user recommendation pipeline over an injected data store."""

    def __init__(self, store, reviewer: ComplianceReviewer = None, settings: Settings = None):
        self.store = store
        self.settings = settings or get_settings()
        self.reviewer = reviewer if reviewer is not None else build_reviewer(self.settings)

    def run(self, user_id: str, reference_date=None) -> PipelineResult:
        """
        Recompute signals, personas and recommendations for one user.

        Args:
            user_id: User ID
            reference_date: End date of the signal windows (defaults to today)

        Returns:
            PipelineResult

        Raises:
            UserNotFoundError: If user not found
            ConsentRequiredError: If the user has not consented
        """
        started = time.perf_counter()
        require_consent(self.store, user_id)

        try:
            signal_sets = compute_and_store_signals(self.store, user_id, reference_date)
            assignments = assign_and_store_personas(self.store, signal_sets)
            recommendations = self._generate(
                user_id,
                signal_sets[RECOMMENDATION_WINDOW_DAYS],
                assignments[RECOMMENDATION_WINDOW_DAYS],
            )
            self._replace_recommendations(user_id, recommendations)
            self.store.commit()
        except Exception:
            self.store.rollback()
            raise

        duration = time.perf_counter() - started
        logger.info(
            "Generated %d recommendations for %s in %.3fs",
            len(recommendations), user_id, duration,
        )
        return PipelineResult(
            user_id=user_id,
            signals=signal_sets,
            personas=assignments,
            recommendations=recommendations,
            duration_seconds=duration,
        )

    def _generate(
        self, user_id: str, signals: SignalSet, assignment: PersonaAssignment
    ) -> List[GeneratedRecommendation]:
        accounts = self.store.get_accounts(user_id)
        user_tags = build_user_tags(signals)
        user_data = build_user_data(signals)
        persona_type = assignment.primary.persona_type

        content_matches = match_content(self.store.get_content_catalog(), persona_type, user_tags)
        offer_matches, offer_details = match_offers(
            self.store.get_offer_catalog(), persona_type, user_tags, user_data,
            held_account_types(accounts),
        )

        context = {
            'user_id': user_id,
            'signals': signals,
            'assignment': assignment,
            'accounts': accounts,
        }
        recommendations = [
            self._education(match, **context)
            for match in content_matches[:self.settings.MAX_EDUCATION]
        ]
        recommendations += [
            self._offer(match, offer_details[match.offer.offer_id], **context)
            for match in offer_matches[:self.settings.MAX_OFFERS]
        ]
        return recommendations

    def _education(
        self, match: ContentMatch, user_id, signals, assignment, accounts
    ) -> GeneratedRecommendation:
        item = match.item
        persona_type = assignment.primary.persona_type
        rationale = generate_education_rationale(item, signals, persona_type, accounts)
        tone = check_tone_blocklist(rationale.text)
        review = agentic_review(rationale.text, persona_type, 'education', self.reviewer)

        rule_path = _persona_tokens(assignment) + [
            f"content_filter:persona_fit={'true' if match.persona_fit else 'false'}",
            f"content_filter:signal_overlap={match.signal_overlap:.2f}",
            f"rationale:template={rationale.template_id}",
            f"guardrail:tone={'fail' if tone.has_prohibited_phrase else 'pass'}",
            _review_token(review),
        ]
        return self._assemble(
            user_id, 'education', item.content_id, item.title, rationale, persona_type,
            match.relevance, match.matched_tags, review, signals, assignment, rule_path,
        )

    def _offer(
        self, match: OfferMatch, detail: dict, user_id, signals, assignment, accounts
    ) -> GeneratedRecommendation:
        offer = match.offer
        persona_type = assignment.primary.persona_type
        rationale = generate_offer_rationale(offer, signals, persona_type, accounts)
        tone = check_tone_blocklist(rationale.text)
        review = agentic_review(
            rationale.text, persona_type, 'offer', self.reviewer,
            eligibility_passed=match.eligibility.passed,
        )

        required = list(offer.required_signals or [])
        coverage = len(match.matched_required) / len(required) if required else 1.0
        relevance = 0.7 * (1 if match.persona_fit else 0) + 0.3 * coverage

        rule_path = _persona_tokens(assignment) + [
            f"offer_filter:persona_fit={'true' if match.persona_fit else 'false'}",
            f"offer_filter:eligibility={'pass' if match.eligibility.passed else 'fail'}",
            f"offer_filter:required_signals={len(match.matched_required)}/{len(required)}",
            "offer_filter:excluded_accounts=none",
            f"rationale:template={rationale.template_id}",
            f"guardrail:tone={'fail' if tone.has_prohibited_phrase else 'pass'}",
            _review_token(review),
        ]
        return self._assemble(
            user_id, 'offer', offer.offer_id, offer.title, rationale, persona_type,
            relevance, match.matched_required, review, signals, assignment, rule_path,
            eligibility=detail,
        )

    def _assemble(
        self, user_id, recommendation_type, item_id, title, rationale, persona_type,
        relevance, signals_used, review, signals, assignment, rule_path, eligibility=None,
    ) -> GeneratedRecommendation:
        personas = _persona_summary(assignment)
        trace = build_trace(
            recommendation_type=recommendation_type,
            item_id=item_id,
            signals=signals.to_dict(),
            primary_persona=personas['primary'],
            secondary_persona=personas['secondary'],
            rule_path=rule_path,
            eligibility=eligibility,
            rationale_template_id=rationale.template_id,
            relevance_score=relevance,
            review=review.to_dict(),
        )
        return GeneratedRecommendation(
            recommendation_id=_new_recommendation_id(),
            user_id=user_id,
            recommendation_type=recommendation_type,
            item_id=item_id,
            title=title,
            rationale=append_disclosure(rationale.text, recommendation_type),
            persona_type=persona_type,
            template_id=rationale.template_id,
            relevance_score=trace.relevance_score,
            signals_used=sorted(signals_used),
            review=review,
            trace=trace,
        )

    def _replace_recommendations(self, user_id: str, recommendations: List[GeneratedRecommendation]) -> None:
        self.store.delete_recommendations(user_id, RECOMMENDATION_WINDOW_DAYS)
        for rec in recommendations:
            self.store.create_recommendation(
                recommendation_id=rec.recommendation_id,
                user_id=user_id,
                recommendation_type=rec.recommendation_type,
                content_id=rec.item_id if rec.recommendation_type == 'education' else None,
                offer_id=rec.item_id if rec.recommendation_type == 'offer' else None,
                window_days=RECOMMENDATION_WINDOW_DAYS,
                title=rec.title,
                rationale=rec.rationale,
                persona_type=rec.persona_type,
                signals_used=rec.signals_used,
                decision_trace=rec.trace.to_json(),
                status='active',
                agentic_review_status=rec.review.status,
                review_reason=rec.review.reason,
            )


def _review_token(review: ReviewResult) -> str:
    token = f"review:{review.status}"
    if review.degraded:
        token += ":degraded"
    return token


@dataclass
class UserOutcome:
    """Result of one user's run inside a batch."""
    user_id: str
    status: str  # succeeded, failed, skipped
    recommendation_count: int = 0
    error: Optional[str] = None
    duration_seconds: float = 0.0

    def to_dict(self) -> dict:
        return {
            'user_id': self.user_id,
            'status': self.status,
            'recommendation_count': self.recommendation_count,
            'error': self.error,
            'duration_seconds': round(self.duration_seconds, 4),
        }


@dataclass
class BatchResult:
    """Structured result of a batch recompute."""
    outcomes: List[UserOutcome] = field(default_factory=list)

    def _with_status(self, status: str) -> List[UserOutcome]:
        return [o for o in self.outcomes if o.status == status]

    @property
    def succeeded(self) -> List[UserOutcome]:
        return self._with_status('succeeded')

    @property
    def failed(self) -> List[UserOutcome]:
        return self._with_status('failed')

    @property
    def skipped(self) -> List[UserOutcome]:
        return self._with_status('skipped')

    def to_dict(self) -> dict:
        return {
            'total': len(self.outcomes),
            'succeeded': len(self.succeeded),
            'failed': len(self.failed),
            'skipped': len(self.skipped),
            'outcomes': [o.to_dict() for o in self.outcomes],
        }


class BatchRunner:
    """
    Recompute many users independently.

    Each user runs against a fresh store from ``store_factory``; a failure
    for one user is logged and recorded without stopping the batch.
    """

    def __init__(
        self,
        store_factory: Callable[[], object],
        reviewer: ComplianceReviewer = None,
        settings: Settings = None,
    ):
        self.store_factory = store_factory
        self.settings = settings or get_settings()
        self.reviewer = reviewer if reviewer is not None else build_reviewer(self.settings)

    def run(self, user_ids: Optional[List[str]] = None, reference_date=None) -> BatchResult:
        if user_ids is None:
            store = self.store_factory()
            try:
                user_ids = store.list_user_ids()
            finally:
                store.close()

        result = BatchResult()
        for user_id in user_ids:
            result.outcomes.append(self._run_one(user_id, reference_date))

        logger.info(
            "Batch complete: %d succeeded, %d failed, %d skipped",
            len(result.succeeded), len(result.failed), len(result.skipped),
        )
        return result

    def _run_one(self, user_id: str, reference_date) -> UserOutcome:
        store = self.store_factory()
        started = time.perf_counter()
        try:
            pipeline = RecommendationPipeline(store, reviewer=self.reviewer, settings=self.settings)
            run = pipeline.run(user_id, reference_date)
            return UserOutcome(
                user_id=user_id,
                status='succeeded',
                recommendation_count=len(run.recommendations),
                duration_seconds=run.duration_seconds,
            )
        except ConsentRequiredError as exc:
            logger.info("Skipping %s: %s", user_id, exc)
            return UserOutcome(user_id=user_id, status='skipped', error=str(exc))
        except UserNotFoundError as exc:
            logger.error("Recompute failed for %s: %s", user_id, exc)
            return UserOutcome(user_id=user_id, status='failed', error=str(exc))
        except Exception as exc:
            logger.exception("Recompute failed for %s", user_id)
            return UserOutcome(
                user_id=user_id,
                status='failed',
                error=f"{type(exc).__name__}: {exc}",
                duration_seconds=time.perf_counter() - started,
            )
        finally:
            store.close()


def generate_recommendations(store, user_id: str, reviewer: ComplianceReviewer = None, reference_date=None):
    """
    Generate recommendations for a user.

    Convenience wrapper around RecommendationPipeline.

    Returns:
        List of GeneratedRecommendation objects
    """
    return RecommendationPipeline(store, reviewer=reviewer).run(user_id, reference_date).recommendations
