"""
Agentic Compliance Review

Every rationale goes through review before it is stored:

1. Tone blocklist (hard fail -> flagged)
2. Eligibility revalidation for offers (hard fail -> flagged)
3. Stub auto-approval, or an external compliance reviewer

External reviewer failures fail open: the recommendation is approved with
``degraded=True`` and the failure is logged as a warning.
"""

import json
import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import httpx

from spendwise.config import Settings, get_settings
from spendwise.exceptions import ComplianceReviewError
from .tone import check_tone_blocklist

logger = logging.getLogger(__name__)

APPROVED = 'approved'
FLAGGED = 'flagged'
OPERATOR_APPROVED = 'operator_approved'

COMPLIANCE_SYSTEM_PROMPT = (
    "You review short financial-education messages for compliance. "
    "Flag text that gives individualized investment advice, shames the reader, "
    "predicts outcomes, or makes guarantees. "
    'Reply with JSON only: {"approved": true|false, "reason": "<short reason>"}.'
)


@dataclass
class ComplianceVerdict:
    """Verdict returned by a compliance reviewer."""
    approved: bool
    reason: Optional[str] = None


@dataclass
class ReviewResult:
    """Outcome of the full review."""
    status: str  # approved, flagged
    reason: Optional[str] = None
    degraded: bool = False  # external reviewer failed and review failed open

    @property
    def approved(self) -> bool:
        return self.status == APPROVED

    def to_dict(self) -> dict:
        return {'status': self.status, 'reason': self.reason, 'degraded': self.degraded}


class ComplianceReviewer(Protocol):
    """External text-compliance collaborator."""

    def review(self, text: str, persona_type: Optional[str], recommendation_type: str) -> ComplianceVerdict: ...


class StubComplianceReviewer:
    """Approves everything that reaches it."""

    def review(self, text: str, persona_type: Optional[str], recommendation_type: str) -> ComplianceVerdict:
        return ComplianceVerdict(approved=True)


class HttpComplianceReviewer:
    """Compliance reviewer backed by a chat-completions HTTP endpoint."""

    def __init__(self, settings: Settings = None, transport: httpx.BaseTransport = None):
        self.settings = settings or get_settings()
        self.transport = transport

    def review(self, text: str, persona_type: Optional[str], recommendation_type: str) -> ComplianceVerdict:
        payload = {
            "model": self.settings.LLM_MODEL,
            "temperature": 0,
            "response_format": {"type": "json_object"},
            "messages": [
                {"role": "system", "content": COMPLIANCE_SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": (
                        f"Recommendation type: {recommendation_type}\n"
                        f"Persona: {persona_type or 'unknown'}\n"
                        f"Text: {text}"
                    ),
                },
            ],
        }
        headers = {"Authorization": f"Bearer {self.settings.LLM_API_KEY}"}

        try:
            with httpx.Client(timeout=self.settings.COMPLIANCE_TIMEOUT_SECONDS, transport=self.transport) as client:
                response = client.post(self.settings.LLM_API_URL, headers=headers, json=payload)
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
            raise ComplianceReviewError(f"Compliance review request failed: {exc}") from exc

        return _parse_verdict(data)


def _parse_verdict(data: dict) -> ComplianceVerdict:
    try:
        content = data["choices"][0]["message"]["content"]
        verdict = json.loads(content)
        approved = verdict["approved"]
    except (KeyError, IndexError, TypeError, ValueError) as exc:
        raise ComplianceReviewError(f"Malformed compliance verdict: {exc}") from exc
    if not isinstance(approved, bool):
        raise ComplianceReviewError(f"Malformed compliance verdict: approved={approved!r}")
    return ComplianceVerdict(approved=approved, reason=verdict.get("reason"))


def build_reviewer(settings: Settings = None) -> ComplianceReviewer:
    """Stub reviewer unless a live model endpoint is configured."""
    settings = settings or get_settings()
    if settings.llm_enabled:
        return HttpComplianceReviewer(settings)
    return StubComplianceReviewer()


def agentic_review(
    text: str,
    persona_type: Optional[str],
    recommendation_type: str,
    reviewer: ComplianceReviewer = None,
    eligibility_passed: Optional[bool] = None,
) -> ReviewResult:
    """
    Review a rationale before it is stored.

    Args:
        text: Rationale text
        persona_type: Primary persona at generation time
        recommendation_type: 'education' or 'offer'
        reviewer: External reviewer (stub when None)
        eligibility_passed: Eligibility outcome for offers, None for education

    Returns:
        ReviewResult
    """
    tone = check_tone_blocklist(text)
    if tone.has_prohibited_phrase:
        return ReviewResult(
            status=FLAGGED,
            reason="Prohibited phrases: " + ", ".join(tone.matched_phrases),
        )

    if eligibility_passed is False:
        return ReviewResult(status=FLAGGED, reason="Offer eligibility no longer holds")

    if reviewer is None:
        reviewer = StubComplianceReviewer()

    try:
        verdict = reviewer.review(text, persona_type, recommendation_type)
    except Exception as exc:
        logger.warning(
            "Compliance review unavailable, approving in degraded mode: %s: %s",
            type(exc).__name__, exc,
        )
        return ReviewResult(status=APPROVED, reason="compliance review unavailable", degraded=True)

    if verdict.approved:
        return ReviewResult(status=APPROVED, reason=verdict.reason)
    return ReviewResult(status=FLAGGED, reason=verdict.reason or "Flagged by compliance review")
