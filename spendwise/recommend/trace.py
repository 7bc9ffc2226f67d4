"""
Decision Trace Builder Module

Creates the frozen decision trace stored with every recommendation: the
signals snapshot, persona scores, the ordered rule path that fired, the
eligibility detail, the rationale template and the relevance score.
Traces are recomputed with their recommendation, never patched.
"""

import copy
import json
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Optional, Tuple

from spendwise.exceptions import MalformedTraceError
from spendwise.features.window_utils import utcnow

TRACE_VERSION = "1.0"

REQUIRED_FIELDS = (
    'recommendation_type', 'item_id', 'signals', 'primary_persona', 'rule_path',
    'rationale_template_id', 'relevance_score', 'generated_at', 'version',
)


def _json_serialize_dates(obj):
    """Helper to serialize dates to JSON."""
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    elif isinstance(obj, dict):
        return {k: _json_serialize_dates(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [_json_serialize_dates(item) for item in obj]
    return obj


@dataclass(frozen=True)
class DecisionTrace:
    """Decision trace for a recommendation."""
    recommendation_type: str  # education, offer
    item_id: str  # content_id or offer_id
    signals: Dict[str, Any]  # Full signals snapshot at generation time
    primary_persona: Dict[str, Any]  # {persona_type, score, criteria_met}
    rule_path: Tuple[str, ...]  # Ordered tokens, e.g. "content_filter:signal_overlap=0.33"
    rationale_template_id: str
    relevance_score: float
    generated_at: datetime
    secondary_persona: Optional[Dict[str, Any]] = None
    eligibility: Optional[Dict[str, Any]] = None  # Offers only
    review: Optional[Dict[str, Any]] = None
    version: str = TRACE_VERSION

    def to_dict(self) -> dict:
        return _json_serialize_dates({
            'recommendation_type': self.recommendation_type,
            'item_id': self.item_id,
            'signals': self.signals,
            'primary_persona': self.primary_persona,
            'secondary_persona': self.secondary_persona,
            'rule_path': list(self.rule_path),
            'eligibility': self.eligibility,
            'rationale_template_id': self.rationale_template_id,
            'relevance_score': self.relevance_score,
            'review': self.review,
            'generated_at': self.generated_at,
            'version': self.version,
        })

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True)


def build_trace(
    recommendation_type: str,
    item_id: str,
    signals: Dict[str, Any],
    primary_persona: Dict[str, Any],
    rule_path,
    rationale_template_id: str,
    relevance_score: float,
    secondary_persona: Optional[Dict[str, Any]] = None,
    eligibility: Optional[Dict[str, Any]] = None,
    review: Optional[Dict[str, Any]] = None,
    generated_at: datetime = None,
) -> DecisionTrace:
    """
    Assemble a trace, deep-copying every mutable input so later changes to
    the caller's objects never leak into the snapshot.
    """
    return DecisionTrace(
        recommendation_type=recommendation_type,
        item_id=item_id,
        signals=copy.deepcopy(signals),
        primary_persona=copy.deepcopy(primary_persona),
        secondary_persona=copy.deepcopy(secondary_persona),
        rule_path=tuple(rule_path),
        eligibility=copy.deepcopy(eligibility),
        rationale_template_id=rationale_template_id,
        relevance_score=round(float(relevance_score), 4),
        review=copy.deepcopy(review),
        generated_at=generated_at or utcnow(),
    )


def parse_trace(raw) -> DecisionTrace:
    """
    Rebuild a DecisionTrace from its stored JSON (string or dict).

    Raises:
        MalformedTraceError: if the blob is not a complete trace
    """
    try:
        data = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
    except ValueError as exc:
        raise MalformedTraceError(f"Trace is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise MalformedTraceError("Trace is not a JSON object")

    missing = [name for name in REQUIRED_FIELDS if name not in data]
    if missing:
        raise MalformedTraceError(f"Trace missing fields: {', '.join(missing)}")

    try:
        return DecisionTrace(
            recommendation_type=data['recommendation_type'],
            item_id=data['item_id'],
            signals=data['signals'],
            primary_persona=data['primary_persona'],
            secondary_persona=data.get('secondary_persona'),
            rule_path=tuple(data['rule_path']),
            eligibility=data.get('eligibility'),
            rationale_template_id=data['rationale_template_id'],
            relevance_score=float(data['relevance_score']),
            review=data.get('review'),
            generated_at=datetime.fromisoformat(data['generated_at']),
            version=data['version'],
        )
    except (TypeError, ValueError) as exc:
        raise MalformedTraceError(f"Trace has invalid values: {exc}") from exc
