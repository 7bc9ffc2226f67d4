"""
Evaluation Report and Trace Export

Writes the evaluation report as JSON and exports one decision-trace file
per user and window (``decision_traces/<user>-<window>d.json``).
"""

import json
import logging
from pathlib import Path
from typing import Dict

from spendwise.exceptions import MalformedTraceError
from spendwise.features.window_utils import SUPPORTED_WINDOWS
from spendwise.recommend.trace import parse_trace

logger = logging.getLogger(__name__)

TRACES_DIRNAME = "decision_traces"


def export_report_json(report: Dict, filepath) -> None:
    """Export report to JSON file."""
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        json.dump(report, f, indent=2, default=str)
    logger.info("Exported evaluation report to %s", path)


def build_user_trace(store, user_id: str, window_days: int) -> Dict:
    """Signals, personas and traced recommendations for one user and window."""
    personas = [
        {'type': p.persona_type, 'score': p.score, 'rank': p.rank, 'criteria_met': p.criteria_met}
        for p in store.get_personas(user_id, window_days)
    ]

    recommendations = []
    for rec in store.list_recommendations(user_id=user_id):
        if rec.window_days != window_days:
            continue
        try:
            trace = parse_trace(rec.decision_trace)
        except MalformedTraceError as exc:
            logger.debug("Skipping %s in export: %s", rec.recommendation_id, exc)
            continue
        recommendations.append({
            'id': rec.recommendation_id,
            'type': rec.recommendation_type,
            'content_id': rec.content_id,
            'offer_id': rec.offer_id,
            'title': rec.title,
            'relevance_score': trace.relevance_score,
            'rationale': rec.rationale,
            'status': rec.status,
            'review_status': rec.agentic_review_status,
            'decision_trace': trace.to_dict(),
            'created_at': rec.created_at.isoformat() if rec.created_at else None,
        })

    return {
        'user_id': user_id,
        'window_days': window_days,
        'signals': store.get_signals(user_id, window_days),
        'personas': personas,
        'recommendations': recommendations,
    }


def export_decision_traces(store, output_dir) -> int:
    """
    Export per-user, per-window decision traces.

    Args:
        store: FinancialDataStore
        output_dir: Directory that will contain ``decision_traces/``

    Returns:
        Number of files written
    """
    traces_dir = Path(output_dir) / TRACES_DIRNAME
    traces_dir.mkdir(parents=True, exist_ok=True)

    written = 0
    for user_id in store.list_user_ids():
        for window_days in SUPPORTED_WINDOWS:
            user_trace = build_user_trace(store, user_id, window_days)
            path = traces_dir / f"{user_id}-{window_days}d.json"
            with open(path, 'w') as f:
                json.dump(user_trace, f, indent=2, default=str)
            written += 1

    logger.info("Exported %d decision trace files to %s", written, traces_dir)
    return written


def format_summary(report: Dict) -> str:
    """Human-readable summary of an evaluation report."""
    summary = report['summary']
    lines = [
        "=" * 60,
        "SPENDWISE EVALUATION REPORT",
        "=" * 60,
        f"Generated: {report['timestamp']}",
        "",
        "SUMMARY METRICS:",
        f"  Coverage: {summary['coverage']:.1f}%",
        f"  Explainability: {summary['explainability']:.1f}%",
        f"  Auditability: {summary['auditability']:.1f}%",
        f"  Relevance (avg): {summary['relevance']:.2f}",
        f"  Consent Enforcement: {'PASS' if summary['consent_enforcement'] else 'FAIL'}",
    ]
    if 'latency_p95_seconds' in summary:
        lines.append(f"  Latency (p95): {summary['latency_p95_seconds']:.3f}s")
    lines.append("=" * 60)
    return "\n".join(lines)
