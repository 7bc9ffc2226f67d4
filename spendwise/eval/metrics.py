"""
Evaluation Metrics

Calculate evaluation metrics from stored signals, personas and
recommendations. Malformed stored payloads and traces never abort a
calculation; they are skipped (or counted as failures where the metric is
about their presence) and logged at debug level.
"""

import logging
from typing import Dict, List, Optional

from spendwise.exceptions import MalformedTraceError
from spendwise.features.signals import count_detected_payloads, load_signal_payloads
from spendwise.features.window_utils import utcnow
from spendwise.recommend.lifecycle import VISIBLE_STATUSES
from spendwise.recommend.trace import parse_trace

logger = logging.getLogger(__name__)

COVERAGE_WINDOW_DAYS = 30
MIN_DETECTED_SIGNALS = 3
RELEVANCE_TARGET = 0.7
LATENCY_TARGET_SECONDS = 5.0


def _percent(part: int, whole: int) -> float:
    return (part / whole * 100) if whole > 0 else 0.0


def _percentile(sorted_values: List[float], fraction: float) -> float:
    """Nearest-rank percentile on pre-sorted values (index = floor(n * fraction))."""
    if not sorted_values:
        return 0.0
    index = min(int(len(sorted_values) * fraction), len(sorted_values) - 1)
    return sorted_values[index]


def _parsed_traces(recommendations) -> Dict[str, object]:
    traces = {}
    for rec in recommendations:
        try:
            traces[rec.recommendation_id] = parse_trace(rec.decision_trace)
        except MalformedTraceError as exc:
            logger.debug("Skipping malformed trace on %s: %s", rec.recommendation_id, exc)
    return traces


def calculate_coverage(store) -> Dict:
    """
    Calculate coverage: % of users with a primary persona and >=3 detected signal types.

    Target: 100%
    """
    user_ids = store.list_user_ids()
    with_persona = 0
    with_signals = 0
    with_both = 0

    for user_id in user_ids:
        has_primary = any(p.rank == 1 for p in store.get_personas(user_id, COVERAGE_WINDOW_DAYS))
        detected = count_detected_payloads(load_signal_payloads(store, user_id, COVERAGE_WINDOW_DAYS))
        enough_signals = detected >= MIN_DETECTED_SIGNALS

        with_persona += has_primary
        with_signals += enough_signals
        with_both += has_primary and enough_signals

    return {
        'coverage_percent': _percent(with_both, len(user_ids)),
        'users_with_persona': with_persona,
        'users_with_3_signals': with_signals,
        'users_with_both': with_both,
        'total_users': len(user_ids),
    }


def calculate_explainability(store) -> Dict:
    """
    Calculate explainability: % of recommendations with a rationale and a
    rationale template recorded in a parseable trace.

    Target: 100%
    """
    recommendations = store.list_recommendations()
    traces = _parsed_traces(recommendations)
    explained = sum(
        1 for rec in recommendations
        if rec.rationale and rec.rationale.strip()
        and rec.recommendation_id in traces
        and traces[rec.recommendation_id].rationale_template_id
    )
    return {
        'explainability_percent': _percent(explained, len(recommendations)),
        'recommendations_with_rationale': explained,
        'total_recommendations': len(recommendations),
    }


def calculate_auditability(store) -> Dict:
    """
    Calculate auditability: % of recommendations whose stored trace parses
    and carries a non-empty rule path.

    Target: 100%
    """
    recommendations = store.list_recommendations()
    traces = _parsed_traces(recommendations)
    auditable = sum(1 for trace in traces.values() if trace.rule_path)
    return {
        'auditability_percent': _percent(auditable, len(recommendations)),
        'recommendations_with_traces': auditable,
        'malformed_traces': len(recommendations) - len(traces),
        'total_recommendations': len(recommendations),
    }


def calculate_relevance(store) -> Dict:
    """
    Calculate relevance statistics from trace relevance scores.

    Target: average >= 0.7
    """
    recommendations = store.list_recommendations()
    scores = sorted(trace.relevance_score for trace in _parsed_traces(recommendations).values())
    average = sum(scores) / len(scores) if scores else 0.0
    return {
        'average_relevance': round(average, 4),
        'p50_relevance': _percentile(scores, 0.5),
        'p95_relevance': _percentile(scores, 0.95),
        'recommendations_with_score': len(scores),
        'total_recommendations': len(recommendations),
        'target_met': bool(scores) and average >= RELEVANCE_TARGET,
    }


def calculate_consent_enforcement(store) -> Dict:
    """
    Check that no user without consent has visible recommendations.

    Target: 0 violations
    """
    violations = []
    for user_id in store.list_user_ids():
        if store.has_consent(user_id):
            continue
        visible = [
            rec for rec in store.list_recommendations(user_id=user_id)
            if rec.status in VISIBLE_STATUSES
        ]
        if visible:
            violations.append(user_id)
    return {
        'passed': not violations,
        'violations': len(violations),
        'violating_users': violations,
    }


def calculate_latency(batch_result) -> Dict:
    """
    Calculate per-user recompute latency from a batch run.

    Target: < 5 seconds per user
    """
    durations = sorted(o.duration_seconds for o in batch_result.succeeded)
    average = sum(durations) / len(durations) if durations else 0.0
    return {
        'average_seconds': round(average, 4),
        'p50_seconds': round(_percentile(durations, 0.5), 4),
        'p95_seconds': round(_percentile(durations, 0.95), 4),
        'users_measured': len(durations),
        'target_met': bool(durations) and _percentile(durations, 0.95) < LATENCY_TARGET_SECONDS,
    }


def generate_evaluation_report(store, batch_result: Optional[object] = None) -> Dict:
    """
    Generate the full evaluation report.

    Args:
        store: FinancialDataStore
        batch_result: Optional BatchResult for latency metrics

    Returns:
        Report dictionary
    """
    coverage = calculate_coverage(store)
    explainability = calculate_explainability(store)
    auditability = calculate_auditability(store)
    relevance = calculate_relevance(store)
    consent = calculate_consent_enforcement(store)

    report = {
        'timestamp': utcnow().isoformat(),
        'summary': {
            'coverage': coverage['coverage_percent'],
            'explainability': explainability['explainability_percent'],
            'auditability': auditability['auditability_percent'],
            'relevance': relevance['average_relevance'],
            'consent_enforcement': consent['passed'],
        },
        'coverage': coverage,
        'explainability': explainability,
        'auditability': auditability,
        'relevance': relevance,
        'consent_enforcement': consent,
    }
    if batch_result is not None:
        report['latency'] = calculate_latency(batch_result)
        report['summary']['latency_p95_seconds'] = report['latency']['p95_seconds']
    return report
