"""
Tests for Evaluation Metrics and Trace Export
"""

import json

import pytest

from spendwise.eval.metrics import (
    calculate_auditability,
    calculate_consent_enforcement,
    calculate_coverage,
    calculate_explainability,
    calculate_latency,
    calculate_relevance,
    generate_evaluation_report,
)
from spendwise.eval.report import export_decision_traces, export_report_json, format_summary
from spendwise.recommend.engine import BatchResult, RecommendationPipeline, UserOutcome


@pytest.fixture
def evaluated_store(store, settings, seeded_user, reference_date):
    RecommendationPipeline(store, settings=settings).run(seeded_user, reference_date)
    return store


def add_malformed_recommendation(store, user_id):
    store.create_recommendation(
        recommendation_id='rec_broken',
        user_id=user_id,
        recommendation_type='education',
        content_id='edu_money_habits',
        title='Broken',
        rationale='Some text.',
        decision_trace='{not json',
        window_days=30,
    )
    store.commit()


class TestMetrics:
    """Tests for individual metrics."""

    def test_full_coverage(self, evaluated_store):
        coverage = calculate_coverage(evaluated_store)

        assert coverage['coverage_percent'] == 100.0
        assert coverage['users_with_both'] == 1

    def test_coverage_counts_users_without_signals(self, evaluated_store, make_user):
        make_user(evaluated_store.session, 'u_no', consent=False)

        coverage = calculate_coverage(evaluated_store)

        assert coverage['total_users'] == 2
        assert coverage['coverage_percent'] == 50.0

    def test_malformed_signal_payload_skipped(self, evaluated_store, seeded_user):
        evaluated_store.upsert_signal(seeded_user, 'credit', 30, {'signal_type': 'credit', 'max_utilization': 'lots'})
        evaluated_store.commit()

        coverage = calculate_coverage(evaluated_store)

        assert coverage['users_with_3_signals'] == 1

    def test_explainability_and_auditability(self, evaluated_store):
        assert calculate_explainability(evaluated_store)['explainability_percent'] == 100.0
        audit = calculate_auditability(evaluated_store)
        assert audit['auditability_percent'] == 100.0
        assert audit['malformed_traces'] == 0

    def test_malformed_trace_counted_not_fatal(self, evaluated_store, seeded_user):
        add_malformed_recommendation(evaluated_store, seeded_user)

        audit = calculate_auditability(evaluated_store)
        relevance = calculate_relevance(evaluated_store)

        assert audit['total_recommendations'] == 9
        assert audit['malformed_traces'] == 1
        assert audit['auditability_percent'] == pytest.approx(800 / 9)
        assert relevance['recommendations_with_score'] == 8

    def test_relevance(self, evaluated_store):
        relevance = calculate_relevance(evaluated_store)

        assert relevance['average_relevance'] == pytest.approx(0.6875)
        assert relevance['p50_relevance'] == pytest.approx(0.9)
        assert relevance['p95_relevance'] == pytest.approx(1.0)
        assert relevance['target_met'] is False

    def test_consent_enforcement(self, evaluated_store, seeded_user):
        assert calculate_consent_enforcement(evaluated_store)['passed']

        user = evaluated_store.get_user(seeded_user)
        user.consent_status = False
        evaluated_store.commit()

        result = calculate_consent_enforcement(evaluated_store)
        assert not result['passed']
        assert result['violating_users'] == [seeded_user]

    def test_latency(self):
        batch = BatchResult(outcomes=[
            UserOutcome('u1', 'succeeded', duration_seconds=0.2),
            UserOutcome('u2', 'succeeded', duration_seconds=0.4),
            UserOutcome('u3', 'failed', duration_seconds=9.0),
        ])

        latency = calculate_latency(batch)

        assert latency['users_measured'] == 2
        assert latency['p95_seconds'] == 0.4
        assert latency['target_met'] is True

    def test_latency_without_runs(self):
        assert calculate_latency(BatchResult())['target_met'] is False


class TestReport:
    """Tests for report generation and export."""

    def test_report_and_summary(self, evaluated_store, tmp_path):
        report = generate_evaluation_report(evaluated_store)
        path = tmp_path / 'out' / 'report.json'

        export_report_json(report, path)

        saved = json.loads(path.read_text())
        assert saved['summary']['coverage'] == 100.0
        assert saved['summary']['consent_enforcement'] is True
        text = format_summary(report)
        assert 'Coverage: 100.0%' in text
        assert 'Consent Enforcement: PASS' in text

    def test_export_decision_traces(self, evaluated_store, seeded_user, tmp_path):
        add_malformed_recommendation(evaluated_store, seeded_user)

        written = export_decision_traces(evaluated_store, tmp_path)

        assert written == 2
        data = json.loads((tmp_path / 'decision_traces' / f'{seeded_user}-30d.json').read_text())
        assert len(data['recommendations']) == 8
        assert data['personas'][0]['type'] == 'high_utilization'
        assert data['recommendations'][0]['decision_trace']['rule_path']
        longer = json.loads((tmp_path / 'decision_traces' / f'{seeded_user}-180d.json').read_text())
        assert longer['recommendations'] == []
        assert set(longer['signals']) == {'subscription', 'savings', 'credit', 'income'}
