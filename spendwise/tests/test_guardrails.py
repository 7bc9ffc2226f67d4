"""
Unit Tests for Guardrails

Covers the tone blocklist, eligibility rules, consent management,
disclosures and the agentic compliance review.
"""

import json
from unittest.mock import Mock

import httpx
import pytest
from pydantic import ValidationError

from spendwise.config import Settings
from spendwise.exceptions import ComplianceReviewError, ConsentRequiredError, UserNotFoundError
from spendwise.guardrails.consent import check_consent, require_consent, revoke_consent, update_consent
from spendwise.guardrails.disclosure import (
    EDUCATION_DISCLOSURE,
    OFFER_DISCLOSURE,
    append_disclosure,
)
from spendwise.guardrails.eligibility import EligibilityRule, Operator, check_eligibility, parse_rules
from spendwise.guardrails.review import (
    APPROVED,
    FLAGGED,
    ComplianceVerdict,
    HttpComplianceReviewer,
    StubComplianceReviewer,
    agentic_review,
    build_reviewer,
)
from spendwise.guardrails.tone import check_tone_blocklist, validate_tone
from spendwise.ingest.schema import ConsentLog, Recommendation


class TestToneBlocklist:
    """Tests for prohibited phrase detection."""

    def test_clean_text_passes(self):
        is_valid, violations = validate_tone(
            "Your Visa ending in 4523 is at 68% utilization. Learning how balances affect scores can help."
        )

        assert is_valid
        assert violations == []

    def test_directive_phrase_detected(self):
        result = check_tone_blocklist("You should pay this off.")

        assert result.has_prohibited_phrase
        assert result.matched_phrases == ["you should"]

    def test_case_insensitive_and_multiple(self):
        result = check_tone_blocklist("OVERSPENDING is a Mistake.")

        assert result.matched_phrases == ["overspending", "mistake"]

    def test_empty_text(self):
        assert not check_tone_blocklist("").has_prohibited_phrase

    def test_investment_directive(self):
        result = check_tone_blocklist("You should invest in stocks")

        assert result.has_prohibited_phrase
        assert "you should" in result.matched_phrases

    def test_neutral_phrasing_passes(self):
        result = check_tone_blocklist("Some people find it helpful to save a portion of their income")

        assert not result.has_prohibited_phrase


class TestEligibilityRules:
    """Tests for typed eligibility rules."""

    def test_all_rules_pass(self):
        rules = [
            {"field": "max_utilization", "operator": ">=", "value": 0.5},
            {"field": "annual_income", "operator": ">=", "value": 40000},
            {"field": "is_overdue", "operator": "==", "value": False},
        ]
        user_data = {"max_utilization": 0.68, "annual_income": 90000.0, "is_overdue": False}

        result = check_eligibility(rules, user_data)

        assert result.passed
        assert result.failed_rules == []

    def test_overdue_rule_listed_when_failing(self):
        rules = [
            {"field": "max_utilization", "operator": ">=", "value": 0.5},
            {"field": "annual_income", "operator": ">=", "value": 40000},
        ]
        user_data = {"max_utilization": 0.68, "annual_income": 50000, "is_overdue": True}

        assert check_eligibility(rules, user_data).passed

        overdue = {"field": "is_overdue", "operator": "==", "value": False}
        result = check_eligibility(rules + [overdue], user_data)

        assert not result.passed
        assert [r.model_dump(mode="json") for r in result.failed_rules] == [overdue]

    def test_missing_field_fails_closed(self):
        rules = [{"field": "credit_score", "operator": ">=", "value": 650}]

        result = check_eligibility(rules, {"max_utilization": 0.68})

        assert not result.passed
        assert result.failed_rules[0].field == "credit_score"

    def test_failed_rules_reported(self):
        rules = [
            {"field": "max_utilization", "operator": "<", "value": 0.5},
            {"field": "annual_income", "operator": ">=", "value": 40000},
        ]

        result = check_eligibility(rules, {"max_utilization": 0.68, "annual_income": 90000.0})

        assert not result.passed
        assert result.to_dict()["failed_rules"] == [
            {"field": "max_utilization", "operator": "<", "value": 0.5}
        ]

    @pytest.mark.parametrize("op,value,actual,expected", [
        (">", 1, 2, True),
        ("<=", 2, 2, True),
        ("!=", 3, 3, False),
        ("==", True, True, True),
    ])
    def test_operators(self, op, value, actual, expected):
        rule = EligibilityRule(field="x", operator=op, value=value)

        assert rule.evaluate({"x": actual}) is expected

    def test_boolean_and_number_not_interchangeable(self):
        rule = EligibilityRule(field="is_overdue", operator=Operator.EQ, value=False)

        assert rule.evaluate({"is_overdue": 0}) is False

    def test_unknown_operator_rejected(self):
        with pytest.raises(ValidationError):
            parse_rules([{"field": "x", "operator": "~=", "value": 1}])

    def test_empty_rule_list_passes(self):
        assert check_eligibility([], {}).passed


class TestDisclosure:
    """Tests for mandatory disclosures."""

    def test_education_disclosure_appended(self):
        text = append_disclosure("Some content.", "education")

        assert text.endswith(EDUCATION_DISCLOSURE)

    def test_offer_disclosure_appended(self):
        assert append_disclosure("Offer text.", "offer").endswith(OFFER_DISCLOSURE)

    def test_not_duplicated(self):
        once = append_disclosure("Some content.")

        assert append_disclosure(once) == once


class TestConsent:
    """Tests for consent checks and revocation."""

    def test_check_consent(self, store, make_user):
        make_user(store.session, "u_yes", consent=True)
        make_user(store.session, "u_no", consent=False)

        assert check_consent(store, "u_yes") is True
        assert check_consent(store, "u_no") is False
        assert check_consent(store, "u_missing") is False

    def test_require_consent_errors(self, store, make_user):
        make_user(store.session, "u_no", consent=False)

        with pytest.raises(ConsentRequiredError):
            require_consent(store, "u_no")
        with pytest.raises(UserNotFoundError):
            require_consent(store, "u_missing")

    def test_revoke_hides_active_recommendations(self, store, seeded_user):
        for i, status in enumerate(["active", "active", "saved", "dismissed"]):
            store.create_recommendation(
                recommendation_id=f"rec_{i}",
                user_id=seeded_user,
                recommendation_type="education",
                content_id="edu_credit_utilization_101",
                title="Understanding Credit Utilization",
                rationale="Educational text.",
                decision_trace="{}",
                status=status,
                agentic_review_status=APPROVED,
                window_days=30,
            )
        store.commit()

        hidden = revoke_consent(store, seeded_user, source="test")

        assert hidden == 2
        assert check_consent(store, seeded_user) is False
        statuses = {r.recommendation_id: r.status for r in store.session.query(Recommendation).all()}
        assert statuses == {"rec_0": "hidden", "rec_1": "hidden", "rec_2": "saved", "rec_3": "dismissed"}
        log = store.session.query(ConsentLog).filter_by(user_id=seeded_user).one()
        assert log.consent_status is False
        assert log.source == "test"

    def test_grant_consent(self, store, make_user):
        make_user(store.session, "u_no", consent=False)

        hidden = update_consent(store, "u_no", True, source="cli")

        assert hidden == 0
        assert check_consent(store, "u_no") is True

    def test_update_unknown_user(self, store):
        with pytest.raises(UserNotFoundError):
            update_consent(store, "u_missing", True)


class FailingReviewer:
    def review(self, text, persona_type, recommendation_type):
        raise ComplianceReviewError("timeout")


class CrashingReviewer:
    def review(self, text, persona_type, recommendation_type):
        raise RuntimeError("reviewer crashed")


class RejectingReviewer:
    def review(self, text, persona_type, recommendation_type):
        return ComplianceVerdict(approved=False, reason="individualized advice")


def completion_response(content: str) -> dict:
    """Helper to build a chat-completions response body."""
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


class TestAgenticReview:
    """Tests for the review pipeline."""

    def test_clean_text_approved(self):
        result = agentic_review("Learning about utilization can help.", "high_utilization", "education")

        assert result.status == APPROVED
        assert not result.degraded

    def test_blocklist_flags(self):
        result = agentic_review("You should cancel this.", "subscription_heavy", "education")

        assert result.status == FLAGGED
        assert "you should" in result.reason

    def test_eligibility_failure_flags(self):
        result = agentic_review("Clean text.", "high_utilization", "offer", eligibility_passed=False)

        assert result.status == FLAGGED

    def test_reviewer_rejection_flags(self):
        result = agentic_review("Clean text.", None, "education", reviewer=RejectingReviewer())

        assert result.status == FLAGGED
        assert result.reason == "individualized advice"

    def test_reviewer_failure_fails_open(self, caplog):
        result = agentic_review("Clean text.", None, "education", reviewer=FailingReviewer())

        assert result.status == APPROVED
        assert result.degraded
        assert "degraded" in caplog.text

    def test_unexpected_reviewer_error_fails_open(self, caplog):
        result = agentic_review("Clean text.", "high_utilization", "offer", reviewer=CrashingReviewer())

        assert result.status == APPROVED
        assert result.degraded
        assert "RuntimeError" in caplog.text

    def test_blocklist_runs_before_reviewer(self):
        result = agentic_review("Results guaranteed.", None, "offer", reviewer=FailingReviewer())

        assert result.status == FLAGGED
        assert not result.degraded

    def test_reviewer_receives_context(self):
        reviewer = Mock()
        reviewer.review.return_value = ComplianceVerdict(approved=True, reason="fine")

        result = agentic_review("Clean text.", "savings_builder", "offer", reviewer=reviewer)

        reviewer.review.assert_called_once_with("Clean text.", "savings_builder", "offer")
        assert result.reason == "fine"

    def test_build_reviewer_stub_without_key(self, settings):
        assert isinstance(build_reviewer(settings), StubComplianceReviewer)


class TestHttpComplianceReviewer:
    """Tests for the HTTP-backed reviewer."""

    @pytest.fixture
    def live_settings(self):
        return Settings(USE_LLM_STUB=False, LLM_API_KEY="test-key", LLM_API_URL="https://llm.test/v1/chat")

    def test_approved_verdict(self, live_settings):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=completion_response('{"approved": true, "reason": "ok"}'))

        reviewer = HttpComplianceReviewer(live_settings, transport=httpx.MockTransport(handler))
        verdict = reviewer.review("Clean text.", "high_utilization", "education")

        assert verdict.approved
        assert verdict.reason == "ok"
        assert seen["auth"] == "Bearer test-key"
        assert seen["body"]["temperature"] == 0

    def test_server_error_raises(self, live_settings):
        transport = httpx.MockTransport(lambda request: httpx.Response(503))
        reviewer = HttpComplianceReviewer(live_settings, transport=transport)

        with pytest.raises(ComplianceReviewError):
            reviewer.review("Clean text.", None, "education")

    def test_malformed_verdict_raises(self, live_settings):
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, json=completion_response("not json"))
        )
        reviewer = HttpComplianceReviewer(live_settings, transport=transport)

        with pytest.raises(ComplianceReviewError):
            reviewer.review("Clean text.", None, "education")

    def test_http_failure_degrades_review(self, live_settings):
        transport = httpx.MockTransport(lambda request: httpx.Response(500))
        reviewer = HttpComplianceReviewer(live_settings, transport=transport)

        result = agentic_review("Clean text.", None, "education", reviewer=reviewer)

        assert result.status == APPROVED
        assert result.degraded

    def test_invalid_url_raises_review_error(self):
        settings = Settings(USE_LLM_STUB=False, LLM_API_KEY="test-key", LLM_API_URL="http://[::1")
        transport = httpx.MockTransport(lambda request: httpx.Response(200))
        reviewer = HttpComplianceReviewer(settings, transport=transport)

        with pytest.raises(ComplianceReviewError):
            reviewer.review("Clean text.", None, "education")

        result = agentic_review("Clean text.", None, "education", reviewer=reviewer)
        assert result.status == APPROVED
        assert result.degraded

    def test_build_reviewer_live(self, live_settings):
        assert isinstance(build_reviewer(live_settings), HttpComplianceReviewer)
