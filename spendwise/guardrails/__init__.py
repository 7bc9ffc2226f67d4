"""
Guardrails System

Consent management, tone validation, eligibility rules, compliance review
and disclosure.
"""

from .consent import check_consent, require_consent, update_consent, revoke_consent
from .tone import check_tone_blocklist, validate_tone
from .eligibility import check_eligibility, EligibilityRule, EligibilityResult, Operator
from .review import agentic_review, ReviewResult, ComplianceVerdict, build_reviewer
from .disclosure import append_disclosure

__all__ = [
    'check_consent',
    'require_consent',
    'update_consent',
    'revoke_consent',
    'check_tone_blocklist',
    'validate_tone',
    'check_eligibility',
    'EligibilityRule',
    'EligibilityResult',
    'Operator',
    'agentic_review',
    'ReviewResult',
    'ComplianceVerdict',
    'build_reviewer',
    'append_disclosure',
]
