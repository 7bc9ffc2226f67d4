"""
Mandatory Disclosure Module

Ensures recommendation and article text carries the mandatory disclosure.
"""

EDUCATION_DISCLOSURE = (
    "This is educational content, not financial advice. "
    "Consult a licensed advisor for personalized guidance."
)

OFFER_DISCLOSURE = (
    "This is a third-party offer, not financial advice. "
    "Consult a licensed advisor for personalized guidance."
)


def disclosure_for(recommendation_type: str) -> str:
    """Disclosure text for a recommendation type."""
    return OFFER_DISCLOSURE if recommendation_type == "offer" else EDUCATION_DISCLOSURE


def has_disclosure(content: str) -> bool:
    """True if either disclosure is already present."""
    return EDUCATION_DISCLOSURE in content or OFFER_DISCLOSURE in content


def append_disclosure(content: str, recommendation_type: str = "education") -> str:
    """
    Append mandatory disclosure to recommendation content.

    Args:
        content: Original content
        recommendation_type: 'education' or 'offer'

    Returns:
        Content with disclosure appended (never duplicated)
    """
    if has_disclosure(content):
        return content
    return content.rstrip() + "\n\n" + disclosure_for(recommendation_type)
