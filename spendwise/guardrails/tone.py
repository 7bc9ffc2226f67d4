"""
Tone Validation Module

Checks generated text against a fixed blocklist of prohibited phrase
fragments: directive advice, shaming, guarantees or predictions, and
mandate language. Matching is a case-insensitive substring match.
"""

from dataclasses import dataclass, field
from typing import List, Tuple

DIRECTIVE_PHRASES = (
    "you should",
    "i recommend",
    "i advise",
    "i suggest you",
    "the best option is",
    "you must",
    "you need to",
    "do this",
    "make sure you",
    "definitely",
    "always",
    "never",
    "guaranteed",
    "certainly will",
)

SHAMING_PHRASES = (
    "overspending",
    "wasteful",
    "poor choices",
    "bad with money",
    "irresponsible",
    "careless",
    "reckless",
    "foolish",
    "mistake",
)

PREDICTION_PHRASES = (
    "will improve",
    "this will fix",
    "promise",
    "you'll see results",
)

MANDATE_PHRASES = (
    "you have to",
    "required",
    "necessary",
)

PROHIBITED_PHRASES = DIRECTIVE_PHRASES + SHAMING_PHRASES + PREDICTION_PHRASES + MANDATE_PHRASES


@dataclass
class ToneCheckResult:
    """Outcome of a blocklist check."""
    has_prohibited_phrase: bool
    matched_phrases: List[str] = field(default_factory=list)


def check_tone_blocklist(text: str) -> ToneCheckResult:
    """
    Find every prohibited phrase in the text.

    Args:
        text: Text to check

    Returns:
        ToneCheckResult listing matched phrases in blocklist order
    """
    lowered = (text or "").lower()
    matched = [phrase for phrase in PROHIBITED_PHRASES if phrase in lowered]
    return ToneCheckResult(has_prohibited_phrase=bool(matched), matched_phrases=matched)


def validate_tone(text: str) -> Tuple[bool, List[str]]:
    """
    Validate text tone against prohibited language.

    Returns:
        Tuple of (is_valid, list_of_violations)
    """
    result = check_tone_blocklist(text)
    return not result.has_prohibited_phrase, result.matched_phrases
