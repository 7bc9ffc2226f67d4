"""
Persona Assignment Logic

Ranks persona scores into a primary and an optional secondary persona and
persists them per (user, window). Every user always receives a primary
persona.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from spendwise.features.signals import SignalSet
from spendwise.features.window_utils import utcnow
from .criteria import (
    PERSONA_ORDER, PERSONA_NAMES, NET_WORTH_MAXIMIZER, SAVINGS_BUILDER,
    ScoreResult, score_all_personas,
)

logger = logging.getLogger(__name__)

SECONDARY_MIN_SCORE = 0.3
NET_WORTH_PRIMARY_MIN_SCORE = 0.3
DEFAULT_PERSONA_SCORE = 0.1


@dataclass
class PersonaMatch:
    """A scored persona."""
    persona_type: str
    score: float
    criteria_met: List[str]

    @property
    def persona_name(self) -> str:
        return PERSONA_NAMES.get(self.persona_type, self.persona_type)

    def to_dict(self) -> dict:
        return {
            'persona_type': self.persona_type,
            'persona_name': self.persona_name,
            'score': self.score,
            'criteria_met': list(self.criteria_met),
        }


@dataclass
class PersonaAssignment:
    """Result of persona assignment for one window."""
    user_id: str
    window_days: int
    primary: PersonaMatch
    secondary: Optional[PersonaMatch] = None
    all_scores: Dict[str, float] = field(default_factory=dict)
    assigned_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            'user_id': self.user_id,
            'window_days': self.window_days,
            'primary': self.primary.to_dict(),
            'secondary': self.secondary.to_dict() if self.secondary else None,
            'all_scores': dict(self.all_scores),
            'assigned_at': self.assigned_at.isoformat(),
        }

    def to_entries(self) -> List[dict]:
        """Rows for the persona store: rank 1 primary, rank 2 secondary."""
        entries = [dict(self.primary.to_dict(), rank=1)]
        if self.secondary:
            entries.append(dict(self.secondary.to_dict(), rank=2))
        return entries


def rank_personas(scores: Dict[str, ScoreResult]) -> List[PersonaMatch]:
    """
    Sort nonzero persona scores descending, ties broken by fixed persona order.
    """
    matches = [
        PersonaMatch(persona, round(score, 4), list(criteria))
        for persona, (score, criteria) in scores.items()
        if score > 0
    ]
    matches.sort(key=lambda m: (-m.score, PERSONA_ORDER.index(m.persona_type)))
    return matches


def select_personas(ranked: List[PersonaMatch]):
    """
    Pick primary and secondary personas from ranked matches.

    Net Worth Maximizer takes the primary slot whenever it scores at least
    0.3. A secondary persona must itself score at least 0.3.

    Returns:
        Tuple of (primary, secondary or None)
    """
    if not ranked:
        return PersonaMatch(SAVINGS_BUILDER, DEFAULT_PERSONA_SCORE, ['default']), None

    maximizer = next(
        (m for m in ranked
         if m.persona_type == NET_WORTH_MAXIMIZER and m.score >= NET_WORTH_PRIMARY_MIN_SCORE),
        None,
    )
    if maximizer is not None:
        secondary = next(
            (m for m in ranked
             if m.persona_type != NET_WORTH_MAXIMIZER and m.score >= SECONDARY_MIN_SCORE),
            None,
        )
        return maximizer, secondary

    primary = ranked[0]
    secondary = None
    if len(ranked) > 1 and ranked[1].score >= SECONDARY_MIN_SCORE:
        secondary = ranked[1]
    return primary, secondary


def assign_persona(signals: SignalSet) -> PersonaAssignment:
    """
    Assign primary and secondary personas for one signal set.

    Args:
        signals: SignalSet for a 30-day or 180-day window

    Returns:
        PersonaAssignment
    """
    scores = score_all_personas(signals)
    primary, secondary = select_personas(rank_personas(scores))
    return PersonaAssignment(
        user_id=signals.user_id,
        window_days=signals.window_days,
        primary=primary,
        secondary=secondary,
        all_scores={persona: round(score, 4) for persona, (score, _) in scores.items()},
    )


def assign_and_store_personas(store, signal_sets: Dict[int, SignalSet]) -> Dict[int, PersonaAssignment]:
    """
    Assign personas for each window and replace the stored rows.

    Args:
        store: FinancialDataStore
        signal_sets: Dict mapping window_days to SignalSet

    Returns:
        Dict mapping window_days to PersonaAssignment
    """
    assignments = {}
    for window_days, signals in signal_sets.items():
        assignment = assign_persona(signals)
        store.replace_personas(signals.user_id, window_days, assignment.to_entries())
        logger.debug(
            "Assigned %s (%.2f) to %s for %dd",
            assignment.primary.persona_type, assignment.primary.score,
            signals.user_id, window_days,
        )
        assignments[window_days] = assignment
    return assignments
