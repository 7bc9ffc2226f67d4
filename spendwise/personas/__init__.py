"""
Persona Assignment Module

This module scores users against five non-exclusive personas and assigns
a primary and an optional secondary persona per time window.

Modules:
    - criteria: Persona scoring functions
    - assignment: Ranking, primary/secondary selection and persistence
"""

from .assignment import assign_persona, assign_and_store_personas, PersonaAssignment, PersonaMatch
from .criteria import (
    score_high_utilization,
    score_variable_income,
    score_subscription_heavy,
    score_savings_builder,
    score_net_worth_maximizer,
    score_all_personas,
    PERSONA_NAMES,
    PERSONA_ORDER,
)

__all__ = [
    'assign_persona',
    'assign_and_store_personas',
    'PersonaAssignment',
    'PersonaMatch',
    'score_high_utilization',
    'score_variable_income',
    'score_subscription_heavy',
    'score_savings_builder',
    'score_net_worth_maximizer',
    'score_all_personas',
    'PERSONA_NAMES',
    'PERSONA_ORDER',
]
