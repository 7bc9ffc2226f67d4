"""
Offer Eligibility Rules

Eligibility rules are a small typed AST of (field, operator, value)
comparisons evaluated against a flat user-data record. Rules fail closed:
a missing field, or a value that cannot be compared, fails the rule.
"""

import logging
import operator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Union

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)


class Operator(str, Enum):
    GE = ">="
    LE = "<="
    EQ = "=="
    NE = "!="
    GT = ">"
    LT = "<"


_COMPARATORS = {
    Operator.GE: operator.ge,
    Operator.LE: operator.le,
    Operator.EQ: operator.eq,
    Operator.NE: operator.ne,
    Operator.GT: operator.gt,
    Operator.LT: operator.lt,
}


class EligibilityRule(BaseModel):
    """A single comparison: ``user_data[field] <operator> value``."""
    model_config = ConfigDict(frozen=True)

    field: str
    operator: Operator
    value: Union[bool, float, int, str]

    def describe(self) -> str:
        return f"{self.field} {self.operator.value} {self.value!r}"

    def evaluate(self, user_data: Dict[str, Any]) -> bool:
        """Evaluate against a user-data record, failing closed."""
        if self.field not in user_data or user_data[self.field] is None:
            return False
        actual = user_data[self.field]
        # bool is an int subclass; keep booleans and numbers apart
        if isinstance(actual, bool) != isinstance(self.value, bool):
            return False
        try:
            return bool(_COMPARATORS[self.operator](actual, self.value))
        except TypeError:
            logger.debug("Rule %s not comparable with %r", self.describe(), actual)
            return False


@dataclass
class EligibilityResult:
    """Result of evaluating a rule list."""
    passed: bool
    failed_rules: List[EligibilityRule] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'passed': self.passed,
            'failed_rules': [rule.model_dump(mode='json') for rule in self.failed_rules],
        }


def parse_rules(rules: Iterable[Union[dict, EligibilityRule]]) -> List[EligibilityRule]:
    """
    Build typed rules from stored dictionaries.

    Raises:
        pydantic.ValidationError: if a rule is malformed
    """
    return [r if isinstance(r, EligibilityRule) else EligibilityRule.model_validate(r) for r in rules]


def check_eligibility(rules: Iterable[Union[dict, EligibilityRule]], user_data: Dict[str, Any]) -> EligibilityResult:
    """
    Evaluate every rule against the user-data record.

    Args:
        rules: Typed rules or their dictionary form
        user_data: Flat mapping of numbers and booleans

    Returns:
        EligibilityResult with every failed rule
    """
    failed = [rule for rule in parse_rules(rules) if not rule.evaluate(user_data)]
    return EligibilityResult(passed=not failed, failed_rules=failed)
