"""Apply a synthesised rule set to a candidate value map.

Validation is field-local: each rule sees only its own value, so outcomes
never depend on one another and can be computed in any order. Failures are
returned as ``Invalid`` values carrying a user-displayable message; nothing
here raises for bad input.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union
import logging

from dynaform.logic.rule_synthesizer import RuleSet, ValidationRule

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Valid:
    ok = True
    message: Optional[str] = None


@dataclass(frozen=True)
class Invalid:
    message: str
    ok = False


Outcome = Union[Valid, Invalid]
VALID = Valid()


def evaluate(rule: ValidationRule, value: Any) -> Outcome:
    """Evaluate one rule against one value.

    Empty values short-circuit: required fields fail with the required
    message, optional ones pass without running any further check.
    """
    if rule.is_empty(value):
        if rule.required:
            return Invalid(rule.required_message)
        return VALID
    if not rule.base.predicate(value):
        return Invalid(rule.base.message)
    for check in rule.checks:
        if not check.predicate(value):
            return Invalid(check.message)
    return VALID


def validate(rule_set: RuleSet, values: Mapping[str, Any]) -> Dict[str, Outcome]:
    """Return ``qualified_name -> Outcome`` for every rule in ``rule_set``.

    Values for names outside the rule set are ignored.
    """
    outcomes: Dict[str, Outcome] = {}
    for name, rule in rule_set.items():
        outcomes[name] = evaluate(rule, values.get(name))
    failed = sum(1 for o in outcomes.values() if not o.ok)
    logger.debug("validator_done fields=%s invalid=%s", len(outcomes), failed)
    return outcomes


def is_valid(outcomes: Mapping[str, Outcome]) -> bool:
    return all(o.ok for o in outcomes.values())


def errors(outcomes: Mapping[str, Outcome]) -> Dict[str, str]:
    """Messages for the failing fields only, keyed by qualified name."""
    return {name: o.message for name, o in outcomes.items() if isinstance(o, Invalid)}


__all__ = ["Valid", "Invalid", "Outcome", "VALID", "evaluate", "validate", "is_valid", "errors"]
