"""Validation-rule synthesis for an effective field list.

Builds one ``ValidationRule`` per effective field from its kind, its
constraints and its required flag, plus the initial value map used to seed
a fill-out session. Rules are plain data: a base type check, the ordered
constraint checks and the required message. Applying them is the
validator's job (``dynaform.logic.validator``).

Kind table:

- text/textarea: string; length within [min_length, max_length]; pattern
- number: finite number, empty treated as absent; value within [min, max]
- email: valid email address; length bounds when declared
- date: calendar date (ISO ``YYYY-MM-DD``)
- select/radio: one of ``options``
- checkbox: boolean; required means it must be true
- file: a file reference or a non-empty placeholder string

A field that is optional and left empty passes without running any check.
"""

from __future__ import annotations

from dataclasses import dataclass, field as dc_field
from datetime import date, datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple
import logging
import math
import re

from email_validator import EmailNotValidError, validate_email

from dynaform.logic.errors import UnknownFieldKindError
from dynaform.logic.field_expander import EffectiveField
from dynaform.models.answers import FileRef
from dynaform.models.field_definition import FileConstraints, NumberConstraints, TextConstraints
from dynaform.models.field_kind import FieldKind

logger = logging.getLogger(__name__)


Predicate = Callable[[Any], bool]


@dataclass(frozen=True)
class RuleCheck:
    name: str
    predicate: Predicate
    message: str


@dataclass(frozen=True)
class ValidationRule:
    qualified_name: str
    label: str
    kind: FieldKind
    required: bool
    base: RuleCheck
    checks: Tuple[RuleCheck, ...] = ()
    required_message: str = ""
    is_empty: Predicate = dc_field(default=lambda v: v is None)

    def describe(self) -> Dict[str, Any]:
        """JSON-friendly summary (predicates omitted)."""
        return {
            "name": self.qualified_name,
            "label": self.label,
            "kind": self.kind.value,
            "required": self.required,
            "checks": [self.base.name] + [c.name for c in self.checks],
        }


RuleSet = Dict[str, ValidationRule]
InitialValues = Dict[str, Any]


# -----------------------------
# Value coercion helpers
# -----------------------------

def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def to_number(value: Any) -> Optional[float]:
    """Parse ``value`` as a finite number; None when it is not one."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            num = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        try:
            num = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return num if math.isfinite(num) else None


def to_date(value: Any) -> Optional[date]:
    """Parse ``value`` as a calendar date; None when it is not one."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def to_bool(value: Any) -> Optional[bool]:
    """Canonical boolean for checkbox values ('true'/'false' tokens accepted)."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in {"true", "false"}:
        return value.strip().lower() == "true"
    return None


def is_email(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        validate_email(value.strip(), check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def is_file_value(value: Any) -> bool:
    if isinstance(value, FileRef):
        return bool(value.filename)
    return isinstance(value, str) and value.strip() != ""


def format_number(value: float | int) -> str:
    """Render 18.0 as '18' and 18.5 as '18.5' for messages and answers."""
    num = float(value)
    if num.is_integer():
        return str(int(num))
    return repr(num)


# -----------------------------
# Per-kind rule builders
# -----------------------------

def _length_checks(label: str, constraints: Optional[TextConstraints]) -> List[RuleCheck]:
    checks: List[RuleCheck] = []
    if not isinstance(constraints, TextConstraints):
        return checks
    if constraints.min_length:
        lo = constraints.min_length
        checks.append(RuleCheck("min_length", lambda v, lo=lo: len(v) >= lo, f"{label} must be at least {lo} characters"))
    if constraints.max_length:
        hi = constraints.max_length
        checks.append(RuleCheck("max_length", lambda v, hi=hi: len(v) <= hi, f"{label} must be at most {hi} characters"))
    return checks


def _pattern_check(qualified_name: str, label: str, constraints: Optional[TextConstraints]) -> List[RuleCheck]:
    if not isinstance(constraints, TextConstraints) or not constraints.pattern:
        return []
    try:
        compiled = re.compile(constraints.pattern)
    except re.error as exc:
        logger.warning(
            "rule_synthesizer_invalid_pattern field=%s pattern=%r error=%s",
            qualified_name,
            constraints.pattern,
            exc,
        )
        return []
    return [RuleCheck("pattern", lambda v: compiled.search(v) is not None, f"{label} format is invalid")]


def _text_rule(ef: EffectiveField) -> ValidationRule:
    label = ef.label
    constraints = ef.definition.constraints
    checks = _length_checks(label, constraints) + _pattern_check(ef.qualified_name, label, constraints)
    return ValidationRule(
        qualified_name=ef.qualified_name,
        label=label,
        kind=ef.kind,
        required=ef.required,
        base=RuleCheck("string", lambda v: isinstance(v, str), f"{label} must be text"),
        checks=tuple(checks),
        required_message=f"{label} is required",
        is_empty=_blank,
    )


def _email_rule(ef: EffectiveField) -> ValidationRule:
    label = ef.label
    return ValidationRule(
        qualified_name=ef.qualified_name,
        label=label,
        kind=ef.kind,
        required=ef.required,
        base=RuleCheck("email", is_email, f"{label} must be a valid email address"),
        checks=tuple(_length_checks(label, ef.definition.constraints)),
        required_message=f"{label} is required",
        is_empty=_blank,
    )


def _number_rule(ef: EffectiveField) -> ValidationRule:
    label = ef.label
    constraints = ef.definition.constraints
    checks: List[RuleCheck] = []
    if isinstance(constraints, NumberConstraints):
        if constraints.min is not None:
            lo = float(constraints.min)
            checks.append(RuleCheck("min", lambda v, lo=lo: to_number(v) >= lo, f"{label} must be at least {format_number(lo)}"))
        if constraints.max is not None:
            hi = float(constraints.max)
            checks.append(RuleCheck("max", lambda v, hi=hi: to_number(v) <= hi, f"{label} must be at most {format_number(hi)}"))
    return ValidationRule(
        qualified_name=ef.qualified_name,
        label=label,
        kind=ef.kind,
        required=ef.required,
        base=RuleCheck("number", lambda v: to_number(v) is not None, f"{label} must be a valid number"),
        checks=tuple(checks),
        required_message=f"{label} is required",
        is_empty=_blank,
    )


def _date_rule(ef: EffectiveField) -> ValidationRule:
    label = ef.label
    return ValidationRule(
        qualified_name=ef.qualified_name,
        label=label,
        kind=ef.kind,
        required=ef.required,
        base=RuleCheck("date", lambda v: to_date(v) is not None, f"{label} must be a valid date"),
        required_message=f"{label} is required",
        is_empty=_blank,
    )


def _choice_rule(ef: EffectiveField) -> ValidationRule:
    label = ef.label
    options = tuple(ef.definition.options)
    checks: List[RuleCheck] = []
    if options:
        checks.append(RuleCheck("one_of", lambda v: v in options, f"{label} must be one of the provided options"))
    return ValidationRule(
        qualified_name=ef.qualified_name,
        label=label,
        kind=ef.kind,
        required=ef.required,
        base=RuleCheck("string", lambda v: isinstance(v, str), f"{label} must be text"),
        checks=tuple(checks),
        required_message=f"{label} is required",
        is_empty=_blank,
    )


def _checkbox_rule(ef: EffectiveField) -> ValidationRule:
    label = ef.label
    checks: List[RuleCheck] = []
    if ef.required:
        checks.append(RuleCheck("must_be_true", lambda v: to_bool(v) is True, f"{label} is required"))
    return ValidationRule(
        qualified_name=ef.qualified_name,
        label=label,
        kind=ef.kind,
        required=ef.required,
        base=RuleCheck("boolean", lambda v: to_bool(v) is not None, f"{label} must be true or false"),
        checks=tuple(checks),
        required_message=f"{label} is required",
    )


def _file_rule(ef: EffectiveField) -> ValidationRule:
    label = ef.label
    constraints = ef.definition.constraints
    if isinstance(constraints, FileConstraints) and constraints.accepted_types:
        logger.debug(
            "rule_synthesizer_file_accept field=%s accept=%s (informational)",
            ef.qualified_name,
            constraints.accepted_types,
        )
    return ValidationRule(
        qualified_name=ef.qualified_name,
        label=label,
        kind=ef.kind,
        required=ef.required,
        base=RuleCheck("file", is_file_value, f"{label} must be a file"),
        required_message=f"{label} is required",
        is_empty=lambda v: not is_file_value(v),
    )


_BUILDERS: Dict[FieldKind, Callable[[EffectiveField], ValidationRule]] = {
    FieldKind.TEXT: _text_rule,
    FieldKind.TEXTAREA: _text_rule,
    FieldKind.EMAIL: _email_rule,
    FieldKind.NUMBER: _number_rule,
    FieldKind.DATE: _date_rule,
    FieldKind.SELECT: _choice_rule,
    FieldKind.RADIO: _choice_rule,
    FieldKind.CHECKBOX: _checkbox_rule,
    FieldKind.FILE: _file_rule,
}

_INITIAL: Dict[FieldKind, Any] = {
    FieldKind.TEXT: "",
    FieldKind.TEXTAREA: "",
    FieldKind.EMAIL: "",
    FieldKind.DATE: "",
    FieldKind.SELECT: "",
    FieldKind.RADIO: "",
    FieldKind.CHECKBOX: False,
    FieldKind.NUMBER: None,
    FieldKind.FILE: None,
}

_uncovered = (set(FieldKind) - set(_BUILDERS)) | (set(FieldKind) - set(_INITIAL))
if _uncovered:  # pragma: no cover - import-time guard
    raise RuntimeError(f"rule synthesizer does not cover kinds: {sorted(k.value for k in _uncovered)}")


def build_rule(ef: EffectiveField) -> ValidationRule:
    try:
        builder = _BUILDERS[ef.kind]
    except KeyError:
        raise UnknownFieldKindError(ef.kind) from None
    return builder(ef)


def initial_value(kind: FieldKind) -> Any:
    """Initial value for a freshly shown field; None means absent."""
    try:
        return _INITIAL[kind]
    except KeyError:
        raise UnknownFieldKindError(kind) from None


def synthesize(effective_fields: Iterable[EffectiveField]) -> Tuple[RuleSet, InitialValues]:
    """Return ``(rule_set, initial_values)`` for exactly the given fields."""
    rules: RuleSet = {}
    initial: InitialValues = {}
    for ef in effective_fields:
        rules[ef.qualified_name] = build_rule(ef)
        initial[ef.qualified_name] = initial_value(ef.kind)
    logger.debug("rule_synthesizer_done rules=%s", len(rules))
    return rules, initial


__all__ = [
    "RuleCheck",
    "ValidationRule",
    "RuleSet",
    "InitialValues",
    "to_number",
    "to_date",
    "to_bool",
    "is_email",
    "is_file_value",
    "format_number",
    "build_rule",
    "initial_value",
    "synthesize",
]
