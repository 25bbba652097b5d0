"""Save-time schema checks for authored forms.

Collects every problem in one pass so the editor can show them together,
instead of stopping at the first one. Issues carry a wire-style path
(``fields[2].conditionalFields.Email[0].name``) and a severity: ``error``
blocks saving, ``warning`` is reported only (an unusable pattern, for
instance, is skipped at rule synthesis rather than rejected here).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple
import logging
import re

from dynaform.logic.errors import QualifiedNameCollisionError, SchemaMalformedError
from dynaform.logic.field_expander import MAX_BRANCH_DEPTH
from dynaform.logic.name_qualifier import NameQualifier, is_valid_local_name
from dynaform.models.field_definition import FieldDefinition, FormSchema, TextConstraints

logger = logging.getLogger(__name__)

ERROR = "error"
WARNING = "warning"


@dataclass(frozen=True)
class SchemaIssue:
    path: str
    message: str
    severity: str = ERROR

    def to_dict(self) -> dict:
        return {"path": self.path, "message": self.message, "severity": self.severity}


def _display(field: FieldDefinition) -> str:
    return field.label or field.local_name or "Unnamed field"


def _check_field(field: FieldDefinition, path: str, issues: List[SchemaIssue]) -> None:
    if not field.label:
        issues.append(SchemaIssue(f"{path}.label", "Label is required"))
    if not field.local_name:
        issues.append(SchemaIssue(f"{path}.name", "Name is required"))
    elif not is_valid_local_name(field.local_name):
        issues.append(
            SchemaIssue(
                f"{path}.name",
                f"Name '{field.local_name}' should contain only lowercase letters, digits and underscores",
                WARNING,
            )
        )
    if field.is_selectable and not field.options:
        issues.append(SchemaIssue(f"{path}.options", f"At least one option is required for {field.kind.value} fields"))
    if field.conditional_branches and not field.is_selectable:
        issues.append(
            SchemaIssue(f"{path}.conditionalFields", "Conditional fields are only allowed on radio and select fields")
        )
    if field.is_selectable:
        for option in field.conditional_branches:
            if option not in field.options:
                issues.append(
                    SchemaIssue(f"{path}.conditionalFields.{option}", f"'{option}' is not one of the options of {_display(field)}")
                )
    constraints = field.constraints
    if isinstance(constraints, TextConstraints):
        if constraints.pattern:
            try:
                re.compile(constraints.pattern)
            except re.error as exc:
                issues.append(SchemaIssue(f"{path}.validation.regex", f"Pattern is not a valid regular expression: {exc}", WARNING))
        if (
            constraints.min_length is not None
            and constraints.max_length is not None
            and constraints.min_length > constraints.max_length
        ):
            issues.append(SchemaIssue(f"{path}.validation", "Minimum length is greater than maximum length"))


def _check_level(
    fields: Sequence[FieldDefinition],
    base_path: str,
    chain: Tuple[str, ...],
    qualifier: NameQualifier,
    issues: List[SchemaIssue],
) -> None:
    seen: dict[str, int] = {}
    for index, field in enumerate(fields):
        path = f"{base_path}[{index}]"
        _check_field(field, path, issues)
        if field.local_name:
            if field.local_name in seen:
                issues.append(
                    SchemaIssue(
                        f"{path}.name",
                        f"Name '{field.local_name}' is already used by {base_path}[{seen[field.local_name]}]",
                    )
                )
            else:
                seen[field.local_name] = index
                try:
                    qualifier.qualify(chain, field.local_name)
                except QualifiedNameCollisionError as exc:
                    issues.append(
                        SchemaIssue(f"{path}.name", f"Name clashes with another field once flattened: {exc.qualified_name}")
                    )
        if not field.conditional_branches:
            continue
        if len(chain) >= MAX_BRANCH_DEPTH:
            issues.append(
                SchemaIssue(
                    f"{path}.conditionalFields",
                    "Conditional fields nested more than one level deep are ignored",
                    WARNING,
                )
            )
            continue
        for option, nested in field.conditional_branches.items():
            _check_level(nested, f"{path}.conditionalFields.{option}", chain + (field.local_name,), qualifier, issues)


def check_schema(schema: FormSchema) -> List[SchemaIssue]:
    """Return every issue found in ``schema`` (empty list when clean)."""
    issues: List[SchemaIssue] = []
    if not schema.title.strip():
        issues.append(SchemaIssue("title", "Title is required"))
    if not schema.fields:
        issues.append(SchemaIssue("fields", "At least one field is required"))
    _check_level(schema.fields, "fields", (), NameQualifier(), issues)
    if issues:
        logger.info(
            "schema_check_issues errors=%s warnings=%s",
            sum(1 for i in issues if i.severity == ERROR),
            sum(1 for i in issues if i.severity == WARNING),
        )
    return issues


def blocking(issues: Sequence[SchemaIssue]) -> List[SchemaIssue]:
    return [i for i in issues if i.severity == ERROR]


def ensure_schema(schema: FormSchema) -> List[SchemaIssue]:
    """Raise ``SchemaMalformedError`` on blocking issues; return the warnings otherwise."""
    issues = check_schema(schema)
    errors = blocking(issues)
    if errors:
        raise SchemaMalformedError(errors)
    return issues


__all__ = ["ERROR", "WARNING", "SchemaIssue", "check_schema", "blocking", "ensure_schema"]
