"""Flatten accepted values into the submission answer list.

Only fields of the effective field list that was used for validation are
emitted, in effective order; anything else in the value map (a branch the
user backed out of, a typo'd key) is dropped without complaint. File values
become a display-name answer plus an out-of-band payload keyed by the
qualified name.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Optional, Tuple
import logging

from dynaform.logic.field_expander import EffectiveField
from dynaform.logic.rule_synthesizer import format_number, to_bool, to_date, to_number
from dynaform.models.answers import AnswerRecord, FilePayload, FileRef
from dynaform.models.field_kind import FieldKind

logger = logging.getLogger(__name__)


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def stringify(kind: FieldKind, value: Any) -> str:
    """Canonical answer string for a non-file value.

    - checkbox -> "true" / "false" (None counts as unchecked)
    - number   -> text exactly as typed (stripped); ints exact; floats
                  without a trailing ".0"
    - date     -> ISO ``YYYY-MM-DD``
    - None     -> ""
    """
    if kind is FieldKind.CHECKBOX:
        return "true" if to_bool(value) else "false"
    if value is None:
        return ""
    if kind is FieldKind.NUMBER:
        if isinstance(value, str):
            return value.strip()
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        if isinstance(value, float) and to_number(value) is not None:
            return format_number(value)
        return str(value)
    if kind is FieldKind.DATE:
        parsed = to_date(value)
        return parsed.isoformat() if parsed is not None else str(value)
    return str(value)


def _file_answer(ef: EffectiveField, value: Any) -> Tuple[Optional[AnswerRecord], Optional[FilePayload]]:
    if isinstance(value, FileRef) and value.filename:
        return AnswerRecord(name=ef.qualified_name, value=value.filename), FilePayload(name=ef.qualified_name, file=value)
    if isinstance(value, str) and value.strip():
        # Placeholder (e.g. an already uploaded file's name); nothing to attach
        return AnswerRecord(name=ef.qualified_name, value=value), None
    if ef.required:
        return AnswerRecord(name=ef.qualified_name, value=""), None
    return None, None


def serialize(
    effective_fields: Iterable[EffectiveField], values: Mapping[str, Any]
) -> Tuple[List[AnswerRecord], List[FilePayload]]:
    """Return ``(answers, file_payloads)`` for the effective fields."""
    answers: List[AnswerRecord] = []
    payloads: List[FilePayload] = []
    emitted = set()
    for ef in effective_fields:
        emitted.add(ef.qualified_name)
        value = values.get(ef.qualified_name)
        if ef.kind is FieldKind.FILE:
            answer, payload = _file_answer(ef, value)
            if answer is not None:
                answers.append(answer)
            if payload is not None:
                payloads.append(payload)
            continue
        if ef.kind is not FieldKind.CHECKBOX and not ef.required and _is_empty(value):
            continue
        answers.append(AnswerRecord(name=ef.qualified_name, value=stringify(ef.kind, value)))
    stale = [k for k in values if k not in emitted]
    if stale:
        logger.debug("answer_serializer_stale_dropped names=%s", stale)
    return answers, payloads


__all__ = ["stringify", "serialize"]
