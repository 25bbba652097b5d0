"""Per-user fill-out session state.

A session owns the schema being filled, the user's selections, the value
map and everything derived from them (effective fields, rules, outcomes).
``select`` is the single selection-changed event: it recomputes the
effective field list and the rule set synchronously before returning, so
the next validation can never run against rules for fields that are no
longer shown.

Nothing here is shared between sessions and nothing holds external
resources; dropping a session object discards all of its state.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field as dc_field
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional
import logging
import uuid

from dynaform.logic.answer_serializer import serialize
from dynaform.logic.errors import (
    FieldKindMismatchError,
    FormInactiveError,
    FormInvalidError,
    NotSelectableFieldError,
    SubmissionInFlightError,
    UnknownQualifiedNameError,
)
from dynaform.logic.events import FILL_SESSION_RESET, SELECTION_CHANGED, publish
from dynaform.logic.field_expander import EffectiveField, EffectiveFieldList, expand
from dynaform.logic.rule_synthesizer import InitialValues, RuleSet, synthesize
from dynaform.logic.schema_check import ensure_schema
from dynaform.logic.validator import Outcome, errors, is_valid, validate
from dynaform.models.answers import FileRef, Submission
from dynaform.models.field_definition import FormSchema
from dynaform.models.field_kind import FieldKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VisibilityDelta:
    now_visible: List[str] = dc_field(default_factory=list)
    now_hidden: List[str] = dc_field(default_factory=list)
    suppressed_values: List[str] = dc_field(default_factory=list)

    def to_dict(self) -> Dict[str, List[str]]:
        return {
            "now_visible": list(self.now_visible),
            "now_hidden": list(self.now_hidden),
            "suppressed_values": list(self.suppressed_values),
        }


def compute_visibility_delta(
    pre_visible: Iterable[str],
    post_visible: Iterable[str],
    has_value: Callable[[str], bool],
) -> VisibilityDelta:
    """Compute newly shown and hidden names plus hidden names that held a value.

    Both lists keep the order of the effective field list they came from.
    """
    pre = list(pre_visible)
    post = list(post_visible)
    pre_set, post_set = set(pre), set(post)
    now_visible = [n for n in post if n not in pre_set]
    now_hidden = [n for n in pre if n not in post_set]
    suppressed = [n for n in now_hidden if has_value(n)]
    return VisibilityDelta(now_visible, now_hidden, suppressed)


def _has_content(value: Any) -> bool:
    if value is None or value is False:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    return True


class FillSession:
    def __init__(self, schema: FormSchema, form_id: Optional[str] = None, session_id: Optional[str] = None):
        ensure_schema(schema)
        self.session_id = session_id or uuid.uuid4().hex
        self.form_id = form_id
        self.schema = schema
        self.selection: Dict[str, str] = {}
        self.values: Dict[str, Any] = {}
        self.outcomes: Dict[str, Outcome] = {}
        self.effective: EffectiveFieldList
        self.rules: RuleSet
        self.initial: InitialValues
        self._in_flight = False
        self._recompute()
        self.values = dict(self.initial)

    # ----- derived state -----

    def _recompute(self) -> None:
        self.effective = expand(self.schema, self.selection)
        self.rules, self.initial = synthesize(self.effective)
        for stale in [k for k in self.selection if k not in self.effective]:
            del self.selection[stale]

    def _field(self, qualified_name: str) -> EffectiveField:
        ef = self.effective.get(qualified_name)
        if ef is None:
            raise UnknownQualifiedNameError(qualified_name)
        return ef

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    # ----- events -----

    def select(self, qualified_name: str, option: Optional[str]) -> VisibilityDelta:
        """Record a selection on a radio/select field and recompute.

        Values under the field's previous branch are discarded and the
        fields of the new branch start from their initial values.
        """
        ef = self._field(qualified_name)
        if not ef.definition.is_selectable:
            raise NotSelectableFieldError(f"{qualified_name} is a {ef.kind.value} field")
        option = None if option is None or str(option) == "" else str(option)
        previous = self.selection.get(qualified_name)
        self.values[qualified_name] = option or ""
        if option == previous:
            return VisibilityDelta()

        pre_visible = self.effective.names()
        pre_values = dict(self.values)
        if option is None:
            self.selection.pop(qualified_name, None)
        else:
            self.selection[qualified_name] = option
        self._recompute()

        for child in self.effective.children_of(qualified_name):
            self.values[child.qualified_name] = self.initial[child.qualified_name]
        for name in self.effective.names():
            self.values.setdefault(name, self.initial[name])
        for name in [k for k in self.values if k not in self.effective]:
            del self.values[name]

        delta = compute_visibility_delta(pre_visible, self.effective.names(), lambda n: _has_content(pre_values.get(n)))
        if self.outcomes:
            self.outcomes = validate(self.rules, self.values)
        logger.info(
            "fill_session_select session=%s field=%s option=%s visible=%s hidden=%s suppressed=%s",
            self.session_id,
            qualified_name,
            option,
            delta.now_visible,
            delta.now_hidden,
            delta.suppressed_values,
        )
        publish(SELECTION_CHANGED, {"session_id": self.session_id, "field": qualified_name, "option": option, **delta.to_dict()})
        return delta

    def set_value(self, qualified_name: str, value: Any) -> Optional[VisibilityDelta]:
        """Set one value; selections on radio/select fields go through ``select``."""
        ef = self._field(qualified_name)
        if ef.definition.is_selectable:
            return self.select(qualified_name, value)
        self.values[qualified_name] = value
        if qualified_name in self.outcomes:
            self.outcomes = validate(self.rules, self.values)
        return None

    def _effective_after(self, selections: Mapping[str, Any]) -> EffectiveFieldList:
        selection = dict(self.selection)
        for name, option in selections.items():
            if option is None or str(option) == "":
                selection.pop(name, None)
            else:
                selection[name] = str(option)
        return expand(self.schema, selection)

    def set_values(self, values: Mapping[str, Any]) -> VisibilityDelta:
        """Apply several values; selections are applied first so the rest land in the new branches.

        Every name is checked against the fields that will be shown once the
        selections are applied; an unknown name rejects the whole batch
        before anything is changed.
        """
        pre_visible = self.effective.names()
        pre_values = dict(self.values)
        selectable = {k: v for k, v in values.items() if k in self.effective and self.effective.get(k).definition.is_selectable}
        target = self._effective_after(selectable)
        unknown = [k for k in values if k not in selectable and k not in target]
        if unknown:
            raise UnknownQualifiedNameError(unknown[0])
        for name, option in selectable.items():
            self.select(name, option)
        for name, value in values.items():
            if name in selectable:
                continue
            self.set_value(name, value)
        return compute_visibility_delta(pre_visible, self.effective.names(), lambda n: _has_content(pre_values.get(n)))

    def attach_file(self, qualified_name: str, file: FileRef) -> None:
        ef = self._field(qualified_name)
        if ef.kind is not FieldKind.FILE:
            raise FieldKindMismatchError(f"{qualified_name} is a {ef.kind.value} field, not a file field")
        self.values[qualified_name] = file
        logger.info(
            "fill_session_attach_file session=%s field=%s filename=%s size=%s",
            self.session_id,
            qualified_name,
            file.filename,
            file.size,
        )

    def validate(self) -> Dict[str, Outcome]:
        self.outcomes = validate(self.rules, self.values)
        return self.outcomes

    def errors(self) -> Dict[str, str]:
        return errors(self.outcomes)

    def build_submission(self, form_id: Optional[str] = None) -> Submission:
        """Validate and serialise the current values.

        Raises ``FormInvalidError`` when any effective field fails.
        """
        if not self.schema.is_active:
            raise FormInactiveError("form is not accepting submissions")
        outcomes = self.validate()
        if not is_valid(outcomes):
            raise FormInvalidError(errors(outcomes))
        answers, files = serialize(self.effective, self.values)
        return Submission(form_id=form_id or self.form_id or "", answers=answers, files=files)

    # ----- submission guard -----

    def begin_submit(self) -> None:
        if self._in_flight:
            raise SubmissionInFlightError("a submission for this session is already in progress")
        self._in_flight = True

    def end_submit(self) -> None:
        self._in_flight = False

    @contextmanager
    def submitting(self) -> Iterator["FillSession"]:
        self.begin_submit()
        try:
            yield self
        finally:
            self.end_submit()

    def reset(self) -> None:
        """Discard selections, values and outcomes."""
        self.selection = {}
        self.outcomes = {}
        self._recompute()
        self.values = dict(self.initial)
        publish(FILL_SESSION_RESET, {"session_id": self.session_id})

    # ----- presentation -----

    def snapshot(self) -> Dict[str, Any]:
        def _render(value: Any) -> Any:
            if isinstance(value, FileRef):
                return {"filename": value.filename, "size": value.size, "content_type": value.content_type}
            return value

        return {
            "session_id": self.session_id,
            "form_id": self.form_id,
            "title": self.schema.title,
            "description": self.schema.description,
            "fields": [
                {
                    "name": ef.qualified_name,
                    "label": ef.label,
                    "kind": ef.kind.value,
                    "required": ef.required,
                    "options": list(ef.definition.options),
                    "parent": ef.parent,
                }
                for ef in self.effective
            ],
            "selection": dict(self.selection),
            "values": {k: _render(v) for k, v in self.values.items()},
            "errors": self.errors(),
            "in_flight": self._in_flight,
        }


__all__ = ["VisibilityDelta", "compute_visibility_delta", "FillSession"]
