"""Conditional-field expansion.

Turns a form schema plus the user's current selections into the flat,
ordered list of fields that are actually part of the form right now: every
top-level field, and directly after each selectable parent the fields of
the branch its current selection activates ("parent, then its active
children, then next sibling").

Branches are expanded to a single level. A conditional field that declares
its own branches is kept but its branches are ignored, with a warning,
since deeper nesting is not rendered by the form UI either.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Tuple
import logging

from dynaform.models.field_definition import FieldDefinition, FormSchema
from dynaform.models.field_kind import FieldKind
from dynaform.logic.errors import QualifiedNameCollisionError
from dynaform.logic.name_qualifier import SEPARATOR, NameQualifier, qualify

logger = logging.getLogger(__name__)

MAX_BRANCH_DEPTH = 1


@dataclass(frozen=True)
class EffectiveField:
    qualified_name: str
    definition: FieldDefinition
    chain: Tuple[str, ...] = ()

    @property
    def parent(self) -> Optional[str]:
        if not self.chain:
            return None
        return SEPARATOR.join(self.chain)

    @property
    def depth(self) -> int:
        return len(self.chain)

    @property
    def kind(self) -> FieldKind:
        return self.definition.kind

    @property
    def label(self) -> str:
        # Unlabelled fields still need something readable in messages
        return self.definition.label or self.definition.local_name or self.qualified_name

    @property
    def required(self) -> bool:
        return self.definition.required


class EffectiveFieldList(Sequence[EffectiveField]):
    """Ordered effective fields with lookup by qualified name."""

    def __init__(self, fields: Sequence[EffectiveField], qualifier: NameQualifier):
        self._fields: Tuple[EffectiveField, ...] = tuple(fields)
        self._by_name: Dict[str, EffectiveField] = {f.qualified_name: f for f in self._fields}
        self.qualifier = qualifier

    def __getitem__(self, index):  # type: ignore[override]
        return self._fields[index]

    def __len__(self) -> int:
        return len(self._fields)

    def __iter__(self) -> Iterator[EffectiveField]:
        return iter(self._fields)

    def __contains__(self, item: object) -> bool:
        if isinstance(item, EffectiveField):
            return item.qualified_name in self._by_name
        return item in self._by_name

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EffectiveFieldList):
            return NotImplemented
        return self._fields == other._fields

    def __repr__(self) -> str:
        return f"EffectiveFieldList({list(self.names())!r})"

    def get(self, qualified_name: str) -> Optional[EffectiveField]:
        return self._by_name.get(qualified_name)

    def names(self) -> List[str]:
        return [f.qualified_name for f in self._fields]

    def pairs(self) -> List[Tuple[str, FieldDefinition]]:
        return [(f.qualified_name, f.definition) for f in self._fields]

    def children_of(self, qualified_name: str) -> List[EffectiveField]:
        return [f for f in self._fields if f.parent == qualified_name]


def is_branch_active(selected: object, field: FieldDefinition) -> bool:
    """Return True if ``selected`` names a branch declared on ``field``.

    Equality-based: the selection must match a branch key exactly. A missing
    selection, a non-selectable field or an option without a branch never
    activates anything.
    """
    if selected is None or not field.is_selectable:
        return False
    if not field.conditional_branches:
        return False
    return str(selected) in field.conditional_branches


def _expand_level(
    fields: Sequence[FieldDefinition],
    chain: Tuple[str, ...],
    selection: Mapping[str, object],
    qualifier: NameQualifier,
    out: List[EffectiveField],
) -> None:
    for field in fields:
        qualified = qualify(chain, field.local_name)
        if qualified in qualifier:
            # Duplicate sibling names would share one value slot
            first = tuple(qualifier.unqualify(qualified))
            raise QualifiedNameCollisionError(qualified, first, (chain, field.local_name))
        qualifier.qualify(chain, field.local_name)
        out.append(EffectiveField(qualified_name=qualified, definition=field, chain=chain))
        if not field.is_selectable or not field.conditional_branches:
            continue
        if len(chain) >= MAX_BRANCH_DEPTH:
            logger.warning(
                "field_expander_depth_limit field=%s depth=%s branches=%s",
                qualified,
                len(chain),
                sorted(field.conditional_branches),
            )
            continue
        selected = selection.get(qualified)
        if not is_branch_active(selected, field):
            continue
        _expand_level(field.branch_for(str(selected)), chain + (field.local_name,), selection, qualifier, out)


def expand(schema: FormSchema | Sequence[FieldDefinition], selection_state: Mapping[str, object] | None = None) -> EffectiveFieldList:
    """Compute the effective field list for ``schema`` under ``selection_state``.

    Deterministic: the same inputs always yield the same names in the same
    order. Raises ``QualifiedNameCollisionError`` when two fields flatten to
    the same qualified name.
    """
    fields = schema.fields if isinstance(schema, FormSchema) else list(schema)
    selection = dict(selection_state or {})
    qualifier = NameQualifier()
    out: List[EffectiveField] = []
    _expand_level(fields, (), selection, qualifier, out)
    logger.debug("field_expander_done fields=%s selection=%s", len(out), selection)
    return EffectiveFieldList(out, qualifier)


def selectable_names(effective: EffectiveFieldList) -> List[str]:
    """Qualified names of effective fields whose selection drives expansion."""
    return [f.qualified_name for f in effective if f.definition.is_selectable]


__all__ = [
    "MAX_BRANCH_DEPTH",
    "EffectiveField",
    "EffectiveFieldList",
    "is_branch_active",
    "expand",
    "selectable_names",
]
