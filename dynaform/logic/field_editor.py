"""Index-addressed editing arena for a form's top-level fields.

Fields live in slots that never move; a separate order list holds slot
indices in display order, and an identity index maps each field's identity
token to its slot. Reordering therefore only permutes integers, and an edit
replaces one slot's value in place, which is what keeps identities stable
across both operations.

Positions accepted by ``add`` and ``move`` are 1-based and clamped like the
authoring reindex helpers: anything at or below 1 goes first, anything past
the end is appended. The ``order`` carried on each field is the 0-based
display index and is rewritten contiguously after every change.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
import logging

from dynaform.logic.errors import FieldNotFoundError, NotSelectableFieldError, SchemaMalformedError
from dynaform.logic.field_identity import assign_identities, is_placeholder, new_identity
from dynaform.logic.name_qualifier import normalize_local_name
from dynaform.logic.schema_check import SchemaIssue
from dynaform.models.field_definition import FieldDefinition, FormSchema
from dynaform.models.field_kind import FieldKind

logger = logging.getLogger(__name__)

# Wire and descriptive spellings accepted in update payloads
_CHANGE_KEYS: Dict[str, str] = {
    "name": "local_name",
    "localName": "local_name",
    "local_name": "local_name",
    "label": "label",
    "type": "kind",
    "kind": "kind",
    "required": "required",
    "options": "options",
    "validation": "constraints",
    "constraints": "constraints",
}


def insertion_index(position: Optional[int], length: int) -> int:
    """Clamp a 1-based ``position`` into a 0-based insertion index in ``[0..length]``."""
    if position is None:
        return length
    po = int(position)
    if po <= 1:
        return 0
    if po > length + 1:
        return length
    return po - 1


def _coerce_fields(items: Iterable[Any]) -> List[FieldDefinition]:
    out: List[FieldDefinition] = []
    for item in items:
        out.append(item if isinstance(item, FieldDefinition) else FieldDefinition.model_validate(item))
    return out


def _with_derived_name(field: FieldDefinition) -> FieldDefinition:
    if field.local_name or not field.label:
        return field
    return field.model_copy(update={"local_name": normalize_local_name(field.label)})


class FieldArena:
    """Editable, ordered collection of field definitions."""

    def __init__(self, fields: Iterable[Any] = ()):
        self._slots: List[Optional[FieldDefinition]] = []
        self._order: List[int] = []
        self._by_identity: Dict[str, int] = {}
        for field in assign_identities(_coerce_fields(fields)):
            self._append_slot(field)
        self._renumber()

    @classmethod
    def from_schema(cls, schema: FormSchema) -> "FieldArena":
        return cls(schema.fields)

    # ----- internals -----

    def _append_slot(self, field: FieldDefinition) -> int:
        slot = len(self._slots)
        self._slots.append(field)
        self._by_identity[str(field.identity)] = slot
        self._order.append(slot)
        return slot

    def _slot_of(self, identity: str) -> int:
        try:
            return self._by_identity[identity]
        except KeyError:
            raise FieldNotFoundError(identity) from None

    def _live(self, identity: str) -> Tuple[int, FieldDefinition]:
        slot = self._slot_of(identity)
        field = self._slots[slot]
        if field is None:
            raise FieldNotFoundError(identity)
        return slot, field

    def _renumber(self) -> None:
        for index, slot in enumerate(self._order):
            field = self._slots[slot]
            if field is not None and field.order != index:
                self._slots[slot] = field.model_copy(update={"order": index})

    # ----- queries -----

    def __len__(self) -> int:
        return len(self._order)

    def __contains__(self, identity: object) -> bool:
        return identity in self._by_identity

    def get(self, identity: str) -> FieldDefinition:
        return self._live(identity)[1]

    def identities(self) -> List[str]:
        return [str(self._slots[slot].identity) for slot in self._order]  # type: ignore[union-attr]

    def fields(self) -> List[FieldDefinition]:
        """Fields in display order."""
        return [self._slots[slot] for slot in self._order]  # type: ignore[misc]

    def to_schema(self, title: str, description: str = "", is_active: bool = True) -> FormSchema:
        return FormSchema(title=title, description=description, fields=self.fields(), is_active=is_active)

    # ----- commands -----

    def add(
        self,
        kind: FieldKind | str = FieldKind.TEXT,
        label: str = "",
        local_name: str = "",
        required: bool = False,
        options: Sequence[str] | None = None,
        position: Optional[int] = None,
    ) -> FieldDefinition:
        """Create a field with a fresh identity and insert it at ``position``."""
        field = FieldDefinition(
            local_name=local_name,
            label=label,
            kind=kind,
            required=required,
            options=list(options or []),
            identity=new_identity(),
        )
        field = _with_derived_name(field)
        slot = self._append_slot(field)
        self._order.pop()
        self._order.insert(insertion_index(position, len(self._order)), slot)
        self._renumber()
        logger.info("field_editor_add identity=%s kind=%s order=%s", field.identity, field.kind.value, self._order.index(slot))
        return self.get(str(field.identity))

    def update(self, identity: str, changes: Mapping[str, Any]) -> FieldDefinition:
        """Apply ``changes`` to one field in place.

        Identity and storage id never change. The local name follows the
        label only while it is still the label-derived name (or empty); an
        explicit rename is honoured until the field has been persisted.
        """
        slot, current = self._live(identity)
        data = current.model_dump(exclude={"identity"})
        requested: Dict[str, Any] = {}
        for key, value in changes.items():
            target = _CHANGE_KEYS.get(key)
            if target is None:
                logger.debug("field_editor_update_ignored identity=%s key=%s", identity, key)
                continue
            requested[target] = value
        data.update(requested)

        persisted = current.storage_id is not None
        if persisted and current.local_name:
            data["local_name"] = current.local_name
        elif "local_name" not in requested and "label" in requested:
            auto = not current.local_name or current.local_name == normalize_local_name(current.label)
            if auto and requested["label"]:
                data["local_name"] = normalize_local_name(str(requested["label"]))

        updated = FieldDefinition.model_validate(data)
        new_id = current.identity
        if is_placeholder(current.identity) and updated.local_name:
            candidate = f"field-{updated.local_name}"
            new_id = candidate if candidate not in self._by_identity else new_identity()
            del self._by_identity[str(current.identity)]
            self._by_identity[str(new_id)] = slot
        self._slots[slot] = updated.model_copy(update={"identity": new_id, "order": current.order})
        logger.info("field_editor_update identity=%s keys=%s", new_id, sorted(requested))
        return self.get(str(new_id))

    def delete(self, identity: str) -> FieldDefinition:
        slot, removed = self._live(identity)
        self._slots[slot] = None
        del self._by_identity[identity]
        self._order.remove(slot)
        self._renumber()
        logger.info("field_editor_delete identity=%s remaining=%s", identity, len(self._order))
        return removed

    def move(self, identity: str, position: int) -> int:
        """Move a field to the 1-based ``position``; return its final 1-based position."""
        slot = self._slot_of(identity)
        before = self.identities()
        self._order.remove(slot)
        insert_at = insertion_index(position, len(self._order))
        self._order.insert(insert_at, slot)
        self._renumber()
        logger.info(
            "field_editor_move identity=%s po=%s insert_at=%s before=%s after=%s",
            identity,
            position,
            insert_at,
            before,
            self.identities(),
        )
        return insert_at + 1

    def set_branch(self, identity: str, option: str, nested_fields: Iterable[Any]) -> FieldDefinition:
        """Replace the conditional fields shown when ``option`` is chosen.

        An empty ``nested_fields`` removes the branch.
        """
        field = self.get(identity)
        if not field.is_selectable:
            raise NotSelectableFieldError(f"{field.kind.value} fields cannot have conditional fields")
        if option not in field.options:
            raise SchemaMalformedError(
                [SchemaIssue(f"conditionalFields.{option}", f"'{option}' is not one of the options of {field.label or field.local_name}")]
            )
        nested = [_with_derived_name(f) for f in assign_identities(_coerce_fields(nested_fields))]
        nested = [f.model_copy(update={"order": i}) for i, f in enumerate(nested)]
        branches = dict(field.conditional_branches)
        if nested:
            branches[option] = nested
        else:
            branches.pop(option, None)
        self._slots[self._slot_of(identity)] = field.model_copy(update={"conditional_branches": branches})
        logger.info("field_editor_set_branch identity=%s option=%s fields=%s", identity, option, len(nested))
        return self.get(identity)

    def snapshot(self) -> List[Dict[str, Any]]:
        """Display-ordered fields with their identities, for editor clients."""
        out = []
        for field in self.fields():
            item = field.to_wire()
            item["identity"] = field.identity
            out.append(item)
        return out


__all__ = ["insertion_index", "FieldArena"]
