"""Functional tests for field identity tokens."""

from __future__ import annotations

from dynaform.logic.field_identity import (
    PLACEHOLDER_PREFIX,
    assign_identities,
    identify,
    is_placeholder,
    new_identity,
)
from dynaform.models.field_definition import FieldDefinition


def _field(**data):
    data.setdefault("type", "text")
    return FieldDefinition.model_validate(data)


def test_identity_priority_order():
    """Verifies identity prefers existing token, then storage id, then name, then position."""
    assert identify(_field(name="a", _id="64f0", identity="tok"), 0) == "tok"
    assert identify(_field(name="a", _id="64f0"), 0) == "64f0"
    assert identify(_field(name="a"), 0) == "field-a"
    assert identify(_field(label="No name"), 3) == f"{PLACEHOLDER_PREFIX}3"


def test_placeholder_detection():
    assert is_placeholder(f"{PLACEHOLDER_PREFIX}0")
    assert not is_placeholder("field-a")
    assert not is_placeholder(None)


def test_new_identities_are_unique():
    """Verifies generated tokens never repeat, even in a tight loop."""
    tokens = {new_identity() for _ in range(500)}
    assert len(tokens) == 500


def test_assign_identities_replaces_duplicates():
    """Verifies malformed sibling lists with repeated names still get distinct identities."""
    fields = assign_identities([_field(name="dup"), _field(name="dup"), _field(name="other")])
    identities = [f.identity for f in fields]
    # Assert: first keeps the name-derived token; the duplicate is replaced
    assert identities[0] == "field-dup"
    assert identities[1] != "field-dup"
    assert len(set(identities)) == 3


def test_identity_is_not_serialised():
    """Verifies identity tokens never reach the persisted schema shape."""
    wire = _field(name="a", identity="tok").to_wire()
    assert "identity" not in wire
    assert wire["name"] == "a"
