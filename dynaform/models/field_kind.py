"""FieldKind enumeration for the closed set of form input kinds.

Every consumer (expander, synthesizer, validator, serializer) dispatches
over these members exhaustively. Values match the ``type`` tokens used in
persisted form schemas.
"""

from __future__ import annotations

from enum import Enum


class FieldKind(str, Enum):
    TEXT = "text"
    TEXTAREA = "textarea"
    NUMBER = "number"
    EMAIL = "email"
    DATE = "date"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    SELECT = "select"
    FILE = "file"

    @property
    def is_selectable(self) -> bool:
        """True for kinds whose value picks one of ``options`` (and may branch)."""
        return self in SELECTABLE_KINDS


SELECTABLE_KINDS = frozenset({FieldKind.RADIO, FieldKind.SELECT})


__all__ = ["FieldKind", "SELECTABLE_KINDS"]
