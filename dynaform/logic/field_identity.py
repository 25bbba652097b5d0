"""Stable identities for field definitions.

An identity is an opaque token that follows a field through reorder, edit
and delete operations in the editor, independent of its display position
and of its name. Identities are never persisted; they are reconstructed on
load from the storage id or local name and only fall back to a positional
placeholder for fields that have neither yet.
"""

from __future__ import annotations

import itertools
import logging
import secrets
import string
import time
from typing import Iterable, List, Optional

from dynaform.models.field_definition import FieldDefinition

logger = logging.getLogger(__name__)

PLACEHOLDER_PREFIX = "field-temp-"
_BASE36 = string.digits + string.ascii_lowercase
_counter = itertools.count()


def identify(field: FieldDefinition, position_hint: int) -> str:
    """Return the identity for ``field`` without modifying it.

    Priority: existing token, persisted storage id, local name, then a
    positional placeholder derived from ``position_hint``.
    """
    if field.identity:
        return field.identity
    if field.storage_id:
        return str(field.storage_id)
    if field.local_name:
        return f"field-{field.local_name}"
    return f"{PLACEHOLDER_PREFIX}{int(position_hint)}"


def is_placeholder(identity: Optional[str]) -> bool:
    return bool(identity) and str(identity).startswith(PLACEHOLDER_PREFIX)


def new_identity() -> str:
    """Generate a process-unique token for a newly created field.

    Millisecond timestamp plus a random base36 suffix; a process-local
    counter is folded into the suffix so two fields created in the same
    millisecond never collide.
    """
    millis = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    seq = next(_counter)
    return f"field_{millis}_{suffix}{seq:x}"


def with_identity(field: FieldDefinition, position_hint: int) -> FieldDefinition:
    """Return ``field`` carrying its identity (same instance when already set)."""
    if field.identity:
        return field
    return field.model_copy(update={"identity": identify(field, position_hint)})


def assign_identities(fields: Iterable[FieldDefinition]) -> List[FieldDefinition]:
    """Attach identities to a freshly loaded sibling list.

    Duplicate identities (possible only for malformed input with repeated
    names and no storage ids) are replaced with generated tokens so the
    editor arena can still address every field.
    """
    out: List[FieldDefinition] = []
    seen: set[str] = set()
    for position, field in enumerate(fields):
        candidate = with_identity(field, position)
        if candidate.identity in seen:
            replacement = new_identity()
            logger.warning(
                "field_identity_duplicate identity=%s position=%s replacement=%s",
                candidate.identity,
                position,
                replacement,
            )
            candidate = candidate.model_copy(update={"identity": replacement})
        seen.add(str(candidate.identity))
        out.append(candidate)
    return out


__all__ = [
    "PLACEHOLDER_PREFIX",
    "identify",
    "is_placeholder",
    "new_identity",
    "with_identity",
    "assign_identities",
]
