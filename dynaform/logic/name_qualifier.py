"""Local-name normalisation and qualified-name construction.

Nested (conditional) fields are addressed by a flat qualified name built
from the ancestor chain and the field's own local name, joined with ``_``:
``contact_method`` + ``email_address`` -> ``contact_method_email_address``.
This is the shape the submission service and CSV export already use.

Because normalised local names may themselves contain ``_``, a qualified
name cannot be split back by string parsing alone. ``NameQualifier``
therefore records every name it produces; ``unqualify`` is an exact lookup
and two different ancestor chains that would flatten to the same string are
rejected as a collision instead of silently sharing a value slot.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, NamedTuple, Optional, Tuple

from dynaform.logic.errors import QualifiedNameCollisionError, UnknownQualifiedNameError

logger = logging.getLogger(__name__)

SEPARATOR = "_"
_INVALID_CHARS = re.compile(r"[^a-z0-9_]")
_UNDERSCORE_RUNS = re.compile(r"_+")
_VALID_LOCAL_NAME = re.compile(r"^[a-z][a-z0-9]*(?:_[a-z0-9]+)*$")


def normalize_local_name(label: str | None) -> str:
    """Derive a local name from a human label.

    ``"Email Address"`` -> ``"email_address"``; ``"2nd phone"`` ->
    ``"field_2nd_phone"``; empty input -> ``""``.
    """
    if not label:
        return ""
    name = _INVALID_CHARS.sub("_", str(label).lower())
    name = _UNDERSCORE_RUNS.sub("_", name).strip("_")
    if name and not name[0].isalpha():
        name = "field_" + name
    return name or "field"


def is_valid_local_name(name: str | None) -> bool:
    """True when ``name`` is already in normalised form."""
    return bool(name) and bool(_VALID_LOCAL_NAME.match(str(name)))


def qualify(chain: Iterable[str], local_name: str) -> str:
    """Join ancestor local names and ``local_name`` into a qualified name."""
    parts = [str(p) for p in chain]
    parts.append(str(local_name))
    return SEPARATOR.join(parts)


class Unqualified(NamedTuple):
    chain: Tuple[str, ...]
    local_name: str

    @property
    def parent(self) -> Optional[str]:
        """Qualified name of the parent field, or None for top-level fields."""
        if not self.chain:
            return None
        return qualify(self.chain[:-1], self.chain[-1])


class NameQualifier:
    """Qualifies names and remembers them so the mapping can be reversed."""

    def __init__(self) -> None:
        self._produced: Dict[str, Unqualified] = {}

    def qualify(self, chain: Iterable[str], local_name: str) -> str:
        chain_t = tuple(str(p) for p in chain)
        origin = Unqualified(chain_t, str(local_name))
        qualified = qualify(chain_t, local_name)
        existing = self._produced.get(qualified)
        if existing is not None and existing != origin:
            logger.error(
                "qualified_name_collision name=%s first=%s second=%s",
                qualified,
                tuple(existing),
                tuple(origin),
            )
            raise QualifiedNameCollisionError(qualified, tuple(existing), tuple(origin))
        self._produced[qualified] = origin
        return qualified

    def unqualify(self, qualified_name: str) -> Unqualified:
        try:
            return self._produced[qualified_name]
        except KeyError:
            raise UnknownQualifiedNameError(qualified_name) from None

    def parent_of(self, qualified_name: str) -> Optional[str]:
        return self.unqualify(qualified_name).parent

    def __contains__(self, qualified_name: object) -> bool:
        return qualified_name in self._produced

    def __len__(self) -> int:
        return len(self._produced)


__all__ = [
    "SEPARATOR",
    "normalize_local_name",
    "is_valid_local_name",
    "qualify",
    "Unqualified",
    "NameQualifier",
]
