"""Map submission-service errors back onto form fields.

The submission service reports problems as a list of strings or objects
shaped like ``{path|param, msg|message}``. Messages usually mention the
field's label ("Email Address is required"), so matching is done on the
message text first and on an exact ``path`` second. The mapping is best
effort: several messages may land on one field and some may not land
anywhere.
"""

from __future__ import annotations

from dataclasses import dataclass, field as dc_field
from typing import Any, Dict, Iterable, List, Optional, Tuple
import logging

from dynaform.logic.field_expander import EffectiveField

logger = logging.getLogger(__name__)


@dataclass
class MappedErrors:
    field_errors: Dict[str, str] = dc_field(default_factory=dict)
    unmapped: List[str] = dc_field(default_factory=list)


def _message_and_path(error: Any) -> Tuple[str, Optional[str]]:
    if isinstance(error, str):
        return error, None
    if isinstance(error, dict):
        message = error.get("msg") or error.get("message") or ""
        path = error.get("path") or error.get("param")
        return str(message), (str(path) if path else None)
    return str(error), None


def _match_by_text(message: str, fields: List[EffectiveField]) -> Optional[str]:
    text = message.lower()
    best: Optional[Tuple[int, str]] = None
    for ef in fields:
        for needle in (ef.definition.label, ef.definition.local_name):
            if not needle or needle.lower() not in text:
                continue
            # Longest mention wins so "Last Name" beats "Name"
            if best is None or len(needle) > best[0]:
                best = (len(needle), ef.qualified_name)
    return best[1] if best else None


def map_server_errors(errors: Iterable[Any], effective_fields: Iterable[EffectiveField]) -> MappedErrors:
    fields = list(effective_fields)
    names = {ef.qualified_name for ef in fields}
    result = MappedErrors()
    for error in errors or []:
        message, path = _message_and_path(error)
        if not message:
            continue
        target = _match_by_text(message, fields)
        if target is None and path in names:
            target = path
        if target is None:
            result.unmapped.append(message)
            continue
        result.field_errors.setdefault(target, message)
    logger.info(
        "server_errors_mapped mapped=%s unmapped=%s",
        sorted(result.field_errors),
        len(result.unmapped),
    )
    return result


__all__ = ["MappedErrors", "map_server_errors"]
