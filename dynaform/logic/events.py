"""Domain events for fill sessions and authoring.

There is no broker: ``publish`` logs the event and appends it to an
in-process buffer that the test-support routes expose. Each buffered event
gets a monotonically increasing ``seq`` so consumers can read incrementally.
"""

from __future__ import annotations

from typing import Any, Dict, List
import itertools
import logging

logger = logging.getLogger(__name__)

SELECTION_CHANGED = "fill_session.selection_changed"
FILL_SESSION_RESET = "fill_session.reset"
FORM_SUBMITTED = "form.submitted"
FORM_SUBMISSION_FAILED = "form.submission_failed"
SCHEMA_CHECKED = "schema.checked"

EVENT_BUFFER: List[Dict[str, Any]] = []
_seq = itertools.count(1)


def publish(event_type: str, payload: Dict[str, Any]) -> None:
    seq = next(_seq)
    logger.info("event_publish seq=%s type=%s payload=%s", seq, event_type, payload)
    EVENT_BUFFER.append({"seq": seq, "type": event_type, "payload": dict(payload)})


def get_buffered_events(clear: bool = True, after: int = 0) -> List[Dict[str, Any]]:
    """Return buffered events with ``seq > after``; optionally clear the buffer."""
    events = [e for e in EVENT_BUFFER if e["seq"] > after]
    if clear:
        EVENT_BUFFER.clear()
    return events


__all__ = [
    "SELECTION_CHANGED",
    "FILL_SESSION_RESET",
    "FORM_SUBMITTED",
    "FORM_SUBMISSION_FAILED",
    "SCHEMA_CHECKED",
    "EVENT_BUFFER",
    "publish",
    "get_buffered_events",
]
