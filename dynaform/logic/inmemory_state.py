"""Central in-memory state holders.

Single source of truth for the ephemeral per-process state used by the
routes: open fill sessions and authoring editors. Nothing is persisted;
restarting the process discards everything, which matches the lifecycle of
the data (selections and values live for one fill-out only).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

from dynaform.logic.field_editor import FieldArena
from dynaform.logic.fill_session import FillSession


@dataclass
class EditorState:
    editor_id: str
    title: str
    description: str
    arena: FieldArena
    owner: str = "admin"
    is_active: bool = True


# Fill session store: session_id -> FillSession
FILL_SESSIONS: Dict[str, FillSession] = {}

# Authoring editor store: editor_id -> EditorState
EDITORS: Dict[str, EditorState] = {}


def clear_all() -> None:
    FILL_SESSIONS.clear()
    EDITORS.clear()


__all__ = ["EditorState", "FILL_SESSIONS", "EDITORS", "clear_all"]
