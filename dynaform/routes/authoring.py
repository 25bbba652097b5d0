"""Authoring routes: schema checks and the field editor.

Every route requires an admin session. Editors are in-memory
``FieldArena`` instances addressed by ``editor_id``; fields inside an
editor are addressed by their identity token, never by position.
"""

from __future__ import annotations

from typing import Any, Dict
import logging
import uuid

from fastapi import APIRouter, Body, Depends, Response

from dynaform.http.dependencies import require_admin
from dynaform.logic.admin_session import AdminSession
from dynaform.logic.errors import EditorNotFoundError
from dynaform.logic.events import SCHEMA_CHECKED, publish
from dynaform.logic.field_editor import FieldArena
from dynaform.logic.inmemory_state import EDITORS, EditorState
from dynaform.logic.schema_check import blocking, check_schema, ensure_schema
from dynaform.models.api_types import BranchRequest, EditorCreate, FieldCreate, MoveRequest
from dynaform.models.field_definition import FormSchema

router = APIRouter(prefix="/authoring")
logger = logging.getLogger(__name__)


def _editor(editor_id: str) -> EditorState:
    try:
        return EDITORS[editor_id]
    except KeyError:
        raise EditorNotFoundError(editor_id) from None


def _editor_body(state: EditorState) -> Dict[str, Any]:
    schema = state.arena.to_schema(state.title, state.description, state.is_active)
    return {
        "editor_id": state.editor_id,
        "title": state.title,
        "description": state.description,
        "isActive": state.is_active,
        "fields": state.arena.snapshot(),
        "issues": [i.to_dict() for i in check_schema(schema)],
    }


def _field_body(state: EditorState, identity: str) -> Dict[str, Any]:
    field = state.arena.get(identity)
    body = field.to_wire()
    body["identity"] = field.identity
    return body


@router.post("/schemas/check")
def check_schema_route(schema: FormSchema, admin: AdminSession = Depends(require_admin)) -> Dict[str, Any]:
    """Report every schema issue without saving anything."""
    issues = check_schema(schema)
    publish(SCHEMA_CHECKED, {"title": schema.title, "issues": len(issues), "subject": admin.subject})
    return {"ok": not blocking(issues), "issues": [i.to_dict() for i in issues]}


@router.post("/editors", status_code=201)
def create_editor(body: EditorCreate, admin: AdminSession = Depends(require_admin)) -> Dict[str, Any]:
    state = EditorState(
        editor_id=uuid.uuid4().hex,
        title=body.title,
        description=body.description,
        arena=FieldArena(body.fields),
        owner=admin.subject,
        is_active=body.is_active,
    )
    EDITORS[state.editor_id] = state
    logger.info("authoring_editor_created editor_id=%s fields=%s subject=%s", state.editor_id, len(state.arena), admin.subject)
    return _editor_body(state)


@router.get("/editors/{editor_id}")
def get_editor(editor_id: str, admin: AdminSession = Depends(require_admin)) -> Dict[str, Any]:
    return _editor_body(_editor(editor_id))


@router.post("/editors/{editor_id}/fields", status_code=201)
def add_field(editor_id: str, body: FieldCreate, admin: AdminSession = Depends(require_admin)) -> Dict[str, Any]:
    state = _editor(editor_id)
    field = state.arena.add(
        kind=body.kind,
        label=body.label,
        local_name=body.local_name,
        required=body.required,
        options=body.options,
        position=body.position,
    )
    return _field_body(state, str(field.identity))


@router.patch("/editors/{editor_id}/fields/{identity}")
def update_field(
    editor_id: str,
    identity: str,
    changes: Dict[str, Any] = Body(...),
    admin: AdminSession = Depends(require_admin),
) -> Dict[str, Any]:
    state = _editor(editor_id)
    field = state.arena.update(identity, changes)
    return _field_body(state, str(field.identity))


@router.delete("/editors/{editor_id}/fields/{identity}", status_code=204)
def delete_field(editor_id: str, identity: str, admin: AdminSession = Depends(require_admin)) -> Response:
    _editor(editor_id).arena.delete(identity)
    return Response(status_code=204)


@router.post("/editors/{editor_id}/fields/{identity}/move")
def move_field(editor_id: str, identity: str, body: MoveRequest, admin: AdminSession = Depends(require_admin)) -> Dict[str, Any]:
    state = _editor(editor_id)
    final_position = state.arena.move(identity, body.position)
    return {"identity": identity, "position": final_position, "order": state.arena.identities()}


@router.put("/editors/{editor_id}/fields/{identity}/branches/{option}")
def set_field_branch(
    editor_id: str,
    identity: str,
    option: str,
    body: BranchRequest,
    admin: AdminSession = Depends(require_admin),
) -> Dict[str, Any]:
    state = _editor(editor_id)
    state.arena.set_branch(identity, option, body.fields)
    return _field_body(state, identity)


@router.post("/editors/{editor_id}/schema")
def export_schema(editor_id: str, admin: AdminSession = Depends(require_admin)) -> Dict[str, Any]:
    """Return the persisted schema shape; blocking issues fail with 422."""
    state = _editor(editor_id)
    schema = state.arena.to_schema(state.title, state.description, state.is_active)
    warnings = ensure_schema(schema)
    logger.info("authoring_schema_exported editor_id=%s fields=%s warnings=%s", editor_id, len(schema.fields), len(warnings))
    return {"schema": schema.to_wire(), "warnings": [w.to_dict() for w in warnings]}


__all__ = ["router"]
