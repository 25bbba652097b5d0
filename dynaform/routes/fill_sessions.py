"""Fill-session routes.

One session per user fill-out. Selection changes recompute the effective
fields before the response is sent, so the next request always validates
against the current rule set. Submission is the only route that awaits a
collaborator; while it is pending a second submit on the same session is
rejected with 409 but edits are still accepted.
"""

from __future__ import annotations

from typing import Any, Dict
import logging

from fastapi import APIRouter, Depends, File, Response, UploadFile

from dynaform.config import AppConfig
from dynaform.http.dependencies import get_config, get_fill_session, get_submission_client
from dynaform.http.problem import problem_response
from dynaform.logic.errors import FormInactiveError, SubmissionRejectedError, SubmissionTransportError
from dynaform.logic.events import FORM_SUBMISSION_FAILED, FORM_SUBMITTED, publish
from dynaform.logic.fill_session import FillSession
from dynaform.logic.inmemory_state import FILL_SESSIONS
from dynaform.logic.problem_factory import problem_for, problem_session_limit_reached, problem_upload_too_large
from dynaform.logic.server_errors import map_server_errors
from dynaform.logic.submission_client import SubmissionClient
from dynaform.models.answers import FileRef
from dynaform.models.api_types import FillSessionCreate, SelectionRequest, ValidationResult, ValuesRequest

router = APIRouter(prefix="/fill-sessions")
logger = logging.getLogger(__name__)


@router.post("", status_code=201)
def create_fill_session(body: FillSessionCreate, config: AppConfig = Depends(get_config)) -> Any:
    if len(FILL_SESSIONS) >= config.fill_sessions.max_sessions:
        return problem_response(problem_session_limit_reached(config.fill_sessions.max_sessions))
    if not body.form_schema.is_active:
        raise FormInactiveError("form is not accepting submissions")
    session = FillSession(body.form_schema, form_id=body.form_id)
    FILL_SESSIONS[session.session_id] = session
    logger.info("fill_session_created session=%s form_id=%s fields=%s", session.session_id, body.form_id, len(session.effective))
    return session.snapshot()


@router.get("/{session_id}")
def get_session(session: FillSession = Depends(get_fill_session)) -> Dict[str, Any]:
    return session.snapshot()


@router.post("/{session_id}/selection")
def change_selection(body: SelectionRequest, session: FillSession = Depends(get_fill_session)) -> Dict[str, Any]:
    delta = session.select(body.name, body.option)
    return {"visibility_delta": delta.to_dict(), "session": session.snapshot()}


@router.put("/{session_id}/values")
def put_values(body: ValuesRequest, session: FillSession = Depends(get_fill_session)) -> Dict[str, Any]:
    delta = session.set_values(body.values)
    return {"visibility_delta": delta.to_dict(), "session": session.snapshot()}


@router.put("/{session_id}/files/{name}")
async def upload_file(
    name: str,
    file: UploadFile = File(...),
    session: FillSession = Depends(get_fill_session),
    config: AppConfig = Depends(get_config),
) -> Any:
    limit = config.uploads.max_bytes
    # Never hold more than limit + 1 bytes; the extra byte detects overflow
    content = b"" if file.size is not None and file.size > limit else await file.read(limit + 1)
    if len(content) > limit or (file.size or 0) > limit:
        logger.info("fill_session_upload_rejected session=%s field=%s size=%s", session.session_id, name, file.size)
        return problem_response(problem_upload_too_large(limit))
    ref = FileRef(
        filename=file.filename or name,
        content=content,
        content_type=file.content_type or "application/octet-stream",
    )
    session.attach_file(name, ref)
    return session.snapshot()


@router.post("/{session_id}/validate", response_model=ValidationResult)
def validate_session(session: FillSession = Depends(get_fill_session)) -> ValidationResult:
    session.validate()
    errors = session.errors()
    return ValidationResult(valid=not errors, errors=errors)


@router.post("/{session_id}/submit")
async def submit_session(
    session: FillSession = Depends(get_fill_session),
    client: SubmissionClient = Depends(get_submission_client),
) -> Any:
    with session.submitting():
        submission = session.build_submission()
        try:
            result = await client.submit(submission)
        except SubmissionRejectedError as exc:
            mapped = map_server_errors(exc.errors, session.effective)
            publish(FORM_SUBMISSION_FAILED, {"session_id": session.session_id, "status": exc.status_code})
            return problem_response(
                problem_for(exc, {"field_errors": mapped.field_errors, "unmapped": mapped.unmapped})
            )
        except SubmissionTransportError as exc:
            publish(FORM_SUBMISSION_FAILED, {"session_id": session.session_id, "status": exc.status_code, "retryable": True})
            raise
    publish(
        FORM_SUBMITTED,
        {"session_id": session.session_id, "form_id": submission.form_id, "answers": len(submission.answers)},
    )
    return {
        "submitted": True,
        "form_id": submission.form_id,
        "answers": [a.model_dump() for a in submission.answers],
        "files": [p.name for p in submission.files],
        "response": result,
    }


@router.post("/{session_id}/reset")
def reset_session(session: FillSession = Depends(get_fill_session)) -> Dict[str, Any]:
    session.reset()
    return session.snapshot()


@router.delete("/{session_id}", status_code=204)
def delete_session(session: FillSession = Depends(get_fill_session)) -> Response:
    FILL_SESSIONS.pop(session.session_id, None)
    logger.info("fill_session_deleted session=%s", session.session_id)
    return Response(status_code=204)


__all__ = ["router"]
