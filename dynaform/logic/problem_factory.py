"""Centralised construction of problem+json payloads for engine errors.

Maps each ``DynaformError`` subclass to an HTTP status and builds the
problem dict, so route modules never embed codes or status literals.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Type
import logging

from dynaform.logic.errors import (
    AdminSessionInvalidError,
    DynaformError,
    EditorNotFoundError,
    FieldKindMismatchError,
    FieldNotFoundError,
    FillSessionNotFoundError,
    FormInactiveError,
    FormInvalidError,
    NotSelectableFieldError,
    QualifiedNameCollisionError,
    SchemaMalformedError,
    SubmissionInFlightError,
    SubmissionRejectedError,
    SubmissionTransportError,
    UnknownFieldKindError,
    UnknownQualifiedNameError,
)

logger = logging.getLogger(__name__)

# Most specific class first; subclasses inherit their parent's entry
ERROR_STATUS: Dict[Type[DynaformError], tuple] = {
    SchemaMalformedError: (422, "Unprocessable Entity"),
    UnknownFieldKindError: (422, "Unprocessable Entity"),
    QualifiedNameCollisionError: (422, "Unprocessable Entity"),
    FormInvalidError: (422, "Unprocessable Entity"),
    SubmissionRejectedError: (422, "Unprocessable Entity"),
    NotSelectableFieldError: (409, "Conflict"),
    FieldKindMismatchError: (409, "Conflict"),
    FormInactiveError: (409, "Conflict"),
    SubmissionInFlightError: (409, "Conflict"),
    UnknownQualifiedNameError: (404, "Not Found"),
    FieldNotFoundError: (404, "Not Found"),
    FillSessionNotFoundError: (404, "Not Found"),
    EditorNotFoundError: (404, "Not Found"),
    AdminSessionInvalidError: (401, "Unauthorized"),
    SubmissionTransportError: (502, "Bad Gateway"),
}


def status_for(exc: DynaformError) -> tuple:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS:
            return ERROR_STATUS[cls]
    return 400, "Bad Request"


def problem_for(exc: DynaformError, extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Return the problem+json dict for ``exc``."""
    status, title = status_for(exc)
    problem: Dict[str, Any] = {
        "title": title,
        "status": status,
        "detail": str(exc),
        "message": str(exc),
        "code": exc.code,
    }
    if isinstance(exc, SchemaMalformedError):
        problem["errors"] = [
            {"path": getattr(i, "path", ""), "message": getattr(i, "message", str(i))} for i in exc.issues
        ]
    elif isinstance(exc, FormInvalidError):
        problem["errors"] = [{"path": name, "message": message} for name, message in exc.errors.items()]
    elif isinstance(exc, SubmissionTransportError):
        problem["retryable"] = True
    if extra:
        problem.update(extra)
    logger.info("error_handler.handle code=%s status=%s", exc.code, status)
    return problem


def problem_upload_too_large(max_bytes: int) -> Dict[str, Any]:
    """Return a 413 problem for an uploaded file over the configured limit."""
    problem = {
        "title": "Payload Too Large",
        "status": 413,
        "detail": f"file exceeds {max_bytes} bytes",
        "message": f"file exceeds {max_bytes} bytes",
        "code": "UPLOAD_TOO_LARGE",
    }
    logger.info("error_handler.handle code=%s status=%s", problem["code"], 413)
    return problem


def problem_session_limit_reached(max_sessions: int) -> Dict[str, Any]:
    """Return a 503 problem when no more fill sessions can be opened."""
    problem = {
        "title": "Service Unavailable",
        "status": 503,
        "detail": f"fill session limit of {max_sessions} reached",
        "message": f"fill session limit of {max_sessions} reached",
        "code": "FILL_SESSION_LIMIT_REACHED",
    }
    logger.info("error_handler.handle code=%s status=%s", problem["code"], 503)
    return problem


__all__ = [
    "ERROR_STATUS",
    "status_for",
    "problem_for",
    "problem_upload_too_large",
    "problem_session_limit_reached",
]
