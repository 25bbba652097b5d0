"""Problem+JSON utilities and global exception handlers.

Defines the RFC7807 media type and the handler callables registered by
``create_app`` so every error leaves the service as
application/problem+json.
"""

from __future__ import annotations

import logging
from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from dynaform.logic.errors import DynaformError
from dynaform.logic.problem_factory import problem_for

PROBLEM_MEDIA_TYPE = "application/problem+json"

logger = logging.getLogger(__name__)


def problem_response(problem: dict, headers: dict | None = None) -> JSONResponse:
    status = int(problem.get("status", 500) or 500)
    return JSONResponse(jsonable_encoder(problem), status_code=status, media_type=PROBLEM_MEDIA_TYPE, headers=headers)


async def handle_dynaform_error(request: Request, exc: DynaformError) -> JSONResponse:  # noqa: D401
    return problem_response(problem_for(exc))


async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:  # noqa: D401
    if isinstance(exc.detail, dict):
        detail = dict(exc.detail)
        detail.setdefault("status", exc.status_code)
    else:
        detail = {"title": "Error", "status": exc.status_code, "detail": str(exc.detail or "")}
    return problem_response(detail, headers=dict(exc.headers or {}))


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:  # noqa: D401
    problem = {
        "title": "Invalid Request",
        "status": 422,
        "detail": "Request validation failed",
        "errors": list(exc.errors()),
    }
    return problem_response(problem)


async def handle_model_validation_error(request: Request, exc: PydanticValidationError) -> JSONResponse:  # noqa: D401
    problem = {
        "title": "Unprocessable Entity",
        "status": 422,
        "detail": "Payload does not describe a valid form",
        "errors": [
            {"path": ".".join(str(p) for p in err.get("loc", ())), "message": err.get("msg", "")}
            for err in exc.errors()
        ],
    }
    return problem_response(problem)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:  # noqa: D401
    logger.error("unexpected_error path=%s", request.url.path, exc_info=exc)
    return JSONResponse({"title": "Internal Server Error", "status": 500}, status_code=500, media_type=PROBLEM_MEDIA_TYPE)


__all__ = [
    "PROBLEM_MEDIA_TYPE",
    "problem_response",
    "handle_dynaform_error",
    "handle_http_exception",
    "handle_request_validation_error",
    "handle_model_validation_error",
    "handle_unexpected_error",
]
