"""Admin session routes.

Exchanges the configured admin key for a short-lived bearer token used by
the authoring routes.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Response

from dynaform.http.dependencies import get_admin_registry, require_admin
from dynaform.logic.admin_session import AdminSession, AdminSessionRegistry
from dynaform.models.api_types import AdminSessionOut, AdminSessionRequest

router = APIRouter(prefix="/auth")
logger = logging.getLogger(__name__)


@router.post("/sessions", status_code=201, response_model=AdminSessionOut)
def create_admin_session(
    body: AdminSessionRequest,
    registry: AdminSessionRegistry = Depends(get_admin_registry),
) -> AdminSessionOut:
    session = registry.issue(body.api_key, subject=body.subject)
    return AdminSessionOut(
        token=session.token,
        subject=session.subject,
        issued_at=session.issued_at.isoformat(),
        expires_at=session.expires_at.isoformat(),
    )


@router.delete("/sessions", status_code=204)
def revoke_admin_session(
    session: AdminSession = Depends(require_admin),
    registry: AdminSessionRegistry = Depends(get_admin_registry),
) -> Response:
    registry.revoke(session.token)
    return Response(status_code=204)


__all__ = ["router"]
