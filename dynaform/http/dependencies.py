"""FastAPI dependencies resolving per-app collaborators.

``create_app`` stores the configuration, the admin session registry and the
submission client on ``app.state``; routes receive them through these
callables so tests can swap any of them on a fresh app.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, Request

from dynaform.config import AppConfig
from dynaform.logic.admin_session import AdminSession, AdminSessionRegistry
from dynaform.logic.errors import FillSessionNotFoundError
from dynaform.logic.fill_session import FillSession
from dynaform.logic.inmemory_state import FILL_SESSIONS
from dynaform.logic.submission_client import SubmissionClient


def get_config(request: Request) -> AppConfig:
    return request.app.state.config


def get_admin_registry(request: Request) -> AdminSessionRegistry:
    return request.app.state.admin_sessions


def get_submission_client(request: Request) -> SubmissionClient:
    return request.app.state.submission_client


def bearer_token(authorization: Optional[str] = Header(default=None)) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


def require_admin(
    token: Optional[str] = Depends(bearer_token),
    registry: AdminSessionRegistry = Depends(get_admin_registry),
) -> AdminSession:
    """Resolve the caller's admin session or fail with 401."""
    return registry.resolve(token)


def get_fill_session(session_id: str) -> FillSession:
    try:
        return FILL_SESSIONS[session_id]
    except KeyError:
        raise FillSessionNotFoundError(session_id) from None


__all__ = [
    "get_config",
    "get_admin_registry",
    "get_submission_client",
    "bearer_token",
    "require_admin",
    "get_fill_session",
]
