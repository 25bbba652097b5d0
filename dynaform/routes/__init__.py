"""APIRouter registration for the form service."""

from __future__ import annotations

from fastapi import APIRouter

from dynaform.routes.auth import router as auth_router
from dynaform.routes.authoring import router as authoring_router
from dynaform.routes.fill_sessions import router as fill_sessions_router
from dynaform.routes.forms import router as forms_router

api_router = APIRouter()
api_router.include_router(auth_router, tags=["Auth"])
api_router.include_router(authoring_router, tags=["Authoring"])
api_router.include_router(forms_router, tags=["Forms"])
api_router.include_router(fill_sessions_router, tags=["FillSessions"])

__all__ = ["api_router"]
