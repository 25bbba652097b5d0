from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError as PydanticValidationError

from dynaform.config import AppConfig, load_config
from dynaform.http.problem import (
    handle_dynaform_error,
    handle_http_exception,
    handle_model_validation_error,
    handle_request_validation_error,
    handle_unexpected_error,
)
from dynaform.http.request_id import RequestIdMiddleware
from dynaform.logging_setup import configure_logging
from dynaform.logic.admin_session import AdminSessionRegistry
from dynaform.logic.errors import DynaformError
from dynaform.logic.inmemory_state import EDITORS, FILL_SESSIONS
from dynaform.logic.submission_client import SubmissionClient
from dynaform.routes import api_router

logger = logging.getLogger(__name__)


def create_app(
    config: Optional[AppConfig] = None,
    submission_client: Optional[SubmissionClient] = None,
    enable_test_support: bool = False,
) -> FastAPI:
    """Build the FastAPI application.

    ``config`` defaults to ``load_config()``; ``submission_client`` defaults
    to an HTTP client for ``config.submission``. Tests pass their own.
    """
    configure_logging()
    cfg = config or load_config()
    app = FastAPI(title="Dynamic Form Service")

    app.state.config = cfg
    app.state.admin_sessions = AdminSessionRegistry(cfg.admin.api_key, ttl_seconds=cfg.admin.session_ttl_seconds)
    app.state.submission_client = submission_client or SubmissionClient(
        cfg.submission.base_url, timeout_seconds=cfg.submission.timeout_seconds
    )

    app.add_exception_handler(DynaformError, handle_dynaform_error)
    app.add_exception_handler(HTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(PydanticValidationError, handle_model_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-Id"],
    )

    app.include_router(api_router, prefix="/api/v1")
    if enable_test_support:
        from dynaform.routes.test_support import router as test_support_router

        app.include_router(test_support_router)

    @app.get("/health")
    def health() -> dict:
        return {
            "status": "ok",
            "fill_sessions": len(FILL_SESSIONS),
            "editors": len(EDITORS),
        }

    logger.info(
        "app_created submission_base_url=%s max_sessions=%s test_support=%s",
        cfg.submission.base_url,
        cfg.fill_sessions.max_sessions,
        enable_test_support,
    )
    return app


__all__ = ["create_app"]
