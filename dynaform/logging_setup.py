"""Logging configuration for the form service.

One stdout handler on the root logger, configured through ``dictConfig``.
Every record carries the id of the HTTP request it was emitted under
(``-`` outside a request), set by ``RequestIdMiddleware``, so the log lines
of one fill-session call can be grepped together.
"""

from __future__ import annotations

from contextvars import ContextVar
from logging.config import dictConfig
import logging
import os

REQUEST_ID: ContextVar[str] = ContextVar("dynaform_request_id", default="-")


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = REQUEST_ID.get()
        return True


def _dict_config(level: str) -> dict:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"request_id": {"()": RequestIdFilter}},
        "formatters": {
            "default": {"format": "%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s"},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": "DEBUG",
                "formatter": "default",
                "filters": ["request_id"],
                "stream": "ext://sys.stdout",
            }
        },
        "root": {"level": "INFO", "handlers": ["console"]},
        "loggers": {
            "dynaform": {"level": level, "propagate": True},
            # Request lines from the submission client are noise at INFO
            "httpx": {"level": "WARNING", "propagate": True},
            "uvicorn": {"level": "INFO", "handlers": ["console"], "propagate": False},
            "uvicorn.access": {"level": "INFO", "handlers": ["console"], "propagate": False},
        },
    }


def configure_logging(level: str | None = None) -> None:
    """Configure logging once per process.

    Does nothing when the root logger already has handlers (uvicorn
    reloader, pytest). ``level`` defaults to ``DYNAFORM_LOG_LEVEL`` or INFO
    and applies to the ``dynaform`` loggers only.
    """
    if logging.getLogger().handlers:
        return
    chosen = (level or os.environ.get("DYNAFORM_LOG_LEVEL") or "INFO").upper()
    dictConfig(_dict_config(chosen))


__all__ = ["REQUEST_ID", "RequestIdFilter", "configure_logging"]
