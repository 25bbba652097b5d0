"""Configuration for the form service.

Every setting is addressed by a dotted path (``submission.base_url``) and
resolved from the first source that has it:

1. the environment variable listed in ``SETTINGS``
2. a text file named after the path under ``config/``
3. the same path inside ``dynaform_config.json``
4. the built-in default

The collected values are validated in one go by ``AppConfig``.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator


CONFIG_DIR = Path("config")
ROOT_DYNAFORM_CONFIG = Path("dynaform_config.json")
logger = logging.getLogger(__name__)

# dotted path -> (environment variable, default)
SETTINGS: Dict[str, Tuple[str, str]] = {
    "submission.base_url": ("SUBMISSION_BASE_URL", "http://localhost:5000/api"),
    "submission.timeout_seconds": ("SUBMISSION_TIMEOUT_SECONDS", "10"),
    "admin.api_key": ("ADMIN_API_KEY", "dev-admin-key"),
    "admin.session_ttl_seconds": ("ADMIN_SESSION_TTL_SECONDS", "3600"),
    "uploads.max_bytes": ("UPLOADS_MAX_BYTES", "10485760"),
    "fill_sessions.max_sessions": ("FILL_SESSIONS_MAX", "1000"),
}


class SubmissionConfig(BaseModel):
    base_url: str
    timeout_seconds: float = Field(default=10.0, gt=0)

    @field_validator("base_url")
    @classmethod
    def base_url_must_be_http(cls, v: str) -> str:
        if not v.strip().startswith(("http://", "https://")):
            raise ValueError("submission.base_url must be an http(s) URL")
        return v.strip().rstrip("/")


class AdminConfig(BaseModel):
    api_key: str
    session_ttl_seconds: int = Field(default=3600, gt=0)

    @field_validator("api_key")
    @classmethod
    def api_key_must_be_non_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("admin.api_key must be a non-empty string")
        return v.strip()


class UploadsConfig(BaseModel):
    max_bytes: int = Field(default=10485760, gt=0)


class FillSessionsConfig(BaseModel):
    max_sessions: int = Field(default=1000, gt=0)


class AppConfig(BaseModel):
    submission: SubmissionConfig
    admin: AdminConfig
    uploads: UploadsConfig
    fill_sessions: FillSessionsConfig


def _override_file(dotted: str) -> Optional[str]:
    path = CONFIG_DIR / dotted
    if not path.exists():
        return None
    try:
        return path.read_text(encoding="utf-8").strip() or None
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("config_override_unreadable path=%s error=%s", path, e)
        return None


def _root_json() -> Dict[str, Any]:
    if not ROOT_DYNAFORM_CONFIG.exists():
        return {}
    try:
        data = json.loads(ROOT_DYNAFORM_CONFIG.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.error("config_json_unreadable path=%s error=%s", ROOT_DYNAFORM_CONFIG, e)
        return {}
    return data if isinstance(data, dict) else {}


def _dig(data: Dict[str, Any], dotted: str) -> Optional[str]:
    cur: Any = data
    for key in dotted.split("."):
        if not isinstance(cur, dict) or cur.get(key) is None:
            return None
        cur = cur[key]
    return str(cur)


def load_config() -> AppConfig:
    """Resolve every setting and validate the result.

    Raises pydantic's ``ValidationError`` when a resolved value is out of
    range or malformed.
    """
    base = _root_json()
    sections: Dict[str, Dict[str, str]] = {}
    for dotted, (env_key, default) in SETTINGS.items():
        value = os.environ.get(env_key) or _override_file(dotted) or _dig(base, dotted) or default
        section, name = dotted.split(".", 1)
        sections.setdefault(section, {})[name] = value.strip()
    try:
        return AppConfig.model_validate(sections)
    except PydanticValidationError as e:
        logger.error("config_invalid error=%s", e)
        raise


__all__ = [
    "AppConfig",
    "SubmissionConfig",
    "AdminConfig",
    "UploadsConfig",
    "FillSessionsConfig",
    "SETTINGS",
    "load_config",
]
