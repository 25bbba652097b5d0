"""Explicit admin authorisation context.

Authoring operations take an ``AdminSession`` argument instead of reading
a token from ambient state. Sessions are issued against the configured
admin key, expire after a fixed time-to-live and can be revoked.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional
import hmac
import logging
import secrets

from dynaform.logic.errors import AdminSessionExpiredError, AdminSessionInvalidError

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class AdminSession:
    token: str
    subject: str
    issued_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


class AdminSessionRegistry:
    def __init__(self, api_key: str, ttl_seconds: int = 3600, clock: Clock = _utcnow):
        self._api_key = api_key
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock
        self._sessions: Dict[str, AdminSession] = {}

    def issue(self, api_key: str, subject: str = "admin") -> AdminSession:
        """Exchange the admin key for a session token."""
        if not self._api_key or not hmac.compare_digest(str(api_key), self._api_key):
            logger.warning("admin_session_denied subject=%s", subject)
            raise AdminSessionInvalidError("invalid admin credentials")
        now = self._clock()
        session = AdminSession(
            token=secrets.token_urlsafe(32),
            subject=subject,
            issued_at=now,
            expires_at=now + self._ttl,
        )
        self._sessions[session.token] = session
        logger.info("admin_session_issued subject=%s expires_at=%s", subject, session.expires_at.isoformat())
        return session

    def resolve(self, token: Optional[str]) -> AdminSession:
        if not token:
            raise AdminSessionInvalidError("admin session token missing")
        session = self._sessions.get(token)
        if session is None:
            raise AdminSessionInvalidError("admin session token not recognised")
        if session.is_expired(self._clock()):
            del self._sessions[token]
            logger.info("admin_session_expired subject=%s", session.subject)
            raise AdminSessionExpiredError("admin session expired")
        return session

    def revoke(self, token: str) -> bool:
        removed = self._sessions.pop(token, None)
        if removed is not None:
            logger.info("admin_session_revoked subject=%s", removed.subject)
        return removed is not None

    def __len__(self) -> int:
        return len(self._sessions)


__all__ = ["AdminSession", "AdminSessionRegistry"]
