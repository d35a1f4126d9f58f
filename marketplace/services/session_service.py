"""Session stores: map opaque tokens to account e-mails."""
from __future__ import annotations

import secrets
import threading
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional, Protocol, Tuple

from sqlalchemy import delete

from marketplace.core.config import get_settings
from marketplace.db.models import UserSession
from marketplace.db.session import get_session


def _new_token() -> str:
    return secrets.token_urlsafe(32)


def _ttl_seconds(ttl_seconds: Optional[int]) -> int:
    ttl = ttl_seconds if ttl_seconds is not None else get_settings().session_ttl_seconds
    return max(60, ttl)


def _aware(moment: datetime) -> datetime:
    # SQLite drops tzinfo on the way back.
    return moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)


class SessionStore(Protocol):
    def create(self, account_email: str) -> str:
        """Issue a new token bound to `account_email`."""
        ...

    def resolve(self, token: str) -> Optional[str]:
        """Return the e-mail bound to `token`, or None when unknown or expired."""
        ...

    def delete(self, token: str) -> None:
        """Forget `token`; unknown tokens are ignored."""
        ...


class SQLSessionStore:
    """Sessions persisted in the `sessions` table."""

    def __init__(self, ttl_seconds: Optional[int] = None) -> None:
        self.ttl_seconds = _ttl_seconds(ttl_seconds)

    def create(self, account_email: str) -> str:
        token = _new_token()
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=self.ttl_seconds)
        with get_session() as session:
            session.add(UserSession(token=token, account_email=account_email, expires_at=expires_at))
            session.commit()
        return token

    def resolve(self, token: str) -> Optional[str]:
        if not token:
            return None
        now = datetime.now(timezone.utc)
        with get_session() as session:
            db_session = session.get(UserSession, token)
            if not db_session:
                return None
            if _aware(db_session.expires_at) < now:
                session.delete(db_session)
                session.commit()
                return None
            return db_session.account_email

    def delete(self, token: str) -> None:
        if not token:
            return
        with get_session() as session:
            session.execute(delete(UserSession).where(UserSession.token == token))
            session.commit()


class InMemorySessionStore:
    """Process-local sessions, safe for concurrent request threads."""

    def __init__(self, ttl_seconds: Optional[int] = None) -> None:
        self.ttl_seconds = _ttl_seconds(ttl_seconds)
        self._data: Dict[str, Tuple[str, datetime]] = {}
        self._lock = threading.Lock()

    def create(self, account_email: str) -> str:
        token = _new_token()
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=self.ttl_seconds)
        with self._lock:
            self._data[token] = (account_email, expires_at)
        return token

    def resolve(self, token: str) -> Optional[str]:
        if not token:
            return None
        now = datetime.now(timezone.utc)
        with self._lock:
            entry = self._data.get(token)
            if not entry:
                return None
            email, expires_at = entry
            if expires_at < now:
                del self._data[token]
                return None
            return email

    def delete(self, token: str) -> None:
        with self._lock:
            self._data.pop(token, None)
