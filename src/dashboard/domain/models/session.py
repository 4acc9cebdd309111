from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, EmailStr

from src.dashboard.errors import UnauthenticatedError


class Session(BaseModel):
    """Authenticated caller as resolved by the remote data gateway.

    Modules receive a session explicitly at construction time and forward it
    on every gateway call; nothing reads the current user from ambient state.
    """

    user_id: str
    access_token: str
    email: Optional[EmailStr] = None
    expires_at: Optional[datetime] = None

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        if not self.user_id or not self.access_token:
            return False
        if self.expires_at is None:
            return True
        now = now or datetime.now(timezone.utc)
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return now < expires_at


def require_session(session: Optional[Session]) -> Session:
    """Return ``session`` or raise :class:`UnauthenticatedError`."""

    if session is None:
        raise UnauthenticatedError("No session available; sign in first.")
    if not session.is_valid():
        raise UnauthenticatedError("Session is invalid or has expired.")
    return session
