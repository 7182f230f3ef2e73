"""
Domain models for persisted Bunq session state.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

DEFAULT_SESSION_TIMEOUT_SECONDS = 604800
# Refresh once half of the provider-reported lifetime has elapsed.
SESSION_EXPIRY_FRACTION = 0.5


def is_session_expired(
    created_at: float,
    timeout_seconds: Optional[int],
    *,
    now: float,
) -> bool:
    """Return True when more than half of the session timeout has elapsed."""
    timeout = timeout_seconds or DEFAULT_SESSION_TIMEOUT_SECONDS
    return (now - created_at) > timeout * SESSION_EXPIRY_FRACTION


class SessionRecord(BaseModel):
    """Handshake artifacts cached for one credential identity."""

    environment: str
    installation_token: Optional[str] = None
    server_public_key: Optional[str] = None
    device_id: Optional[str] = None
    session_token: Optional[str] = None
    session_created_at: Optional[float] = Field(
        None, description="Epoch seconds when the session-server call succeeded."
    )
    session_timeout_seconds: Optional[int] = None
    user_id: Optional[str] = None

    @property
    def is_installed(self) -> bool:
        return bool(self.installation_token and self.server_public_key)

    @property
    def is_device_registered(self) -> bool:
        return self.is_installed and bool(self.device_id)

    def has_active_session(self, *, now: float) -> bool:
        """True when a session token exists and is not expired."""
        if not self.session_token or self.session_created_at is None:
            return False
        return not is_session_expired(
            self.session_created_at, self.session_timeout_seconds, now=now
        )

    def clear_session(self) -> None:
        self.session_token = None
        self.session_created_at = None
        self.session_timeout_seconds = None
        self.user_id = None

    def to_item(self) -> Dict[str, Any]:
        return self.model_dump()


class SessionDescriptor(BaseModel):
    """What node operations receive from ``ensure_session``."""

    session_token: str
    user_id: str
    environment: str
    session_timeout_seconds: int
    installation_token: Optional[str] = None
    device_id: Optional[str] = None
    session_created_at: Optional[float] = None
    session_age_seconds: float = 0.0


__all__ = [
    "DEFAULT_SESSION_TIMEOUT_SECONDS",
    "SESSION_EXPIRY_FRACTION",
    "SessionDescriptor",
    "SessionRecord",
    "is_session_expired",
]
