"""
Failed notification (callback) inspection and retry.
"""

from __future__ import annotations

import re
from typing import Any, Dict

from bunq_bridge.clients.bunq_http import BunqHttpClient
from bunq_bridge.clients.handshake import response_items
from bunq_bridge.core.errors import InvalidParameterError
from bunq_bridge.services.session_manager import BunqSessionManager

_ID_LIST_PATTERN = re.compile(r"^\d+(,\s*\d+)*$")


def validate_notification_ids(notification_ids: str) -> str:
    """Return the trimmed id list or raise for anything but comma-separated ints."""
    trimmed = notification_ids.strip()
    if not trimmed:
        raise InvalidParameterError(
            "Notification IDs cannot be empty; provide at least one id to retry"
        )
    if not _ID_LIST_PATTERN.match(trimmed):
        raise InvalidParameterError(
            'Notification IDs must be comma-separated integers (e.g., "1,2,3" or "1, 2, 3")'
        )
    return trimmed


class CallbackService:
    """List and resend notifications Bunq failed to deliver."""

    def __init__(self, session_manager: BunqSessionManager, http_client: BunqHttpClient) -> None:
        self._sessions = session_manager
        self._http = http_client

    async def list_failed(self) -> Dict[str, Any]:
        session = await self._sessions.ensure_session(self._http.credential)
        payload = await self._http.request(
            "GET",
            f"/user/{session.user_id}/notification-filter-failure",
            session_token=session.session_token,
        )
        failed = response_items(payload)
        return {
            "failed_notifications": failed,
            "count": len(failed),
            "environment": session.environment,
        }

    async def retry_failed(self, notification_ids: str) -> Dict[str, Any]:
        trimmed = validate_notification_ids(notification_ids)
        session = await self._sessions.ensure_session(self._http.credential)
        payload = await self._http.request(
            "POST",
            f"/user/{session.user_id}/notification-filter-failure",
            body={"notification_filter_failed_ids": trimmed},
            session_token=session.session_token,
        )
        response = payload.get("Response", payload) if isinstance(payload, dict) else payload
        return {
            "success": True,
            "notification_ids": trimmed,
            "response": response,
            "environment": session.environment,
        }


__all__ = ["CallbackService", "validate_notification_ids"]
