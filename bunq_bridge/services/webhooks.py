"""
Notification filter management backing the Bunq trigger.

Bunq stores one list of ``{category, notification_target}`` filters per user.
Registering a callback replaces that list, so every write keeps the filters
that point at other targets.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List

from bunq_bridge.clients.bunq_http import BunqHttpClient
from bunq_bridge.clients.handshake import response_items
from bunq_bridge.core.errors import BunqError
from bunq_bridge.services.session_manager import BunqSessionManager

logger = logging.getLogger(__name__)


def extract_filters(payload: Any) -> List[Dict[str, str]]:
    """Flatten every ``NotificationFilterUrl`` entry into filter dicts."""
    filters: List[Dict[str, str]] = []
    for item in response_items(payload):
        entry = item.get("NotificationFilterUrl")
        if not isinstance(entry, dict):
            continue
        for notification_filter in entry.get("notification_filters") or []:
            filters.append(
                {
                    "category": notification_filter.get("category"),
                    "notification_target": notification_filter.get("notification_target"),
                }
            )
    return filters


class WebhookService:
    """Check, register and remove callback URLs for notification categories."""

    def __init__(self, session_manager: BunqSessionManager, http_client: BunqHttpClient) -> None:
        self._sessions = session_manager
        self._http = http_client

    async def _current_filters(self) -> tuple[str, str, List[Dict[str, str]]]:
        session = await self._sessions.ensure_session(self._http.credential)
        payload = await self._http.request(
            "GET",
            f"/user/{session.user_id}/notification-filter-url",
            session_token=session.session_token,
        )
        return session.user_id, session.session_token, extract_filters(payload)

    async def _write_filters(
        self, user_id: str, session_token: str, filters: List[Dict[str, str]]
    ) -> None:
        await self._http.request(
            "POST",
            f"/user/{user_id}/notification-filter-url",
            body={"notification_filters": filters},
            session_token=session_token,
        )

    async def check_exists(self, url: str, categories: Iterable[str]) -> bool:
        """True when every category is already routed to ``url``."""
        try:
            _, _, filters = await self._current_filters()
        except BunqError as exc:
            logger.debug("Failed to check webhook existence: %s", exc)
            return False
        registered = {
            item["category"] for item in filters if item["notification_target"] == url
        }
        return all(category in registered for category in categories)

    async def create(self, url: str, categories: Iterable[str]) -> bool:
        """Route ``categories`` to ``url`` while keeping other targets' filters."""
        user_id, session_token, filters = await self._current_filters()
        kept = [item for item in filters if item["notification_target"] != url]
        kept.extend(
            {"category": category, "notification_target": url} for category in categories
        )
        await self._write_filters(user_id, session_token, kept)
        logger.info("Registered Bunq webhook %s", url)
        return True

    async def delete(self, url: str) -> bool:
        """Remove every filter targeting ``url``; failures count as deleted."""
        try:
            user_id, session_token, filters = await self._current_filters()
            kept = [item for item in filters if item["notification_target"] != url]
            await self._write_filters(user_id, session_token, kept)
        except BunqError as exc:
            logger.debug("Failed to delete webhook (may already be deleted): %s", exc)
        return True


__all__ = ["WebhookService", "extract_filters"]
