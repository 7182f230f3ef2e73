"""Reverse-chronological page walking over Bunq list endpoints."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from bunq_bridge.clients.bunq_http import BunqHttpClient
from bunq_bridge.clients.handshake import response_items

logger = logging.getLogger(__name__)


def older_url(payload: Any) -> Optional[str]:
    """Return the cursor to the next (older) page, if the response has one."""
    if not isinstance(payload, dict):
        return None
    pagination = payload.get("Pagination")
    if not isinstance(pagination, dict):
        return None
    return pagination.get("older_url") or None


async def fetch_paginated(
    http: BunqHttpClient,
    url: str,
    *,
    session_token: str,
    tag: str,
    limit: int = 0,
    stop_at: Optional[Callable[[Dict[str, Any]], bool]] = None,
) -> List[Dict[str, Any]]:
    """Collect ``tag`` payloads across pages, newest first.

    The walk ends when a page has no ``older_url``, when ``limit`` items have
    been collected (0 means no limit), or when ``stop_at`` returns True for an
    item. A cursor that was already fetched is never requested again.
    """
    collected: List[Dict[str, Any]] = []
    seen: set[str] = set()
    next_url: Optional[str] = url

    while next_url:
        path = http.resolve_path(next_url)
        if path in seen:
            logger.warning("Pagination cursor %s repeated; stopping", path)
            break
        seen.add(path)

        payload = await http.request("GET", path, session_token=session_token)
        for item in response_items(payload):
            entry = item.get(tag)
            if not isinstance(entry, dict):
                continue
            if stop_at is not None and stop_at(entry):
                return collected
            collected.append(entry)
            if limit and len(collected) >= limit:
                return collected

        next_url = older_url(payload)

    return collected


__all__ = ["fetch_paginated", "older_url"]
