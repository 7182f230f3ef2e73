"""
Monetary account lookups.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List

from bunq_bridge.clients.bunq_http import BunqHttpClient
from bunq_bridge.clients.handshake import response_items
from bunq_bridge.core.errors import InvalidParameterError
from bunq_bridge.services.session_manager import BunqSessionManager

ACCOUNT_ENDPOINTS = {
    "bank": "monetary-account-bank",
    "savings": "monetary-account-savings",
    "joint": "monetary-account-joint",
}


class MonetaryAccountService:
    """List bank, savings and joint accounts for the session user."""

    def __init__(self, session_manager: BunqSessionManager, http_client: BunqHttpClient) -> None:
        self._sessions = session_manager
        self._http = http_client

    async def list_accounts(self, account_types: Iterable[str]) -> List[Dict[str, Any]]:
        """Fetch every account of the requested types, tagged with its type."""
        requested = [account_type.strip().lower() for account_type in account_types]
        for account_type in requested:
            if account_type not in ACCOUNT_ENDPOINTS:
                raise InvalidParameterError(f"Unknown account type: {account_type}")

        session = await self._sessions.ensure_session(self._http.credential)
        accounts: List[Dict[str, Any]] = []
        for account_type in requested:
            payload = await self._http.request(
                "GET",
                f"/user/{session.user_id}/{ACCOUNT_ENDPOINTS[account_type]}",
                session_token=session.session_token,
            )
            for item in response_items(payload):
                # Each element wraps the account under its concrete type name.
                for account in item.values():
                    if isinstance(account, dict):
                        accounts.append({**account, "account_type": account_type})
                        break

        if not accounts:
            return [
                {
                    "message": "No monetary accounts found for the selected types",
                    "account_types": requested,
                }
            ]
        return accounts


__all__ = ["ACCOUNT_ENDPOINTS", "MonetaryAccountService"]
