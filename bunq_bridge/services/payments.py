"""
Payment listing and creation for a monetary account.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from bunq_bridge.clients.bunq_http import BunqHttpClient
from bunq_bridge.clients.handshake import find_tagged, response_items
from bunq_bridge.core.errors import BunqError, InvalidParameterError, MalformedResponse
from bunq_bridge.schemas import PaymentItem
from bunq_bridge.services.pagination import fetch_paginated
from bunq_bridge.services.session_manager import BunqSessionManager

logger = logging.getLogger(__name__)

_AMOUNT_PATTERN = re.compile(r"^\d+(\.\d{1,2})?$")
_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MAX_ITEMS_PER_PAGE = 200


def parse_bunq_timestamp(value: str) -> Optional[datetime]:
    """Parse Bunq's ``YYYY-MM-DD HH:MM:SS.ffffff`` timestamps as UTC."""
    try:
        parsed = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def build_counterparty(item: PaymentItem) -> Dict[str, str]:
    """Validate recipient fields and return the ``counterparty_alias`` object."""
    if item.recipient_type == "iban":
        value = re.sub(r"\s", "", item.recipient_iban or "")
        if not value:
            raise InvalidParameterError("Recipient IBAN is required")
        counterparty = {"type": "IBAN", "value": value}
    elif item.recipient_type == "email":
        value = (item.recipient_email or "").strip()
        if not value:
            raise InvalidParameterError("Recipient email is required")
        if not _EMAIL_PATTERN.match(value):
            raise InvalidParameterError(f'Invalid email format: "{value}"')
        counterparty = {"type": "EMAIL", "value": value}
    elif item.recipient_type == "phone":
        value = (item.recipient_phone or "").strip()
        if not value:
            raise InvalidParameterError("Recipient phone number is required")
        counterparty = {"type": "PHONE_NUMBER", "value": value}
    else:
        raise InvalidParameterError(f"Unknown recipient type: {item.recipient_type}")

    if item.recipient_name and item.recipient_name.strip():
        counterparty["name"] = item.recipient_name.strip()
    return counterparty


def build_payment_body(item: PaymentItem) -> Dict[str, Any]:
    """Return the request body for a regular or draft payment."""
    if not _AMOUNT_PATTERN.match(item.amount):
        raise InvalidParameterError(
            f'Invalid amount format: "{item.amount}". Please use a number with up '
            'to 2 decimal places (e.g., "10.00" or "10")'
        )
    entry = {
        "amount": {"value": item.amount, "currency": "EUR"},
        "counterparty_alias": build_counterparty(item),
        "description": item.description,
    }
    if item.payment_type == "draft":
        return {"entries": [entry], "number_of_required_accepts": 1}
    return entry


class PaymentService:
    """Read and create payments on behalf of the session user."""

    def __init__(self, session_manager: BunqSessionManager, http_client: BunqHttpClient) -> None:
        self._sessions = session_manager
        self._http = http_client

    async def list_payments(
        self,
        *,
        monetary_account_id: int,
        limit: int = 50,
        last_days: Optional[int] = None,
        items_per_page: int = 50,
    ) -> List[Dict[str, Any]]:
        """Return payments newest first; ``limit=0`` returns every page."""
        if monetary_account_id <= 0:
            raise InvalidParameterError(
                f"Invalid monetary account ID: {monetary_account_id}. Must be a positive number."
            )
        if limit < 0:
            raise InvalidParameterError("Limit cannot be negative")
        items_per_page = min(max(items_per_page, 1), MAX_ITEMS_PER_PAGE)

        cutoff: Optional[datetime] = None
        if last_days:
            cutoff = datetime.now(timezone.utc) - timedelta(days=last_days)

        def _older_than_cutoff(payment: Dict[str, Any]) -> bool:
            if cutoff is None:
                return False
            created = parse_bunq_timestamp(payment.get("created", ""))
            return created is not None and created < cutoff

        session = await self._sessions.ensure_session(self._http.credential)
        payments = await fetch_paginated(
            self._http,
            f"/user/{session.user_id}/monetary-account/{monetary_account_id}"
            f"/payment?count={items_per_page}",
            session_token=session.session_token,
            tag="Payment",
            limit=limit,
            stop_at=_older_than_cutoff,
        )
        if not payments:
            return [
                {
                    "message": "No payments found for the specified monetary account",
                    "monetary_account_id": monetary_account_id,
                }
            ]
        return payments

    async def create_payment(
        self, *, monetary_account_id: int, item: PaymentItem
    ) -> Dict[str, Any]:
        """Create one regular or draft payment."""
        if monetary_account_id <= 0:
            raise InvalidParameterError(
                f"Invalid monetary account ID: {monetary_account_id}. Must be a positive number."
            )
        body = build_payment_body(item)

        session = await self._sessions.ensure_session(self._http.credential)
        suffix = "draft-payment" if item.payment_type == "draft" else "payment"
        payload = await self._http.request(
            "POST",
            f"/user/{session.user_id}/monetary-account/{monetary_account_id}/{suffix}",
            body=body,
            session_token=session.session_token,
        )

        found = find_tagged(response_items(payload), "Id", "Payment", "DraftPayment")
        if found is None:
            raise MalformedResponse("payment", ("Id", "Payment", "DraftPayment"), payload)

        return {
            "success": True,
            "payment_type": item.payment_type,
            "payment": found[1],
            "message": (
                "Draft payment created successfully. Please approve it in the bunq app."
                if item.payment_type == "draft"
                else "Payment created successfully."
            ),
        }

    async def create_payments(
        self,
        *,
        monetary_account_id: int,
        items: List[PaymentItem],
        continue_on_fail: bool = False,
    ) -> List[Dict[str, Any]]:
        """Create each payment in turn, recording failures when allowed."""
        results: List[Dict[str, Any]] = []
        for index, item in enumerate(items):
            try:
                result = await self.create_payment(
                    monetary_account_id=monetary_account_id, item=item
                )
            except BunqError as exc:
                if not continue_on_fail:
                    raise
                logger.warning("Payment item %s failed: %s", index, exc)
                result = {
                    "success": False,
                    "error": str(exc),
                    "status_code": getattr(exc, "status_code", None),
                }
            result["paired_item"] = index
            results.append(result)
        return results


__all__ = [
    "PaymentService",
    "build_counterparty",
    "build_payment_body",
    "parse_bunq_timestamp",
]
