"""
Pydantic models for node operation requests and responses.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

NotificationCategory = Literal[
    "BILLING",
    "BUNQME_TAB",
    "CARD_TRANSACTION_FAILED",
    "CARD_TRANSACTION_SUCCESSFUL",
    "CHAT",
    "DRAFT_PAYMENT",
    "IDEAL",
    "MUTATION",
    "OAUTH",
    "PAYMENT",
    "REQUEST",
    "SCHEDULE_RESULT",
    "SCHEDULE_STATUS",
    "SHARE",
    "SOFORT",
    "SUPPORT",
    "TAB_RESULT",
]


class SessionRequest(BaseModel):
    """Options for the session node."""

    force_recreate: bool = Field(
        False,
        description="Re-run installation, device registration and session creation.",
    )
    continue_on_fail: bool = False


class PaymentItem(BaseModel):
    """One payment to create from a monetary account."""

    payment_type: Literal["regular", "draft"] = Field(
        "regular",
        description="Draft payments must be approved in the bunq app.",
    )
    recipient_type: Literal["iban", "email", "phone"]
    recipient_iban: Optional[str] = None
    recipient_email: Optional[str] = None
    recipient_phone: Optional[str] = None
    recipient_name: Optional[str] = Field(
        None, description="Counterparty name; recommended for IBAN transfers."
    )
    amount: str = Field(..., description='Amount in EUR, e.g. "10.00".')
    description: str = Field(..., description="Bookkeeping description.")


class CreatePaymentsRequest(BaseModel):
    """Batch of payments processed item by item."""

    items: List[PaymentItem] = Field(..., min_length=1)
    continue_on_fail: bool = False


class RetryCallbacksRequest(BaseModel):
    """Notification ids to resend, e.g. ``"1,2,3"``."""

    notification_ids: str
    continue_on_fail: bool = False


class SignRequest(BaseModel):
    """Arbitrary text to sign with the configured private key."""

    body: str


class SignResponse(BaseModel):
    body: str
    signature: str


class WebhookRegistration(BaseModel):
    """Register or remove a callback URL for notification categories."""

    url: str = Field(..., description="Target that Bunq will POST notifications to.")
    categories: List[NotificationCategory] = Field(
        default_factory=lambda: ["MUTATION"], min_length=1
    )


class OperationResult(BaseModel):
    """Envelope returned by every node route."""

    items: List[Dict[str, Any]] = Field(default_factory=list)


__all__ = [
    "CreatePaymentsRequest",
    "NotificationCategory",
    "OperationResult",
    "PaymentItem",
    "RetryCallbacksRequest",
    "SessionRequest",
    "SignRequest",
    "SignResponse",
    "WebhookRegistration",
]
