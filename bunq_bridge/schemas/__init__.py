"""Public schema exports."""

from .operations import (
    CreatePaymentsRequest,
    NotificationCategory,
    OperationResult,
    PaymentItem,
    RetryCallbacksRequest,
    SessionRequest,
    SignRequest,
    SignResponse,
    WebhookRegistration,
)

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
