"""Service layer exports."""

from .accounts import MonetaryAccountService
from .callbacks import CallbackService
from .credentials import resolve_credential
from .payments import PaymentService
from .session_manager import BunqSessionManager
from .webhooks import WebhookService

__all__ = [
    "BunqSessionManager",
    "CallbackService",
    "MonetaryAccountService",
    "PaymentService",
    "WebhookService",
    "resolve_credential",
]
