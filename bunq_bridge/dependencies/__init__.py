"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    build_http_client,
    get_account_service,
    get_bunq_credential,
    get_callback_service,
    get_event_queue,
    get_http_client,
    get_payment_service,
    get_rate_limiter,
    get_request_signer,
    get_session_manager,
    get_session_store,
    get_webhook_service,
)
from .config import get_app_settings

__all__ = [
    "build_http_client",
    "get_account_service",
    "get_app_settings",
    "get_bunq_credential",
    "get_callback_service",
    "get_event_queue",
    "get_http_client",
    "get_payment_service",
    "get_rate_limiter",
    "get_request_signer",
    "get_session_manager",
    "get_session_store",
    "get_webhook_service",
]
