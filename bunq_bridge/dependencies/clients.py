"""
Factory functions to provide shared clients and services as FastAPI dependencies.

The rate limiter and session manager are process-wide: every request for the
same credential shares their windows, locks and cached session records.
"""

from functools import lru_cache
from typing import Optional

import httpx

from bunq_bridge.clients import (
    BunqHttpClient,
    InMemorySessionStore,
    SessionStore,
    SQLiteEventQueue,
    SQLiteSessionStore,
)
from bunq_bridge.core.config import get_settings
from bunq_bridge.models.credentials import BunqCredential
from bunq_bridge.services import (
    BunqSessionManager,
    CallbackService,
    MonetaryAccountService,
    PaymentService,
    WebhookService,
    resolve_credential,
)
from bunq_bridge.utils.rate_limit import RateLimiter
from bunq_bridge.utils.signing import RequestSigner


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_rate_limiter() -> RateLimiter:
    """Provide the process-wide rate limiter."""
    return RateLimiter()


@lru_cache()
def get_session_store() -> SessionStore:
    """Provide SQLite session storage when configured, memory otherwise."""
    settings = _settings()
    if settings.storage.session_db_path:
        return SQLiteSessionStore(settings.storage.session_db_path)
    return InMemorySessionStore()


def build_http_client(
    credential: BunqCredential,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> BunqHttpClient:
    """Create an HTTP client for ``credential`` sharing the global rate limiter."""
    bunq = _settings().bunq
    return BunqHttpClient(
        credential,
        get_rate_limiter(),
        language=bunq.language,
        region=bunq.region,
        geolocation=bunq.geolocation,
        transport=transport,
    )


@lru_cache()
def get_session_manager() -> BunqSessionManager:
    """Provide the process-wide session manager."""
    settings = _settings()
    return BunqSessionManager(
        get_session_store(),
        build_http_client,
        service_name=settings.bunq.service_name,
    )


def get_bunq_credential() -> BunqCredential:
    """Resolve the configured credential; raises ``ConfigurationError`` when invalid."""
    return resolve_credential(_settings().bunq)


def get_http_client() -> BunqHttpClient:
    """Provide an HTTP client bound to the configured credential."""
    return build_http_client(get_bunq_credential())


@lru_cache()
def get_request_signer() -> RequestSigner:
    """Provide a signer using the configured private key."""
    return RequestSigner(private_key=_settings().bunq.private_key or "")


@lru_cache()
def get_event_queue() -> SQLiteEventQueue:
    """Provide the SQLite queue that buffers received notifications."""
    return SQLiteEventQueue(_settings().storage.event_queue_db_path)


def get_account_service() -> MonetaryAccountService:
    return MonetaryAccountService(get_session_manager(), get_http_client())


def get_payment_service() -> PaymentService:
    return PaymentService(get_session_manager(), get_http_client())


def get_callback_service() -> CallbackService:
    return CallbackService(get_session_manager(), get_http_client())


def get_webhook_service() -> WebhookService:
    return WebhookService(get_session_manager(), get_http_client())


__all__ = [
    "build_http_client",
    "get_account_service",
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
