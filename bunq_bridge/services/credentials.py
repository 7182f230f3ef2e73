"""
Resolve configured settings into a single ``BunqCredential``.
"""

from __future__ import annotations

import hashlib

from bunq_bridge.core.config import BunqSettings
from bunq_bridge.core.errors import ConfigurationError
from bunq_bridge.models.credentials import AuthMode, BunqCredential, parse_environment


def derive_identity(environment: str, secret: str) -> str:
    """Stable identity for credentials that were not given an explicit id."""
    digest = hashlib.sha256(f"{environment}:{secret}".encode("utf-8")).hexdigest()
    return f"bunq-{digest[:32]}"


def _select_auth_mode(settings: BunqSettings) -> tuple[AuthMode, str]:
    """Pick exactly one authentication mode and its handshake secret."""
    requested = settings.auth_mode
    access_token = (settings.oauth_access_token or "").strip()
    api_key = (settings.api_key or "").strip()

    if requested is not None and requested not in {mode.value for mode in AuthMode}:
        raise ConfigurationError(
            f"Invalid auth mode: {requested}. Must be 'api_key' or 'oauth'."
        )
    if requested == AuthMode.OAUTH.value:
        if not access_token:
            raise ConfigurationError(
                "OAuth authentication is selected but no access token is configured."
            )
        return AuthMode.OAUTH, access_token
    if requested == AuthMode.API_KEY.value:
        if not api_key:
            raise ConfigurationError(
                "API key authentication is selected but no API key is configured."
            )
        return AuthMode.API_KEY, api_key

    if access_token:
        return AuthMode.OAUTH, access_token
    if api_key:
        return AuthMode.API_KEY, api_key
    raise ConfigurationError(
        "No Bunq credentials configured; set BUNQ_API_KEY or BUNQ_OAUTH_ACCESS_TOKEN."
    )


def resolve_credential(settings: BunqSettings) -> BunqCredential:
    """Build the credential used by the session manager and HTTP client."""
    environment = parse_environment(settings.environment)
    auth_mode, secret = _select_auth_mode(settings)

    if not settings.private_key or not settings.private_key.strip():
        raise ConfigurationError("BUNQ_PRIVATE_KEY is required to sign requests.")
    if not settings.public_key or not settings.public_key.strip():
        raise ConfigurationError("BUNQ_PUBLIC_KEY is required for the installation step.")

    identity = (settings.credential_id or "").strip() or derive_identity(
        environment.value, secret
    )
    return BunqCredential(
        identity=identity,
        auth_mode=auth_mode,
        environment=environment,
        secret=secret,
        private_key=settings.private_key,
        public_key=settings.public_key,
    )


__all__ = ["derive_identity", "resolve_credential"]
