"""
Domain models describing a configured set of Bunq credentials.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from bunq_bridge.core.errors import ConfigurationError


class Environment(str, Enum):
    SANDBOX = "sandbox"
    PRODUCTION = "production"


class AuthMode(str, Enum):
    API_KEY = "api_key"
    OAUTH = "oauth"


BASE_URLS = {
    Environment.SANDBOX: "https://public-api.sandbox.bunq.com/v1",
    Environment.PRODUCTION: "https://api.bunq.com/v1",
}


def parse_environment(value: str | Environment) -> Environment:
    """Return the matching environment or raise ``ConfigurationError``."""
    if isinstance(value, Environment):
        return value
    try:
        return Environment(str(value).strip().lower())
    except ValueError as exc:
        raise ConfigurationError(
            f"Invalid Bunq environment: {value}. Must be 'sandbox' or 'production'."
        ) from exc


def get_base_url(environment: str | Environment) -> str:
    """Resolve the API base URL for an environment."""
    return BASE_URLS[parse_environment(environment)]


class BunqCredential(BaseModel):
    """Resolved credential material for one Bunq account connection."""

    model_config = ConfigDict(frozen=True)

    identity: str = Field(..., min_length=1, description="Scopes sessions and rate limits.")
    auth_mode: AuthMode
    environment: Environment
    secret: str = Field(..., repr=False, description="API key or OAuth access token.")
    private_key: str = Field(..., repr=False)
    public_key: str = Field(..., repr=False)

    @property
    def base_url(self) -> str:
        return BASE_URLS[self.environment]


__all__ = [
    "AuthMode",
    "BASE_URLS",
    "BunqCredential",
    "Environment",
    "get_base_url",
    "parse_environment",
]
