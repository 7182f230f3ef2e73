"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI host, the node services and
the maintenance scripts share one configuration surface.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BunqSettings(BaseSettings):
    """Credential material and request defaults for the Bunq API."""

    model_config = SettingsConfigDict(
        env_prefix="BUNQ_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: str = Field("sandbox", description="Either 'sandbox' or 'production'.")
    api_key: Optional[str] = Field(None, description="API key from the Bunq app.")
    oauth_access_token: Optional[str] = Field(
        None,
        description="OAuth access token; used as the handshake secret in OAuth mode.",
    )
    auth_mode: Optional[str] = Field(
        None,
        description=(
            "Force 'api_key' or 'oauth'. When unset the OAuth token wins if present."
        ),
    )
    private_key: Optional[str] = Field(None, description="RSA private key (PEM).")
    public_key: Optional[str] = Field(None, description="RSA public key (PEM).")
    credential_id: Optional[str] = Field(
        None,
        description="Stable identifier scoping session state and rate limits.",
    )
    service_name: str = Field("bunq-bridge", description="Device description.")
    language: str = Field("en_US")
    region: str = Field("nl_NL")
    geolocation: str = Field("0 0 0 0 000")

    @field_validator("environment", mode="before")
    @classmethod
    def _normalize_environment(cls, value: str) -> str:
        """Accept any casing; unknown values are rejected when the credential resolves."""
        return str(value).strip().lower()

    @field_validator("auth_mode", mode="before")
    @classmethod
    def _normalize_auth_mode(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not str(value).strip():
            return None
        return str(value).strip().lower().replace("-", "_")

    @field_validator("private_key", "public_key", mode="before")
    @classmethod
    def _unescape_pem(cls, value: Optional[str]) -> Optional[str]:
        """Allow PEM blocks supplied on a single line with literal ``\\n``."""
        if value is None:
            return None
        return str(value).replace("\\n", "\n")


class StorageSettings(BaseSettings):
    """Where session records and received webhook events are persisted."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    session_db_path: Optional[str] = Field(
        None,
        validation_alias="SESSION_DB_PATH",
        description="SQLite file for session records. In-memory when omitted.",
    )
    event_queue_db_path: str = Field(
        "data/bunq_events.db",
        validation_alias="EVENT_QUEUE_DB_PATH",
    )


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    bunq: BunqSettings = Field(default_factory=BunqSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()


__all__ = [
    "AppSettings",
    "BunqSettings",
    "StorageSettings",
    "get_settings",
]
