"""
Error taxonomy shared by the session manager, HTTP client and node services.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class BunqError(Exception):
    """Base class for every error raised by the Bunq adapters."""


class ConfigurationError(BunqError):
    """Raised when credential material is missing or malformed."""


class InvalidParameterError(BunqError):
    """Raised when a node operation receives an invalid parameter."""


class MalformedResponse(BunqError):
    """Raised when a successful response lacks the expected tagged payload."""

    def __init__(self, step: str, expected: tuple[str, ...], payload: Any = None) -> None:
        self.step = step
        self.expected = expected
        self.payload = payload
        super().__init__(
            f"Failed to extract {' / '.join(expected)} from {step} response"
        )


class MalformedHandshakeResponse(MalformedResponse):
    """Raised when an installation, device or session response is incomplete."""


class ApiCallFailed(BunqError):
    """Raised for non-2xx responses and transport failures."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        response_id: str = "N/A",
        request_id: Optional[str] = None,
        endpoint: Optional[str] = None,
        method: Optional[str] = None,
        call_time: Optional[str] = None,
        response_body: Any = None,
        environment: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response_id = response_id
        self.request_id = request_id
        self.endpoint = endpoint
        self.method = method
        self.call_time = call_time
        self.response_body = response_body
        self.environment = environment

    def to_dict(self) -> Dict[str, Any]:
        """Return the diagnostics carried by this error."""
        return {
            "environment": self.environment,
            "request_id": self.request_id,
            "response_id": self.response_id,
            "call_time": self.call_time,
            "endpoint": self.endpoint,
            "status_code": self.status_code,
            "method": self.method,
            "data": self.response_body,
        }


__all__ = [
    "ApiCallFailed",
    "BunqError",
    "ConfigurationError",
    "InvalidParameterError",
    "MalformedHandshakeResponse",
    "MalformedResponse",
]
