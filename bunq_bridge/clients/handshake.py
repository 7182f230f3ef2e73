"""
Bunq authentication handshake calls.

The three calls (installation, device registration, session creation) return
``{"Response": [{Tag: {...}}, ...]}`` where each element wraps its payload in a
single named tag. Each response is decoded by looking for the expected tags.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from bunq_bridge.clients.bunq_http import BunqHttpClient
from bunq_bridge.core.errors import MalformedHandshakeResponse

INSTALLATION_PATH = "/installation"
DEVICE_SERVER_PATH = "/device-server"
SESSION_SERVER_PATH = "/session-server"

USER_TAGS = ("UserPerson", "UserCompany", "UserApiKey")


@dataclass(frozen=True)
class InstallationResult:
    token: str
    server_public_key: str


@dataclass(frozen=True)
class SessionResult:
    token: str
    user_id: str
    session_timeout_seconds: Optional[int]


def response_items(payload: Any) -> List[Dict[str, Any]]:
    """Return the tagged elements of a Bunq ``Response`` envelope."""
    if not isinstance(payload, dict):
        return []
    items = payload.get("Response")
    if not isinstance(items, list):
        return []
    return [item for item in items if isinstance(item, dict)]


def find_tagged(items: List[Dict[str, Any]], *tags: str) -> Optional[tuple[str, Dict[str, Any]]]:
    """Return the first ``(tag, payload)`` whose tag is one of ``tags``."""
    for item in items:
        for tag in tags:
            value = item.get(tag)
            if isinstance(value, dict):
                return tag, value
    return None


def decode_installation(payload: Any) -> InstallationResult:
    items = response_items(payload)
    token = find_tagged(items, "Token")
    server_key = find_tagged(items, "ServerPublicKey")
    token_value = token[1].get("token") if token else None
    server_key_value = server_key[1].get("server_public_key") if server_key else None
    if not token_value or not server_key_value:
        raise MalformedHandshakeResponse(
            "installation", ("Token", "ServerPublicKey"), payload
        )
    return InstallationResult(token=str(token_value), server_public_key=str(server_key_value))


def decode_device_registration(payload: Any) -> str:
    found = find_tagged(response_items(payload), "Id")
    device_id = found[1].get("id") if found else None
    if device_id is None or device_id == "":
        raise MalformedHandshakeResponse("device registration", ("Id",), payload)
    return str(device_id)


def _session_timeout(user: Dict[str, Any]) -> Optional[int]:
    timeout = user.get("session_timeout")
    if timeout is None:
        # API-key users nest the owning user under requested_by_user.
        owner = user.get("requested_by_user")
        if isinstance(owner, dict):
            nested = find_tagged([owner], "UserPerson", "UserCompany")
            if nested:
                timeout = nested[1].get("session_timeout")
    try:
        return int(timeout) if timeout else None
    except (TypeError, ValueError):
        return None


def decode_session(payload: Any) -> SessionResult:
    items = response_items(payload)
    token = find_tagged(items, "Token")
    user = find_tagged(items, *USER_TAGS)
    token_value = token[1].get("token") if token else None
    user_id = user[1].get("id") if user else None
    if not token_value or user_id is None:
        raise MalformedHandshakeResponse("session", ("Token",) + USER_TAGS, payload)
    return SessionResult(
        token=str(token_value),
        user_id=str(user_id),
        session_timeout_seconds=_session_timeout(user[1]),
    )


class BunqHandshakeClient:
    """Perform the handshake calls over a credential's HTTP client."""

    def __init__(self, http_client: BunqHttpClient, *, service_name: str) -> None:
        self._http = http_client
        self._service_name = service_name

    async def create_installation(self) -> InstallationResult:
        """Register the client public key and return the installation token."""
        payload = await self._http.request(
            "POST",
            INSTALLATION_PATH,
            body={"client_public_key": self._http.credential.public_key},
        )
        return decode_installation(payload)

    async def register_device(self, installation_token: str) -> str:
        """Bind the account secret to the installation and return the device id.

        Omitting ``permitted_ips`` makes Bunq lock the device to the caller's IP.
        """
        payload = await self._http.request(
            "POST",
            DEVICE_SERVER_PATH,
            body={
                "description": self._service_name,
                "secret": self._http.credential.secret,
            },
            session_token=installation_token,
        )
        return decode_device_registration(payload)

    async def create_session(self, installation_token: str) -> SessionResult:
        """Open a session and return its token and the resolved user."""
        payload = await self._http.request(
            "POST",
            SESSION_SERVER_PATH,
            body={"secret": self._http.credential.secret},
            session_token=installation_token,
        )
        return decode_session(payload)


__all__ = [
    "BunqHandshakeClient",
    "InstallationResult",
    "SessionResult",
    "decode_device_registration",
    "decode_installation",
    "decode_session",
    "find_tagged",
    "response_items",
]
