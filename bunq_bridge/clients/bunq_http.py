"""
Canonical HTTP client for Bunq API requests.

Every call is rate limited, carries the standard Bunq header set and a fresh
request id, and is signed whenever it has a body. Failures are re-raised as
``ApiCallFailed`` enriched with the provider's correlation metadata.
"""

from __future__ import annotations

import json
import logging
import uuid
from email.utils import formatdate
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import urlsplit

import httpx

from bunq_bridge import __version__
from bunq_bridge.core.errors import ApiCallFailed
from bunq_bridge.models.credentials import BunqCredential
from bunq_bridge.utils.rate_limit import RateLimiter
from bunq_bridge.utils.signing import sign_payload

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = f"bunq-bridge/{__version__}"

HEADER_AUTHENTICATION = "X-Bunq-Client-Authentication"
HEADER_SIGNATURE = "X-Bunq-Client-Signature"
HEADER_REQUEST_ID = "X-Bunq-Client-Request-Id"
HEADER_RESPONSE_ID = "X-Bunq-Client-Response-Id"


def _stringify_details(details: Dict[str, Any]) -> str:
    """Render error details as JSON, degrading unserializable data."""
    try:
        return json.dumps(details, indent=2)
    except (TypeError, ValueError):
        data = details.get("data")
        safe = dict(details)
        if not isinstance(data, (str, int, float, bool, type(None))):
            safe["data"] = "[Complex Object]"
        return json.dumps(safe, indent=2, default=str)


class BunqHttpClient:
    """Send rate-limited, signed requests on behalf of one credential."""

    def __init__(
        self,
        credential: BunqCredential,
        rate_limiter: RateLimiter,
        *,
        user_agent: str = DEFAULT_USER_AGENT,
        language: str = "en_US",
        region: str = "nl_NL",
        geolocation: str = "0 0 0 0 000",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._credential = credential
        self._rate_limiter = rate_limiter
        self._user_agent = user_agent
        self._language = language
        self._region = region
        self._geolocation = geolocation
        self._transport = transport

    @property
    def credential(self) -> BunqCredential:
        return self._credential

    @property
    def environment(self) -> str:
        return self._credential.environment.value

    def resolve_path(self, url: str) -> str:
        """Turn an absolute URL or ``/v1``-prefixed path into an API path."""
        path = url
        if url.startswith(("http://", "https://")):
            parts = urlsplit(url)
            path = parts.path + (f"?{parts.query}" if parts.query else "")
        base_prefix = urlsplit(self._credential.base_url).path.rstrip("/")
        if base_prefix and (path == base_prefix or path.startswith(f"{base_prefix}/")):
            path = path[len(base_prefix):]
        if not path.startswith("/"):
            path = f"/{path}"
        return path

    def build_headers(
        self,
        request_id: str,
        *,
        session_token: Optional[str] = None,
        signature: Optional[str] = None,
        extra_headers: Optional[Mapping[str, str]] = None,
    ) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Cache-Control": "no-cache",
            "User-Agent": self._user_agent,
            "X-Bunq-Language": self._language,
            "X-Bunq-Region": self._region,
            "X-Bunq-Geolocation": self._geolocation,
            HEADER_REQUEST_ID: request_id,
        }
        if extra_headers:
            headers.update(extra_headers)
        if session_token:
            headers[HEADER_AUTHENTICATION] = session_token
        if signature:
            headers[HEADER_SIGNATURE] = signature
        return headers

    async def request(
        self,
        method: str,
        url: str,
        *,
        body: Any = None,
        session_token: Optional[str] = None,
        extra_headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        """Send a request and return the parsed JSON response."""
        method = method.upper()
        path = self.resolve_path(url)

        await self._rate_limiter.acquire(self._credential.identity, method, path)

        request_id = str(uuid.uuid4())
        content: Optional[bytes] = None
        signature: Optional[str] = None
        if body is not None and body != "":
            serialized = body if isinstance(body, str) else json.dumps(body)
            content = serialized.encode("utf-8")
            # The signature must cover the exact bytes that go on the wire.
            signature = sign_payload(content, self._credential.private_key)

        headers = self.build_headers(
            request_id,
            session_token=session_token,
            signature=signature,
            extra_headers=extra_headers,
        )
        full_url = f"{self._credential.base_url}{path}"
        logger.debug("Making Bunq API request %s %s", method, full_url)

        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.request(
                    method, full_url, headers=headers, content=content
                )
        except httpx.HTTPError as exc:
            raise self._enrich_error(
                str(exc) or "Bunq API request failed",
                request_id=request_id,
                method=method,
                endpoint=full_url,
            ) from exc

        if not response.is_success:
            raise self._enrich_error(
                f"Bunq API request failed with status {response.status_code}"
                f" ({response.reason_phrase})",
                request_id=request_id,
                method=method,
                endpoint=full_url,
                response=response,
            )

        return self._parse_body(response)

    @staticmethod
    def _parse_body(response: httpx.Response) -> Any:
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return response.text

    def _enrich_error(
        self,
        message: str,
        *,
        request_id: str,
        method: str,
        endpoint: str,
        response: Optional[httpx.Response] = None,
    ) -> ApiCallFailed:
        status_code: Optional[int] = None
        response_id = "N/A"
        call_time = formatdate(usegmt=True)
        data: Any = None
        status_text: Optional[str] = None

        if response is not None:
            status_code = response.status_code
            status_text = response.reason_phrase
            response_id = response.headers.get(HEADER_RESPONSE_ID, "N/A")
            call_time = response.headers.get("date", call_time)
            data = self._parse_body(response)

        details = {
            "environment": self.environment,
            "requestId": request_id,
            "responseId": response_id,
            "callTime": call_time,
            "endpoint": endpoint,
            "statusCode": status_code,
            "statusText": status_text,
            "data": data,
            "method": method,
        }
        if status_code is not None and status_code >= 400:
            logger.error(
                "Bunq API error: environment=%s request_id=%s response_id=%s "
                "call_time=%s endpoint=%s status=%s",
                self.environment,
                request_id,
                response_id,
                call_time,
                endpoint,
                status_code,
            )

        enriched = f"{message}\n\nAPI Response Details:\n{_stringify_details(details)}"
        return ApiCallFailed(
            enriched,
            status_code=status_code,
            response_id=response_id,
            request_id=request_id,
            endpoint=endpoint,
            method=method,
            call_time=call_time,
            response_body=data,
            environment=self.environment,
        )

    @staticmethod
    def handle_execute_error(
        error: Exception,
        item_count: int,
        continue_on_fail: bool,
    ) -> List[Dict[str, Any]]:
        """Convert ``error`` into one error item per input, or re-raise it."""
        if not continue_on_fail:
            raise error
        status_code = getattr(error, "status_code", None)
        response_data = getattr(error, "response_body", None)
        return [
            {
                "error": str(error),
                "status_code": status_code,
                "response_data": response_data,
                "paired_item": index,
            }
            for index in range(max(item_count, 1))
        ]


__all__ = [
    "BunqHttpClient",
    "DEFAULT_USER_AGENT",
    "HEADER_AUTHENTICATION",
    "HEADER_REQUEST_ID",
    "HEADER_RESPONSE_ID",
    "HEADER_SIGNATURE",
]
