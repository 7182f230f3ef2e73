"""Pytest configuration shared across the suite."""

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import json
from typing import Any, Dict, List, Tuple

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from bunq_bridge.clients import BunqHttpClient, InMemorySessionStore
from bunq_bridge.models.credentials import AuthMode, BunqCredential, Environment
from bunq_bridge.services import BunqSessionManager
from bunq_bridge.utils.rate_limit import RateLimiter


class FakeClock:
    """Manually advanced clock; ``sleep`` moves time forward instead of waiting."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeBunqApi:
    """In-process Bunq API served through ``httpx.MockTransport``.

    The three handshake endpoints answer with well-formed payloads by default;
    tests replace or add routes with ``route``.
    """

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.session_timeout: int | None = None
        self._session_count = 0
        self._routes: Dict[Tuple[str, str], Any] = {
            ("POST", "/installation"): {
                "Response": [
                    {"Id": {"id": 1}},
                    {"Token": {"token": "installation-token"}},
                    {"ServerPublicKey": {"server_public_key": "SERVER-PUBLIC-KEY"}},
                ]
            },
            ("POST", "/device-server"): {"Response": [{"Id": {"id": 42}}]},
            ("POST", "/session-server"): self._session_response,
        }

    def _session_response(self, request: httpx.Request) -> Dict[str, Any]:
        self._session_count += 1
        user: Dict[str, Any] = {"id": 1234, "display_name": "Test User"}
        if self.session_timeout is not None:
            user["session_timeout"] = self.session_timeout
        return {
            "Response": [
                {"Id": {"id": 7}},
                {"Token": {"token": f"session-token-{self._session_count}"}},
                {"UserPerson": user},
            ]
        }

    def route(self, method: str, path: str, response: Any) -> None:
        """Answer ``method path`` with a dict, an ``httpx.Response`` or a callable."""
        self._routes[(method.upper(), path)] = response

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [
            request
            for request in self.requests
            if request.method == method.upper() and self._api_path(request) == path
        ]

    def json_body(self, request: httpx.Request) -> Any:
        return json.loads(request.content.decode("utf-8"))

    @staticmethod
    def _api_path(request: httpx.Request) -> str:
        path = request.url.path
        return path[len("/v1"):] if path.startswith("/v1/") else path

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self._routes.get((request.method, self._api_path(request)))
        if handler is None:
            return httpx.Response(
                404, json={"Error": [{"error_description": "Route not found"}]}
            )
        result = handler(request) if callable(handler) else handler
        if isinstance(result, httpx.Response):
            return result
        return httpx.Response(200, json=result)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


@pytest.fixture(scope="session")
def rsa_keys() -> Tuple[str, str]:
    """A throwaway RSA key pair as (private PEM, public PEM)."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("utf-8")
    public_pem = key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("utf-8")
    return private_pem, public_pem


@pytest.fixture
def credential(rsa_keys: Tuple[str, str]) -> BunqCredential:
    private_pem, public_pem = rsa_keys
    return BunqCredential(
        identity="cred-test",
        auth_mode=AuthMode.API_KEY,
        environment=Environment.SANDBOX,
        secret="sandbox_test_api_key",
        private_key=private_pem,
        public_key=public_pem,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def bunq_api() -> FakeBunqApi:
    return FakeBunqApi()


@pytest.fixture
def rate_limiter(clock: FakeClock) -> RateLimiter:
    return RateLimiter(clock=clock, sleep=clock.sleep)


@pytest.fixture
def session_store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def http_client(
    credential: BunqCredential, rate_limiter: RateLimiter, bunq_api: FakeBunqApi
) -> BunqHttpClient:
    return BunqHttpClient(credential, rate_limiter, transport=bunq_api.transport)


@pytest.fixture
def session_manager(
    session_store: InMemorySessionStore,
    rate_limiter: RateLimiter,
    bunq_api: FakeBunqApi,
    clock: FakeClock,
) -> BunqSessionManager:
    return BunqSessionManager(
        session_store,
        lambda credential: BunqHttpClient(
            credential, rate_limiter, transport=bunq_api.transport
        ),
        service_name="bunq-bridge-tests",
        clock=clock,
    )
