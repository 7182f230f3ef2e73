try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import asyncio

import pytest

from bunq_bridge.core.errors import ConfigurationError
from bunq_bridge.utils.rate_limit import (
    SESSION_SERVER_CLASS,
    RateLimiter,
    classify_endpoint,
    normalize_path,
)


@pytest.mark.parametrize(
    ("method", "url", "expected"),
    [
        ("GET", "/user/1/monetary-account-bank", "GET"),
        ("post", "/user/1/monetary-account/2/payment", "POST"),
        ("PUT", "/user/1/monetary-account-bank/2", "PUT"),
        ("POST", "/session-server", SESSION_SERVER_CLASS),
        ("POST", "https://public-api.sandbox.bunq.com/v1/session-server/", SESSION_SERVER_CLASS),
        ("POST", "/session-server?foo=bar", SESSION_SERVER_CLASS),
        ("DELETE", "/user/1/monetary-account-bank/2", None),
        ("PATCH", "/user/1", None),
    ],
)
def test_classify_endpoint(method: str, url: str, expected: str | None) -> None:
    assert classify_endpoint(method, url) == expected


def test_normalize_path_strips_query_fragment_and_trailing_slash() -> None:
    assert normalize_path("/user/1/payment/?count=10#top") == "/user/1/payment"
    assert normalize_path("https://api.bunq.com/v1/installation") == "/v1/installation"


@pytest.mark.asyncio
async def test_window_admits_at_most_max_then_waits(clock) -> None:
    limiter = RateLimiter(clock=clock, sleep=clock.sleep)

    for _ in range(3):
        await limiter.acquire("cred", "GET", "/user")
    assert clock.sleeps == []

    await limiter.acquire("cred", "GET", "/user")
    assert clock.sleeps == [pytest.approx(3.0)]
    window = limiter.window_state("cred", "GET")
    assert window is not None and window.count == 1


@pytest.mark.asyncio
async def test_wait_covers_only_remaining_window(clock) -> None:
    limiter = RateLimiter(clock=clock, sleep=clock.sleep)

    for _ in range(5):
        await limiter.acquire("cred", "POST", "/user/1/payment")
    clock.advance(1.0)
    await limiter.acquire("cred", "POST", "/user/1/payment")

    assert clock.sleeps == [pytest.approx(2.0)]


@pytest.mark.asyncio
async def test_window_resets_after_elapsed(clock) -> None:
    limiter = RateLimiter(clock=clock, sleep=clock.sleep)

    for _ in range(2):
        await limiter.acquire("cred", "PUT", "/user/1")
    clock.advance(3.0)
    for _ in range(2):
        await limiter.acquire("cred", "PUT", "/user/1")

    assert clock.sleeps == []


@pytest.mark.asyncio
async def test_session_server_is_capped_independently_of_post(clock) -> None:
    limiter = RateLimiter(clock=clock, sleep=clock.sleep)

    await limiter.acquire("cred", "POST", "/session-server")
    for _ in range(5):
        await limiter.acquire("cred", "POST", "/installation")
    assert clock.sleeps == []
    post_window = limiter.window_state("cred", "POST")
    assert post_window is not None and post_window.count == 5

    await limiter.acquire("cred", "POST", "/session-server")
    assert clock.sleeps == [pytest.approx(30.0)]


@pytest.mark.asyncio
async def test_identities_do_not_share_windows(clock) -> None:
    limiter = RateLimiter(clock=clock, sleep=clock.sleep)

    await limiter.acquire("first", "POST", "/session-server")
    await limiter.acquire("second", "POST", "/session-server")

    assert clock.sleeps == []


@pytest.mark.asyncio
async def test_unthrottled_methods_never_wait(clock) -> None:
    limiter = RateLimiter(clock=clock, sleep=clock.sleep)

    for _ in range(20):
        await limiter.acquire("cred", "DELETE", "/user/1/notification-filter-url")

    assert clock.sleeps == []
    assert limiter.window_state("cred", "DELETE") is None


@pytest.mark.asyncio
async def test_missing_identity_is_a_configuration_error(clock) -> None:
    limiter = RateLimiter(clock=clock, sleep=clock.sleep)

    with pytest.raises(ConfigurationError):
        await limiter.acquire(None, "GET", "/user")
    with pytest.raises(ConfigurationError):
        await limiter.acquire("", "GET", "/user")


@pytest.mark.asyncio
async def test_concurrent_callers_never_exceed_window(clock) -> None:
    limiter = RateLimiter(clock=clock, sleep=clock.sleep)
    admitted: list[float] = []

    async def call() -> None:
        await limiter.acquire("cred", "GET", "/user")
        admitted.append(clock())

    await asyncio.gather(*(call() for _ in range(7)))

    assert len(admitted) == 7
    per_window: dict[float, int] = {}
    for timestamp in admitted:
        bucket = (timestamp - admitted[0]) // 3.0
        per_window[bucket] = per_window.get(bucket, 0) + 1
    assert max(per_window.values()) <= 3


@pytest.mark.asyncio
async def test_reset_forgets_one_credential(clock) -> None:
    limiter = RateLimiter(clock=clock, sleep=clock.sleep)
    await limiter.acquire("first", "GET", "/user")
    await limiter.acquire("second", "GET", "/user")

    limiter.reset("first")

    assert limiter.window_state("first", "GET") is None
    assert limiter.window_state("second", "GET") is not None


@pytest.mark.asyncio
async def test_reset_drops_idle_locks(clock) -> None:
    limiter = RateLimiter(clock=clock, sleep=clock.sleep)
    await limiter.acquire("first", "GET", "/user")
    await limiter.acquire("first", "POST", "/session-server")
    await limiter.acquire("second", "GET", "/user")

    limiter.reset("first")
    assert limiter.tracked_keys() == [("second", "GET")]

    limiter.reset()
    assert limiter.tracked_keys() == []
