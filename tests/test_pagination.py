try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import httpx
import pytest

from bunq_bridge.services.pagination import fetch_paginated, older_url

PAYMENT_PATH = "/user/1/monetary-account/2/payment"


def _page(ids: list[int], older: str | None) -> dict:
    return {
        "Response": [{"Payment": {"id": payment_id}} for payment_id in ids],
        "Pagination": {"older_url": older, "newer_url": None, "future_url": None},
    }


def _paged_handler(pages: dict[str | None, dict]):
    def handler(request: httpx.Request) -> dict:
        return pages[request.url.params.get("older_id")]

    return handler


def test_older_url_reads_pagination_block() -> None:
    assert older_url(_page([], "/v1/x?older_id=1")) == "/v1/x?older_id=1"
    assert older_url(_page([], None)) is None
    assert older_url({"Response": []}) is None
    assert older_url("text") is None


@pytest.mark.asyncio
async def test_walk_follows_older_url_until_absent(http_client, bunq_api) -> None:
    bunq_api.route(
        "GET",
        PAYMENT_PATH,
        _paged_handler(
            {
                None: _page([5, 4], f"/v1{PAYMENT_PATH}?count=2&older_id=4"),
                "4": _page([3, 2], f"/v1{PAYMENT_PATH}?count=2&older_id=2"),
                "2": _page([1], None),
            }
        ),
    )

    payments = await fetch_paginated(
        http_client, f"{PAYMENT_PATH}?count=2", session_token="session", tag="Payment"
    )

    assert [payment["id"] for payment in payments] == [5, 4, 3, 2, 1]
    assert len(bunq_api.requests) == 3


@pytest.mark.asyncio
async def test_walk_stops_at_limit(http_client, bunq_api) -> None:
    bunq_api.route(
        "GET",
        PAYMENT_PATH,
        _paged_handler(
            {
                None: _page([5, 4], f"/v1{PAYMENT_PATH}?count=2&older_id=4"),
                "4": _page([3, 2], f"/v1{PAYMENT_PATH}?count=2&older_id=2"),
            }
        ),
    )

    payments = await fetch_paginated(
        http_client, f"{PAYMENT_PATH}?count=2", session_token="session", tag="Payment", limit=3
    )

    assert [payment["id"] for payment in payments] == [5, 4, 3]
    assert len(bunq_api.requests) == 2


@pytest.mark.asyncio
async def test_walk_stops_at_predicate(http_client, bunq_api) -> None:
    bunq_api.route(
        "GET",
        PAYMENT_PATH,
        _paged_handler({None: _page([5, 4, 3], f"/v1{PAYMENT_PATH}?older_id=3")}),
    )

    payments = await fetch_paginated(
        http_client,
        PAYMENT_PATH,
        session_token="session",
        tag="Payment",
        stop_at=lambda payment: payment["id"] < 4,
    )

    assert [payment["id"] for payment in payments] == [5, 4]
    assert len(bunq_api.requests) == 1


@pytest.mark.asyncio
async def test_repeated_cursor_is_never_fetched_twice(http_client, bunq_api) -> None:
    looping = f"/v1{PAYMENT_PATH}?older_id=4"
    bunq_api.route(
        "GET",
        PAYMENT_PATH,
        _paged_handler(
            {
                None: _page([5, 4], looping),
                "4": _page([3], "https://public-api.sandbox.bunq.com" + looping),
            }
        ),
    )

    payments = await fetch_paginated(
        http_client, PAYMENT_PATH, session_token="session", tag="Payment"
    )

    assert [payment["id"] for payment in payments] == [5, 4, 3]
    fetched = [str(request.url) for request in bunq_api.requests]
    assert len(fetched) == len(set(fetched)) == 2
