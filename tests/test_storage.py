try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

from pathlib import Path

import pytest

from bunq_bridge.clients import InMemorySessionStore, SQLiteEventQueue, SQLiteSessionStore
from bunq_bridge.models.session import SessionRecord


def _record(**overrides) -> SessionRecord:
    values = {
        "environment": "sandbox",
        "installation_token": "installation",
        "server_public_key": "server-key",
        "device_id": "42",
        "session_token": "session",
        "session_created_at": 1_700_000_000.0,
        "session_timeout_seconds": 3600,
        "user_id": "1234",
    }
    values.update(overrides)
    return SessionRecord(**values)


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path: Path):
    if request.param == "memory":
        return InMemorySessionStore()
    return SQLiteSessionStore(str(tmp_path / "state" / "sessions.db"))


def test_missing_identity_returns_none(store) -> None:
    assert store.get("unknown") is None


def test_put_then_get_and_overwrite(store) -> None:
    store.put("cred", _record())
    store.put("cred", _record(session_token="renewed"))

    loaded = store.get("cred")

    assert loaded == _record(session_token="renewed")


def test_delete_only_affects_one_identity(store) -> None:
    store.put("first", _record())
    store.put("second", _record(user_id="5678"))

    store.delete("first")
    store.delete("never-stored")

    assert store.get("first") is None
    assert store.get("second").user_id == "5678"


def test_returned_records_are_copies(store) -> None:
    store.put("cred", _record())

    loaded = store.get("cred")
    loaded.clear_session()

    assert store.get("cred").session_token == "session"


def test_sqlite_store_survives_reopen(tmp_path: Path) -> None:
    db_path = str(tmp_path / "sessions.db")
    SQLiteSessionStore(db_path).put("cred", _record())

    assert SQLiteSessionStore(db_path).get("cred") == _record()


def test_session_expiry_rule() -> None:
    record = _record(session_timeout_seconds=1000, session_created_at=0.0)

    assert record.has_active_session(now=500.0) is True
    assert record.has_active_session(now=501.0) is False
    assert _record(session_token=None).has_active_session(now=0.0) is False


def test_event_queue_is_first_in_first_out(tmp_path: Path) -> None:
    queue = SQLiteEventQueue(str(tmp_path / "events" / "queue.db"))
    first = {"NotificationUrl": {"category": "MUTATION", "object": {"Payment": {"id": 1}}}}
    second = {"NotificationUrl": {"category": "PAYMENT", "object": {"Payment": {"id": 2}}}}

    first_id = queue.enqueue_event(first)
    queue.enqueue_event(second)

    assert queue.pending_count() == 2
    popped = queue.dequeue_event()
    assert popped["id"] == first_id
    assert popped["event"] == first
    assert queue.dequeue_event()["event"] == second
    assert queue.dequeue_event() is None
    assert queue.pending_count() == 0
