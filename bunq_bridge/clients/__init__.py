"""Expose constructed client wrappers."""

from .bunq_http import BunqHttpClient
from .event_queue import SQLiteEventQueue
from .handshake import BunqHandshakeClient
from .session_store import InMemorySessionStore, SessionStore, SQLiteSessionStore

__all__ = [
    "BunqHandshakeClient",
    "BunqHttpClient",
    "InMemorySessionStore",
    "SQLiteEventQueue",
    "SQLiteSessionStore",
    "SessionStore",
]
