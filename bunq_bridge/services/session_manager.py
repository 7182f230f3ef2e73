"""
Bunq session lifecycle management.

A usable session requires three handshake steps, each cached in the session
store once it succeeds:

1. installation (client public key -> installation token, server key)
2. device registration (account secret -> device id, never expires)
3. session creation (account secret -> session token + user id)

Only step 3 is time-limited. ``ensure_session`` runs whichever steps are
missing or expired, holding a per-credential lock so concurrent callers share
one refresh instead of spending the single session-server slot twice.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Dict, List, Optional

from bunq_bridge.clients.bunq_http import BunqHttpClient
from bunq_bridge.clients.handshake import BunqHandshakeClient
from bunq_bridge.clients.session_store import SessionStore
from bunq_bridge.models.credentials import BunqCredential
from bunq_bridge.models.session import (
    DEFAULT_SESSION_TIMEOUT_SECONDS,
    SessionDescriptor,
    SessionRecord,
)

logger = logging.getLogger(__name__)

HttpClientFactory = Callable[[BunqCredential], BunqHttpClient]


class BunqSessionManager:
    """Create and renew Bunq sessions for any number of credentials."""

    def __init__(
        self,
        store: SessionStore,
        client_factory: HttpClientFactory,
        *,
        service_name: str,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._client_factory = client_factory
        self._service_name = service_name
        self._clock = clock
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock_for(self, identity: str) -> asyncio.Lock:
        lock = self._locks.get(identity)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[identity] = lock
        return lock

    def _load_record(self, credential: BunqCredential) -> SessionRecord:
        environment = credential.environment.value
        record = self._store.get(credential.identity)
        if record is None:
            return SessionRecord(environment=environment)
        if record.environment != environment:
            logger.info(
                "Discarding %s session for credential %s; environment is now %s",
                record.environment,
                credential.identity,
                environment,
            )
            return SessionRecord(environment=environment)
        return record

    def peek(self, identity: str) -> Optional[SessionRecord]:
        """Return the cached record without touching the network."""
        return self._store.get(identity)

    def invalidate(self, identity: str) -> None:
        """Forget every handshake artifact stored for ``identity``."""
        self._store.delete(identity)
        lock = self._locks.get(identity)
        # Inside ``ensure_session`` the lock is held and must survive.
        if lock is not None and not lock.locked():
            del self._locks[identity]

    def tracked_identities(self) -> List[str]:
        """Return identities that currently own a refresh lock."""
        return sorted(self._locks)

    async def ensure_session(
        self,
        credential: BunqCredential,
        *,
        force_recreate: bool = False,
    ) -> SessionDescriptor:
        """Return a valid session, performing only the handshake steps required."""
        async with self._lock_for(credential.identity):
            if force_recreate:
                logger.info("Force recreating Bunq session for %s", credential.identity)
                self.invalidate(credential.identity)

            record = self._load_record(credential)
            handshake = BunqHandshakeClient(
                self._client_factory(credential), service_name=self._service_name
            )

            if not record.is_installed:
                logger.info("Creating Bunq installation for %s", credential.identity)
                installation = await handshake.create_installation()
                record.installation_token = installation.token
                record.server_public_key = installation.server_public_key
                # A new installation invalidates anything bound to the old one.
                record.device_id = None
                record.clear_session()
                self._store.put(credential.identity, record)

            if not record.is_device_registered:
                logger.info("Registering Bunq device for %s", credential.identity)
                record.device_id = await handshake.register_device(record.installation_token)
                self._store.put(credential.identity, record)
            else:
                logger.debug("Reusing Bunq device %s", record.device_id)

            now = self._clock()
            if not record.has_active_session(now=now):
                logger.info("Creating Bunq session for %s", credential.identity)
                session = await handshake.create_session(record.installation_token)
                record.session_token = session.token
                record.user_id = session.user_id
                record.session_timeout_seconds = (
                    session.session_timeout_seconds or DEFAULT_SESSION_TIMEOUT_SECONDS
                )
                record.session_created_at = self._clock()
                self._store.put(credential.identity, record)
            else:
                logger.debug("Reusing cached Bunq session for %s", credential.identity)

            return self._describe(record)

    def _describe(self, record: SessionRecord) -> SessionDescriptor:
        created_at = record.session_created_at
        age = max(self._clock() - created_at, 0.0) if created_at is not None else 0.0
        return SessionDescriptor(
            session_token=record.session_token,
            user_id=record.user_id,
            environment=record.environment,
            session_timeout_seconds=(
                record.session_timeout_seconds or DEFAULT_SESSION_TIMEOUT_SECONDS
            ),
            installation_token=record.installation_token,
            device_id=record.device_id,
            session_created_at=created_at,
            session_age_seconds=age,
        )


__all__ = ["BunqSessionManager", "HttpClientFactory"]
