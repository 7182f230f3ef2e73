"""
Per-credential request throttling for the Bunq API.

Bunq enforces fixed quotas per API key: 3 GETs, 5 POSTs and 2 PUTs per three
seconds, and a single ``/session-server`` call per thirty seconds. Callers that
would exceed a quota are made to wait for the next window instead of failing.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional, Tuple
from urllib.parse import urlsplit

from bunq_bridge.core.errors import ConfigurationError

logger = logging.getLogger(__name__)

SESSION_SERVER_CLASS = "SESSION_SERVER"
_SESSION_SERVER_PATH = "/session-server"


@dataclass(frozen=True)
class RateLimitRule:
    max_requests: int
    window_seconds: float


RATE_LIMITS: Dict[str, RateLimitRule] = {
    "GET": RateLimitRule(max_requests=3, window_seconds=3.0),
    "POST": RateLimitRule(max_requests=5, window_seconds=3.0),
    "PUT": RateLimitRule(max_requests=2, window_seconds=3.0),
    SESSION_SERVER_CLASS: RateLimitRule(max_requests=1, window_seconds=30.0),
}


@dataclass
class RateLimitWindow:
    window_start: float
    count: int = 0


def normalize_path(url: str) -> str:
    """Return the path component of ``url`` without query or fragment."""
    try:
        path = urlsplit(url).path
    except ValueError:
        path = ""
    if not path:
        path = url.split("?", 1)[0].split("#", 1)[0]
    return path.rstrip("/") or "/"


def classify_endpoint(method: str, url: str) -> Optional[str]:
    """Return the rate-limit class for a call, or None when unthrottled."""
    if normalize_path(url).endswith(_SESSION_SERVER_PATH):
        return SESSION_SERVER_CLASS
    upper_method = method.upper()
    if upper_method in ("GET", "POST", "PUT"):
        return upper_method
    return None


class RateLimiter:
    """Fixed-window limiter keyed by (credential identity, endpoint class).

    The check, wait and increment for a window run under that window's lock,
    so concurrent callers are admitted one at a time in arrival order.
    """

    def __init__(
        self,
        *,
        limits: Optional[Dict[str, RateLimitRule]] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._limits = dict(limits or RATE_LIMITS)
        self._clock = clock
        self._sleep = sleep
        self._windows: Dict[Tuple[str, str], RateLimitWindow] = {}
        self._locks: Dict[Tuple[str, str], asyncio.Lock] = {}

    def _lock_for(self, key: Tuple[str, str]) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    async def acquire(self, credential_id: Optional[str], method: str, url: str) -> None:
        """Wait until a slot is free for this call, then consume it."""
        if not credential_id:
            raise ConfigurationError(
                "Cannot rate-limit a Bunq request without a credential identity."
            )

        endpoint_class = classify_endpoint(method, url)
        if endpoint_class is None:
            return
        rule = self._limits[endpoint_class]
        key = (credential_id, endpoint_class)

        async with self._lock_for(key):
            now = self._clock()
            window = self._windows.get(key)
            if window is None:
                window = RateLimitWindow(window_start=now)
                self._windows[key] = window

            if now - window.window_start >= rule.window_seconds:
                window.window_start = now
                window.count = 0

            if window.count >= rule.max_requests:
                wait_seconds = rule.window_seconds - (now - window.window_start)
                if wait_seconds > 0:
                    logger.debug(
                        "Rate limit reached for %s; waiting %.2fs", endpoint_class, wait_seconds
                    )
                    await self._sleep(wait_seconds)
                window.window_start = self._clock()
                window.count = 0

            window.count += 1

    def window_state(self, credential_id: str, endpoint_class: str) -> Optional[RateLimitWindow]:
        """Return a copy of the current window, if one exists."""
        window = self._windows.get((credential_id, endpoint_class))
        if window is None:
            return None
        return RateLimitWindow(window_start=window.window_start, count=window.count)

    def reset(self, credential_id: Optional[str] = None) -> None:
        """Forget windows and idle locks for one credential, or for all of them."""
        for key in [
            key for key in self._windows if credential_id is None or key[0] == credential_id
        ]:
            del self._windows[key]
        for key, lock in list(self._locks.items()):
            # A held lock still guards an in-flight acquire.
            if (credential_id is None or key[0] == credential_id) and not lock.locked():
                del self._locks[key]

    def tracked_keys(self) -> List[Tuple[str, str]]:
        """Return the (identity, endpoint class) pairs that currently hold state."""
        return sorted(set(self._windows) | set(self._locks))


__all__ = [
    "RATE_LIMITS",
    "RateLimitRule",
    "RateLimitWindow",
    "RateLimiter",
    "SESSION_SERVER_CLASS",
    "classify_endpoint",
    "normalize_path",
]
