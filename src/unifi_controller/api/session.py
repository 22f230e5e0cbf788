"""Session state shared by the request executor and the push-channel listener.

The controller issues two credential artifacts at login: the ``unifises``
session cookie and a ``csrf_token``. Both are held here, together with the
single-flight guard that keeps concurrent callers from logging in twice.

All methods are synchronous except ``wait_for_auth``; under asyncio there is
no suspension point inside ``begin_auth_attempt``, which makes its
check-and-set atomic for every coroutine sharing the event loop.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Optional

import structlog

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Credentials:
    """Credential material returned by one successful login.

    Attributes:
        token: Value of the ``unifises`` session cookie, if sent.
        csrf_token: Anti-forgery token, if sent.
    """

    token: Optional[str] = None
    csrf_token: Optional[str] = None

    def headers(self) -> dict[str, str]:
        """Request headers carrying these credentials."""
        headers: dict[str, str] = {}
        if self.token is not None:
            headers["Cookie"] = f"unifises={self.token};"
        if self.csrf_token is not None:
            headers["X-CSRF-Token"] = self.csrf_token
        return headers


@dataclass(frozen=True)
class PendingRequest:
    """A request description that can be replayed verbatim after re-authentication."""

    method: str
    path: str
    body: Any = None
    params: Optional[dict[str, Any]] = None


class SessionState:
    """Holds the current credentials and the authentication-in-flight guard.

    Attributes:
        generation: Incremented on every successful authentication. Callers
            compare generations to tell whether the session was refreshed
            after they sent a request.
    """

    def __init__(self) -> None:
        self._credentials: Optional[Credentials] = None
        self._auth_in_flight = False
        self._idle = asyncio.Event()
        self._idle.set()
        self.generation = 0

    @property
    def auth_in_flight(self) -> bool:
        return self._auth_in_flight

    def current_credentials(self) -> Optional[Credentials]:
        return self._credentials

    def begin_auth_attempt(self) -> bool:
        """Mark an authentication attempt as started.

        Returns:
            True if the caller now owns the attempt, False if one is already
            in flight.
        """
        if self._auth_in_flight:
            return False
        self._auth_in_flight = True
        self._idle.clear()
        return True

    def complete_auth_attempt(self, credentials: Optional[Credentials]) -> None:
        """Finish the attempt started by begin_auth_attempt.

        Args:
            credentials: New credentials on success (replacing the old ones
                entirely), None on failure (stored credentials untouched).
        """
        if credentials is not None:
            self._credentials = credentials
            self.generation += 1
            logger.debug("session_updated", generation=self.generation)
        self._auth_in_flight = False
        self._idle.set()

    async def wait_for_auth(self) -> None:
        """Suspend until no authentication attempt is in flight."""
        await self._idle.wait()
