"""UniFi controller client: authenticated requests and resource queries.

The ControllerClient owns the HTTP connection pool, the session state, the
event dispatcher and at most one push-channel listener.

Features:
- Login on demand, no explicit connect step
- Re-authentication on 401 followed by exactly one replay of the request
- Concurrent requests share a single in-flight login
- Self-signed certificate rejection surfaced as CertificateError

Example usage:
    from unifi_controller.config import ControllerSettings
    from unifi_controller.api import ControllerClient

    settings = ControllerSettings(base_url="https://192.168.1.1:8443", username="admin")

    async with ControllerClient(settings) as client:
        devices = await client.get_devices()
        print(f"Found {len(devices)} devices")
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence, Union

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
)

from unifi_controller.config import ControllerSettings

from .auth import login, logout
from .dispatcher import EventDispatcher, Subscriber
from .endpoints import ENDPOINTS, SITES, api_root
from .exceptions import AuthenticationError, UpstreamError
from .filters import alarm_filter, event_filter, mac_filter, rogue_ap_filter
from .session import PendingRequest, SessionState
from .transport import response_body, send, session_free_cookie_jar
from .websocket import EventStreamListener

logger = structlog.get_logger(__name__)

# The original request plus one replay after re-authentication
MAX_ATTEMPTS = 2


class SessionRejected(Exception):
    """A request came back 401. Internal signal for the retry loop."""

    def __init__(self, response: httpx.Response, generation: int) -> None:
        self.response = response
        self.generation = generation
        super().__init__(f"Session rejected (generation {generation})")


class ControllerClient:
    """Async client for a UniFi Network controller.

    Attributes:
        settings: ControllerSettings configuration object.
        session: Current credentials and the single-flight login guard.
        events: Dispatcher that push-channel events are emitted through.

    Example:
        # As async context manager (recommended)
        async with ControllerClient(settings) as client:
            health = await client.get_health()

        # Manual lifecycle
        client = ControllerClient(settings)
        try:
            health = await client.get_health()
        finally:
            await client.aclose()
    """

    def __init__(
        self,
        settings: ControllerSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Initialize the client.

        Args:
            settings: Configuration settings for the controller connection.
            transport: Optional httpx transport, replaces the network stack.
        """
        self.settings = settings
        self.session = SessionState()
        self.events = EventDispatcher()
        self._listener: Optional[EventStreamListener] = None
        self._listener_lock = asyncio.Lock()
        self._http = httpx.AsyncClient(
            base_url=api_root(settings.base_url, settings.api_prefix),
            verify=settings.verify_ssl,
            timeout=settings.timeout,
            cookies=session_free_cookie_jar(),
            transport=transport,
        )
        self._stdlib_logger = logging.getLogger(__name__)

    async def execute(
        self,
        method: str,
        path: str,
        body: Any = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        """Send an authenticated request.

        On a 401 the session is refreshed (or an in-flight refresh is joined)
        and the identical request is replayed once. The replay's outcome is
        final.

        Args:
            method: HTTP method (GET, POST, etc.)
            path: Endpoint path relative to the API root, e.g. /s/default/stat/health.
            body: JSON body (dict/list) or pre-encoded str.
            params: Query parameters.

        Returns:
            The successful (2xx) response, body and headers untouched.

        Raises:
            AuthenticationError: Login failed, or the replay was rejected too.
            UpstreamError: Any other non-2xx response.
            CertificateError: Self-signed certificate rejected.
            NetworkError: Other transport failure.
        """
        request = PendingRequest(method=method.upper(), path=path, body=body, params=params)
        rejected: Optional[SessionRejected] = None

        retrying = AsyncRetrying(
            stop=stop_after_attempt(MAX_ATTEMPTS),
            retry=retry_if_exception_type(SessionRejected),
            before_sleep=before_sleep_log(self._stdlib_logger, logging.INFO),
            reraise=True,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    if rejected is not None:
                        await self._refresh_session(rejected.generation)
                    generation = self.session.generation
                    response = await send(
                        self._http,
                        request,
                        self.session.current_credentials(),
                    )
                    if response.status_code == 401:
                        logger.info(
                            "session_expired",
                            message="Session rejected, re-authenticating",
                            path=path,
                            attempt=attempt.retry_state.attempt_number,
                        )
                        rejected = SessionRejected(response, generation)
                        raise rejected
        except SessionRejected as e:
            raise AuthenticationError(
                message="Session rejected again after re-authentication",
                hint="Check your credentials and the account's permissions.",
            ) from e

        if not response.is_success:
            logger.warning("api_error", path=path, status_code=response.status_code)
            raise UpstreamError(response.status_code, response_body(response))

        return response

    async def _refresh_session(self, rejected_generation: int) -> None:
        """Make sure the session is newer than the one that was rejected.

        Joins an in-flight login instead of starting a second one. Skips
        the login when another request refreshed the session meanwhile.
        """
        if self.session.generation != rejected_generation:
            logger.debug("session_already_refreshed", generation=self.session.generation)
            return

        if self.session.auth_in_flight:
            logger.debug("waiting_for_authentication")
            await self.session.wait_for_auth()
            if self.session.generation == rejected_generation:
                raise AuthenticationError(
                    message="Authentication started by a concurrent request failed",
                )
            return

        await self.authenticate()

    async def authenticate(self) -> None:
        """Log in and replace the stored credentials.

        If another login is already running, waits for it instead.

        Raises:
            AuthenticationError: Login rejected or failed in transit.
            CertificateError: Self-signed certificate rejected.
        """
        if not self.session.begin_auth_attempt():
            await self.session.wait_for_auth()
            return

        credentials = None
        try:
            credentials = await login(
                self._http,
                username=self.settings.username,
                password=self.settings.password,
            )
        finally:
            self.session.complete_auth_attempt(credentials)

    async def ensure_authenticated(self) -> None:
        """Log in unless credentials are already stored."""
        if self.session.current_credentials() is not None:
            return
        if self.session.auth_in_flight:
            await self.session.wait_for_auth()
            if self.session.current_credentials() is None:
                raise AuthenticationError(
                    message="Authentication started by a concurrent request failed",
                )
            return
        await self.authenticate()

    def subscribe(self, callback: Subscriber, name: Optional[str] = None):
        """Register a push-channel event subscriber (see EventDispatcher.subscribe)."""
        return self.events.subscribe(callback, name=name)

    async def start_event_listener(self) -> EventStreamListener:
        """Open the push channel for the configured site.

        One connection per client: concurrent callers share one start-up and
        a running listener is returned as is. Once the channel has closed,
        the next call replaces the listener and connects again.
        """
        async with self._listener_lock:
            current = self._listener
            if current is not None and not current.closed:
                logger.debug("websocket_listener_already_running")
                return current
            if current is not None:
                await current.close()
                self._listener = None
                logger.info("websocket_listener_restarting")

            listener = EventStreamListener(self)
            await listener.start()
            self._listener = listener
            return listener

    @property
    def listener(self) -> Optional[EventStreamListener]:
        return self._listener

    # Resource queries

    async def get_alarms(
        self,
        start: Optional[int] = None,
        limit: Optional[int] = None,
        archived: bool = False,
        site: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Get alarms, newest first.

        Args:
            start: First alarm to return (default 0).
            limit: Number of alarms to return (default 100).
            archived: Include archived alarms (default False).
            site: Site name, defaults to the configured site.
        """
        body = alarm_filter(start, limit, archived)
        return await self._fetch("POST", ENDPOINTS.alarms, site, body)

    async def get_clients(
        self,
        macs: Union[str, Sequence[str], None] = None,
        site: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Get connected clients, optionally filtered by mac address.

        Raises:
            InvalidFilterError: A mac address is malformed (nothing is sent).
        """
        body = {"macs": mac_filter(macs)}
        return await self._fetch("POST", ENDPOINTS.clients, site, body)

    async def get_devices(
        self,
        macs: Union[str, Sequence[str], None] = None,
        site: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Get adopted devices, optionally filtered by mac address.

        Raises:
            InvalidFilterError: A mac address is malformed (nothing is sent).
        """
        body = {"macs": mac_filter(macs)}
        return await self._fetch("POST", ENDPOINTS.devices, site, body)

    async def get_events(
        self,
        start: Optional[int] = None,
        limit: Optional[int] = None,
        period: Optional[int] = None,
        site: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Get events of the last ``period`` hours (default 1)."""
        body = event_filter(start, limit, period)
        return await self._fetch("POST", ENDPOINTS.events, site, body)

    async def get_rogue_aps(
        self,
        limit: Optional[int] = None,
        period: Optional[int] = None,
        site: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Get neighbouring (rogue) access points seen in the last ``period`` hours."""
        body = rogue_ap_filter(limit, period)
        return await self._fetch("POST", ENDPOINTS.rogue_aps, site, body)

    async def get_health(self, site: Optional[str] = None) -> List[Dict[str, Any]]:
        return await self._fetch("GET", ENDPOINTS.health, site)

    async def get_routes(self, site: Optional[str] = None) -> List[Dict[str, Any]]:
        return await self._fetch("GET", ENDPOINTS.routes, site)

    async def get_system_info(self, site: Optional[str] = None) -> List[Dict[str, Any]]:
        return await self._fetch("GET", ENDPOINTS.sysinfo, site)

    async def get_sites(self) -> List[Dict[str, Any]]:
        """Get all sites managed by this controller, including statistics."""
        response = await self.execute("GET", SITES)
        sites = _unwrap(response)
        logger.debug("sites_retrieved", count=len(sites))
        return sites

    async def _fetch(
        self,
        method: str,
        template: str,
        site: Optional[str],
        body: Any = None,
    ) -> List[Dict[str, Any]]:
        path = template.format(site=site or self.settings.site)
        response = await self.execute(method, path, body)
        data = _unwrap(response)
        logger.debug("resource_retrieved", path=path, count=len(data))
        return data

    async def aclose(self) -> None:
        """Close the push channel, log out (best-effort) and close the HTTP client."""
        async with self._listener_lock:
            if self._listener is not None:
                await self._listener.close()
                self._listener = None
        await logout(self._http, self.session.current_credentials())
        await self._http.aclose()
        logger.debug("client_closed")

    async def __aenter__(self) -> "ControllerClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()


def _unwrap(response: httpx.Response) -> List[Dict[str, Any]]:
    """Extract ``data`` from the controller's ``{"meta": ..., "data": [...]}`` wrapper.

    Raises:
        UpstreamError: The body is not JSON, e.g. a UniFi OS login page
            served because api_prefix is wrong.
    """
    try:
        data = response.json()
    except ValueError:
        logger.warning(
            "api_response_not_json",
            path=response.request.url.path,
            status_code=response.status_code,
        )
        raise UpstreamError(
            response.status_code,
            response.text,
            message=(
                f"Controller returned a non-JSON response ({response.status_code}). "
                "Check UNIFI_API_PREFIX ('/proxy/network' on UniFi OS)."
            ),
        ) from None
    if isinstance(data, dict) and "data" in data:
        return data["data"]
    return data if isinstance(data, list) else []
