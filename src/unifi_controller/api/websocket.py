"""Push-channel listener for controller events.

The controller pushes JSON envelopes over a WebSocket at
``/wss/s/{site}/events``. Two envelope shapes arrive:

    {"meta": {"message": "events"}, "data": [{"key": "EVT_WU_Connected", ...}, ...]}
    {"meta": {"message": "device.sync"}, "data": {...}}

A batched ``events`` envelope yields one ControllerEvent per element, named
by the element's ``key``. Any other envelope yields a single event named by
``meta.message`` with ``data`` as payload.

Example usage:
    async with ControllerClient(settings) as client:
        client.events.subscribe(on_connect, name="EVT_WU_Connected")
        listener = await client.start_event_listener()
        await listener.wait_closed()
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import ssl
from typing import TYPE_CHECKING, Any, Optional, Union

import structlog
import websockets

from unifi_controller.models import ControllerEvent, classify_event

from .endpoints import push_url
from .exceptions import (
    AuthenticationError,
    CertificateError,
    MalformedMessageError,
    NetworkError,
)
from .transport import is_self_signed_error

if TYPE_CHECKING:
    from websockets.asyncio.client import ClientConnection

    from .client import ControllerClient

logger = structlog.get_logger(__name__)

EVENTS_MESSAGE = "events"


def _preview(raw: Union[str, bytes], size: int = 100) -> str:
    if isinstance(raw, (bytes, bytearray)):
        return repr(bytes(raw[:size]))
    return raw[:size]


def decode_envelope(raw: Union[str, bytes]) -> list[ControllerEvent]:
    """Decode one push-channel frame into the events it carries.

    Args:
        raw: Frame as received, text or UTF-8 bytes.

    Returns:
        The events in frame order. May be empty for an empty batch.

    Raises:
        MalformedMessageError: The frame is not JSON, not an object, lacks
            ``meta.message``, or is an ``events`` envelope without a list.
    """
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = bytes(raw).decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedMessageError("frame is not valid UTF-8", raw) from e

    try:
        message = json.loads(raw)
    except json.JSONDecodeError as e:
        raise MalformedMessageError(f"invalid JSON ({e.msg})", raw) from e

    if not isinstance(message, dict):
        raise MalformedMessageError("envelope is not an object", raw)

    meta = message.get("meta")
    if not isinstance(meta, dict) or not isinstance(meta.get("message"), str):
        raise MalformedMessageError("missing meta.message", raw)

    name = meta["message"]
    data = message.get("data")

    if name != EVENTS_MESSAGE:
        return [classify_event(name, data)]

    if not isinstance(data, list):
        raise MalformedMessageError("events envelope without a data list", raw)

    events: list[ControllerEvent] = []
    for element in data:
        key = element.get("key") if isinstance(element, dict) else None
        if not isinstance(key, str):
            logger.warning("websocket_event_without_key", element=str(element)[:100])
            continue
        events.append(classify_event(key, element))
    return events


class EventStreamListener:
    """Listens on the push channel and re-emits events through the client's dispatcher.

    One listener holds one connection. It does not reconnect: once the
    transport closes, ControllerClient.start_event_listener replaces it.

    Attributes:
        endpoint: WebSocket URL, derived from the client settings.
    """

    def __init__(self, client: "ControllerClient") -> None:
        self._client = client
        self._settings = client.settings
        self._ws: Optional[ClientConnection] = None
        self._task: Optional[asyncio.Task[None]] = None
        self._ready = asyncio.Event()
        self._closed = asyncio.Event()
        self._start_lock = asyncio.Lock()
        self.frames_received = 0
        self.frames_dropped = 0

    @property
    def endpoint(self) -> str:
        return push_url(
            self._settings.base_url,
            self._settings.site,
            self._settings.api_prefix,
        )

    @property
    def ready(self) -> bool:
        """True once the first connection opened."""
        return self._ready.is_set()

    @property
    def closed(self) -> bool:
        """True once the reader task finished; the listener cannot be restarted."""
        return self._closed.is_set()

    def _get_ssl_context(self) -> ssl.SSLContext:
        """Create SSL context for the connection, honouring verify_ssl."""
        ctx = ssl.create_default_context()
        if not self._settings.verify_ssl:
            ctx.check_hostname = False
            ctx.verify_mode = ssl.CERT_NONE
        return ctx

    async def start(self) -> None:
        """Authenticate if needed, open the connection and start reading.

        Returns once the connection is open. Frames are then read by a
        background task until the transport closes.

        Raises:
            AuthenticationError: Login failed or the controller refused the session.
            CertificateError: Self-signed certificate rejected.
            NetworkError: The connection could not be opened.
        """
        async with self._start_lock:
            if self._task is not None:
                logger.warning("websocket_listener_already_running", endpoint=self.endpoint)
                return

            await self._client.ensure_authenticated()
            credentials = self._client.session.current_credentials()

            headers: dict[str, str] = {}
            if credentials is not None and credentials.token is not None:
                headers["Cookie"] = f"unifises={credentials.token};"

            options: dict[str, Any] = {
                "additional_headers": headers,
                "open_timeout": self._settings.timeout,
            }
            if self.endpoint.startswith("wss://"):
                options["ssl"] = self._get_ssl_context()

            try:
                self._ws = await websockets.connect(self.endpoint, **options)
            except websockets.exceptions.InvalidStatus as e:
                status = e.response.status_code
                logger.error("websocket_rejected", endpoint=self.endpoint, status_code=status)
                if status in (401, 403):
                    raise AuthenticationError(message="Push channel rejected the session") from e
                raise NetworkError(message=f"Push channel handshake failed: {status}") from e
            except websockets.exceptions.InvalidHandshake as e:
                logger.error("websocket_handshake_failed", endpoint=self.endpoint, error=str(e))
                raise NetworkError(message=f"Push channel handshake failed: {e}") from e
            except (OSError, asyncio.TimeoutError) as e:
                if is_self_signed_error(e):
                    logger.error("self_signed_certificate", endpoint=self.endpoint)
                    raise CertificateError() from e
                logger.error("websocket_connection_error", endpoint=self.endpoint, error=str(e))
                raise NetworkError(message=f"Cannot open push channel: {e}") from e

            logger.info("websocket_connected", endpoint=self.endpoint)
            self._ready.set()
            self._task = asyncio.create_task(self._listen(), name="unifi-push-listener")

    async def _listen(self) -> None:
        assert self._ws is not None
        try:
            async for message in self._ws:
                await self.handle_frame(message)
        except websockets.exceptions.ConnectionClosedError as e:
            logger.error(
                "websocket_error",
                code=e.rcvd.code if e.rcvd else None,
                reason=e.rcvd.reason if e.rcvd else None,
            )
        except Exception as e:
            logger.error("websocket_error", error=str(e), error_type=type(e).__name__)
        finally:
            logger.info("websocket_closed", endpoint=self.endpoint)
            self._closed.set()

    async def handle_frame(self, raw: Union[str, bytes]) -> int:
        """Decode one frame and emit its events.

        Malformed frames are logged and dropped; nothing is raised and the
        connection stays open.

        Returns:
            Number of events emitted.
        """
        self.frames_received += 1
        logger.debug("websocket_frame_received", frame=_preview(raw))

        try:
            events = decode_envelope(raw)
        except MalformedMessageError as e:
            self.frames_dropped += 1
            logger.error("websocket_malformed_message", reason=e.reason, frame=_preview(raw))
            return 0

        for event in events:
            logger.debug("websocket_emit", event_name=event.name)
            await self._client.events.emit(event)
        return len(events)

    def is_connected(self) -> bool:
        """Check if the connection is currently open."""
        return self._ws is not None and self._ws.state.name == "OPEN"

    async def wait_closed(self) -> None:
        """Wait until the transport closed and the reader task finished."""
        if self._task is None:
            return
        await self._closed.wait()

    async def close(self) -> None:
        """Close the connection and wait for the reader task to finish."""
        if self._ws is not None:
            with contextlib.suppress(Exception):
                await self._ws.close()
        if self._task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
        logger.debug("websocket_listener_stopped")
