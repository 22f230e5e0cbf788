"""Typed events re-emitted from the controller's push channel.

The catalog of batched client events and sync notices is finite, so each
known name maps to a variant below. Names the catalog does not know yet come
through as UnrecognizedEvent with the raw name and payload.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class ClientEventKey(str, Enum):
    """Discriminator (``key``) of a batched client connection event."""

    # Wireless user
    WU_CONNECTED = "EVT_WU_Connected"
    WU_DISCONNECTED = "EVT_WU_Disconnected"
    WU_ROAM = "EVT_WU_ROAM"  # roamed from one AP to another
    WU_ROAM_RADIO = "EVT_WU_ROAM_RADIO"  # changed channel on the same AP

    # Wireless guest
    WG_CONNECTED = "EVT_WG_Connected"
    WG_DISCONNECTED = "EVT_WG_Disconnected"
    WG_ROAM = "EVT_WG_ROAM"
    WG_ROAM_RADIO = "EVT_WG_ROAM_RADIO"
    WG_AUTHORIZATION_ENDED = "EVT_WG_AUTHORIZATION_ENDED"

    # LAN user
    LU_CONNECTED = "EVT_LU_CONNECTED"
    LU_DISCONNECTED = "EVT_LU_DISCONNECTED"

    # LAN guest
    LG_CONNECTED = "EVT_LG_CONNECTED"
    LG_DISCONNECTED = "EVT_LG_DISCONNECTED"


class SyncMessage(str, Enum):
    """``meta.message`` of a single-entity synchronization notice."""

    DEVICE_SYNC = "device.sync"
    STA_SYNC = "sta.sync"


@dataclass(frozen=True)
class ControllerEvent:
    """A named event and its payload, passed through as received.

    Subscribers must treat the payload as a read-only snapshot.

    Attributes:
        name: Event name subscribers are matched against.
        payload: The batched element itself, or the sync message's ``data``.
    """

    name: str
    payload: Any


@dataclass(frozen=True)
class ClientEvent(ControllerEvent):
    """A client connected, disconnected, roamed or lost guest authorization."""

    @property
    def key(self) -> ClientEventKey:
        return ClientEventKey(self.name)

    @property
    def mac(self) -> Optional[str]:
        """Client mac address (``user`` or ``guest`` field, depending on the actor)."""
        if not isinstance(self.payload, dict):
            return None
        return self.payload.get("user") or self.payload.get("guest") or self.payload.get("mac")

    @property
    def is_guest(self) -> bool:
        return self.name.startswith(("EVT_WG_", "EVT_LG_"))

    @property
    def is_wireless(self) -> bool:
        return self.name.startswith(("EVT_WU_", "EVT_WG_"))


@dataclass(frozen=True)
class SyncEvent(ControllerEvent):
    """State of one device or client changed on the controller."""

    @property
    def message(self) -> SyncMessage:
        return SyncMessage(self.name)


@dataclass(frozen=True)
class UnrecognizedEvent(ControllerEvent):
    """Any event name not in the known catalog."""


_CLIENT_KEYS = frozenset(k.value for k in ClientEventKey)
_SYNC_MESSAGES = frozenset(m.value for m in SyncMessage)


def classify_event(name: str, payload: Any) -> ControllerEvent:
    """Wrap a name and payload in the matching ControllerEvent variant.

    Example:
        >>> classify_event("device.sync", {"mac": "aa:bb:cc:dd:ee:ff"})
        SyncEvent(name='device.sync', payload={'mac': 'aa:bb:cc:dd:ee:ff'})
    """
    if name in _CLIENT_KEYS:
        return ClientEvent(name=name, payload=payload)
    if name in _SYNC_MESSAGES:
        return SyncEvent(name=name, payload=payload)
    return UnrecognizedEvent(name=name, payload=payload)
