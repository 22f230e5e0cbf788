"""Data models for the UniFi controller client."""

from unifi_controller.models.events import (
    ClientEvent,
    ClientEventKey,
    ControllerEvent,
    SyncEvent,
    SyncMessage,
    UnrecognizedEvent,
    classify_event,
)

__all__ = [
    "ClientEvent",
    "ClientEventKey",
    "ControllerEvent",
    "SyncEvent",
    "SyncMessage",
    "UnrecognizedEvent",
    "classify_event",
]
