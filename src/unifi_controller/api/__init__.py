"""UniFi controller API module.

This module provides the ControllerClient for talking to a UniFi Network
controller, with session handling, re-authentication on 401, resource
queries and the push-channel EventStreamListener.
"""

from unifi_controller.api.auth import login, parse_credentials
from unifi_controller.api.client import ControllerClient
from unifi_controller.api.dispatcher import EventDispatcher
from unifi_controller.api.endpoints import ENDPOINTS, SiteEndpoints, api_root, push_url
from unifi_controller.api.exceptions import (
    AuthenticationError,
    CertificateError,
    InvalidFilterError,
    MalformedMessageError,
    NetworkError,
    UnifiAPIError,
    UpstreamError,
)
from unifi_controller.api.session import Credentials, PendingRequest, SessionState
from unifi_controller.api.websocket import EventStreamListener, decode_envelope

__all__ = [
    # Client
    "ControllerClient",
    # Session
    "Credentials",
    "PendingRequest",
    "SessionState",
    "login",
    "parse_credentials",
    # Push channel
    "EventDispatcher",
    "EventStreamListener",
    "decode_envelope",
    # Exceptions
    "AuthenticationError",
    "CertificateError",
    "InvalidFilterError",
    "MalformedMessageError",
    "NetworkError",
    "UnifiAPIError",
    "UpstreamError",
    # Endpoints
    "ENDPOINTS",
    "SiteEndpoints",
    "api_root",
    "push_url",
]
