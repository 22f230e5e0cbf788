"""
UniFi Controller client - authenticated requests and push events.

This package talks to a UniFi Network controller over its JSON HTTP API and
listens on the controller's WebSocket push channel.

Features:
- Cookie session login with transparent re-authentication on 401
- Single-flight login shared by concurrent requests
- Push-channel listener that re-emits typed, named events to subscribers
- Configuration via YAML with environment variable overrides
- Structured logging (JSON for production, text for development)
"""

__version__ = "0.3.0"
__all__ = ["__version__"]
