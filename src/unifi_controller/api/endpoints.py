"""API endpoint definitions for the UniFi Network controller.

Paths below are relative to the API root, ``{base_url}{api_prefix}/api``.
Self-hosted controllers use an empty prefix; UniFi OS consoles (UDM Pro,
UCG Ultra, Cloud Key Gen2+) serve the Network application under
``/proxy/network``.
"""

from dataclasses import dataclass

LOGIN = "/login"
LOGOUT = "/logout"
SITES = "/stat/sites"


@dataclass(frozen=True)
class SiteEndpoints:
    """Site-scoped endpoints, formatted with ``site``.

    Attributes:
        alarms: Alarm listing (POST with filter body)
        clients: Connected clients (POST with mac filter)
        devices: Adopted devices (POST with mac filter)
        events: Event log (POST with filter body)
        health: Subsystem health (GET)
        rogue_aps: Neighbouring/rogue access points (POST with filter body)
        routes: Routing table (GET)
        sysinfo: Controller system info (GET)
        push: Push channel, relative to the prefix rather than /api
    """

    alarms: str = "/s/{site}/stat/alarm"
    clients: str = "/s/{site}/stat/sta"
    devices: str = "/s/{site}/stat/device"
    events: str = "/s/{site}/stat/event"
    health: str = "/s/{site}/stat/health"
    rogue_aps: str = "/s/{site}/stat/rogueap"
    routes: str = "/s/{site}/stat/routing"
    sysinfo: str = "/s/{site}/stat/sysinfo"
    push: str = "/wss/s/{site}/events"


ENDPOINTS = SiteEndpoints()


def api_root(base_url: str, api_prefix: str = "") -> str:
    """Base URL for HTTP calls.

    Example:
        >>> api_root("https://192.168.1.1", "/proxy/network")
        'https://192.168.1.1/proxy/network/api'
    """
    return f"{base_url.rstrip('/')}{api_prefix}/api"


def push_url(base_url: str, site: str, api_prefix: str = "") -> str:
    """WebSocket URL of the push channel for a site.

    The scheme is upgraded from the base URL: https -> wss, http -> ws.

    Example:
        >>> push_url("https://192.168.1.1:8443", "default")
        'wss://192.168.1.1:8443/wss/s/default/events'
    """
    base = base_url.rstrip("/")
    if base.startswith("https://"):
        base = "wss://" + base[len("https://") :]
    elif base.startswith("http://"):
        base = "ws://" + base[len("http://") :]
    return f"{base}{api_prefix}{ENDPOINTS.push.format(site=site)}"
