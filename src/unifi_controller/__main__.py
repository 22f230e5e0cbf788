"""
Entry point for the unifi-controller CLI.

Usage:
    unifi-controller              Stream push-channel events as JSON lines
    unifi-controller --test       Log in, list sites, then exit
    unifi-controller --help       Show help message
    unifi-controller --version    Show version and exit

Exit Codes:
    0 - Success
    1 - Configuration error (invalid settings, missing required values)
    2 - Connection error (cannot reach UniFi Controller)
    3 - Authentication error (invalid credentials, wrong account type)
    4 - Certificate error (self-signed certificate rejected)
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import TYPE_CHECKING, Optional, Sequence

import structlog

from unifi_controller import __version__
from unifi_controller.logging import configure_logging

if TYPE_CHECKING:
    from unifi_controller.api import ControllerClient
    from unifi_controller.config import ControllerSettings
    from unifi_controller.models import ControllerEvent

EXIT_SUCCESS = 0
EXIT_CONFIG_ERROR = 1

logger = structlog.get_logger(__name__)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="unifi-controller",
        description="Stream events from a UniFi Network controller",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exit Codes:
  0   Success
  1   Configuration error
  2   Connection error (cannot reach controller)
  3   Authentication error (invalid credentials)
  4   Certificate error (self-signed certificate)

Environment Variables:
  CONFIG_PATH           Path to YAML configuration file
  UNIFI_BASE_URL        Controller URL, e.g. https://192.168.1.1:8443
  UNIFI_USERNAME        Controller admin username
  UNIFI_PASSWORD        Controller admin password
  UNIFI_PASSWORD_FILE   Path to file containing password (Docker secrets)
  UNIFI_SITE            Site name (default: default)
  UNIFI_VERIFY_SSL      Enable TLS verification (default: true)
  UNIFI_API_PREFIX      '/proxy/network' on UniFi OS consoles
  UNIFI_LOG_LEVEL       Logging level: DEBUG, INFO, WARNING, ERROR
  UNIFI_LOG_FORMAT      Log format: json or text
""",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--config",
        metavar="PATH",
        help="YAML configuration file (overrides CONFIG_PATH)",
    )
    parser.add_argument(
        "--site",
        help="Site to listen on (overrides UNIFI_SITE)",
    )
    parser.add_argument(
        "--test",
        action="store_true",
        help="Log in and list sites, then exit",
    )
    return parser.parse_args(argv)


def event_to_json(event: "ControllerEvent") -> str:
    """Serialize an event as one JSON line."""
    return json.dumps(
        {"type": type(event).__name__, "name": event.name, "payload": event.payload},
        default=str,
    )


async def run_test(client: "ControllerClient") -> int:
    """Log in and report the sites visible to the account."""
    await client.authenticate()
    sites = await client.get_sites()
    names = [s.get("name", s.get("_id", "unknown")) for s in sites]
    logger.info("connection_test_passed", sites=names)
    return EXIT_SUCCESS


async def run_stream(client: "ControllerClient") -> int:
    """Print every push-channel event until the channel closes."""

    def write_event(event: "ControllerEvent") -> None:
        sys.stdout.write(event_to_json(event) + "\n")
        sys.stdout.flush()

    client.subscribe(write_event)
    listener = await client.start_event_listener()
    await listener.wait_closed()
    return EXIT_SUCCESS


async def run(settings: "ControllerSettings", test: bool = False) -> int:
    from unifi_controller.api import ControllerClient, UnifiAPIError

    try:
        async with ControllerClient(settings) as client:
            if test:
                return await run_test(client)
            return await run_stream(client)
    except UnifiAPIError as e:
        logger.error("controller_error", error=e.message, hint=e.hint)
        return e.exit_code


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)

    from unifi_controller.config import ConfigurationError, load_config

    try:
        settings = load_config(args.config)
    except ConfigurationError as e:
        print(str(e), file=sys.stderr)
        return EXIT_CONFIG_ERROR

    if args.site:
        settings = settings.model_copy(update={"site": args.site})

    configure_logging(log_format=settings.log_format, log_level=settings.log_level)
    logger.info("starting", version=__version__, base_url=settings.base_url, site=settings.site)

    try:
        return asyncio.run(run(settings, test=args.test))
    except KeyboardInterrupt:
        logger.info("interrupted")
        return EXIT_SUCCESS


if __name__ == "__main__":
    sys.exit(main())
