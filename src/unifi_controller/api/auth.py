"""Login against the controller and credential extraction.

The controller answers a successful ``POST /api/login`` with two cookies:

    Set-Cookie: unifises=<session token>; Path=/; Secure; HttpOnly
    Set-Cookie: csrf_token=<anti-forgery token>; Path=/; Secure

Each one is extracted on its own; a deployment that omits one of them still
yields a usable (partial) Credentials value.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional

import httpx
import structlog

from .endpoints import LOGIN, LOGOUT
from .exceptions import AuthenticationError, NetworkError, controller_message
from .session import Credentials, PendingRequest
from .transport import response_body, send

logger = structlog.get_logger(__name__)

SESSION_COOKIE_PATTERN = re.compile(r"^unifises=(.*)")
CSRF_COOKIE_PATTERN = re.compile(r"^csrf_token=(.*)")


def parse_credentials(
    set_cookie_headers: Iterable[str],
    csrf_header: Optional[str] = None,
) -> Credentials:
    """Extract the session and anti-forgery tokens from Set-Cookie values.

    Args:
        set_cookie_headers: Every Set-Cookie header value of the login response.
        csrf_header: X-CSRF-Token response header, used when no csrf_token
            cookie was sent (UniFi OS consoles).

    Returns:
        Credentials with either token set to None when it was not found.
    """
    token: Optional[str] = None
    csrf_token: Optional[str] = None

    for cookie in set_cookie_headers:
        for attr in cookie.split(";"):
            attr = attr.strip()
            session_match = SESSION_COOKIE_PATTERN.match(attr)
            if session_match:
                token = session_match.group(1)
                continue
            csrf_match = CSRF_COOKIE_PATTERN.match(attr)
            if csrf_match:
                csrf_token = csrf_match.group(1)

    if csrf_token is None and csrf_header:
        csrf_token = csrf_header

    return Credentials(token=token, csrf_token=csrf_token)


async def login(
    http: httpx.AsyncClient,
    username: str,
    password: str,
) -> Credentials:
    """Authenticate and return fresh credentials.

    The login request never carries credential headers and is never retried.

    Args:
        http: Client whose base_url points at the controller's /api.
        username: Local admin username.
        password: Admin password.

    Returns:
        Credentials parsed from the response headers.

    Raises:
        AuthenticationError: Credentials rejected, or the request failed in transit.
        CertificateError: Self-signed certificate rejected.

    Note:
        Password is never logged at any level. Username is logged at DEBUG only.
    """
    logger.debug("authenticating", username=username)

    request = PendingRequest(
        method="POST",
        path=LOGIN,
        body={"username": username, "password": password, "remember": True},
    )
    try:
        response = await send(http, request)
    except NetworkError as e:
        raise AuthenticationError(
            message=f"Connection failed during authentication: {e.message}",
            hint=e.hint,
        ) from e

    if not response.is_success:
        detail = controller_message(response_body(response))
        message = f"Authentication failed with status code {response.status_code}"
        if detail:
            message = f"Authentication failed: {detail}"
        logger.error("authentication_failed", status_code=response.status_code, detail=detail)
        if response.status_code in (400, 401, 403):
            raise AuthenticationError(message=message)
        raise AuthenticationError(
            message=message,
            hint="Check controller logs for more details.",
        )

    credentials = parse_credentials(
        response.headers.get_list("set-cookie"),
        csrf_header=response.headers.get("x-csrf-token"),
    )
    logger.info(
        "authentication_successful",
        has_session_token=credentials.token is not None,
        has_csrf_token=credentials.csrf_token is not None,
    )
    if credentials.token is not None:
        logger.debug("session_token_received", token_prefix=credentials.token[:6])
    return credentials


async def logout(http: httpx.AsyncClient, credentials: Optional[Credentials]) -> None:
    """Logout from the controller (best-effort).

    Errors are logged but not raised; the session expires on its own
    if logout fails.
    """
    if credentials is None:
        return
    try:
        response = await send(http, PendingRequest(method="POST", path=LOGOUT), credentials)
        logger.debug("logout_status", status_code=response.status_code)
    except Exception as e:
        logger.debug("logout_failed", error=str(e))
