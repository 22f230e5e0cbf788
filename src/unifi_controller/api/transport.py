"""Single HTTP round-trip with transport-error classification.

Every call to the controller, login included, goes through ``send``. It
attaches credential headers when given and turns httpx transport failures into
this package's exceptions. Status codes are left to the caller.
"""

from __future__ import annotations

import ssl
from http.cookiejar import CookieJar, DefaultCookiePolicy
from typing import Optional

import httpx
import structlog

from .exceptions import CertificateError, NetworkError
from .session import Credentials, PendingRequest

logger = structlog.get_logger(__name__)

# OpenSSL X509_V_ERR_DEPTH_ZERO_SELF_SIGNED_CERT / X509_V_ERR_SELF_SIGNED_CERT_IN_CHAIN
SELF_SIGNED_VERIFY_CODES = frozenset({18, 19})

BASE_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}


def session_free_cookie_jar() -> CookieJar:
    """Cookie jar that never stores anything.

    Credentials live in SessionState and are attached explicitly, so the
    login request never carries a stale session cookie.
    """
    return CookieJar(policy=DefaultCookiePolicy(allowed_domains=[]))


def is_self_signed_error(error: BaseException) -> bool:
    """Check whether a transport error was caused by a self-signed certificate.

    Walks the exception chain, since httpx wraps the ssl error raised by the
    underlying connection.
    """
    seen: set[int] = set()
    current: Optional[BaseException] = error
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, ssl.SSLCertVerificationError):
            if getattr(current, "verify_code", None) in SELF_SIGNED_VERIFY_CODES:
                return True
        text = str(current).lower()
        if "self signed certificate" in text or "self-signed certificate" in text:
            return True
        current = current.__cause__ or current.__context__
    return False


async def send(
    http: httpx.AsyncClient,
    request: PendingRequest,
    credentials: Optional[Credentials] = None,
) -> httpx.Response:
    """Send one request, without any retry or re-authentication.

    Args:
        http: Client whose base_url already points at the controller's /api.
        request: What to send. The body is JSON-encoded unless it is a str.
        credentials: Attached as Cookie / X-CSRF-Token headers when given.

    Returns:
        The response, whatever its status code.

    Raises:
        CertificateError: Self-signed certificate rejected.
        NetworkError: Any other transport failure.
    """
    headers = dict(BASE_HEADERS)
    if credentials is not None:
        headers.update(credentials.headers())

    kwargs: dict = {"headers": headers}
    if request.params:
        kwargs["params"] = request.params
    if isinstance(request.body, (str, bytes)):
        kwargs["content"] = request.body
    elif request.body is not None:
        kwargs["json"] = request.body

    logger.debug("api_request", method=request.method, path=request.path)

    try:
        response = await http.request(request.method, request.path, **kwargs)
    except httpx.TransportError as e:
        if is_self_signed_error(e):
            logger.error("self_signed_certificate", path=request.path)
            raise CertificateError() from e
        raise NetworkError(message=f"Request failed: {e}") from e

    logger.debug(
        "api_response",
        method=request.method,
        path=request.path,
        status_code=response.status_code,
    )
    return response


def response_body(response: httpx.Response) -> object:
    """Decode a response body as JSON, falling back to its text."""
    try:
        return response.json()
    except ValueError:
        return response.text
