"""Custom exceptions for UniFi controller operations.

All exceptions inherit from UnifiAPIError for consistent error handling.
Each exception includes helpful messages for non-expert users.
"""

from typing import Any, Optional


class UnifiAPIError(Exception):
    """Base exception for all UniFi API errors.

    Attributes:
        message: Human-readable error message.
        hint: Optional troubleshooting hint for non-experts.
        exit_code: Suggested exit code for CLI applications.
    """

    exit_code: int = 1

    def __init__(
        self,
        message: str,
        hint: Optional[str] = None,
        exit_code: Optional[int] = None,
    ) -> None:
        self.message = message
        self.hint = hint
        if exit_code is not None:
            self.exit_code = exit_code
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the exception message with optional hint."""
        if self.hint:
            return f"{self.message}\n\nHint: {self.hint}"
        return self.message


class AuthenticationError(UnifiAPIError):
    """The controller rejected the credentials, or the login call itself failed.

    This typically occurs when:
    - Using cloud/SSO credentials instead of local admin account
    - Incorrect username or password
    - The session is rejected again right after a fresh login
    """

    exit_code: int = 3

    def __init__(
        self,
        message: str = "Authentication failed",
        hint: Optional[str] = None,
    ) -> None:
        if hint is None:
            hint = (
                "Ensure you're using a LOCAL admin account, not cloud SSO. "
                "Create a local admin in UniFi OS Console > Admins & Users."
            )
        super().__init__(message=message, hint=hint, exit_code=3)


class NetworkError(UnifiAPIError):
    """Cannot reach the UniFi Controller.

    This typically occurs when:
    - Controller is not running
    - Incorrect hostname/IP address or port
    - Firewall blocking the connection
    """

    exit_code: int = 2

    def __init__(
        self,
        message: str = "Cannot connect to UniFi Controller",
        hint: Optional[str] = None,
    ) -> None:
        if hint is None:
            hint = (
                "Is the UniFi Controller running? Check network connectivity. "
                "Common ports are 443 (UDM), 8443 (self-hosted), 11443 (UniFi OS Server)."
            )
        super().__init__(message=message, hint=hint, exit_code=2)


class CertificateError(UnifiAPIError):
    """The controller presented a self-signed certificate and verification is on.

    Never retried: neither another attempt nor a fresh login can fix it.
    """

    exit_code: int = 4

    def __init__(
        self,
        message: str = "Self signed certificate",
        hint: Optional[str] = None,
    ) -> None:
        if hint is None:
            hint = (
                "The controller uses a self-signed certificate. Install a trusted "
                "certificate or set UNIFI_VERIFY_SSL=false."
            )
        super().__init__(message=message, hint=hint, exit_code=4)


class UpstreamError(UnifiAPIError):
    """The controller answered with a non-authentication HTTP error.

    Attributes:
        status_code: HTTP status returned by the controller.
        body: Decoded JSON body when possible, otherwise the raw text.
    """

    def __init__(
        self,
        status_code: int,
        body: Any = None,
        message: Optional[str] = None,
    ) -> None:
        self.status_code = status_code
        self.body = body
        if message is None:
            message = f"API error: {status_code}"
            detail = controller_message(body)
            if detail:
                message = f"{message} {detail}"
        hint = None
        if status_code == 404:
            hint = "Check the site name and UNIFI_API_PREFIX ('/proxy/network' on UniFi OS)."
        super().__init__(message=message, hint=hint)


class MalformedMessageError(UnifiAPIError):
    """A push-channel frame could not be decoded.

    Contained inside the listener: logged, never raised to subscribers.
    """

    def __init__(self, reason: str, frame: Any = None) -> None:
        self.reason = reason
        self.frame = frame
        super().__init__(message=f"Malformed push message: {reason}")


class InvalidFilterError(UnifiAPIError):
    """A query filter was rejected before any request was sent."""


def controller_message(body: Any) -> Optional[str]:
    """Extract meta.msg (e.g. 'api.err.Invalid') from a controller error body."""
    if isinstance(body, dict):
        meta = body.get("meta")
        if isinstance(meta, dict) and meta.get("msg"):
            return str(meta["msg"])
    return None
