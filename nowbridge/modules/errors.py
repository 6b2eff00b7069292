"""
Error taxonomy shared by the auth and client modules.

Every failure surfaced by the transport carries one of the ErrorCode values.
"""

from enum import Enum
from typing import Optional

import httpx


class ErrorCode(str, Enum):
    """Machine-readable failure codes."""

    AUTH_ERROR = "AUTH_ERROR"
    AUTH_EXPIRED = "AUTH_EXPIRED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    ENDPOINT_NOT_FOUND = "ENDPOINT_NOT_FOUND"
    API_ERROR = "API_ERROR"
    TIMEOUT = "TIMEOUT"
    NETWORK_ERROR = "NETWORK_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class ServiceNowError(Exception):
    """Typed failure raised by the transport client."""

    def __init__(self, code: ErrorCode, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.detail = detail

    def to_dict(self) -> dict:
        return {"code": self.code.value, "message": self.message, "detail": self.detail}

    def __repr__(self) -> str:
        return f"ServiceNowError(code={self.code.value!r}, message={self.message!r})"


class NetworkCondition(str, Enum):
    """Connection-level failure kinds worth naming to a user."""

    HOST_NOT_FOUND = "host_not_found"
    CONNECTION_REFUSED = "connection_refused"
    TIMEOUT = "timeout"
    OTHER = "other"


_DNS_MARKERS = (
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo failed",
    "temporary failure in name resolution",
    "no address associated",
    "name resolution",
)


def classify_network_error(exc: Exception) -> NetworkCondition:
    """Map an httpx transport exception to a named network condition."""
    if isinstance(exc, httpx.TimeoutException):
        return NetworkCondition.TIMEOUT

    text = str(exc).lower()
    if isinstance(exc, httpx.ConnectError):
        if "refused" in text:
            return NetworkCondition.CONNECTION_REFUSED
        if any(marker in text for marker in _DNS_MARKERS):
            return NetworkCondition.HOST_NOT_FOUND

    return NetworkCondition.OTHER


def response_text(response: httpx.Response) -> str:
    """Best-effort body text for error messages."""
    try:
        return response.text
    except (UnicodeDecodeError, httpx.ResponseNotRead):
        return "<unreadable body>"
