"""
HTTP client errors.

None of these are retried by the client; the caller decides.
"""

from models.errors import InvalidInputError, OperationTimeout, TransportError


class HttpClientError(Exception):
    """Base class for failures of a single request."""


class RequestTimeout(HttpClientError, OperationTimeout):
    """The request or the body read ran past its deadline."""


class InvalidUrl(HttpClientError, InvalidInputError):
    """The target URL could not be parsed or uses an unsupported scheme."""

    def __init__(self, url: str, reason: str = ""):
        self.url = url
        self.reason = reason
        message = f"Invalid URL '{url}'"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class ConnectionFailed(HttpClientError, TransportError):
    """The connection could not be established or broke mid-request."""


class TlsError(HttpClientError, TransportError):
    """TLS handshake or certificate verification failed."""
