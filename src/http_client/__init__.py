"""
HTTP client with cookie-jar integration.
"""

from .client import HttpClient, OutgoingRequest, normalize_method
from .exceptions import (
    ConnectionFailed,
    HttpClientError,
    InvalidUrl,
    RequestTimeout,
    TlsError,
)

__all__ = [
    'HttpClient',
    'OutgoingRequest',
    'normalize_method',
    'HttpClientError',
    'RequestTimeout',
    'InvalidUrl',
    'ConnectionFailed',
    'TlsError',
]
