"""
riddler data models.
"""

from .packet import RawFrame, CapturedSegment, HttpRequest
from .cookie import CookieEntry
from .log_entry import (
    HttpRequestInfo,
    HttpResponseInfo,
    RequestLogEntry,
    RequestStats,
    SOURCE_MANUAL,
    SOURCE_MONITORED,
    SOURCE_REPLAY,
)

__all__ = [
    'RawFrame',
    'CapturedSegment',
    'HttpRequest',
    'CookieEntry',
    'HttpRequestInfo',
    'HttpResponseInfo',
    'RequestLogEntry',
    'RequestStats',
    'SOURCE_MANUAL',
    'SOURCE_MONITORED',
    'SOURCE_REPLAY',
]
