"""
Request log data models.

A RequestLogEntry is written once as one JSON line and never mutated.
RequestStats is derived on demand from a full log scan.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Union

from .packet import HttpRequest

SOURCE_MONITORED = "monitored"
SOURCE_MANUAL = "manual"
SOURCE_REPLAY = "replay"
LOG_SOURCES = (SOURCE_MONITORED, SOURCE_MANUAL, SOURCE_REPLAY)

BODY_PREVIEW_LIMIT = 1000


def body_preview(body: Union[bytes, str, None]) -> str:
    """Text preview of a request body, at most BODY_PREVIEW_LIMIT characters."""
    if not body:
        return ""
    text = body.decode("utf-8", errors="replace") if isinstance(body, bytes) else body
    if len(text) > BODY_PREVIEW_LIMIT:
        return text[:BODY_PREVIEW_LIMIT - 3] + "..."
    return text


@dataclass(frozen=True)
class HttpResponseInfo:
    """Outcome of one executed HTTP request."""
    status: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: str = ""
    cookies: List[str] = field(default_factory=list)
    """Raw Set-Cookie values seen while executing the request."""
    response_time_ms: int = 0
    final_url: str = ""

    @property
    def is_success(self) -> bool:
        return 200 <= self.status < 300

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "HttpResponseInfo":
        _require_mapping(data, "response")
        return cls(
            status=int(data["status"]),
            headers=dict(data.get("headers") or {}),
            body=str(data.get("body", "")),
            cookies=list(data.get("cookies") or []),
            response_time_ms=int(data.get("response_time_ms", 0)),
            final_url=str(data.get("final_url", "")),
        )


@dataclass(frozen=True)
class HttpRequestInfo:
    """Request summary as stored in the log."""
    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body_preview: str = ""
    source_ip: str = ""
    source_port: int = 0

    @classmethod
    def from_request(cls, request: HttpRequest) -> "HttpRequestInfo":
        return cls(
            method=request.method,
            url=request.url,
            headers=dict(request.headers),
            body_preview=body_preview(request.body),
            source_ip=request.source_ip,
            source_port=request.source_port,
        )

    def to_request(self) -> HttpRequest:
        """Rebuild an HttpRequest (body is the stored preview)."""
        return HttpRequest(
            method=self.method,
            url=self.url,
            headers=self.headers,
            body=self.body_preview.encode("utf-8"),
            source_ip=self.source_ip,
            source_port=self.source_port,
        )

    def contains(self, needle: str) -> bool:
        """Case-insensitive match against URL, method, body preview or a header value."""
        needle = needle.lower()
        if needle in self.url.lower() or needle in self.method.lower():
            return True
        if needle in self.body_preview.lower():
            return True
        return any(needle in value.lower() for value in self.headers.values())

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "HttpRequestInfo":
        _require_mapping(data, "request")
        headers = data.get("headers") or {}
        _require_mapping(headers, "headers")
        return cls(
            method=str(data["method"]),
            url=str(data["url"]),
            headers={str(k): str(v) for k, v in headers.items()},
            body_preview=str(data.get("body_preview", "")),
            source_ip=str(data.get("source_ip", "")),
            source_port=int(data.get("source_port", 0)),
        )


@dataclass(frozen=True)
class RequestLogEntry:
    timestamp: datetime
    request: HttpRequestInfo
    response: Optional[HttpResponseInfo] = None
    source: str = SOURCE_MANUAL

    @classmethod
    def now(cls, request: HttpRequestInfo, response: Optional[HttpResponseInfo],
            source: str) -> "RequestLogEntry":
        return cls(
            timestamp=datetime.now(timezone.utc),
            request=request,
            response=response,
            source=source,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "request": self.request.to_dict(),
            "response": self.response.to_dict() if self.response else None,
            "source": self.source,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RequestLogEntry":
        _require_mapping(data, "log entry")
        response = data.get("response")
        return cls(
            timestamp=_parse_timestamp(data["timestamp"]),
            request=HttpRequestInfo.from_dict(data["request"]),
            response=HttpResponseInfo.from_dict(response) if response else None,
            source=str(data.get("source", "")),
        )


@dataclass
class RequestStats:
    """Aggregate counters over the whole request log."""
    total_requests: int = 0
    monitored_requests: int = 0
    manual_requests: int = 0
    replay_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    methods: Dict[str, int] = field(default_factory=dict)
    total_response_time: int = 0
    responded_requests: int = 0
    average_response_time: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _require_mapping(value: Any, what: str) -> None:
    if not isinstance(value, Mapping):
        raise ValueError(f"{what} must be an object, got {type(value).__name__}")


def _parse_timestamp(value: str) -> datetime:
    if not isinstance(value, str):
        raise ValueError(f"timestamp must be a string, got {type(value).__name__}")
    # fromisoformat on older interpreters rejects a trailing "Z"
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)
