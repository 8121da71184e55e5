"""
HTTP request reconstruction from a single captured TCP payload.

No reassembly is attempted: a request is recognized only when its
request line and headers sit in one segment. Non-HTTP or malformed
traffic is routine, so every failure path returns None instead of
raising.
"""
import logging
from typing import Dict, List, Optional, Tuple

from models.packet import CapturedSegment, HttpRequest

logger = logging.getLogger(__name__)

HTTP_METHODS = (
    "GET", "POST", "PUT", "DELETE", "HEAD",
    "OPTIONS", "PATCH", "CONNECT", "TRACE",
)
_METHOD_TOKENS = tuple((m + " ").encode("ascii") for m in HTTP_METHODS)

MIN_PAYLOAD_LEN = 16
SMALL_PAYLOAD_LEN = 64
HTTPS_PORT = 443


def contains_http_method(data: bytes) -> bool:
    """
    True if `data` starts with a method token, or, for small payloads
    (<= 64 bytes), contains one anywhere.
    """
    if len(data) < 4:
        return False
    for token in _METHOD_TOKENS:
        if data.startswith(token):
            return True
    if len(data) <= SMALL_PAYLOAD_LEN:
        return any(token in data for token in _METHOD_TOKENS)
    return False


def parse_http_request(segment: CapturedSegment) -> Optional[HttpRequest]:
    """Rebuild the request carried by `segment`; the body is left empty."""
    return _parse_segment(segment, with_body=False)


def parse_http_request_with_body(segment: CapturedSegment) -> Optional[HttpRequest]:
    """Like parse_http_request, but keep everything after the header block as body."""
    return _parse_segment(segment, with_body=True)


def _parse_segment(segment: CapturedSegment, with_body: bool) -> Optional[HttpRequest]:
    payload = segment.payload
    if len(payload) < MIN_PAYLOAD_LEN:
        logger.debug("Payload too small for HTTP: %d bytes", len(payload))
        return None
    if not contains_http_method(payload):
        return None

    text = payload.decode("utf-8", errors="replace")
    parsed = parse_request_head(text, dst_port=segment.dst_port, fallback_host=_host_of(segment))
    if parsed is None:
        logger.debug("No request line in candidate payload from %s", segment.flow_label)
        return None
    method, url, headers = parsed

    body = _slice_body(payload, headers) if with_body else b""
    request = HttpRequest(
        method=method,
        url=url,
        headers=headers,
        body=body,
        source_ip=segment.src_ip,
        source_port=segment.src_port,
    )
    logger.debug("Parsed HTTP request: %s %s", request.method, request.url)
    return request


def parse_request_head(
    text: str,
    dst_port: Optional[int] = None,
    fallback_host: str = "",
) -> Optional[Tuple[str, str, Dict[str, str]]]:
    """
    Parse request line and headers out of `text`.

    Returns (method, absolute_url, headers) or None when no request line
    is found.
    """
    lines = text.splitlines()
    request_index, parts = _find_request_line(lines)
    if parts is None:
        return None

    method, path, version = parts[0], parts[1], parts[2]
    if not version.startswith("HTTP/"):
        logger.debug("Unexpected HTTP version token: %s", version)

    headers = _parse_headers(lines[request_index + 1:])
    url = _absolute_url(path, headers, dst_port, fallback_host)
    return method, url, headers


def _find_request_line(lines: List[str]) -> Tuple[int, Optional[List[str]]]:
    for index, line in enumerate(lines):
        if len(line.strip()) < 5:
            continue
        parts = line.split()
        if len(parts) >= 3 and parts[0] in HTTP_METHODS:
            return index, parts
    return -1, None


def _parse_headers(lines: List[str]) -> Dict[str, str]:
    headers: Dict[str, str] = {}
    last_name: Optional[str] = None
    for raw in lines:
        if not raw.strip():
            break
        if raw[0] in (" ", "\t"):
            # obsolete line folding
            if last_name is not None:
                headers[last_name] = f"{headers[last_name]} {raw.strip()}"
            continue
        name, sep, value = raw.partition(":")
        name = name.strip().lower()
        if not sep or not name:
            continue
        headers[name] = value.strip()
        last_name = name
    return headers


def _absolute_url(path: str, headers: Dict[str, str], dst_port: Optional[int], fallback_host: str) -> str:
    if path.startswith(("http://", "https://")):
        return path

    forwarded = headers.get("x-forwarded-proto", "").strip().lower()
    scheme = "https" if forwarded == "https" or dst_port == HTTPS_PORT else "http"

    if path.startswith("//"):
        return f"{scheme}:{path}"
    host = headers.get("host") or fallback_host
    return f"{scheme}://{host}{path}"


def _host_of(segment: CapturedSegment) -> str:
    if segment.dst_port in (80, HTTPS_PORT):
        return segment.dst_ip
    return f"{segment.dst_ip}:{segment.dst_port}"


def _slice_body(payload: bytes, headers: Dict[str, str]) -> bytes:
    for separator in (b"\r\n\r\n", b"\n\n"):
        index = payload.find(separator)
        if index != -1:
            body = payload[index + len(separator):]
            break
    else:
        return b""

    length = headers.get("content-length", "")
    if length.isdigit():
        body = body[:int(length)]
    return body
