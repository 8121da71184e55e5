"""
Synchronous HTTP client with cookie-jar integration.

Cookies come from and go back to a CookieStore; httpx's own jar is
emptied after every request so the store stays the single source.
"""
import codecs
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Union

import httpx

from cookies.store import CookieStore
from models.log_entry import HttpResponseInfo
from models.packet import HttpRequest

from .exceptions import ConnectionFailed, InvalidUrl, RequestTimeout, TlsError

logger = logging.getLogger(__name__)

KNOWN_METHODS = ("GET", "POST", "PUT", "DELETE", "HEAD", "OPTIONS", "PATCH", "CONNECT", "TRACE")
MAX_REDIRECTS = 10
MIN_TIMEOUT = 5.0
BODY_READ_TIMEOUT = 30.0
REPLAY_TIMEOUT = 30.0

# recomputed by the transport for the body actually sent
_STRIPPED_HEADERS = ("content-length", "transfer-encoding")


@dataclass
class OutgoingRequest:
    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[Union[bytes, str]] = None
    timeout_seconds: float = 30.0
    follow_redirects: bool = True


def normalize_method(method: str) -> str:
    """Upper-case `method`; anything unrecognized becomes GET."""
    token = (method or "").strip().upper()
    return token if token in KNOWN_METHODS else "GET"


class HttpClient:
    """
    Executes one request at a time through a shared httpx.Client.

    TLS certificates are always verified and redirects are capped at
    MAX_REDIRECTS.
    """

    def __init__(self, cookie_store: CookieStore, transport: Optional[httpx.BaseTransport] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.cookie_store = cookie_store
        self._clock = clock
        self._client = httpx.Client(
            verify=True,
            max_redirects=MAX_REDIRECTS,
            transport=transport,
        )

    def __enter__(self) -> "HttpClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self) -> None:
        self._client.close()

    def send(self, request: OutgoingRequest) -> HttpResponseInfo:
        """
        Execute `request` and return its outcome.

        Raises RequestTimeout, InvalidUrl, ConnectionFailed or TlsError.
        """
        method = normalize_method(request.method)
        url = self._validate_url(request.url)
        headers = self._build_headers(request.headers, str(url))
        content = request.body.encode("utf-8") if isinstance(request.body, str) else request.body
        timeout = max(float(request.timeout_seconds), MIN_TIMEOUT)

        logger.debug("%s %s (timeout %.1fs)", method, url, timeout)
        start = self._clock()
        try:
            with self._client.stream(
                method,
                url,
                headers=headers,
                content=content or None,
                timeout=timeout,
                follow_redirects=request.follow_redirects,
            ) as response:
                # httpx bounds each phase; the whole exchange up to the final head shares one deadline
                if self._clock() - start > timeout:
                    raise RequestTimeout(f"Request to {url} timed out after {timeout:.0f}s")
                body = self._read_body(response)
                set_cookies = self._ingest_cookies(response)
        except httpx.TimeoutException as exc:
            raise RequestTimeout(f"Request to {url} timed out after {timeout:.0f}s") from exc
        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as exc:
            raise InvalidUrl(request.url, str(exc)) from exc
        except httpx.TooManyRedirects as exc:
            raise ConnectionFailed(f"Too many redirects (limit {MAX_REDIRECTS}) for {url}") from exc
        except httpx.ConnectError as exc:
            if _looks_like_tls_failure(exc):
                raise TlsError(f"TLS failure for {url}: {exc}") from exc
            raise ConnectionFailed(f"Could not connect to {url}: {exc}") from exc
        except httpx.TransportError as exc:
            raise ConnectionFailed(f"Request to {url} failed: {exc}") from exc
        finally:
            self._client.cookies.clear()

        elapsed_ms = int((self._clock() - start) * 1000)
        return HttpResponseInfo(
            status=response.status_code,
            headers=dict(response.headers),
            body=_decode_body(body, response.charset_encoding),
            cookies=set_cookies,
            response_time_ms=elapsed_ms,
            final_url=str(response.url),
        )

    def replay(self, captured: HttpRequest) -> HttpResponseInfo:
        """Re-issue a reconstructed request with the default replay policy."""
        return self.send(OutgoingRequest(
            method=captured.method,
            url=captured.url,
            headers=dict(captured.headers),
            body=captured.body or None,
            timeout_seconds=REPLAY_TIMEOUT,
            follow_redirects=True,
        ))

    # ---- helpers ----

    @staticmethod
    def _validate_url(raw: str) -> httpx.URL:
        try:
            url = httpx.URL(raw)
        except (httpx.InvalidURL, TypeError) as exc:
            raise InvalidUrl(raw, str(exc)) from exc
        if url.scheme not in ("http", "https"):
            raise InvalidUrl(raw, "scheme must be http or https")
        if not url.host:
            raise InvalidUrl(raw, "missing host")
        return url

    def _build_headers(self, caller: Dict[str, str], url: str) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        caller_cookie = ""
        for name, value in caller.items():
            lowered = name.lower()
            if lowered in _STRIPPED_HEADERS:
                continue
            if lowered == "cookie":
                caller_cookie = value.strip()
                continue
            headers[name] = value

        parts = [caller_cookie] if caller_cookie else []
        parts.extend(self.cookie_store.cookies_for(url))
        if parts:
            headers["Cookie"] = "; ".join(parts)
        return headers

    def _read_body(self, response: httpx.Response) -> bytes:
        deadline = self._clock() + BODY_READ_TIMEOUT
        chunks = []
        for chunk in response.iter_bytes():
            chunks.append(chunk)
            if self._clock() > deadline:
                raise RequestTimeout(
                    f"Reading the body of {response.url} took longer than {BODY_READ_TIMEOUT:.0f}s"
                )
        return b"".join(chunks)

    def _ingest_cookies(self, response: httpx.Response) -> List[str]:
        """Store Set-Cookie headers from every hop, each against the URL that sent it."""
        seen: List[str] = []
        for hop in list(response.history) + [response]:
            for raw in hop.headers.get_list("set-cookie"):
                seen.append(raw)
                self.cookie_store.add_from_set_cookie(str(hop.url), raw)
        return seen


def _decode_body(body: bytes, charset: Optional[str]) -> str:
    """Decode with the declared charset, or UTF-8 when it is missing or unknown."""
    encoding = "utf-8"
    if charset:
        try:
            encoding = codecs.lookup(charset).name
        except LookupError:
            logger.debug("Unknown response charset %r, decoding as utf-8", charset)
    return body.decode(encoding, errors="replace")


def _looks_like_tls_failure(exc: httpx.ConnectError) -> bool:
    text = str(exc).lower()
    return "ssl" in text or "certificate" in text or "tls" in text
