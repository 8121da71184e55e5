"""
Append-only JSON-lines request log.

One RequestLogEntry per line. Lines are only ever appended, so a reader
can tolerate a torn or corrupt line by skipping it.
"""
import json
import logging
import threading
from collections import deque
from pathlib import Path
from typing import Iterator, List, Optional, Union

from models.log_entry import (
    SOURCE_MANUAL,
    SOURCE_MONITORED,
    SOURCE_REPLAY,
    HttpRequestInfo,
    HttpResponseInfo,
    RequestLogEntry,
    RequestStats,
)
from models.packet import HttpRequest

logger = logging.getLogger(__name__)


class RequestLogger:
    """
    Writer and reader over one log file.

    Appends go through a single handle guarded by a lock; reads open the
    file separately so they never disturb the writer position.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        if str(self.path.parent):
            self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._handle = open(self.path, "a", encoding="utf-8")

    def __enter__(self) -> "RequestLogger":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self) -> None:
        with self._lock:
            if not self._handle.closed:
                self._handle.close()

    # ---- writing ----

    def append(self, entry: RequestLogEntry) -> None:
        """Write one line and flush it. I/O errors propagate."""
        line = json.dumps(entry.to_dict(), separators=(",", ":"))
        with self._lock:
            self._handle.write(line + "\n")
            self._handle.flush()

    def log_request(self, request: HttpRequest, source: str = SOURCE_MONITORED) -> RequestLogEntry:
        return self.log_request_response(request, None, source)

    def log_request_response(self, request: HttpRequest, response: Optional[HttpResponseInfo],
                             source: str) -> RequestLogEntry:
        entry = RequestLogEntry.now(HttpRequestInfo.from_request(request), response, source)
        self.append(entry)
        return entry

    def log_manual(self, request: HttpRequest, response: Optional[HttpResponseInfo]) -> RequestLogEntry:
        request = _with_source(request, SOURCE_MANUAL)
        return self.log_request_response(request, response, SOURCE_MANUAL)

    def log_replay(self, request: HttpRequest, response: Optional[HttpResponseInfo]) -> RequestLogEntry:
        request = _with_source(request, SOURCE_REPLAY)
        return self.log_request_response(request, response, SOURCE_REPLAY)

    # ---- reading ----

    def entries(self) -> Iterator[RequestLogEntry]:
        """Every parseable entry, oldest first."""
        for number, line in self._lines():
            entry = self._parse_line(number, line)
            if entry is not None:
                yield entry

    def recent(self, limit: int) -> List[RequestLogEntry]:
        if limit <= 0:
            return []
        return list(deque(self.entries(), maxlen=limit))

    def search(self, query: str, limit: int) -> List[RequestLogEntry]:
        """Newest `limit` entries whose request contains `query`, in chronological order."""
        if limit <= 0:
            return []
        lines = list(self._lines())
        matches: List[RequestLogEntry] = []
        for number, line in reversed(lines):
            entry = self._parse_line(number, line)
            if entry is not None and entry.request.contains(query):
                matches.append(entry)
                if len(matches) >= limit:
                    break
        matches.reverse()
        return matches

    def stats(self) -> RequestStats:
        stats = RequestStats()
        for entry in self.entries():
            stats.total_requests += 1
            if entry.source == SOURCE_MONITORED:
                stats.monitored_requests += 1
            elif entry.source == SOURCE_MANUAL:
                stats.manual_requests += 1
            elif entry.source == SOURCE_REPLAY:
                stats.replay_requests += 1

            method = entry.request.method
            stats.methods[method] = stats.methods.get(method, 0) + 1

            response = entry.response
            if response is None:
                continue
            if 200 <= response.status < 300:
                stats.successful_requests += 1
            elif response.status >= 400:
                stats.failed_requests += 1
            stats.total_response_time += response.response_time_ms
            stats.responded_requests += 1

        if stats.responded_requests:
            stats.average_response_time = stats.total_response_time / stats.responded_requests
        return stats

    # ---- internals ----

    def _lines(self) -> Iterator:
        try:
            with open(self.path, "r", encoding="utf-8", errors="replace") as handle:
                for number, line in enumerate(handle, 1):
                    line = line.strip()
                    if line:
                        yield number, line
        except FileNotFoundError:
            return

    def _parse_line(self, number: int, line: str) -> Optional[RequestLogEntry]:
        try:
            return RequestLogEntry.from_dict(json.loads(line))
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            logger.warning("Skipping unreadable log line %d in %s: %s", number, self.path, exc)
            return None


def _with_source(request: HttpRequest, label: str) -> HttpRequest:
    return HttpRequest(
        method=request.method,
        url=request.url,
        headers=request.headers,
        body=request.body,
        source_ip=label,
        source_port=0,
    )
