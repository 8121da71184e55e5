"""Replay of logged requests through the HTTP client."""
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from http_client.client import HttpClient
from http_client.exceptions import HttpClientError
from models.log_entry import RequestLogEntry
from request_log.logger import RequestLogger

logger = logging.getLogger(__name__)


@dataclass
class ReplayAttempt:
    url: str
    method: str
    iteration: int
    entry: RequestLogEntry
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass
class ReplaySummary:
    attempts: List[ReplayAttempt] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for attempt in self.attempts if attempt.succeeded)

    @property
    def failed(self) -> int:
        return len(self.attempts) - self.succeeded


class ReplayEngine:
    """
    Re-issues logged requests sequentially.

    Every attempt is logged with the `replay` source, including failed
    ones (with no response). A failure never stops the batch.
    """

    def __init__(self, http_client: HttpClient, request_logger: RequestLogger,
                 sleep: Callable[[float], None] = time.sleep):
        self.http_client = http_client
        self.request_logger = request_logger
        self._sleep = sleep

    def select(self, limit: int, source: Optional[str] = None) -> List[RequestLogEntry]:
        """Last `limit` log entries, optionally only those with the given source."""
        if source is None:
            return self.request_logger.recent(limit)
        matching = [entry for entry in self.request_logger.entries() if entry.source == source]
        return matching[-limit:] if limit > 0 else []

    def replay_entries(self, entries: Sequence[RequestLogEntry], count: int = 1,
                       delay_ms: int = 1000) -> ReplaySummary:
        """
        Replay each entry `count` times.

        Waits `delay_ms` between repeats of one request and twice that
        between different requests.
        """
        summary = ReplaySummary()
        delay = max(delay_ms, 0) / 1000.0

        for index, original in enumerate(entries):
            request = original.request.to_request()
            for iteration in range(1, count + 1):
                logger.info("Replaying %s %s (%d/%d)", request.method, request.url, iteration, count)
                try:
                    response = self.http_client.replay(request)
                except HttpClientError as exc:
                    logger.warning("Replay of %s failed: %s", request.url, exc)
                    logged = self.request_logger.log_replay(request, None)
                    summary.attempts.append(ReplayAttempt(
                        request.url, request.method, iteration, logged, error=str(exc)))
                else:
                    logged = self.request_logger.log_replay(request, response)
                    summary.attempts.append(ReplayAttempt(
                        request.url, request.method, iteration, logged))

                if iteration < count and delay:
                    self._sleep(delay)

            if index < len(entries) - 1 and delay:
                self._sleep(delay * 2)

        return summary
