"""
Live packet monitor.

Drives one capture handle on a dedicated thread, decodes frames into TCP
segments and forwards them over a Channel. Packets are never blocked
on: when forwarding would exceed the memory budget the segment is
dropped.
"""
import logging
import queue
import threading
import time
from typing import Any, Dict, Iterator, Optional

from models.packet import CapturedSegment, HttpRequest

from .channel import Channel, ChannelClosed
from .exceptions import CaptureError, CapturePermissionDenied, InterfaceNotFound
from .http_parser import contains_http_method, parse_http_request
from .icapture_backend import CaptureConfig, ICaptureBackend, ICaptureHandle
from .packet_decoder import decode_frame

logger = logging.getLogger(__name__)

DEFAULT_MAX_MEMORY = 100 * 1024 * 1024
MAX_RETRIES = 3
RETRY_BACKOFF = 0.5
POLL_TIMEOUT = 0.1
STATS_INTERVAL = 5.0
IDLE_HINT_INTERVAL = 30.0


class PacketMonitor:
    """
    Capture loop with retry/backoff and a memory budget.

    Usage:
        monitor = PacketMonitor(backend, "eth0", "tcp port 80")
        monitor.start()
        for request in monitor.requests():
            ...
        monitor.shutdown()
    """

    def __init__(
        self,
        backend: ICaptureBackend,
        interface: str,
        bpf_filter: str,
        channel: Optional[Channel] = None,
        max_memory_usage: int = DEFAULT_MAX_MEMORY,
        poll_timeout: float = POLL_TIMEOUT,
        max_retries: int = MAX_RETRIES,
        retry_backoff: float = RETRY_BACKOFF,
    ):
        self.backend = backend
        self.interface = interface
        self.filter = bpf_filter
        self.channel = channel if channel is not None else Channel()
        self.max_memory_usage = max_memory_usage
        self.poll_timeout = poll_timeout
        self.max_retries = max_retries
        self.retry_backoff = retry_backoff

        self._shutdown = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._error: Optional[CaptureError] = None
        self._stats_lock = threading.Lock()
        self._stats: Dict[str, Any] = {
            'packets_total': 0,
            'segments_forwarded': 0,
            'bytes_forwarded': 0,
            'http_candidates': 0,
            'decode_skipped': 0,
            'drops_memory': 0,
            'capture_errors': 0,
            'retries': 0,
        }

    # ---- lifecycle ----

    def start(self) -> threading.Thread:
        """
        Validate the interface, open the capture and start the loop thread.

        Raises InterfaceNotFound, CapturePermissionDenied or InvalidFilter
        synchronously so the caller can print remediation.
        """
        if self._thread is not None:
            raise RuntimeError("monitor already started")

        available = self.backend.interface_names()
        if self.interface not in available:
            raise InterfaceNotFound(self.interface, available)

        handle = self.backend.open_capture(self._capture_config())
        logger.info("Starting packet monitor on interface %s with filter '%s'",
                    self.interface, self.filter)

        self._shutdown.clear()
        self._thread = threading.Thread(
            target=self._run_loop,
            args=(handle,),
            name=f"capture-{self.interface}",
            daemon=True,
        )
        self._thread.start()
        return self._thread

    def shutdown(self) -> None:
        """Ask the loop to stop; observed within one poll interval."""
        if not self._shutdown.is_set():
            logger.info("Shutdown requested for packet monitor on %s", self.interface)
        self._shutdown.set()

    def release_sender(self) -> None:
        """Close the forwarding channel (end-of-stream for consumers)."""
        if self.channel.close():
            logger.info("Released packet channel for %s", self.interface)

    def join(self, timeout: Optional[float] = None) -> None:
        """
        Wait for the loop thread to finish.

        Re-raises the CaptureError that ended the loop when retries were
        exhausted.
        """
        if self._thread is not None:
            self._thread.join(timeout)
        if self._error is not None:
            raise self._error

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def error(self) -> Optional[CaptureError]:
        return self._error

    def get_stats(self) -> Dict[str, Any]:
        with self._stats_lock:
            stats = self._stats.copy()
        stats['pending_bytes'] = self.channel.pending_bytes
        return stats

    # ---- consumers ----

    def segments(self, timeout: Optional[float] = None) -> Iterator[CapturedSegment]:
        """Yield forwarded segments until the channel is closed."""
        while True:
            try:
                yield self.channel.get(timeout=timeout)
            except queue.Empty:
                if self._shutdown.is_set() and not self.running:
                    return
                continue
            except ChannelClosed:
                return

    def requests(self, timeout: Optional[float] = POLL_TIMEOUT) -> Iterator[HttpRequest]:
        """Yield HTTP requests reconstructed from forwarded segments."""
        for segment in self.segments(timeout=timeout):
            request = parse_http_request(segment)
            if request is not None:
                yield request

    # ---- internals ----

    def _capture_config(self) -> CaptureConfig:
        return CaptureConfig(
            interface=self.interface,
            filter=self.filter,
            timeout_ms=int(self.poll_timeout * 1000),
        )

    def _bump(self, key: str, amount: int = 1) -> None:
        with self._stats_lock:
            self._stats[key] += amount

    def _run_loop(self, handle: Optional[ICaptureHandle]) -> None:
        logger.info("Packet monitor loop started on interface %s", self.interface)
        retries = 0
        window_packets = 0
        window_http = 0
        stats_timer = time.monotonic()
        last_packet = time.monotonic()

        try:
            while not self._shutdown.is_set():
                now = time.monotonic()
                if now - stats_timer >= STATS_INTERVAL:
                    if window_packets:
                        logger.info("Captured %d packets (%d HTTP candidates)",
                                    window_packets, window_http)
                    window_packets = window_http = 0
                    stats_timer = now
                if now - last_packet > IDLE_HINT_INTERVAL:
                    logger.info("No packets received in the last %ds. Make sure the filter '%s' is correct.",
                                int(IDLE_HINT_INTERVAL), self.filter)
                    last_packet = now

                if handle is None:
                    try:
                        handle = self.backend.open_capture(self._capture_config())
                        logger.info("Successfully reinitialized capture on %s", self.interface)
                    except CaptureError as exc:
                        logger.error("Failed to reinitialize capture: %s", exc)
                        retries += 1
                        if not self._may_retry(retries, exc):
                            break
                        continue

                try:
                    frame = handle.next_frame(self.poll_timeout)
                except CaptureError as exc:
                    logger.error("Error capturing packet on %s: %s", self.interface, exc)
                    self._bump('capture_errors')
                    handle.close()
                    handle = None
                    retries += 1
                    if not self._may_retry(retries, exc):
                        break
                    continue

                if frame is None:
                    continue

                retries = 0
                last_packet = time.monotonic()
                window_packets += 1
                self._bump('packets_total')

                segment = decode_frame(frame)
                if segment is None:
                    self._bump('decode_skipped')
                    continue

                if segment.dst_port in (80, 443) or contains_http_method(segment.payload):
                    window_http += 1
                    self._bump('http_candidates')

                if not self._forward(segment):
                    break
        finally:
            if handle is not None:
                handle.close()
            self.release_sender()
            stats = self.get_stats()
            logger.info("Packet monitor loop ended, %d packets total, %d retries",
                        stats['packets_total'], stats['retries'])

    def _may_retry(self, retries: int, exc: CaptureError) -> bool:
        if isinstance(exc, CapturePermissionDenied) or retries > self.max_retries:
            logger.error("Maximum retries reached, stopping packet monitor")
            self._error = exc
            return False
        self._bump('retries')
        logger.warning("Retrying capture operation (%d/%d)", retries, self.max_retries)
        self._shutdown.wait(self.retry_backoff)
        return True

    def _forward(self, segment: CapturedSegment) -> bool:
        """Send one segment; False when the channel is gone."""
        size = segment.size
        if self.channel.pending_bytes + size > self.max_memory_usage:
            self._bump('drops_memory')
            logger.warning("Memory limit reached (%d bytes), dropping packet from %s",
                           self.max_memory_usage, segment.flow_label)
            return True
        try:
            self.channel.put(segment, size)
        except ChannelClosed:
            logger.info("Packet channel closed, stopping capture on %s", self.interface)
            return False
        with self._stats_lock:
            self._stats['segments_forwarded'] += 1
            self._stats['bytes_forwarded'] += size
        return True
