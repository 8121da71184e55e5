"""
Dummy capture backend for testing without libpcap or privileges.

Two modes:
- scripted: each open_capture() hands out the next script, a list of
  events (frame bytes, None for a read timeout, or an exception to raise)
- synthetic: with no scripts, handles fabricate a mix of HTTP requests
  and non-HTTP frames at a steady rate
"""
import random
import threading
import time
from typing import Dict, Iterable, List, Optional, Sequence, Union

from models.packet import RawFrame

from .exceptions import CaptureError, InterfaceNotFound, InvalidFilter
from .frames import build_ethernet_frame, build_http_get, build_tcp_frame
from .icapture_backend import CaptureConfig, ICaptureBackend, ICaptureHandle
from .packet_decoder import ETH_TYPE_ARP

Event = Union[bytes, RawFrame, None, BaseException]


class DummyCaptureHandle(ICaptureHandle):

    def __init__(self, events: Optional[Iterable[Event]], interface: str, rate: float = 100.0):
        self._events = list(events) if events is not None else None
        self._lock = threading.Lock()
        self._rate = rate
        self._counter = 0
        self.interface = interface
        self.closed = False

    def next_frame(self, timeout: float) -> Optional[RawFrame]:
        if self.closed:
            raise CaptureError(f"Capture on {self.interface} is closed")
        if self._events is None:
            return self._synthetic_frame(timeout)

        with self._lock:
            event = self._events.pop(0) if self._events else None
        if event is None:
            # scripted (or exhausted) read timeout
            time.sleep(min(timeout, 0.01))
            return None
        if isinstance(event, BaseException):
            raise event
        if isinstance(event, RawFrame):
            return event
        return RawFrame(data=event, timestamp=time.time(), wirelen=len(event))

    def _synthetic_frame(self, timeout: float) -> RawFrame:
        time.sleep(min(timeout, 1.0 / self._rate))
        self._counter += 1
        kind = random.choice(("http", "http", "tcp", "arp"))
        if kind == "http":
            payload = build_http_get(path=f"/item/{self._counter}", host="example.com")
            data = build_tcp_frame(payload, src_port=40000 + self._counter % 20000)
        elif kind == "tcp":
            data = build_tcp_frame(b"", flags=0x10)
        else:
            data = build_ethernet_frame(ETH_TYPE_ARP)
        return RawFrame(data=data, timestamp=time.time(), wirelen=len(data))

    def close(self) -> None:
        self.closed = True


class DummyBackend(ICaptureBackend):
    """Backend that generates synthetic or scripted packets for testing."""

    def __init__(
        self,
        scripts: Optional[Sequence[Iterable[Event]]] = None,
        interfaces: Optional[List[str]] = None,
        open_errors: Optional[Sequence[Optional[BaseException]]] = None,
        bad_filters: Optional[Iterable[str]] = None,
    ):
        self._scripts = [list(s) for s in scripts] if scripts is not None else None
        self._interfaces = interfaces if interfaces is not None else ['dummy0', 'dummy1']
        self._open_errors = list(open_errors or [])
        self._bad_filters = set(bad_filters or [])
        self._lock = threading.RLock()
        self.open_count = 0
        self.handles: List[DummyCaptureHandle] = []

    def list_interfaces(self) -> List[Dict]:
        return [
            {
                'name': name,
                'description': f'Dummy Interface {name}',
                'ips': ['192.168.1.100'],
            }
            for name in self._interfaces
        ]

    def open_capture(self, config: CaptureConfig) -> DummyCaptureHandle:
        with self._lock:
            self.open_count += 1
            if config.interface not in self._interfaces:
                raise InterfaceNotFound(config.interface, list(self._interfaces))
            if config.filter in self._bad_filters:
                raise InvalidFilter(config.filter, "syntax error")
            if self._open_errors:
                error = self._open_errors.pop(0)
                if error is not None:
                    raise error

            if self._scripts is None:
                events = None
            elif self._scripts:
                events = self._scripts.pop(0)
            else:
                events = []
            handle = DummyCaptureHandle(events, config.interface)
            self.handles.append(handle)
            return handle
