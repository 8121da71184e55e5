# Packet data model
"""
Packet data models for riddler.

THESE MODELS ARE IMMUTABLE. Once created, frame, segment and request
objects are never modified; every transformation builds a new object.
"""

from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional


@dataclass(frozen=True)
class RawFrame:
    """
    Link-layer frame exactly as delivered by a capture handle.

    This is the lowest-level representation - just bytes + metadata.
    """
    data: bytes
    """Raw frame bytes, starting at the Ethernet header."""

    timestamp: float
    """Capture time, seconds since the Unix epoch."""

    wirelen: Optional[int] = None
    """Bytes on the wire (may exceed len(data) when snaplen truncated)."""

    @property
    def captured_length(self) -> int:
        return len(self.data)

    @property
    def is_truncated(self) -> bool:
        """True if fewer bytes were captured than were on the wire."""
        return self.wirelen is not None and len(self.data) < self.wirelen


@dataclass(frozen=True)
class CapturedSegment:
    """
    One TCP payload decoded out of an Ethernet/IPv4 frame.

    Produced once per accepted frame and consumed once by the HTTP
    reconstructor; never persisted.
    """
    src_ip: str
    dst_ip: str
    src_port: int
    dst_port: int
    payload: bytes
    timestamp: float
    protocol: str = "TCP"
    tcp_seq: Optional[int] = None
    tcp_ack: Optional[int] = None
    tcp_flags: Optional[int] = None

    @property
    def size(self) -> int:
        """Payload bytes held by this segment (memory budget unit)."""
        return len(self.payload)

    @property
    def flow_label(self) -> str:
        return f"{self.src_ip}:{self.src_port} -> {self.dst_ip}:{self.dst_port}"


@dataclass(frozen=True)
class HttpRequest:
    """
    HTTP/1.x request rebuilt from a captured segment or entered by hand.

    Header names are lower-cased here, at construction, so every consumer
    can look headers up by their lower-case name.
    """
    method: str
    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""
    source_ip: str = ""
    source_port: int = 0

    def __post_init__(self):
        normalized: Dict[str, str] = {}
        for name, value in self.headers.items():
            normalized[name.strip().lower()] = value
        object.__setattr__(self, "headers", normalized)
        object.__setattr__(self, "method", self.method.upper())
        if isinstance(self.body, str):
            object.__setattr__(self, "body", self.body.encode("utf-8"))

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.headers.get(name.lower(), default)

    @property
    def host(self) -> str:
        return self.headers.get("host", "")
