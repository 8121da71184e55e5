"""
Capture backend capability interface.

The capture device is an external privileged resource. Everything the
monitor needs from it goes through these two small interfaces so the
retry/backoff logic can run against a scripted fake.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional

from models.packet import RawFrame


@dataclass
class CaptureConfig:
    interface: str
    filter: Optional[str] = None
    snaplen: int = 65535
    promisc: bool = True
    timeout_ms: int = 100
    """Read timeout; a timeout is an empty poll, not an error."""
    buffer_size: int = 1_000_000


class ICaptureHandle(ABC):
    """An open, filtered capture on one interface."""

    @abstractmethod
    def next_frame(self, timeout: float) -> Optional[RawFrame]:
        """
        Wait up to `timeout` seconds for the next frame.

        Returns None when the timeout expires. Raises CaptureError on a
        hard capture failure.
        """

    @abstractmethod
    def close(self) -> None:
        """Release the handle. Safe to call more than once."""


class ICaptureBackend(ABC):

    @abstractmethod
    def list_interfaces(self) -> List[Dict]:
        """
        Return available interfaces as dicts with at least a 'name' key.

        Raises CapturePermissionDenied when listing requires privileges.
        """

    @abstractmethod
    def open_capture(self, config: CaptureConfig) -> ICaptureHandle:
        """
        Open an active capture.

        Raises InterfaceNotFound, CapturePermissionDenied or InvalidFilter.
        """

    def interface_names(self) -> List[str]:
        return [iface['name'] for iface in self.list_interfaces()]
