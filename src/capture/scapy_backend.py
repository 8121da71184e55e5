import errno
import logging
from typing import Dict, List, Optional

from models.packet import RawFrame

from .exceptions import CaptureError, CapturePermissionDenied, InterfaceNotFound, InvalidFilter
from .icapture_backend import CaptureConfig, ICaptureBackend, ICaptureHandle

try:
    from scapy.all import conf, get_if_addr, get_if_list
    from scapy.error import Scapy_Exception
    SCAPY_AVAILABLE = True
except ImportError:
    SCAPY_AVAILABLE = False

logger = logging.getLogger(__name__)


def _is_permission_error(exc: BaseException) -> bool:
    if isinstance(exc, PermissionError):
        return True
    if isinstance(exc, OSError) and exc.errno in (errno.EPERM, errno.EACCES):
        return True
    text = str(exc).lower()
    return "permission" in text or "privileges" in text


class ScapyCaptureHandle(ICaptureHandle):
    """Layer-2 listening socket opened through Scapy."""

    def __init__(self, socket, interface: str):
        self._socket = socket
        self.interface = interface

    def next_frame(self, timeout: float) -> Optional[RawFrame]:
        if self._socket is None:
            raise CaptureError(f"Capture on {self.interface} is closed")
        try:
            ready = self._socket.select([self._socket], timeout)
            if not ready:
                return None
            packet = self._socket.recv()
        except (OSError, Scapy_Exception) as exc:
            raise CaptureError(str(exc)) from exc
        if packet is None:
            return None
        data = bytes(packet)
        return RawFrame(data=data, timestamp=float(packet.time), wirelen=len(data))

    def close(self) -> None:
        if self._socket is not None:
            try:
                self._socket.close()
            except OSError as exc:
                logger.debug("Error closing capture socket on %s: %s", self.interface, exc)
            self._socket = None


class ScapyBackend(ICaptureBackend):
    """Scapy-based live capture backend (libpcap/Npcap underneath)."""

    def __init__(self):
        if not SCAPY_AVAILABLE:
            raise RuntimeError("Scapy not available. Install with: pip install scapy")

    def list_interfaces(self) -> List[Dict]:
        try:
            names = get_if_list()
        except OSError as exc:
            if _is_permission_error(exc):
                raise CapturePermissionDenied(
                    "Insufficient privileges to list network interfaces. "
                    "Please run with sudo/administrator privileges."
                ) from exc
            raise CaptureError(f"Failed to list network interfaces: {exc}") from exc

        interfaces = []
        for name in names:
            try:
                address = get_if_addr(name)
            except (OSError, ValueError):
                address = None
            interfaces.append({
                'name': name,
                'description': name,
                'ips': [address] if address and address != "0.0.0.0" else [],
            })
        return interfaces

    def open_capture(self, config: CaptureConfig) -> ScapyCaptureHandle:
        try:
            socket = conf.L2listen(
                iface=config.interface,
                filter=config.filter or None,
                promisc=config.promisc,
            )
        except Scapy_Exception as exc:
            if config.filter and "filter" in str(exc).lower():
                raise InvalidFilter(config.filter, str(exc)) from exc
            raise CaptureError(str(exc)) from exc
        except OSError as exc:
            if _is_permission_error(exc):
                raise CapturePermissionDenied() from exc
            if exc.errno in (errno.ENODEV, errno.ENXIO):
                raise InterfaceNotFound(config.interface, self.interface_names()) from exc
            raise CaptureError(f"Failed to open capture on {config.interface}: {exc}") from exc
        return ScapyCaptureHandle(socket, config.interface)
