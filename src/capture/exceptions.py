"""
Capture subsystem errors.
"""
from typing import List, Optional

from models.errors import (
    InvalidInputError,
    NotFoundError,
    PermissionDeniedError,
    RiddlerError,
)


class CaptureError(RiddlerError):
    """Hard failure reported by a capture handle (not a read timeout)."""


class InterfaceNotFound(CaptureError, NotFoundError):
    def __init__(self, interface: str, available: Optional[List[str]] = None):
        self.interface = interface
        self.available = list(available or [])
        super().__init__(
            f"Interface '{interface}' not found. "
            f"Available interfaces: {', '.join(self.available) or '<none>'}"
        )


class CapturePermissionDenied(CaptureError, PermissionDeniedError):
    def __init__(self, message: str = ""):
        super().__init__(
            message or "Insufficient privileges to capture packets. "
                       "Please run with sudo/administrator privileges."
        )


class InvalidFilter(CaptureError, InvalidInputError):
    def __init__(self, bpf_filter: str, reason: str = ""):
        self.filter = bpf_filter
        detail = f": {reason}" if reason else ""
        super().__init__(f"Invalid BPF filter '{bpf_filter}'{detail}")
