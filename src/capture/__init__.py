"""
Live packet capture subsystem.
"""

from .icapture_backend import ICaptureBackend, ICaptureHandle, CaptureConfig
from .exceptions import CaptureError, CapturePermissionDenied, InterfaceNotFound, InvalidFilter
from .channel import Channel, ChannelClosed
from .dummy_backend import DummyBackend
from .scapy_backend import ScapyBackend
from .monitor import PacketMonitor

__all__ = [
    'ICaptureBackend',
    'ICaptureHandle',
    'CaptureConfig',
    'CaptureError',
    'CapturePermissionDenied',
    'InterfaceNotFound',
    'InvalidFilter',
    'Channel',
    'ChannelClosed',
    'DummyBackend',
    'ScapyBackend',
    'PacketMonitor',
]
