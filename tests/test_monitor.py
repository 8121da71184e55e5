import unittest

import pytest

from capture.dummy_backend import DummyBackend
from capture.exceptions import CaptureError, CapturePermissionDenied, InterfaceNotFound, InvalidFilter
from capture.frames import build_ethernet_frame, build_http_get, build_tcp_frame
from capture.monitor import PacketMonitor
from capture.packet_decoder import ETH_TYPE_ARP
from conftest import wait_for


def _monitor(backend, **kwargs):
    kwargs.setdefault("poll_timeout", 0.01)
    kwargs.setdefault("retry_backoff", 0.01)
    return PacketMonitor(backend, "dummy0", "tcp port 80", **kwargs)


def _stop(monitor):
    monitor.shutdown()
    monitor.join(timeout=2)


class MonitorLifecycleTests(unittest.TestCase):
    def test_missing_interface(self):
        backend = DummyBackend(interfaces=["dummy0"])
        monitor = PacketMonitor(backend, "eth9", "tcp")
        with self.assertRaises(InterfaceNotFound) as ctx:
            monitor.start()
        self.assertEqual(ctx.exception.available, ["dummy0"])
        self.assertEqual(backend.open_count, 0)

    def test_invalid_filter(self):
        backend = DummyBackend(bad_filters=["tcp port"])
        monitor = PacketMonitor(backend, "dummy0", "tcp port")
        with self.assertRaises(InvalidFilter):
            monitor.start()
        self.assertFalse(monitor.running)

    def test_shutdown_stops_loop_and_releases_channel(self):
        backend = DummyBackend(scripts=[[]])
        monitor = _monitor(backend)
        monitor.start()
        self.assertTrue(monitor.running)

        monitor.shutdown()
        monitor.shutdown()
        monitor.join(timeout=2)

        self.assertFalse(monitor.running)
        self.assertTrue(monitor.channel.closed)
        self.assertTrue(backend.handles[0].closed)

    def test_release_sender_is_idempotent(self):
        monitor = _monitor(DummyBackend(scripts=[[]]))
        monitor.release_sender()
        monitor.release_sender()
        self.assertTrue(monitor.channel.closed)
        self.assertFalse(monitor.channel.close())

    def test_start_twice_rejected(self):
        monitor = _monitor(DummyBackend(scripts=[[]]))
        monitor.start()
        try:
            with self.assertRaises(RuntimeError):
                monitor.start()
        finally:
            _stop(monitor)


def test_requests_are_reconstructed():
    frames = [
        build_tcp_frame(build_http_get("/a", "example.com")),
        build_ethernet_frame(ETH_TYPE_ARP),
        None,
        build_tcp_frame(b"", flags=0x10),
        build_tcp_frame(build_http_get("/b", "example.com"), dst_port=443),
    ]
    monitor = _monitor(DummyBackend(scripts=[frames]))
    monitor.start()
    assert wait_for(lambda: monitor.get_stats()["packets_total"] == 4)
    _stop(monitor)

    urls = [request.url for request in monitor.requests(timeout=0.1)]
    assert urls == ["http://example.com/a", "https://example.com/b"]

    stats = monitor.get_stats()
    assert stats["decode_skipped"] == 1
    assert stats["segments_forwarded"] == 3
    assert stats["http_candidates"] == 3


def test_memory_budget_drops_instead_of_blocking():
    budget = 100
    frames = [
        build_tcp_frame(b"a" * 40),
        build_tcp_frame(b"b" * 500),  # larger than the whole budget
        build_tcp_frame(b"c" * 40),
        build_tcp_frame(b"d" * 40),  # would overflow: 120 > 100
    ]
    monitor = _monitor(DummyBackend(scripts=[frames]), max_memory_usage=budget)
    monitor.start()
    assert wait_for(lambda: monitor.get_stats()["packets_total"] == 4)
    assert monitor.get_stats()["pending_bytes"] == 80
    _stop(monitor)

    payloads = [segment.payload for segment in monitor.segments(timeout=0.1)]
    assert payloads == [b"a" * 40, b"c" * 40]
    assert monitor.get_stats()["drops_memory"] == 2
    assert monitor.channel.pending_bytes == 0


def test_read_error_reopens_capture():
    frame = build_tcp_frame(build_http_get("/again", "example.com"))
    backend = DummyBackend(scripts=[[CaptureError("device went away")], [frame]])
    monitor = _monitor(backend)
    monitor.start()
    assert wait_for(lambda: monitor.get_stats()["segments_forwarded"] == 1)
    _stop(monitor)

    assert backend.open_count == 2
    assert backend.handles[0].closed
    stats = monitor.get_stats()
    assert stats["capture_errors"] == 1
    assert stats["retries"] == 1
    assert monitor.error is None


def test_retry_ceiling_ends_loop_and_reports():
    backend = DummyBackend(
        scripts=[[CaptureError("read failed")]],
        open_errors=[None, CaptureError("x"), CaptureError("y"), CaptureError("z")],
    )
    monitor = _monitor(backend)
    monitor.start()

    with pytest.raises(CaptureError):
        monitor.join(timeout=3)
    assert not monitor.running
    assert monitor.channel.closed
    assert backend.open_count == 4
    assert monitor.get_stats()["retries"] == 3
    # consumers see end-of-stream
    assert list(monitor.segments(timeout=0.1)) == []


def test_permission_error_is_not_retried():
    backend = DummyBackend(scripts=[[CapturePermissionDenied()]])
    monitor = _monitor(backend)
    monitor.start()
    with pytest.raises(CapturePermissionDenied):
        monitor.join(timeout=2)
    assert backend.open_count == 1
    assert monitor.get_stats()["retries"] == 0
