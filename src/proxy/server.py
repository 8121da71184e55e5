"""
Minimal HTTP proxy.

CONNECT requests are tunnelled as opaque bytes to the requested
host:port. Any other method gets a fixed placeholder response; there
is no upstream forwarding.
"""
import logging
import socket
import socketserver
import threading
from typing import Optional, Tuple

logger = logging.getLogger(__name__)

HEADER_TIMEOUT = 30.0
CONNECT_TIMEOUT = 10.0
RELAY_CHUNK = 8192
MAX_HEADER_LINE = 65536

CONNECTION_ESTABLISHED = b"HTTP/1.1 200 Connection Established\r\n\r\n"
BAD_GATEWAY = b"HTTP/1.1 502 Bad Gateway\r\n\r\n"


def parse_connect_target(target: str, default_port: int = 443) -> Tuple[str, int]:
    """Split `host:port` from a CONNECT request line. Raises ValueError."""
    host, sep, port = target.rpartition(":")
    if not sep:
        return target, default_port
    if not host:
        raise ValueError(f"missing host in '{target}'")
    return host, int(port)


def placeholder_response(method: str) -> bytes:
    body = f"Proxy handled {method} request".encode("utf-8")
    head = (
        "HTTP/1.1 200 OK\r\n"
        "Content-Type: text/plain\r\n"
        f"Content-Length: {len(body)}\r\n"
        "Connection: close\r\n"
        "\r\n"
    ).encode("ascii")
    return head + body


class ProxyRequestHandler(socketserver.StreamRequestHandler):
    """Handles one client connection: one request line, then tunnel or placeholder."""

    timeout = HEADER_TIMEOUT

    def handle(self):
        try:
            request_line = self.rfile.readline(MAX_HEADER_LINE)
        except OSError as exc:
            logger.debug("Failed to read request line from %s: %s", self.client_address, exc)
            return

        parts = request_line.decode("latin-1").split()
        if len(parts) < 2:
            return
        method, target = parts[0].upper(), parts[1]

        try:
            self._drain_headers()
        except OSError as exc:
            logger.debug("Client %s went away during headers: %s", self.client_address, exc)
            return

        if method == "CONNECT":
            self._handle_connect(target)
        else:
            logger.info("%s %s from %s", method, target, self.client_address[0])
            self.wfile.write(placeholder_response(method))
            self.wfile.flush()

    def _drain_headers(self) -> None:
        while True:
            line = self.rfile.readline(MAX_HEADER_LINE)
            if not line or line in (b"\r\n", b"\n"):
                return

    def _handle_connect(self, target: str) -> None:
        try:
            host, port = parse_connect_target(target)
            upstream = socket.create_connection((host, port), timeout=CONNECT_TIMEOUT)
        except (OSError, ValueError) as exc:
            logger.warning("CONNECT to %s failed: %s", target, exc)
            self.wfile.write(BAD_GATEWAY)
            self.wfile.flush()
            return

        logger.info("Tunnel %s -> %s:%d", self.client_address[0], host, port)
        with upstream:
            upstream.settimeout(None)
            self.connection.settimeout(None)
            self.wfile.write(CONNECTION_ESTABLISHED)
            self.wfile.flush()

            # upstream -> client runs beside us, client -> upstream here
            downstream = threading.Thread(
                target=self._pump_socket,
                args=(upstream, self.connection),
                name=f"tunnel-{host}:{port}",
                daemon=True,
            )
            downstream.start()
            self._pump_client(upstream)
            downstream.join()
        logger.debug("Tunnel to %s:%d closed", host, port)

    def _pump_client(self, upstream: socket.socket) -> None:
        # read1 returns bytes already buffered by rfile before touching the socket
        try:
            while True:
                data = self.rfile.read1(RELAY_CHUNK)
                if not data:
                    break
                upstream.sendall(data)
        except OSError as exc:
            logger.debug("Client side of tunnel ended: %s", exc)
        finally:
            _half_close(upstream)

    @staticmethod
    def _pump_socket(source: socket.socket, destination: socket.socket) -> None:
        try:
            while True:
                data = source.recv(RELAY_CHUNK)
                if not data:
                    break
                destination.sendall(data)
        except OSError as exc:
            logger.debug("Upstream side of tunnel ended: %s", exc)
        finally:
            _half_close(destination)


def _half_close(sock: socket.socket) -> None:
    try:
        sock.shutdown(socket.SHUT_WR)
    except OSError:
        # peer already gone
        return


class ProxyServer(socketserver.ThreadingTCPServer):
    """
    Threaded accept loop; every connection gets its own daemon thread.

    Usage:
        server = ProxyServer("127.0.0.1", 8080)
        server.start()          # background thread
        ...
        server.stop()
    """

    daemon_threads = True
    allow_reuse_address = True

    def __init__(self, host: str = "127.0.0.1", port: int = 8080):
        super().__init__((host, port), ProxyRequestHandler)
        self._thread: Optional[threading.Thread] = None

    @property
    def address(self) -> Tuple[str, int]:
        host, port = self.server_address[:2]
        return host, port

    def start(self) -> threading.Thread:
        """Serve on a background thread and return it."""
        if self._thread is not None:
            raise RuntimeError("proxy already started")
        logger.info("Proxy listening on %s:%d", *self.address)
        self._thread = threading.Thread(target=self.serve_forever, name="proxy-accept", daemon=True)
        self._thread.start()
        return self._thread

    def stop(self) -> None:
        if self._thread is not None:
            self.shutdown()
            self._thread.join()
            self._thread = None
        self.server_close()
        logger.info("Proxy stopped")
