"""
Synthetic frame construction.

Used by the dummy backend to fabricate traffic and by tests to feed the
decoder and monitor with known frames.
"""
import socket
import struct

ETH_DST = b"\xaa\xbb\xcc\xdd\xee\xff"
ETH_SRC = b"\x11\x22\x33\x44\x55\x66"


def build_tcp_frame(
    payload: bytes = b"",
    src_ip: str = "192.168.1.10",
    dst_ip: str = "93.184.216.34",
    src_port: int = 51515,
    dst_port: int = 80,
    flags: int = 0x18,  # PSH+ACK
    seq: int = 1,
    ack: int = 1,
) -> bytes:
    """Build an Ethernet/IPv4/TCP frame carrying `payload`."""
    tcp_header = struct.pack(
        "!HHIIHHHH",
        src_port,
        dst_port,
        seq,
        ack,
        (5 << 12) | flags,  # data offset 5 words, no options
        65535,
        0,
        0,
    )
    ip_header = struct.pack(
        "!BBHHHBBH4s4s",
        0x45,
        0,
        20 + len(tcp_header) + len(payload),
        0,
        0,
        64,
        6,
        0,
        socket.inet_aton(src_ip),
        socket.inet_aton(dst_ip),
    )
    return ETH_DST + ETH_SRC + b"\x08\x00" + ip_header + tcp_header + payload


def build_ethernet_frame(ethertype: int, body: bytes = b"\x00" * 46) -> bytes:
    """Build an Ethernet frame with an arbitrary EtherType (ARP, IPv6, ...)."""
    return ETH_DST + ETH_SRC + struct.pack("!H", ethertype) + body


def build_http_get(path: str = "/", host: str = "example.com", extra_headers: str = "") -> bytes:
    return (
        f"GET {path} HTTP/1.1\r\n"
        f"Host: {host}\r\n"
        f"User-Agent: riddler-dummy\r\n"
        f"{extra_headers}"
        f"\r\n"
    ).encode("ascii")
