"""
Pure frame decoding logic (Ethernet -> IPv4 -> TCP).

This module is deterministic and best-effort:
- It never throws on malformed/truncated frames
- Anything that is not Ethernet/IPv4/TCP decodes to None
- It only parses headers; the TCP payload is sliced, never interpreted
"""
from __future__ import annotations

import struct
from enum import IntFlag
from typing import Optional, Tuple

from models.packet import CapturedSegment, RawFrame

# EtherType constants
ETH_TYPE_IPV4 = 0x0800
ETH_TYPE_ARP = 0x0806
ETH_TYPE_IPV6 = 0x86DD
ETH_TYPE_VLAN = 0x8100
ETH_TYPE_QINQ = 0x88A8

ETH_HEADER_LEN = 14

# IP protocol numbers
IP_PROTO_TCP = 6


class DecodeOutcome(IntFlag):
    OK = 0
    MALFORMED_L2 = 1 << 0
    NOT_IPV4 = 1 << 1
    MALFORMED_L3 = 1 << 2
    NOT_TCP = 1 << 3
    MALFORMED_L4 = 1 << 4


def decode_frame(frame: RawFrame) -> Optional[CapturedSegment]:
    """Decode an Ethernet frame into a CapturedSegment, or None."""
    segment, _ = decode_frame_verbose(frame)
    return segment


def decode_frame_verbose(frame: RawFrame) -> Tuple[Optional[CapturedSegment], DecodeOutcome]:
    """Like decode_frame, but also report why a frame was rejected."""
    data = frame.data or b""
    cap_len = len(data)

    if cap_len < ETH_HEADER_LEN:
        return None, DecodeOutcome.MALFORMED_L2
    ethertype = struct.unpack_from("!H", data, 12)[0]
    offset = ETH_HEADER_LEN

    # VLAN tags (single or double)
    for _ in range(2):
        if ethertype not in (ETH_TYPE_VLAN, ETH_TYPE_QINQ):
            break
        if cap_len < offset + 4:
            return None, DecodeOutcome.MALFORMED_L2
        ethertype = struct.unpack_from("!H", data, offset + 2)[0]
        offset += 4

    if ethertype != ETH_TYPE_IPV4:
        return None, DecodeOutcome.NOT_IPV4

    parsed = _parse_ipv4(data, offset)
    if parsed is None:
        return None, DecodeOutcome.MALFORMED_L3
    src_ip, dst_ip, ip_proto, l4_offset, l3_end = parsed
    if ip_proto != IP_PROTO_TCP:
        return None, DecodeOutcome.NOT_TCP

    tcp = _parse_tcp(data, l4_offset, l3_end)
    if tcp is None:
        return None, DecodeOutcome.MALFORMED_L4
    src_port, dst_port, seq, ack, flags, payload_offset = tcp

    segment = CapturedSegment(
        src_ip=src_ip,
        dst_ip=dst_ip,
        src_port=src_port,
        dst_port=dst_port,
        payload=bytes(data[payload_offset:l3_end]),
        timestamp=frame.timestamp,
        tcp_seq=seq,
        tcp_ack=ack,
        tcp_flags=flags,
    )
    return segment, DecodeOutcome.OK


def _parse_ipv4(data: bytes, offset: int) -> Optional[Tuple[str, str, int, int, int]]:
    """Return (src_ip, dst_ip, protocol, l4_offset, l3_end) or None."""
    cap_len = len(data)
    if offset + 20 > cap_len:
        return None
    vihl = data[offset]
    version = vihl >> 4
    ihl = (vihl & 0x0F) * 4
    if version != 4 or ihl < 20 or offset + ihl > cap_len:
        return None

    total_length = struct.unpack_from("!H", data, offset + 2)[0]
    # Ethernet pads short frames; the IP total length marks the real end.
    # Zero total length happens with TSO on the capturing host.
    if total_length >= ihl:
        l3_end = min(cap_len, offset + total_length)
    else:
        l3_end = cap_len

    ip_proto = data[offset + 9]
    src_ip = _format_ipv4(data[offset + 12:offset + 16])
    dst_ip = _format_ipv4(data[offset + 16:offset + 20])
    return src_ip, dst_ip, ip_proto, offset + ihl, l3_end


def _parse_tcp(data: bytes, offset: int, end: int) -> Optional[Tuple[int, int, int, int, int, int]]:
    """Return (src_port, dst_port, seq, ack, flags, payload_offset) or None."""
    if offset + 20 > end:
        return None
    src_port, dst_port, seq, ack = struct.unpack_from("!HHII", data, offset)
    data_offset = (data[offset + 12] >> 4) * 4
    if data_offset < 20 or offset + data_offset > end:
        return None
    flags = data[offset + 13]
    return src_port, dst_port, seq, ack, flags, offset + data_offset


def _format_ipv4(addr: bytes) -> str:
    return "{}.{}.{}.{}".format(addr[0], addr[1], addr[2], addr[3])
