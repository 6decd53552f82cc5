"""Raw socket ICMP echo prober.

Opening a raw socket needs elevated privileges. Inside a virtualenv use
``sudo setcap cap_net_raw+ep $(realpath $(which python))``.
"""

from __future__ import annotations

import secrets
import select
import socket
import struct
import time
from dataclasses import dataclass
from typing import Optional

from ._config import PROBE_TIMEOUT
from ._console import logger
from ._exceptions import RawSocketPermissionError
from ._models import ProbeSample

ICMP_ECHO_REQUEST = 8
ICMP_ECHO_REPLY = 0
ICMP_DEST_UNREACHABLE = 3


@dataclass
class IcmpPacket:
    type: int
    code: int
    id: int
    sequence: int
    data: bytes


@dataclass
class ReceivedPacket:
    src_addr: str
    icmp_packet: IcmpPacket
    received_at: float


def icmp_checksum(data: bytes) -> int:
    if len(data) % 2:
        data += b"\x00"
    total = sum(struct.unpack("!%dH" % (len(data) // 2), data))
    total = (total >> 16) + (total & 0xFFFF)
    total += total >> 16
    return (~total) & 0xFFFF


def build_echo_request(identifier: int, sequence: int, timestamp: float) -> bytes:
    data = struct.pack("d", timestamp)
    header = struct.pack("!BBHHH", ICMP_ECHO_REQUEST, 0, 0, identifier, sequence)
    checksum = icmp_checksum(header + data)
    header = struct.pack(
        "!BBHHH", ICMP_ECHO_REQUEST, 0, checksum, identifier, sequence
    )
    return header + data


def parse_packet(pkt: bytes, received_at: float) -> ReceivedPacket:
    """Split a raw IPv4 datagram into its source address and ICMP header."""
    if len(pkt) < 20:
        raise ValueError("Packet shorter than minimum IP header length (20 bytes).")

    iph = struct.unpack("!BBHHHBBH4s4s", pkt[:20])
    iph_length = (iph[0] & 0xF) * 4
    if len(pkt) < iph_length + 8:
        raise ValueError("Packet shorter than IP header + ICMP header (IHL + 8 bytes).")

    icmph = struct.unpack("!BBHHH", pkt[iph_length : iph_length + 8])
    return ReceivedPacket(
        src_addr=socket.inet_ntoa(iph[8]),
        icmp_packet=IcmpPacket(
            type=icmph[0],
            code=icmph[1],
            id=icmph[3],
            sequence=icmph[4],
            data=pkt[iph_length + 8 :],
        ),
        received_at=received_at,
    )


def matches_probe(
    identifier: int, sequence: int, address: str, received: ReceivedPacket
) -> bool:
    """Tell whether ``received`` answers our echo request to ``address``.

    A raw socket sees every ICMP packet reaching the host, so an echo reply
    must also come from the pinged address.
    """
    icmp_pkt = received.icmp_packet
    if icmp_pkt.type == ICMP_ECHO_REPLY:
        return (
            received.src_addr == address
            and icmp_pkt.id == identifier
            and icmp_pkt.sequence == sequence
        )

    # Errors come from routers and quote the offending IP header (20 bytes)
    # followed by our ICMP header.
    if icmp_pkt.type == ICMP_DEST_UNREACHABLE and len(icmp_pkt.data) >= 28:
        try:
            _, _, _, inner_id, inner_seq = struct.unpack(
                "!BBHHH", icmp_pkt.data[20:28]
            )
        except struct.error:
            return False
        inner_dest = socket.inet_ntoa(icmp_pkt.data[16:20])
        return (
            inner_dest == address
            and inner_id == identifier
            and inner_seq == sequence
        )

    return False


class Icmp:
    """Sends one echo request at a time and waits for the matching reply.

    An instance owns one raw socket and must not be shared between threads:
    replies for one thread's probe would be read and dropped by another.
    """

    def __init__(
        self, timeout: float = PROBE_TIMEOUT, identifier: Optional[int] = None
    ):
        self.timeout = timeout
        self.identifier = (
            identifier if identifier is not None else secrets.randbelow(0x10000)
        )
        self.seq_number = 0
        self._sock: Optional[socket.socket] = None

    @property
    def sock(self) -> socket.socket:
        if self._sock is None:
            try:
                self._sock = socket.socket(
                    socket.AF_INET,
                    socket.SOCK_RAW,
                    socket.IPPROTO_ICMP,
                )
            except PermissionError as exc:
                message = (
                    "Raw socket requires elevated privileges. Use sudo or grant "
                    "CAP_NET_RAW to the Python interpreter."
                )
                raise RawSocketPermissionError(message) from exc
            self._sock.settimeout(self.timeout)
        return self._sock

    def open(self) -> "Icmp":
        """Create the socket now so missing privileges surface before probing."""
        self.sock
        return self

    def close(self) -> None:
        if self._sock is not None:
            try:
                self._sock.close()
            finally:
                self._sock = None

    def __enter__(self) -> "Icmp":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _next_sequence(self) -> int:
        self.seq_number = (self.seq_number + 1) & 0xFFFF
        return self.seq_number

    def _receive(
        self, address: str, sequence: int, deadline: float
    ) -> Optional[ReceivedPacket]:
        while True:
            remaining = deadline - time.perf_counter()
            if remaining <= 0:
                return None

            ready = select.select([self.sock], [], [], remaining)
            if not ready[0]:
                return None

            received_at = time.perf_counter()
            pkt, _ = self.sock.recvfrom(1024)
            try:
                received = parse_packet(pkt, received_at)
            except ValueError as err:
                logger.debug("Discarding malformed packet: %s", err)
                continue

            if matches_probe(self.identifier, sequence, address, received):
                return received

    def probe(self, address: str) -> ProbeSample:
        """Send a single echo request to ``address``.

        Socket errors propagate as :class:`OSError`; a timeout or an ICMP
        error reply comes back as a failed :class:`ProbeSample`.
        """
        sequence = self._next_sequence()
        packet = build_echo_request(self.identifier, sequence, time.time())
        sent_at = time.perf_counter()
        self.sock.sendto(packet, (address, 1))
        received = self._receive(address, sequence, sent_at + self.timeout)

        if received is None:
            return ProbeSample(error="timed out")
        if received.icmp_packet.type != ICMP_ECHO_REPLY:
            return ProbeSample(
                error=f"destination unreachable (code {received.icmp_packet.code})"
            )
        rtt = round((received.received_at - sent_at) * 1000)
        return ProbeSample(rtt=max(rtt, 0))
