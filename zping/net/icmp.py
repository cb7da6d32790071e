"""ICMP echo sender."""
from __future__ import annotations

import ipaddress
import logging
import os
import select
import socket
import struct
import sys
import time
from dataclasses import dataclass
from typing import Dict, Optional, Set, Tuple

logger = logging.getLogger(__name__)

STATUS_SUCCESS = "Success"
STATUS_TIMED_OUT = "TimedOut"

_ECHO_REQUEST = {socket.AF_INET: 8, socket.AF_INET6: 128}
_ECHO_REPLY = {socket.AF_INET: 0, socket.AF_INET6: 129}
_PROTOCOL = {socket.AF_INET: socket.IPPROTO_ICMP, socket.AF_INET6: socket.IPPROTO_ICMPV6}
_PAYLOAD = b"abcdefghijklmnopqrstuvwabcdefghi"

# error queue of unprivileged ping sockets, Linux only
_RECVERR_SUPPORTED = sys.platform.startswith("linux")
_RECVERR = {
    socket.AF_INET: (socket.IPPROTO_IP, getattr(socket, "IP_RECVERR", 11)),
    socket.AF_INET6: (socket.IPPROTO_IPV6, getattr(socket, "IPV6_RECVERR", 25)),
}
_MSG_ERRQUEUE = getattr(socket, "MSG_ERRQUEUE", 0x2000)
_MSG_DONTWAIT = getattr(socket, "MSG_DONTWAIT", 0x40)
_SO_EE_ORIGIN_ICMP = {socket.AF_INET: 2, socket.AF_INET6: 3}
_EXTENDED_ERR = struct.Struct("=IBBBBII")

# (family, type, code) -> status; code None is the fallback for the type.
_ERROR_STATUS: Dict[Tuple[int, int, Optional[int]], str] = {
    (socket.AF_INET, 3, 0): "DestinationNetworkUnreachable",
    (socket.AF_INET, 3, 1): "DestinationHostUnreachable",
    (socket.AF_INET, 3, 2): "DestinationProtocolUnreachable",
    (socket.AF_INET, 3, 3): "DestinationPortUnreachable",
    (socket.AF_INET, 3, 4): "PacketTooBig",
    (socket.AF_INET, 3, 5): "BadRoute",
    (socket.AF_INET, 3, 6): "DestinationNetworkUnreachable",
    (socket.AF_INET, 3, 7): "DestinationHostUnreachable",
    (socket.AF_INET, 3, 9): "DestinationProhibited",
    (socket.AF_INET, 3, 10): "DestinationProhibited",
    (socket.AF_INET, 3, 13): "DestinationProhibited",
    (socket.AF_INET, 3, None): "DestinationUnreachable",
    (socket.AF_INET, 4, None): "SourceQuench",
    (socket.AF_INET, 11, 0): "TtlExpired",
    (socket.AF_INET, 11, 1): "TtlReassemblyTimeExceeded",
    (socket.AF_INET, 11, None): "TimeExceeded",
    (socket.AF_INET, 12, None): "ParameterProblem",
    (socket.AF_INET6, 1, 0): "DestinationNetworkUnreachable",
    (socket.AF_INET6, 1, 1): "DestinationProhibited",
    (socket.AF_INET6, 1, 3): "DestinationHostUnreachable",
    (socket.AF_INET6, 1, 4): "DestinationPortUnreachable",
    (socket.AF_INET6, 1, None): "DestinationUnreachable",
    (socket.AF_INET6, 2, None): "PacketTooBig",
    (socket.AF_INET6, 3, 0): "TtlExpired",
    (socket.AF_INET6, 3, 1): "TtlReassemblyTimeExceeded",
    (socket.AF_INET6, 3, None): "TimeExceeded",
    (socket.AF_INET6, 4, None): "ParameterProblem",
}


class IcmpError(OSError):
    """The ICMP subsystem failed to send or receive, as opposed to a reply with a bad status."""


@dataclass(frozen=True)
class EchoReply:
    """What the ICMP layer reported for one echo request."""

    status: str
    roundtrip_ms: Optional[int] = None
    address: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == STATUS_SUCCESS


def checksum(data: bytes) -> int:
    """Compute the Internet checksum of ``data``."""

    if len(data) % 2:
        data += b"\x00"
    total = sum(struct.unpack("!%dH" % (len(data) // 2), data))
    total = (total >> 16) + (total & 0xFFFF)
    total += total >> 16
    return (~total) & 0xFFFF


def error_status(family: int, icmp_type: int, code: int) -> Optional[str]:
    """Map an ICMP error message to a status name, ``None`` for non-error types."""

    status = _ERROR_STATUS.get((family, icmp_type, code))
    if status is None:
        status = _ERROR_STATUS.get((family, icmp_type, None))
    return status


def build_echo_request(family: int, identifier: int, sequence: int, payload: bytes = _PAYLOAD) -> bytes:
    icmp_type = _ECHO_REQUEST[family]
    header = struct.pack("!BBHHH", icmp_type, 0, 0, identifier, sequence)
    if family == socket.AF_INET6:
        # the kernel fills in the ICMPv6 checksum, it covers a pseudo header
        return header + payload
    csum = checksum(header + payload)
    return struct.pack("!BBHHH", icmp_type, 0, csum, identifier, sequence) + payload


def decode_extended_error(
    family: int, ancdata: list[tuple[int, int, bytes]]
) -> Optional[Tuple[int, int, Optional[str]]]:
    """Pull ``(type, code, offender)`` out of a ``sock_extended_err`` control message."""

    level, option = _RECVERR[family]
    for cmsg_level, cmsg_type, cmsg_data in ancdata:
        if (cmsg_level, cmsg_type) != (level, option) or len(cmsg_data) < _EXTENDED_ERR.size:
            continue
        _, origin, ee_type, ee_code, _, _, _ = _EXTENDED_ERR.unpack_from(cmsg_data)
        if origin != _SO_EE_ORIGIN_ICMP[family]:
            return None
        # SO_EE_OFFENDER: the sockaddr right after the struct
        offender_raw = cmsg_data[_EXTENDED_ERR.size :]
        offender = None
        if family == socket.AF_INET and len(offender_raw) >= 8:
            offender = socket.inet_ntop(socket.AF_INET, offender_raw[4:8])
        elif family == socket.AF_INET6 and len(offender_raw) >= 24:
            offender = socket.inet_ntop(socket.AF_INET6, offender_raw[8:24])
        return ee_type, ee_code, offender
    return None


def sockaddr_for(ip: ipaddress.IPv4Address | ipaddress.IPv6Address) -> tuple:
    """Socket address for ``sendto``, keeping the scope of link-local IPv6 targets."""

    if ip.version == 4:
        return (str(ip), 0)
    scope = ip.scope_id
    if not scope:
        return (str(ip), 0, 0, 0)
    scope_index = int(scope) if scope.isdigit() else socket.if_nametoindex(scope)
    return (str(ip).split("%", 1)[0], 0, 0, scope_index)


class IcmpSender:
    """Sends echo requests over ICMP sockets that are opened once and reused."""

    def __init__(self, payload: bytes = _PAYLOAD) -> None:
        self.payload = payload
        self.identifier = os.getpid() & 0xFFFF
        self.sequence = 0
        self._sockets: Dict[int, socket.socket] = {}
        self._raw: Dict[int, bool] = {}
        self._recverr: Set[int] = set()

    def _socket(self, family: int) -> socket.socket:
        sock = self._sockets.get(family)
        if sock is not None:
            return sock
        try:
            sock = socket.socket(family, socket.SOCK_RAW, _PROTOCOL[family])
            raw = True
        except PermissionError:
            # unprivileged ping sockets, the kernel owns the identifier
            sock = socket.socket(family, socket.SOCK_DGRAM, _PROTOCOL[family])
            raw = False
            if _RECVERR_SUPPORTED:
                # without it the kernel drops ICMP errors for unconnected ping sockets
                level, option = _RECVERR[family]
                sock.setsockopt(level, option, 1)
                self._recverr.add(family)
        logger.debug(
            "Opened %s ICMP socket for %s",
            "raw" if raw else "datagram",
            "IPv4" if family == socket.AF_INET else "IPv6",
        )
        self._sockets[family] = sock
        self._raw[family] = raw
        return sock

    def send(self, address: str, timeout_ms: int) -> EchoReply:
        """Send one echo request and wait up to ``timeout_ms`` for the matching answer."""

        try:
            ip = ipaddress.ip_address(address)
        except ValueError as exc:
            raise IcmpError(f"'{address}' is not a valid IP address") from exc
        family = socket.AF_INET if ip.version == 4 else socket.AF_INET6
        self.sequence = (self.sequence + 1) & 0xFFFF
        sequence = self.sequence
        try:
            sock = self._socket(family)
            packet = build_echo_request(family, self.identifier, sequence, self.payload)
            started = time.perf_counter()
            sock.sendto(packet, sockaddr_for(ip))
            return self._receive(sock, family, sequence, started, timeout_ms / 1000.0)
        except IcmpError:
            raise
        except OSError as exc:
            raise IcmpError(exc.strerror or str(exc) or exc.__class__.__name__) from exc

    def _receive(
        self, sock: socket.socket, family: int, sequence: int, started: float, timeout: float
    ) -> EchoReply:
        deadline = started + timeout
        while True:
            remaining = deadline - time.perf_counter()
            if remaining <= 0:
                return EchoReply(STATUS_TIMED_OUT)
            ready, _, _ = select.select([sock], [], [], remaining)
            if not ready:
                return EchoReply(STATUS_TIMED_OUT)
            if family in self._recverr:
                drained, queued = self._read_error_queue(sock, family, sequence)
                if queued is not None:
                    return queued
                if drained:
                    continue
            data, source = sock.recvfrom(2048)
            elapsed_ms = int((time.perf_counter() - started) * 1000)
            reply = self.parse_reply(family, data, str(source[0]), sequence, elapsed_ms)
            if reply is not None:
                return reply

    def _read_error_queue(
        self, sock: socket.socket, family: int, sequence: int
    ) -> Tuple[bool, Optional[EchoReply]]:
        """Drain one queued ICMP error; returns whether one was read and its reply if it is ours."""

        try:
            data, ancdata, _, _ = sock.recvmsg(2048, 512, _MSG_ERRQUEUE | _MSG_DONTWAIT)
        except BlockingIOError:
            return False, None
        return True, self.parse_queued_error(family, data, ancdata, sequence)

    def parse_queued_error(
        self, family: int, data: bytes, ancdata: list[tuple[int, int, bytes]], sequence: int
    ) -> Optional[EchoReply]:
        """Decode an error-queue entry, ``data`` being the echo request the error quotes."""

        decoded = decode_extended_error(family, ancdata)
        if decoded is None or len(data) < 8:
            return None
        ee_type, ee_code, offender = decoded
        status = error_status(family, ee_type, ee_code)
        quoted_type, _, _, _, quoted_sequence = struct.unpack("!BBHHH", data[:8])
        if status is None or quoted_type != _ECHO_REQUEST[family] or quoted_sequence != sequence:
            return None
        return EchoReply(status, address=offender)

    def parse_reply(
        self, family: int, data: bytes, source: str, sequence: int, elapsed_ms: int
    ) -> Optional[EchoReply]:
        """Decode a received datagram, ``None`` if it does not answer ``sequence``."""

        raw = self._raw.get(family, True)
        if family == socket.AF_INET and data and data[0] >> 4 == 4:
            data = data[(data[0] & 0x0F) * 4 :]
        if len(data) < 8:
            return None
        icmp_type, code, _, identifier, reply_sequence = struct.unpack("!BBHHH", data[:8])

        if icmp_type == _ECHO_REPLY[family]:
            if reply_sequence != sequence or (raw and identifier != self.identifier):
                return None
            return EchoReply(STATUS_SUCCESS, roundtrip_ms=elapsed_ms, address=source)

        status = error_status(family, icmp_type, code)
        if status is None:
            return None
        # the error quotes the IP header and first 8 bytes of our request
        quoted = data[8:]
        if family == socket.AF_INET:
            if len(quoted) < 20:
                return None
            quoted = quoted[(quoted[0] & 0x0F) * 4 :]
        else:
            quoted = quoted[40:]
        if len(quoted) < 8:
            return None
        quoted_type, _, _, quoted_id, quoted_sequence = struct.unpack("!BBHHH", quoted[:8])
        if quoted_type != _ECHO_REQUEST[family] or quoted_sequence != sequence:
            return None
        if raw and quoted_id != self.identifier:
            return None
        return EchoReply(status, address=source)

    def close(self) -> None:
        for sock in self._sockets.values():
            sock.close()
        self._sockets.clear()
        self._raw.clear()
        self._recverr.clear()

    def __enter__(self) -> "IcmpSender":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


__all__ = [
    "STATUS_SUCCESS",
    "STATUS_TIMED_OUT",
    "IcmpError",
    "EchoReply",
    "IcmpSender",
    "build_echo_request",
    "checksum",
    "decode_extended_error",
    "error_status",
    "sockaddr_for",
]
