"""Target name resolution."""
from __future__ import annotations

import logging
import socket
from typing import Any, Callable, List, Optional, Sequence

logger = logging.getLogger(__name__)

AddrInfoLookup = Callable[[str, Any], Sequence[tuple]]


class HostNotFoundError(LookupError):
    """Raised when a target name does not resolve to any address."""

    def __init__(self, host: str, reason: str | None = None) -> None:
        message = f"Ping request could not find host {host}. Please check the name and try again."
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.host = host


def lookup_addresses(host: str, lookup: Optional[AddrInfoLookup] = None) -> List[str]:
    """Return every address the system resolver reports, in resolver order."""

    lookup = lookup or socket.getaddrinfo
    try:
        infos = lookup(host, None)
    except (OSError, UnicodeError) as exc:
        raise HostNotFoundError(host, str(exc)) from exc

    addresses: List[str] = []
    for _, _, _, _, sockaddr in infos:
        address = str(sockaddr[0])
        if len(sockaddr) >= 4 and sockaddr[3] and "%" not in address:
            # link-local IPv6 needs its scope to be reachable
            address = f"{address}%{sockaddr[3]}"
        if address not in addresses:
            addresses.append(address)
    return addresses


def resolve(host: str, lookup: Optional[AddrInfoLookup] = None) -> str:
    """Resolve ``host`` once and return the first address, whatever its family."""

    addresses = lookup_addresses(host, lookup)
    if not addresses:
        raise HostNotFoundError(host)
    logger.debug("Resolved %s to %s (candidates: %s)", host, addresses[0], ", ".join(addresses))
    return addresses[0]


__all__ = ["HostNotFoundError", "lookup_addresses", "resolve"]
