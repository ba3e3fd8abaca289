"""
Turn a host name into a connectable address using the system resolver.
"""

import socket
from typing import NamedTuple, Tuple

import structlog

from .errors import ResolutionError

logger = structlog.get_logger(__name__)


class ResolvedAddress(NamedTuple):
    family: int
    socktype: int
    proto: int
    sockaddr: Tuple

    @property
    def family_name(self) -> str:
        return "IPv6" if self.family == socket.AF_INET6 else "IPv4"

    @property
    def ip(self) -> str:
        return self.sockaddr[0]

    @property
    def port(self) -> int:
        return self.sockaddr[1]


def resolve(host: str, port: int) -> ResolvedAddress:
    """Resolve host to the first stream address the system resolver returns.

    Args:
        host: Domain name or literal IP address
        port: TCP port the address should carry

    Raises:
        ResolutionError: if nothing could be resolved
    """
    if not host:
        raise ResolutionError("DNS resolution failed", "empty host name")

    logger.info("resolving_domain", host=host)
    try:
        results = socket.getaddrinfo(host, port, socket.AF_UNSPEC, socket.SOCK_STREAM)
    except (socket.gaierror, UnicodeError) as e:
        logger.error("dns_resolution_failed", host=host, error=str(e))
        raise ResolutionError(f"DNS resolution failed for {host}", str(e)) from e

    if not results:
        raise ResolutionError(f"DNS resolution failed for {host}", "no addresses returned")

    family, socktype, proto, _, sockaddr = results[0]
    address = ResolvedAddress(family, socktype, proto, sockaddr)
    logger.info("domain_resolved", host=host, family=address.family_name, ip=address.ip)
    return address
