"""
Socket Addresses

An announced address is an IP plus a TCP port. Python's socket layer hands
these around as tuples of different shapes per family ((host, port) for IPv4,
(host, port, flowinfo, scope_id) for IPv6), so discovery works on a single
value type and converts at the socket boundary.
"""

import ipaddress
import logging
import socket
from dataclasses import dataclass
from typing import Tuple, Union

logger = logging.getLogger(__name__)

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


@dataclass(frozen=True)
class SocketAddress:
    """An IP address and port; equal when both match."""
    ip: IPAddress
    port: int

    def __post_init__(self):
        if not isinstance(self.ip, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
            object.__setattr__(self, 'ip', ipaddress.ip_address(self.ip))
        if not 0 <= self.port <= 0xFFFF:
            raise ValueError(f"Port out of range: {self.port}")

    @property
    def is_ipv6(self) -> bool:
        return self.ip.version == 6

    @property
    def family(self) -> int:
        """Address family for socket.socket()."""
        return socket.AF_INET6 if self.is_ipv6 else socket.AF_INET

    @classmethod
    def parse(cls, text: str) -> 'SocketAddress':
        """
        Parse "host:port" or "[host]:port".

        Args:
            text: Address string, e.g. "10.0.0.5:4000" or "[ff0e::1]:1337"

        Returns:
            Parsed address

        Raises:
            ValueError: If the string is not an IP literal with a port
        """
        text = text.strip()
        if text.startswith('['):
            host, sep, port = text[1:].partition(']:')
        else:
            host, sep, port = text.rpartition(':')
            # IPv6 literals need brackets to tell the port apart
            if ':' in host:
                sep = ''
        if not sep or not host or not port:
            raise ValueError(f"Invalid socket address: {text!r} (use host:port)")
        return cls(ipaddress.ip_address(host), int(port))

    @classmethod
    def from_sockaddr(cls, sockaddr: tuple) -> 'SocketAddress':
        """Build from a tuple returned by getsockname()/recvfrom()."""
        host = sockaddr[0]
        # Scoped IPv6 literals come back as "fe80::1%eth0"
        if '%' in host:
            host = host.split('%', 1)[0]
        return cls(ipaddress.ip_address(host), sockaddr[1])

    def to_sockaddr(self) -> Tuple:
        """Tuple form accepted by bind()/connect()/sendto() for this family."""
        if self.is_ipv6:
            return (str(self.ip), self.port, 0, 0)
        return (str(self.ip), self.port)

    def __str__(self) -> str:
        if self.is_ipv6:
            return f"[{self.ip}]:{self.port}"
        return f"{self.ip}:{self.port}"


def as_socket_address(value) -> SocketAddress:
    """Accept a SocketAddress, a (host, port) tuple or a "host:port" string."""
    if isinstance(value, SocketAddress):
        return value
    if isinstance(value, str):
        return SocketAddress.parse(value)
    if isinstance(value, tuple):
        return SocketAddress.from_sockaddr(value)
    raise TypeError(f"Cannot use {value!r} as a socket address")


def get_local_ip(family: int = socket.AF_INET) -> str:
    """
    Get the local IP address (best guess).

    Connecting a UDP socket does not send anything; it only makes the kernel
    pick the route, and with it the source address.
    """
    probe = ("8.8.8.8", 80) if family == socket.AF_INET else ("2001:4860:4860::8888", 80)
    fallback = "127.0.0.1" if family == socket.AF_INET else "::1"
    try:
        with socket.socket(family, socket.SOCK_DGRAM) as s:
            s.connect(probe)
            return s.getsockname()[0]
    except OSError as e:
        logger.debug(f"Could not determine local IP, using {fallback}: {e}")
        return fallback
