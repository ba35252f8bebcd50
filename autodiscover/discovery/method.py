"""
Announcement Methods

Design Decision: Broadcast vs Multicast
========================================

1. UDP Broadcast (255.255.255.255 or subnet broadcast)
   - Simple, works on most LANs
   - IPv4 only
   - Doesn't cross routers

2. UDP Multicast
   - IPv4 and IPv6
   - Needs a group join on the receiving side
   - Can cross routers (if configured)

Both are supported; the caller picks one per run. The two share nothing
beyond "configure, send once, receive forever", so they are plain values
and the transport branches on which one it got.
"""

from dataclasses import dataclass
from typing import Union

from .address import SocketAddress, as_socket_address


@dataclass(frozen=True)
class Broadcast:
    """
    Announce to an IPv4 broadcast address.

    Use "255.255.255.255:2020" or a subnet broadcast such as
    "192.168.0.255:2020"; the latter is specific to your network.
    """
    target: SocketAddress

    def __post_init__(self):
        target = as_socket_address(self.target)
        if target.is_ipv6:
            raise ValueError(f"Broadcast is IPv4 only, got {target}")
        object.__setattr__(self, 'target', target)

    def __str__(self) -> str:
        return f"broadcast to {self.target}"


@dataclass(frozen=True)
class Multicast:
    """
    Announce to a multicast group.

    IPv4 groups ("224.0.0.1:1337") and IPv6 groups ("[ff0e::1]:1337") both work.
    """
    target: SocketAddress

    def __post_init__(self):
        target = as_socket_address(self.target)
        if not target.ip.is_multicast:
            raise ValueError(f"Not a multicast group: {target}")
        object.__setattr__(self, 'target', target)

    def __str__(self) -> str:
        return f"multicast to {self.target}"


Strategy = Union[Broadcast, Multicast]

METHODS = {
    'broadcast': Broadcast,
    'multicast': Multicast,
}


def parse_strategy(kind: str, target) -> Strategy:
    """
    Build a strategy from its name and target address.

    Args:
        kind: "broadcast" or "multicast"
        target: Target address (SocketAddress, tuple or "host:port")
    """
    try:
        method = METHODS[kind.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown method {kind!r} (use one of: {', '.join(METHODS)})"
        ) from None
    return method(as_socket_address(target))
