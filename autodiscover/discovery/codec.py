"""
Announcement Wire Format

Design Decision: Message Format
===============================

Options Considered:
1. JSON - Human readable, needs a parser and a schema
2. Length-prefixed binary with a header - Extensible, more to validate
3. Raw packed address - Fixed size, nothing to version

Decision: Raw packed address
- The only thing a peer needs is where to connect
- The address family is implied by the datagram length
- Anything that is not exactly 6 or 18 bytes is rejected

Message Format:
```
IPv4 (6 bytes):  | address (4B) | port (2B, big-endian) |
IPv6 (18 bytes): | address (16B) | port (2B, big-endian) |
```
"""

import ipaddress
import struct

from .address import SocketAddress
from .errors import MalformedPacket

IPV4_MESSAGE_LENGTH = 6
IPV6_MESSAGE_LENGTH = 18
MAX_MESSAGE_LENGTH = IPV6_MESSAGE_LENGTH

_PORT = struct.Struct('>H')


def encode_address(addr: SocketAddress) -> bytes:
    """Pack an address into its 6- or 18-byte wire form."""
    return addr.ip.packed + _PORT.pack(addr.port)


def decode_address(data: bytes) -> SocketAddress:
    """
    Unpack a wire message.

    Args:
        data: Exactly the bytes of one datagram

    Returns:
        The announced address

    Raises:
        MalformedPacket: If the length is neither 6 nor 18
    """
    length = len(data)
    if length == IPV4_MESSAGE_LENGTH:
        ip = ipaddress.IPv4Address(bytes(data[0:4]))
    elif length == IPV6_MESSAGE_LENGTH:
        ip = ipaddress.IPv6Address(bytes(data[0:16]))
    else:
        raise MalformedPacket(length)

    port, = _PORT.unpack_from(data, length - 2)
    return SocketAddress(ip, port)
