"""
Discovery Module - Peer Discovery on LAN

Announce a bound TCP address over UDP broadcast or multicast and connect
to every other process that does the same.
"""

from .address import SocketAddress, as_socket_address, get_local_ip
from .codec import encode_address, decode_address
from .errors import DiscoveryError, SetupError, AnnounceError, MalformedPacket, ReceiveError
from .method import Broadcast, Multicast, Strategy, parse_strategy
from .transport import AnnounceTransport
from .dispatcher import (
    ConnectionResult,
    ConnectionHandler,
    CallbackHandler,
    ThreadedHandler,
    AsyncioHandler,
    ConnectionDispatcher,
)
from .loop import DiscoveryLoop, LoopStats, check_poll_interval
from .runner import run
from .service import DiscoveryService

__all__ = [
    'SocketAddress',
    'as_socket_address',
    'get_local_ip',
    'encode_address',
    'decode_address',
    'DiscoveryError',
    'SetupError',
    'AnnounceError',
    'MalformedPacket',
    'ReceiveError',
    'Broadcast',
    'Multicast',
    'Strategy',
    'parse_strategy',
    'AnnounceTransport',
    'ConnectionResult',
    'ConnectionHandler',
    'CallbackHandler',
    'ThreadedHandler',
    'AsyncioHandler',
    'ConnectionDispatcher',
    'DiscoveryLoop',
    'LoopStats',
    'check_poll_interval',
    'run',
    'DiscoveryService',
]
