"""
autodiscover - Zero-config peer discovery on the LAN

Announce a TCP address you have already bound, hear the announcements of
other processes doing the same, and get an outbound connection to each of
them handed to your code.
"""

from .discovery import (
    SocketAddress,
    Broadcast,
    Multicast,
    Strategy,
    ConnectionResult,
    ConnectionHandler,
    CallbackHandler,
    ThreadedHandler,
    AsyncioHandler,
    DiscoveryService,
    DiscoveryError,
    SetupError,
    AnnounceError,
    MalformedPacket,
    ReceiveError,
    run,
)

__version__ = '0.1.0'

__all__ = [
    'SocketAddress',
    'Broadcast',
    'Multicast',
    'Strategy',
    'ConnectionResult',
    'ConnectionHandler',
    'CallbackHandler',
    'ThreadedHandler',
    'AsyncioHandler',
    'DiscoveryService',
    'DiscoveryError',
    'SetupError',
    'AnnounceError',
    'MalformedPacket',
    'ReceiveError',
    'run',
]
