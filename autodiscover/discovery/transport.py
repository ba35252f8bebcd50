"""
UDP Announce Transport

Owns the socket configuration for one announcement method.

Broadcast:
- One IPv4 socket with SO_BROADCAST, bound to the target port on all
  interfaces. It sends the announcement and then receives on the same port.

Multicast:
- One socket of the group's family, bound to the group address and joined
  to the group (any interface). This is the receive socket.
- Sending to a group through the socket that joined it does not work on
  every stack, so the announcement goes out through a second socket bound to
  an ephemeral port, which is closed straight after.
"""

import logging
import socket
import struct
from typing import Callable, Optional

from .errors import AnnounceError, SetupError
from .method import Broadcast, Multicast, Strategy

logger = logging.getLogger(__name__)

SocketFactory = Callable[..., socket.socket]

# IPv4 multicast: join on whatever interface the kernel picks
ANY_INTERFACE_V4 = socket.inet_aton('0.0.0.0')
ANY_INTERFACE_V6 = 0


class AnnounceTransport:
    """
    UDP socket(s) for one discovery run.

    Use as a context manager so the receive socket is closed however the
    run ends:

        with AnnounceTransport(strategy) as transport:
            transport.send_announcement(payload)
            sock = transport.receive_loop_socket()
    """

    def __init__(self, strategy: Strategy, socket_factory: SocketFactory = socket.socket):
        """
        Args:
            strategy: Broadcast or Multicast target
            socket_factory: Creates sockets; same signature as socket.socket
        """
        if not isinstance(strategy, (Broadcast, Multicast)):
            raise TypeError(f"Unknown announcement method: {strategy!r}")
        self.strategy = strategy
        self._socket_factory = socket_factory
        self._socket: Optional[socket.socket] = None

    @property
    def target(self):
        return self.strategy.target

    @property
    def is_open(self) -> bool:
        return self._socket is not None

    def open(self):
        """
        Create and configure the receive socket.

        Raises:
            SetupError: If any socket call fails; nothing stays open
        """
        if self._socket is not None:
            return

        try:
            sock = self._socket_factory(self.target.family, socket.SOCK_DGRAM)
        except OSError as e:
            raise SetupError(f"Could not create UDP socket: {e}") from e

        try:
            if isinstance(self.strategy, Broadcast):
                self._configure_broadcast(sock)
            else:
                self._configure_multicast(sock)
        except OSError as e:
            sock.close()
            raise SetupError(f"Could not set up {self._method_name} socket for {self.target}: {e}") from e

        self._socket = sock
        logger.info(f"{self._method_name.capitalize()} transport ready on {self.target}")

    def close(self):
        """Close the receive socket (safe to call more than once)."""
        if self._socket:
            self._socket.close()
            self._socket = None
            logger.debug(f"{self._method_name.capitalize()} transport closed")

    def receive_loop_socket(self) -> socket.socket:
        """The socket all announcements are received on."""
        if self._socket is None:
            raise RuntimeError("Transport is not open")
        return self._socket

    def send_announcement(self, payload: bytes) -> int:
        """
        Send one announcement datagram to the target.

        Returns:
            Number of bytes sent

        Raises:
            AnnounceError: If the datagram could not be sent
        """
        if self._socket is None:
            raise RuntimeError("Transport is not open")

        try:
            if isinstance(self.strategy, Broadcast):
                sent = self._socket.sendto(payload, self.target.to_sockaddr())
            else:
                sent = self._send_multicast(payload)
        except OSError as e:
            raise AnnounceError(f"Could not announce to {self.target}: {e}") from e

        logger.info(f"Sent {sent} byte announcement to {self.target}")
        return sent

    def __enter__(self) -> 'AnnounceTransport':
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    @property
    def _method_name(self) -> str:
        return 'broadcast' if isinstance(self.strategy, Broadcast) else 'multicast'

    def _enable_reuse(self, sock: socket.socket):
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # Several processes on one host may listen on the same port
        if hasattr(socket, 'SO_REUSEPORT'):
            try:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
            except OSError as e:
                logger.debug(f"SO_REUSEPORT not supported: {e}")

    def _configure_broadcast(self, sock: socket.socket):
        self._enable_reuse(sock)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
        sock.bind(('', self.target.port))

    def _configure_multicast(self, sock: socket.socket):
        group = self.target.ip

        self._enable_reuse(sock)
        sock.bind(self.target.to_sockaddr())

        if self.target.is_ipv6:
            mreq = struct.pack('16sI', group.packed, ANY_INTERFACE_V6)
            sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_JOIN_GROUP, mreq)
        else:
            mreq = struct.pack('4s4s', group.packed, ANY_INTERFACE_V4)
            sock.setsockopt(socket.IPPROTO_IP, socket.IP_ADD_MEMBERSHIP, mreq)

        logger.debug(f"Joined multicast group {group}")

    def _send_multicast(self, payload: bytes) -> int:
        wildcard = '::' if self.target.is_ipv6 else ''
        with self._socket_factory(self.target.family, socket.SOCK_DGRAM) as sender:
            sender.bind((wildcard, 0))
            return sender.sendto(payload, self.target.to_sockaddr())
