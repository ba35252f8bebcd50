"""
Discovery Receive Loop

Reads announcements off the receive socket, one datagram at a time, in the
order the socket delivers them:

1. Malformed datagrams are logged and dropped
2. Our own announcement (every method echoes it back) is ignored
3. Any other address is dialed through the dispatcher

A peer that announces twice is dialed twice. Nothing short of a receive
error or the stop event ends the loop.
"""

import logging
import socket
import threading
from dataclasses import dataclass
from typing import Optional

from ..log import trace
from .address import SocketAddress
from .codec import MAX_MESSAGE_LENGTH, decode_address
from .dispatcher import ConnectionDispatcher
from .errors import MalformedPacket, ReceiveError

logger = logging.getLogger(__name__)

# One byte past the largest message (19, not 18) so oversized datagrams are
# seen as such instead of being truncated into a valid-looking IPv6 message.
# Do not shrink this to MAX_MESSAGE_LENGTH.
RECEIVE_BUFFER_SIZE = MAX_MESSAGE_LENGTH + 1

DEFAULT_POLL_INTERVAL = 0.5


def check_poll_interval(poll_interval: float) -> float:
    """
    Validate a stop-event poll interval.

    Zero would put the receive socket in non-blocking mode and a negative
    timeout is rejected by the socket, so both are refused up front.

    Raises:
        ValueError: If poll_interval is not a positive number of seconds
    """
    if not poll_interval > 0:
        raise ValueError(f"poll_interval must be positive, got {poll_interval!r}")
    return poll_interval


@dataclass
class LoopStats:
    """Counters for one discovery run."""
    received: int = 0
    malformed: int = 0
    self_echoes: int = 0
    dispatched: int = 0


class DiscoveryLoop:
    """
    The receive side of a discovery run.

    The socket is borrowed from the transport and used exclusively by this
    loop until it returns.
    """

    def __init__(self, sock: socket.socket, advertised: SocketAddress,
                 dispatcher: ConnectionDispatcher,
                 stop_event: Optional[threading.Event] = None,
                 poll_interval: float = DEFAULT_POLL_INTERVAL):
        """
        Args:
            sock: Receive socket from the transport
            advertised: Our own announced address
            dispatcher: Dials every other address
            stop_event: When set, the loop ends at the next iteration
            poll_interval: Receive timeout used to check stop_event
        """
        self.sock = sock
        self.advertised = advertised
        self.dispatcher = dispatcher
        self.stop_event = stop_event
        self.poll_interval = check_poll_interval(poll_interval)
        self.stats = LoopStats()

        self._buffer = bytearray(RECEIVE_BUFFER_SIZE)
        self._receiving = False

    @property
    def is_receiving(self) -> bool:
        return self._receiving

    def run(self):
        """
        Receive until stopped.

        Without a stop event this only returns by raising.

        Raises:
            ReceiveError: If reading from the socket fails
        """
        if self.stop_event is not None:
            self.sock.settimeout(self.poll_interval)

        self._receiving = True
        try:
            while not self._should_stop():
                try:
                    nbytes, sender = self.sock.recvfrom_into(self._buffer)
                except socket.timeout:
                    continue
                except OSError as e:
                    logger.warning(f"It looks like I stopped listening; this shouldn't happen: {e}")
                    raise ReceiveError(f"Receive failed: {e}") from e

                self.handle_datagram(bytes(self._buffer[:nbytes]), sender)
        finally:
            self._receiving = False

        logger.info("Discovery loop stopped")

    def handle_datagram(self, data: bytes, sender=None) -> Optional[SocketAddress]:
        """
        Process one datagram.

        Returns:
            The address that was dispatched, or None if the datagram was
            dropped or was our own announcement
        """
        self.stats.received += 1

        try:
            peer = decode_address(data)
        except MalformedPacket as e:
            self.stats.malformed += 1
            logger.warning(f"Dropping malformed packet from {sender}; length was {e.length}")
            return None

        if peer == self.advertised:
            self.stats.self_echoes += 1
            trace(logger, "Saw announcement from myself, this should happen once")
            return None

        logger.debug(f"Discovered peer {peer} (from {sender})")
        self.stats.dispatched += 1
        self.dispatcher.dispatch(peer)
        return peer

    def _should_stop(self) -> bool:
        return self.stop_event is not None and self.stop_event.is_set()
