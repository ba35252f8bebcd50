"""
Discovery Entry Point

    listener = socket.create_server(("0.0.0.0", 0))
    advertised = ("192.168.0.10", listener.getsockname()[1])

    # blocks; run it on its own thread
    run(advertised, Broadcast("255.255.255.255:2020"), ThreadedHandler(handle_client))

Make sure the listener is bound before announcing: peers start dialing as
soon as they hear from us.
"""

import logging
import socket
import threading
from typing import Optional

from .address import as_socket_address
from .codec import encode_address
from .dispatcher import ConnectionDispatcher, HandlerLike
from .loop import DEFAULT_POLL_INTERVAL, DiscoveryLoop, check_poll_interval
from .method import Strategy
from .transport import AnnounceTransport, SocketFactory

logger = logging.getLogger(__name__)


def run(advertised_address, strategy: Strategy, on_connection: HandlerLike,
        stop_event: Optional[threading.Event] = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        socket_factory: SocketFactory = socket.socket) -> None:
    """
    Announce our address once, then connect to every peer we hear from.

    Blocks until stop_event is set; without one it only returns by raising.
    on_connection runs inline with the receive loop for every peer and
    should return right away.

    Args:
        advertised_address: Address of our already-bound listener
            (SocketAddress, (host, port) tuple or "host:port")
        strategy: Broadcast or Multicast target
        on_connection: ConnectionHandler or callable taking a ConnectionResult
        stop_event: Optional event that ends the run
        poll_interval: How often the loop checks stop_event, in seconds
        socket_factory: Creates the UDP sockets

    Raises:
        SetupError: If the UDP socket could not be configured
        AnnounceError: If the announcement could not be sent
        ReceiveError: If receiving failed
        ValueError: If poll_interval is not positive
    """
    advertised = as_socket_address(advertised_address)
    check_poll_interval(poll_interval)
    dispatcher = ConnectionDispatcher(on_connection)

    with AnnounceTransport(strategy, socket_factory=socket_factory) as transport:
        transport.send_announcement(encode_address(advertised))

        loop = DiscoveryLoop(
            transport.receive_loop_socket(),
            advertised,
            dispatcher,
            stop_event=stop_event,
            poll_interval=poll_interval,
        )
        logger.info(f"Listening for peers as {advertised}")
        loop.run()

    stats = loop.stats
    logger.info(
        f"Discovery run finished: {stats.received} received, {stats.dispatched} dispatched, "
        f"{stats.malformed} malformed, {stats.self_echoes} self"
    )
