"""
Connection Dispatch

Turns a discovered address into an outbound TCP connection and hands the
outcome to caller code.

The dispatcher itself is synchronous: the connect runs inline with the
receive loop and so does the handler. Handlers that do real work should
hand the result off elsewhere; ThreadedHandler and AsyncioHandler do that
for the two common cases.
"""

import asyncio
import logging
import socket
import threading
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Protocol, Set, Union, runtime_checkable

from .address import SocketAddress

logger = logging.getLogger(__name__)


@dataclass
class ConnectionResult:
    """Outcome of one connection attempt: a stream or the error."""
    address: SocketAddress
    stream: Optional[socket.socket] = None
    error: Optional[OSError] = None

    @property
    def ok(self) -> bool:
        return self.stream is not None

    def unwrap(self) -> socket.socket:
        """Return the stream, or raise the connection error."""
        if self.error is not None:
            raise self.error
        return self.stream


@runtime_checkable
class ConnectionHandler(Protocol):
    """Receives every connection attempt the dispatcher makes."""

    def on_connected(self, result: ConnectionResult) -> None:
        ...


ResultCallback = Callable[[ConnectionResult], None]
HandlerLike = Union[ConnectionHandler, ResultCallback]


class CallbackHandler:
    """Calls a plain function inline."""

    def __init__(self, callback: ResultCallback):
        self.callback = callback

    def on_connected(self, result: ConnectionResult) -> None:
        self.callback(result)


class ThreadedHandler:
    """Runs the callback on a new daemon thread per connection."""

    def __init__(self, callback: ResultCallback, name: str = 'autodiscover-conn'):
        self.callback = callback
        self.name = name

    def on_connected(self, result: ConnectionResult) -> None:
        thread = threading.Thread(
            target=self.callback,
            args=(result,),
            name=f"{self.name}-{result.address}",
            daemon=True,
        )
        thread.start()


class AsyncioHandler:
    """
    Schedules a coroutine per connection on an asyncio event loop.

    The discovery loop runs on its own thread, so tasks are created with
    call_soon_threadsafe. Streams are handed over as-is; convert them with
    asyncio.open_connection(sock=result.stream) inside the coroutine.
    """

    def __init__(self, coro_fn: Callable[[ConnectionResult], Awaitable[None]],
                 loop: Optional[asyncio.AbstractEventLoop] = None):
        """
        Args:
            coro_fn: Coroutine function called with each result
            loop: Target loop (defaults to the running loop)
        """
        self.coro_fn = coro_fn
        self.loop = loop or asyncio.get_running_loop()
        self._tasks: Set[asyncio.Task] = set()

    def on_connected(self, result: ConnectionResult) -> None:
        self.loop.call_soon_threadsafe(self._spawn, result)

    def _spawn(self, result: ConnectionResult):
        task = self.loop.create_task(self.coro_fn(result))
        # The loop only keeps weak references to tasks
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)


def as_handler(handler: HandlerLike) -> ConnectionHandler:
    """Wrap a plain callable; pass handler objects through."""
    if isinstance(handler, ConnectionHandler):
        return handler
    if callable(handler):
        return CallbackHandler(handler)
    raise TypeError(f"Not a connection handler: {handler!r}")


class ConnectionDispatcher:
    """Connects to discovered peers and reports each attempt."""

    def __init__(self, handler: HandlerLike,
                 connect: Optional[Callable[..., socket.socket]] = None):
        """
        Args:
            handler: ConnectionHandler or callable taking a ConnectionResult
            connect: Opens the TCP stream (defaults to socket.create_connection)
        """
        self.handler = as_handler(handler)
        self._connect = connect or socket.create_connection

    def dispatch(self, address: SocketAddress) -> ConnectionResult:
        """
        Connect to a peer and call the handler exactly once.

        A failed connect is reported through the handler, not raised. No
        retries, and the platform default connect timeout applies.

        Args:
            address: Discovered peer address

        Returns:
            The result that was passed to the handler
        """
        logger.debug(f"Connecting to {address}")
        try:
            stream = self._connect((str(address.ip), address.port))
            result = ConnectionResult(address, stream=stream)
            logger.info(f"Connected to peer {address}")
        except OSError as e:
            result = ConnectionResult(address, error=e)
            logger.info(f"Could not connect to peer {address}: {e}")

        try:
            self.handler.on_connected(result)
        except Exception as e:
            logger.error(f"Connection handler error for {address}: {e}")

        return result
