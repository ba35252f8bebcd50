"""
Background Discovery Service

Runs a discovery run on a daemon thread so the caller's own accept loop
can keep the main thread, and gives it a start/stop lifecycle.
"""

import logging
import threading
from typing import Optional

from .address import SocketAddress, as_socket_address
from .dispatcher import HandlerLike
from .loop import DEFAULT_POLL_INTERVAL, check_poll_interval
from .method import Strategy
from .runner import run

logger = logging.getLogger(__name__)


class DiscoveryService:
    """
    Discovery on a background thread.

    If the run dies (setup, announce or receive failure) the exception is
    kept in `error` and the service stops running.
    """

    def __init__(self, advertised, strategy: Strategy, handler: HandlerLike,
                 poll_interval: float = DEFAULT_POLL_INTERVAL):
        """
        Args:
            advertised: Address of our already-bound listener
            strategy: Broadcast or Multicast target
            handler: Receives each connection attempt
            poll_interval: How often the loop checks for stop(), in seconds
        """
        self.advertised: SocketAddress = as_socket_address(advertised)
        self.strategy = strategy
        self.handler = handler
        self.poll_interval = check_poll_interval(poll_interval)

        self.error: Optional[BaseException] = None
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, timeout: Optional[float] = None):
        """
        Start discovery on a background thread.

        Does nothing if discovery is already running. If an earlier stop()
        timed out, the old thread is joined first (up to timeout seconds).

        Returns:
            True if a new run was started
        """
        if self.is_running:
            if not self._stop_event.is_set():
                return False

            self._thread.join(timeout)
            if self._thread.is_alive():
                logger.warning("Previous discovery thread is still stopping; not restarting")
                return False

        self.error = None
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run,
            name=f"autodiscover-{self.advertised}",
            daemon=True,
        )
        self._thread.start()
        logger.info(f"Discovery started for {self.advertised} via {self.strategy}")
        return True

    def stop(self, timeout: Optional[float] = None):
        """Ask the loop to stop and wait for the thread to exit."""
        self._stop_event.set()

        if self._thread:
            self._thread.join(timeout)
            if self._thread.is_alive():
                logger.warning("Discovery thread did not stop in time")
                return
            self._thread = None

        logger.info("Discovery stopped")

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the run to end on its own.

        Returns:
            True if the thread has exited
        """
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def _run(self):
        try:
            run(
                self.advertised,
                self.strategy,
                self.handler,
                stop_event=self._stop_event,
                poll_interval=self.poll_interval,
            )
        except Exception as e:
            self.error = e
            logger.error(f"Discovery failed: {e}")
