"""Exceptions raised by the discovery core."""


class DiscoveryError(Exception):
    """Base class for discovery errors."""


class SetupError(DiscoveryError):
    """Socket creation, option, bind or group join failed before announcing."""


class AnnounceError(DiscoveryError):
    """The one-shot announcement could not be sent."""


class MalformedPacket(DiscoveryError):
    """A received datagram is not a valid wire message."""

    def __init__(self, length: int):
        super().__init__(f"Malformed packet; length was {length}")
        self.length = length


class ReceiveError(DiscoveryError):
    """Reading from the receive socket failed; the loop cannot continue."""
