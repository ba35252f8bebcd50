"""Shared fixtures."""

import socket

import pytest

from autodiscover.discovery import SocketAddress

from .fakes import FakeSegment


@pytest.fixture
def segment():
    return FakeSegment()


@pytest.fixture
def tcp_listener():
    """A TCP listener on loopback; yields (socket, SocketAddress)."""
    listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    listener.bind(('127.0.0.1', 0))
    listener.listen(8)
    yield listener, SocketAddress.from_sockaddr(listener.getsockname())
    listener.close()


@pytest.fixture
def closed_port_address():
    """A loopback address nothing is listening on."""
    probe = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    probe.bind(('127.0.0.1', 0))
    address = SocketAddress.from_sockaddr(probe.getsockname())
    probe.close()
    return address
