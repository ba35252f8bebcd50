"""Tests for the discovery entry point."""

import threading
import time
from unittest.mock import MagicMock, patch

import pytest

from autodiscover.discovery import (
    AnnounceError,
    Broadcast,
    Multicast,
    ReceiveError,
    SetupError,
    SocketAddress,
    encode_address,
    run,
)

from .fakes import FakeSegment


def make_socket():
    sock = MagicMock()
    sock.__enter__.return_value = sock
    sock.sendto.side_effect = lambda data, addr: len(data)
    return sock


class TestRun:
    """Tests for run() with mocked sockets."""

    def test_ipv6_multicast_send_and_receive_sockets(self):
        """The temporary socket announces; the joined socket receives."""
        joined = make_socket()
        sender = make_socket()
        joined.recvfrom_into.side_effect = OSError("interface went away")
        factory = MagicMock(side_effect=[joined, sender])
        handler = MagicMock()

        with pytest.raises(ReceiveError):
            run("[::1]:5000", Multicast("[ff0e::1]:1337"), handler, socket_factory=factory)

        payload = encode_address(SocketAddress.parse("[::1]:5000"))
        sender.sendto.assert_called_once_with(payload, ('ff0e::1', 1337, 0, 0))
        joined.sendto.assert_not_called()
        joined.recvfrom_into.assert_called_once()
        sender.recvfrom_into.assert_not_called()
        joined.close.assert_called_once()
        handler.on_connected.assert_not_called()

    def test_setup_error_before_announcing(self):
        sock = make_socket()
        sock.bind.side_effect = OSError("Address already in use")
        factory = MagicMock(return_value=sock)

        with pytest.raises(SetupError):
            run(("10.0.0.5", 4000), Broadcast("10.0.0.255:2020"), MagicMock(), socket_factory=factory)

        sock.sendto.assert_not_called()
        sock.recvfrom_into.assert_not_called()

    def test_announce_error_closes_socket(self):
        sock = make_socket()
        sock.sendto.side_effect = OSError("Network is unreachable")
        factory = MagicMock(return_value=sock)

        with pytest.raises(AnnounceError):
            run("10.0.0.5:4000", Broadcast("10.0.0.255:2020"), MagicMock(), socket_factory=factory)

        sock.recvfrom_into.assert_not_called()
        sock.close.assert_called_once()

    def test_stop_event_returns_normally(self):
        sock = make_socket()
        factory = MagicMock(return_value=sock)
        stop = threading.Event()
        stop.set()

        assert run("10.0.0.5:4000", Broadcast("10.0.0.255:2020"), MagicMock(),
                   stop_event=stop, poll_interval=0.2, socket_factory=factory) is None

        sock.sendto.assert_called_once_with(encode_address(SocketAddress.parse("10.0.0.5:4000")),
                                            ('10.0.0.255', 2020))
        sock.settimeout.assert_called_once_with(0.2)
        sock.close.assert_called_once()

    @pytest.mark.parametrize('interval', [0, -0.5])
    def test_invalid_poll_interval_before_any_socket(self, interval):
        factory = MagicMock()

        with pytest.raises(ValueError):
            run("10.0.0.5:4000", Broadcast("10.0.0.255:2020"), MagicMock(),
                stop_event=threading.Event(), poll_interval=interval, socket_factory=factory)

        factory.assert_not_called()


class TestBroadcastRoundTrip:
    """Nodes on one fake broadcast segment find each other."""

    node_a = SocketAddress.parse("10.0.0.5:4000")
    node_b = SocketAddress.parse("10.0.0.9:4001")
    method = Broadcast("10.0.0.255:2020")

    def start_nodes(self, segment, stop, results, wait_for_first_bind=False):
        def node(address):
            run(address, self.method, results[address].append,
                stop_event=stop, poll_interval=0.05, socket_factory=segment.socket)

        threads = []
        for address in (self.node_a, self.node_b):
            thread = threading.Thread(target=node, args=(address,), daemon=True)
            thread.start()
            threads.append(thread)
            if wait_for_first_bind:
                for _ in range(500):
                    if segment.sockets and segment.sockets[0].port == 2020:
                        break
                    time.sleep(0.01)
        return threads

    def test_simultaneous_start_dials_both_ways(self):
        segment = FakeSegment(simultaneous=2)
        results = {self.node_a: [], self.node_b: []}
        stop = threading.Event()

        def fake_connect(sockaddr):
            return MagicMock(name=f"stream-{sockaddr}")

        def wait_for_results():
            for _ in range(500):
                if results[self.node_a] and results[self.node_b]:
                    return True
                time.sleep(0.01)
            return False

        with patch('autodiscover.discovery.dispatcher.socket.create_connection', side_effect=fake_connect):
            threads = self.start_nodes(segment, stop, results)
            try:
                assert wait_for_results()
            finally:
                stop.set()
                for thread in threads:
                    thread.join(5)

        assert [r.address for r in results[self.node_a]] == [self.node_b]
        assert [r.address for r in results[self.node_b]] == [self.node_a]
        assert all(r.ok for r in results[self.node_a] + results[self.node_b])
        assert all(sock.closed for sock in segment.sockets)

    def test_late_joiner_is_dialed_by_earlier_node(self, segment):
        results = {self.node_a: [], self.node_b: []}
        stop = threading.Event()
        dialed = []

        def fake_connect(sockaddr):
            dialed.append(sockaddr)
            raise ConnectionRefusedError("refused")

        with patch('autodiscover.discovery.dispatcher.socket.create_connection', side_effect=fake_connect):
            threads = self.start_nodes(segment, stop, results, wait_for_first_bind=True)
            try:
                for _ in range(500):
                    if results[self.node_a]:
                        break
                    time.sleep(0.01)
            finally:
                stop.set()
                for thread in threads:
                    thread.join(5)

        # A heard B's announcement; B only heard itself
        assert dialed == [('10.0.0.9', 4001)]
        assert [r.address for r in results[self.node_a]] == [self.node_b]
        assert isinstance(results[self.node_a][0].error, ConnectionRefusedError)
        assert results[self.node_b] == []
