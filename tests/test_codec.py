"""Tests for the announcement wire format."""

import ipaddress

import pytest

from autodiscover.discovery import SocketAddress, MalformedPacket, encode_address, decode_address
from autodiscover.discovery.codec import IPV4_MESSAGE_LENGTH, IPV6_MESSAGE_LENGTH


class TestEncode:
    """Tests for encode_address."""

    def test_ipv4_layout(self):
        """Address octets followed by the big-endian port."""
        data = encode_address(SocketAddress.parse("10.0.0.5:4000"))

        assert data == bytes([10, 0, 0, 5, 0x0F, 0xA0])
        assert len(data) == IPV4_MESSAGE_LENGTH

    def test_ipv6_layout(self):
        data = encode_address(SocketAddress.parse("[::1]:5000"))

        assert len(data) == IPV6_MESSAGE_LENGTH
        assert data[:16] == bytes(15) + b'\x01'
        assert data[16:] == b'\x13\x88'

    def test_port_extremes(self):
        assert encode_address(SocketAddress.parse("1.2.3.4:0"))[4:] == b'\x00\x00'
        assert encode_address(SocketAddress.parse("1.2.3.4:65535"))[4:] == b'\xff\xff'


class TestDecode:
    """Tests for decode_address."""

    def test_ipv4(self):
        addr = decode_address(bytes([192, 168, 1, 20, 0x1F, 0x90]))

        assert addr.ip == ipaddress.IPv4Address("192.168.1.20")
        assert addr.port == 8080

    def test_ipv6(self):
        data = ipaddress.IPv6Address("fe80::abcd").packed + b'\x05\x39'

        addr = decode_address(data)

        assert addr.ip == ipaddress.IPv6Address("fe80::abcd")
        assert addr.port == 1337

    def test_accepts_bytearray(self):
        addr = decode_address(bytearray([127, 0, 0, 1, 0, 80]))

        assert addr == SocketAddress.parse("127.0.0.1:80")

    @pytest.mark.parametrize("length", [0, 1, 3, 5, 7, 16, 17, 19, 64])
    def test_rejects_other_lengths(self, length):
        with pytest.raises(MalformedPacket) as exc_info:
            decode_address(bytes(length))

        assert exc_info.value.length == length

    @pytest.mark.parametrize("text", [
        "10.0.0.5:4000",
        "255.255.255.255:2020",
        "0.0.0.0:1",
        "[::1]:5000",
        "[ff0e::1]:1337",
        "[2001:db8::8a2e:370:7334]:65535",
    ])
    def test_round_trip(self, text):
        addr = SocketAddress.parse(text)

        assert decode_address(encode_address(addr)) == addr
