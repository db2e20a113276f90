"""Tests for the control channel round trip."""

import logging

import pytest

from itedtv.codec import ControlChannel
from itedtv.exceptions import (
    DeviceError,
    InvalidChecksumError,
    InvalidLengthError,
    InvalidSequenceError,
    ResponseLengthError,
    TimeoutError,
)
from itedtv.protocol.constants import CommandCode
from itedtv.protocol.frames import decode_request, encode_response
from itedtv.transport.mock import MockTransport


@pytest.fixture
def transport():
    """Create an open MockTransport with no responses queued."""
    mock = MockTransport()
    mock.open()
    return mock


@pytest.fixture
def channel(transport):
    """Create a ControlChannel starting at sequence 0."""
    return ControlChannel(transport)


class TestSequence:
    """Tests for sequence number allocation."""

    def test_increments(self, bridge, mock_transport):
        """Test that consecutive exchanges use consecutive sequences."""
        channel = ControlChannel(mock_transport)
        for _ in range(3):
            channel.exchange(CommandCode.QUERYINFO, b"\x01", 4)
        assert [r.sequence for r in bridge.requests] == [0, 1, 2]

    def test_wraps_at_256(self, bridge, mock_transport):
        """Test that the sequence wraps from 255 to 0."""
        channel = ControlChannel(mock_transport, initial_sequence=254)
        for _ in range(3):
            channel.exchange(CommandCode.QUERYINFO, b"\x01", 4)
        assert [r.sequence for r in bridge.requests] == [254, 255, 0]

    def test_next_sequence(self, transport):
        """Test direct allocation."""
        channel = ControlChannel(transport, initial_sequence=255)
        assert channel.next_sequence() == 255
        assert channel.next_sequence() == 0


class TestExchange:
    """Tests for response validation in exchange()."""

    def test_returns_requested_prefix(self, channel, transport):
        """Test that only read_length payload bytes are returned."""
        transport.add_response(encode_response(0, 0, b"\x01\x02\x03\x04\x05"))
        assert channel.exchange(CommandCode.QUERYINFO, b"\x01", 4) == b"\x01\x02\x03\x04"

    def test_no_read_length_returns_empty(self, channel, transport):
        """Test commands without response payload."""
        transport.add_response(encode_response(0))
        assert channel.exchange(CommandCode.BOOT) == b""

    def test_request_frame_sent(self, channel, transport):
        """Test that the encoded request goes out on the control endpoint."""
        transport.add_response(encode_response(0))
        channel.exchange(CommandCode.REG_WRITE, b"\x01\x02\x00\x00\xf1\x03\x07")
        request = decode_request(transport.last_sent)
        assert request.command == CommandCode.REG_WRITE
        assert request.payload == b"\x01\x02\x00\x00\xf1\x03\x07"

    def test_sequence_mismatch(self, channel, transport):
        """Test that a response for another sequence is rejected."""
        transport.add_response(encode_response(9, 0, b"\x00\x00\x00\x01"))
        with pytest.raises(InvalidSequenceError) as exc_info:
            channel.exchange(CommandCode.QUERYINFO, b"\x01", 4)
        assert exc_info.value.expected == 0
        assert exc_info.value.received == 9

    def test_bad_checksum(self, channel, transport):
        """Test that a corrupted response is rejected."""
        raw = bytearray(encode_response(0, 0, b"\x00\x00\x00\x01"))
        raw[-1] ^= 0x01
        transport.add_response(bytes(raw))
        with pytest.raises(InvalidChecksumError):
            channel.exchange(CommandCode.QUERYINFO, b"\x01", 4)

    def test_short_response(self, channel, transport):
        """Test that fewer than 5 bytes is a length error."""
        transport.add_response(b"\x03\x00\x00\xff")
        with pytest.raises(ResponseLengthError):
            channel.exchange(CommandCode.QUERYINFO, b"\x01", 4)

    def test_declared_length_past_received(self, channel, transport):
        """Test that the declared length is bounded by what arrived."""
        raw = bytearray(encode_response(0, 0, b"\x00\x00\x00\x01"))
        raw[0] = 0xF0
        transport.add_response(bytes(raw))
        with pytest.raises(ResponseLengthError):
            channel.exchange(CommandCode.QUERYINFO, b"\x01", 4)

    def test_checksum_checked_before_sequence(self, channel, transport):
        """Test validation order: checksum failure wins over wrong sequence."""
        raw = bytearray(encode_response(9))
        raw[-2] ^= 0xFF
        transport.add_response(bytes(raw))
        with pytest.raises(InvalidChecksumError):
            channel.exchange(CommandCode.BOOT)

    def test_device_status(self, channel, transport):
        """Test that a nonzero status raises DeviceError with the raw code."""
        transport.add_response(encode_response(0, 0x21))
        with pytest.raises(DeviceError) as exc_info:
            channel.exchange(CommandCode.REG_READ, b"\x01\x01\x00\x00\x00\x00", 1)
        assert exc_info.value.status == 0x21

    def test_payload_shorter_than_requested(self, channel, transport):
        """Test that a short payload is a length error."""
        transport.add_response(encode_response(0, 0, b"\x01\x02"))
        with pytest.raises(ResponseLengthError) as exc_info:
            channel.exchange(CommandCode.QUERYINFO, b"\x01", 4)
        assert exc_info.value.expected == 4
        assert exc_info.value.received == 2

    def test_oversized_request_sends_nothing(self, channel, transport):
        """Test that a frame too long for the length byte is never sent."""
        with pytest.raises(InvalidLengthError):
            channel.exchange(CommandCode.REG_WRITE, bytes(251))
        transport.assert_sent_count(0)

    def test_timeout_propagates(self, channel, transport):
        """Test that a missing response surfaces as a transport timeout."""
        with pytest.raises(TimeoutError):
            channel.exchange(CommandCode.QUERYINFO, b"\x01", 4)

    def test_debug_logging(self, channel, transport, caplog):
        """Test that frames are hex-dumped at debug level."""
        transport.add_response(encode_response(0))
        with caplog.at_level(logging.DEBUG, logger="itedtv.codec"):
            channel.exchange(CommandCode.BOOT)
        assert "CTRL_MSG TX BOOT" in caplog.text
        assert "CTRL_MSG RX" in caplog.text
