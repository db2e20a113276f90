"""Tests for MockTransport."""

import pytest

from itedtv.codec import ControlChannel
from itedtv.exceptions import DeviceError, TimeoutError, TransportError
from itedtv.protocol.constants import CommandCode
from itedtv.protocol.frames import decode_response, encode_request
from itedtv.transport.mock import MockTransport, ScriptedMockTransport


class TestMockTransport:
    """Tests for MockTransport class."""

    @pytest.fixture
    def transport(self):
        """Create a MockTransport instance."""
        return MockTransport()

    def test_open_close(self, transport):
        """Test opening and closing transport."""
        assert not transport.is_open
        transport.open()
        assert transport.is_open
        transport.close()
        assert not transport.is_open

    def test_double_open_raises(self, transport):
        """Test that opening twice raises error."""
        transport.open()
        with pytest.raises(TransportError):
            transport.open()

    def test_send_records_data(self, transport):
        """Test that control_send records frames."""
        transport.open()
        transport.control_send(b"hello")
        transport.control_send(b"world")
        assert transport.sent_frames == [b"hello", b"world"]
        assert transport.last_sent == b"world"

    def test_send_when_closed_raises(self, transport):
        """Test that sending on a closed transport raises."""
        with pytest.raises(TransportError):
            transport.control_send(b"test")

    def test_receive_one_response_per_call(self, transport):
        """Test that each receive returns exactly one queued response."""
        transport.open()
        transport.add_responses(b"\x01\x02", b"\x03")
        assert transport.control_receive(256) == b"\x01\x02"
        assert transport.control_receive(256) == b"\x03"

    def test_receive_truncates_to_size(self, transport):
        """Test that a response longer than the buffer is cut."""
        transport.open()
        transport.add_response(b"hello world")
        assert transport.control_receive(5) == b"hello"

    def test_receive_no_data_raises(self, transport):
        """Test that receiving with nothing queued raises timeout."""
        transport.open()
        with pytest.raises(TimeoutError):
            transport.control_receive()

    def test_clear(self, transport):
        """Test clearing transport state."""
        transport.open()
        transport.control_send(b"test")
        transport.add_response(b"\x86")
        transport.clear()
        assert transport.sent_frames == []
        with pytest.raises(TimeoutError):
            transport.control_receive()

    def test_response_callback(self, transport):
        """Test dynamic response callback."""
        transport.open()
        transport.set_response_callback(lambda data: data[::-1])
        transport.control_send(b"\x01\x02")
        assert transport.control_receive() == b"\x02\x01"

    def test_callback_returning_none(self, transport):
        """Test that a None from the callback queues nothing."""
        transport.open()
        transport.set_response_callback(lambda data: None)
        transport.control_send(b"\x01")
        with pytest.raises(TimeoutError):
            transport.control_receive()

    def test_stream(self, transport):
        """Test streaming reads."""
        transport.open()
        transport.add_stream_data(b"\x47\x00")
        with pytest.raises(TransportError):
            transport.bulk_stream_receive(188, 1.0)
        transport.start_streaming()
        assert transport.is_streaming
        assert transport.bulk_stream_receive(188, 1.0) == b"\x47\x00"
        with pytest.raises(TimeoutError) as exc_info:
            transport.bulk_stream_receive(188, 1.0)
        assert exc_info.value.timeout_seconds == 1.0

    def test_context_manager(self):
        """Test context manager protocol."""
        with MockTransport() as transport:
            assert transport.is_open
            transport.start_streaming()
        assert not transport.is_open
        assert not transport.is_streaming

    def test_max_bulk_transfer_size(self):
        """Test the configured packet size."""
        assert MockTransport(max_packet_size=1024).max_bulk_transfer_size() == 1024

    def test_assert_sent(self, transport):
        """Test assert_sent helper."""
        transport.open()
        transport.control_send(b"test")
        transport.assert_sent(b"test")
        transport.assert_sent(b"test", 0)
        with pytest.raises(AssertionError):
            transport.assert_sent(b"wrong")

    def test_assert_sent_count(self, transport):
        """Test assert_sent_count helper."""
        transport.open()
        transport.control_send(b"a")
        transport.control_send(b"b")
        transport.assert_sent_count(2)
        with pytest.raises(AssertionError):
            transport.assert_sent_count(3)


class TestScriptedMockTransport:
    """Tests for ScriptedMockTransport class."""

    @pytest.fixture
    def transport(self):
        """Create an open ScriptedMockTransport instance."""
        mock = ScriptedMockTransport()
        mock.open()
        return mock

    def test_scripted_exchanges(self, transport):
        """Test that steps answer in order and echo the request sequence."""
        transport.expect(CommandCode.QUERYINFO, payload=b"\x00\x00\x00\x00")
        transport.expect(CommandCode.BOOT)
        channel = ControlChannel(transport, initial_sequence=0x42)

        assert channel.exchange(CommandCode.QUERYINFO, b"\x01", 4) == b"\x00\x00\x00\x00"
        channel.exchange(CommandCode.BOOT)
        transport.assert_done()

    def test_scripted_any_command(self, transport):
        """Test that a step without command matches anything."""
        transport.expect(payload=b"\x99")
        transport.control_send(encode_request(CommandCode.REG_READ, 7, b"\x01\x01\x00\x00\x00\x10"))
        assert decode_response(transport.control_receive()).payload == b"\x99"

    def test_scripted_status(self, transport):
        """Test that scripted error statuses reach the caller."""
        transport.expect(CommandCode.REG_WRITE, status=0x21)
        with pytest.raises(DeviceError):
            ControlChannel(transport).exchange(CommandCode.REG_WRITE, b"\x01\x01\x00\x00\x00\x10\x00")

    def test_wrong_command_raises(self, transport):
        """Test that an unexpected command fails the script."""
        transport.expect(CommandCode.BOOT)
        with pytest.raises(AssertionError) as exc_info:
            transport.control_send(encode_request(CommandCode.QUERYINFO, 0, b"\x01"))
        assert "Script step 0" in str(exc_info.value)

    def test_unscripted_request_raises(self, transport):
        """Test that requests past the end of the script fail."""
        with pytest.raises(AssertionError):
            transport.control_send(encode_request(CommandCode.BOOT, 0))

    def test_assert_done(self, transport):
        """Test that unconsumed steps are reported."""
        transport.expect(CommandCode.BOOT)
        assert transport.remaining == 1
        with pytest.raises(AssertionError):
            transport.assert_done()

    def test_reset_script(self, transport):
        """Test rewinding the script."""
        transport.expect(payload=b"\x01")
        transport.expect(payload=b"\x02")

        transport.control_send(encode_request(CommandCode.BOOT, 0))
        transport.control_receive()
        transport.reset_script()

        transport.control_send(encode_request(CommandCode.BOOT, 1))
        assert decode_response(transport.control_receive()).payload == b"\x01"
