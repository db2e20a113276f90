"""Tests for UsbBusTransport against a fake pyusb device."""

import errno

import pytest
import usb.core
import usb.util

from itedtv.exceptions import DisconnectedError, TimeoutError, TransportError
from itedtv.transport.usb import UsbBusTransport


class FakeEndpoint:
    def __init__(self, address, max_packet_size):
        self.bEndpointAddress = address
        self.wMaxPacketSize = max_packet_size


class FakeUsbDevice:
    """Records endpoint I/O; errors can be injected per endpoint."""

    bus = 1
    address = 5

    def __init__(self):
        self.interface = [FakeEndpoint(0x02, 512), FakeEndpoint(0x81, 512), FakeEndpoint(0x84, 512)]
        self.writes = []
        self.reads = {0x81: [], 0x84: []}
        self.errors = {}
        self.halts_cleared = []

    def get_active_configuration(self):
        return {(0, 0): self.interface}

    def write(self, endpoint, data, timeout=None):
        if endpoint in self.errors:
            raise self.errors[endpoint]
        self.writes.append((endpoint, bytes(data), timeout))
        return len(data)

    def read(self, endpoint, size, timeout=None):
        if endpoint in self.errors:
            raise self.errors[endpoint]
        return bytearray(self.reads[endpoint].pop(0)[:size])

    def clear_halt(self, endpoint):
        self.halts_cleared.append(endpoint)


@pytest.fixture
def usb_device(monkeypatch):
    """Create a fake device and route pyusb helpers to it."""
    disposed = []

    def find_descriptor(interface, custom_match):
        return next((ep for ep in interface if custom_match(ep)), None)

    monkeypatch.setattr(usb.util, "find_descriptor", find_descriptor)
    monkeypatch.setattr(usb.util, "dispose_resources", disposed.append)
    device = FakeUsbDevice()
    device.disposed = disposed
    return device


class TestUsbBusTransport:
    """Tests for endpoint I/O and error mapping."""

    def test_open_reads_stream_packet_size(self, usb_device):
        """Test that opening looks up the stream endpoint."""
        usb_device.interface[2].wMaxPacketSize = 1024
        transport = UsbBusTransport(usb_device)
        transport.open()
        assert transport.is_open
        assert transport.max_bulk_transfer_size() == 1024
        assert transport.name == "usb:1-5"

    def test_missing_stream_endpoint(self, usb_device):
        """Test that a device without endpoint 0x84 cannot be opened."""
        usb_device.interface.pop()
        with pytest.raises(TransportError):
            UsbBusTransport(usb_device).open()

    def test_control_round_trip(self, usb_device):
        """Test control frames go to 0x02 and come from 0x81."""
        usb_device.reads[0x81].append(b"\x04\x00\x00\xff\xff")
        with UsbBusTransport(usb_device, ctrl_timeout=2.5) as transport:
            transport.control_send(b"\x05\x00\x23\x00\xff\xdc")
            assert transport.control_receive(256) == b"\x04\x00\x00\xff\xff"
        assert usb_device.writes == [(0x02, b"\x05\x00\x23\x00\xff\xdc", 2500)]
        assert usb_device.disposed == [usb_device]

    def test_ctrl_timeout_setter(self, usb_device):
        """Test that a changed control timeout is used by the next transfer."""
        with UsbBusTransport(usb_device) as transport:
            assert transport.ctrl_timeout == 3.0
            transport.ctrl_timeout = 10
            transport.control_send(b"\x00")
        assert usb_device.writes == [(0x02, b"\x00", 10000)]

    def test_not_open(self, usb_device):
        """Test that I/O before open fails."""
        with pytest.raises(TransportError):
            UsbBusTransport(usb_device).control_send(b"\x00")

    def test_timeout_mapped(self, usb_device):
        """Test that pyusb timeouts become TimeoutError."""
        usb_device.errors[0x81] = usb.core.USBTimeoutError("Operation timed out", errno=errno.ETIMEDOUT)
        with UsbBusTransport(usb_device) as transport:
            with pytest.raises(TimeoutError) as exc_info:
                transport.control_receive()
        assert exc_info.value.timeout_seconds == 3.0
        assert isinstance(exc_info.value.__cause__, usb.core.USBError)

    def test_disconnect_mapped(self, usb_device):
        """Test that ENODEV becomes DisconnectedError."""
        usb_device.errors[0x02] = usb.core.USBError("No such device", errno=errno.ENODEV)
        with UsbBusTransport(usb_device) as transport:
            with pytest.raises(DisconnectedError):
                transport.control_send(b"\x00")

    def test_other_errors_mapped(self, usb_device):
        """Test that other pyusb errors become TransportError."""
        usb_device.errors[0x02] = usb.core.USBError("Pipe error", errno=errno.EPIPE)
        with UsbBusTransport(usb_device) as transport:
            with pytest.raises(TransportError) as exc_info:
                transport.control_send(b"\x00")
        assert not isinstance(exc_info.value, (TimeoutError, DisconnectedError))

    def test_streaming(self, usb_device):
        """Test stream reads require start_streaming()."""
        usb_device.reads[0x84].append(b"\x47" * 188)
        with UsbBusTransport(usb_device) as transport:
            with pytest.raises(TransportError):
                transport.bulk_stream_receive(188, 1.0)
            transport.start_streaming()
            assert transport.bulk_stream_receive(188, 1.0) == b"\x47" * 188
            transport.stop_streaming()
            assert not transport.is_streaming
        assert usb_device.halts_cleared == [0x84]

    def test_find_no_device(self, monkeypatch):
        """Test that find() reports a missing device."""
        monkeypatch.setattr(usb.core, "find", lambda **kwargs: None)
        with pytest.raises(TransportError):
            UsbBusTransport.find(0x0511, 0x083F)
