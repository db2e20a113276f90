"""
USB bus transport using pyusb.

This module provides the primary transport implementation for talking to
IT930x bridge chips. Control messages travel over a pair of bulk
endpoints, the transport stream over a third:

- Control OUT: 0x02
- Control IN: 0x81
- Stream IN: 0x84

The device must already be found, configured and have its interface
claimed; enumeration is left to the caller. ``UsbBusTransport.find()`` is
a convenience for the common single-device case.

Example:
    >>> transport = UsbBusTransport.find(0x0511, 0x083F)
    >>> with transport:
    ...     transport.control_send(frame)
    ...     response = transport.control_receive(256)
"""

from __future__ import annotations

import errno
import logging
import threading

import usb.core
import usb.util

from itedtv.exceptions import DisconnectedError, TimeoutError, TransportError
from itedtv.protocol.constants import ProtocolConstants
from itedtv.transport.abc import AbstractBusTransport

logger = logging.getLogger(__name__)


class UsbBusTransport(AbstractBusTransport):
    """
    Blocking USB transport on top of a pyusb device.

    One lock guards the device handle so the control and stream paths can
    be used from different threads.

    Attributes:
        name: "usb:<bus>-<address>" of the wrapped device.
        is_open: Whether the transport is currently open.
    """

    def __init__(
        self,
        device: usb.core.Device,
        ctrl_timeout: float = ProtocolConstants.DEFAULT_CTRL_TIMEOUT,
        ctrl_out_endpoint: int = ProtocolConstants.CTRL_OUT_ENDPOINT,
        ctrl_in_endpoint: int = ProtocolConstants.CTRL_IN_ENDPOINT,
        stream_endpoint: int = ProtocolConstants.STREAM_ENDPOINT,
    ) -> None:
        """
        Initialize the USB transport.

        Args:
            device: Opened pyusb device with its interface claimed.
            ctrl_timeout: Control transfer timeout in seconds (default: 3.0).
            ctrl_out_endpoint: Control request endpoint address.
            ctrl_in_endpoint: Control response endpoint address.
            stream_endpoint: Transport stream endpoint address.
        """
        self._device = device
        self._ctrl_timeout = ctrl_timeout
        self._ctrl_out = ctrl_out_endpoint
        self._ctrl_in = ctrl_in_endpoint
        self._stream_ep = stream_endpoint
        self._lock = threading.Lock()
        self._is_open = False
        self._streaming = False
        self._max_packet_size = 0

    @classmethod
    def find(
        cls,
        vendor_id: int,
        product_id: int,
        ctrl_timeout: float = ProtocolConstants.DEFAULT_CTRL_TIMEOUT,
    ) -> UsbBusTransport:
        """
        Find the first matching device and wrap it.

        Raises:
            TransportError: If no matching device is attached.
        """
        device = usb.core.find(idVendor=vendor_id, idProduct=product_id)
        if device is None:
            raise TransportError(f"No USB device {vendor_id:04x}:{product_id:04x} found")
        return cls(device, ctrl_timeout=ctrl_timeout)

    @property
    def is_open(self) -> bool:
        """Check if the transport is currently open."""
        return self._is_open

    @property
    def name(self) -> str:
        """Get the bus/address identifier of the device."""
        return f"usb:{self._device.bus}-{self._device.address}"

    @property
    def ctrl_timeout(self) -> float:
        """Get the control transfer timeout in seconds."""
        return self._ctrl_timeout

    @ctrl_timeout.setter
    def ctrl_timeout(self, value: float) -> None:
        self._ctrl_timeout = value

    @property
    def is_streaming(self) -> bool:
        """Check if start_streaming() has been called."""
        return self._streaming

    def open(self) -> None:
        """
        Open the transport and look up the stream endpoint.

        Raises:
            TransportError: If the stream endpoint cannot be found.
        """
        if self._is_open:
            return

        try:
            interface = self._device.get_active_configuration()[(0, 0)]
        except usb.core.USBError as e:
            raise self._wrap_error(e, "get configuration") from e

        endpoint = usb.util.find_descriptor(
            interface,
            custom_match=lambda ep: ep.bEndpointAddress == self._stream_ep,
        )
        if endpoint is None:
            raise TransportError(f"Stream endpoint 0x{self._stream_ep:02x} not found on {self.name}")

        self._max_packet_size = endpoint.wMaxPacketSize
        self._is_open = True
        logger.debug("Opened %s (stream max packet %d)", self.name, self._max_packet_size)

    def close(self) -> None:
        """
        Close the transport and release pyusb resources.

        Safe to call multiple times.
        """
        if not self._is_open:
            return
        self._streaming = False
        self._is_open = False
        usb.util.dispose_resources(self._device)
        logger.debug("Closed %s", self.name)

    def control_send(self, data: bytes) -> None:
        """
        Send one control-message frame on the control OUT endpoint.

        Raises:
            TransportError: If the transport is not open, the write fails or
                is short.
        """
        self._ensure_open()
        try:
            with self._lock:
                written = self._device.write(self._ctrl_out, data, timeout=self._timeout_ms(self._ctrl_timeout))
        except usb.core.USBError as e:
            raise self._wrap_error(e, "control send", self._ctrl_timeout) from e

        if written != len(data):
            raise TransportError(f"Short control write: {written} != {len(data)}")

    def control_receive(self, size: int = ProtocolConstants.RX_BUFFER_SIZE) -> bytes:
        """
        Receive one control-message response from the control IN endpoint.

        Raises:
            TransportError: If the transport is not open or the read fails.
        """
        self._ensure_open()
        try:
            with self._lock:
                data = self._device.read(self._ctrl_in, size, timeout=self._timeout_ms(self._ctrl_timeout))
        except usb.core.USBError as e:
            raise self._wrap_error(e, "control receive", self._ctrl_timeout) from e
        return bytes(data)

    def bulk_stream_receive(self, size: int, timeout: float) -> bytes:
        """
        Read transport-stream data from the stream endpoint.

        Raises:
            TransportError: If streaming has not been started or the read fails.
        """
        self._ensure_open()
        if not self._streaming:
            raise TransportError("Streaming has not been started")
        try:
            data = self._device.read(self._stream_ep, size, timeout=self._timeout_ms(timeout))
        except usb.core.USBError as e:
            raise self._wrap_error(e, "stream receive", timeout) from e
        return bytes(data)

    def start_streaming(self) -> None:
        """Mark the stream endpoint as active and clear any stale halt."""
        self._ensure_open()
        if self._streaming:
            return
        try:
            with self._lock:
                self._device.clear_halt(self._stream_ep)
        except usb.core.USBError as e:
            raise self._wrap_error(e, "clear stream halt") from e
        self._streaming = True
        logger.debug("Streaming started on %s", self.name)

    def stop_streaming(self) -> None:
        """Mark the stream endpoint as inactive."""
        if self._streaming:
            self._streaming = False
            logger.debug("Streaming stopped on %s", self.name)

    def max_bulk_transfer_size(self) -> int:
        """Get the stream endpoint's maximum packet size."""
        self._ensure_open()
        return self._max_packet_size

    def _ensure_open(self) -> None:
        if not self._is_open:
            raise TransportError(f"Transport {self.name} is not open")

    @staticmethod
    def _timeout_ms(seconds: float) -> int:
        return max(1, int(seconds * 1000))

    @staticmethod
    def _wrap_error(
        exc: usb.core.USBError,
        operation: str,
        timeout: float | None = None,
    ) -> TransportError:
        """Map a pyusb error onto the transport error hierarchy."""
        if isinstance(exc, usb.core.USBTimeoutError) or exc.errno == errno.ETIMEDOUT:
            return TimeoutError(f"USB {operation} timed out", timeout_seconds=timeout)
        if exc.errno == errno.ENODEV:
            return DisconnectedError(f"USB {operation} failed: device disconnected")
        return TransportError(f"USB {operation} failed: {exc}")

    def __repr__(self) -> str:
        status = "open" if self._is_open else "closed"
        return f"UsbBusTransport({self.name!r}, {status})"
