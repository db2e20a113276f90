"""
Abstract bus transport interface for IT930x communication.

This module defines the abstract base class for all transport implementations.
Transports handle the raw USB traffic with the bridge chip; they know nothing
about frames, checksums or sequence numbers.

The transport layer is responsible for:
- Opening/closing the link to an already-claimed USB device
- Sending and receiving raw control-message bytes
- Receiving transport-stream data from the bulk endpoint
- Timeout handling

Implementations:
- UsbBusTransport: pyusb based transport for real hardware
- MockTransport: For testing without hardware
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from types import TracebackType


class AbstractBusTransport(ABC):
    """
    Abstract base class for bridge bus transports.

    All calls are blocking. A control transfer blocks up to the transport's
    control timeout; a stream read blocks up to the caller-supplied timeout.

    Transports support the context manager protocol for safe resource
    management:

        with UsbBusTransport(dev) as transport:
            transport.control_send(frame)
            response = transport.control_receive()

    Attributes:
        is_open: Whether the transport is currently usable.
        name: Identifier for the transport (e.g., "usb:1-2").
        ctrl_timeout: Control transfer timeout in seconds.
    """

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """Check if the transport is currently open."""
        ...

    @property
    @abstractmethod
    def name(self) -> str:
        """Get the transport identifier."""
        ...

    @property
    @abstractmethod
    def ctrl_timeout(self) -> float:
        """Get the control transfer timeout in seconds."""
        ...

    @ctrl_timeout.setter
    @abstractmethod
    def ctrl_timeout(self, value: float) -> None:
        """Set the control transfer timeout in seconds."""
        ...

    @abstractmethod
    def open(self) -> None:
        """
        Open the transport.

        Raises:
            TransportError: If the link cannot be established or is already open.
        """
        ...

    @abstractmethod
    def close(self) -> None:
        """
        Close the transport.

        Safe to call multiple times (idempotent).
        """
        ...

    @abstractmethod
    def control_send(self, data: bytes) -> None:
        """
        Send one complete control-message frame.

        Args:
            data: Frame bytes.

        Raises:
            TimeoutError: If the transfer does not complete in time.
            DisconnectedError: If the device is gone.
            TransportError: For any other transfer failure.
        """
        ...

    @abstractmethod
    def control_receive(self, size: int) -> bytes:
        """
        Receive one control-message response.

        Args:
            size: Receive buffer size; at most this many bytes are returned.

        Returns:
            The bytes actually received.

        Raises:
            TimeoutError: If no response arrives in time.
            DisconnectedError: If the device is gone.
            TransportError: For any other transfer failure.
        """
        ...

    @abstractmethod
    def bulk_stream_receive(self, size: int, timeout: float) -> bytes:
        """
        Read transport-stream data from the bulk endpoint.

        Args:
            size: Maximum number of bytes to read.
            timeout: Read timeout in seconds.

        Returns:
            The bytes actually received.
        """
        ...

    @abstractmethod
    def start_streaming(self) -> None:
        """Prepare the stream endpoint for reading."""
        ...

    @abstractmethod
    def stop_streaming(self) -> None:
        """Release stream resources taken by start_streaming()."""
        ...

    @abstractmethod
    def max_bulk_transfer_size(self) -> int:
        """Get the stream endpoint's maximum packet size in bytes."""
        ...

    def __enter__(self) -> AbstractBusTransport:
        """Context manager entry - opens the transport."""
        self.open()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Context manager exit - closes the transport."""
        self.close()
