"""
Control-message codec.

This module implements one request/response round trip with the bridge:

    encode request -> control_send -> control_receive -> validate -> payload

A single lock serializes the control channel for the whole round trip,
which is what makes sequence-number correlation meaningful: the response
read right after a request must echo that request's sequence.

Validation order on the response:
1. At least 5 bytes received, declared length within ``[5, received]``
2. Checksum over the declared range
3. Echoed sequence equals the sent sequence
4. Status byte is zero
5. Payload is at least as long as the caller asked for
"""

from __future__ import annotations

import itertools
import logging
import threading
from typing import TYPE_CHECKING

from itedtv.exceptions import DeviceError, InvalidSequenceError, ResponseLengthError
from itedtv.protocol.constants import CommandCode, ProtocolConstants
from itedtv.protocol.frames import decode_response, encode_request

if TYPE_CHECKING:
    from itedtv.transport.abc import AbstractBusTransport

logger = logging.getLogger(__name__)


class ControlChannel:
    """
    Framed request/response exchange over a bus transport.

    Attributes:
        transport: The underlying bus transport.

    Example:
        >>> channel = ControlChannel(transport)
        >>> raw = channel.exchange(CommandCode.QUERYINFO, b"\\x01", 4)
    """

    def __init__(self, transport: AbstractBusTransport, initial_sequence: int = 0) -> None:
        """
        Initialize the control channel.

        Args:
            transport: Open (or to-be-opened) bus transport.
            initial_sequence: First sequence number to use (mod 256).
        """
        self._transport = transport
        self._lock = threading.Lock()
        # next() on itertools.count is atomic under the GIL
        self._sequence = itertools.count(initial_sequence)

    @property
    def transport(self) -> AbstractBusTransport:
        """Get the underlying transport."""
        return self._transport

    def next_sequence(self) -> int:
        """Allocate the next 8-bit sequence number (post-increment, wraps)."""
        return next(self._sequence) % ProtocolConstants.SEQUENCE_MODULUS

    def exchange(self, command: int, payload: bytes = b"", read_length: int = 0) -> bytes:
        """
        Send one command and return the first ``read_length`` payload bytes.

        Args:
            command: 16-bit command code.
            payload: Request payload.
            read_length: Number of response payload bytes the caller needs.

        Returns:
            The requested prefix of the response payload.

        Raises:
            InvalidLengthError: If the request does not fit in one frame.
            TransportError: If the transfer fails.
            ResponseLengthError: If the response is truncated or short.
            InvalidChecksumError: If the response checksum is wrong.
            InvalidSequenceError: If the response belongs to another request.
            DeviceError: If the device reports a nonzero status.
        """
        with self._lock:
            sequence = self.next_sequence()
            frame = encode_request(command, sequence, payload)

            if logger.isEnabledFor(logging.DEBUG):
                logger.debug("CTRL_MSG TX %s seq=%d: %s", _command_name(command), sequence, frame.hex(" "))

            self._transport.control_send(frame)
            raw = self._transport.control_receive(ProtocolConstants.RX_BUFFER_SIZE)

            if logger.isEnabledFor(logging.DEBUG):
                logger.debug("CTRL_MSG RX seq=%d: %s", sequence, raw.hex(" "))

        response = decode_response(raw)

        if response.sequence != sequence:
            raise InvalidSequenceError(expected=sequence, received=response.sequence)

        if response.status != 0:
            logger.debug("Device error 0x%02X for %s", response.status, _command_name(command))
            raise DeviceError(response.status)

        if len(response.payload) < read_length:
            raise ResponseLengthError(
                "Response payload shorter than requested",
                expected=read_length,
                received=len(response.payload),
            )

        return response.payload[:read_length]

    def __repr__(self) -> str:
        return f"ControlChannel({self._transport.name!r})"


def _command_name(command: int) -> str:
    try:
        return CommandCode(command).name
    except ValueError:
        return f"0x{command:04X}"
