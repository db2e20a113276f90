"""
Control-message frame encoding and decoding.

Two frame formats travel over the control endpoints, all multi-byte fields
big-endian:

1. **Request frames** (host to bridge):
   ``[frameLength][cmdHi][cmdLo][seq][payload...][csumHi][csumLo]``

2. **Response frames** (bridge to host):
   ``[frameLength][seqEcho][status][payload...][csumHi][csumLo]``

``frameLength`` is the total frame size minus one. The checksum covers
everything between the length byte and the checksum trailer.

Response frames are untrusted: every offset derived from the declared
length is bounded by the number of bytes actually received.
"""

from __future__ import annotations

from dataclasses import dataclass

from itedtv.exceptions import InvalidChecksumError, InvalidLengthError, ResponseLengthError
from itedtv.protocol.checksums import append_checksum, calculate_checksum
from itedtv.protocol.constants import CommandCode, ProtocolConstants


@dataclass(frozen=True)
class RequestFrame:
    """
    A decoded request frame.

    Attributes:
        command: 16-bit command code.
        sequence: 8-bit sequence number.
        payload: Command payload.
    """

    command: int
    sequence: int
    payload: bytes

    def __repr__(self) -> str:
        try:
            name = CommandCode(self.command).name
        except ValueError:
            name = f"0x{self.command:04X}"
        return f"RequestFrame({name}, seq={self.sequence}, payload={len(self.payload)} bytes)"


@dataclass(frozen=True)
class ResponseFrame:
    """
    A length- and checksum-validated response frame.

    Attributes:
        sequence: Echoed sequence number.
        status: Status byte (0 = success).
        payload: Response payload.
    """

    sequence: int
    status: int
    payload: bytes

    @property
    def is_error(self) -> bool:
        """Check if the device reported a failure."""
        return self.status != 0


def register_width(addr: int) -> int:
    """
    Number of significant bytes in a 32-bit register address.

    Args:
        addr: Register address.

    Returns:
        Position of the highest non-zero byte (1-4); 1 for address 0.

    Example:
        >>> register_width(0xDA10)
        2
    """
    if addr & 0xFF000000:
        return 4
    if addr & 0x00FF0000:
        return 3
    if addr & 0x0000FF00:
        return 2
    return 1


def encode_request(command: int, sequence: int, payload: bytes = b"") -> bytes:
    """
    Build a complete request frame.

    Args:
        command: 16-bit command code.
        sequence: 8-bit sequence number.
        payload: Command payload.

    Returns:
        Complete frame bytes.

    Raises:
        InvalidLengthError: If the frame length would not fit in one byte.
    """
    frame_length = 2 + 1 + len(payload) + ProtocolConstants.CHECKSUM_SIZE
    if frame_length > ProtocolConstants.MAX_FRAME_LENGTH:
        raise InvalidLengthError(
            "Request frame too long",
            length=frame_length,
            limit=ProtocolConstants.MAX_FRAME_LENGTH,
        )

    body = bytes([(command >> 8) & 0xFF, command & 0xFF, sequence & 0xFF]) + bytes(payload)
    return bytes([frame_length]) + append_checksum(body)


def decode_request(frame: bytes | bytearray) -> RequestFrame:
    """
    Decode and validate a request frame.

    Used by simulated devices and for inspecting captured traffic.

    Raises:
        ResponseLengthError: If the frame is truncated.
        InvalidChecksumError: If the checksum does not match.
    """
    frame = bytes(frame)
    minimum = ProtocolConstants.REQUEST_HEADER_SIZE + ProtocolConstants.CHECKSUM_SIZE
    if len(frame) < minimum:
        raise ResponseLengthError("Request frame too short", expected=minimum, received=len(frame))

    total = frame[0] + 1
    if total < minimum or total > len(frame):
        raise ResponseLengthError("Request frame length mismatch", expected=total, received=len(frame))

    covered = frame[1 : total - 2]
    received = int.from_bytes(frame[total - 2 : total], "big")
    expected = calculate_checksum(covered)
    if expected != received:
        raise InvalidChecksumError(expected=expected, received=received)

    return RequestFrame(
        command=(frame[1] << 8) | frame[2],
        sequence=frame[3],
        payload=frame[4 : total - 2],
    )


def encode_response(sequence: int, status: int = 0, payload: bytes = b"") -> bytes:
    """
    Build a complete response frame.

    Used by simulated devices; the real bridge produces these itself.
    """
    frame_length = 1 + 1 + len(payload) + ProtocolConstants.CHECKSUM_SIZE
    if frame_length > ProtocolConstants.MAX_FRAME_LENGTH:
        raise InvalidLengthError(
            "Response frame too long",
            length=frame_length,
            limit=ProtocolConstants.MAX_FRAME_LENGTH,
        )
    body = bytes([sequence & 0xFF, status & 0xFF]) + bytes(payload)
    return bytes([frame_length]) + append_checksum(body)


def decode_response(data: bytes | bytearray | memoryview) -> ResponseFrame:
    """
    Validate length and checksum of a received response.

    Sequence and status are returned, not checked; the caller knows which
    sequence it sent.

    Args:
        data: Bytes actually received from the control endpoint.

    Returns:
        ResponseFrame with the payload sliced to the declared length.

    Raises:
        ResponseLengthError: If fewer than 5 bytes arrived or the declared
            length is outside ``[5, len(data)]``.
        InvalidChecksumError: If the checksum does not match.
    """
    data = bytes(data)
    received_len = len(data)
    if received_len < ProtocolConstants.MIN_RESPONSE_SIZE:
        raise ResponseLengthError(
            "Response too short",
            expected=ProtocolConstants.MIN_RESPONSE_SIZE,
            received=received_len,
        )

    frame_len = data[0] + 1
    if frame_len < ProtocolConstants.MIN_RESPONSE_SIZE or frame_len > received_len:
        raise ResponseLengthError(
            "Declared response length out of range",
            expected=frame_len,
            received=received_len,
        )

    received = int.from_bytes(data[frame_len - 2 : frame_len], "big")
    expected = calculate_checksum(data[1 : frame_len - 2])
    if expected != received:
        raise InvalidChecksumError(expected=expected, received=received)

    return ResponseFrame(
        sequence=data[1],
        status=data[2],
        payload=data[3 : frame_len - 2],
    )
