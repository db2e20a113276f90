"""
Exception hierarchy for itedtv.

All exceptions inherit from ITEDTVError, providing a clean hierarchy
for error handling. The design follows these principles:

1. Transport failures (USB I/O, disconnect, timeout) are distinct from
   framing errors detected while validating a response
2. Device-reported failures carry the raw status byte, uninterpreted
3. Argument errors are raised before any bus I/O takes place
4. Lower-layer errors are chained with ``raise ... from`` rather than swallowed
"""

from __future__ import annotations


class ITEDTVError(Exception):
    """
    Base exception for all itedtv errors.

    All library-specific exceptions inherit from this class, allowing
    callers to catch all itedtv errors with a single except clause.
    """

    pass


class TransportError(ITEDTVError):
    """
    Bus transport failure.

    Raised for low-level USB issues:
    - Endpoint I/O errors
    - Transport not open
    - Short or failed transfers
    """

    pass


class TimeoutError(TransportError):  # noqa: A001 - intentionally shadows builtin
    """
    Bus transfer timeout.

    Raised when a control or stream transfer does not complete within the
    transport timeout. The device may be slow, busy or unresponsive.
    """

    def __init__(
        self,
        message: str = "USB transfer timeout",
        *,
        timeout_seconds: float | None = None,
    ) -> None:
        super().__init__(message)
        self.timeout_seconds = timeout_seconds

    def __str__(self) -> str:
        base = super().__str__()
        if self.timeout_seconds is not None:
            return f"{base} (after {self.timeout_seconds:.1f}s)"
        return base


class DisconnectedError(TransportError):
    """The device was unplugged or the handle is no longer usable."""

    pass


class ProtocolError(ITEDTVError):
    """
    Protocol-level error.

    Raised when a response violates the control-message protocol.
    """

    pass


class FramingError(ProtocolError):
    """
    Corrupted control exchange.

    Base class for length, checksum and sequence failures detected while
    validating a response frame. These are never retried internally.
    """

    pass


class ResponseLengthError(FramingError):
    """
    Response frame length is invalid.

    Raised when fewer than the minimum frame bytes were received, when the
    declared frame length does not fit the received bytes, or when the
    payload is shorter than the caller requested.
    """

    def __init__(
        self,
        message: str = "Invalid response length",
        *,
        expected: int | None = None,
        received: int | None = None,
    ) -> None:
        super().__init__(message)
        self.expected = expected
        self.received = received

    def __str__(self) -> str:
        base = super().__str__()
        if self.expected is not None and self.received is not None:
            return f"{base} (expected {self.expected}, got {self.received})"
        return base


class InvalidChecksumError(FramingError):
    """
    Checksum validation failure.

    Raised when a received frame's checksum doesn't match the calculated value.
    This typically indicates data corruption during transfer.
    """

    def __init__(
        self,
        message: str = "Checksum validation failed",
        *,
        expected: int | None = None,
        received: int | None = None,
    ) -> None:
        super().__init__(message)
        self.expected = expected
        self.received = received

    def __str__(self) -> str:
        base = super().__str__()
        if self.expected is not None and self.received is not None:
            return f"{base} (expected 0x{self.expected:04X}, got 0x{self.received:04X})"
        return base


class InvalidSequenceError(FramingError):
    """
    Response sequence mismatch.

    Raised when the echoed sequence number differs from the one sent with
    the request, i.e. the response belongs to a different exchange.
    """

    def __init__(self, expected: int, received: int) -> None:
        self.expected = expected
        self.received = received
        super().__init__(
            f"Sequence mismatch (expected 0x{expected:02X}, got 0x{received:02X})"
        )


class DeviceError(ITEDTVError):
    """
    Error status from the bridge firmware.

    Raised when a well-formed request is answered with a nonzero status
    byte. The status is passed through uninterpreted.
    """

    def __init__(self, status: int, message: str | None = None) -> None:
        self.status = status
        super().__init__(message or f"Device returned error status 0x{status:02X}")


class ResourceError(ITEDTVError):
    """
    Required hardware resource is missing or invalid.

    Terminal for the initialization path that raised it.
    """

    pass


class EepromError(ResourceError):
    """EEPROM not responding or holding invalid contents."""

    def __init__(self, message: str = "EEPROM not responding or invalid") -> None:
        super().__init__(message)


class ChipNotDetectedError(ResourceError):
    """
    A chip behind the bridge did not answer its identification probe.
    """

    def __init__(self, chip: str, address: int | None = None) -> None:
        self.chip = chip
        self.address = address
        if address is not None:
            message = f"{chip} not detected at address 0x{address:02X}"
        else:
            message = f"{chip} not detected"
        super().__init__(message)


class ArgumentError(ITEDTVError, ValueError):
    """
    Invalid argument.

    Raised before any bus I/O, for example for an out-of-range GPIO pin,
    a zero mask, or a write to a pin that is not configured as output.
    """

    pass


class InvalidLengthError(ArgumentError):
    """
    Request length out of range.

    Raised when a payload would not fit a control frame or exceeds the
    per-command transfer limit.
    """

    def __init__(
        self,
        message: str = "Invalid length",
        *,
        length: int | None = None,
        limit: int | None = None,
    ) -> None:
        super().__init__(message)
        self.length = length
        self.limit = limit

    def __str__(self) -> str:
        base = super().__str__()
        if self.length is not None and self.limit is not None:
            return f"{base} ({self.length} > {self.limit})"
        return base


class FirmwareError(ITEDTVError):
    """Firmware upload failure."""

    pass


class FirmwareFormatError(FirmwareError):
    """
    Malformed firmware image.

    Raised when a scatter block does not start with the block marker or
    its descriptor table runs past the end of the image.
    """

    def __init__(self, message: str, *, offset: int | None = None) -> None:
        super().__init__(message)
        self.offset = offset

    def __str__(self) -> str:
        base = super().__str__()
        if self.offset is not None:
            return f"{base} at offset {self.offset}"
        return base


class FirmwareBootError(FirmwareError):
    """Firmware version still reads zero after the BOOT command."""

    pass
