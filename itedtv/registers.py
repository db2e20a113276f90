"""
Register access for the IT930x bridge chip.

Registers are addressed by a 32-bit value of which only the significant
bytes are meaningful; the address width sent on the wire is the position
of the highest non-zero byte (see ``register_width``).

Masked writes are read-modify-write sequences. They run under a dedicated
lock so two masked writes can never interleave their read and write steps.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from itedtv.exceptions import ArgumentError, InvalidLengthError
from itedtv.protocol.constants import CommandCode, ProtocolConstants
from itedtv.protocol.frames import register_width

if TYPE_CHECKING:
    from itedtv.codec import ControlChannel

logger = logging.getLogger(__name__)


def _address_header(addr: int, count: int) -> bytes:
    return bytes([count, register_width(addr)]) + (addr & 0xFFFFFFFF).to_bytes(4, "big")


def _check_byte(value: int, what: str) -> None:
    if not 0 <= value <= 0xFF:
        raise ArgumentError(f"{what} must be 0-255, got {value}")


class RegisterAccess:
    """
    Read/write fixed-width bridge registers over the control channel.

    Example:
        >>> regs = RegisterAccess(channel)
        >>> regs.write_regs(0xF103, b"\\x07")
        >>> regs.read_reg(0x4979)
        1
    """

    def __init__(self, channel: ControlChannel) -> None:
        self._channel = channel
        self._rmw_lock = threading.Lock()

    def read_regs(self, addr: int, count: int) -> bytes:
        """
        Read ``count`` consecutive registers starting at ``addr``.

        Raises:
            InvalidLengthError: If count is not in 1..251.
        """
        if not 0 < count <= ProtocolConstants.MAX_REG_READ:
            raise InvalidLengthError(
                "Register read length out of range",
                length=count,
                limit=ProtocolConstants.MAX_REG_READ,
            )
        return self._channel.exchange(CommandCode.REG_READ, _address_header(addr, count), count)

    def read_reg(self, addr: int) -> int:
        """Read a single register byte."""
        return self.read_regs(addr, 1)[0]

    def write_regs(self, addr: int, data: bytes) -> None:
        """
        Write ``data`` to consecutive registers starting at ``addr``.

        Raises:
            InvalidLengthError: If data is empty or longer than 244 bytes.
        """
        if not 0 < len(data) <= ProtocolConstants.MAX_REG_WRITE:
            raise InvalidLengthError(
                "Register write length out of range",
                length=len(data),
                limit=ProtocolConstants.MAX_REG_WRITE,
            )
        self._channel.exchange(CommandCode.REG_WRITE, _address_header(addr, len(data)) + bytes(data))

    def write_reg(self, addr: int, value: int) -> None:
        """
        Write a single register byte.

        Raises:
            ArgumentError: If value is not 0-255 (no I/O is performed).
        """
        _check_byte(value, "Register value")
        self.write_regs(addr, bytes([value]))

    def write_reg_mask(self, addr: int, value: int, mask: int) -> None:
        """
        Update only the bits selected by ``mask`` in one register.

        ``mask == 0xFF`` is a plain write. Otherwise the current value is read
        and the write is skipped when the masked result is unchanged.

        Raises:
            ArgumentError: If value or mask is not 0-255, or mask is zero
                (no I/O is performed).
        """
        _check_byte(value, "Register value")
        _check_byte(mask, "Register mask")
        if mask == 0:
            raise ArgumentError("Register mask must not be zero")

        if mask == 0xFF:
            self.write_reg(addr, value)
            return

        with self._rmw_lock:
            old = self.read_reg(addr)
            new = (old & ~mask & 0xFF) | (value & mask)
            if new == old:
                logger.debug("Skipping write to 0x%04X, value 0x%02X unchanged", addr, old)
                return
            self.write_reg(addr, new)

    def compare_and_write(self, addr: int, expected: int, value: int) -> bool:
        """
        Write ``value`` only if the register currently holds ``expected``.

        Runs atomically with respect to other masked writes.

        Returns:
            True if the write was performed.

        Raises:
            ArgumentError: If expected or value is not 0-255 (no I/O is performed).
        """
        _check_byte(expected, "Expected register value")
        _check_byte(value, "Register value")
        with self._rmw_lock:
            current = self.read_reg(addr)
            if current != expected:
                return False
            self.write_reg(addr, value)
            return True
