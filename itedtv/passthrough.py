"""
I2C passthrough bridge (hop 2).

Tuner chips sit behind the demodulator and are only reachable through its
relay convention. Every relayed transaction is sent to the demodulator's
own address, prefixed with sub-address ``0xFE`` and followed by the
downstream address byte ``(target << 1) | read_bit``:

- Downstream write: ``[0xFE, target << 1, data...]``
- Downstream read:  ``[0xFE, (target << 1) | 1]`` then a read from the
  demodulator into the caller's buffer

All wrapped transactions of one call are submitted as a single hop-1
batch, so no other I2C traffic can get between them. The relay also holds
its own lock while doing so.

Tuner register reads come back with MSB and LSB swapped (board wiring);
``RelayedRegisters`` reverses the bits of every returned byte.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from typing import TYPE_CHECKING, Final

from itedtv.exceptions import InvalidLengthError
from itedtv.i2c import I2CRequest, check_address
from itedtv.protocol.constants import ProtocolConstants

if TYPE_CHECKING:
    from itedtv.i2c import I2CBus

logger = logging.getLogger(__name__)

_REVERSED: Final[bytes] = bytes(int(f"{i:08b}"[::-1], 2) for i in range(256))


def reverse_bits(value: int) -> int:
    """
    Reverse the bit order of one byte.

    Example:
        >>> bin(reverse_bits(0b10110000))
        '0b1101'
    """
    return _REVERSED[value & 0xFF]


class DemodulatorRelay:
    """
    A demodulator (TC90522) on a bridge I2C bus.

    Gives access to the demodulator's own registers and relays arbitrary
    transactions to the chips behind it. Implements ``I2CBus`` so tuner
    drivers can use it exactly like a native bus.

    Attributes:
        addr: 7-bit I2C address of the demodulator.
    """

    def __init__(self, bus: I2CBus, addr: int) -> None:
        """
        Args:
            bus: Hop-1 bus the demodulator is attached to.
            addr: 7-bit demodulator address.

        Raises:
            ArgumentError: If ``addr`` is not a 7-bit address.
        """
        check_address(addr)
        self._bus = bus
        self.addr = addr
        self._lock = threading.Lock()

    def read_regs(self, reg: int, count: int) -> bytes:
        """Read the demodulator's own registers."""
        buf = I2CRequest.read(self.addr, count)
        self._bus.transfer([I2CRequest.write(self.addr, bytes([reg])), buf])
        return bytes(buf.data)

    def write_regs(self, reg: int, data: bytes) -> None:
        """Write the demodulator's own registers."""
        self._bus.transfer([I2CRequest.write(self.addr, bytes([reg]) + bytes(data))])

    def wrap(self, requests: Sequence[I2CRequest]) -> list[I2CRequest]:
        """
        Translate downstream transactions into hop-1 transactions.

        Wrapped reads share the caller's buffer, so running the result fills
        the original requests in place.

        Raises:
            ArgumentError: If a downstream address is not 7-bit.
        """
        for req in requests:
            check_address(req.addr)
        wrapped: list[I2CRequest] = []
        relay = ProtocolConstants.RELAY_SUBADDRESS
        for req in requests:
            target = req.addr << 1
            if req.is_read:
                wrapped.append(I2CRequest.write(self.addr, bytes([relay, target | 0x01])))
                wrapped.append(I2CRequest(self.addr, req.direction, req.data))
            else:
                wrapped.append(I2CRequest.write(self.addr, bytes([relay, target]) + bytes(req.data)))
        return wrapped

    def transfer(self, requests: Sequence[I2CRequest]) -> None:
        """Relay downstream transactions as one uninterrupted hop-1 batch."""
        wrapped = self.wrap(requests)
        with self._lock:
            logger.debug("Relaying %d transaction(s) via demodulator 0x%02X", len(requests), self.addr)
            self._bus.transfer(wrapped)

    def __repr__(self) -> str:
        return f"DemodulatorRelay(addr=0x{self.addr:02X}, bus={self._bus!r})"


class RelayedRegisters:
    """
    Register contract of a tuner reached through a ``DemodulatorRelay``.

    The tuner only supports reading from register 0 onwards, so a read of
    ``count`` registers at ``reg`` fetches ``reg + count`` bytes and keeps
    the tail.
    """

    def __init__(self, bus: I2CBus, addr: int, num_regs: int) -> None:
        self._bus = bus
        self.addr = addr
        self.num_regs = num_regs

    def _check(self, reg: int, count: int) -> None:
        if count <= 0 or reg < 0 or count > self.num_regs - reg:
            raise InvalidLengthError(
                f"Register range 0x{reg:02X}+{count} outside tuner register file",
                length=reg + count,
                limit=self.num_regs,
            )

    def read_regs(self, reg: int, count: int) -> bytes:
        """
        Read ``count`` registers, bit-reversed into normal order.

        Raises:
            InvalidLengthError: If the range is empty or past the register file.
        """
        self._check(reg, count)
        buf = I2CRequest.read(self.addr, reg + count)
        self._bus.transfer([I2CRequest.write(self.addr, b"\x00"), buf])
        return bytes(reverse_bits(b) for b in buf.data[reg : reg + count])

    def read_reg(self, reg: int) -> int:
        return self.read_regs(reg, 1)[0]

    def write_regs(self, reg: int, data: bytes) -> None:
        """
        Write ``data`` starting at register ``reg``.

        Raises:
            InvalidLengthError: If the range is empty or past the register file.
        """
        self._check(reg, len(data))
        self._bus.transfer([I2CRequest.write(self.addr, bytes([reg]) + bytes(data))])
