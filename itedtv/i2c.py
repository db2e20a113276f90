"""
I2C master bridge (hop 1).

The bridge chip owns several I2C buses. Each transaction in a batch is
turned into one I2C_READ or I2C_WRITE control message:

- Read:  ``[count, bus, addr << 1]``, response copied into the request buffer
- Write: ``[count, bus, addr << 1, data...]``, no response payload

A batch runs under the I2C lock, strictly in order, so a "select register"
write and the following read can never be split by another caller.

Downstream layers depend only on the ``I2CBus`` protocol (a bus-bound
``transfer(requests)``), never on the bridge itself.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import TYPE_CHECKING, Protocol

from itedtv.exceptions import ArgumentError, InvalidLengthError
from itedtv.protocol.constants import CommandCode, ProtocolConstants

if TYPE_CHECKING:
    from itedtv.codec import ControlChannel

logger = logging.getLogger(__name__)


class I2CDirection(Enum):
    """Direction of one I2C transaction."""

    READ = auto()
    WRITE = auto()


@dataclass
class I2CRequest:
    """
    One I2C transaction.

    For reads, ``data`` is a pre-sized buffer that is filled in place.

    Attributes:
        addr: 7-bit device address.
        direction: Read or write.
        data: Bytes to write, or the buffer to read into.
    """

    addr: int
    direction: I2CDirection
    data: bytearray = field(default_factory=bytearray)

    @classmethod
    def read(cls, addr: int, length: int) -> I2CRequest:
        """Create a read request with a zeroed buffer of ``length`` bytes."""
        return cls(addr, I2CDirection.READ, bytearray(length))

    @classmethod
    def write(cls, addr: int, data: bytes) -> I2CRequest:
        """Create a write request."""
        return cls(addr, I2CDirection.WRITE, bytearray(data))

    @property
    def is_read(self) -> bool:
        return self.direction is I2CDirection.READ


def check_address(addr: int) -> None:
    """Raise ``ArgumentError`` unless ``addr`` is a 7-bit I2C address."""
    if not 0 <= addr <= 0x7F:
        raise ArgumentError(f"I2C address must be 7-bit, got 0x{addr:X}")


class I2CBus(Protocol):
    """Submit an ordered batch of transactions on one I2C bus."""

    def transfer(self, requests: Sequence[I2CRequest]) -> None: ...


class BridgeI2CMaster:
    """
    The bridge chip's native I2C master.

    Example:
        >>> master = BridgeI2CMaster(channel)
        >>> buf = I2CRequest.read(0x11, 1)
        >>> master.run(2, [I2CRequest.write(0x11, b"\\x00"), buf])
    """

    def __init__(self, channel: ControlChannel) -> None:
        self._channel = channel
        self._lock = threading.Lock()

    def run(self, bus: int, requests: Sequence[I2CRequest]) -> None:
        """
        Execute ``requests`` in order on ``bus`` without interleaving.

        Arguments are checked for the whole batch before the first transfer.
        A failure partway through leaves earlier transactions applied.

        Raises:
            ArgumentError: If ``bus`` is not 0-255 or an address is not 7-bit.
            InvalidLengthError: If a read exceeds 251 or a write 247 bytes.
        """
        if not 0 <= bus <= 0xFF:
            raise ArgumentError(f"I2C bus must be 0-255, got {bus}")
        for req in requests:
            check_address(req.addr)
            limit = ProtocolConstants.MAX_I2C_READ if req.is_read else ProtocolConstants.MAX_I2C_WRITE
            if len(req.data) > limit:
                raise InvalidLengthError("I2C transfer too long", length=len(req.data), limit=limit)

        with self._lock:
            for req in requests:
                header = bytes([len(req.data), bus, req.addr << 1])
                if req.is_read:
                    logger.debug("I2C read bus=%d addr=0x%02X len=%d", bus, req.addr, len(req.data))
                    req.data[:] = self._channel.exchange(CommandCode.I2C_READ, header, len(req.data))
                else:
                    logger.debug("I2C write bus=%d addr=0x%02X len=%d", bus, req.addr, len(req.data))
                    self._channel.exchange(CommandCode.I2C_WRITE, header + bytes(req.data))

    def bus(self, index: int) -> BridgeI2CBus:
        """Get an ``I2CBus`` view bound to bus ``index``."""
        return BridgeI2CBus(self, index)


class BridgeI2CBus:
    """One bus of the bridge's I2C master."""

    def __init__(self, master: BridgeI2CMaster, index: int) -> None:
        self._master = master
        self.index = index

    def transfer(self, requests: Sequence[I2CRequest]) -> None:
        self._master.run(self.index, requests)

    def __repr__(self) -> str:
        return f"BridgeI2CBus({self.index})"
