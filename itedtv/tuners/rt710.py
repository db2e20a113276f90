"""
RT710/RT720 satellite tuner.

Only chip identification is implemented here; frequency synthesis and
calibration live in tuner-specific drivers built on the same register
contract.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import TYPE_CHECKING

from itedtv.passthrough import RelayedRegisters

if TYPE_CHECKING:
    from itedtv.i2c import I2CBus

logger = logging.getLogger(__name__)


class RT710ChipType(Enum):
    UNKNOWN = 0
    RT710 = 1
    RT720 = 2


class RT710:
    """RT710-family tuner behind a demodulator relay."""

    I2C_ADDR = 0x7A >> 1
    NUM_REGS = 0x10

    def __init__(self, bus: I2CBus, addr: int = I2C_ADDR) -> None:
        self.regs = RelayedRegisters(bus, addr, self.NUM_REGS)
        self._lock = threading.Lock()
        self.chip = RT710ChipType.UNKNOWN
        self.initialized = False

    def init(self) -> RT710ChipType:
        """Identify the chip from register 0x03."""
        with self._lock:
            self.initialized = False
            value = self.regs.read_reg(0x03)
            self.chip = RT710ChipType.RT710 if (value & 0xF0) == 0x70 else RT710ChipType.RT720
            self.initialized = True

        logger.info("RT710 init done. chip: %s, reg03=0x%02x", self.chip.name, value)
        return self.chip
