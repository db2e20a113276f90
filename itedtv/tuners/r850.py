"""
R850 terrestrial tuner.

Implements chip detection and the shadow copy of the register file that
later tuning code works from. Calibration and frequency synthesis are out
of scope here.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Final

from itedtv.exceptions import ChipNotDetectedError, ITEDTVError
from itedtv.passthrough import RelayedRegisters

if TYPE_CHECKING:
    from itedtv.i2c import I2CBus

logger = logging.getLogger(__name__)

NUM_REGS: Final[int] = 0x30

INIT_REGS: Final[bytes] = bytes([
    0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00,
    0xCA, 0xC0, 0x72, 0x50, 0x00, 0xE0, 0x00, 0x30,
    0x86, 0xBB, 0xF8, 0xB0, 0xD2, 0x81, 0xCD, 0x46,
    0x37, 0x40, 0x89, 0x8C, 0x55, 0x95, 0x07, 0x23,
    0x21, 0xF1, 0x4C, 0x5F, 0xC4, 0x20, 0xA9, 0x6C,
    0x53, 0xAB, 0x5B, 0x46, 0xB3, 0x93, 0x6E, 0x41,
])
"""Power-on register values; registers 0x00-0x07 are read-only."""

WRITABLE_START: Final[int] = 0x08
DETECT_ATTEMPTS: Final[int] = 4


class R850:
    """R850 tuner behind a demodulator relay."""

    I2C_ADDR = 0x7C >> 1

    def __init__(self, bus: I2CBus, addr: int = I2C_ADDR) -> None:
        self.regs = RelayedRegisters(bus, addr, NUM_REGS)
        self._lock = threading.Lock()
        self.shadow = bytearray(INIT_REGS)
        self.initialized = False

    def init(self) -> None:
        """
        Probe register 0x00 (up to four times) for the identification bits,
        then read the writable registers and write them back.

        Raises:
            ChipNotDetectedError: If the chip never answered the probe.
        """
        with self._lock:
            self.initialized = False
            self.shadow[:] = INIT_REGS

            last_error: ITEDTVError | None = None
            for attempt in range(DETECT_ATTEMPTS):
                try:
                    value = self.regs.read_reg(0x00)
                except ITEDTVError as e:
                    logger.debug("R850 probe %d/%d failed: %s", attempt + 1, DETECT_ATTEMPTS, e)
                    last_error = e
                    continue
                if value & 0x98:
                    break
            else:
                raise ChipNotDetectedError("R850", self.regs.addr) from last_error

            current = self.regs.read_regs(WRITABLE_START, NUM_REGS - WRITABLE_START)
            self.shadow[WRITABLE_START:] = current
            self.regs.write_regs(WRITABLE_START, current)
            self.initialized = True

        logger.info("R850 init done at 0x%02X", self.regs.addr)
