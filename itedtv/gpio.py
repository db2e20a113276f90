"""
GPIO control for the bridge chip.

Each of the 16 pins has a mode register (the enable register follows it)
and an output register. Register writes are slow USB round trips, so the
controller caches each pin's mode and enable flag and only writes on an
actual state change.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import IntEnum
from typing import TYPE_CHECKING

from itedtv.exceptions import ArgumentError
from itedtv.protocol.constants import GPIO_MODE_REGS, GPIO_OUTPUT_REGS, ProtocolConstants

if TYPE_CHECKING:
    from itedtv.registers import RegisterAccess

logger = logging.getLogger(__name__)


class GpioMode(IntEnum):
    """GPIO pin direction; the value is what the mode register holds."""

    IN = 0
    OUT = 1


@dataclass
class GpioPinState:
    """Cached state of one pin."""

    mode: GpioMode = GpioMode.IN
    enabled: bool = False


class GpioController:
    """
    Cached GPIO state for one device session.

    All state is per instance and guarded by one lock.
    """

    def __init__(self, registers: RegisterAccess) -> None:
        self._registers = registers
        self._lock = threading.Lock()
        self._pins = [GpioPinState() for _ in range(ProtocolConstants.GPIO_PIN_COUNT)]

    @staticmethod
    def _index(pin: int) -> int:
        if not 1 <= pin <= ProtocolConstants.GPIO_PIN_COUNT:
            raise ArgumentError(f"GPIO pin must be 1-{ProtocolConstants.GPIO_PIN_COUNT}, got {pin}")
        return pin - 1

    def state(self, pin: int) -> GpioPinState:
        """Get a copy of the cached state of ``pin``."""
        idx = self._index(pin)
        with self._lock:
            current = self._pins[idx]
            return GpioPinState(current.mode, current.enabled)

    def set_mode(self, pin: int, mode: GpioMode, enable: bool = True) -> None:
        """
        Configure a pin's direction and optionally enable it.

        The mode register is written only if the cached mode differs, the
        enable register only on a disabled to enabled transition. The cache
        is updated after each successful write.

        Raises:
            ArgumentError: If pin is not in 1..16 or mode is not a GpioMode.
        """
        idx = self._index(pin)
        try:
            mode = GpioMode(mode)
        except ValueError as e:
            raise ArgumentError(f"Invalid GPIO mode {mode!r}") from e
        reg = GPIO_MODE_REGS[idx]

        with self._lock:
            status = self._pins[idx]
            if status.mode != mode:
                logger.debug("GPIO %d mode -> %s", pin, mode.name)
                self._registers.write_reg(reg, int(mode))
                status.mode = mode

            if enable and not status.enabled:
                logger.debug("GPIO %d enable", pin)
                self._registers.write_reg(reg + 1, 1)
                status.enabled = True

    def write(self, pin: int, high: bool) -> None:
        """
        Drive an output pin.

        Raises:
            ArgumentError: If pin is out of range or not configured as output.
        """
        idx = self._index(pin)

        with self._lock:
            if self._pins[idx].mode != GpioMode.OUT:
                raise ArgumentError(f"GPIO {pin} is not configured as output")
            logger.debug("GPIO %d <- %d", pin, int(high))
            self._registers.write_reg(GPIO_OUTPUT_REGS[idx], 1 if high else 0)
