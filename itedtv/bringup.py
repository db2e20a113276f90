"""
Device bring-up.

Runs the steps that take a freshly claimed board to a state where the
tuners answer:

    power GPIOs -> probe -> firmware -> EEPROM check -> warm init -> tuners

The first failing step's error propagates unchanged; nothing already done
is undone.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Union

from itedtv.exceptions import ArgumentError
from itedtv.gpio import GpioMode
from itedtv.models.config import BringUpConfig, FirmwareVersion, TunerKind
from itedtv.passthrough import DemodulatorRelay
from itedtv.tuners import R850, RT710

if TYPE_CHECKING:
    from itedtv.device import BridgeDevice

logger = logging.getLogger(__name__)

Tuner = Union[RT710, R850]


@dataclass
class BringUpResult:
    """What bring-up produced."""

    firmware_version: FirmwareVersion
    demodulators: list[DemodulatorRelay] = field(default_factory=list)
    tuners: list[Tuner] = field(default_factory=list)


class BringUp:
    """
    Orchestrates power, firmware, warm init and tuner init for one device.

    Example:
        >>> bringup = BringUp(device, BringUpConfig.px4())
        >>> result = bringup.run(firmware_image)
    """

    def __init__(self, device: BridgeDevice, config: BringUpConfig) -> None:
        """
        Raises:
            ArgumentError: If ``config.bridge`` differs from the device's own
                bridge configuration.
        """
        if config.bridge != device.config:
            raise ArgumentError("Bring-up bridge configuration does not match the device configuration")
        self._device = device
        self.config = config

    def power_on(self) -> None:
        """Drive the power GPIO sequence."""
        configured: set[int] = set()
        for step in self.config.power_sequence:
            if step.pin not in configured:
                self._device.gpio.set_mode(step.pin, GpioMode.OUT, True)
                configured.add(step.pin)
            self._device.gpio.write(step.pin, step.high)
            if step.delay:
                time.sleep(step.delay)

    def create_tuners(self) -> tuple[list[DemodulatorRelay], list[Tuner]]:
        """Build a relay per configured tuner slot and the tuner behind it."""
        demodulators: list[DemodulatorRelay] = []
        tuners: list[Tuner] = []
        for slot in self.config.tuners:
            stream_input = self._device.config.inputs[slot.input_index]
            relay = DemodulatorRelay(self._device.i2c_bus(stream_input.i2c_bus), stream_input.i2c_addr)
            demodulators.append(relay)
            tuners.append(RT710(relay) if slot.kind is TunerKind.RT710 else R850(relay))
        return demodulators, tuners

    def run(self, firmware_image: bytes) -> BringUpResult:
        """
        Run every bring-up step in order.

        Raises:
            ITEDTVError: Whatever the first failing step raised.
        """
        logger.debug("Powering on")
        self.power_on()

        self._device.probe()

        version = self._device.load_firmware(firmware_image)
        self._device.check_eeprom()
        self._device.init_warm()

        demodulators, tuners = self.create_tuners()
        for tuner in tuners:
            tuner.init()

        logger.info("Bring-up complete: firmware %s, %d tuner(s)", version, len(tuners))
        return BringUpResult(firmware_version=version, demodulators=demodulators, tuners=tuners)
