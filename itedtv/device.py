"""
IT930x device session.

This module provides the main entry point for talking to a bridge chip:
one ``BridgeDevice`` per physical connection. The session owns the control
channel (sequence counter and control lock), the I2C master (I2C lock) and
the GPIO controller (GPIO lock), and adds the bridge-level operations used
during bring-up: firmware version query, EEPROM check and warm-init
register programming.

Example:
    >>> from itedtv import BridgeDevice, BridgeConfig
    >>> from itedtv.transport import UsbBusTransport
    >>>
    >>> transport = UsbBusTransport.find(0x0511, 0x083F)
    >>> with BridgeDevice(transport, BridgeConfig.px4()) as device:
    ...     device.load_firmware(image)
    ...     device.init_warm()
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from itedtv.codec import ControlChannel
from itedtv.exceptions import ArgumentError, EepromError, ITEDTVError, TimeoutError
from itedtv.firmware import FirmwareLoader
from itedtv.gpio import GpioController, GpioMode
from itedtv.i2c import BridgeI2CMaster
from itedtv.models.config import BridgeConfig, FirmwareVersion
from itedtv.protocol.constants import I2C_SLAVE_REGS, CommandCode, ProtocolConstants, Register
from itedtv.registers import RegisterAccess

if TYPE_CHECKING:
    from itedtv.i2c import BridgeI2CBus, I2CRequest
    from itedtv.transport.abc import AbstractBusTransport

# Module logger
logger = logging.getLogger(__name__)


class BridgeDevice:
    """
    Session with one IT930x bridge chip.

    Thread-safe: control exchanges, I2C batches and GPIO updates each have
    their own lock, so unrelated categories of operation do not block each
    other longer than a single control round trip.

    Attributes:
        config: Bridge configuration.
        transport: The underlying bus transport.
        registers: Register access API.
        i2c: Native I2C master (hop 1).
        gpio: GPIO controller.
    """

    def __init__(
        self,
        transport: AbstractBusTransport,
        config: BridgeConfig | None = None,
    ) -> None:
        """
        Initialize the device session.

        Args:
            transport: Bus transport for an opened, claimed USB device.
            config: Bridge configuration (default: all inputs disabled). Its
                ``ctrl_timeout`` is applied to the transport.
        """
        self._transport = transport
        self.config = config or BridgeConfig()
        transport.ctrl_timeout = self.config.ctrl_timeout
        self._channel = ControlChannel(transport)
        self.registers = RegisterAccess(self._channel)
        self.i2c = BridgeI2CMaster(self._channel)
        self.gpio = GpioController(self.registers)
        self._firmware = FirmwareLoader(
            self._channel,
            self.registers,
            self.firmware_version,
            i2c_speed=self.config.i2c_speed,
        )

    @property
    def transport(self) -> AbstractBusTransport:
        """Get the underlying transport."""
        return self._transport

    @property
    def channel(self) -> ControlChannel:
        """Get the control channel."""
        return self._channel

    # ===== Register / I2C / GPIO shortcuts =====

    def read_regs(self, addr: int, count: int) -> bytes:
        return self.registers.read_regs(addr, count)

    def write_regs(self, addr: int, data: bytes) -> None:
        self.registers.write_regs(addr, data)

    def write_reg_mask(self, addr: int, value: int, mask: int) -> None:
        self.registers.write_reg_mask(addr, value, mask)

    def i2c_master_request(self, bus: int, requests: list[I2CRequest]) -> None:
        self.i2c.run(bus, requests)

    def i2c_bus(self, index: int) -> BridgeI2CBus:
        """Get an I2C bus view for downstream chips."""
        return self.i2c.bus(index)

    def set_gpio_mode(self, pin: int, mode: GpioMode, enable: bool = True) -> None:
        self.gpio.set_mode(pin, mode, enable)

    def write_gpio(self, pin: int, high: bool) -> None:
        self.gpio.write(pin, high)

    # ===== Firmware =====

    def firmware_version(self) -> FirmwareVersion:
        """
        Query the running firmware version.

        Returns:
            FirmwareVersion; zero if no firmware is loaded.
        """
        data = self._channel.exchange(
            CommandCode.QUERYINFO,
            bytes([ProtocolConstants.QUERYINFO_FW_VERSION]),
            4,
        )
        return FirmwareVersion.from_bytes(data)

    def probe(self, attempts: int = ProtocolConstants.PROBE_ATTEMPTS) -> FirmwareVersion:
        """
        Check that the device answers, retrying the version query.

        Raises:
            ITEDTVError: The last error if every attempt failed.
        """
        if attempts < 1:
            raise ArgumentError("attempts must be at least 1")

        last_exception: ITEDTVError | None = None
        for attempt in range(attempts):
            try:
                return self.firmware_version()
            except ITEDTVError as e:
                last_exception = e
                logger.warning("Probe failed (attempt %d/%d): %s", attempt + 1, attempts, e)

        logger.error("Probe failed after %d attempt(s)", attempts)
        raise last_exception or TimeoutError("No response to firmware version query")

    def load_firmware(self, image: bytes) -> FirmwareVersion:
        """Upload and boot ``image`` unless firmware is already running."""
        return self._firmware.load(image)

    def check_eeprom(self) -> None:
        """
        Verify the EEPROM is present.

        Raises:
            EepromError: If the EEPROM status register reads zero.
        """
        if self.registers.read_reg(Register.EEPROM_STATUS) == 0:
            raise EepromError()

    # ===== Warm init =====

    def config_i2c(self) -> None:
        """
        Program the I2C speed and the address/bus of each enabled demodulator.

        Raises:
            ArgumentError: If an input's slave number has no register pair.
        """
        self.registers.write_reg(Register.I2C_SPEED_2, self.config.i2c_speed)
        self.registers.write_reg(Register.I2C_SPEED, self.config.i2c_speed)

        for stream_input in self.config.enabled_inputs:
            if stream_input.slave_number >= len(I2C_SLAVE_REGS):
                raise ArgumentError(f"No I2C register pair for slave {stream_input.slave_number}")
            addr_reg, bus_reg = I2C_SLAVE_REGS[stream_input.slave_number]
            self.registers.write_reg(addr_reg, stream_input.i2c_addr << 1)
            self.registers.write_reg(bus_reg, stream_input.i2c_bus)

    def config_stream_input(self) -> None:
        """Enable, tag and configure each TS input port."""
        for stream_input in self.config.inputs:
            port = stream_input.port_number

            if not stream_input.enable:
                self.registers.write_reg(Register.STREAM_INPUT_ENABLE + port, 0)
                continue

            if port < 2:
                self.registers.write_reg(Register.STREAM_INPUT_PARALLEL + port, int(stream_input.is_parallel))

            # aggregation mode: sync byte
            self.registers.write_reg(Register.STREAM_INPUT_AGGREGATION + port, 1)
            self.registers.write_reg(Register.STREAM_INPUT_SYNC_BYTE + port, stream_input.sync_byte)
            self.registers.write_reg(Register.STREAM_INPUT_ENABLE + port, 1)

    def config_stream_output(self) -> None:
        """
        Configure the bulk stream endpoint.

        The output-config bit is always cleared and the output reset written
        afterwards, even if configuration failed; the first error is raised.
        """
        regs = self.registers
        regs.write_reg_mask(Register.STREAM_OUTPUT_CONFIG, 0x01, 0x01)

        first_error: ITEDTVError | None = None
        try:
            regs.write_reg_mask(Register.EP4_ENABLE, 0x00, 0x20)
            regs.write_reg_mask(Register.EP4_NAK, 0x00, 0x20)
            regs.write_reg_mask(Register.EP4_ENABLE, 0x20, 0x20)

            threshold = (self.config.xfer_size // 4) & 0xFFFF
            regs.write_regs(Register.EP4_XFER_THRESHOLD, threshold.to_bytes(2, "little"))
            regs.write_reg(Register.EP4_MAX_PACKET, (self._transport.max_bulk_transfer_size() // 4) & 0xFF)

            regs.write_reg_mask(Register.STREAM_OUTPUT_MODE_1, 0x00, 0x01)
            regs.write_reg_mask(Register.STREAM_OUTPUT_MODE_2, 0x00, 0x01)
        except ITEDTVError as e:
            first_error = e

        cleanup = (
            lambda: regs.write_reg_mask(Register.STREAM_OUTPUT_CONFIG, 0x00, 0x01),
            lambda: regs.write_reg(Register.STREAM_OUTPUT_RESET, 0),
        )
        for step in cleanup:
            try:
                step()
            except ITEDTVError as e:
                if first_error is None:
                    first_error = e

        if first_error is not None:
            raise first_error

    def init_warm(self) -> None:
        """Program the bridge after firmware boot."""
        regs = self.registers
        for addr in Register.WARM_INIT_ZERO:
            regs.write_reg(addr, 0)

        # ignore sync byte: no
        regs.write_reg(Register.IGNORE_SYNC_BYTE, 0)

        # dvb-t interrupt: enable
        regs.write_reg_mask(Register.DVBT_INTERRUPT, 0x04, 0x04)

        # mpeg full speed
        regs.write_reg_mask(Register.MPEG_FULL_SPEED, 0x00, 0x01)

        # dvb-t mode: enable
        regs.write_reg_mask(Register.DVBT_MODE, 0x01, 0x01)

        self.config_stream_output()

        for addr, value in Register.POWER_CONFIG:
            regs.write_reg(addr, value)

        self.config_i2c()
        self.config_stream_input()
        logger.info("Bridge warm init done")

    # ===== Streaming =====

    def start_streaming(self) -> None:
        self._transport.start_streaming()

    def stop_streaming(self) -> None:
        self._transport.stop_streaming()

    def read_stream(self, size: int | None = None, timeout: float = ProtocolConstants.DEFAULT_STREAM_TIMEOUT) -> bytes:
        """
        Read one chunk of transport-stream data.

        Args:
            size: Maximum bytes to read (default: configured transfer size).
            timeout: Read timeout in seconds.
        """
        return self._transport.bulk_stream_receive(size or self.config.xfer_size, timeout)

    # ===== Lifecycle =====

    def open(self) -> None:
        if not self._transport.is_open:
            logger.debug("Opening transport %s", self._transport.name)
            self._transport.open()

    def close(self) -> None:
        if self._transport.is_open:
            self._transport.close()

    def __enter__(self) -> BridgeDevice:
        """Context manager entry - opens the transport."""
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit - stops streaming and closes the transport."""
        try:
            if self._transport.is_open:
                self._transport.stop_streaming()
        finally:
            self.close()

    def __repr__(self) -> str:
        status = "open" if self._transport.is_open else "closed"
        return f"BridgeDevice({self._transport.name!r}, {status})"
