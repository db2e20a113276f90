"""
Pydantic models for bridge configuration.

This module defines the configuration structures used throughout the
library, implemented as immutable Pydantic models with validation.

Design principles:
- All models are frozen (immutable)
- Field constraints mirror register widths (addresses are 7-bit, bytes 0-255)
- Board wiring (which demodulator sits on which bus) is configuration,
  never probed from the hardware
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from itedtv.protocol.constants import ProtocolConstants


class StreamInput(BaseModel):
    """
    One transport-stream input of the bridge and the demodulator feeding it.

    Example:
        >>> StreamInput(port_number=1, slave_number=0, i2c_bus=2, i2c_addr=0x11, sync_byte=0x17)
    """

    model_config = ConfigDict(frozen=True)

    enable: bool = Field(default=True, description="Input port in use")
    is_parallel: bool = Field(default=False, description="Parallel (vs. serial) TS interface")
    port_number: int = Field(default=0, ge=0, le=4, description="Bridge TS input port")
    slave_number: int = Field(default=0, ge=0, le=4, description="Index into the I2C slave register table")
    i2c_bus: int = Field(default=0, ge=0, le=3, description="Bridge I2C bus of the demodulator")
    i2c_addr: int = Field(default=0, ge=0, le=0x7F, description="7-bit demodulator address")
    packet_len: int = Field(default=ProtocolConstants.TS_PACKET_SIZE, ge=0, le=255)
    sync_byte: int = Field(default=0x47, ge=0, le=255, description="Sync byte tagging this input")

    @classmethod
    def disabled(cls) -> StreamInput:
        """Create an unused input slot."""
        return cls(enable=False, packet_len=0, sync_byte=0)


class BridgeConfig(BaseModel):
    """
    Bridge chip configuration used by firmware load and warm init.

    Example:
        >>> config = BridgeConfig.px4()
        >>> config.i2c_speed
        7
    """

    model_config = ConfigDict(frozen=True)

    i2c_speed: int = Field(default=ProtocolConstants.DEFAULT_I2C_SPEED, ge=0, le=255)
    xfer_size: int = Field(
        default=ProtocolConstants.TS_PACKET_SIZE * ProtocolConstants.DEFAULT_XFER_PACKETS,
        gt=0,
        description="Bulk transfer size in bytes",
    )
    ctrl_timeout: float = Field(
        default=ProtocolConstants.DEFAULT_CTRL_TIMEOUT,
        gt=0,
        description="Control transfer timeout in seconds",
    )
    inputs: tuple[StreamInput, ...] = Field(
        default_factory=lambda: tuple(StreamInput.disabled() for _ in range(5)),
        description="The five TS input slots",
    )

    @field_validator("inputs")
    @classmethod
    def validate_inputs(cls, v: tuple[StreamInput, ...]) -> tuple[StreamInput, ...]:
        """The bridge has exactly five input slots."""
        if len(v) != 5:
            raise ValueError(f"Exactly 5 stream inputs required, got {len(v)}")
        return v

    @property
    def enabled_inputs(self) -> tuple[StreamInput, ...]:
        return tuple(i for i in self.inputs if i.enable)

    @classmethod
    def px4(cls) -> BridgeConfig:
        """Configuration of PX4-series boards: four demodulators on bus 2."""
        return cls(
            inputs=(
                StreamInput(port_number=1, slave_number=0, i2c_bus=2, i2c_addr=0x11, sync_byte=0x17),
                StreamInput(port_number=2, slave_number=1, i2c_bus=2, i2c_addr=0x13, sync_byte=0x27),
                StreamInput(port_number=3, slave_number=2, i2c_bus=2, i2c_addr=0x10, sync_byte=0x37),
                StreamInput(port_number=4, slave_number=3, i2c_bus=2, i2c_addr=0x12, sync_byte=0x47),
                StreamInput.disabled(),
            )
        )


class FirmwareVersion(BaseModel):
    """
    32-bit firmware version word.

    Zero means no firmware is running.

    Example:
        >>> v = FirmwareVersion.from_bytes(b"\\x01\\x02\\x03\\x04")
        >>> str(v)
        '1.2.3.4'
    """

    model_config = ConfigDict(frozen=True)

    value: int = Field(ge=0, le=0xFFFFFFFF)

    @property
    def is_loaded(self) -> bool:
        return self.value != 0

    @classmethod
    def from_bytes(cls, data: bytes) -> FirmwareVersion:
        """Decode the big-endian QUERYINFO response."""
        return cls(value=int.from_bytes(data[:4], "big"))

    def __str__(self) -> str:
        return ".".join(str(b) for b in self.value.to_bytes(4, "big"))

    def __repr__(self) -> str:
        return f"FirmwareVersion({self})"


class PowerStep(BaseModel):
    """One step of the power-on GPIO sequence."""

    model_config = ConfigDict(frozen=True)

    pin: int = Field(ge=1, le=ProtocolConstants.GPIO_PIN_COUNT)
    high: bool
    delay: float = Field(default=0.0, ge=0, description="Seconds to wait after driving the pin")


class TunerKind(str, Enum):
    """Tuner chips supported behind the demodulator."""

    RT710 = "rt710"
    R850 = "r850"


class TunerSlot(BaseModel):
    """A tuner chip behind the demodulator of one stream input."""

    model_config = ConfigDict(frozen=True)

    kind: TunerKind
    input_index: int = Field(ge=0, le=4, description="Index into BridgeConfig.inputs")


class BringUpConfig(BaseModel):
    """
    Everything the bring-up sequence needs besides the firmware image.

    Example:
        >>> config = BringUpConfig.px4()
        >>> [t.kind.value for t in config.tuners]
        ['rt710', 'rt710', 'r850', 'r850']
    """

    model_config = ConfigDict(frozen=True)

    bridge: BridgeConfig = Field(default_factory=BridgeConfig)
    power_sequence: tuple[PowerStep, ...] = ()
    tuners: tuple[TunerSlot, ...] = ()

    @model_validator(mode="after")
    def validate_tuners(self) -> BringUpConfig:
        """Every tuner must hang off an enabled input."""
        for slot in self.tuners:
            if not self.bridge.inputs[slot.input_index].enable:
                raise ValueError(f"Tuner {slot.kind.value} references disabled input {slot.input_index}")
        return self

    @classmethod
    def px4(cls) -> BringUpConfig:
        """PX4 boards: satellite tuners on inputs 0/1, terrestrial on 2/3."""
        return cls(
            bridge=BridgeConfig.px4(),
            power_sequence=(
                PowerStep(pin=7, high=True),
                PowerStep(pin=2, high=False),
                PowerStep(pin=7, high=False, delay=0.08),
                PowerStep(pin=2, high=True, delay=0.02),
            ),
            tuners=(
                TunerSlot(kind=TunerKind.RT710, input_index=0),
                TunerSlot(kind=TunerKind.RT710, input_index=1),
                TunerSlot(kind=TunerKind.R850, input_index=2),
                TunerSlot(kind=TunerKind.R850, input_index=3),
            ),
        )
