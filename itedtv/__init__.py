"""
itedtv - Python protocol stack for ITE IT930x USB TV-tuner bridge chips.

This library turns a claimed USB device into register-level and I2C-level
access to the bridge chip and to the demodulator and tuner chips behind it:
control-message framing, register access, the two-hop I2C chain, firmware
upload and GPIO management.

Example:
    >>> from itedtv import BridgeConfig, BridgeDevice, DemodulatorRelay
    >>> from itedtv.transport import UsbBusTransport
    >>>
    >>> transport = UsbBusTransport.find(0x0511, 0x083F)
    >>> with BridgeDevice(transport, BridgeConfig.px4()) as device:
    ...     device.load_firmware(open("it930x-firmware.bin", "rb").read())
    ...     device.init_warm()
    ...     relay = DemodulatorRelay(device.i2c_bus(2), 0x11)
"""

from itedtv.bringup import BringUp, BringUpResult
from itedtv.codec import ControlChannel
from itedtv.device import BridgeDevice
from itedtv.exceptions import (
    ArgumentError,
    ChipNotDetectedError,
    DeviceError,
    DisconnectedError,
    EepromError,
    FirmwareBootError,
    FirmwareError,
    FirmwareFormatError,
    FramingError,
    InvalidChecksumError,
    InvalidLengthError,
    InvalidSequenceError,
    ITEDTVError,
    ProtocolError,
    ResourceError,
    ResponseLengthError,
    TimeoutError,
    TransportError,
)
from itedtv.gpio import GpioController, GpioMode
from itedtv.i2c import BridgeI2CMaster, I2CBus, I2CDirection, I2CRequest
from itedtv.models.config import BridgeConfig, BringUpConfig, FirmwareVersion, StreamInput
from itedtv.passthrough import DemodulatorRelay, RelayedRegisters, reverse_bits
from itedtv.registers import RegisterAccess
from itedtv.transport import AbstractBusTransport, MockTransport, UsbBusTransport

__version__ = "0.1.0"
__all__ = [
    # Session
    "BridgeDevice",
    "ControlChannel",
    "RegisterAccess",
    "GpioController",
    "GpioMode",
    # I2C
    "BridgeI2CMaster",
    "I2CBus",
    "I2CDirection",
    "I2CRequest",
    "DemodulatorRelay",
    "RelayedRegisters",
    "reverse_bits",
    # Bring-up
    "BringUp",
    "BringUpResult",
    # Models
    "BridgeConfig",
    "BringUpConfig",
    "FirmwareVersion",
    "StreamInput",
    # Exceptions
    "ITEDTVError",
    "TransportError",
    "TimeoutError",
    "DisconnectedError",
    "ProtocolError",
    "FramingError",
    "ResponseLengthError",
    "InvalidChecksumError",
    "InvalidSequenceError",
    "DeviceError",
    "ResourceError",
    "EepromError",
    "ChipNotDetectedError",
    "ArgumentError",
    "InvalidLengthError",
    "FirmwareError",
    "FirmwareFormatError",
    "FirmwareBootError",
    # Transport
    "AbstractBusTransport",
    "UsbBusTransport",
    "MockTransport",
    # Version
    "__version__",
]
