"""
IT930x control-message command codes, protocol limits and register addresses.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Final


class CommandCode(IntEnum):
    """
    Control-message command codes for host-to-bridge communication.

    Command codes are 16-bit values sent big-endian right after the frame
    length byte.
    """

    # ===== Register Access =====

    REG_READ = 0x0000
    """Read device registers: ``[count, width, addr_b3..b0]``."""

    REG_WRITE = 0x0001
    """Write device registers: ``[count, width, addr_b3..b0, data...]``."""

    # ===== Firmware =====

    QUERYINFO = 0x0022
    """Query device information (subcommand 1 = firmware version)."""

    BOOT = 0x0023
    """Start the uploaded firmware."""

    FW_SCATTER_WRITE = 0x0029
    """Upload one scatter block of the firmware image."""

    # ===== I2C Master =====

    I2C_READ = 0x002A
    """Read from an I2C device: ``[count, bus, addr << 1]``."""

    I2C_WRITE = 0x002B
    """Write to an I2C device: ``[count, bus, addr << 1, data...]``."""


class ProtocolConstants:
    """
    Control-message protocol constants.

    Contains frame layout sizes, transfer limits, timing values and the
    USB endpoint numbers used throughout the protocol implementation.
    """

    # ===== Frame Layout =====

    REQUEST_HEADER_SIZE: Final[int] = 4
    """Length byte + 16-bit command + sequence."""

    RESPONSE_HEADER_SIZE: Final[int] = 3
    """Length byte + echoed sequence + status."""

    CHECKSUM_SIZE: Final[int] = 2
    """Big-endian 16-bit checksum trailer."""

    MIN_RESPONSE_SIZE: Final[int] = 5
    """Smallest valid response frame (header + checksum, no payload)."""

    MAX_FRAME_LENGTH: Final[int] = 0xFF
    """Largest value the frame length byte can hold."""

    RX_BUFFER_SIZE: Final[int] = 256
    """Receive buffer bound for one control response."""

    SEQUENCE_MODULUS: Final[int] = 256
    """Sequence numbers wrap at 8 bits."""

    # ===== Transfer Limits =====

    MAX_REG_READ: Final[int] = 251
    """Largest register read per call."""

    MAX_REG_WRITE: Final[int] = 244
    """Largest register write per call."""

    MAX_I2C_READ: Final[int] = 251
    """Largest I2C read per transaction."""

    MAX_I2C_WRITE: Final[int] = 247
    """Largest I2C write per transaction."""

    # ===== Firmware =====

    FW_BLOCK_MARKER: Final[int] = 0x03
    """First byte of every scatter block."""

    FW_BLOCK_HEADER_SIZE: Final[int] = 4
    """Marker, two reserved bytes, descriptor count."""

    FW_DESCRIPTOR_SIZE: Final[int] = 3
    """One descriptor triplet per fragment."""

    QUERYINFO_FW_VERSION: Final[int] = 1
    """QUERYINFO subcommand returning the 32-bit firmware version."""

    PROBE_ATTEMPTS: Final[int] = 5
    """Firmware-version queries made by the liveness probe."""

    # ===== GPIO =====

    GPIO_PIN_COUNT: Final[int] = 16
    """Pins are numbered 1..16."""

    # ===== USB =====

    CTRL_OUT_ENDPOINT: Final[int] = 0x02
    """Bulk OUT endpoint carrying control requests."""

    CTRL_IN_ENDPOINT: Final[int] = 0x81
    """Bulk IN endpoint carrying control responses."""

    STREAM_ENDPOINT: Final[int] = 0x84
    """Bulk IN endpoint carrying the transport stream."""

    DEFAULT_CTRL_TIMEOUT: Final[float] = 3.0
    """Default control-transfer timeout in seconds."""

    DEFAULT_STREAM_TIMEOUT: Final[float] = 1.0
    """Default stream-read timeout in seconds."""

    # ===== I2C Passthrough =====

    RELAY_SUBADDRESS: Final[int] = 0xFE
    """Demodulator sub-address that relays a transaction downstream."""

    # ===== Defaults =====

    DEFAULT_I2C_SPEED: Final[int] = 0x07
    """I2C speed register value used by PX4 devices."""

    TS_PACKET_SIZE: Final[int] = 188
    """MPEG transport stream packet size."""

    DEFAULT_XFER_PACKETS: Final[int] = 816
    """Transport stream packets per bulk transfer."""


class Register:
    """Bridge register addresses used by firmware load and warm init."""

    I2C_SPEED: Final[int] = 0xF103
    I2C_SPEED_2: Final[int] = 0xF6A7
    EEPROM_STATUS: Final[int] = 0x4979

    # Warm init
    WARM_INIT_ZERO: Final[tuple[int, ...]] = (0x4976, 0x4BFB, 0x4978, 0x4977)
    IGNORE_SYNC_BYTE: Final[int] = 0xDA1A
    DVBT_INTERRUPT: Final[int] = 0xF41F
    MPEG_FULL_SPEED: Final[int] = 0xDA10
    DVBT_MODE: Final[int] = 0xF41A
    POWER_CONFIG: Final[tuple[tuple[int, int], ...]] = (
        (0xD833, 1),
        (0xD830, 0),
        (0xD831, 1),
        (0xD832, 0),
    )

    # Stream output
    STREAM_OUTPUT_CONFIG: Final[int] = 0xDA1D
    EP4_ENABLE: Final[int] = 0xDD11
    EP4_NAK: Final[int] = 0xDD13
    EP4_XFER_THRESHOLD: Final[int] = 0xDD88
    EP4_MAX_PACKET: Final[int] = 0xDD0C
    STREAM_OUTPUT_MODE_1: Final[int] = 0xDA05
    STREAM_OUTPUT_MODE_2: Final[int] = 0xDA06
    STREAM_OUTPUT_RESET: Final[int] = 0xD920

    # Stream input (offset by port number)
    STREAM_INPUT_ENABLE: Final[int] = 0xDA4C
    STREAM_INPUT_PARALLEL: Final[int] = 0xDA58
    STREAM_INPUT_AGGREGATION: Final[int] = 0xDA73
    STREAM_INPUT_SYNC_BYTE: Final[int] = 0xDA78


I2C_SLAVE_REGS: Final[tuple[tuple[int, int], ...]] = (
    (0x4975, 0x4971),
    (0x4974, 0x4970),
    (0x4973, 0x496F),
    (0x4972, 0x496E),
    (0x4964, 0x4963),
)
"""Per-slave (address register, bus register) pairs, indexed by slave number."""

GPIO_MODE_REGS: Final[tuple[int, ...]] = (
    0xD8B0, 0xD8B8, 0xD8B4, 0xD8C0,
    0xD8BC, 0xD8C8, 0xD8C4, 0xD8D0,
    0xD8CC, 0xD8D8, 0xD8D4, 0xD8E0,
    0xD8DC, 0xD8E4, 0xD8E8, 0xD8EC,
)
"""GPIO mode registers indexed by pin - 1. The enable register is mode + 1."""

GPIO_OUTPUT_REGS: Final[tuple[int, ...]] = (
    0xD8AF, 0xD8B7, 0xD8B3, 0xD8BF,
    0xD8BB, 0xD8C7, 0xD8C3, 0xD8CF,
    0xD8CB, 0xD8D7, 0xD8D3, 0xD8DF,
    0xD8DB, 0xD8E3, 0xD8E7, 0xD8EB,
)
"""GPIO output registers indexed by pin - 1."""
