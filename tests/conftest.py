"""Shared fixtures: a simulated bridge chip behind MockTransport."""

from __future__ import annotations

from collections import defaultdict

import pytest

from itedtv.device import BridgeDevice
from itedtv.models.config import BridgeConfig
from itedtv.passthrough import reverse_bits
from itedtv.protocol.constants import CommandCode, ProtocolConstants
from itedtv.protocol.frames import RequestFrame, decode_request, encode_response
from itedtv.transport.mock import MockTransport

# Status the simulated bridge returns when nothing answers on the I2C bus
I2C_NACK = 0x05


class SimulatedTuner:
    """
    Tuner register file as seen through the relay.

    Reads always start at register 0 and come back bit-reversed.
    """

    def __init__(self, num_regs: int, initial: dict[int, int] | None = None) -> None:
        self.regs = bytearray(num_regs)
        for reg, value in (initial or {}).items():
            self.regs[reg] = value
        self.writes: list[bytes] = []

    def write(self, data: bytes) -> None:
        self.writes.append(bytes(data))
        reg = data[0]
        self.regs[reg : reg + len(data) - 1] = data[1:]

    def read(self, count: int) -> bytes:
        return bytes(reverse_bits(b) for b in self.regs[:count])


class SimulatedDemodulator:
    """Demodulator with its own registers and the 0xFE relay."""

    def __init__(self) -> None:
        self.regs: defaultdict[int, int] = defaultdict(int)
        self.downstream: dict[int, SimulatedTuner] = {}
        self.pointer = 0
        self.pending_read: int | None = None

    def write(self, data: bytes) -> None:
        if data[0] == ProtocolConstants.RELAY_SUBADDRESS:
            target = data[1] >> 1
            if data[1] & 0x01:
                self.pending_read = target
            else:
                self.downstream[target].write(data[2:])
            return
        self.pointer = data[0]
        for i, value in enumerate(data[1:]):
            self.regs[self.pointer + i] = value

    def read(self, count: int) -> bytes:
        if self.pending_read is not None:
            target, self.pending_read = self.pending_read, None
            return self.downstream[target].read(count)
        return bytes(self.regs[self.pointer + i] for i in range(count))


class SimulatedBridge:
    """
    Answers control frames the way an IT930x does.

    Attributes:
        registers: Register file (unset registers read as zero).
        register_writes: Every REG_WRITE as (address, data).
        firmware_version: Value returned by QUERYINFO.
        boot_version: Version that BOOT makes current.
        scatter_blocks: Payloads of every FW_SCATTER_WRITE.
        i2c_devices: Simulated chips by (bus, 7-bit address).
        i2c_log: Every I2C transaction as (command, bus, addr, data).
        status_overrides: Nonzero status to return for a command.
    """

    def __init__(self) -> None:
        self.registers: defaultdict[int, int] = defaultdict(int)
        self.register_writes: list[tuple[int, bytes]] = []
        self.requests: list[RequestFrame] = []
        self.firmware_version = 0
        self.boot_version = 0x01020304
        self.scatter_blocks: list[bytes] = []
        self.boot_count = 0
        self.i2c_devices: dict[tuple[int, int], SimulatedDemodulator] = {}
        self.i2c_log: list[tuple[CommandCode, int, int, bytes]] = []
        self.status_overrides: dict[int, int] = {}

    def __call__(self, frame: bytes) -> bytes:
        request = decode_request(frame)
        self.requests.append(request)

        status = self.status_overrides.get(request.command, 0)
        if status:
            return encode_response(request.sequence, status)

        handler = {
            CommandCode.REG_READ: self._reg_read,
            CommandCode.REG_WRITE: self._reg_write,
            CommandCode.QUERYINFO: self._query_info,
            CommandCode.BOOT: self._boot,
            CommandCode.FW_SCATTER_WRITE: self._scatter_write,
            CommandCode.I2C_READ: self._i2c_read,
            CommandCode.I2C_WRITE: self._i2c_write,
        }[request.command]

        try:
            payload = handler(request.payload)
        except KeyError:
            return encode_response(request.sequence, I2C_NACK)
        return encode_response(request.sequence, 0, payload)

    def commands(self) -> list[CommandCode]:
        return [CommandCode(r.command) for r in self.requests]

    def _reg_read(self, payload: bytes) -> bytes:
        count = payload[0]
        addr = int.from_bytes(payload[2:6], "big")
        return bytes(self.registers[addr + i] for i in range(count))

    def _reg_write(self, payload: bytes) -> bytes:
        count = payload[0]
        addr = int.from_bytes(payload[2:6], "big")
        data = payload[6 : 6 + count]
        self.register_writes.append((addr, data))
        for i, value in enumerate(data):
            self.registers[addr + i] = value
        return b""

    def _query_info(self, payload: bytes) -> bytes:
        return self.firmware_version.to_bytes(4, "big")

    def _boot(self, payload: bytes) -> bytes:
        self.boot_count += 1
        self.firmware_version = self.boot_version
        return b""

    def _scatter_write(self, payload: bytes) -> bytes:
        self.scatter_blocks.append(payload)
        return b""

    def _i2c_read(self, payload: bytes) -> bytes:
        count, bus, addr = payload[0], payload[1], payload[2] >> 1
        self.i2c_log.append((CommandCode.I2C_READ, bus, addr, b""))
        return self.i2c_devices[(bus, addr)].read(count)

    def _i2c_write(self, payload: bytes) -> bytes:
        bus, addr = payload[1], payload[2] >> 1
        data = payload[3:]
        self.i2c_log.append((CommandCode.I2C_WRITE, bus, addr, data))
        self.i2c_devices[(bus, addr)].write(data)
        return b""


@pytest.fixture
def bridge():
    """Create a simulated bridge with no firmware loaded."""
    return SimulatedBridge()


@pytest.fixture
def mock_transport(bridge):
    """Create an open MockTransport answered by the simulated bridge."""
    transport = MockTransport()
    transport.set_response_callback(bridge)
    transport.open()
    yield transport
    transport.close()


@pytest.fixture
def device(mock_transport):
    """Create a BridgeDevice configured like a PX4 board."""
    return BridgeDevice(mock_transport, BridgeConfig.px4())
