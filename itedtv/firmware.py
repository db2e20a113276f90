"""
Firmware scatter-write upload.

A firmware image is a sequence of scatter blocks:

    [0x03, _, _, M, (fragLen, _, _) * M, payload...]

where ``len(payload) == sum(fragLen)``. Each block with a non-empty
payload is uploaded whole (header, descriptor table and payload) in one
FW_SCATTER_WRITE command. Blocks with an empty payload are padding and are
skipped.

After the last block the firmware is started with BOOT and the version
is read back; zero means the boot failed.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from itedtv.exceptions import FirmwareBootError, FirmwareFormatError
from itedtv.protocol.constants import CommandCode, ProtocolConstants, Register

if TYPE_CHECKING:
    from itedtv.codec import ControlChannel
    from itedtv.models.config import FirmwareVersion
    from itedtv.registers import RegisterAccess

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScatterBlock:
    """
    One parsed firmware block.

    Attributes:
        offset: Position of the block in the image.
        descriptor_count: Number of fragment descriptors (M).
        fragment_lengths: Length of each fragment.
        data: Whole block bytes (header, descriptors and payload).
    """

    offset: int
    descriptor_count: int
    fragment_lengths: tuple[int, ...]
    data: bytes

    @property
    def header_length(self) -> int:
        """Header plus descriptor table length."""
        return ProtocolConstants.FW_BLOCK_HEADER_SIZE + ProtocolConstants.FW_DESCRIPTOR_SIZE * self.descriptor_count

    @property
    def payload_length(self) -> int:
        return sum(self.fragment_lengths)

    @property
    def is_padding(self) -> bool:
        """Block carries no payload and is not uploaded."""
        return self.payload_length == 0

    def __len__(self) -> int:
        return len(self.data)


def iter_scatter_blocks(image: bytes) -> Iterator[ScatterBlock]:
    """
    Split a firmware image into scatter blocks.

    Padding blocks are yielded too; they consume only their header and
    descriptor table.

    Raises:
        FirmwareFormatError: If a block does not start with 0x03, or its
            header, descriptors or payload run past the end of the image.
    """
    image = bytes(image)
    offset = 0
    header_size = ProtocolConstants.FW_BLOCK_HEADER_SIZE
    desc_size = ProtocolConstants.FW_DESCRIPTOR_SIZE

    while offset < len(image):
        if image[offset] != ProtocolConstants.FW_BLOCK_MARKER:
            raise FirmwareFormatError(
                f"Invalid block marker 0x{image[offset]:02X}", offset=offset
            )
        if offset + header_size > len(image):
            raise FirmwareFormatError("Truncated block header", offset=offset)

        count = image[offset + 3]
        table_end = offset + header_size + desc_size * count
        if table_end > len(image):
            raise FirmwareFormatError("Truncated descriptor table", offset=offset)

        lengths = tuple(image[offset + header_size + 2 + desc_size * i] for i in range(count))
        block_end = table_end + sum(lengths)
        if block_end > len(image):
            raise FirmwareFormatError("Truncated block payload", offset=offset)

        yield ScatterBlock(
            offset=offset,
            descriptor_count=count,
            fragment_lengths=lengths,
            data=image[offset:block_end],
        )
        offset = block_end


class FirmwareLoader:
    """
    Upload and boot a firmware image.

    Example:
        >>> loader = FirmwareLoader(channel, registers, device.firmware_version)
        >>> version = loader.load(image_bytes)
    """

    def __init__(
        self,
        channel: ControlChannel,
        registers: RegisterAccess,
        query_version: Callable[[], FirmwareVersion],
        i2c_speed: int = ProtocolConstants.DEFAULT_I2C_SPEED,
    ) -> None:
        """
        Args:
            channel: Control channel used for scatter writes and BOOT.
            registers: Register access used to program the I2C speed.
            query_version: Callable returning the running firmware version.
            i2c_speed: Value written to the I2C speed register before upload.
        """
        self._channel = channel
        self._registers = registers
        self._query_version = query_version
        self._i2c_speed = i2c_speed

    def load(self, image: bytes) -> FirmwareVersion:
        """
        Upload ``image`` unless firmware is already running, then boot it.

        Returns:
            The firmware version reported after boot (or the already-running one).

        Raises:
            FirmwareFormatError: If the image is malformed. Blocks before the
                bad one have already been written.
            FirmwareBootError: If the version reads zero after BOOT.
        """
        version = self._query_version()
        if version.is_loaded:
            logger.info("Firmware is already loaded. version: %s", version)
            return version

        self._registers.write_reg(Register.I2C_SPEED, self._i2c_speed)

        written = 0
        try:
            for block in iter_scatter_blocks(image):
                if block.is_padding:
                    logger.warning("No data in firmware block at offset %d, skipping", block.offset)
                    continue
                self._channel.exchange(CommandCode.FW_SCATTER_WRITE, block.data)
                written += 1
        except FirmwareFormatError as e:
            logger.error("Invalid firmware image: %s", e)
            raise

        logger.debug("Wrote %d firmware block(s), booting", written)
        self._channel.exchange(CommandCode.BOOT)

        version = self._query_version()
        if not version.is_loaded:
            logger.error("Firmware failed to load (version = 0)")
            raise FirmwareBootError("Firmware version is zero after boot")

        logger.info("Firmware is loaded. version: %s", version)
        return version
