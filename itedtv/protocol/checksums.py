"""
16-bit word-sum checksum calculation and validation.

The control-message protocol uses a one's-complement style checksum:
- Split the covered bytes into big-endian 16-bit words
- An odd trailing byte is the high byte of a final word (low byte zero)
- Add the words with 16-bit wrap-around
- The checksum is the bitwise NOT of the sum

The checksum covers everything after the frame length byte up to, but
excluding, the two checksum bytes at the end of the frame.
"""

from __future__ import annotations


def calculate_checksum(data: bytes | bytearray | memoryview) -> int:
    """
    Calculate the 16-bit checksum over the specified data.

    Args:
        data: Data to checksum (excludes length byte and checksum bytes).

    Returns:
        16-bit checksum value (0-0xFFFF).

    Example:
        >>> hex(calculate_checksum(b"\\x00\\x22\\x00\\x01"))
        '0xffdc'
    """
    data = bytes(data)
    total = 0
    for i in range(0, len(data) - 1, 2):
        total += (data[i] << 8) | data[i + 1]
    if len(data) & 1:
        total += data[-1] << 8
    return ~total & 0xFFFF


def validate_checksum(
    data: bytes | bytearray | memoryview,
    checksum: int,
) -> bool:
    """
    Check that ``checksum`` matches the calculated value for ``data``.

    Args:
        data: Checksum-covered bytes.
        checksum: Received 16-bit checksum.

    Returns:
        True if checksum is valid, False otherwise.
    """
    return calculate_checksum(data) == checksum


def append_checksum(data: bytes | bytearray) -> bytes:
    """
    Calculate checksum and append it as two big-endian bytes.

    Args:
        data: Data to checksum.

    Returns:
        Original data with the 2-byte checksum appended.
    """
    return bytes(data) + calculate_checksum(data).to_bytes(2, "big")
