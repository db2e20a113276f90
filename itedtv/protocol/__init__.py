"""
Protocol layer for IT930x control messages.

This module contains the low-level protocol handling:
- Command codes, protocol limits and register addresses
- Checksum calculation and validation
- Request/response frame encoding and decoding
"""

from itedtv.protocol.checksums import append_checksum, calculate_checksum, validate_checksum
from itedtv.protocol.constants import CommandCode, ProtocolConstants, Register
from itedtv.protocol.frames import (
    RequestFrame,
    ResponseFrame,
    decode_request,
    decode_response,
    encode_request,
    encode_response,
    register_width,
)

__all__ = [
    # Constants
    "CommandCode",
    "ProtocolConstants",
    "Register",
    # Checksums
    "calculate_checksum",
    "validate_checksum",
    "append_checksum",
    # Frames
    "RequestFrame",
    "ResponseFrame",
    "encode_request",
    "decode_request",
    "encode_response",
    "decode_response",
    "register_width",
]
