"""
Configuration models for itedtv.

This module contains Pydantic models describing:

- Bridge stream inputs and I2C wiring
- Firmware version words
- Power-on GPIO sequences and tuner placement for bring-up
"""

from itedtv.models.config import (
    BridgeConfig,
    BringUpConfig,
    FirmwareVersion,
    PowerStep,
    StreamInput,
    TunerKind,
    TunerSlot,
)

__all__ = [
    # Bridge
    "BridgeConfig",
    "StreamInput",
    "FirmwareVersion",
    # Bring-up
    "BringUpConfig",
    "PowerStep",
    "TunerKind",
    "TunerSlot",
]
