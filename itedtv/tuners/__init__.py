"""
Tuner chips reached through the demodulator relay.

Each tuner only depends on an ``I2CBus``: in practice a
``DemodulatorRelay``, in tests any object with a ``transfer`` method.
"""

from itedtv.tuners.r850 import R850
from itedtv.tuners.rt710 import RT710, RT710ChipType

__all__ = [
    "R850",
    "RT710",
    "RT710ChipType",
]
