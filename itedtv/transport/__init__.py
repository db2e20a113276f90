"""
Transport layer for IT930x bridge communication.

This package provides transport implementations for talking to the bridge
chip over USB.

Available transports:
- UsbBusTransport: Blocking USB transport using pyusb
- MockTransport: Mock transport for testing without hardware

Example:
    >>> from itedtv.transport import UsbBusTransport
    >>> with UsbBusTransport.find(0x0511, 0x083F) as transport:
    ...     transport.control_send(frame)
    ...     response = transport.control_receive(256)

Testing Example:
    >>> from itedtv.transport import MockTransport
    >>> mock = MockTransport()
    >>> mock.add_response(response_frame)
"""

from itedtv.transport.abc import AbstractBusTransport
from itedtv.transport.mock import MockTransport, ScriptedMockTransport
from itedtv.transport.usb import UsbBusTransport

__all__ = [
    "AbstractBusTransport",
    "UsbBusTransport",
    "MockTransport",
    "ScriptedMockTransport",
]
