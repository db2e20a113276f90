"""
Mock transport for testing.

This module provides a mock transport implementation that allows testing
the protocol stack without actual hardware. Responses can be pre-configured
or dynamically generated using a callback that sees each sent frame.

Example:
    >>> from itedtv.transport import MockTransport
    >>> from itedtv.protocol.frames import encode_response
    >>>
    >>> mock = MockTransport()
    >>> mock.add_response(encode_response(sequence=0, payload=b"\\x01\\x02\\x03\\x04"))
    >>> with BridgeDevice(mock) as device:
    ...     device.firmware_version()
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Callable

from itedtv.exceptions import TimeoutError, TransportError
from itedtv.protocol.constants import ProtocolConstants
from itedtv.protocol.frames import decode_request, encode_response
from itedtv.transport.abc import AbstractBusTransport


class MockTransport(AbstractBusTransport):
    """
    Mock transport for testing without hardware.

    Each control_receive() returns exactly one queued response (truncated to
    the requested size). Sent frames are recorded for verification.

    Attributes:
        sent_frames: Every frame sent on the control endpoint.
        last_sent: The most recent of them.

    Example:
        >>> mock = MockTransport()
        >>> mock.add_response(b"\\x04\\x00\\x00\\xff\\xff")
        >>>
        >>> with mock:
        ...     mock.control_send(b"frame")
        ...     assert mock.control_receive(256) == b"\\x04\\x00\\x00\\xff\\xff"
        ...     assert mock.sent_frames == [b"frame"]
    """

    def __init__(
        self,
        name: str = "mock://test",
        max_packet_size: int = 512,
        ctrl_timeout: float = ProtocolConstants.DEFAULT_CTRL_TIMEOUT,
    ) -> None:
        """
        Initialize the mock transport.

        Args:
            name: Identifier for the mock transport.
            max_packet_size: Value reported by max_bulk_transfer_size().
            ctrl_timeout: Value reported by the ctrl_timeout property.
        """
        self._name = name
        self._max_packet_size = max_packet_size
        self._ctrl_timeout = ctrl_timeout
        self._is_open = False
        self._streaming = False
        self._responses: deque[bytes] = deque()
        self._stream_chunks: deque[bytes] = deque()
        self._sent: list[bytes] = []
        self._response_callback: Callable[[bytes], bytes | None] | None = None

    @property
    def is_open(self) -> bool:
        """Check if the mock transport is open."""
        return self._is_open

    @property
    def name(self) -> str:
        """Get the mock transport name."""
        return self._name

    @property
    def ctrl_timeout(self) -> float:
        """Get the configured control timeout (never waited on)."""
        return self._ctrl_timeout

    @ctrl_timeout.setter
    def ctrl_timeout(self, value: float) -> None:
        self._ctrl_timeout = value

    @property
    def is_streaming(self) -> bool:
        """Check if streaming was started."""
        return self._streaming

    @property
    def sent_frames(self) -> list[bytes]:
        """Get all frames sent to the transport."""
        return self._sent.copy()

    @property
    def last_sent(self) -> bytes | None:
        """Get the most recently sent frame."""
        return self._sent[-1] if self._sent else None

    def add_response(self, response: bytes) -> None:
        """Queue one control response; control_receive() pops them FIFO."""
        self._responses.append(bytes(response))

    def add_responses(self, *responses: bytes) -> None:
        """Queue several control responses in order."""
        for response in responses:
            self.add_response(response)

    def add_stream_data(self, data: bytes) -> None:
        """Queue a chunk returned by the next bulk_stream_receive()."""
        self._stream_chunks.append(bytes(data))

    def set_response_callback(
        self,
        callback: Callable[[bytes], bytes | None] | None,
    ) -> None:
        """
        Answer every sent frame by calling ``callback(frame)``.

        A non-None return value is queued as the response to that frame.
        """
        self._response_callback = callback

    def clear(self) -> None:
        """Drop sent frames, queued responses and queued stream data."""
        self._sent.clear()
        self._responses.clear()
        self._stream_chunks.clear()

    def clear_sent(self) -> None:
        """Drop the sent-frame history."""
        self._sent.clear()

    def open(self) -> None:
        """Open the mock transport."""
        if self._is_open:
            raise TransportError(f"{self._name} is already open")
        self._is_open = True

    def close(self) -> None:
        """Close the mock transport."""
        self._is_open = False
        self._streaming = False

    def control_send(self, data: bytes) -> None:
        """
        Record a sent frame and optionally trigger the response callback.

        Raises:
            TransportError: If transport is not open.
        """
        if not self._is_open:
            raise TransportError(f"{self._name} is not open")

        self._sent.append(bytes(data))

        if self._response_callback:
            response = self._response_callback(bytes(data))
            if response is not None:
                self._responses.append(bytes(response))

    def control_receive(self, size: int = 256) -> bytes:
        """
        Return the next queued response, truncated to ``size`` bytes.

        Raises:
            TimeoutError: If no response is queued.
            TransportError: If transport is not open.
        """
        if not self._is_open:
            raise TransportError(f"{self._name} is not open")

        if not self._responses:
            raise TimeoutError("No mock response available")

        return self._responses.popleft()[:size]

    def bulk_stream_receive(self, size: int, timeout: float) -> bytes:
        """
        Return the next queued stream chunk, truncated to ``size`` bytes.

        Raises:
            TimeoutError: If no stream data is queued.
            TransportError: If transport is not open or not streaming.
        """
        if not self._is_open:
            raise TransportError(f"{self._name} is not open")
        if not self._streaming:
            raise TransportError("Streaming has not been started")
        if not self._stream_chunks:
            raise TimeoutError("No mock stream data available", timeout_seconds=timeout)
        return self._stream_chunks.popleft()[:size]

    def start_streaming(self) -> None:
        """Start mock streaming."""
        if not self._is_open:
            raise TransportError(f"{self._name} is not open")
        self._streaming = True

    def stop_streaming(self) -> None:
        """Stop mock streaming."""
        self._streaming = False

    def max_bulk_transfer_size(self) -> int:
        """Get the configured max packet size."""
        return self._max_packet_size

    def assert_sent(self, expected: bytes, index: int = -1) -> None:
        """
        Assert that the frame at ``index`` (default: last) equals ``expected``.

        Raises:
            AssertionError: If nothing was sent or the frame differs.
        """
        if not self._sent:
            raise AssertionError("Nothing sent on the control endpoint")

        actual = self._sent[index]
        if actual != expected:
            raise AssertionError(f"Sent frame {index}: expected {expected.hex(' ')}, got {actual.hex(' ')}")

    def assert_sent_count(self, expected: int) -> None:
        """Assert the number of frames sent on the control endpoint."""
        if len(self._sent) != expected:
            raise AssertionError(f"Expected {expected} sent frame(s), got {len(self._sent)}")


@dataclass(frozen=True)
class ScriptStep:
    """One scripted control exchange."""

    command: int | None
    payload: bytes
    status: int


class ScriptedMockTransport(MockTransport):
    """
    Mock transport that answers a fixed script of control exchanges.

    Each step names the command it expects (None for any) and the payload
    and status to answer with. The response echoes the sequence number of
    the request it answers, so a script does not depend on where the
    channel's sequence counter starts.

    Example:
        >>> mock = ScriptedMockTransport()
        >>> mock.expect(CommandCode.QUERYINFO, payload=b"\\x00\\x00\\x00\\x00")
        >>> mock.expect(CommandCode.REG_WRITE)
    """

    def __init__(self, name: str = "mock://scripted") -> None:
        super().__init__(name)
        self._script: list[ScriptStep] = []
        self._step = 0

    @property
    def remaining(self) -> int:
        """Number of scripted steps not yet consumed."""
        return len(self._script) - self._step

    def expect(self, command: int | None = None, payload: bytes = b"", status: int = 0) -> None:
        """Append a step answering ``command`` with ``payload`` and ``status``."""
        self._script.append(ScriptStep(command, bytes(payload), status))

    def control_send(self, data: bytes) -> None:
        """
        Record the frame and queue the scripted response.

        Raises:
            AssertionError: If the script is exhausted or the command differs.
        """
        super().control_send(data)

        if self._step >= len(self._script):
            raise AssertionError(f"Unscripted request: {bytes(data).hex(' ')}")

        step = self._script[self._step]
        request = decode_request(data)
        if step.command is not None and request.command != step.command:
            raise AssertionError(
                f"Script step {self._step}: expected command 0x{step.command:04X}, "
                f"got 0x{request.command:04X}"
            )

        self._responses.append(encode_response(request.sequence, step.status, step.payload))
        self._step += 1

    def assert_done(self) -> None:
        """Assert that every scripted step was consumed."""
        if self.remaining:
            raise AssertionError(f"{self.remaining} scripted step(s) not reached")

    def reset_script(self) -> None:
        """Rewind to the first step and drop pending responses."""
        self._step = 0
        self._responses.clear()

    def clear_script(self) -> None:
        """Remove all steps."""
        self._script.clear()
        self._step = 0
