"""
Transport layer abstraction for bridge communication.

Provides abstractions for the serial link with dependency injection support.
Reads are chunk-oriented: the bridge relays modem output in arbitrary
fragments and the protocol layers above decide where responses end.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections import deque
from typing import Deque, Optional, Union

import serial
import serial_asyncio
from serial import SerialException

from .clock import Clock
from ..exceptions import TransportError, DeviceDisconnectedError

logger = logging.getLogger(__name__)

# Wire text is handled byte-for-character so payload lengths survive decoding
ENCODING = "latin-1"

Fragment = tuple[float, Union[str, bytes]]
Reply = Union[str, bytes, list[Fragment]]


def _to_bytes(data: Union[str, bytes]) -> bytes:
    return data.encode(ENCODING) if isinstance(data, str) else data


class Transport(ABC):
    """Abstract base class for the bridge serial link."""

    @abstractmethod
    def write(self, data: bytes) -> None:
        """
        Queue data for sending.

        Raises:
            TransportError: If the write fails
        """
        pass

    @abstractmethod
    async def drain(self) -> None:
        """
        Wait until all queued data has been handed to the device.

        Raises:
            TransportError: If the link fails while draining
        """
        pass

    @abstractmethod
    async def read(self, timeout: float) -> bytes:
        """
        Read whatever inbound bytes are available.

        Waits up to ``timeout`` seconds for the first byte. Returns ``b""``
        if the line stays silent.

        Raises:
            DeviceDisconnectedError: If the device went away
        """
        pass

    @abstractmethod
    def reset_input_buffer(self) -> None:
        """
        Discard inbound bytes that have already arrived.

        Called before a command is written, so a late answer to an earlier
        command is never taken as the reply to the next one.
        """
        pass

    @abstractmethod
    def is_open(self) -> bool:
        """Check if transport is open."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close the transport."""
        pass


class SerialTransport(Transport):
    """Serial port transport built on pyserial-asyncio."""

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        port: str,
        baudrate: int,
        chunk_size: int = 4096
    ) -> None:
        self.port = port
        self.baudrate = baudrate
        self.chunk_size = chunk_size
        self._reader = reader
        self._writer = writer
        self._open = True

    @classmethod
    async def open(
        cls,
        port: str,
        baudrate: int = 9600,
        chunk_size: int = 4096
    ) -> "SerialTransport":
        """
        Open a serial port.

        Args:
            port: Serial port path (e.g., /dev/ttyUSB0)
            baudrate: Baud rate for serial communication
            chunk_size: Largest single read

        Raises:
            TransportError: If serial port cannot be opened
        """
        try:
            reader, writer = await serial_asyncio.open_serial_connection(
                url=port,
                baudrate=baudrate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
            )
        except (SerialException, OSError) as e:
            logger.error(f"Failed to open serial port {port}: {e}")
            raise TransportError(f"Error opening {port}: {e}") from e

        logger.info(f"Opened serial port {port} at {baudrate} baud")
        return cls(reader, writer, port, baudrate, chunk_size)

    def write(self, data: bytes) -> None:
        """Queue data on the serial port."""
        if not self._open:
            raise DeviceDisconnectedError(f"Serial port {self.port} is closed")
        try:
            self._writer.write(data)
        except (SerialException, OSError) as e:
            logger.error(f"Serial write failed: {e}")
            raise TransportError(f"Serial write failed: {e}") from e

    async def drain(self) -> None:
        """Wait for the serial output buffer to empty."""
        try:
            await self._writer.drain()
        except (SerialException, OSError) as e:
            logger.error(f"Serial drain failed: {e}")
            raise TransportError(f"Serial drain failed: {e}") from e

    async def read(self, timeout: float) -> bytes:
        """Read the next available chunk from the serial port."""
        try:
            data = await asyncio.wait_for(self._reader.read(self.chunk_size), timeout)
        except asyncio.TimeoutError:
            return b""
        except (SerialException, OSError) as e:
            logger.error(f"Device disconnected: {e}")
            raise DeviceDisconnectedError(f"Serial device disconnected: {e}") from e

        if not data:
            raise DeviceDisconnectedError(f"Serial port {self.port} reached end of stream")

        logger.debug(f"Read {len(data)} bytes: {data}")
        return data

    def reset_input_buffer(self) -> None:
        """Clear the stream buffer and the serial input buffer."""
        # StreamReader offers no public way to drop buffered data
        self._reader._buffer.clear()
        try:
            self._writer.transport.serial.reset_input_buffer()
            logger.debug("Reset input buffer")
        except (SerialException, OSError) as e:
            logger.error(f"Failed to reset input buffer: {e}")
            raise TransportError(f"Failed to reset input buffer: {e}") from e

    def is_open(self) -> bool:
        """Check if serial port is open."""
        return self._open

    def close(self) -> None:
        """Close the serial port."""
        if self._open:
            self._writer.close()
            self._open = False
            logger.info(f"Closed serial port {self.port}")


class MockTransport(Transport):
    """
    Mock transport for testing.

    Simulates the bridge and modem without hardware. Replies are registered
    against command prefixes and released on the injected clock, so partial
    and delayed responses can be scripted precisely.
    """

    def __init__(self, clock: Clock) -> None:
        """
        Initialize mock transport.

        Args:
            clock: Clock used to release scheduled inbound data
        """
        self._clock = clock
        self._open = True
        self._pending: list[tuple[float, bytes]] = []
        self._replies: dict[str, Deque[Reply]] = {}
        self._standing: dict[str, Reply] = {}
        self.written: list[bytes] = []
        logger.info("Initialized MockTransport")

    def add_reply(self, prefix: str, *replies: Reply) -> None:
        """
        Queue one-shot replies for commands starting with ``prefix``.

        Each reply is consumed by one matching write. A reply is either the
        full response text or a list of ``(delay, text)`` fragments released
        relative to the write.
        """
        self._replies.setdefault(prefix, deque()).extend(replies)
        logger.debug(f"Added mock replies for {prefix!r}: {replies}")

    def set_reply(self, prefix: str, reply: Reply) -> None:
        """Answer every write starting with ``prefix`` once one-shots run out."""
        self._standing[prefix] = reply

    def feed(self, data: Union[str, bytes], delay: float = 0.0) -> None:
        """Schedule unsolicited inbound data."""
        self._schedule(self._clock.monotonic() + delay, _to_bytes(data))

    @property
    def sent_lines(self) -> list[str]:
        """Every write decoded, with a trailing CRLF removed."""
        lines = []
        for data in self.written:
            text = data.decode(ENCODING)
            lines.append(text[:-2] if text.endswith("\r\n") else text)
        return lines

    def count_sent(self, prefix: str) -> int:
        """Number of writes starting with ``prefix``."""
        return sum(1 for line in self.sent_lines if line.startswith(prefix))

    def write(self, data: bytes) -> None:
        """Record a write and schedule any matching reply."""
        if not self._open:
            raise DeviceDisconnectedError(
                "MockTransport is closed (simulating device disconnection)"
            )

        self.written.append(data)
        logger.debug(f"Mock write: {data}")

        text = data.decode(ENCODING)
        if text.endswith("\r\n"):
            text = text[:-2]
        reply = self._match(text)
        if reply is None:
            return

        now = self._clock.monotonic()
        if isinstance(reply, list):
            for delay, fragment in reply:
                self._schedule(now + delay, _to_bytes(fragment))
        else:
            self._schedule(now, _to_bytes(reply))

    async def drain(self) -> None:
        if not self._open:
            raise DeviceDisconnectedError("MockTransport is closed")
        await asyncio.sleep(0)

    async def read(self, timeout: float) -> bytes:
        """Return due data, sleeping on the clock until some arrives or timeout."""
        if not self._open:
            raise DeviceDisconnectedError(
                "MockTransport is closed (simulating device disconnection)"
            )

        now = self._clock.monotonic()
        if not self._due(now) and self._pending:
            next_release = self._pending[0][0]
            if next_release - now <= timeout:
                await self._clock.sleep(next_release - now)
                return self._take(max(self._clock.monotonic(), next_release))

        if not self._due(now):
            await self._clock.sleep(timeout)
        return self._take(self._clock.monotonic())

    def reset_input_buffer(self) -> None:
        """Drop inbound data that is already due."""
        dropped = self._take(self._clock.monotonic())
        if dropped:
            logger.debug(f"Reset mock input buffer, dropped {dropped!r}")

    def is_open(self) -> bool:
        """Check if mock transport is open."""
        return self._open

    def close(self) -> None:
        """Close mock transport."""
        self._open = False
        logger.info("Closed MockTransport")

    def _match(self, text: str) -> Optional[Reply]:
        # Longest matching prefix wins
        for prefix in sorted(self._replies, key=len, reverse=True):
            if text.startswith(prefix) and self._replies[prefix]:
                return self._replies[prefix].popleft()
        for prefix in sorted(self._standing, key=len, reverse=True):
            if text.startswith(prefix):
                return self._standing[prefix]
        return None

    def _schedule(self, release: float, data: bytes) -> None:
        self._pending.append((release, data))
        self._pending.sort(key=lambda item: item[0])

    def _due(self, now: float) -> bool:
        return bool(self._pending) and self._pending[0][0] <= now

    def _take(self, now: float) -> bytes:
        due = [data for release, data in self._pending if release <= now]
        self._pending = [item for item in self._pending if item[0] > now]
        result = b"".join(due)
        if result:
            logger.debug(f"Mock read: {result}")
        return result
