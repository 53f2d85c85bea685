"""
SCPI instrument-command handling for the serial bridge.

The bridge answers every instrument command with exactly one CRLF-terminated
line, so responses are delimited by newline alone with no inter-character
timing.
"""

import logging
from typing import Optional

from .channel import LineChannel
from .clock import Clock
from .transport import Transport, ENCODING
from ..exceptions import ScpiTimeoutError

logger = logging.getLogger(__name__)


class LineResponseReader:
    """
    Accumulates inbound chunks into single-line responses.

    Once the buffered text ends with a newline, the trimmed line is returned
    and the buffer starts over.
    """

    def __init__(self) -> None:
        self._buffer = ""

    def feed(self, chunk: str) -> Optional[str]:
        """
        Add a chunk of inbound text.

        Returns:
            The completed, trimmed line, or None if still incomplete
        """
        self._buffer += chunk
        if not self._buffer.endswith("\n"):
            return None

        line = self._buffer.strip()
        self._buffer = ""
        return line

    @property
    def pending(self) -> str:
        """Text received since the last completed line."""
        return self._buffer

    def reset(self) -> None:
        self._buffer = ""


class ScpiClient:
    """
    Request/response client for bridge instrument commands.

    Only one command may be outstanding; callers await each query before
    issuing the next.
    """

    def __init__(
        self,
        channel: LineChannel,
        transport: Transport,
        clock: Clock,
        default_timeout: float
    ) -> None:
        """
        Initialize SCPI client.

        Args:
            channel: Line channel used for writing
            transport: Transport to read responses from
            clock: Time source
            default_timeout: Response timeout when none is given, in seconds
        """
        self.channel = channel
        self.transport = transport
        self.clock = clock
        self.default_timeout = default_timeout

    async def send(self, command: str) -> None:
        """Send an instrument command without waiting for an answer."""
        await self.channel.send(command)

    async def query(
        self,
        command: str,
        timeout: Optional[float] = None,
        raw: bool = False
    ) -> str:
        """
        Send an instrument command and wait for its single-line response.

        Args:
            command: SCPI command (e.g., "*IDN?")
            timeout: Seconds to wait after the command has drained
            raw: Send the command without CRLF

        Returns:
            Trimmed response line (may be empty)

        Raises:
            ScpiTimeoutError: If no complete line arrives in time
            TransportError: If the link fails
        """
        timeout = self.default_timeout if timeout is None else timeout
        reader = LineResponseReader()

        self.transport.reset_input_buffer()
        await self.channel.send(command, raw=raw)
        deadline = self.clock.monotonic() + timeout

        while True:
            remaining = deadline - self.clock.monotonic()
            if remaining <= 0:
                logger.debug(f"SCPI command timed out: {command}")
                raise ScpiTimeoutError(
                    f"{command} timeout",
                    command=command,
                    response=reader.pending or None
                )

            data = await self.transport.read(remaining)
            if not data:
                continue

            logger.debug(f"< {data!r}")
            line = reader.feed(data.decode(ENCODING))
            if line is not None:
                if line:
                    logger.info(f"< {line}")
                return line
