"""
AT command protocol handler.

Runs one AT command through the bridge in pass-through mode and waits for any
of its expected patterns under an inter-character poll and a silence timeout.
"""

import logging
from typing import Sequence

from .channel import LineChannel
from .clock import Clock
from .transport import Transport, ENCODING
from ..types import CommandSpec, Pattern
from ..exceptions import ATTimeoutError

logger = logging.getLogger(__name__)

# Emitted by the bridge when its own forwarding timer expires before the modem
# has answered. The bridge has then dropped back to SCPI mode.
STALL_SENTINEL = "\r\nMODEM TIMEOUT\r\n"

# Sent to push the bridge back into forwarding. It is relayed to the modem
# as well, which the modem treats as an empty line.
FILLER_LINE = " "

DEFAULT_POLL_INTERVAL = 0.02


def find_expected(response: str, patterns: Sequence[Pattern]) -> bool:
    """
    Check whether any expected pattern occurs in ``response``.

    Strings are matched as literal substrings. Anything else, such as a
    compiled regex, is asked through its ``search`` method.
    """
    for pattern in patterns:
        if isinstance(pattern, str):
            if pattern in response:
                return True
        elif pattern.search(response):
            return True
    return False


class ATSender:
    """
    AT command sender.

    The timeout of a command is counted from the last received byte, so a
    modem that answers slowly in fragments is not cut off while it is still
    talking. A command with no expected patterns completes successfully once
    the line has been silent for its timeout.
    """

    def __init__(
        self,
        channel: LineChannel,
        transport: Transport,
        clock: Clock,
        poll_interval: float = DEFAULT_POLL_INTERVAL
    ) -> None:
        """
        Initialize AT sender.

        Args:
            channel: Line channel used for writing
            transport: Transport to read responses from
            clock: Time source
            poll_interval: Inter-character poll period in seconds
        """
        self.channel = channel
        self.transport = transport
        self.clock = clock
        self.poll_interval = poll_interval

    async def send(self, spec: CommandSpec, raw: bool = False) -> str:
        """
        Send an AT command and wait for an expected pattern.

        Args:
            spec: Command, timeout and expected patterns
            raw: Send the command text without CRLF (socket payload)

        Returns:
            Raw response text accumulated up to completion

        Raises:
            ATTimeoutError: If no expected pattern arrived; carries the response
            TransportError: If the link fails
        """
        response = ""
        if not raw:
            # Raw payload continues the send command before it
            self.transport.reset_input_buffer()
        last_recv = self.clock.monotonic()
        await self.channel.send(spec.command, raw=raw)

        while True:
            data = await self.transport.read(self.poll_interval)
            if data:
                logger.debug(f"< {data!r}")
                last_recv = self.clock.monotonic()
                response += data.decode(ENCODING)

            if STALL_SENTINEL in response:
                response = response.replace(STALL_SENTINEL, "")
                logger.warning(f"[{STALL_SENTINEL.strip()}]")
                await self.channel.send(FILLER_LINE)

            if spec.expect and find_expected(response, spec.expect):
                return self._complete(spec, response, found=True)

            if self.clock.monotonic() - last_recv >= spec.timeout:
                return self._complete(spec, response, found=False)

    def _complete(self, spec: CommandSpec, response: str, found: bool) -> str:
        text = response.strip().replace("\r\n", "\n")
        logger.info(f"< {text} {'*' if found else ''}".rstrip())

        if spec.expect and not found:
            raise ATTimeoutError("AT failed", command=spec.command, response=response)
        return response
