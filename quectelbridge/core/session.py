"""
Session wiring transport, line channel, SCPI client, AT sender and
pass-through environment.

This is the foundation that feature managers build upon.
"""

import logging
from typing import Optional, Sequence, Union

from .channel import LineChannel
from .clock import Clock
from .passthrough import PassThrough
from .protocol import ATSender
from .scpi import ScpiClient
from .transport import Transport, SerialTransport
from ..config import BridgeConfig
from ..types import CommandSpec, Pattern

logger = logging.getLogger(__name__)


class BridgeSession:
    """
    One serial link to one bridge and its modem.

    Owns the transport for the lifetime of the invocation. Exactly one
    command is in flight at a time: every operation awaits the previous one
    before issuing the next.
    """

    def __init__(
        self,
        transport: Transport,
        config: Optional[BridgeConfig] = None,
        clock: Optional[Clock] = None
    ) -> None:
        """
        Initialize session.

        Args:
            transport: Open transport to the bridge
            config: Session configuration (defaults to BridgeConfig())
            clock: Time source (defaults to the real clock)
        """
        self.transport = transport
        self.config = config or BridgeConfig()
        self.clock = clock or Clock()
        self.timing = self.config.timing
        self.commands = self.config.scpi

        self.channel = LineChannel(transport)
        self.scpi = ScpiClient(
            self.channel,
            transport,
            self.clock,
            default_timeout=self.timing.scpi_response_delay
        )
        self.at = ATSender(
            self.channel,
            transport,
            self.clock,
            poll_interval=self.config.poll_interval
        )
        self._passthrough = PassThrough(
            self.scpi,
            self.commands,
            self.clock,
            settle=self.config.passthrough_settle,
            idle_timeout_timeout=self.timing.scpi_response_delay
        )

        logger.info(f"Initialized BridgeSession (timing: {self.timing.name}, mtu: {self.config.mtu})")

    @classmethod
    async def open(
        cls,
        port: str,
        baudrate: int = 9600,
        config: Optional[BridgeConfig] = None
    ) -> "BridgeSession":
        """
        Open the serial port and build a session on it.

        Raises:
            TransportError: If the port cannot be opened
        """
        transport = await SerialTransport.open(port, baudrate)
        return cls(transport, config=config)

    def passthrough(self) -> PassThrough:
        """The session's pass-through environment."""
        return self._passthrough

    async def send_at(
        self,
        command: str,
        timeout: Optional[float] = None,
        expect: Union[None, Pattern, Sequence[Pattern]] = None,
        raw: bool = False
    ) -> str:
        """
        Send an AT command; the caller must already be in pass-through mode.

        This is a convenience wrapper around ``at.send()``.

        Args:
            command: AT command text
            timeout: Silence timeout (defaults to the AT response delay)
            expect: Pattern or patterns to wait for
            raw: Send without CRLF

        Returns:
            Raw response text

        Raises:
            ATTimeoutError: If no expected pattern arrived
        """
        spec = CommandSpec.of(
            command,
            self.timing.at_response_delay if timeout is None else timeout,
            expect
        )
        return await self.at.send(spec, raw=raw)

    async def sleep(self, seconds: float) -> None:
        await self.clock.sleep(seconds)

    def close(self) -> None:
        """Close the transport."""
        logger.info("Closing bridge session")
        self.transport.close()

    async def __aenter__(self) -> "BridgeSession":
        return self

    async def __aexit__(self, *exc) -> None:
        self.close()
