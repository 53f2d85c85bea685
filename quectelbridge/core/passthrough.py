"""
Pass-through environment.

Brackets AT traffic with the bridge's forwarding on/off commands. Leaving
pass-through mode always happens, however the enclosed work ends.
"""

import logging
from typing import Awaitable, Callable, Optional, TypeVar

from .clock import Clock
from .scpi import ScpiClient
from ..config import ScpiCommands
from ..exceptions import BridgeError, DeviceReportedError, ScpiTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PassThrough:
    """
    Scoped pass-through mode.

    Use as an async context manager or through :meth:`run`. Entering while
    already inside is a no-op, so composed operations can each declare the
    scope they need and only the outermost one touches the bridge.

    Example:

    .. code-block:: python

        async with session.passthrough():
            await session.at.send(CommandSpec.of("AT", 1.0, "OK"))
    """

    def __init__(
        self,
        scpi: ScpiClient,
        commands: ScpiCommands,
        clock: Clock,
        settle: float,
        idle_timeout_timeout: Optional[float] = None
    ) -> None:
        """
        Initialize pass-through environment.

        Args:
            scpi: Client for bridge instrument commands
            commands: Instrument command table
            clock: Time source
            settle: Pause after switching mode, in seconds
            idle_timeout_timeout: If set, configure the bridge forwarding
                idle timeout first and wait this long for its answer
        """
        self.scpi = scpi
        self.commands = commands
        self.clock = clock
        self.settle = settle
        self.idle_timeout_timeout = idle_timeout_timeout
        self._depth = 0

    @property
    def active(self) -> bool:
        """True while inside pass-through mode."""
        return self._depth > 0

    async def run(self, body: Callable[[], Awaitable[T]]) -> T:
        """
        Run ``body`` inside pass-through mode and return its result.

        Errors raised by ``body`` propagate after pass-through has been left.
        """
        async with self:
            return await body()

    async def __aenter__(self) -> "PassThrough":
        if self._depth == 0:
            await self._enter()
        self._depth += 1
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        self._depth -= 1
        if self._depth > 0:
            return False

        try:
            await self._leave()
        except BridgeError as e:
            if exc is None:
                raise
            logger.error(f"Failed to leave pass-through mode: {e}")
        return False

    async def _enter(self) -> None:
        if self.idle_timeout_timeout is not None:
            await self._configure_idle_timeout()

        started = self.clock.monotonic()
        try:
            response = await self.scpi.query(self.commands.forwarding_on, timeout=self.settle)
        except ScpiTimeoutError:
            # Some bridge firmware never acknowledges forwarding on
            logger.debug("No answer to forwarding on")
        else:
            if "ERROR" in response.upper():
                raise DeviceReportedError(
                    "Entering pass-through mode failed",
                    token=response,
                    command=self.commands.forwarding_on,
                    response=response
                )

        await self.clock.sleep(self.settle - (self.clock.monotonic() - started))
        logger.debug("Entered pass-through mode")

    async def _leave(self) -> None:
        await self.scpi.send(self.commands.forwarding_off)
        await self.clock.sleep(self.settle)
        logger.debug("Left pass-through mode")

    async def _configure_idle_timeout(self) -> None:
        try:
            await self.scpi.query(
                self.commands.set_forwarding_timeout,
                timeout=self.idle_timeout_timeout
            )
        except ScpiTimeoutError as e:
            logger.warning(f"Forwarding timeout not confirmed: {e}")
