"""
Bridge device manager.

Handles operations on the serial bridge itself: identity, reboot, loopback,
forwarding and SCPI scripts.
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Callable, Iterable, Optional

from ..exceptions import ScpiTimeoutError
from ..types import ScpiSpec

if TYPE_CHECKING:
    from ..core import BridgeSession

logger = logging.getLogger(__name__)

PROBE_INTERVAL = 1.0
SEND_LINE_TIMEOUT = 2.0


class BridgeManager:
    """
    Manages the bridge's own instrument commands.
    """

    def __init__(self, session: "BridgeSession") -> None:
        """
        Initialize bridge manager.

        Args:
            session: BridgeSession to execute commands on
        """
        self.session = session
        self.commands = session.commands
        logger.debug("Initialized BridgeManager")

    async def identify(self) -> str:
        """
        Get the bridge identity string (*IDN?).

        Raises:
            ScpiTimeoutError: If the bridge does not answer
        """
        return await self.session.scpi.query(self.commands.read_device_id)

    async def reboot(self) -> str:
        """
        Reboot the bridge.

        Returns:
            The bridge's acknowledgement line

        Raises:
            ScpiTimeoutError: If the reboot is not acknowledged
        """
        logger.info("Rebooting bridge")
        return await self.session.scpi.query(self.commands.reboot_device)

    async def set_loopback(self, on: bool) -> None:
        """Turn loopback of the SCI pins on or off."""
        await self.session.scpi.send(
            self.commands.enable_sci_loopback if on else self.commands.disable_sci_loopback
        )

    async def set_forwarding(self, on: bool) -> None:
        """Turn optical head forwarding on or off without awaiting an answer."""
        await self.session.scpi.send(
            self.commands.forwarding_on if on else self.commands.forwarding_off
        )

    async def send_line(
        self,
        line: str,
        raw: bool = False,
        timeout: float = SEND_LINE_TIMEOUT
    ) -> Optional[str]:
        """
        Send one arbitrary line and wait briefly for a single-line answer.

        Args:
            line: Text to send
            raw: Send without CRLF
            timeout: Seconds to wait for the answer

        Returns:
            The answer, or None if the bridge stayed silent
        """
        try:
            return await self.session.scpi.query(line, timeout=timeout, raw=raw)
        except ScpiTimeoutError:
            logger.info(f"No answer to {line!r}")
            return None

    async def run_scpi_script(self, specs: Iterable[ScpiSpec]) -> list[str]:
        """
        Run SCPI commands in order, stopping at the first that times out.

        Returns:
            One response line per command
        """
        responses = []
        for index, spec in enumerate(specs):
            if index:
                await self.session.sleep(self.session.config.scpi_script_delay)
            logger.info(f"exec {spec.command} timeout {spec.timeout:g}")
            responses.append(await self.session.scpi.query(spec.command, timeout=spec.timeout))
        return responses

    async def probe(
        self,
        stop: asyncio.Event,
        on_response: Optional[Callable[[str], None]] = None,
        interval: float = PROBE_INTERVAL
    ) -> int:
        """
        Send *IDN? once per interval until ``stop`` is set.

        A probe that goes unanswered is simply repeated.

        Args:
            stop: Set to end probing
            on_response: Called with every answer
            interval: Seconds between probes

        Returns:
            Number of answers received
        """
        answers = 0
        while not stop.is_set():
            try:
                response = await self.session.scpi.query(
                    self.commands.read_device_id,
                    timeout=interval
                )
            except ScpiTimeoutError:
                continue

            answers += 1
            if on_response:
                on_response(response)
            if not stop.is_set():
                await self.session.sleep(interval)

        logger.debug(f"Probe stopped after {answers} answers")
        return answers
