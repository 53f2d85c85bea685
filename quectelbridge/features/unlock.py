"""
Modem UART unlock procedure.

Since the NB85 bridge firmware, the modem's RX/TX lines are switched to GPIOs
almost immediately after the bridge powers up, and AT traffic cannot get
through. The UART restore command has to land after the firmware's own GPIO
setup and before the modem's power-up sequence starts. Too early and the
firmware overwrites it; too late and the modem's early AT handshake fails,
which makes the firmware step the UART to the next baud rate. Nothing short
of a power cycle recovers from a wrong baud rate.

Each attempt reboots the bridge, waits a randomly sampled delay inside the
measured window, restores the UART, and checks that the modem answers AT.
Failed attempts are repeated up to a fixed count.
"""

import logging
import math
import random
from typing import TYPE_CHECKING, Optional

from ..exceptions import BridgeError, ScpiTimeoutError, TransportError, UnlockError
from ..types import CommandSpec, UnlockAttempt

if TYPE_CHECKING:
    from ..core import BridgeSession

logger = logging.getLogger(__name__)

MAX_RESAMPLES = 100


def skewed_box_muller(
    low: float,
    high: float,
    skew: float,
    rng: random.Random,
    max_resamples: int = MAX_RESAMPLES
) -> float:
    """
    Sample from a skewed, bounded normal distribution.

    A standard normal from the Box-Muller transform is squeezed to mean 0.5
    and sigma 0.1, resampled when it falls outside [0, 1], raised to ``skew``
    and stretched onto [low, high].
    """
    for _ in range(max_resamples):
        # 1 - random() is in (0, 1], keeping log() finite
        u = 1.0 - rng.random()
        v = 1.0 - rng.random()
        num = math.sqrt(-2.0 * math.log(u)) * math.cos(2.0 * math.pi * v)

        num = num / 10.0 + 0.5
        if 0.0 <= num <= 1.0:
            return low + (num ** skew) * (high - low)

    return low + (0.5 ** skew) * (high - low)


class UnlockProcedure:
    """
    Bounded-retry recovery of the modem UART.

    Stages per attempt: link test, reboot, sampled delay, UART restore,
    modem boot wait, AT liveness check.
    """

    def __init__(
        self,
        session: "BridgeSession",
        rng: Optional[random.Random] = None
    ) -> None:
        """
        Initialize unlock procedure.

        Args:
            session: BridgeSession to execute commands on
            rng: Random source for the restore delay
        """
        self.session = session
        self.config = session.config.unlock
        self.commands = session.commands
        self.rng = rng or random.Random()

    def sample_delay(self) -> float:
        """Seconds from reboot acknowledgement to UART restore."""
        low, high = self.config.window
        return skewed_box_muller(low, high, self.config.skew, self.rng)

    async def run(self) -> UnlockAttempt:
        """
        Run attempts until the modem answers AT or attempts run out.

        Returns:
            The successful attempt

        Raises:
            UnlockError: If every attempt failed
            TransportError: If the serial link fails
        """
        max_attempts = self.config.max_attempts

        for index in range(max_attempts):
            attempt = UnlockAttempt(attempt_index=index, sampled_delay=self.sample_delay())
            try:
                await self._attempt(attempt)
            except TransportError:
                raise
            except BridgeError as e:
                logger.error(f"Attempt {index + 1}/{max_attempts} failed: {e}")
                if index + 1 < max_attempts:
                    await self.session.sleep(self.config.retry_delay)
                continue

            logger.info("succeeded. modem UART has been unlocked")
            return attempt

        raise UnlockError(f"reached max repeat count ({max_attempts})", attempts=max_attempts)

    async def _attempt(self, attempt: UnlockAttempt) -> None:
        await self.link_test()
        await self._expect_ok(self.commands.reboot_device, "rebooting device failed")

        logger.info(f"use delay {attempt.sampled_delay:.3f} secs")
        await self.session.sleep(attempt.sampled_delay)
        await self._expect_ok(self.commands.disable_sci_loopback, "disable loopback failed")

        logger.info(f"waiting {self.config.modem_boot_wait:g} seconds for modem power up")
        await self.session.sleep(self.config.modem_boot_wait)
        await self.liveness_check()

    async def link_test(self) -> None:
        """
        Poll the bridge identity until it answers with the expected signature.

        Raises:
            BridgeError: If the bridge never identifies itself
        """
        signature = self.session.config.identity_signature

        for count in range(self.config.link_test_max_attempts):
            try:
                response = await self.session.scpi.query(self.commands.read_device_id)
            except ScpiTimeoutError:
                response = ""
            if signature in response:
                return

            if (count + 1) % self.config.link_test_warn_every == 0:
                logger.warning("please check your cable or possibly power cycle the device")
            await self.session.sleep(self.config.link_test_delay)

        raise BridgeError("scpi link seems not working", command=self.commands.read_device_id)

    async def liveness_check(self) -> None:
        """
        Check that the modem answers a bare AT.

        Raises:
            ATTimeoutError: If the modem does not answer OK
        """
        spec = CommandSpec.of("at", self.session.timing.at_response_delay, "OK")
        async with self.session.passthrough():
            await self.session.at.send(spec)

    async def _expect_ok(self, command: str, message: str) -> None:
        response = await self.session.scpi.query(command)
        if "OK" not in response:
            raise BridgeError(message, command=command, response=response)
