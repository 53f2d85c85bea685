"""
Modem power manager.

Drives the modem's DCC and power key lines through bridge GPIOs.
"""

import logging
from typing import TYPE_CHECKING

from ..exceptions import BridgeError, ScpiTimeoutError
from ..types import PinLevel, PowerStatus

if TYPE_CHECKING:
    from ..core import BridgeSession

logger = logging.getLogger(__name__)

DCC_WAIT = 0.1
POWER_KEY_WAIT = 1.5
POWER_ON_WAIT = 2.0


class PowerManager:
    """
    Manages modem power state.
    """

    def __init__(self, session: "BridgeSession") -> None:
        """
        Initialize power manager.

        Args:
            session: BridgeSession to execute commands on
        """
        self.session = session
        self.commands = session.commands
        logger.debug("Initialized PowerManager")

    async def read_power_good(self) -> PinLevel:
        response = await self.session.scpi.query(self.commands.read_modem_power_good_pin)
        return PinLevel.parse(response)

    async def status(self) -> PowerStatus:
        """
        Read the power-good and DCC pins.

        Example:

        .. code-block:: python

            status = await modem.power.status()
            print("on" if status.is_on else "off")
        """
        power_good = await self.read_power_good()
        dcc = PinLevel.parse(await self.session.scpi.query(self.commands.read_modem_dcc_pin))
        logger.info(f"modem power {power_good.name}, dcc {dcc.name}")
        return PowerStatus(power_good=power_good, dcc=dcc)

    async def power_on(self) -> PowerStatus:
        """
        Turn the modem on if it is off.

        Raises:
            BridgeError: If the power state cannot be read
        """
        power_good = await self.read_power_good()
        if power_good is PinLevel.HIGH:
            logger.info("modem is on")
            return PowerStatus(power_good=power_good)
        if power_good is not PinLevel.LOW:
            raise BridgeError("modem power state unknown")

        logger.info("modem is off")
        await self._pulse(self.commands.assert_modem_dcc, DCC_WAIT)
        await self._pulse(self.commands.turn_on_modem_power_key, POWER_KEY_WAIT)
        await self.session.sleep(POWER_ON_WAIT)

        power_good = await self.read_power_good()
        logger.info(f"modem power is {power_good.name}")
        return PowerStatus(power_good=power_good)

    async def power_off(self) -> None:
        """Turn the modem off."""
        await self._pulse(self.commands.turn_off_modem_power_key, POWER_KEY_WAIT)
        await self._pulse(self.commands.deassert_modem_dcc, DCC_WAIT)

    async def _pulse(self, command: str, wait: float) -> None:
        # Pin writes are not always acknowledged; the wait is what matters
        try:
            await self.session.scpi.query(command, timeout=wait)
        except ScpiTimeoutError:
            logger.debug(f"No answer to {command}")
