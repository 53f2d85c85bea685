"""
Modem manager.

Configuration and information scripts for the modem behind the bridge.
"""

import logging
from typing import TYPE_CHECKING

from .script import ScriptRunner
from ..parsers.socket import GpioLevelParser
from ..types import CommandSpec, NetworkType

if TYPE_CHECKING:
    from ..core import BridgeSession

logger = logging.getLogger(__name__)

AT_EXEC_DELAY = 1.0

INFO_QUERY = (
    "at+cimi",
    "at+cgmi",
    "at+cgmm",
    "at+cgmr",
    "at+cgsn",
    "at+cpin?",
    "at+csq",
    "at+cereg?",
    ("at+qiact?", 2.5, "OK\r\n"),
)


class ModemManager:
    """
    Manages modem setup and status queries.
    """

    def __init__(self, session: "BridgeSession") -> None:
        """
        Initialize modem manager.

        Args:
            session: BridgeSession to execute commands on
        """
        self.session = session
        self.runner = ScriptRunner(session)
        self._gpio_parser = GpioLevelParser()
        logger.debug("Initialized ModemManager")

    async def info(self) -> list[str]:
        """
        Query identity, SIM, signal and registration information.

        Returns:
            Raw responses in query order
        """
        return await self.runner.run(INFO_QUERY)

    async def activate_pdp(self, cid: int = 1) -> list[str]:
        """
        (Re)activate a PDP context, closing socket 0 first.

        Raises:
            ATTimeoutError: If any step is not confirmed
        """
        return await self.runner.run([
            ("at+qiclose=0,3", 2.0, "OK\r\n"),
            (f"at+qideact={cid}", 3.0, "OK\r\n"),
            (f"at+qiact={cid}", 2.0, "OK\r\n"),
            ("at+qiact?", 2.5, "OK\r\n"),
        ])

    async def configure(
        self,
        network: NetworkType,
        apn: str = "",
        username: str = "",
        password: str = ""
    ) -> bool:
        """
        Configure GPIOs, bands, operator selection, IoT mode, APN and sleep mode.

        Returns:
            True if the module has a supercap

        Raises:
            FramingError: If the supercap indication GPIO cannot be read
        """
        init = [
            "ate0",
            "at+cmee=1",
            "at+cfun=1",
            # pin26: input, supcap type
            'at+qcfg="gpio",1,26,0,0,0,0',
            # pin85: output, set antenna type = ext
            'at+qcfg="gpio",1,85,1,0,0,0',
            'at+qcfg="gpio",3,85,1,1',
            # pin64-pin66: charge level setup pins
            'at+qcfg="gpio",1,64,0,0,0',
            'at+qcfg="gpio",3,64,0,0',
            'at+qcfg="gpio",1,65,0,0,0',
            'at+qcfg="gpio",3,65,0,0',
            'at+qcfg="gpio",1,66,0,0,0',
            'at+qcfg="gpio",3,66,0,0',
            'at+qcfg="band",0,8000004,0,1',
            'at+qcfg="band",0,0,95,1',
            "at+cops=0",
            f'at+qcfg="iotopmode",{network.value}',
            f'at+qicsgp=1,1,"{apn}","{username}","{password}",0',
        ]

        async with self.session.passthrough():
            await self.runner.run(init, inside_passthrough=True)
            return await self._configure_sleep_mode()

    async def _configure_sleep_mode(self) -> bool:
        response = await self.session.at.send(
            CommandSpec.of('at+qcfg="gpio",2,26', AT_EXEC_DELAY)
        )
        supercap = self._gpio_parser.parse(response) == 1
        logger.info(f"module {'with' if supercap else 'without'} supcap")

        await self.session.at.send(
            CommandSpec.of(f"at+qsclk={1 if supercap else 0}", AT_EXEC_DELAY)
        )
        if not supercap:
            await self.session.at.send(
                CommandSpec.of('at+qcfg="fast/poweroff",25,1', AT_EXEC_DELAY)
            )
        return supercap
