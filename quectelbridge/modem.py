"""
Main BridgeModem class.

User-facing API that coordinates all feature managers.
"""

import logging
import random
from typing import Optional

from .config import BridgeConfig
from .core import BridgeSession, Clock, Transport, SerialTransport
from .features import (
    BridgeManager,
    ChunkedTransport,
    ModemManager,
    PowerManager,
    ScriptRunner,
    UnlockProcedure,
)

logger = logging.getLogger(__name__)


class BridgeModem:
    """
    Main interface for a Quectel modem behind a SCPI serial bridge.

    Provides a high-level API through feature managers:

    - bridge: Bridge identity, reboot, loopback, forwarding, SCPI scripts
    - power: Modem power status and on/off
    - modem: Modem information and configuration scripts
    - script: AT script runner
    - socket: Chunked TCP socket transport
    - unlock: UART unlock procedure

    Example usage with context manager:

    .. code-block:: python

        async with await BridgeModem.open("/dev/ttyUSB0") as modem:
            print(await modem.bridge.identify())
            await modem.socket.open("203.0.113.7", 7000)
            await modem.socket.send(b"hello")
            await modem.socket.close()
    """

    def __init__(
        self,
        transport: Transport,
        config: Optional[BridgeConfig] = None,
        clock: Optional[Clock] = None,
        rng: Optional[random.Random] = None
    ) -> None:
        """
        Initialize BridgeModem.

        Args:
            transport: Open transport (SerialTransport, or MockTransport for testing)
            config: Session configuration
            clock: Time source (defaults to the real clock)
            rng: Random source for the unlock procedure

        Example:

        .. code-block:: python

            from quectelbridge.core import MockTransport, VirtualClock
            clock = VirtualClock()
            modem = BridgeModem(MockTransport(clock), clock=clock)
        """
        self._session = BridgeSession(transport, config=config, clock=clock)

        self.bridge = BridgeManager(self._session)
        self.power = PowerManager(self._session)
        self.modem = ModemManager(self._session)
        self.script = ScriptRunner(self._session)
        self.socket = ChunkedTransport(self._session)
        self.unlock = UnlockProcedure(self._session, rng=rng)

        logger.info("Initialized BridgeModem")

    @classmethod
    async def open(
        cls,
        port: str,
        baudrate: int = 9600,
        config: Optional[BridgeConfig] = None
    ) -> "BridgeModem":
        """
        Open a serial port and build a BridgeModem on it.

        Raises:
            TransportError: If serial port cannot be opened
        """
        transport = await SerialTransport.open(port, baudrate)
        logger.info(f"Created serial transport for {port}")
        return cls(transport, config=config)

    @property
    def session(self) -> BridgeSession:
        """Underlying session, for direct AT/SCPI access."""
        return self._session

    def close(self) -> None:
        """Close the serial link."""
        self._session.close()

    async def __aenter__(self) -> "BridgeModem":
        return self

    async def __aexit__(self, *exc) -> None:
        self.close()
