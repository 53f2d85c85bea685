"""
QuectelBridge - drive a Quectel cellular modem through a SCPI serial bridge.
"""

from .version import __version__
from .modem import BridgeModem
from .config import (
    BridgeConfig,
    ScpiCommands,
    TimingProfile,
    UnlockConfig,
    REAL_TIMING,
    UNBOUNDED_TIMING,
    MAX_MTU,
)
from .core import BridgeSession, MockTransport, SerialTransport, VirtualClock

from .types import (
    CommandSpec,
    ScpiSpec,
    TransportSession,
    TransferStats,
    UnlockAttempt,
    SendStatus,
    PinLevel,
    PowerStatus,
    NetworkType,
)

from .exceptions import (
    BridgeError,
    ConfigError,
    TransportError,
    DeviceDisconnectedError,
    ATTimeoutError,
    ScpiTimeoutError,
    FramingError,
    DeviceReportedError,
    AckTimeoutError,
    UnlockError,
)

__all__ = [
    "__version__",
    "BridgeModem",
    "BridgeSession",
    "MockTransport",
    "SerialTransport",
    "VirtualClock",
    "BridgeConfig",
    "ScpiCommands",
    "TimingProfile",
    "UnlockConfig",
    "REAL_TIMING",
    "UNBOUNDED_TIMING",
    "MAX_MTU",
    "CommandSpec",
    "ScpiSpec",
    "TransportSession",
    "TransferStats",
    "UnlockAttempt",
    "SendStatus",
    "PinLevel",
    "PowerStatus",
    "NetworkType",
    "BridgeError",
    "ConfigError",
    "TransportError",
    "DeviceDisconnectedError",
    "ATTimeoutError",
    "ScpiTimeoutError",
    "FramingError",
    "DeviceReportedError",
    "AckTimeoutError",
    "UnlockError",
]
