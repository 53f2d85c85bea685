"""
Data types and structures for QuectelBridge.

Provides type-safe representations of commands, sessions and statistics.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from .exceptions import ConfigError

# An expected pattern is a literal substring, or an object with a search()
# method such as a compiled regex
Pattern = Union[str, "re.Pattern[str]"]


@dataclass(frozen=True)
class CommandSpec:
    """
    A single AT command with its timeout and expected response patterns.

    An empty ``expect`` means completion is decided by silence alone and
    always succeeds.
    """
    command: str
    timeout: float                   # Seconds of silence tolerated
    expect: tuple[Pattern, ...] = ()

    def __post_init__(self) -> None:
        if self.timeout <= 0:
            raise ConfigError(f"timeout must be positive, got {self.timeout}", command=self.command)

    @classmethod
    def of(
        cls,
        command: str,
        timeout: float,
        expect: Union[None, Pattern, list, tuple] = None
    ) -> "CommandSpec":
        """Build a spec, normalizing ``expect`` to an ordered tuple."""
        if expect is None:
            patterns: tuple = ()
        elif isinstance(expect, (str, re.Pattern)):
            patterns = (expect,)
        else:
            patterns = tuple(expect)
        return cls(command=command, timeout=timeout, expect=patterns)


@dataclass(frozen=True)
class ScpiSpec:
    """A single instrument command and its response timeout."""
    command: str
    timeout: float


@dataclass(frozen=True)
class TransportSession:
    """Virtual socket created by a successful open."""
    ip: str
    port: int
    connection_id: int
    pdp_context_id: int
    mtu: int


@dataclass
class TransferStats:
    """Counters for one logical transfer."""
    sent_messages: int = 0
    sent_bytes: int = 0
    received_messages: int = 0
    received_bytes: int = 0
    elapsed: float = 0.0

    def record_sent(self, size: int) -> None:
        self.sent_messages += 1
        self.sent_bytes += size

    def record_received(self, size: int) -> None:
        self.received_messages += 1
        self.received_bytes += size


@dataclass(frozen=True)
class UnlockAttempt:
    """One pass of the unlock procedure."""
    attempt_index: int
    sampled_delay: float     # Seconds from reboot ack to UART restore


@dataclass(frozen=True)
class SendStatus:
    """
    Socket send status from AT+QISEND=<connectID>,0.

    Response format: +QISEND: <total_send_length>,<ackedbytes>,<unackedbytes>
    """
    total: int
    acked: int
    unacked: int


class PinLevel(Enum):
    """Digital pin level reported by the bridge."""
    LOW = "0"
    HIGH = "1"
    UNKNOWN = "?"

    @classmethod
    def parse(cls, text: str) -> "PinLevel":
        try:
            return cls(text.strip())
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class PowerStatus:
    """Modem power-good and DCC pin readings."""
    power_good: PinLevel
    dcc: Optional[PinLevel] = None

    @property
    def is_on(self) -> bool:
        return self.power_good is PinLevel.HIGH


class NetworkType(Enum):
    """IoT operating mode (AT+QCFG="iotopmode")."""
    CATM = 0
    NBIOT = 1

    @classmethod
    def parse(cls, text: str) -> "NetworkType":
        return cls[text.strip().upper()]
