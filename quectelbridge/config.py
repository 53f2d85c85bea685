"""
Session configuration for QuectelBridge.

Timing profiles, the bridge instrument-command table and the tunables of the
chunked transport and unlock procedure. Every value here is immutable and is
handed to components explicitly when a session is built.
"""

import dataclasses
from dataclasses import dataclass, field

from .exceptions import ConfigError

# Largest socket chunk the bridge forwarding buffers can carry.
# RX side: 1024 byte task buffer minus the "+QIRD: nnnn\r\n...\r\nOK\r\n" overhead.
MAX_MTU = 1006

# 2**31 - 1 milliseconds: the longest timer the bridge tooling ever arms
UNBOUNDED = (2 ** 31 - 1) / 1000.0


@dataclass(frozen=True)
class TimingProfile:
    """
    Named delays and timeouts, in seconds.

    Attributes:
        at_response_delay: Silence tolerated after an ordinary AT command
        scpi_response_delay: Wait for a single-line instrument response
        socket_open_delay: Silence tolerated after AT+QIOPEN
        socket_close_delay: Silence tolerated after AT+QICLOSE
        send_timeout: Silence tolerated after a raw payload chunk
        recv_timeout: Silence tolerated after AT+QIRD
        data_wait_timeout: How long a ping keeps polling for echoed data
    """
    name: str
    at_response_delay: float
    scpi_response_delay: float
    socket_open_delay: float
    socket_close_delay: float
    send_timeout: float
    recv_timeout: float
    data_wait_timeout: float

    def override(self, **changes: float) -> "TimingProfile":
        """Return a copy with some values replaced."""
        return dataclasses.replace(self, **changes)


REAL_TIMING = TimingProfile(
    name="real",
    at_response_delay=1.0,
    scpi_response_delay=0.8,
    socket_open_delay=10.0,
    socket_close_delay=10.5,
    send_timeout=10.0,
    recv_timeout=1.0,
    data_wait_timeout=15.0,
)

# Human-in-the-loop simulation: someone types the modem's answers by hand
UNBOUNDED_TIMING = TimingProfile(
    name="unbounded",
    at_response_delay=UNBOUNDED,
    scpi_response_delay=UNBOUNDED,
    socket_open_delay=UNBOUNDED,
    socket_close_delay=UNBOUNDED,
    send_timeout=UNBOUNDED,
    recv_timeout=UNBOUNDED,
    data_wait_timeout=UNBOUNDED,
)

TIMING_PROFILES = {
    REAL_TIMING.name: REAL_TIMING,
    UNBOUNDED_TIMING.name: UNBOUNDED_TIMING,
}


@dataclass(frozen=True)
class ScpiCommands:
    """Instrument commands understood by the serial bridge."""
    read_device_id: str = "*IDN?"
    read_modem_power_good_pin: str = "DIGital:PIN? P52"
    read_modem_dcc_pin: str = "DIGital:PIN? P51"
    assert_modem_dcc: str = "DIGital:PIN P51,HI"
    deassert_modem_dcc: str = "DIGital:PIN P51,LO"
    turn_on_modem_power_key: str = "DIGital:PIN PD1,LO,500"
    turn_off_modem_power_key: str = "DIGital:PIN PD1,LO,1000"
    enable_sci_loopback: str = "WAN:LOOPback:STOp"
    disable_sci_loopback: str = "WAN:LOOPback:STArt"
    forwarding_on: str = "SER:CON ON"
    forwarding_off: str = "+++"
    reboot_device: str = "PWRState:MONVolt 1600"
    set_forwarding_timeout: str = "SERial:TIMEout 8000"


@dataclass(frozen=True)
class UnlockConfig:
    """
    Measured timing of the bridge boot sequence.

    After the reboot acknowledgement the bridge turns the modem UART pins into
    GPIOs (about 2.878 s later) and the modem starts auto-bauding about
    3.142 s after that. The UART restore must land between the two.
    """
    reboot_to_gpio: float = 2.9
    gpio_to_modem_baud: float = 3.1
    margin: float = 0.2
    skew: float = 1.5
    modem_boot_wait: float = 5.0
    max_attempts: int = 5
    retry_delay: float = 1.0
    link_test_delay: float = 0.2
    link_test_max_attempts: int = 50
    link_test_warn_every: int = 5

    @property
    def window(self) -> tuple[float, float]:
        """Lower and upper bound of the restore delay, in seconds."""
        low = self.reboot_to_gpio - self.margin
        high = self.reboot_to_gpio + self.gpio_to_modem_baud + self.margin
        return low, high


@dataclass(frozen=True)
class BridgeConfig:
    """
    Session-wide settings.

    Attributes:
        mtu: Largest payload chunk for socket send/receive (1..MAX_MTU)
        poll_interval: Inter-character poll period of the AT sender
        passthrough_settle: Pause after entering/leaving pass-through mode
        inter_command_delay: Pause between script commands
        scpi_script_delay: Pause between SCPI script commands
        raw_payload: Send socket payload unterminated (optical head)
        connection_id: Socket connect ID used by the chunked transport
        pdp_context_id: PDP context the socket is opened on
        ack_max_polls: Send-status queries before giving up on an ack
        ack_first_delay: Wait after the first non-zero unacked count
        ack_retry_delay: Wait after later non-zero unacked counts
        recv_poll_delay: Pause between receive polls during a ping
        first_send_delay: Pause between socket open and first ping
        identity_signature: Substring that identifies the bridge in *IDN?
    """
    mtu: int = MAX_MTU
    poll_interval: float = 0.02
    passthrough_settle: float = 0.5
    inter_command_delay: float = 0.2
    scpi_script_delay: float = 0.05
    raw_payload: bool = True
    connection_id: int = 0
    pdp_context_id: int = 1
    ack_max_polls: int = 30
    ack_first_delay: float = 0.2
    ack_retry_delay: float = 0.5
    recv_poll_delay: float = 0.2
    first_send_delay: float = 2.0
    identity_signature: str = "LANDIS"
    timing: TimingProfile = REAL_TIMING
    scpi: ScpiCommands = field(default_factory=ScpiCommands)
    unlock: UnlockConfig = field(default_factory=UnlockConfig)

    def __post_init__(self) -> None:
        if not 1 <= self.mtu <= MAX_MTU:
            raise ConfigError(f"invalid mtu: {self.mtu} (must be 1..{MAX_MTU})")
        if self.poll_interval <= 0:
            raise ConfigError(f"invalid poll interval: {self.poll_interval}")
        if self.ack_max_polls < 1:
            raise ConfigError(f"invalid ack poll count: {self.ack_max_polls}")

    def override(self, **changes) -> "BridgeConfig":
        """Return a copy with some values replaced."""
        return dataclasses.replace(self, **changes)
