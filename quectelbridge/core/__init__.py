"""
Core bridge infrastructure.

Provides low-level building blocks for bridge communication:
- Transport: Serial link abstraction
- LineChannel: Line-oriented writer
- ScpiClient: Bridge instrument commands
- ATSender: AT command execution through pass-through mode
- PassThrough: Scoped pass-through mode
- BridgeSession: Coordination of all core components
"""

from .clock import Clock, VirtualClock
from .transport import Transport, SerialTransport, MockTransport
from .channel import LineChannel
from .scpi import LineResponseReader, ScpiClient
from .protocol import ATSender, STALL_SENTINEL
from .passthrough import PassThrough
from .session import BridgeSession

__all__ = [
    "Clock",
    "VirtualClock",
    "Transport",
    "SerialTransport",
    "MockTransport",
    "LineChannel",
    "LineResponseReader",
    "ScpiClient",
    "ATSender",
    "STALL_SENTINEL",
    "PassThrough",
    "BridgeSession",
]
