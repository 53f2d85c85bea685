"""
Response parsers for AT command responses.

Provides type-safe parsing of modem responses into structured data.
"""

from .base import ResponseParser, PrefixedFieldsParser
from .socket import ReceiveFrameParser, ReceiveFrameMatcher, SendStatusParser, GpioLevelParser

__all__ = [
    "ResponseParser",
    "PrefixedFieldsParser",
    "ReceiveFrameParser",
    "ReceiveFrameMatcher",
    "SendStatusParser",
    "GpioLevelParser",
]
