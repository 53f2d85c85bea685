"""
Tests for PowerManager.
"""

import asyncio

import pytest
from quectelbridge.exceptions import BridgeError
from quectelbridge.types import PinLevel

POWER_GOOD = "DIGital:PIN? P52"
DCC = "DIGital:PIN? P51"


def test_status(modem, mock_transport):
    """Test reading both power pins."""
    # Setup mock response
    mock_transport.add_reply(POWER_GOOD, "1\r\n")
    mock_transport.add_reply(DCC, "0\r\n")

    # Call method
    status = asyncio.run(modem.power.status())

    # Verify
    assert status.power_good is PinLevel.HIGH
    assert status.dcc is PinLevel.LOW
    assert status.is_on


def test_status_unreadable_pin(modem, mock_transport):
    mock_transport.add_reply(POWER_GOOD, "ERROR\r\n")
    mock_transport.add_reply(DCC, "1\r\n")

    status = asyncio.run(modem.power.status())

    assert status.power_good is PinLevel.UNKNOWN
    assert not status.is_on


def test_power_on_when_off(modem, mock_transport):
    """Test DCC and power key are pulsed, then power good is read again."""
    mock_transport.add_reply(POWER_GOOD, "0\r\n", "1\r\n")

    status = asyncio.run(modem.power.power_on())

    assert status.is_on
    assert mock_transport.sent_lines == [
        POWER_GOOD,
        "DIGital:PIN P51,HI",
        "DIGital:PIN PD1,LO,500",
        POWER_GOOD,
    ]


def test_power_on_when_already_on(modem, mock_transport):
    mock_transport.add_reply(POWER_GOOD, "1\r\n")

    status = asyncio.run(modem.power.power_on())

    assert status.is_on
    assert mock_transport.count_sent("DIGital:PIN PD1") == 0


def test_power_on_unknown_state(modem, mock_transport):
    mock_transport.add_reply(POWER_GOOD, "?\r\n")

    with pytest.raises(BridgeError, match="modem power state unknown"):
        asyncio.run(modem.power.power_on())


def test_power_off(modem, mock_transport):
    asyncio.run(modem.power.power_off())

    assert mock_transport.sent_lines == ["DIGital:PIN PD1,LO,1000", "DIGital:PIN P51,LO"]


def test_pin_level_parse():
    assert PinLevel.parse(" 1 ") is PinLevel.HIGH
    assert PinLevel.parse("0") is PinLevel.LOW
    assert PinLevel.parse("") is PinLevel.UNKNOWN
