"""
Tests for ModemManager.
"""

import asyncio

import pytest
from quectelbridge.exceptions import ATTimeoutError, FramingError
from quectelbridge.types import NetworkType

GPIO_READ = 'at+qcfg="gpio",2,26'


def test_info(modem, bridge_replies):
    """Test the information queries run in order."""
    bridge_replies.add_reply("at+cimi", "\r\n460001234567890\r\n\r\nOK\r\n")
    bridge_replies.add_reply("at+qiact?", "\r\n+QIACT: 1,1,1,\"10.0.0.2\"\r\n\r\nOK\r\n")

    responses = asyncio.run(modem.modem.info())

    assert len(responses) == 9
    assert "460001234567890" in responses[0]
    assert "+QIACT: 1,1,1" in responses[-1]
    assert bridge_replies.count_sent("SER:CON ON") == 1


def test_info_requires_pdp_answer(modem, bridge_replies):
    with pytest.raises(ATTimeoutError) as exc_info:
        asyncio.run(modem.modem.info())

    assert exc_info.value.command == "at+qiact?"


def test_activate_pdp(modem, bridge_replies):
    bridge_replies.set_reply("at+qi", "\r\nOK\r\n")

    asyncio.run(modem.modem.activate_pdp(2))

    commands = [line for line in bridge_replies.sent_lines if line.startswith("at")]
    assert commands == ["at+qiclose=0,3", "at+qideact=2", "at+qiact=2", "at+qiact?"]


def test_configure_with_supercap(modem, bridge_replies):
    """Test a module with supercap keeps fast power-off disabled."""
    # Setup mock response
    bridge_replies.add_reply(GPIO_READ, '\r\n+QCFG: "gpio",1\r\n\r\nOK\r\n')

    # Call method
    supercap = asyncio.run(modem.modem.configure(NetworkType.CATM, apn="iot.example"))

    # Verify
    assert supercap
    lines = bridge_replies.sent_lines
    assert 'at+qcfg="iotopmode",0' in lines
    assert 'at+qicsgp=1,1,"iot.example","","",0' in lines
    assert "at+qsclk=1" in lines
    assert bridge_replies.count_sent('at+qcfg="fast/poweroff"') == 0
    assert bridge_replies.count_sent("SER:CON ON") == 1


def test_configure_without_supercap(modem, bridge_replies):
    bridge_replies.add_reply(GPIO_READ, '\r\n+QCFG: "gpio",0\r\n\r\nOK\r\n')

    supercap = asyncio.run(modem.modem.configure(NetworkType.NBIOT))

    assert not supercap
    lines = bridge_replies.sent_lines
    assert 'at+qcfg="iotopmode",1' in lines
    assert "at+qsclk=0" in lines
    assert lines[-2] == 'at+qcfg="fast/poweroff",25,1'


def test_configure_unreadable_gpio(modem, bridge_replies):
    with pytest.raises(FramingError):
        asyncio.run(modem.modem.configure(NetworkType.NBIOT))

    assert bridge_replies.sent_lines[-1] == "+++"


def test_network_type_parse():
    assert NetworkType.parse("CatM") is NetworkType.CATM
    assert NetworkType.parse("nbiot") is NetworkType.NBIOT
    with pytest.raises(KeyError):
        NetworkType.parse("lte")
