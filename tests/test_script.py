"""
Tests for the AT script runner and script file parsing.
"""

import asyncio
import re

import pytest
from quectelbridge.config import REAL_TIMING
from quectelbridge.exceptions import ATTimeoutError, ConfigError
from quectelbridge.features import parse_script, parse_script_line, parse_scpi_line
from quectelbridge.features.script import DEFAULT_EXPECT
from quectelbridge.types import CommandSpec


def test_parse_command_only():
    """Test defaults for a bare command line."""
    spec = parse_script_line("ate0", REAL_TIMING)

    assert spec.command == "ate0"
    assert spec.timeout == REAL_TIMING.at_response_delay
    assert spec.expect == DEFAULT_EXPECT


def test_parse_timeout_and_expect():
    """Test the timeout field is in milliseconds."""
    spec = parse_script_line("at+cops=?;180000;+COPS:", REAL_TIMING)

    assert spec == CommandSpec("at+cops=?", 180.0, ("+COPS:",))


def test_parse_empty_timeout_uses_default():
    spec = parse_script_line("at+csq;;OK", REAL_TIMING)

    assert spec.timeout == REAL_TIMING.at_response_delay
    assert spec.expect == ("OK",)


def test_parse_blank_line():
    assert parse_script_line("   ", REAL_TIMING) is None


@pytest.mark.parametrize("line", ["at;abc", "at;0", "at;-5"])
def test_parse_bad_timeout(line):
    """Test non-positive or non-numeric timeouts are rejected."""
    with pytest.raises(ConfigError):
        parse_script_line(line, REAL_TIMING)


def test_parse_script_skips_blank_lines():
    specs = parse_script(["ate0\n", "\n", "at+cfun=1;5000\r\n"], REAL_TIMING)

    assert [spec.command for spec in specs] == ["ate0", "at+cfun=1"]
    assert specs[1].timeout == 5.0


def test_parse_scpi_line():
    spec = parse_scpi_line("DIGital:PIN? P52;1500", REAL_TIMING)

    assert spec.command == "DIGital:PIN? P52"
    assert spec.timeout == 1.5
    assert parse_scpi_line("*IDN?", REAL_TIMING).timeout == REAL_TIMING.scpi_response_delay


def test_to_spec_forms(modem):
    """Test script entry normalization."""
    runner = modem.script
    pattern = re.compile(r"\+CSQ: \d+")

    assert runner.to_spec("ate0") == CommandSpec.of("ate0", REAL_TIMING.at_response_delay)
    assert runner.to_spec(("at+csq", 2.0, pattern)).expect == (pattern,)
    assert runner.to_spec(("at+csq", 2.0)).expect == ()


def test_runs_in_order_with_inter_command_delay(modem, bridge_replies, clock):
    """Test commands run sequentially inside pass-through mode."""
    bridge_replies.add_reply("ate0", "\r\nOK\r\n")
    bridge_replies.add_reply("at+cmee=1", "\r\nOK\r\n")

    responses = asyncio.run(modem.script.run([
        ("ate0", 1.0, "OK"),
        ("at+cmee=1", 1.0, "OK"),
    ]))

    assert responses == ["\r\nOK\r\n", "\r\nOK\r\n"]
    assert bridge_replies.sent_lines == [
        "SERial:TIMEout 8000", "SER:CON ON", "ate0", "at+cmee=1", "+++"
    ]
    assert modem.session.config.inter_command_delay in clock.sleeps


def test_aborts_at_first_failure(modem, bridge_replies):
    """Test later commands are not sent after a failure."""
    bridge_replies.add_reply("ate0", "\r\nOK\r\n")

    with pytest.raises(ATTimeoutError) as exc_info:
        asyncio.run(modem.script.run([
            ("ate0", 1.0, "OK"),
            ("at+cfun=1", 1.0, "OK"),
            ("at+cops=0", 1.0, "OK"),
        ]))

    assert exc_info.value.command == "at+cfun=1"
    assert bridge_replies.count_sent("at+cops") == 0
    assert bridge_replies.sent_lines[-1] == "+++"


def test_inside_passthrough_skips_mode_switch(modem, mock_transport):
    mock_transport.add_reply("ate0", "\r\nOK\r\n")

    asyncio.run(modem.script.run([("ate0", 1.0, "OK")], inside_passthrough=True))

    assert mock_transport.sent_lines == ["ate0"]


def test_to_spec_rejects_zero_timeout(modem):
    """Test a bad script entry is a configuration error."""
    with pytest.raises(ConfigError):
        modem.script.to_spec(("at+cfun=1", 0))
