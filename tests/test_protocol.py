"""
Tests for the AT command sender.
"""

import asyncio
import re

import pytest
from quectelbridge.core.protocol import STALL_SENTINEL, find_expected
from quectelbridge.exceptions import ATTimeoutError, ConfigError
from quectelbridge.types import CommandSpec


def test_expect_found(session, mock_transport):
    """Test a command completes as soon as an expected pattern arrives."""
    mock_transport.add_reply("AT+CSQ", "\r\n+CSQ: 24,99\r\n\r\nOK\r\n")

    response = asyncio.run(session.at.send(CommandSpec.of("AT+CSQ", 1.0, "OK\r\n")))

    assert "+CSQ: 24,99" in response
    assert mock_transport.sent_lines == ["AT+CSQ"]


def test_completes_on_first_matching_pattern(session, mock_transport, clock):
    """Test success is reported without waiting for more data."""
    mock_transport.add_reply("AT", [(0.0, "\r\nOK\r\n"), (0.5, "\r\nLATE\r\n")])

    response = asyncio.run(session.at.send(CommandSpec.of("AT", 1.0, ["ERROR", "OK"])))

    assert response == "\r\nOK\r\n"
    assert clock.monotonic() < 0.5


def test_regex_pattern(session, mock_transport):
    """Test compiled patterns are searched."""
    mock_transport.add_reply("AT+CGSN", "\r\n861536030196001\r\n\r\nOK\r\n")

    spec = CommandSpec.of("AT+CGSN", 1.0, re.compile(r"\d{15}"))
    response = asyncio.run(session.at.send(spec))

    assert "861536030196001" in response


def test_timeout_when_pattern_never_arrives(session, mock_transport, clock):
    """Test failure no earlier than the timeout and within one poll after it."""
    mock_transport.add_reply("AT+COPS=?", "\r\n+COPS: (1,\"op\")\r\n")
    spec = CommandSpec.of("AT+COPS=?", 1.0, "OK\r\n")

    with pytest.raises(ATTimeoutError) as exc_info:
        asyncio.run(session.at.send(spec))

    assert str(exc_info.value).startswith("AT failed")
    assert "+COPS" in exc_info.value.response
    assert spec.timeout <= clock.monotonic() <= spec.timeout + session.at.poll_interval + 1e-6


def test_timeout_counts_from_last_received_byte(session, mock_transport, clock):
    """Test a slow but steady response is not cut off."""
    mock_transport.add_reply("AT+QIACT?", [
        (0.0, "\r\n+QIACT: 1,1,1,"),
        (0.6, "\"10.0.0.2\"\r\n"),
        (1.2, "\r\nOK\r\n"),
    ])

    response = asyncio.run(session.at.send(CommandSpec.of("AT+QIACT?", 0.8, "OK\r\n")))

    assert response.endswith("OK\r\n")
    assert clock.monotonic() == pytest.approx(1.2)


def test_empty_expect_succeeds_after_silence(session, mock_transport, clock):
    """Test a command without expectations completes on silence, successfully."""
    mock_transport.add_reply("ate0", "\r\nERROR\r\n")

    response = asyncio.run(session.at.send(CommandSpec.of("ate0", 1.0)))

    assert response == "\r\nERROR\r\n"
    assert clock.monotonic() >= 1.0


def test_stall_sentinel_sends_filler_and_keeps_waiting(session, mock_transport):
    """Test the bridge's forwarding timeout is stripped and answered with a filler line."""
    mock_transport.add_reply("AT+QIOPEN", [
        (0.0, STALL_SENTINEL),
        (0.3, "\r\nOK\r\n"),
    ])

    response = asyncio.run(session.at.send(CommandSpec.of("AT+QIOPEN", 1.0, "OK\r\n")))

    assert "MODEM TIMEOUT" not in response
    assert response == "\r\nOK\r\n"
    assert mock_transport.written[-1] == b" \r\n"


def test_stall_sentinel_alone_is_not_success(session, mock_transport):
    """Test the sentinel never satisfies an expectation by itself."""
    mock_transport.add_reply("AT+QICLOSE=0", STALL_SENTINEL)

    spec = CommandSpec.of("AT+QICLOSE=0", 0.5, "OK\r\n")
    with pytest.raises(ATTimeoutError) as exc_info:
        asyncio.run(session.at.send(spec))

    assert exc_info.value.response == ""


def test_raw_command_is_unterminated(session, mock_transport):
    """Test raw mode writes the command unchanged."""
    mock_transport.add_reply("hello", "\r\nSEND OK\r\n")

    asyncio.run(session.at.send(CommandSpec.of("hello", 1.0, "SEND OK"), raw=True))

    assert mock_transport.written == [b"hello"]


def test_find_expected_literal_is_not_regex():
    """Test string patterns match literally."""
    assert find_expected("+QIRD: 4", ["+QIRD"])
    assert not find_expected("QIRD", ["+QIRD"])
    assert not find_expected("anything", [])


def test_command_spec_rejects_non_positive_timeout():
    """Test the timeout invariant."""
    with pytest.raises(ConfigError) as exc_info:
        CommandSpec.of("AT", 0)

    assert exc_info.value.command == "AT"


def test_command_spec_normalizes_expect():
    """Test expect normalization to an ordered tuple."""
    assert CommandSpec.of("AT", 1.0).expect == ()
    assert CommandSpec.of("AT", 1.0, "OK").expect == ("OK",)
    assert CommandSpec.of("AT", 1.0, ["OK", "ERROR"]).expect == ("OK", "ERROR")


def test_late_output_is_not_part_of_next_response(session, mock_transport, clock):
    """Test output that arrived between commands is discarded."""
    mock_transport.add_reply("AT+QIACT=1", [(0.0, "\r\nOK\r\n"), (0.5, "\r\n+QIURC: \"pdpdeact\",1\r\n")])
    mock_transport.add_reply("AT+CREG?", "\r\n+CREG: 0,1\r\n\r\nOK\r\n")

    async def run():
        await session.at.send(CommandSpec.of("AT+QIACT=1", 1.0, "OK\r\n"))
        await session.sleep(1.0)
        return await session.at.send(CommandSpec.of("AT+CREG?", 1.0, "OK\r\n"))

    response = asyncio.run(run())

    assert "+QIURC" not in response
    assert response == "\r\n+CREG: 0,1\r\n\r\nOK\r\n"


def test_raw_payload_keeps_pending_input(session, mock_transport):
    """Test raw sends do not discard what the modem already answered."""
    mock_transport.feed("\r\nSEND OK\r\n")

    response = asyncio.run(session.at.send(CommandSpec.of("hello", 1.0, "SEND OK"), raw=True))

    assert "SEND OK" in response
