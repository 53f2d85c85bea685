"""
Tests for the modem UART unlock procedure.
"""

import asyncio
import logging
import math
import random

import pytest
from quectelbridge import BridgeModem
from quectelbridge.config import BridgeConfig, UnlockConfig
from quectelbridge.exceptions import TransportError, UnlockError
from quectelbridge.features import skewed_box_muller

REBOOT = "PWRState:MONVolt 1600"
RESTORE_UART = "WAN:LOOPback:STArt"


class StubRandom:
    """Random source returning a fixed sequence."""

    def __init__(self, values):
        self.values = list(values)

    def random(self):
        return self.values.pop(0)


@pytest.fixture
def unlock_modem(mock_transport, clock):
    return BridgeModem(mock_transport, clock=clock, rng=random.Random(85))


@pytest.fixture
def unlock_replies(bridge_replies):
    """Bridge that acknowledges reboot and UART restore."""
    bridge_replies.set_reply(REBOOT, "OK\r\n")
    bridge_replies.set_reply(RESTORE_UART, "OK\r\n")
    return bridge_replies


def test_box_muller_value():
    """Test the transform of a known uniform pair."""
    # u = e**-2 and v = 1 give a standard normal of exactly 2
    rng = StubRandom([1.0 - math.exp(-2.0), 0.0])

    value = skewed_box_muller(2.7, 6.2, 1.5, rng)

    assert value == pytest.approx(2.7 + 0.7 ** 1.5 * 3.5)


def test_box_muller_resamples_out_of_range():
    """Test samples outside [0, 1] are drawn again."""
    # The first pair maps to 1.1
    rng = StubRandom([1.0 - math.exp(-18.0), 0.0, 1.0 - math.exp(-2.0), 0.0])

    value = skewed_box_muller(2.7, 6.2, 1.5, rng)

    assert value == pytest.approx(2.7 + 0.7 ** 1.5 * 3.5)
    assert rng.values == []


def test_box_muller_falls_back_to_centre():
    rng = StubRandom([1.0 - math.exp(-18.0), 0.0] * 2)

    value = skewed_box_muller(2.7, 6.2, 1.5, rng, max_resamples=2)

    assert value == pytest.approx(2.7 + 0.5 ** 1.5 * 3.5)


def test_sampled_delay_stays_in_window(unlock_modem):
    low, high = UnlockConfig().window

    for _ in range(200):
        assert low <= unlock_modem.unlock.sample_delay() <= high


def test_window():
    assert UnlockConfig().window == pytest.approx((2.7, 6.2))


def test_unlock_first_attempt(unlock_modem, unlock_replies, clock):
    """Test a modem that answers AT after the first restore."""
    # Setup mock response
    unlock_replies.add_reply("at", "\r\nOK\r\n")

    # Call method
    attempt = asyncio.run(unlock_modem.unlock.run())

    # Verify
    assert attempt.attempt_index == 0
    assert 2.7 <= attempt.sampled_delay <= 6.2
    assert attempt.sampled_delay in clock.sleeps
    assert UnlockConfig().modem_boot_wait in clock.sleeps

    lines = unlock_replies.sent_lines
    assert lines.index("*IDN?") < lines.index(REBOOT) < lines.index(RESTORE_UART) < lines.index("at")


def test_unlock_gives_up_after_max_attempts(unlock_modem, unlock_replies):
    """Test a modem that never answers AT."""
    with pytest.raises(UnlockError) as exc_info:
        asyncio.run(unlock_modem.unlock.run())

    assert "reached max repeat count (5)" in str(exc_info.value)
    assert exc_info.value.attempts == 5
    assert unlock_replies.count_sent(REBOOT) == 5
    assert unlock_replies.count_sent("at") == 5


def test_unlock_retries_after_refused_reboot(unlock_modem, unlock_replies):
    """Test a failed reboot consumes one attempt."""
    unlock_replies.add_reply(REBOOT, "ERROR\r\n")
    unlock_replies.add_reply("at", "\r\nOK\r\n")

    attempt = asyncio.run(unlock_modem.unlock.run())

    assert attempt.attempt_index == 1
    assert unlock_replies.count_sent(REBOOT) == 2
    assert unlock_replies.count_sent(RESTORE_UART) == 1


def test_link_test_warns_every_fifth_failure(unlock_modem, unlock_replies, caplog):
    """Test the cable warning while waiting for the bridge."""
    unlock_replies.add_reply("*IDN?", *(["\r\n"] * 5))
    unlock_replies.add_reply("at", "\r\nOK\r\n")

    with caplog.at_level(logging.WARNING):
        asyncio.run(unlock_modem.unlock.run())

    warnings = [r for r in caplog.records if "check your cable" in r.getMessage()]
    assert len(warnings) == 1
    assert unlock_replies.count_sent("*IDN?") == 6


def test_link_test_exhaustion_fails_attempt(mock_transport, clock):
    """Test a silent bridge uses up the attempts without rebooting."""
    config = BridgeConfig(unlock=UnlockConfig(link_test_max_attempts=3, max_attempts=2))
    modem = BridgeModem(mock_transport, config=config, clock=clock)

    with pytest.raises(UnlockError):
        asyncio.run(modem.unlock.run())

    assert mock_transport.count_sent("*IDN?") == 6
    assert mock_transport.count_sent(REBOOT) == 0


def test_transport_error_is_not_retried(unlock_modem, mock_transport):
    """Test a broken link ends the procedure at once."""
    mock_transport.close()

    with pytest.raises(TransportError):
        asyncio.run(unlock_modem.unlock.run())
