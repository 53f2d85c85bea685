"""
Pytest configuration and fixtures.

Provides shared test fixtures for QuectelBridge tests. Every fixture runs on a
VirtualClock, so protocol timeouts cost no real time.
"""

import pytest
import logging

from quectelbridge.core import MockTransport, VirtualClock, BridgeSession
from quectelbridge import BridgeModem


# Enable logging for tests
logging.basicConfig(
    level=logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


@pytest.fixture
def clock():
    """Virtual clock starting at zero."""
    return VirtualClock()


@pytest.fixture
def mock_transport(clock):
    """
    Create a MockTransport instance for testing.

    Example:
        def test_something(mock_transport):
            mock_transport.add_reply("AT", "\\r\\nOK\\r\\n")
            # ... test code ...
    """
    transport = MockTransport(clock)
    yield transport
    transport.close()


@pytest.fixture
def session(mock_transport, clock):
    """
    Create a BridgeSession with MockTransport.

    Example:
        def test_at_command(session, mock_transport):
            mock_transport.add_reply("AT+CSQ", "+CSQ: 24,99\\r\\n\\r\\nOK\\r\\n")
            response = asyncio.run(session.send_at("AT+CSQ", expect="OK"))
            assert "+CSQ: 24,99" in response
    """
    return BridgeSession(mock_transport, clock=clock)


@pytest.fixture
def modem(mock_transport, clock):
    """Create a BridgeModem instance with MockTransport."""
    return BridgeModem(mock_transport, clock=clock)


@pytest.fixture
def bridge_replies(mock_transport):
    """Bridge that acknowledges pass-through switching and reports its identity."""
    mock_transport.set_reply("*IDN?", "LANDIS+GYR,E355,0,1.4\r\n")
    mock_transport.set_reply("SERial:TIMEout", "OK\r\n")
    mock_transport.set_reply("SER:CON ON", "OK\r\n")
    return mock_transport


@pytest.fixture
def receive_frame_response():
    """Mock response for AT+QIRD with four payload bytes."""
    return "\r\n+QIRD: 4\r\nABCD\r\nOK\r\n"


@pytest.fixture
def send_status_acked_response():
    """Mock response for AT+QISEND=0,0 with everything acknowledged."""
    return "\r\n+QISEND: 10,10,0\r\n\r\nOK\r\n"
