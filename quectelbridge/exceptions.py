"""
Exceptions for QuectelBridge library.

Provides detailed error information for debugging bridge and modem
communication issues.
"""

from typing import Optional


class BridgeError(Exception):
    """
    Base exception for bridge and modem errors.

    All QuectelBridge exceptions inherit from this class.
    """

    def __init__(
        self,
        message: str,
        command: Optional[str] = None,
        response: Optional[str] = None
    ) -> None:
        """
        Initialize exception with context.

        Args:
            message: Error description
            command: Command that caused the error (if applicable)
            response: Raw response text (if applicable)
        """
        self.command = command
        self.response = response
        super().__init__(message)

    def __str__(self) -> str:
        """Format error message with context."""
        parts = [super().__str__()]

        if self.command:
            parts.append(f"Command: {self.command}")

        if self.response:
            parts.append(f"Response: {self.response!r}")

        return " | ".join(parts)


class ConfigError(BridgeError):
    """Raised when a configuration value or operation argument is invalid."""
    pass


class TransportError(BridgeError):
    """
    Raised when the serial link fails.

    This indicates:
    - Serial port cannot be opened
    - Write or drain failure
    - Hardware communication failure
    """
    pass


class DeviceDisconnectedError(TransportError):
    """
    Raised when the device is disconnected during operation.

    This is a fatal error that requires reopening the connection.
    """
    pass


class ATTimeoutError(BridgeError):
    """
    Raised when no expected pattern arrives before an AT command times out.

    The accumulated response text is kept in ``response``.
    """
    pass


class ScpiTimeoutError(BridgeError):
    """Raised when the bridge does not answer an instrument command in time."""
    pass


class FramingError(BridgeError):
    """
    Raised when a response does not match its expected grammar.

    This indicates:
    - Missing marker or terminator
    - Non-numeric length field
    - Payload shorter than declared
    """
    pass


class DeviceReportedError(BridgeError):
    """
    Raised when the modem or bridge answers with an explicit error token.
    """

    def __init__(
        self,
        message: str,
        token: str,
        command: Optional[str] = None,
        response: Optional[str] = None
    ) -> None:
        self.token = token
        super().__init__(f"{message}: {token}", command=command, response=response)


class AckTimeoutError(BridgeError):
    """Raised when sent data is not acknowledged within the polling limit."""

    def __init__(self, message: str, attempts: int, unacked: int) -> None:
        self.attempts = attempts
        self.unacked = unacked
        super().__init__(message)


class UnlockError(BridgeError):
    """Raised when the UART unlock procedure runs out of attempts."""

    def __init__(self, message: str, attempts: int) -> None:
        self.attempts = attempts
        super().__init__(message)
