"""
Parsers for the modem's TCP/IP socket command responses.
"""

import logging
import re

from .base import ResponseParser, PrefixedFieldsParser
from ..core.transport import ENCODING
from ..exceptions import FramingError
from ..types import SendStatus

logger = logging.getLogger(__name__)


class ReceiveFrameParser(ResponseParser[bytes]):
    """
    Parser for AT+QIRD responses.

    Grammar: ``+QIRD: <len>\\r\\n<len bytes of data>\\r\\nOK\\r\\n``. A length
    of zero means nothing is buffered and is not an error.
    """

    MARKER = "+QIRD: "
    TERMINATOR = "\r\nOK\r\n"

    def parse(self, response: str) -> bytes:
        """
        Extract the payload.

        Returns:
            Exactly the declared number of payload bytes

        Raises:
            FramingError: If the frame deviates from the grammar
        """
        start = response.find(self.MARKER)
        if start < 0:
            raise FramingError("+QIRD message invalid: marker missing", response=response)
        if not response.endswith(self.TERMINATOR):
            raise FramingError("+QIRD message invalid: terminator missing", response=response)

        body = response[start + len(self.MARKER):len(response) - len(self.TERMINATOR)]

        digits = 0
        while digits < len(body) and body[digits] in "0123456789":
            digits += 1
        if digits == 0:
            raise FramingError("+QIRD message invalid: length not numeric", response=response)
        length = int(body[:digits])

        if body[digits:digits + 2] != "\r\n":
            raise FramingError("+QIRD message invalid: CRLF missing after length", response=response)

        data = body[digits + 2:]
        if len(data) < length:
            raise FramingError(
                f"+QIRD message invalid: {len(data)} bytes received, {length} declared",
                response=response
            )

        return data[:length].encode(ENCODING)


class ReceiveFrameMatcher:
    """
    Completion test for AT+QIRD responses, usable as an expected pattern.

    The terminator only counts once the declared number of payload bytes
    has arrived, so payload that itself contains "\\r\\nOK\\r\\n" does not end
    the response early. A header that does not parse leaves the decision to
    the terminator alone and the parser reports the error.
    """

    HEADER = re.compile(r"\+QIRD: ([0-9]+)\r\n")

    def search(self, response: str) -> bool:
        start = response.find(ReceiveFrameParser.MARKER)
        if start < 0:
            return False

        header = self.HEADER.match(response, start)
        if header is None:
            return ReceiveFrameParser.TERMINATOR in response[start:]

        payload_end = header.end() + int(header.group(1))
        return ReceiveFrameParser.TERMINATOR in response[payload_end:]


class SendStatusParser(ResponseParser[SendStatus]):
    """Parser for AT+QISEND=<connectID>,0 (send status query)."""

    def __init__(self) -> None:
        self._fields = PrefixedFieldsParser("+QISEND:", expected_parts=3)

    def parse(self, response: str) -> SendStatus:
        """Parse total, acknowledged and unacknowledged byte counts."""
        parts = self._fields.parse(response)
        try:
            return SendStatus(
                total=int(parts[0]),
                acked=int(parts[1]),
                unacked=int(parts[2])
            )
        except ValueError as e:
            raise FramingError(f"Invalid +QISEND counters: {parts}", response=response) from e


class GpioLevelParser(ResponseParser[int]):
    """Parser for AT+QCFG="gpio",2,<pin> (read pin level)."""

    FIELD = '"gpio",'

    def parse(self, response: str) -> int:
        i = response.find(self.FIELD)
        if i < 0 or i + len(self.FIELD) >= len(response):
            raise FramingError("gpio level missing", response=response)
        level = response[i + len(self.FIELD)]
        if level not in "0123456789":
            raise FramingError(f"Invalid gpio level: {level!r}", response=response)
        return int(level)
