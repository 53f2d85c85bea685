"""
Line channel: the only writer on the serial link.
"""

import logging

from .transport import Transport, ENCODING

logger = logging.getLogger(__name__)

LINE_ENDING = "\r\n"


class LineChannel:
    """
    Sends text lines to the bridge.

    Lines are CRLF-terminated unless ``raw`` is set, which is how socket
    payload is relayed through pass-through mode without being altered.
    """

    def __init__(self, transport: Transport) -> None:
        self.transport = transport

    async def send(self, line: str, raw: bool = False) -> None:
        """
        Write a line and wait for it to drain.

        Args:
            line: Text to send
            raw: Do not append CRLF

        Raises:
            TransportError: If the write or drain fails
        """
        logger.info(f"> {line}")
        data = line if raw else line + LINE_ENDING
        self.transport.write(data.encode(ENCODING))
        await self.transport.drain()
