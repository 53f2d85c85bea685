"""
Reliable chunked socket transport.

Emulates a TCP socket on top of the modem's AT+QIOPEN / AT+QISEND / AT+QIRD /
AT+QICLOSE commands, relayed through the bridge in pass-through mode.
Outbound payload is split at the MTU and every chunk must be acknowledged by
the peer before the next one is sent, so the modem's send buffer is never
overrun.
"""

import logging
import random
import string
from typing import TYPE_CHECKING, Callable, Optional

from ..core.protocol import find_expected
from ..core.transport import ENCODING
from ..exceptions import (
    AckTimeoutError,
    ATTimeoutError,
    BridgeError,
    ConfigError,
    DeviceReportedError,
)
from ..parsers.socket import ReceiveFrameMatcher, ReceiveFrameParser, SendStatusParser
from ..types import CommandSpec, TransferStats, TransportSession

if TYPE_CHECKING:
    from ..core import BridgeSession

logger = logging.getLogger(__name__)

OPEN_OK = "OK\r\n"
CLOSE_EXPECT = ("OK\r\n", "MODEM TIMEOUT")
SEND_PROMPTS = ("> \r\n", "PROMPT\r\n", "PROMPT \r\n")
SEND_OK = "SEND OK\r\n"
ERROR_TOKENS = ("SEND FAIL", "ERROR", "OVERFLOW")
FINAL_RESULTS = ("OK\r\n", "ERROR\r\n")

PAYLOAD_ALPHABET = string.ascii_letters + string.digits + " .,"


def split_chunks(payload: bytes, mtu: int) -> list[bytes]:
    """Split payload into consecutive chunks of at most ``mtu`` bytes."""
    if mtu < 1:
        raise ConfigError(f"invalid mtu: {mtu}")
    return [payload[i:i + mtu] for i in range(0, len(payload), mtu)]


def make_payload(size: int, rng: Optional[random.Random] = None) -> bytes:
    """Printable filler payload for pings."""
    rng = rng or random.Random()
    return "".join(rng.choices(PAYLOAD_ALPHABET, k=size)).encode(ENCODING)


def _error_token(response: str) -> Optional[str]:
    for token in ERROR_TOKENS:
        if token in response:
            return token
    return None


class ChunkedTransport:
    """
    Socket operations over the AT channel.

    Every operation holds pass-through mode for its own duration; calling
    them inside an enclosing ``session.passthrough()`` block reuses it.

    Example:

    .. code-block:: python

        sock = ChunkedTransport(session)
        await sock.open("203.0.113.7", 7000)
        await sock.send(b"hello")
        data = await sock.recv()
        await sock.close()
    """

    def __init__(self, session: "BridgeSession") -> None:
        """
        Initialize chunked transport.

        Args:
            session: BridgeSession to execute commands on
        """
        self.session = session
        self.config = session.config
        self.timing = session.timing
        self.socket: Optional[TransportSession] = None

        self._frame_parser = ReceiveFrameParser()
        self._frame_matcher = ReceiveFrameMatcher()
        self._status_parser = SendStatusParser()

        logger.debug("Initialized ChunkedTransport")

    @property
    def connection_id(self) -> int:
        if self.socket is not None:
            return self.socket.connection_id
        return self.config.connection_id

    async def open(self, ip: str, port: int) -> TransportSession:
        """
        Open a TCP connection.

        Raises:
            ConfigError: If the address is invalid
            ATTimeoutError: If the modem does not confirm the open
        """
        if not ip:
            raise ConfigError("bad address: empty IP")
        if not 0 < port < 65536:
            raise ConfigError(f"bad address: port {port}")

        cid = self.config.connection_id
        ctx = self.config.pdp_context_id
        spec = CommandSpec.of(
            f'at+qiopen={ctx},{cid},"TCP","{ip}",{port},0,0',
            self.timing.socket_open_delay,
            OPEN_OK
        )
        async with self.session.passthrough():
            await self.session.at.send(spec)

        self.socket = TransportSession(
            ip=ip,
            port=port,
            connection_id=cid,
            pdp_context_id=ctx,
            mtu=self.config.mtu
        )
        logger.info(f"Opened socket {cid} to {ip}:{port}")
        return self.socket

    async def close(self) -> None:
        """
        Close the connection.

        The modem often stays silent on AT+QICLOSE, so a missing or
        unexpected answer is not an error here.
        """
        spec = CommandSpec.of(
            f"at+qiclose={self.connection_id}",
            self.timing.socket_close_delay,
            CLOSE_EXPECT
        )
        async with self.session.passthrough():
            try:
                await self.session.at.send(spec)
            except ATTimeoutError as e:
                logger.info(f"Ignoring close response: {e}")

        self.socket = None

    async def send(self, payload: bytes, mtu: Optional[int] = None) -> int:
        """
        Send payload, chunked at the MTU with per-chunk acknowledgement.

        Args:
            payload: Bytes to send
            mtu: Chunk size (defaults to the configured MTU)

        Returns:
            Number of chunks sent

        Raises:
            DeviceReportedError: If the modem refuses a chunk
            AckTimeoutError: If a chunk is never acknowledged
            ATTimeoutError: If the modem does not answer
        """
        mtu = self.config.mtu if mtu is None else mtu
        chunks = split_chunks(payload, mtu)
        logger.info(f"send data. len {len(payload)} in {len(chunks)} chunk(s)")

        async with self.session.passthrough():
            for chunk in chunks:
                await self._send_chunk(chunk)
                await self._wait_ack()

        return len(chunks)

    async def _send_chunk(self, chunk: bytes) -> None:
        cid = self.connection_id
        command = f"at+qisend={cid},{len(chunk)}"
        response = await self.session.at.send(CommandSpec.of(
            command,
            self.timing.at_response_delay,
            SEND_PROMPTS + ERROR_TOKENS
        ))
        if not find_expected(response, SEND_PROMPTS):
            raise DeviceReportedError(
                "Socket send refused",
                token=_error_token(response) or response.strip(),
                command=command,
                response=response
            )

        text = chunk.decode(ENCODING)
        response = await self.session.at.send(
            CommandSpec.of(text, self.timing.send_timeout, (SEND_OK,) + ERROR_TOKENS),
            raw=self.config.raw_payload
        )
        if SEND_OK not in response:
            raise DeviceReportedError(
                "Socket send failed",
                token=_error_token(response) or response.strip(),
                command=command,
                response=response
            )

    async def _wait_ack(self) -> int:
        """
        Poll the send status until the peer has acknowledged everything.

        Returns:
            Number of status queries issued
        """
        command = f"at+qisend={self.connection_id},0"
        spec = CommandSpec.of(command, self.timing.at_response_delay, FINAL_RESULTS)

        unacked = 0
        for attempt in range(1, self.config.ack_max_polls + 1):
            response = await self.session.at.send(spec)
            if "ERROR" in response:
                raise DeviceReportedError(
                    "Send status query failed",
                    token="ERROR",
                    command=command,
                    response=response
                )

            unacked = self._status_parser.parse(response).unacked
            if unacked == 0:
                return attempt

            logger.debug(f"{unacked} bytes not acknowledged (poll {attempt})")
            if attempt < self.config.ack_max_polls:
                delay = self.config.ack_first_delay if attempt == 1 else self.config.ack_retry_delay
                await self.session.sleep(delay)

        raise AckTimeoutError(
            f"no ack for a long time ({unacked} bytes pending)",
            attempts=self.config.ack_max_polls,
            unacked=unacked
        )

    async def recv(self, max_bytes: Optional[int] = None) -> bytes:
        """
        Read buffered socket data.

        Args:
            max_bytes: Most bytes to read (defaults to the configured MTU)

        Returns:
            Payload bytes; empty when nothing is buffered

        Raises:
            FramingError: If the +QIRD response is malformed
            ATTimeoutError: If the modem does not answer
        """
        max_bytes = self.config.mtu if max_bytes is None else max_bytes
        spec = CommandSpec.of(
            f"at+qird={self.connection_id},{max_bytes}",
            self.timing.recv_timeout,
            [self._frame_matcher]
        )
        async with self.session.passthrough():
            try:
                response = await self.session.at.send(spec)
            except ATTimeoutError as e:
                # Terminated, then silent: a frame shorter than declared
                if not (e.response or "").endswith(ReceiveFrameParser.TERMINATOR):
                    raise
                response = e.response

        data = self._frame_parser.parse(response)
        logger.debug(f"received len {len(data)}")
        return data

    async def recv_all(self) -> bytes:
        """Read until the modem reports no buffered data."""
        received = b""
        async with self.session.passthrough():
            while True:
                data = await self.recv()
                if not data:
                    return received
                received += data

    async def ping(
        self,
        ip: str,
        port: int,
        size: int = 64,
        count: int = 1,
        interval: float = 1.5,
        payload_factory: Optional[Callable[[int], bytes]] = None
    ) -> TransferStats:
        """
        Round-trip test against an echo server.

        Opens the socket, then for each message sends ``size`` bytes and polls
        for the echo until it is complete or the data-wait timeout passes.
        The socket is closed whatever happens.

        Returns:
            Transfer statistics

        Raises:
            BridgeError: If a message was lost, mismatched, or an operation failed
        """
        if size <= 0:
            raise ConfigError(f"bad size: {size}")
        if interval < 0:
            raise ConfigError(f"bad delay time: {interval}")
        count = max(count, 1)
        payload_factory = payload_factory or make_payload

        stats = TransferStats()
        started = self.session.clock.monotonic()

        async with self.session.passthrough():
            await self.open(ip, port)
            failure: Optional[BridgeError] = None
            try:
                await self.session.sleep(self.config.first_send_delay)
                for index in range(count):
                    if index:
                        await self.session.sleep(interval)
                    await self._ping_once(payload_factory(size), stats)
            except BridgeError as e:
                logger.error(str(e))
                failure = e
            finally:
                await self.close()
                stats.elapsed = self.session.clock.monotonic() - started
                logger.info(f"sent {stats.sent_messages} messages, ttl {stats.sent_bytes} bytes")
                logger.info(f"recved {stats.received_messages} messages, ttl {stats.received_bytes} bytes")
                logger.info(f"used {stats.elapsed:.3f} secs")

        if failure is not None:
            raise failure
        return stats

    async def _ping_once(self, sent: bytes, stats: TransferStats) -> None:
        await self.send(sent)
        stats.record_sent(len(sent))

        received = b""
        started = self.session.clock.monotonic()
        while True:
            data = await self.recv()
            received += data
            if data:
                await self.session.sleep(self.config.recv_poll_delay)
                continue

            waited = self.session.clock.monotonic() - started
            if len(received) < len(sent) and waited < self.timing.data_wait_timeout:
                await self.session.sleep(self.config.recv_poll_delay)
                continue
            break

        if received != sent:
            logger.warning(f"receiving mismatched. len {len(received)}: {received!r}")
            raise BridgeError("received data mismatched", response=received.decode(ENCODING))

        stats.record_received(len(received))
