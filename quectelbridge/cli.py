"""
Command-line interface for QuectelBridge.

One subcommand per bridge or modem operation. Exit status is 0 on success and
1 when the operation fails.
"""

import argparse
import asyncio
import logging
import sys
import threading
from typing import Optional

from .config import BridgeConfig, MAX_MTU, REAL_TIMING, UNBOUNDED_TIMING
from .exceptions import BridgeError, ConfigError
from .features import parse_script, parse_scpi_line
from .features.socket import make_payload
from .modem import BridgeModem
from .types import NetworkType
from .version import __version__

logger = logging.getLogger(__name__)


def _parse_address(address: str) -> tuple[str, int]:
    ip, _, port = address.rpartition(":")
    if not ip or not port.isdigit():
        raise ConfigError(f"bad address: {address}")
    return ip, int(port)


def _read_lines(path: Optional[str]) -> list[str]:
    if not path or path == "-":
        return sys.stdin.readlines()
    try:
        with open(path, "r") as f:
            return f.readlines()
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e


async def _probe(modem: BridgeModem, args) -> None:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()

    def wait_for_enter():
        sys.stdin.readline()
        if not loop.is_closed():
            loop.call_soon_threadsafe(stop.set)

    print("Probing bridge, press Enter to stop")
    # readline may still be blocked when probing ends
    threading.Thread(target=wait_for_enter, name="stdin-waiter", daemon=True).start()
    await modem.bridge.probe(stop, on_response=lambda line: print(f"< {line}"))


async def _modem_power(modem: BridgeModem, args) -> None:
    if args.subcommand == "status":
        status = await modem.power.status()
        print(f"modem is {'on' if status.is_on else 'off'}, dcc {status.dcc.name}")
    elif args.subcommand == "on":
        status = await modem.power.power_on()
        print(f"modem power is {'on' if status.is_on else status.power_good.name}")
    else:
        await modem.power.power_off()


async def _modem_config(modem: BridgeModem, args) -> None:
    try:
        network = NetworkType.parse(args.network)
    except KeyError as e:
        raise ConfigError(f"Invalid network type: {args.network}") from e
    await modem.modem.configure(network, args.apn, args.username, args.password)


async def _modem_info(modem: BridgeModem, args) -> None:
    for response in await modem.modem.info():
        print(response.strip())


async def _pdp_activate(modem: BridgeModem, args) -> None:
    await modem.modem.activate_pdp(args.context_id)


async def _tcp_ping(modem: BridgeModem, args) -> None:
    ip, port = _parse_address(args.address)
    stats = await modem.socket.ping(
        ip, port, size=args.size, count=args.times, interval=args.delay
    )
    print(f"sent {stats.sent_messages} messages, ttl {stats.sent_bytes} bytes")
    print(f"recved {stats.received_messages} messages, ttl {stats.received_bytes} bytes")
    print(f"used {stats.elapsed:.3f} secs")


async def _tcp_open(modem: BridgeModem, args) -> None:
    ip, port = _parse_address(args.address)
    await modem.socket.open(ip, port)


async def _tcp_close(modem: BridgeModem, args) -> None:
    await modem.socket.close()


async def _tcp_send(modem: BridgeModem, args) -> None:
    if args.len <= 0:
        raise ConfigError(f"bad length: {args.len}")
    await modem.socket.send(make_payload(args.len))


async def _tcp_recv(modem: BridgeModem, args) -> None:
    data = await modem.socket.recv_all()
    print(data.decode("latin-1"))


async def _device_reboot(modem: BridgeModem, args) -> None:
    await modem.bridge.reboot()


async def _unlock(modem: BridgeModem, args) -> None:
    await modem.unlock.run()


async def _sci_loopback(modem: BridgeModem, args) -> None:
    await modem.bridge.set_loopback(args.status == "on")


async def _forward(modem: BridgeModem, args) -> None:
    if not args.optical:
        raise BridgeError("not available")
    await modem.bridge.set_forwarding(args.status == "on")


async def _send(modem: BridgeModem, args) -> None:
    response = await modem.bridge.send_line(args.line, raw=args.raw)
    if response is not None:
        print(f"< {response}")


async def _scpi(modem: BridgeModem, args) -> None:
    timing = modem.session.timing
    specs = [spec for spec in (parse_scpi_line(line, timing) for line in _read_lines(args.file)) if spec]
    for response in await modem.bridge.run_scpi_script(specs):
        print(response)


async def _at(modem: BridgeModem, args) -> None:
    specs = parse_script(_read_lines(args.file), modem.session.timing)
    await modem.script.run(specs)


COMMANDS = {
    "ping": _probe,
    "modem-power": _modem_power,
    "modem-config": _modem_config,
    "modem-info": _modem_info,
    "pdp-activate": _pdp_activate,
    "tcp-ping": _tcp_ping,
    "tcp-open": _tcp_open,
    "tcp-close": _tcp_close,
    "tcp-send": _tcp_send,
    "tcp-recv": _tcp_recv,
    "device-reboot": _device_reboot,
    "unlock-nb85": _unlock,
    "sci-loopback": _sci_loopback,
    "forward": _forward,
    "send": _send,
    "scpi": _scpi,
    "at": _at,
}


def build_config(args) -> BridgeConfig:
    """Session configuration from command-line options."""
    timing = UNBOUNDED_TIMING if args.simulate else REAL_TIMING
    if getattr(args, "timeout", None) is not None:
        timing = timing.override(data_wait_timeout=args.timeout)
    return BridgeConfig(mtu=args.mtu, timing=timing, raw_payload=not args.optical)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quectel-bridge",
        description="Drive a Quectel modem through a SCPI serial bridge",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  quectel-bridge -d /dev/ttyUSB0 ping
  quectel-bridge -d /dev/ttyUSB0 tcp-ping -a 203.0.113.7:7000 -s 2000 -n 3
  quectel-bridge -d /dev/ttyUSB0 at -f init.at
        """
    )
    parser.add_argument("-V", "--version", action="version", version=__version__)
    parser.add_argument("-d", "--device", required=True, help="Serial device name")
    parser.add_argument("-b", "--baud", type=int, default=9600, help="Serial device baudrate (default: 9600)")
    parser.add_argument(
        "-u", "--mtu",
        type=int,
        default=MAX_MTU,
        help=f"Maximum send/receive size of socket data (default: {MAX_MTU})"
    )
    parser.add_argument(
        "--optical",
        action="store_true",
        help="Bridge is an optical head: terminate socket payload with CRLF"
    )
    parser.add_argument(
        "-m", "--simulate",
        action="store_true",
        help="The peer talker is a human played simulator"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("ping", help="Test scpi connectivity by sending *IDN?")

    p = sub.add_parser("modem-power", help="Turn on/off modem or query its power status")
    p.add_argument("subcommand", choices=["status", "on", "off"])

    p = sub.add_parser("modem-config", help="Configure modem")
    p.add_argument("-t", "--network", default="NBIoT", help="network type: CatM or NBIoT")
    p.add_argument("-a", "--apn", default="", help="Network access point name (APN)")
    p.add_argument("-U", "--username", default="")
    p.add_argument("-p", "--password", default="")

    sub.add_parser("modem-info", help="Modem/network information")

    p = sub.add_parser("pdp-activate", help="Activate PDP context")
    p.add_argument("-c", "--context-id", type=int, default=1, help="PDP context ID")

    p = sub.add_parser("tcp-ping", help="Send data to a server over TCP and wait for replies")
    p.add_argument("-a", "--address", required=True, help="destination address in <IP>:<PORT>")
    p.add_argument("-s", "--size", type=int, default=64, help="size of each data message")
    p.add_argument("-n", "--times", type=int, default=1, help="number of times to repeat")
    p.add_argument("-O", "--timeout", type=float, default=None, help="receiving timeout (secs)")
    p.add_argument("-y", "--delay", type=float, default=1.5, help="inter message delay (secs)")

    p = sub.add_parser("tcp-open", help="Open the TCP conn")
    p.add_argument("-a", "--address", required=True, help="destination address in <IP>:<PORT>")

    sub.add_parser("tcp-close", help="Close the TCP conn")

    p = sub.add_parser("tcp-send", help="Send data over TCP")
    p.add_argument("-n", "--len", type=int, required=True, help="length of data to send")

    sub.add_parser("tcp-recv", help="Receive data from TCP")
    sub.add_parser("device-reboot", help="Reboot the device")
    sub.add_parser("unlock-nb85", help="Unlock NB85 modem UART")

    p = sub.add_parser("sci-loopback", help="Turn on/off loopback of SCI pins")
    p.add_argument("status", choices=["on", "off"])

    p = sub.add_parser("forward", help="Turn on/off optical head forwarding")
    p.add_argument("status", choices=["on", "off"])

    p = sub.add_parser("send", help="Send a single line and print the answer")
    p.add_argument("line", help="line to send")
    p.add_argument("-r", "--raw", action="store_true", help="send without CRLF")

    p = sub.add_parser("scpi", help="Run SCPI script loaded from a file or read from stdin")
    p.add_argument("-f", "--file", help='File of "command[;timeout]" lines (default: stdin)')

    p = sub.add_parser("at", help="Run AT script loaded from a file or read from stdin")
    p.add_argument("-f", "--file", help='File of "command[;timeout;expect]" lines (default: stdin)')

    return parser


async def _run(args) -> None:
    config = build_config(args)
    modem = await BridgeModem.open(args.device, args.baud, config=config)
    async with modem:
        await COMMANDS[args.command](modem, args)


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for CLI."""
    args = build_parser().parse_args(argv)

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
    else:
        logging.basicConfig(
            level=logging.INFO,
            format='%(message)s'
        )

    try:
        asyncio.run(_run(args))
    except BridgeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
