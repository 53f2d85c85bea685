"""
TCP ping example.

Opens a socket through the modem to an echo server, sends a few messages
and checks that each comes back unchanged.
"""

import asyncio

from quectelbridge import BridgeModem, BridgeConfig, BridgeError

# Replace with your serial port and echo server
PORT = "/dev/ttyUSB0"
SERVER = ("203.0.113.7", 7000)


async def main():
    """Main function."""
    print("QuectelBridge - TCP Ping Example\n")

    config = BridgeConfig(mtu=512)
    async with await BridgeModem.open(PORT, config=config) as modem:
        await modem.modem.activate_pdp(1)

        try:
            stats = await modem.socket.ping(*SERVER, size=1500, count=3, interval=2.0)
        except BridgeError as e:
            print(f"Ping failed: {e}")
            return

        print(f"Sent: {stats.sent_messages} messages, {stats.sent_bytes} bytes")
        print(f"Received: {stats.received_messages} messages, {stats.received_bytes} bytes")
        print(f"Time: {stats.elapsed:.3f} secs")


if __name__ == "__main__":
    asyncio.run(main())
