"""
Basic connection example.

Demonstrates connecting to the bridge, checking modem power and reading
modem information through pass-through mode.
"""

import asyncio

from quectelbridge import BridgeModem, BridgeError

# Replace with your serial port
PORT = "/dev/ttyUSB0"


async def main():
    """Main function."""
    print("QuectelBridge - Basic Connection Example\n")

    # The context manager closes the serial link on exit
    async with await BridgeModem.open(PORT) as modem:
        print("=== Bridge ===")
        print(f"Identity: {await modem.bridge.identify()}")

        print("\n=== Modem Power ===")
        status = await modem.power.power_on()
        print(f"Modem is {'on' if status.is_on else 'off'}")

        print("\n=== Modem Information ===")
        try:
            for response in await modem.modem.info():
                print(response.strip())
        except BridgeError as e:
            print(f"Query failed: {e}")

    print("\nConnection closed.")


if __name__ == "__main__":
    asyncio.run(main())
