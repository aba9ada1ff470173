"""Send a large message to a buffered SPP server and print the response.

Usage:
    uv run python examples/send_message.py
    uv run python examples/send_message.py --name BufferedBleSppServer --count 10000 --timeout 30
"""

from __future__ import annotations

import argparse
import asyncio
import logging

from bufferedspp import (
    BufferedSppClient,
    BufferedSppError,
    TransferCancelledError,
    find_device_by_name,
)


def _print_progress(progress: float) -> None:
    print(f"\rProgress: {progress * 100:5.1f}%", end="", flush=True)


async def send(name: str, count: int, timeout: float) -> None:
    """Connect to the named server, send the message and check the echo."""
    device = await find_device_by_name(name)
    message = "".join(f" {i}" for i in range(count))

    async with BufferedSppClient(device.address, ble_device=device) as client:
        print(f"Device [{device.name}] connected, sending {len(message)} characters")
        try:
            response = await client.send_text(
                message,
                timeout=timeout,
                on_progress=_print_progress,
            )
        except TransferCancelledError as err:
            print(f"\nCancelled: {err}")
            return

    print()
    print("Receive success" if response == message else "Response differs from request")
    print(f"Received {len(response)} characters")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Send a message to a buffered SPP server.")
    parser.add_argument(
        "--name",
        default="BufferedBleSppServer",
        help="Advertised name of the server. Default: BufferedBleSppServer",
    )
    parser.add_argument(
        "--count",
        type=int,
        default=10000,
        help="Number of integers in the generated message. Default: 10000",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=30.0,
        help="Transfer timeout in seconds. Default: 30",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    try:
        asyncio.run(send(name=args.name, count=args.count, timeout=args.timeout))
    except BufferedSppError as err:
        print(f"Problem: {err}")
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
