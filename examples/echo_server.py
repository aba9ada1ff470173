"""Run a buffered SPP server that echoes every request back.

Usage:
    uv run python examples/echo_server.py
    uv run python examples/echo_server.py --name MyServer --delay 1.0 --verbose
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import time

from bufferedspp import BufferedSppServer


def make_handler(delay: float):
    """Build an echo handler that sleeps before answering."""

    def handler(request: bytes) -> bytes:
        text = request.decode("utf-8", errors="replace")
        print(f"Received {len(request)} bytes: {text[:60]!r}{'...' if len(text) > 60 else ''}")
        if delay > 0:
            time.sleep(delay)  # Simulate work
        return text.encode("utf-8")

    return handler


async def serve(name: str, delay: float) -> None:
    """Advertise and serve until cancelled."""
    async with BufferedSppServer(name, make_handler(delay)):
        print(f"Advertising as {name} (Ctrl+C to stop)")
        while True:
            await asyncio.sleep(1)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Buffered SPP echo server.")
    parser.add_argument(
        "--name",
        default="BufferedBleSppServer",
        help="Advertised device name. Default: BufferedBleSppServer",
    )
    parser.add_argument(
        "--delay",
        type=float,
        default=1.0,
        help="Seconds the handler sleeps before answering. Default: 1.0",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)
    try:
        asyncio.run(serve(name=args.name, delay=args.delay))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
