"""Client side of the buffered SPP protocol."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from .exceptions import (
    ProtocolError,
    RemoteHandlerError,
    TransferCancelledError,
    TransferTimeoutError,
)
from .models.layout import DEFAULT_LAYOUT, ServiceLayout
from .protocol import (
    ChunkAssembler,
    Slot,
    build_length_descriptor,
    is_end_of_data,
    is_handler_failure,
    is_pending,
    is_ready,
    parse_length_descriptor,
    split_message,
)
from .transport import BLEConnection

if TYPE_CHECKING:
    from bleak.backends.device import BLEDevice

    from .transport import SlotTransport

_LOGGER = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]


class _Checkpoint:
    """Cancellation and deadline check run before every transport operation."""

    def __init__(self, cancel_event: asyncio.Event | None, timeout: float | None):
        self._cancel_event = cancel_event
        self._timeout = timeout
        self._loop = asyncio.get_running_loop()
        self._deadline = None if timeout is None else self._loop.time() + timeout

    def __call__(self) -> None:
        if self._cancel_event is not None and self._cancel_event.is_set():
            raise TransferCancelledError("Transfer cancelled")
        if self._deadline is not None and self._loop.time() >= self._deadline:
            raise TransferTimeoutError(f"Transfer did not complete within {self._timeout}s")


class BufferedSppClient:
    """Client for a buffered SPP server.

    Sends requests of any size and returns the server's response, splitting
    and reassembling around the per-write size limit of the link.

    Usage:
        async with BufferedSppClient("AA:BB:CC:DD:EE:FF") as client:
            response = await client.send_message(b"hello", timeout=30.0)

        # Cancel from elsewhere
        cancel = asyncio.Event()
        task = asyncio.create_task(client.send_message(data, cancel_event=cancel))
        cancel.set()
    """

    TIMEOUT_CONNECT = 10.0
    POLL_INTERVAL = 0.0

    def __init__(
            self,
            mac_address: str,
            ble_device: BLEDevice | None = None,
            layout: ServiceLayout = DEFAULT_LAYOUT,
            timeout: float = TIMEOUT_CONNECT,
            poll_interval: float = POLL_INTERVAL,
            connection: SlotTransport | None = None,
    ):
        """Initialize buffered SPP client.

        Args:
            mac_address: Server MAC address
            ble_device: Optional BLEDevice from a previous scan
            layout: Service layout shared with the server (default: DEFAULT_LAYOUT)
            timeout: BLE connection timeout in seconds (default: 10)
            poll_interval: Seconds to sleep between response-length polls (default: 0)
            connection: Optional transport to use instead of a BLE connection
        """
        self.mac_address = mac_address
        self.layout = layout
        self.poll_interval = poll_interval
        self._connection: SlotTransport = (
            connection if connection is not None
            else BLEConnection(mac_address, ble_device, layout, timeout)
        )

    async def __aenter__(self) -> BufferedSppClient:
        """Connect to the server."""
        await self._connection.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Disconnect from the server."""
        await self._connection.disconnect()

    @property
    def is_connected(self) -> bool:
        """Check if the transport is connected."""
        return self._connection.is_connected

    def _ensure_connected(self) -> None:
        if not self._connection.is_connected:
            raise RuntimeError("Client not connected - use 'async with' or connect first")

    async def send_message(
            self,
            message: bytes,
            *,
            cancel_event: asyncio.Event | None = None,
            timeout: float | None = None,
            on_progress: ProgressCallback | None = None,
            progress_range: tuple[float, float] = (0.0, 1.0),
    ) -> bytes:
        """Send a request and wait for the complete response.

        Progress is reported after every chunk. The first half of
        progress_range covers sending, the second half receiving.

        Args:
            message: Request bytes (any length, including empty)
            cancel_event: Transfer is aborted once this event is set
            timeout: Optional overall deadline in seconds
            on_progress: Called with the current progress value
            progress_range: (start, end) range progress is scaled into

        Returns:
            Complete response bytes

        Raises:
            RuntimeError: If client not connected
            TransferCancelledError: If cancel_event was set
            TransferTimeoutError: If timeout elapsed
            RemoteHandlerError: If the server's handler failed
            ProtocolError: If the response does not match its announced length
            BLEConnectionError: If a slot read/write fails
        """
        self._ensure_connected()

        checkpoint = _Checkpoint(cancel_event, timeout)
        start, end = progress_range
        middle = start + (end - start) / 2

        def report(low: float, high: float, done: int, total: int) -> None:
            if on_progress is not None:
                fraction = done / total if total else 1.0
                on_progress(low + (high - low) * fraction)

        message = bytes(message)

        await self._send_request(
            message, checkpoint, lambda done, total: report(start, middle, done, total)
        )

        response_length = await self._poll_response_length(checkpoint)

        response = await self._read_response(
            response_length, checkpoint, lambda done, total: report(middle, end, done, total)
        )

        _LOGGER.info(
            "Transfer complete: sent %d bytes, received %d bytes",
            len(message),
            len(response),
        )
        return response

    async def send_text(self, text: str, encoding: str = "utf-8", **kwargs) -> str:
        """Send a text request and decode the response with the same encoding.

        Accepts the same keyword arguments as send_message.
        """
        response = await self.send_message(text.encode(encoding), **kwargs)
        return response.decode(encoding)

    async def _send_request(
            self,
            message: bytes,
            checkpoint: _Checkpoint,
            report: Callable[[int, int], None],
    ) -> None:
        """Announce the request length, then write every chunk in order."""
        total = len(message)

        checkpoint()
        await self._connection.write_slot(Slot.REQUEST_LENGTH, build_length_descriptor(total))

        chunks = split_message(message, self.layout.chunk_size)
        _LOGGER.debug("Sending %d bytes in %d chunks", total, len(chunks))

        bytes_sent = 0
        for chunk in chunks:
            checkpoint()
            await self._connection.write_slot(Slot.REQUEST_DATA, chunk)
            bytes_sent += len(chunk)
            report(bytes_sent, total)

            _LOGGER.debug(
                "Sent %d/%d bytes (%.1f%%)",
                bytes_sent,
                total,
                bytes_sent / total * 100,
            )

        if not chunks:
            report(0, 0)

    async def _poll_response_length(self, checkpoint: _Checkpoint) -> int:
        """Read the response-length slot until the server has a response.

        Returns:
            Announced response length

        Raises:
            RemoteHandlerError: If the server reports a handler failure
            ProtocolError: If the slot holds an unknown negative value
        """
        polls = 0
        while True:
            checkpoint()
            raw = await self._connection.read_slot(Slot.RESPONSE_LENGTH)
            length = parse_length_descriptor(raw)
            polls += 1

            if is_ready(length):
                _LOGGER.debug("Response of %d bytes ready after %d polls", length, polls)
                return length
            if is_handler_failure(length):
                raise RemoteHandlerError("Server handler failed to process the request")
            if not is_pending(length):
                raise ProtocolError(f"Unexpected response length {length}")

            await asyncio.sleep(self.poll_interval)

    async def _read_response(
            self,
            length: int,
            checkpoint: _Checkpoint,
            report: Callable[[int, int], None],
    ) -> bytes:
        """Read response chunks until the announced length is reached.

        Raises:
            ProtocolError: If the server runs out of data early or overruns
        """
        assembler = ChunkAssembler(length)

        while not assembler.is_complete:
            checkpoint()
            chunk = await self._connection.read_slot(Slot.RESPONSE_DATA)

            if is_end_of_data(chunk):
                raise ProtocolError(
                    f"Server ran out of data after {assembler.bytes_received}/{length} bytes"
                )

            assembler.add_chunk(chunk)
            report(assembler.bytes_received, length)

            _LOGGER.debug(
                "Received %d/%d bytes",
                assembler.bytes_received,
                length,
            )

        if length == 0:
            report(0, 0)

        return assembler.get_assembled_data()
