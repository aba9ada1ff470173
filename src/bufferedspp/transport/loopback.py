"""In-process transport wired straight to a server session."""

from __future__ import annotations

import logging
from collections.abc import Callable

from ..exceptions import BLEConnectionError
from ..protocol import Slot
from ..session import ServerSession

_LOGGER = logging.getLogger(__name__)


class LoopbackConnection:
    """Delivers slot reads/writes directly to a ServerSession.

    Useful for running both peers in one process and for tests. Writes and
    reads are dispatched synchronously, in call order, like the callbacks a
    GATT server would receive.
    """

    def __init__(
            self,
            session: ServerSession,
            on_write: Callable[[Slot, bytes], None] | None = None,
    ):
        """Initialize loopback connection.

        Args:
            session: Server session that receives the slot operations
            on_write: Optional hook called with every write before delivery
        """
        self.session = session
        self.on_write = on_write
        self._connected = False

    async def __aenter__(self) -> LoopbackConnection:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.disconnect()

    async def connect(self) -> None:
        self._connected = True
        _LOGGER.debug("Loopback connected")

    async def disconnect(self) -> None:
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def write_slot(self, slot: Slot, data: bytes) -> None:
        """Deliver a write to the session.

        Raises:
            BLEConnectionError: If not connected or the slot is not writable
        """
        if not self._connected:
            raise BLEConnectionError("Not connected")

        data = bytes(data)
        if self.on_write is not None:
            self.on_write(slot, data)

        if slot == Slot.REQUEST_LENGTH:
            self.session.on_request_length(data)
        elif slot == Slot.REQUEST_DATA:
            self.session.on_request_data(data)
        else:
            raise BLEConnectionError(f"Slot {slot.value} is not writable")

    async def read_slot(self, slot: Slot) -> bytes:
        """Deliver a read to the session.

        Raises:
            BLEConnectionError: If not connected or the slot is not readable
        """
        if not self._connected:
            raise BLEConnectionError("Not connected")

        if slot == Slot.RESPONSE_LENGTH:
            return self.session.read_response_length()
        if slot == Slot.RESPONSE_DATA:
            return self.session.read_response_data()
        raise BLEConnectionError(f"Slot {slot.value} is not readable")
