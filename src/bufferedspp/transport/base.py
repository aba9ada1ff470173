"""Abstract slot transport used by the client."""

from __future__ import annotations

from typing import Protocol

from ..protocol import Slot


class SlotTransport(Protocol):
    """Read/write access to the four named slots of the peer.

    Implementations must complete each write before returning so that
    chunk order on the wire matches call order.
    """

    @property
    def is_connected(self) -> bool:
        """Check if the transport can currently reach the peer."""
        ...

    async def write_slot(self, slot: Slot, data: bytes) -> None:
        """Write an opaque buffer to a slot."""
        ...

    async def read_slot(self, slot: Slot) -> bytes:
        """Read the current buffer from a slot."""
        ...

    async def connect(self) -> None:
        """Open the transport."""
        ...

    async def disconnect(self) -> None:
        """Close the transport."""
        ...
