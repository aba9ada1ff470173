"""Message chunking and reassembly for the buffered SPP protocol."""

from __future__ import annotations

from collections.abc import Iterable

from ..exceptions import ProtocolError
from .attributes import CHUNK_SIZE


def split_message(message: bytes, chunk_size: int = CHUNK_SIZE) -> list[bytes]:
    """Split a message into slot-sized chunks.

    Slices greedily front to back, so only the last chunk can be short.
    An empty message produces no chunks.

    Args:
        message: Message to split
        chunk_size: Maximum bytes per chunk (default: CHUNK_SIZE)

    Returns:
        Chunks in transmission order

    Raises:
        ValueError: If chunk_size is not positive
    """
    if chunk_size < 1:
        raise ValueError(f"Chunk size must be positive, got {chunk_size}")

    data = bytes(message)
    return [data[i:i + chunk_size] for i in range(0, len(data), chunk_size)]


def join_chunks(chunks: Iterable[bytes]) -> bytes:
    """Concatenate chunks in the order given."""
    return b"".join(bytes(chunk) for chunk in chunks)


class ChunkAssembler:
    """Reassembles a message announced by a length descriptor.

    Chunks carry no header, so ordering comes entirely from the order in
    which they are added. Completion is reached when the byte count equals
    the announced length.
    """

    def __init__(self, expected_length: int):
        """Initialize chunk assembler.

        Args:
            expected_length: Total message length from the descriptor

        Raises:
            ValueError: If expected_length is negative
        """
        if expected_length < 0:
            raise ValueError(f"Expected length must be >= 0, got {expected_length}")

        self.expected_length = expected_length
        self._buffer = bytearray()
        self._chunks = 0

    def add_chunk(self, data: bytes) -> bool:
        """Add the next chunk.

        Args:
            data: Chunk bytes, in arrival order

        Returns:
            True if the message is now complete

        Raises:
            ProtocolError: If the chunk overruns the announced length
        """
        if self.is_complete and data:
            raise ProtocolError(
                f"Received {len(data)} bytes after message of "
                f"{self.expected_length} bytes was complete"
            )

        if len(self._buffer) + len(data) > self.expected_length:
            raise ProtocolError(
                f"Chunk overruns message: have {len(self._buffer)}, got {len(data)} more, "
                f"expected {self.expected_length} total"
            )

        self._buffer.extend(data)
        self._chunks += 1
        return self.is_complete

    def get_assembled_data(self) -> bytes:
        """Get the reassembled message.

        Raises:
            ProtocolError: If assembly not complete
        """
        if not self.is_complete:
            raise ProtocolError(
                f"Assembly incomplete: have {len(self._buffer)}/{self.expected_length} bytes"
            )
        return bytes(self._buffer)

    @property
    def is_complete(self) -> bool:
        """Check if the announced number of bytes has arrived."""
        return len(self._buffer) == self.expected_length

    @property
    def bytes_received(self) -> int:
        """Get number of bytes received so far."""
        return len(self._buffer)

    @property
    def bytes_remaining(self) -> int:
        """Get number of bytes still expected."""
        return self.expected_length - len(self._buffer)

    @property
    def chunks_received(self) -> int:
        """Get number of chunks received."""
        return self._chunks
