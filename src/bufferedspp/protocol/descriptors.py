"""Length descriptor encoding and validation."""

from __future__ import annotations

import struct

from ..exceptions import InvalidDescriptorError
from .attributes import DESCRIPTOR_SIZE, END_OF_DATA, HANDLER_FAILED, NO_MESSAGE

_DESCRIPTOR = struct.Struct("<i")


def build_length_descriptor(length: int) -> bytes:
    """Build a length descriptor.

    Args:
        length: Message length in bytes, or one of the negative sentinels

    Returns:
        Descriptor bytes: signed int32, little-endian

    Raises:
        ValueError: If length does not fit in a signed 32-bit integer
    """
    try:
        return _DESCRIPTOR.pack(length)
    except struct.error as e:
        raise ValueError(f"Length {length} does not fit in a 32-bit descriptor") from e


def parse_length_descriptor(data: bytes) -> int:
    """Parse a length descriptor.

    Format: [length:4] (signed, little-endian)

    Args:
        data: Raw slot value

    Returns:
        Announced length (may be a negative sentinel)

    Raises:
        InvalidDescriptorError: If data is not exactly 4 bytes
    """
    if len(data) != DESCRIPTOR_SIZE:
        raise InvalidDescriptorError(
            f"Descriptor must be {DESCRIPTOR_SIZE} bytes, got {len(data)}"
        )
    return _DESCRIPTOR.unpack(bytes(data))[0]


def is_ready(length: int) -> bool:
    """Check if a response-length value announces an actual response."""
    return length >= 0


def is_handler_failure(length: int) -> bool:
    """Check if a response-length value reports a failed server handler."""
    return length == HANDLER_FAILED


def is_pending(length: int) -> bool:
    """Check if a response-length value means "not ready yet"."""
    return length == NO_MESSAGE


def is_end_of_data(chunk: bytes) -> bool:
    """Check if a response-data read hit the end of the chunk queue."""
    return bytes(chunk) == END_OF_DATA
