"""BLE protocol implementation."""

from .attributes import (
    ATT_HEADER_SIZE,
    CHUNK_SIZE,
    DESCRIPTOR_SIZE,
    END_OF_DATA,
    HANDLER_FAILED,
    MAX_CHUNK_SIZE,
    NO_MESSAGE,
    REQUEST_DATA_UUID,
    REQUEST_LENGTH_UUID,
    RESPONSE_DATA_UUID,
    RESPONSE_LENGTH_UUID,
    SERVICE_UUID,
    Slot,
)
from .chunking import ChunkAssembler, join_chunks, split_message
from .descriptors import (
    build_length_descriptor,
    is_end_of_data,
    is_handler_failure,
    is_pending,
    is_ready,
    parse_length_descriptor,
)

__all__ = [
    "Slot",
    "ATT_HEADER_SIZE",
    "SERVICE_UUID",
    "REQUEST_LENGTH_UUID",
    "REQUEST_DATA_UUID",
    "RESPONSE_LENGTH_UUID",
    "RESPONSE_DATA_UUID",
    "CHUNK_SIZE",
    "MAX_CHUNK_SIZE",
    "DESCRIPTOR_SIZE",
    "NO_MESSAGE",
    "HANDLER_FAILED",
    "END_OF_DATA",
    "split_message",
    "join_chunks",
    "ChunkAssembler",
    "build_length_descriptor",
    "parse_length_descriptor",
    "is_ready",
    "is_pending",
    "is_handler_failure",
    "is_end_of_data",
]
