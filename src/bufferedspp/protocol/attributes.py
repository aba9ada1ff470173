"""GATT slot layout for the buffered SPP service."""

from __future__ import annotations

from enum import Enum


class Slot(str, Enum):
    """The four named attribute slots of the service.

    Naming is from the client's point of view: the client writes the
    request slots and reads the response slots.
    """

    REQUEST_LENGTH = "request-length"    # Announce size of the next request
    REQUEST_DATA = "request-data"        # Next chunk of the current request
    RESPONSE_LENGTH = "response-length"  # Size of the pending response, or sentinel
    RESPONSE_DATA = "response-data"      # Next chunk of the pending response


# Service and characteristic UUIDs
SERVICE_UUID = "12345678-1234-5678-1234-56789abcdef0"
REQUEST_LENGTH_UUID = "12345678-1234-5678-1234-56789abcdef1"
REQUEST_DATA_UUID = "12345678-1234-5678-1234-56789abcdef2"
RESPONSE_LENGTH_UUID = "12345678-1234-5678-1234-56789abcdef3"
RESPONSE_DATA_UUID = "12345678-1234-5678-1234-56789abcdef4"

# Chunking constants
CHUNK_SIZE = 250  # Maximum data bytes per slot read/write
MAX_CHUNK_SIZE = 512  # ATT attribute value limit
ATT_HEADER_SIZE = 3  # Opcode + handle, subtracted from the MTU

# Descriptor constants
DESCRIPTOR_SIZE = 4  # int32, little-endian
NO_MESSAGE = -1  # Response not ready yet
HANDLER_FAILED = -2  # Server handler raised while processing the request

# Returned by the response-data slot once the chunk queue is exhausted.
# Legitimate chunks are never empty, so this can't be confused with data.
END_OF_DATA = b""
