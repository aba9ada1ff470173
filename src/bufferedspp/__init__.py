"""Buffered BLE SPP Package.

  Send messages of any size over a BLE GATT service whose reads and writes
  are limited to a few hundred bytes each.
  """

from .client import BufferedSppClient
from .discovery import discover_devices, find_device_by_name
from .exceptions import (
    BLEConnectionError,
    BLETimeoutError,
    BufferedSppError,
    InvalidDescriptorError,
    ProtocolError,
    RemoteHandlerError,
    TransferCancelledError,
    TransferTimeoutError,
)
from .models import DEFAULT_LAYOUT, ServiceLayout, SessionState
from .protocol import (
    CHUNK_SIZE,
    END_OF_DATA,
    HANDLER_FAILED,
    NO_MESSAGE,
    SERVICE_UUID,
    Slot,
    join_chunks,
    split_message,
)
from .server import BufferedSppServer
from .session import ServerSession
from .transport import BLEConnection, LoopbackConnection

__version__ = "0.1.0"

__all__ = [
    # Main API
    "BufferedSppClient",
    "BufferedSppServer",
    "ServerSession",
    "discover_devices",
    "find_device_by_name",
    # Transports
    "BLEConnection",
    "LoopbackConnection",
    # Exceptions
    "BufferedSppError",
    "BLEConnectionError",
    "BLETimeoutError",
    "ProtocolError",
    "InvalidDescriptorError",
    "TransferCancelledError",
    "TransferTimeoutError",
    "RemoteHandlerError",
    # Models
    "ServiceLayout",
    "SessionState",
    "Slot",
    # Utilities
    "split_message",
    "join_chunks",
    # Constants
    "SERVICE_UUID",
    "CHUNK_SIZE",
    "NO_MESSAGE",
    "HANDLER_FAILED",
    "END_OF_DATA",
    "DEFAULT_LAYOUT",
]
