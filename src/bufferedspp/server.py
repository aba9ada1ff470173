"""GATT server exposing a ServerSession over BLE."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from bless import BlessServer, GATTAttributePermissions, GATTCharacteristicProperties

from .exceptions import BLEConnectionError
from .models.layout import DEFAULT_LAYOUT, ServiceLayout
from .protocol import NO_MESSAGE, Slot, build_length_descriptor
from .session import RequestHandler, ServerSession

if TYPE_CHECKING:
    from bless import BlessGATTCharacteristic

_LOGGER = logging.getLogger(__name__)

_WRITE_PROPERTIES = (
    GATTCharacteristicProperties.write
    | GATTCharacteristicProperties.write_without_response
)


class BufferedSppServer:
    """BLE peripheral that answers buffered SPP requests.

    Usage:
        def echo(request: bytes) -> bytes:
            return request

        async with BufferedSppServer("BufferedBleSppServer", echo):
            await asyncio.Event().wait()
    """

    def __init__(
            self,
            name: str,
            handler: RequestHandler,
            layout: ServiceLayout = DEFAULT_LAYOUT,
    ):
        """Initialize GATT server.

        Args:
            name: Device name to advertise
            handler: Called with each complete request, returns the response
            layout: Service layout shared with clients (default: DEFAULT_LAYOUT)
        """
        self.name = name
        self.layout = layout
        self._session = ServerSession(handler, chunk_size=layout.chunk_size)
        self._server: BlessServer | None = None

    async def __aenter__(self) -> BufferedSppServer:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop()

    @property
    def session(self) -> ServerSession:
        """Get the transfer session served by this server."""
        return self._session

    @property
    def is_running(self) -> bool:
        """Check if the server is advertising."""
        return self._server is not None

    async def start(self) -> None:
        """Register the service and start advertising.

        Raises:
            BLEConnectionError: If the GATT server could not be started
        """
        if self._server is not None:
            return  # Already running

        server = BlessServer(name=self.name)
        server.read_request_func = self._handle_read
        server.write_request_func = self._handle_write

        try:
            await server.add_new_service(self.layout.service_uuid)

            for slot in (Slot.REQUEST_LENGTH, Slot.REQUEST_DATA):
                await server.add_new_characteristic(
                    self.layout.service_uuid,
                    self.layout.uuid_for(slot),
                    _WRITE_PROPERTIES,
                    None,
                    GATTAttributePermissions.writeable,
                )

            await server.add_new_characteristic(
                self.layout.service_uuid,
                self.layout.response_length_uuid,
                GATTCharacteristicProperties.read,
                bytearray(build_length_descriptor(NO_MESSAGE)),
                GATTAttributePermissions.readable,
            )
            await server.add_new_characteristic(
                self.layout.service_uuid,
                self.layout.response_data_uuid,
                GATTCharacteristicProperties.read,
                None,
                GATTAttributePermissions.readable,
            )

            await server.start()
        except Exception as e:
            try:
                await server.stop()
            except Exception as stop_error:
                _LOGGER.warning("Error stopping GATT server after failed start: %s", stop_error)
            raise BLEConnectionError(f"Failed to start GATT server: {e}") from e

        self._server = server
        _LOGGER.info("GATT server started, advertising as: %s", self.name)

    async def stop(self) -> None:
        """Stop advertising and tear down the service."""
        if self._server is None:
            return

        server, self._server = self._server, None
        try:
            await server.stop()
        except Exception as e:
            _LOGGER.warning("Error stopping GATT server: %s", e)
        finally:
            self._session.reset()

        _LOGGER.info("GATT server stopped")

    def _handle_read(self, characteristic: BlessGATTCharacteristic, **kwargs: Any) -> bytearray:
        """Answer a read on one of the response slots."""
        slot = self.layout.slot_for(characteristic.uuid)

        if slot == Slot.RESPONSE_LENGTH:
            value = self._session.read_response_length()
        elif slot == Slot.RESPONSE_DATA:
            value = self._session.read_response_data()
        else:
            _LOGGER.warning("Read on unexpected characteristic %s", characteristic.uuid)
            return bytearray(characteristic.value or b"")

        characteristic.value = bytearray(value)
        return bytearray(value)

    def _handle_write(self, characteristic: BlessGATTCharacteristic, value: Any, **kwargs: Any) -> None:
        """Deliver a write on one of the request slots."""
        slot = self.layout.slot_for(characteristic.uuid)
        data = bytes(value)

        if slot == Slot.REQUEST_LENGTH:
            self._session.on_request_length(data)
        elif slot == Slot.REQUEST_DATA:
            self._session.on_request_data(data)
        else:
            _LOGGER.warning("Write on unexpected characteristic %s", characteristic.uuid)
            return

        characteristic.value = bytearray(data)
