"""BLE connection management."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from bleak import BleakClient, BleakScanner
from bleak_retry_connector import BleakClientWithServiceCache, establish_connection

from ..exceptions import BLEConnectionError, BLETimeoutError
from ..models.layout import DEFAULT_LAYOUT, ServiceLayout
from ..protocol import ATT_HEADER_SIZE, Slot

if TYPE_CHECKING:
    from bleak.backends.characteristic import BleakGATTCharacteristic
    from bleak.backends.device import BLEDevice

_LOGGER = logging.getLogger(__name__)


class BLEConnection:
    """Manages BLE connection to a buffered SPP server.

    Features:
    - Automatic retry logic with bleak-retry-connector
    - Service caching for faster reconnections
    - Context manager for automatic cleanup
    - Slot-level read/write on the four service characteristics
    """

    def __init__(
            self,
            mac_address: str,
            ble_device: BLEDevice | None = None,
            layout: ServiceLayout = DEFAULT_LAYOUT,
            timeout: float = 10.0,
            max_attempts: int = 4,
            use_services_cache: bool = True,
    ):
        """Initialize BLE connection manager.

        Args:
            mac_address: Device MAC address
            ble_device: Optional BLEDevice from a previous scan
            layout: Service/characteristic UUIDs to use (default: DEFAULT_LAYOUT)
            timeout: Connection timeout in seconds (default: 10)
            max_attempts: Maximum connection attempts for bleak-retry-connector (default: 4)
            use_services_cache: Enable GATT service caching for faster reconnections (default: True)
        """
        self.mac_address = mac_address
        self.ble_device = ble_device
        self.layout = layout
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.use_services_cache = use_services_cache

        self._client: BleakClient | None = None
        self._characteristics: dict[Slot, BleakGATTCharacteristic] = {}

    async def __aenter__(self) -> BLEConnection:
        """Connect to device (context manager entry)."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Disconnect from device (context manager exit)."""
        await self.disconnect()

    async def connect(self) -> None:
        """Establish BLE connection to device.

        Uses bleak-retry-connector for automatic retry logic and service caching.

        Raises:
            BLEConnectionError: If connection fails or the service is missing
            BLETimeoutError: If connection times out
        """
        if self._client and self._client.is_connected:
            return  # Already connected

        try:
            _LOGGER.debug(
                "Connecting to %s with bleak-retry-connector (max_attempts=%d)",
                self.mac_address,
                self.max_attempts
            )

            # Resolve MAC to BLEDevice if not provided
            if self.ble_device:
                device = self.ble_device
            else:
                device = await BleakScanner.find_device_by_address(
                    self.mac_address,
                    timeout=self.timeout
                )
                if device is None:
                    raise BLEConnectionError(
                        f"Device {self.mac_address} not found during scan"
                    )

            self._client = await establish_connection(
                client_class=BleakClientWithServiceCache,
                device=device,
                name=device.name or self.mac_address,
                max_attempts=self.max_attempts,
                use_services_cache=self.use_services_cache,
                timeout=self.timeout,
            )

            _LOGGER.info("Connected to %s", self.mac_address)

            await self._negotiate_mtu()
            self._resolve_characteristics()

        except BLEConnectionError:
            await self.disconnect()
            raise
        except asyncio.TimeoutError as e:
            raise BLETimeoutError(
                f"Connection timeout after {self.timeout}s"
            ) from e
        except Exception as e:
            raise BLEConnectionError(
                f"Failed to connect: {e}"
            ) from e

    async def disconnect(self) -> None:
        """Disconnect from device."""
        self._characteristics = {}
        if self._client and self._client.is_connected:
            try:
                _LOGGER.debug("Disconnecting from %s", self.mac_address)
                await self._client.disconnect()
            except Exception as e:
                _LOGGER.warning("Error during disconnect: %s", e)
            finally:
                self._client = None

    async def _negotiate_mtu(self) -> None:
        """Make sure a full chunk fits in a single ATT read.

        Longer values are fetched with Read Blob requests, which the server
        would answer by handing out the next chunk for every blob.

        Raises:
            BLEConnectionError: If the MTU is too small for the layout's chunk size
        """
        backend = getattr(self._client, "_backend", None)
        if type(backend).__name__ == "BleakClientBlueZDBus":
            # BlueZ only exchanges the MTU lazily, mtu_size reads 23 until then
            await backend._acquire_mtu()

        mtu = self._client.mtu_size
        payload = mtu - ATT_HEADER_SIZE
        if payload < self.layout.chunk_size:
            raise BLEConnectionError(
                f"ATT MTU {mtu} carries {payload} bytes per read but chunk size is "
                f"{self.layout.chunk_size}; use ServiceLayout(chunk_size={payload}) on both peers"
            )

        _LOGGER.debug("ATT MTU %d (chunk size %d)", mtu, self.layout.chunk_size)

    def _resolve_characteristics(self) -> None:
        """Look up the four slot characteristics in the service.

        Raises:
            BLEConnectionError: If service/characteristic not found
        """
        if not self._client or not self._client.is_connected:
            raise BLEConnectionError("Not connected")

        service = self._client.services.get_service(self.layout.service_uuid)
        if not service:
            raise BLEConnectionError(
                f"Service {self.layout.service_uuid} not found"
            )

        characteristics: dict[Slot, BleakGATTCharacteristic] = {}
        for slot, uuid in self.layout.slot_uuids.items():
            characteristic = service.get_characteristic(uuid)
            if characteristic is None:
                raise BLEConnectionError(
                    f"Characteristic {uuid} ({slot.value}) not found"
                )
            characteristics[slot] = characteristic

        self._characteristics = characteristics
        _LOGGER.debug("Resolved %d slot characteristics", len(characteristics))

    def _characteristic(self, slot: Slot) -> BleakGATTCharacteristic:
        if not self._client or not self._client.is_connected:
            raise BLEConnectionError("Not connected")

        characteristic = self._characteristics.get(slot)
        if characteristic is None:
            raise BLEConnectionError(f"Slot {slot.value} not resolved")
        return characteristic

    async def write_slot(self, slot: Slot, data: bytes) -> None:
        """Write data to a slot.

        Args:
            slot: Slot to write
            data: Bytes to write

        Raises:
            BLEConnectionError: If not connected or write fails
        """
        characteristic = self._characteristic(slot)

        try:
            await self._client.write_gatt_char(
                characteristic,
                data,
                response=True,  # Wait for write confirmation
            )
        except Exception as e:
            raise BLEConnectionError(f"Write to {slot.value} failed: {e}") from e

    async def read_slot(self, slot: Slot) -> bytes:
        """Read the current value of a slot.

        Args:
            slot: Slot to read

        Returns:
            Slot value

        Raises:
            BLEConnectionError: If not connected or read fails
        """
        characteristic = self._characteristic(slot)

        try:
            return bytes(await self._client.read_gatt_char(characteristic))
        except Exception as e:
            raise BLEConnectionError(f"Read from {slot.value} failed: {e}") from e

    @property
    def is_connected(self) -> bool:
        """Check if currently connected to device."""
        return self._client is not None and self._client.is_connected
