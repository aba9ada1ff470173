"""Scanning for buffered SPP servers."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from bleak import BleakScanner

from .exceptions import BLEConnectionError
from .models.layout import DEFAULT_LAYOUT, ServiceLayout

if TYPE_CHECKING:
    from bleak.backends.device import BLEDevice

_LOGGER = logging.getLogger(__name__)


async def discover_devices(
        timeout: float = 10.0,
        layout: ServiceLayout = DEFAULT_LAYOUT,
) -> dict[str, str]:
    """Scan for servers advertising the buffered SPP service.

    Args:
        timeout: Scan duration in seconds (default: 10)
        layout: Service layout whose service UUID to look for

    Returns:
        Mapping of device address to advertised name
    """
    _LOGGER.debug("Scanning for %s for %.1fs", layout.service_uuid, timeout)

    found = await BleakScanner.discover(timeout=timeout, return_adv=True)
    wanted = layout.service_uuid.lower()

    devices: dict[str, str] = {}
    for address, (device, advertisement) in found.items():
        service_uuids = {uuid.lower() for uuid in advertisement.service_uuids}
        if wanted in service_uuids:
            devices[address] = device.name or advertisement.local_name or "Unknown"

    _LOGGER.info("Found %d buffered SPP server(s)", len(devices))
    return devices


async def find_device_by_name(name: str, timeout: float = 10.0) -> BLEDevice:
    """Scan for a device advertising the given name.

    Raises:
        BLEConnectionError: If no such device was seen before the timeout
    """
    device = await BleakScanner.find_device_by_name(name, timeout=timeout)
    if device is None:
        raise BLEConnectionError(f"Device {name} has not been detected during scan")
    return device
