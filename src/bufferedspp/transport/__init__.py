"""Slot transports."""

from .base import SlotTransport
from .connection import BLEConnection
from .loopback import LoopbackConnection

__all__ = [
    "BLEConnection",
    "LoopbackConnection",
    "SlotTransport",
]
