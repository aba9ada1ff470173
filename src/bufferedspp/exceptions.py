"""Exceptions raised by the buffered SPP package."""

from __future__ import annotations


class BufferedSppError(Exception):
    """Base exception for all buffered SPP errors."""


class BLEConnectionError(BufferedSppError):
    """Connecting to the peer, or a read/write on one of its slots, failed."""


class BLETimeoutError(BufferedSppError):
    """A BLE operation did not complete in time."""


class ProtocolError(BufferedSppError):
    """The peers disagree about the transfer (length mismatch, overrun, missing data)."""


class InvalidDescriptorError(ProtocolError):
    """A length descriptor could not be decoded."""


class TransferCancelledError(BufferedSppError):
    """The caller cancelled the transfer."""


class TransferTimeoutError(TransferCancelledError):
    """The transfer deadline elapsed before a response was received."""


class RemoteHandlerError(BufferedSppError):
    """The server's application handler failed while processing the request."""
