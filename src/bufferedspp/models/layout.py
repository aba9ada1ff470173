"""Service layout shared out-of-band by both peers."""

from __future__ import annotations

from dataclasses import dataclass

from ..protocol.attributes import (
    CHUNK_SIZE,
    MAX_CHUNK_SIZE,
    REQUEST_DATA_UUID,
    REQUEST_LENGTH_UUID,
    RESPONSE_DATA_UUID,
    RESPONSE_LENGTH_UUID,
    SERVICE_UUID,
    Slot,
)


@dataclass(frozen=True)
class ServiceLayout:
    """GATT service UUIDs and chunk size agreed between client and server.

    Nothing here is negotiated over the air; both peers must be built with
    the same layout.

    Attributes:
        service_uuid: UUID of the primary service
        request_length_uuid: Characteristic the client writes request sizes to
        request_data_uuid: Characteristic the client writes request chunks to
        response_length_uuid: Characteristic the client polls for the response size
        response_data_uuid: Characteristic the client reads response chunks from
        chunk_size: Maximum bytes per slot read/write
    """
    service_uuid: str = SERVICE_UUID
    request_length_uuid: str = REQUEST_LENGTH_UUID
    request_data_uuid: str = REQUEST_DATA_UUID
    response_length_uuid: str = RESPONSE_LENGTH_UUID
    response_data_uuid: str = RESPONSE_DATA_UUID
    chunk_size: int = CHUNK_SIZE

    def __post_init__(self) -> None:
        if not 1 <= self.chunk_size <= MAX_CHUNK_SIZE:
            raise ValueError(
                f"chunk_size must be between 1 and {MAX_CHUNK_SIZE}, got {self.chunk_size}"
            )
        uuids = [uuid.lower() for uuid in self.slot_uuids.values()]
        if len(set(uuids)) != len(uuids):
            raise ValueError("Each slot needs its own characteristic UUID")

    @property
    def slot_uuids(self) -> dict[Slot, str]:
        """Map each slot to its characteristic UUID."""
        return {
            Slot.REQUEST_LENGTH: self.request_length_uuid,
            Slot.REQUEST_DATA: self.request_data_uuid,
            Slot.RESPONSE_LENGTH: self.response_length_uuid,
            Slot.RESPONSE_DATA: self.response_data_uuid,
        }

    def uuid_for(self, slot: Slot) -> str:
        """Get the characteristic UUID for a slot."""
        return self.slot_uuids[slot]

    def slot_for(self, uuid: str) -> Slot | None:
        """Find the slot for a characteristic UUID (case-insensitive).

        Returns:
            Matching slot, or None if the UUID is not part of this layout
        """
        wanted = str(uuid).lower()
        for slot, slot_uuid in self.slot_uuids.items():
            if slot_uuid.lower() == wanted:
                return slot
        return None


DEFAULT_LAYOUT = ServiceLayout()
