"""Server side transfer session."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from .exceptions import InvalidDescriptorError, ProtocolError
from .models.enums import RESPONSE_STATES, SessionState, describe_state
from .protocol import (
    CHUNK_SIZE,
    END_OF_DATA,
    HANDLER_FAILED,
    NO_MESSAGE,
    ChunkAssembler,
    build_length_descriptor,
    parse_length_descriptor,
    split_message,
)

_LOGGER = logging.getLogger(__name__)

RequestHandler = Callable[[bytes], bytes]


class ServerSession:
    """Reassembles one request at a time and serves its response in chunks.

    The session is driven by the four slot callbacks of the GATT server:

    - a request-length write starts a new request and drops whatever the
      previous request left behind (partial data or an unread response)
    - request-data writes are appended until the announced length is reached,
      then the handler runs and its response is split into chunks
    - response-length reads return the response size, NO_MESSAGE while nothing
      is ready, or HANDLER_FAILED if the handler raised
    - response-data reads return the next chunk, then END_OF_DATA forever

    There is exactly one session per server. A second client writing a
    request-length descriptor pre-empts whatever the first client was doing.

    Callbacks may arrive on different threads depending on the BLE backend,
    so all state is guarded by a lock. The handler runs outside the lock;
    if a new request arrives while it runs, its result is dropped.
    """

    def __init__(self, handler: RequestHandler, chunk_size: int = CHUNK_SIZE):
        """Initialize server session.

        Args:
            handler: Called with each complete request, returns the response
            chunk_size: Maximum bytes per response chunk (default: CHUNK_SIZE)
        """
        if chunk_size < 1:
            raise ValueError(f"Chunk size must be positive, got {chunk_size}")

        self._handler = handler
        self.chunk_size = chunk_size

        self._lock = threading.Lock()
        self._generation = 0
        self._state = SessionState.IDLE
        self._assembler: ChunkAssembler | None = None
        self._response: bytes | None = None
        self._response_chunks: list[bytes] = []
        self._cursor = 0

    @property
    def state(self) -> SessionState:
        """Get current session state."""
        return self._state

    @property
    def expected_length(self) -> int | None:
        """Get announced length of the request in progress."""
        assembler = self._assembler
        return assembler.expected_length if assembler else None

    @property
    def bytes_received(self) -> int:
        """Get number of request bytes received so far."""
        assembler = self._assembler
        return assembler.bytes_received if assembler else 0

    @property
    def response(self) -> bytes | None:
        """Get the current response, if one has been produced."""
        return self._response

    def reset(self) -> None:
        """Drop the request in progress and any pending response."""
        with self._lock:
            self._reset_locked()

    def on_request_length(self, data: bytes) -> None:
        """Handle a write to the request-length slot."""
        try:
            length = parse_length_descriptor(data)
        except InvalidDescriptorError as e:
            _LOGGER.warning("Ignoring request: %s", e)
            self.reset()
            return

        with self._lock:
            self._reset_locked()

            if length < 0:
                _LOGGER.warning("Ignoring request with negative length %d", length)
                return

            self._assembler = ChunkAssembler(length)
            self._state = SessionState.ACCUMULATING
            generation = self._generation

        _LOGGER.debug("New request: expecting %d bytes", length)

        # Nothing to wait for, there won't be any request-data writes
        if length == 0:
            self._complete_request(generation)

    def on_request_data(self, data: bytes) -> None:
        """Handle a write to the request-data slot."""
        with self._lock:
            if self._state != SessionState.ACCUMULATING or self._assembler is None:
                _LOGGER.warning(
                    "Dropping %d byte chunk, no request in progress (%s)",
                    len(data),
                    describe_state(self._state),
                )
                return

            try:
                complete = self._assembler.add_chunk(bytes(data))
            except ProtocolError as e:
                _LOGGER.warning("Discarding request: %s", e)
                self._reset_locked()
                return

            _LOGGER.debug(
                "Received %d/%d request bytes",
                self._assembler.bytes_received,
                self._assembler.expected_length,
            )

            if not complete:
                return
            generation = self._generation

        self._complete_request(generation)

    def read_response_length(self) -> bytes:
        """Handle a read of the response-length slot."""
        with self._lock:
            if self._state == SessionState.FAILED:
                return build_length_descriptor(HANDLER_FAILED)
            if self._response is not None:
                return build_length_descriptor(len(self._response))
            return build_length_descriptor(NO_MESSAGE)

    def read_response_data(self) -> bytes:
        """Handle a read of the response-data slot."""
        with self._lock:
            if self._state not in RESPONSE_STATES:
                return END_OF_DATA

            if self._cursor >= len(self._response_chunks):
                self._state = SessionState.IDLE
                return END_OF_DATA

            chunk = self._response_chunks[self._cursor]
            self._cursor += 1
            self._state = SessionState.DRAINING

            if self._cursor == len(self._response_chunks):
                _LOGGER.debug("Response drained (%d chunks)", self._cursor)
                self._state = SessionState.IDLE

            return chunk

    def _complete_request(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or self._assembler is None:
                return
            request = self._assembler.get_assembled_data()
            self._state = SessionState.COMPLETE
            self._assembler = None
            self._state = SessionState.HANDLING

        _LOGGER.info("Request complete (%d bytes), running handler", len(request))

        try:
            response = self._handler(request)
            if not isinstance(response, (bytes, bytearray, memoryview)):
                raise TypeError(
                    f"Handler must return bytes, got {type(response).__name__}"
                )
            response = bytes(response)
        except Exception:
            _LOGGER.exception("Handler failed on %d byte request", len(request))
            with self._lock:
                if generation == self._generation:
                    self._state = SessionState.FAILED
            return

        chunks = split_message(response, self.chunk_size)

        with self._lock:
            if generation != self._generation:
                _LOGGER.debug("Discarding response to superseded request")
                return
            self._response = response
            self._response_chunks = chunks
            self._cursor = 0
            self._state = SessionState.READY

        _LOGGER.info("Response ready: %d bytes in %d chunks", len(response), len(chunks))

    def _reset_locked(self) -> None:
        self._generation += 1
        self._state = SessionState.IDLE
        self._assembler = None
        self._response = None
        self._response_chunks = []
        self._cursor = 0
