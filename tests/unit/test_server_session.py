"""Test the server side transfer session state machine."""

from __future__ import annotations

import logging
import threading

import pytest

from bufferedspp.models.enums import SessionState
from bufferedspp.protocol.attributes import CHUNK_SIZE, END_OF_DATA, HANDLER_FAILED, NO_MESSAGE
from bufferedspp.protocol.descriptors import build_length_descriptor, parse_length_descriptor
from bufferedspp.session import ServerSession


def _send(session: ServerSession, message: bytes, chunk_size: int = CHUNK_SIZE) -> None:
    session.on_request_length(build_length_descriptor(len(message)))
    for i in range(0, len(message), chunk_size):
        session.on_request_data(message[i:i + chunk_size])


def _response_length(session: ServerSession) -> int:
    return parse_length_descriptor(session.read_response_length())


class TestRequestAccumulation:
    """Test request reassembly."""

    def test_initial_state(self, echo_session):
        """Fresh session is idle with nothing to report."""
        assert echo_session.state == SessionState.IDLE
        assert _response_length(echo_session) == NO_MESSAGE
        assert echo_session.read_response_data() == END_OF_DATA

    def test_descriptor_starts_accumulating(self, echo_session):
        """Writing a length descriptor starts a request."""
        echo_session.on_request_length(build_length_descriptor(600))
        assert echo_session.state == SessionState.ACCUMULATING
        assert echo_session.expected_length == 600
        assert echo_session.bytes_received == 0

    def test_partial_request_does_not_invoke_handler(self, echo_session, echo_handler):
        """Handler runs only once every announced byte arrived."""
        echo_session.on_request_length(build_length_descriptor(600))
        echo_session.on_request_data(b"a" * CHUNK_SIZE)
        echo_session.on_request_data(b"b" * CHUNK_SIZE)
        assert echo_session.bytes_received == 2 * CHUNK_SIZE
        assert echo_handler.requests == []
        assert _response_length(echo_session) == NO_MESSAGE

    def test_complete_request_invokes_handler_once(self, echo_session, echo_handler):
        """Handler receives the full reassembled request exactly once."""
        message = bytes(range(256)) * 3
        _send(echo_session, message)
        assert echo_handler.requests == [message]
        assert echo_session.state == SessionState.READY

    def test_zero_length_request(self):
        """Empty request invokes the handler with an empty buffer."""
        requests = []
        session = ServerSession(lambda request: requests.append(request) or b"pong")
        session.on_request_length(build_length_descriptor(0))
        assert requests == [b""]
        assert session.state == SessionState.READY
        assert _response_length(session) == 4
        assert session.read_response_data() == b"pong"

    def test_chunk_without_descriptor_is_dropped(self, echo_session, echo_handler, caplog):
        """Chunk writes outside a request are logged and ignored."""
        with caplog.at_level(logging.WARNING):
            echo_session.on_request_data(b"stray")
        assert echo_session.state == SessionState.IDLE
        assert echo_handler.requests == []
        assert "no request in progress" in caplog.text
        assert "waiting for a request" in caplog.text

    def test_overrun_discards_request(self, echo_session, echo_handler, caplog):
        """Sending more bytes than announced resets the session."""
        echo_session.on_request_length(build_length_descriptor(3))
        with caplog.at_level(logging.WARNING):
            echo_session.on_request_data(b"abcd")
        assert echo_session.state == SessionState.IDLE
        assert echo_handler.requests == []
        assert "overruns" in caplog.text

    @pytest.mark.parametrize("descriptor", [b"\x01\x02", build_length_descriptor(-5)])
    def test_invalid_descriptor_resets(self, echo_session, descriptor):
        """Malformed or negative descriptors leave the session idle."""
        echo_session.on_request_length(build_length_descriptor(10))
        echo_session.on_request_length(descriptor)
        assert echo_session.state == SessionState.IDLE
        assert echo_session.expected_length is None


class TestResponseDraining:
    """Test serving the response in chunks."""

    def test_response_length_is_idempotent(self, echo_session):
        """Response length stays stable across repeated reads."""
        _send(echo_session, b"x" * 700)
        assert [_response_length(echo_session) for _ in range(3)] == [700, 700, 700]

    def test_pending_poll_is_idempotent(self, echo_session):
        """Before completion every poll returns the sentinel."""
        echo_session.on_request_length(build_length_descriptor(10))
        echo_session.on_request_data(b"abc")
        assert [_response_length(echo_session) for _ in range(3)] == [NO_MESSAGE] * 3

    def test_drains_chunks_in_order(self, echo_session):
        """Response-data reads walk the chunk queue."""
        message = b"a" * CHUNK_SIZE + b"b" * CHUNK_SIZE + b"c" * 10
        _send(echo_session, message)

        first = echo_session.read_response_data()
        assert first == b"a" * CHUNK_SIZE
        assert echo_session.state == SessionState.DRAINING
        assert echo_session.read_response_data() == b"b" * CHUNK_SIZE
        assert echo_session.read_response_data() == b"c" * 10
        assert echo_session.state == SessionState.IDLE

    def test_end_of_data_after_drain(self, echo_session):
        """Exhausted queue keeps returning the end marker."""
        _send(echo_session, b"x" * CHUNK_SIZE)
        assert echo_session.read_response_data() == b"x" * CHUNK_SIZE
        assert echo_session.read_response_data() == END_OF_DATA
        assert echo_session.read_response_data() == END_OF_DATA

    def test_length_survives_drain(self, echo_session):
        """Response length is still reported after draining, until a new request."""
        _send(echo_session, b"hello")
        echo_session.read_response_data()
        assert _response_length(echo_session) == 5

    def test_empty_response(self):
        """Empty response announces zero bytes and has no chunks."""
        session = ServerSession(lambda request: b"")
        _send(session, b"ping")
        assert _response_length(session) == 0
        assert session.read_response_data() == END_OF_DATA

    def test_custom_chunk_size(self):
        """Response chunks follow the session chunk size."""
        session = ServerSession(lambda request: b"abcdefgh", chunk_size=3)
        _send(session, b"go", chunk_size=3)
        assert [session.read_response_data() for _ in range(4)] == [b"abc", b"def", b"gh", END_OF_DATA]

    def test_concurrent_reads_serve_each_chunk_once(self):
        """Reads racing on several threads never repeat or skip a chunk."""
        chunk_count = 500
        message = b"".join(i.to_bytes(4, "little") for i in range(chunk_count))
        session = ServerSession(lambda request: message, chunk_size=4)
        _send(session, b"go")

        thread_count = 8
        barrier = threading.Barrier(thread_count)
        served: list[list[int]] = [[] for _ in range(thread_count)]

        def drain(index: int) -> None:
            barrier.wait()
            while (chunk := session.read_response_data()) != END_OF_DATA:
                served[index].append(int.from_bytes(chunk, "little"))

        threads = [threading.Thread(target=drain, args=(i,)) for i in range(thread_count)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=5)

        assert not any(thread.is_alive() for thread in threads)
        # Each chunk went to exactly one reader
        assert sorted(i for indices in served for i in indices) == list(range(chunk_count))
        # and every reader saw its chunks in queue order
        for indices in served:
            assert indices == sorted(indices)
        assert session.state == SessionState.IDLE


class TestSessionReset:
    """Test that a new descriptor supersedes the previous exchange."""

    def test_new_descriptor_discards_unread_response(self, echo_session):
        """Unread response is dropped when a new request starts."""
        _send(echo_session, b"first request")
        assert _response_length(echo_session) == 13

        echo_session.on_request_length(build_length_descriptor(6))
        assert _response_length(echo_session) == NO_MESSAGE
        assert echo_session.read_response_data() == END_OF_DATA

        echo_session.on_request_data(b"second")
        assert _response_length(echo_session) == 6
        assert echo_session.read_response_data() == b"second"

    def test_new_descriptor_discards_partial_request(self, echo_session, echo_handler):
        """Partial accumulation is thrown away on a new descriptor."""
        echo_session.on_request_length(build_length_descriptor(10))
        echo_session.on_request_data(b"stale")
        _send(echo_session, b"fresh")
        assert echo_handler.requests == [b"fresh"]

    def test_descriptor_during_handler_drops_stale_response(self):
        """A request superseded while its handler runs never publishes a response."""
        session: ServerSession

        def handler(request: bytes) -> bytes:
            if request == b"old":
                session.on_request_length(build_length_descriptor(3))
            return request.upper()

        session = ServerSession(handler)
        _send(session, b"old")
        assert session.state == SessionState.ACCUMULATING
        assert _response_length(session) == NO_MESSAGE

        session.on_request_data(b"new")
        assert session.read_response_data() == b"NEW"

    def test_reset(self, echo_session):
        """reset() drops everything."""
        _send(echo_session, b"data")
        echo_session.reset()
        assert echo_session.state == SessionState.IDLE
        assert echo_session.response is None
        assert _response_length(echo_session) == NO_MESSAGE


class TestHandlerFailure:
    """Test reporting of application handler faults."""

    def test_handler_exception_publishes_failure(self, caplog):
        """Handler exceptions surface as HANDLER_FAILED, not an endless sentinel."""
        def handler(request: bytes) -> bytes:
            raise RuntimeError("boom")

        session = ServerSession(handler)
        with caplog.at_level(logging.ERROR):
            _send(session, b"request")

        assert session.state == SessionState.FAILED
        assert _response_length(session) == HANDLER_FAILED
        assert session.read_response_data() == END_OF_DATA
        assert "Handler failed" in caplog.text

    def test_non_bytes_response_is_failure(self):
        """Handlers must return bytes."""
        session = ServerSession(lambda request: "text")  # type: ignore[arg-type, return-value]
        _send(session, b"request")
        assert _response_length(session) == HANDLER_FAILED

    def test_bytearray_response_accepted(self):
        """bytearray responses are converted."""
        session = ServerSession(lambda request: bytearray(b"ok"))
        _send(session, b"request")
        assert session.response == b"ok"

    def test_new_request_recovers_from_failure(self):
        """A failed session accepts the next request."""
        calls = []

        def handler(request: bytes) -> bytes:
            calls.append(request)
            if len(calls) == 1:
                raise ValueError("first call fails")
            return b"recovered"

        session = ServerSession(handler)
        _send(session, b"one")
        _send(session, b"two")
        assert _response_length(session) == len(b"recovered")

    def test_invalid_chunk_size(self):
        with pytest.raises(ValueError):
            ServerSession(lambda request: request, chunk_size=0)
