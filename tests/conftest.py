"""Shared fixtures for buffered SPP tests."""

from __future__ import annotations

import pytest

from bufferedspp.session import ServerSession


class RecordingHandler:
    """Application handler that records requests and returns a fixed transform."""

    def __init__(self, transform=None):
        self.requests: list[bytes] = []
        self._transform = transform or (lambda request: request)

    def __call__(self, request: bytes) -> bytes:
        self.requests.append(request)
        return self._transform(request)


@pytest.fixture
def echo_handler() -> RecordingHandler:
    """Handler that echoes every request."""
    return RecordingHandler()


@pytest.fixture
def echo_session(echo_handler: RecordingHandler) -> ServerSession:
    """Server session backed by the echo handler."""
    return ServerSession(echo_handler)
