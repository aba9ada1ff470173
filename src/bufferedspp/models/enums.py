from __future__ import annotations

from enum import IntEnum
from typing import Final


class SessionState(IntEnum):
    """Server transfer session states.

    IDLE -> ACCUMULATING -> COMPLETE -> HANDLING -> READY -> DRAINING -> IDLE
    """
    IDLE = 0
    ACCUMULATING = 1
    COMPLETE = 2
    HANDLING = 3
    READY = 4
    DRAINING = 5
    FAILED = 6


# States in which the response-length slot announces a real response
RESPONSE_STATES: Final[frozenset[SessionState]] = frozenset({
    SessionState.READY,
    SessionState.DRAINING,
})

_STATE_DESCRIPTIONS: Final[dict[SessionState, str]] = {
    SessionState.IDLE: "waiting for a request",
    SessionState.ACCUMULATING: "receiving request chunks",
    SessionState.COMPLETE: "request reassembled",
    SessionState.HANDLING: "running application handler",
    SessionState.READY: "response ready",
    SessionState.DRAINING: "sending response chunks",
    SessionState.FAILED: "application handler failed",
}


def describe_state(state: SessionState | int) -> str:
    """Get a human readable description for a session state.

    Args:
        state: Session state value

    Returns:
        Description string, or "unknown (N)" for unrecognized values
    """
    try:
        return _STATE_DESCRIPTIONS[SessionState(state)]
    except ValueError:
        return f"unknown ({state})"
