"""Data models for buffered SPP sessions."""

from .enums import RESPONSE_STATES, SessionState, describe_state
from .layout import DEFAULT_LAYOUT, ServiceLayout

__all__ = [
    "DEFAULT_LAYOUT",
    "RESPONSE_STATES",
    "ServiceLayout",
    "SessionState",
    "describe_state",
]
