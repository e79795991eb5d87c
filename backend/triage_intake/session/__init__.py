"""Call session lifecycle and transcript buffering."""
from .transcript import Transcript, Turn
from .controller import (
    CallRecord,
    CallSession,
    CallState,
    LiveCaption,
    SessionController,
    format_duration,
)

__all__ = [
    "Transcript",
    "Turn",
    "CallRecord",
    "CallSession",
    "CallState",
    "LiveCaption",
    "SessionController",
    "format_duration",
]
