from dataclasses import dataclass
from typing import Any, Literal, Mapping

from .errors import TransportMessageError
from .types import Role

_PATIENT_ROLE_ALIASES = frozenset({"user", "patient", "customer"})


def normalize_role(raw_role: Any) -> Role:
    """Map a transport speaker label onto the two transcript roles."""
    if isinstance(raw_role, str) and raw_role.strip().lower() in _PATIENT_ROLE_ALIASES:
        return "patient"
    return "assistant"


# ============= Transport (input) events =============

@dataclass
class TransportEvent:
    """Base class for events emitted by the voice-transport collaborator."""
    pass


@dataclass
class CallStartEvent(TransportEvent):
    """The transport connected the call."""
    pass


@dataclass
class CallEndEvent(TransportEvent):
    """The transport hung up."""
    pass


@dataclass
class SpeechStartEvent(TransportEvent):
    """Assistant started speaking."""
    pass


@dataclass
class SpeechEndEvent(TransportEvent):
    """Assistant stopped speaking."""
    pass


@dataclass
class TranscriptTurnEvent(TransportEvent):
    """One transcription of an utterance, interim or final."""
    role: Role
    content: str
    is_final: bool = False


@dataclass
class MuteEvent(TransportEvent):
    """Microphone mute requested by the caller."""
    muted: bool


@dataclass
class TransportErrorEvent(TransportEvent):
    """Error reported by the transport itself."""
    message: str


_SIMPLE_EVENTS: dict[str, type[TransportEvent]] = {
    "call-start": CallStartEvent,
    "call-end": CallEndEvent,
    "speech-start": SpeechStartEvent,
    "speech-end": SpeechEndEvent,
}


def parse_transport_message(message: Mapping[str, Any]) -> TransportEvent:
    """
    Convert one decoded transport message into a TransportEvent.

    Transcript messages carry ``role``, ``transcript`` and ``transcriptType``
    (``final`` or anything else for interim results).

    :raises TransportMessageError: if the message type is unknown or malformed
    """
    if not isinstance(message, Mapping):
        raise TransportMessageError("transport message must be a JSON object")

    message_type = message.get("type")
    if message_type in _SIMPLE_EVENTS:
        return _SIMPLE_EVENTS[message_type]()

    if message_type == "transcript":
        content = message.get("transcript")
        if not isinstance(content, str):
            raise TransportMessageError("transcript message requires a 'transcript' string")
        return TranscriptTurnEvent(
            role=normalize_role(message.get("role")),
            content=content,
            is_final=message.get("transcriptType") == "final",
        )

    if message_type == "mute":
        muted = message.get("muted")
        if not isinstance(muted, bool):
            raise TransportMessageError("mute message requires a boolean 'muted'")
        return MuteEvent(muted=muted)

    if message_type == "error":
        return TransportErrorEvent(message=str(message.get("message") or "Unknown transport error"))

    raise TransportMessageError(f"Unsupported transport message type: {message_type!r}")


# ============= Call session (output) events =============

@dataclass
class CallSessionEvent:
    """Base class for all events emitted by the call session pipeline."""
    pass


@dataclass
class CallStatusEvent(CallSessionEvent):
    """Lifecycle transition of the current call."""
    status: Literal["active", "ended"]
    duration_seconds: int = 0


@dataclass
class TurnAppendedEvent(CallSessionEvent):
    """A final turn was appended to the transcript."""
    role: Role
    content: str
    turn_index: int


@dataclass
class InterimTranscriptEvent(CallSessionEvent):
    """Provisional transcription, shown live but never persisted."""
    role: Role
    content: str


@dataclass
class SpeakingEvent(CallSessionEvent):
    """Assistant speaking indicator changed."""
    is_speaking: bool


@dataclass
class MuteStateEvent(CallSessionEvent):
    """Mute flag changed."""
    muted: bool


@dataclass
class CallRecordEvent(CallSessionEvent):
    """Finalized record of an ended call, in persistence payload shape."""
    data: dict[str, Any]


@dataclass
class PersistenceEvent(CallSessionEvent):
    """Outcome of handing the finalized record to the transcript store."""

    success: bool
    record_id: str | None = None
    error: dict[str, Any] | None = None


@dataclass
class ErrorEvent(CallSessionEvent):
    """Recoverable error surfaced to the websocket client."""
    error: dict[str, Any]
