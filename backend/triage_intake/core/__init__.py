"""Core abstractions and types for the triage intake service."""
from .events import (
    TransportEvent,
    CallStartEvent,
    CallEndEvent,
    SpeechStartEvent,
    SpeechEndEvent,
    TranscriptTurnEvent,
    MuteEvent,
    TransportErrorEvent,
    CallSessionEvent,
    CallStatusEvent,
    TurnAppendedEvent,
    InterimTranscriptEvent,
    SpeakingEvent,
    MuteStateEvent,
    CallRecordEvent,
    PersistenceEvent,
    ErrorEvent,
    normalize_role,
    parse_transport_message,
)
from .errors import (
    TriageIntakeError,
    CallLifecycleError,
    PersistenceError,
    TranscriptRequiredError,
    TransportMessageError,
)
from .types import Role, PendingField, TransportMessage
from .schemas import (
    PatientInfoModel,
    TranscriptSaveRequest,
    ExtractRequest,
    SummaryPdfRequest,
    TranscriptSaveResponse,
    ExtractResponse,
    HealthResponse,
)

__all__ = [
    # Transport events
    "TransportEvent",
    "CallStartEvent",
    "CallEndEvent",
    "SpeechStartEvent",
    "SpeechEndEvent",
    "TranscriptTurnEvent",
    "MuteEvent",
    "TransportErrorEvent",
    "normalize_role",
    "parse_transport_message",
    # Session events
    "CallSessionEvent",
    "CallStatusEvent",
    "TurnAppendedEvent",
    "InterimTranscriptEvent",
    "SpeakingEvent",
    "MuteStateEvent",
    "CallRecordEvent",
    "PersistenceEvent",
    "ErrorEvent",
    # Errors
    "TriageIntakeError",
    "CallLifecycleError",
    "PersistenceError",
    "TranscriptRequiredError",
    "TransportMessageError",
    # Types
    "Role",
    "PendingField",
    "TransportMessage",
    # Schemas
    "PatientInfoModel",
    "TranscriptSaveRequest",
    "ExtractRequest",
    "SummaryPdfRequest",
    "TranscriptSaveResponse",
    "ExtractResponse",
    "HealthResponse",
]
