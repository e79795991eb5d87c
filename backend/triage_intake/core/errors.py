"""Exception hierarchy shared by the session controller and its adapters."""


class TriageIntakeError(RuntimeError):
    """Base runtime error for the triage intake core."""


class CallLifecycleError(TriageIntakeError):
    """Raised when a lifecycle transition is requested from the wrong state."""


class PersistenceError(TriageIntakeError):
    """Raised when the transcript store rejects or fails to save a record."""


class TranscriptRequiredError(PersistenceError, ValueError):
    """Raised when a record reaches persistence without transcript text."""

    def __init__(self, message: str = "transcript is required") -> None:
        super().__init__(message)


class TransportMessageError(ValueError):
    """Raised when a voice-transport message cannot be interpreted."""
