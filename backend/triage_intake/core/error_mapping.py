"""Shared error code mapping for call session and persistence failures."""
from typing import Any

from .errors import (
    CallLifecycleError,
    PersistenceError,
    TranscriptRequiredError,
    TransportMessageError,
)

ERROR_CODE_TRANSCRIPT_REQUIRED = "TRANSCRIPT_REQUIRED"
ERROR_CODE_PERSISTENCE = "PERSISTENCE_FAILED"
ERROR_CODE_LIFECYCLE = "CALL_LIFECYCLE_INVALID"
ERROR_CODE_TRANSPORT_MESSAGE = "TRANSPORT_MESSAGE_INVALID"
ERROR_CODE_TRANSPORT = "TRANSPORT_ERROR"
ERROR_CODE_GENERIC = "INTERNAL_ERROR"


def classify_error_code(err: BaseException) -> str:
    """Classify an exception into a stable error code.

    TranscriptRequiredError is checked before PersistenceError since it is a subclass.
    """
    if isinstance(err, TranscriptRequiredError):
        return ERROR_CODE_TRANSCRIPT_REQUIRED
    if isinstance(err, PersistenceError):
        return ERROR_CODE_PERSISTENCE
    if isinstance(err, CallLifecycleError):
        return ERROR_CODE_LIFECYCLE
    if isinstance(err, TransportMessageError):
        return ERROR_CODE_TRANSPORT_MESSAGE
    return ERROR_CODE_GENERIC


def build_error_payload(
    code: str,
    message: str,
    details: str | None = None,
) -> dict[str, Any]:
    """Build the standardized error payload, omitting empty details."""
    payload: dict[str, Any] = {"code": code, "message": message}
    if details:
        payload["details"] = details
    return payload


def build_exception_payload(err: BaseException) -> dict[str, Any]:
    """Build an error payload carrying the underlying exception message."""
    message = str(err) or type(err).__name__
    return build_error_payload(classify_error_code(err), message)
