"""Base class and document shaping for transcript stores."""
from __future__ import annotations

import abc
from datetime import datetime, timezone
from numbers import Number
from typing import Any, Mapping

from ..core.errors import TranscriptRequiredError


def build_transcript_document(payload: Mapping[str, Any]) -> dict[str, Any]:
    """
    Normalize a persistence payload into the stored document shape.

    :param payload: ``{summary, patientInfo, transcript, callDuration}``
    :raises TranscriptRequiredError: if the transcript is missing or empty
    """
    transcript = payload.get("transcript")
    if not transcript:
        raise TranscriptRequiredError()

    call_duration = payload.get("callDuration")
    if isinstance(call_duration, bool) or not isinstance(call_duration, Number):
        call_duration = None

    created_at = datetime.now(timezone.utc)
    return {
        "summary": payload.get("summary") or "",
        "patientInfo": dict(payload.get("patientInfo") or {}),
        "transcript": transcript,
        "callDuration": call_duration,
        "createdAt": created_at.isoformat(),
        "timestamp": created_at.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
    }


class BaseTranscriptStore(abc.ABC):
    """Abstract base class for finalized call record persistence."""

    @abc.abstractmethod
    async def save(self, payload: Mapping[str, Any]) -> str:
        """
        Persist one finalized call record.

        :param payload: Record in persistence payload shape
        :return: Identifier of the stored document
        :raises PersistenceError: if the record could not be stored
        """
        pass

    @abc.abstractmethod
    async def ping(self) -> None:
        """Check that the store is reachable; raise PersistenceError otherwise."""
        pass
