"""In-process transcript store, used for local runs and tests."""
from __future__ import annotations

import uuid
from threading import RLock
from typing import Any, Mapping

from .base import BaseTranscriptStore, build_transcript_document


class InMemoryTranscriptStore(BaseTranscriptStore):
    def __init__(self) -> None:
        self._lock = RLock()
        self._documents: dict[str, dict[str, Any]] = {}

    async def save(self, payload: Mapping[str, Any]) -> str:
        document = build_transcript_document(payload)
        record_id = uuid.uuid4().hex
        with self._lock:
            self._documents[record_id] = document
        return record_id

    async def ping(self) -> None:
        return None

    def get(self, record_id: str) -> dict[str, Any] | None:
        with self._lock:
            document = self._documents.get(record_id)
            return dict(document) if document is not None else None

    def list_documents(self) -> list[dict[str, Any]]:
        with self._lock:
            return [dict(document) for document in self._documents.values()]
