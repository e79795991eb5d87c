"""JSON file transcript store: one document per call under a dated directory."""
from __future__ import annotations

import asyncio
import json
import os
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Mapping

from ..core.errors import PersistenceError
from .base import BaseTranscriptStore, build_transcript_document


class JsonFileTranscriptStore(BaseTranscriptStore):
    """Writes ``<base_dir>/<YYYY-MM-DD>/<id>.json`` documents."""

    def __init__(self, base_dir: str | Path) -> None:
        self._base_dir = Path(base_dir)

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def _write_document(self, record_id: str, document: dict[str, Any]) -> Path:
        date_dir = self._base_dir / datetime.now().strftime("%Y-%m-%d")
        date_dir.mkdir(parents=True, exist_ok=True)
        path = date_dir / f"{record_id}.json"
        # Write then rename so readers never see a partial document.
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(json.dumps(document, ensure_ascii=False, indent=2), encoding="utf-8")
        os.replace(tmp_path, path)
        return path

    async def save(self, payload: Mapping[str, Any]) -> str:
        document = build_transcript_document(payload)
        record_id = uuid.uuid4().hex
        document["id"] = record_id
        try:
            await asyncio.to_thread(self._write_document, record_id, document)
        except OSError as err:
            raise PersistenceError(f"Failed to write transcript document: {err}") from err
        return record_id

    def _check_writable(self) -> None:
        self._base_dir.mkdir(parents=True, exist_ok=True)
        if not os.access(self._base_dir, os.W_OK):
            raise PersistenceError(f"Transcript store directory is not writable: {self._base_dir}")

    async def ping(self) -> None:
        try:
            await asyncio.to_thread(self._check_writable)
        except OSError as err:
            raise PersistenceError(f"Transcript store directory unavailable: {err}") from err

    def load(self, record_id: str) -> dict[str, Any] | None:
        for path in sorted(self._base_dir.glob(f"*/{record_id}.json")):
            return json.loads(path.read_text(encoding="utf-8"))
        return None
