"""Transcript store that forwards records to a remote /api/transcripts endpoint."""
from __future__ import annotations

from typing import Any, Mapping

import httpx

from ..core.errors import PersistenceError, TranscriptRequiredError
from .base import BaseTranscriptStore


def _response_error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = {}
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"Request failed with {response.status_code}"


class HttpTranscriptStore(BaseTranscriptStore):
    def __init__(
        self,
        base_url: str,
        timeout_s: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = httpx.Timeout(timeout_s, connect=min(timeout_s, 5.0))
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
        )

    async def save(self, payload: Mapping[str, Any]) -> str:
        if not payload.get("transcript"):
            raise TranscriptRequiredError()
        try:
            async with self._client() as client:
                response = await client.post("/api/transcripts", json=dict(payload))
        except httpx.HTTPError as err:
            raise PersistenceError(f"Transcript API unreachable: {err}") from err

        if response.is_error:
            raise PersistenceError(_response_error_message(response))
        body = response.json()
        if not body.get("success", False):
            raise PersistenceError(str(body.get("error") or "Transcript API rejected the record"))
        return str(body.get("id", ""))

    async def ping(self) -> None:
        try:
            async with self._client() as client:
                response = await client.get("/api/health")
        except httpx.HTTPError as err:
            raise PersistenceError(f"Transcript API unreachable: {err}") from err
        if response.is_error:
            raise PersistenceError(_response_error_message(response))
