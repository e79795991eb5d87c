import asyncio
import json
from typing import AsyncIterator

import pytest

from triage_intake.core import (
    CallRecordEvent,
    CallStatusEvent,
    ErrorEvent,
    InterimTranscriptEvent,
    MuteStateEvent,
    PersistenceError,
    PersistenceEvent,
    SpeakingEvent,
    TurnAppendedEvent,
)
from triage_intake.core import logging_utils
from triage_intake.persistence import BaseTranscriptStore, InMemoryTranscriptStore
from triage_intake.pipelines import call_session_pipeline


class BrokenStore(BaseTranscriptStore):
    async def save(self, payload):
        raise PersistenceError("db down")

    async def ping(self):
        return None


async def _messages(*messages) -> AsyncIterator:
    for message in messages:
        yield message


async def _messages_then_hang(*messages) -> AsyncIterator:
    for message in messages:
        yield message
    # Transport stays connected until the consumer goes away.
    await asyncio.Event().wait()


async def _collect(*messages, store=None) -> list:
    events = []
    async for event in call_session_pipeline(
        _messages(*messages),
        store=store,
        tick_interval_s=3600.0,
    ):
        events.append(event)
    return events


def _final(role: str, text: str) -> dict:
    return {"type": "transcript", "role": role, "transcript": text, "transcriptType": "final"}


@pytest.mark.asyncio
async def test_pipeline_full_call_event_sequence():
    store = InMemoryTranscriptStore()

    events = await _collect(
        {"type": "call-start"},
        {"type": "speech-start"},
        {"type": "transcript", "role": "user", "transcript": "Na", "transcriptType": "partial"},
        _final("user", "Name: Maria"),
        {"type": "speech-end"},
        _final("assistant", "Summary: Patient reports mild fever."),
        {"type": "call-end"},
        store=store,
    )

    assert events[:6] == [
        CallStatusEvent(status="active", duration_seconds=0),
        SpeakingEvent(is_speaking=True),
        InterimTranscriptEvent(role="patient", content="Na"),
        TurnAppendedEvent(role="patient", content="Name: Maria", turn_index=1),
        SpeakingEvent(is_speaking=False),
        TurnAppendedEvent(role="assistant", content="Summary: Patient reports mild fever.", turn_index=2),
    ]
    assert events[6] == CallStatusEvent(status="ended", duration_seconds=0)
    assert isinstance(events[7], CallRecordEvent)
    assert events[7].data["summary"] == "Patient reports mild fever."
    assert events[7].data["patientInfo"]["name"] == "Maria"
    assert isinstance(events[8], PersistenceEvent)
    assert events[8].success is True
    assert store.get(events[8].record_id)["transcript"] == events[7].data["transcript"]
    assert len(events) == 9


@pytest.mark.asyncio
async def test_pipeline_accepts_json_text_messages():
    events = await _collect(
        json.dumps({"type": "call-start"}),
        json.dumps(_final("user", "Age: 40")),
        json.dumps({"type": "call-end"}),
    )

    record = next(event for event in events if isinstance(event, CallRecordEvent))
    assert record.data["patientInfo"]["age"] == "40"
    assert not any(isinstance(event, PersistenceEvent) for event in events)


@pytest.mark.asyncio
async def test_pipeline_reports_malformed_messages_and_continues():
    events = await _collect(
        "not json",
        {"type": "dial-tone"},
        {"type": "transcript", "role": "user"},
        {"type": "call-start"},
        {"type": "call-end"},
    )

    errors = [event for event in events if isinstance(event, ErrorEvent)]
    assert [error.error["code"] for error in errors] == ["TRANSPORT_MESSAGE_INVALID"] * 3
    assert CallStatusEvent(status="active", duration_seconds=0) in events
    assert any(isinstance(event, CallRecordEvent) for event in events)


@pytest.mark.asyncio
async def test_pipeline_reports_lifecycle_misuse():
    events = await _collect(
        {"type": "call-end"},
        {"type": "call-start"},
        {"type": "call-start"},
        {"type": "call-end"},
    )

    assert isinstance(events[0], ErrorEvent)
    assert events[0].error["code"] == "CALL_LIFECYCLE_INVALID"
    assert events[1] == CallStatusEvent(status="active", duration_seconds=0)
    assert isinstance(events[2], ErrorEvent)
    assert events[2].error["code"] == "CALL_LIFECYCLE_INVALID"
    assert events[3] == CallStatusEvent(status="ended", duration_seconds=0)


@pytest.mark.asyncio
async def test_pipeline_mute_and_transport_error():
    events = await _collect(
        {"type": "call-start"},
        {"type": "mute", "muted": True},
        {"type": "error", "message": "microphone unavailable"},
        {"type": "call-end"},
    )

    assert events[1] == MuteStateEvent(muted=True)
    assert events[2] == ErrorEvent(
        error={"code": "TRANSPORT_ERROR", "message": "microphone unavailable"}
    )


@pytest.mark.asyncio
async def test_pipeline_ends_active_call_when_stream_closes():
    store = InMemoryTranscriptStore()

    events = await _collect(
        {"type": "call-start"},
        _final("user", "Symptoms: chest pain"),
        store=store,
    )

    assert events[-3] == CallStatusEvent(status="ended", duration_seconds=0)
    assert isinstance(events[-2], CallRecordEvent)
    assert events[-1].success is True
    assert store.list_documents()[0]["patientInfo"]["symptoms"] == "chest pain"


@pytest.mark.asyncio
async def test_pipeline_surfaces_persistence_failure():
    events = await _collect(
        {"type": "call-start"},
        _final("user", "hello"),
        {"type": "call-end"},
        store=BrokenStore(),
    )

    persistence = events[-1]
    assert isinstance(persistence, PersistenceEvent)
    assert persistence.success is False
    assert persistence.error == {"code": "PERSISTENCE_FAILED", "message": "db down"}
    assert isinstance(events[-2], CallRecordEvent)


@pytest.mark.asyncio
async def test_pipeline_closed_mid_call_still_saves_record():
    store = InMemoryTranscriptStore()
    pipeline = call_session_pipeline(
        _messages_then_hang({"type": "call-start"}, _final("user", "Name: Lee"), {"type": "speech-start"}),
        store=store,
        tick_interval_s=3600.0,
    )

    assert await pipeline.__anext__() == CallStatusEvent(status="active", duration_seconds=0)
    assert await pipeline.__anext__() == TurnAppendedEvent(role="patient", content="Name: Lee", turn_index=1)
    await pipeline.aclose()

    # The save runs as a background task; give it a turn of the loop.
    for _ in range(5):
        if store.list_documents():
            break
        await asyncio.sleep(0)
    assert store.list_documents()[0]["patientInfo"]["name"] == "Lee"


class GatedStore(BaseTranscriptStore):
    """Holds every save until the test opens the gate."""

    def __init__(self) -> None:
        self.gate = asyncio.Event()
        self.saved: list[dict] = []

    async def save(self, payload):
        await self.gate.wait()
        self.saved.append(dict(payload))
        return f"doc-{len(self.saved)}"

    async def ping(self):
        return None


@pytest.mark.asyncio
async def test_pending_save_does_not_delay_next_call():
    store = GatedStore()
    pipeline = call_session_pipeline(
        _messages(
            {"type": "call-start"},
            _final("user", "Name: Ana"),
            {"type": "call-end"},
            {"type": "call-start"},
            _final("user", "Name: Bo"),
            {"type": "call-end"},
        ),
        store=store,
        tick_interval_s=3600.0,
    )

    before_saves = [await asyncio.wait_for(pipeline.__anext__(), timeout=1.0) for _ in range(8)]

    assert [type(event).__name__ for event in before_saves] == [
        "CallStatusEvent",
        "TurnAppendedEvent",
        "CallStatusEvent",
        "CallRecordEvent",
        "CallStatusEvent",
        "TurnAppendedEvent",
        "CallStatusEvent",
        "CallRecordEvent",
    ]
    assert before_saves[4] == CallStatusEvent(status="active", duration_seconds=0)
    assert store.saved == []

    store.gate.set()
    after_saves = [event async for event in pipeline]

    assert [(event.success, event.record_id) for event in after_saves] == [
        (True, "doc-1"),
        (True, "doc-2"),
    ]
    assert [doc["patientInfo"]["name"] for doc in store.saved] == ["Ana", "Bo"]


async def _metric_call_ids() -> set:
    # Let pending saves finish and run their done callbacks.
    for _ in range(10):
        await asyncio.sleep(0)
    return set(logging_utils._call_stage_metrics)


@pytest.mark.asyncio
async def test_call_metrics_released_when_closed_mid_call():
    before = set(logging_utils._call_stage_metrics)
    store = InMemoryTranscriptStore()
    pipeline = call_session_pipeline(
        _messages_then_hang({"type": "call-start"}, _final("user", "Name: Lee"), {"type": "speech-start"}),
        store=store,
        tick_interval_s=3600.0,
    )

    await pipeline.__anext__()
    await pipeline.__anext__()
    await pipeline.aclose()

    assert await _metric_call_ids() - before == set()
    assert len(store.list_documents()) == 1


@pytest.mark.asyncio
async def test_call_metrics_released_without_store():
    before = set(logging_utils._call_stage_metrics)

    await _collect({"type": "call-start"}, _final("user", "hi"), {"type": "call-end"})
    await _collect({"type": "call-start"}, _final("user", "hi again"))

    assert await _metric_call_ids() - before == set()


@pytest.mark.asyncio
async def test_call_metrics_released_after_failed_save():
    before = set(logging_utils._call_stage_metrics)

    events = await _collect(
        {"type": "call-start"},
        _final("user", "hello"),
        {"type": "call-end"},
        store=BrokenStore(),
    )

    assert events[-1].success is False
    assert await _metric_call_ids() - before == set()
