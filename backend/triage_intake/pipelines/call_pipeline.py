"""Call session pipeline orchestration."""
import asyncio
import json
from dataclasses import dataclass, field
from functools import partial
from typing import AsyncIterator, Union

from ..config import get_call_settings
from ..core import (
    CallEndEvent,
    CallLifecycleError,
    CallRecordEvent,
    CallSessionEvent,
    CallStartEvent,
    CallStatusEvent,
    ErrorEvent,
    InterimTranscriptEvent,
    MuteEvent,
    MuteStateEvent,
    PersistenceEvent,
    SpeakingEvent,
    SpeechEndEvent,
    SpeechStartEvent,
    TranscriptTurnEvent,
    TransportErrorEvent,
    TransportEvent,
    TransportMessage,
    TransportMessageError,
    TurnAppendedEvent,
    parse_transport_message,
)
from ..core.error_mapping import (
    ERROR_CODE_TRANSPORT,
    build_error_payload,
    build_exception_payload,
)
from ..core.logging_utils import log_event, pop_call_metrics_summary
from ..persistence import BaseTranscriptStore
from ..session import CallState, SessionController

RawTransportMessage = Union[str, TransportMessage]


def _decode_message(raw: RawTransportMessage) -> TransportEvent:
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as err:
            raise TransportMessageError(f"Transport message is not valid JSON: {err}") from err
    return parse_transport_message(raw)


def _apply_event(controller: SessionController, event: TransportEvent) -> list[CallSessionEvent]:
    """Apply one non-terminal transport event and describe what changed."""
    if isinstance(event, CallStartEvent):
        session = controller.start_call()
        return [CallStatusEvent(status="active", duration_seconds=session.duration_seconds)]

    if isinstance(event, TranscriptTurnEvent):
        turn = controller.on_turn_received(event.role, event.content, event.is_final)
        session = controller.session
        if turn is not None:
            return [
                TurnAppendedEvent(
                    role=turn.role,
                    content=turn.content,
                    turn_index=len(session.transcript),
                )
            ]
        if session is not None and session.live_caption is not None:
            caption = session.live_caption
            return [InterimTranscriptEvent(role=caption.role, content=caption.content)]
        return []

    if isinstance(event, SpeechStartEvent):
        controller.on_speech_start()
    elif isinstance(event, SpeechEndEvent):
        controller.on_speech_end()
    if isinstance(event, (SpeechStartEvent, SpeechEndEvent)):
        session = controller.session
        return [SpeakingEvent(is_speaking=bool(session and session.is_speaking))]

    if isinstance(event, MuteEvent):
        return [MuteStateEvent(muted=controller.set_muted(event.muted))]

    if isinstance(event, TransportErrorEvent):
        log_event(
            component="call_pipeline",
            event="transport_error",
            level="ERROR",
            details={"error": event.message},
        )
        return [ErrorEvent(error=build_error_payload(ERROR_CODE_TRANSPORT, event.message))]

    return []


@dataclass
class CallPipelineTasks:
    queue: asyncio.Queue[CallSessionEvent] = field(default_factory=asyncio.Queue)
    done: asyncio.Event = field(default_factory=asyncio.Event)
    producer_task: asyncio.Task[None] | None = None
    persistence_tasks: set[asyncio.Task[str]] = field(default_factory=set)


def _release_call_metrics(call_id: str) -> None:
    metrics_summary = pop_call_metrics_summary(call_id)
    if metrics_summary["stages"]:
        log_event(
            component="call_pipeline",
            event="call_metrics_summary",
            call_id=call_id,
            details=metrics_summary,
        )


def _on_persistence_done(tasks: CallPipelineTasks, call_id: str, task: asyncio.Task[str]) -> None:
    tasks.persistence_tasks.discard(task)
    if not task.cancelled():
        err = task.exception()
        if err is None:
            tasks.queue.put_nowait(PersistenceEvent(success=True, record_id=task.result()))
        else:
            tasks.queue.put_nowait(PersistenceEvent(success=False, error=build_exception_payload(err)))
    _release_call_metrics(call_id)


def _finish_call(controller: SessionController, tasks: CallPipelineTasks) -> list[CallSessionEvent]:
    """End the active call and hand its record off without waiting for the store."""
    record = controller.end_call()
    persistence_task = controller.persistence_task
    if persistence_task is None:
        _release_call_metrics(record.call_id)
    else:
        tasks.persistence_tasks.add(persistence_task)
        # Metrics are released once the save has logged its latency.
        persistence_task.add_done_callback(partial(_on_persistence_done, tasks, record.call_id))
    return [
        CallStatusEvent(status="ended", duration_seconds=record.duration_seconds or 0),
        CallRecordEvent(data=record.to_payload()),
    ]


async def _produce_events(
    message_stream: AsyncIterator[RawTransportMessage],
    controller: SessionController,
    tasks: CallPipelineTasks,
) -> None:
    try:
        async for raw in message_stream:
            try:
                event = _decode_message(raw)
                if isinstance(event, CallEndEvent):
                    outputs = _finish_call(controller, tasks)
                else:
                    outputs = _apply_event(controller, event)
            except (TransportMessageError, CallLifecycleError) as err:
                log_event(
                    component="call_pipeline",
                    event="transport_message_rejected",
                    level="WARNING",
                    details={"error": str(err), "error_type": type(err).__name__},
                )
                outputs = [ErrorEvent(error=build_exception_payload(err))]
            for output in outputs:
                await tasks.queue.put(output)

        if controller.state is CallState.ACTIVE:
            log_event(component="call_pipeline", event="call_ended_on_stream_close")
            for output in _finish_call(controller, tasks):
                await tasks.queue.put(output)

        if tasks.persistence_tasks:
            # asyncio.wait leaves the saves running if this task is cancelled.
            await asyncio.wait(set(tasks.persistence_tasks))
    finally:
        tasks.done.set()


async def _cancel_task(task: asyncio.Task[None] | None) -> None:
    if task is None or task.done():
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass


async def call_session_pipeline(
    message_stream: AsyncIterator[RawTransportMessage],
    store: BaseTranscriptStore | None = None,
    tick_interval_s: float | None = None,
) -> AsyncIterator[CallSessionEvent]:
    """
    Full call session pipeline:
    Transport messages -> Session Controller -> Extraction -> Persistence -> Output events

    Messages are applied strictly in arrival order. Malformed messages and
    lifecycle misuse are reported as ErrorEvents without ending the stream.
    Saving an ended call never delays the next message: its PersistenceEvent
    is emitted whenever the store answers. If the stream closes while a call
    is active, the call is ended and its record persisted.

    :param message_stream: Iterator yielding JSON text or decoded transport messages
    :param store: Transcript store receiving finalized records
    :param tick_interval_s: Duration timer period, defaults to CALL_TICK_INTERVAL_S
    :yields: CallSessionEvent instances
    """
    if tick_interval_s is None:
        tick_interval_s = get_call_settings().tick_interval_s
    controller = SessionController(store, tick_interval_s=tick_interval_s)
    tasks = CallPipelineTasks()
    tasks.producer_task = asyncio.create_task(_produce_events(message_stream, controller, tasks))

    try:
        while True:
            if tasks.done.is_set() and tasks.queue.empty():
                break

            try:
                event = await asyncio.wait_for(tasks.queue.get(), timeout=0.1)
            except asyncio.TimeoutError:
                continue
            yield event

        # Surfaces a failure of the message reader to the websocket runner.
        await tasks.producer_task
    finally:
        await _cancel_task(tasks.producer_task)
        if controller.state is CallState.ACTIVE:
            # Consumer went away mid-call: still seal and hand off the record.
            log_event(component="call_pipeline", event="call_ended_on_consumer_close")
            _finish_call(controller, tasks)
