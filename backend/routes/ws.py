from fastapi import APIRouter, Depends, WebSocket

from routes.http import get_app_services
from triage_intake.config import get_call_settings
from triage_intake.core import (
    CallRecordEvent,
    CallSessionEvent,
    CallStatusEvent,
    ErrorEvent,
    InterimTranscriptEvent,
    MuteStateEvent,
    PersistenceEvent,
    SpeakingEvent,
    TurnAppendedEvent,
)
from triage_intake.pipelines import call_session_pipeline

from .ws_shared import run_websocket_session

router = APIRouter()


async def _send_call_event(websocket: WebSocket, event: CallSessionEvent) -> None:
    if isinstance(event, CallStatusEvent):
        payload = {
            "type": "call_status",
            "status": event.status,
            "duration_seconds": event.duration_seconds,
        }
        await websocket.send_json(payload)
    elif isinstance(event, TurnAppendedEvent):
        payload = {
            "type": "turn",
            "role": event.role,
            "content": event.content,
            "turn_index": event.turn_index,
        }
        await websocket.send_json(payload)
    elif isinstance(event, InterimTranscriptEvent):
        payload = {"type": "interim", "role": event.role, "content": event.content}
        await websocket.send_json(payload)
    elif isinstance(event, SpeakingEvent):
        await websocket.send_json({"type": "speaking", "is_speaking": event.is_speaking})
    elif isinstance(event, MuteStateEvent):
        await websocket.send_json({"type": "mute", "muted": event.muted})
    elif isinstance(event, CallRecordEvent):
        await websocket.send_json({"type": "call_record", "data": event.data})
    elif isinstance(event, PersistenceEvent):
        payload = {"type": "persistence", "success": event.success}
        if event.success:
            payload["id"] = event.record_id
        else:
            payload["error"] = event.error
        await websocket.send_json(payload)
    elif isinstance(event, ErrorEvent):
        await websocket.send_json({"type": "error", "error": event.error})


@router.websocket("/ws/call")
async def websocket_endpoint(
    websocket: WebSocket,
    services: dict = Depends(get_app_services),
) -> None:
    store = services["store"]
    tick_interval_s = get_call_settings().tick_interval_s

    def pipeline_factory(message_stream):
        return call_session_pipeline(message_stream, store=store, tick_interval_s=tick_interval_s)

    await run_websocket_session(
        websocket=websocket,
        component="call_websocket",
        connection_prefix="ws-call",
        pipeline_factory=pipeline_factory,
        send_event=_send_call_event,
    )
