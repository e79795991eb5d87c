import uuid
from collections.abc import AsyncIterator, Awaitable, Callable

from fastapi import WebSocket, WebSocketDisconnect

from triage_intake.core import CallSessionEvent
from triage_intake.core.logging_utils import clear_log_context, log_event

_KEEPALIVE_MESSAGES = frozenset({"PING", "PONG"})


def _is_websocket_closed_error(err: BaseException) -> bool:
    message = str(err)
    known_markers = (
        "Unexpected ASGI message 'websocket.send'",
        "disconnect message has been received",
        "WebSocket is not connected",
    )
    return any(marker in message for marker in known_markers)


def _log_disconnect(component: str, source: str, reason: str, **details) -> None:
    log_event(
        component=component,
        event="ws_disconnected",
        details={"source": source, "reason": reason, **details},
    )


async def websocket_message_stream(
    websocket: WebSocket,
    component: str,
) -> AsyncIterator[str]:
    """Yield transport JSON text messages from the websocket, skipping keepalives."""
    while True:
        try:
            message = await websocket.receive()
        except WebSocketDisconnect:
            _log_disconnect(component, "receive", "websocket_disconnect")
            return
        except RuntimeError as err:
            if _is_websocket_closed_error(err):
                _log_disconnect(component, "receive", "disconnect_message_received")
            else:
                log_event(
                    component=component,
                    event="ws_receive_failed",
                    level="ERROR",
                    details={"error": str(err)},
                )
            return

        if message.get("type") == "websocket.disconnect":
            _log_disconnect(component, "receive", "disconnect_message", code=message.get("code"))
            return

        text_data = message.get("text")
        if text_data is None:
            if message.get("bytes") is not None:
                log_event(
                    component=component,
                    event="ws_binary_ignored",
                    level="WARNING",
                    details={"bytes": len(message["bytes"])},
                )
        elif text_data not in _KEEPALIVE_MESSAGES:
            yield text_data


async def _forward_events(
    websocket: WebSocket,
    component: str,
    events: AsyncIterator[CallSessionEvent],
    send_event: Callable[[WebSocket, CallSessionEvent], Awaitable[None]],
) -> None:
    async for event in events:
        try:
            await send_event(websocket, event)
        except WebSocketDisconnect:
            _log_disconnect(component, "send", "websocket_disconnect")
            return
        except RuntimeError as err:
            if not _is_websocket_closed_error(err):
                raise
            _log_disconnect(component, "send", "send_on_closed_socket", error=str(err))
            return


async def run_websocket_session(
    *,
    websocket: WebSocket,
    component: str,
    connection_prefix: str,
    pipeline_factory: Callable[[AsyncIterator[str]], AsyncIterator[CallSessionEvent]],
    send_event: Callable[[WebSocket, CallSessionEvent], Awaitable[None]],
) -> None:
    """Run one websocket connection with shared lifecycle and cleanup."""
    await websocket.accept()
    connection_id = f"{connection_prefix}-{uuid.uuid4().hex[:12]}"
    log_event(component=component, event="ws_connected", details={"connection_id": connection_id})

    output_stream = pipeline_factory(websocket_message_stream(websocket, component))
    try:
        await _forward_events(websocket, component, output_stream, send_event)
    except Exception as err:
        log_event(
            component=component,
            event="ws_pipeline_failed",
            level="ERROR",
            details={"error": str(err), "connection_id": connection_id},
        )
    finally:
        if hasattr(output_stream, "aclose"):
            # Lets the pipeline finalize an active call before the socket goes away.
            await output_stream.aclose()
        log_event(component=component, event="ws_session_closed", details={"connection_id": connection_id})
        try:
            await websocket.close()
        except (RuntimeError, WebSocketDisconnect):
            # Already closed by the peer.
            pass
        clear_log_context()
