"""Call session lifecycle controller: transcript buffering, timing and finalization."""
from __future__ import annotations

import asyncio
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from ..core.errors import CallLifecycleError, PersistenceError
from ..core.events import normalize_role
from ..core.logging_utils import (
    log_event,
    log_latency_event,
    set_call_id,
    set_turn_index,
    text_fingerprint,
)
from ..extraction import PatientInfo, extract_patient_info, extract_summary
from ..persistence import BaseTranscriptStore
from .transcript import Transcript, Turn

PersistenceFailureCallback = Callable[[PersistenceError, "CallRecord"], None]
MuteCallback = Callable[[bool], None]


class CallState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"
    ENDED = "ended"


@dataclass(frozen=True)
class LiveCaption:
    """Interim transcription shown while the speaker is still talking."""

    role: str
    content: str


@dataclass(frozen=True)
class CallRecord:
    """Finalized output of one call."""

    call_id: str
    summary: str
    patient_info: PatientInfo
    transcript: str
    duration_seconds: int | None

    def to_payload(self) -> dict[str, Any]:
        """Persistence payload in the camelCase shape expected by the store."""
        return {
            "summary": self.summary,
            "patientInfo": self.patient_info.to_dict(),
            "transcript": self.transcript,
            "callDuration": self.duration_seconds,
        }


@dataclass
class CallSession:
    call_id: str
    state: CallState = CallState.ACTIVE
    duration_seconds: int = 0
    muted: bool = False
    is_speaking: bool = False
    live_caption: LiveCaption | None = None
    transcript: Transcript = field(default_factory=Transcript)
    timer_task: asyncio.Task[None] | None = None
    record: CallRecord | None = None


def _extract_record_fields(text: str) -> tuple[str, PatientInfo]:
    started_at = time.perf_counter()
    try:
        summary = extract_summary(text)
        patient_info = extract_patient_info(text)
        status = "completed"
    except Exception as err:
        # Finalization must complete even if extraction breaks.
        log_event(
            component="session_controller",
            event="extraction_failed",
            level="ERROR",
            details={"error": str(err), "error_type": type(err).__name__},
        )
        summary, patient_info = "", PatientInfo()
        status = "failed"
    log_latency_event(
        component="session_controller",
        event="extraction_latency",
        stage="extraction",
        duration_s=time.perf_counter() - started_at,
        status=status,
        details=text_fingerprint(text),
    )
    return summary, patient_info


def _mark_exception_retrieved(task: asyncio.Task[Any]) -> None:
    # Failures are already logged and reported by _persist.
    if not task.cancelled():
        task.exception()


class SessionController:
    """
    Drives one call at a time through Idle -> Active -> Ended.

    Must be used from inside a running event loop: the duration timer and the
    persistence hand-off are asyncio tasks. All mutating methods are
    synchronous, so events handled on one loop are applied in arrival order.
    """

    def __init__(
        self,
        store: BaseTranscriptStore | None = None,
        *,
        tick_interval_s: float = 1.0,
        on_mute_changed: MuteCallback | None = None,
        on_persistence_failed: PersistenceFailureCallback | None = None,
    ) -> None:
        if tick_interval_s <= 0:
            raise ValueError("tick_interval_s must be positive")
        self._store = store
        self._tick_interval_s = tick_interval_s
        self._on_mute_changed = on_mute_changed
        self._on_persistence_failed = on_persistence_failed
        self._session: CallSession | None = None
        self._persistence_task: asyncio.Task[str] | None = None
        self.last_persistence_error: PersistenceError | None = None

    @property
    def session(self) -> CallSession | None:
        return self._session

    @property
    def state(self) -> CallState:
        return self._session.state if self._session is not None else CallState.IDLE

    @property
    def persistence_task(self) -> asyncio.Task[str] | None:
        return self._persistence_task

    def _require_active(self, operation: str) -> CallSession:
        session = self._session
        if session is None or session.state is not CallState.ACTIVE:
            raise CallLifecycleError(f"Cannot {operation}: call is {self.state.value}.")
        return session

    # ============= Idle/Ended -> Active =============

    def start_call(self, call_id: str | None = None) -> CallSession:
        """Open a new session, discarding the previous one, and start the timer."""
        if self.state is CallState.ACTIVE:
            raise CallLifecycleError("Cannot start_call: a call is already active.")

        session = CallSession(call_id=call_id or uuid.uuid4().hex[:12])
        self._session = session
        self._persistence_task = None
        self.last_persistence_error = None
        set_call_id(session.call_id)
        set_turn_index(None)
        session.timer_task = asyncio.get_running_loop().create_task(
            self._run_timer(session),
            name=f"call-timer-{session.call_id}",
        )
        log_event(
            component="session_controller",
            event="call_started",
            details={"tick_interval_s": self._tick_interval_s},
        )
        return session

    async def _run_timer(self, session: CallSession) -> None:
        while True:
            await asyncio.sleep(self._tick_interval_s)
            if session is not self._session or session.state is not CallState.ACTIVE:
                return
            self.tick()

    def tick(self) -> None:
        """Advance the active call by one second; no effect unless Active."""
        session = self._session
        if session is not None and session.state is CallState.ACTIVE:
            session.duration_seconds += 1

    # ============= Active -> Active =============

    def on_turn_received(self, role: str, content: str, is_final: bool) -> Turn | None:
        """
        Record one transcription from the transport.

        Final turns are appended to the transcript; interim ones only replace
        the live caption. Turns arriving outside an active call are dropped.
        """
        session = self._session
        if session is None or session.state is not CallState.ACTIVE:
            log_event(
                component="session_controller",
                event="turn_ignored",
                level="WARNING",
                details={"reason": f"call_{self.state.value}", "is_final": is_final},
            )
            return None

        normalized_role = normalize_role(role)
        if not is_final:
            session.live_caption = LiveCaption(role=normalized_role, content=content)
            return None

        session.live_caption = None
        turn = session.transcript.append(normalized_role, content)
        set_turn_index(len(session.transcript))
        log_event(
            component="session_controller",
            event="turn_appended",
            details={"role": normalized_role, **text_fingerprint(content)},
        )
        return turn

    def on_speech_start(self) -> None:
        if self._session is not None and self._session.state is CallState.ACTIVE:
            self._session.is_speaking = True

    def on_speech_end(self) -> None:
        if self._session is not None:
            self._session.is_speaking = False

    def set_muted(self, muted: bool) -> bool:
        """Update the mute flag and forward it to the transport."""
        session = self._require_active("set_muted")
        session.muted = muted
        if self._on_mute_changed is not None:
            self._on_mute_changed(muted)
        log_event(component="session_controller", event="mute_changed", details={"muted": muted})
        return muted

    def toggle_mute(self) -> bool:
        session = self._require_active("toggle_mute")
        return self.set_muted(not session.muted)

    # ============= Active -> Ended =============

    def end_call(self) -> CallRecord:
        """
        Seal the call and build its finalized record.

        Timer cancellation, duration freeze and transcript sealing happen in
        one synchronous step before extraction reads the transcript. When a
        store is configured the record is persisted in the background; see
        wait_persisted().
        """
        session = self._require_active("end_call")
        set_call_id(session.call_id)

        timer_task, session.timer_task = session.timer_task, None
        if timer_task is not None:
            timer_task.cancel()
        session.state = CallState.ENDED
        session.is_speaking = False
        session.live_caption = None
        session.transcript.seal()

        text = session.transcript.render()
        summary, patient_info = _extract_record_fields(text)
        record = CallRecord(
            call_id=session.call_id,
            summary=summary,
            patient_info=patient_info,
            transcript=text,
            duration_seconds=session.duration_seconds,
        )
        session.record = record
        log_event(
            component="session_controller",
            event="call_ended",
            details={
                "duration_seconds": session.duration_seconds,
                "turns": len(session.transcript),
                "has_summary": bool(summary),
                "captured_fields": [key for key, value in patient_info.to_dict().items() if value],
            },
        )

        if self._store is not None:
            self._schedule_persistence(record)
        return record

    # ============= Persistence hand-off =============

    def _schedule_persistence(self, record: CallRecord) -> asyncio.Task[str]:
        task = asyncio.get_running_loop().create_task(
            self._persist(record),
            name=f"call-persist-{record.call_id}",
        )
        task.add_done_callback(_mark_exception_retrieved)
        self._persistence_task = task
        return task

    async def _persist(self, record: CallRecord) -> str:
        if self._store is None:
            raise PersistenceError("No transcript store configured.")
        started_at = time.perf_counter()
        try:
            record_id = await self._store.save(record.to_payload())
        except Exception as err:
            error = err if isinstance(err, PersistenceError) else PersistenceError(str(err) or type(err).__name__)
            self.last_persistence_error = error
            log_latency_event(
                component="session_controller",
                event="persistence_latency",
                stage="persistence",
                duration_s=time.perf_counter() - started_at,
                status="failed",
                level="ERROR",
                details={"error": str(error)},
            )
            self._notify_persistence_failed(error, record)
            if error is err:
                raise
            raise error from err

        self.last_persistence_error = None
        log_latency_event(
            component="session_controller",
            event="persistence_latency",
            stage="persistence",
            duration_s=time.perf_counter() - started_at,
            status="completed",
            details={"record_id": record_id},
        )
        return record_id

    def _notify_persistence_failed(self, error: PersistenceError, record: CallRecord) -> None:
        if self._on_persistence_failed is None:
            return
        try:
            self._on_persistence_failed(error, record)
        except Exception as callback_err:
            # The store failure stays the task result.
            log_event(
                component="session_controller",
                event="persistence_callback_failed",
                level="ERROR",
                details={"error": str(callback_err), "error_type": type(callback_err).__name__},
            )

    async def wait_persisted(self) -> str | None:
        """
        Wait for the background save of the last ended call.

        :return: Stored record id, or None when nothing was scheduled
        :raises PersistenceError: if the store failed
        """
        if self._persistence_task is None:
            return None
        return await self._persistence_task

    def retry_persistence(self) -> asyncio.Task[str]:
        """Re-send the retained record of the ended call to the store."""
        session = self._session
        if session is None or session.state is not CallState.ENDED or session.record is None:
            raise CallLifecycleError("Cannot retry persistence: no ended call to persist.")
        if self._store is None:
            raise PersistenceError("No transcript store configured.")
        return self._schedule_persistence(session.record)


def format_duration(seconds: int) -> str:
    """Render a call duration as zero-padded ``MM:SS``."""
    minutes, secs = divmod(max(int(seconds), 0), 60)
    return f"{minutes:02d}:{secs:02d}"
