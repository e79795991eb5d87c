"""Structured JSON logging utilities for call session tracing."""
from __future__ import annotations

import contextvars
import hashlib
import json
import logging
import sys
import threading
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal, Mapping

LogLevelName = Literal["DEBUG", "INFO", "WARNING", "ERROR"]

_call_id_ctx: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "triage_call_id",
    default=None,
)
_turn_index_ctx: contextvars.ContextVar[int | None] = contextvars.ContextVar(
    "triage_turn_index",
    default=None,
)

_metrics_lock = threading.Lock()
_call_stage_metrics: dict[str, dict[str, _StageSamples]] = {}

_level_map: dict[LogLevelName, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


def _get_logger() -> logging.Logger:
    logger = logging.getLogger("triage_intake.structured")
    if logger.handlers:
        return logger

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    logger.propagate = False
    return logger


def set_call_id(call_id: str | None) -> None:
    """Store the active call id for the current context."""
    _call_id_ctx.set(call_id)


def set_turn_index(turn_index: int | None) -> None:
    """Store the index of the last appended transcript turn."""
    _turn_index_ctx.set(turn_index)


def clear_log_context() -> None:
    """Reset call and turn tracing metadata for the current context."""
    set_call_id(None)
    set_turn_index(None)


def text_fingerprint(text: str) -> dict[str, Any]:
    """Describe transcript text without leaking its content into logs."""
    return {
        "chars": len(text),
        "sha256_12": hashlib.sha256(text.encode("utf-8")).hexdigest()[:12],
    }


def _iso_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def log_event(
    *,
    component: str,
    event: str,
    level: LogLevelName = "INFO",
    call_id: str | None = None,
    turn_index: int | None = None,
    details: Mapping[str, Any] | None = None,
) -> None:
    """Emit a structured JSON log line to stdout."""
    payload: dict[str, Any] = {
        "ts": _iso_timestamp(),
        "level": level,
        "component": component,
        "event": event,
        "call_id": call_id if call_id is not None else _call_id_ctx.get(),
        "turn_index": turn_index if turn_index is not None else _turn_index_ctx.get(),
        "details": dict(details or {}),
    }
    _get_logger().log(_level_map[level], json.dumps(payload, ensure_ascii=True, separators=(",", ":")))


@dataclass
class _StageSamples:
    durations_ms: list[float] = field(default_factory=list)
    status_counts: Counter = field(default_factory=Counter)

    def add(self, duration_ms: float, status: str) -> None:
        self.durations_ms.append(duration_ms)
        self.status_counts[status] += 1

    def summary(self) -> dict[str, Any]:
        return {
            "count": len(self.durations_ms),
            "avg_ms": round(sum(self.durations_ms) / len(self.durations_ms), 3),
            "max_ms": round(max(self.durations_ms), 3),
            "status_counts": dict(self.status_counts),
        }


def _record_latency_metric(stage: str, duration_ms: float, status: str) -> None:
    call_id = _call_id_ctx.get()
    if not call_id:
        return

    with _metrics_lock:
        samples = _call_stage_metrics.setdefault(call_id, {}).setdefault(stage, _StageSamples())
        samples.add(duration_ms, status)


def log_latency_event(
    *,
    component: str,
    event: str,
    stage: str,
    duration_s: float,
    status: str,
    level: LogLevelName = "INFO",
    details: Mapping[str, Any] | None = None,
) -> None:
    """Emit a latency log event and track per-call summary stats."""
    duration_ms = round(max(duration_s, 0.0) * 1000.0, 3)
    payload_details = dict(details or {})
    payload_details.update(
        {
            "stage": stage,
            "status": status,
            "duration_ms": duration_ms,
        }
    )
    _record_latency_metric(stage=stage, duration_ms=duration_ms, status=status)
    log_event(
        component=component,
        event=event,
        level=level,
        details=payload_details,
    )


def pop_call_metrics_summary(call_id: str) -> dict[str, Any]:
    """Pop collected latency metrics for one call and return summary stats."""
    with _metrics_lock:
        stages = _call_stage_metrics.pop(call_id, {})
    return {"stages": {stage: samples.summary() for stage, samples in stages.items()}}
