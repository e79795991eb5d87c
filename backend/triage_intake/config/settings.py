"""Configuration and service factory for the triage intake backend."""
import os
from dataclasses import dataclass
from typing import Any, Dict

from ..core.logging_utils import log_event
from ..persistence import (
    BaseTranscriptStore,
    HttpTranscriptStore,
    InMemoryTranscriptStore,
    JsonFileTranscriptStore,
)


# Singleton service instances
_services: Dict[str, Any] = None
_SUPPORTED_STORES = ("memory", "file", "http")


@dataclass(frozen=True)
class CallSettings:
    tick_interval_s: float


def _normalize_choice(env_name: str, supported: tuple[str, ...], default: str) -> str:
    raw = os.environ.get(env_name, default).strip().lower()
    if raw in supported:
        return raw
    supported_values = ", ".join(supported)
    raise ValueError(
        f"Unsupported {env_name} value '{raw}'. Supported values: {supported_values}."
    )


def _get_float_env(name: str, default: float) -> float:
    raw = os.environ.get(name, str(default))
    try:
        value = float(raw)
    except ValueError as err:
        raise ValueError(f"{name} must be a number") from err
    if value <= 0:
        raise ValueError(f"{name} must be positive")
    return value


def _get_int_env(name: str, default: int) -> int:
    raw = os.environ.get(name, str(default))
    try:
        value = int(raw)
    except ValueError as err:
        raise ValueError(f"{name} must be an integer") from err
    if value <= 0:
        raise ValueError(f"{name} must be positive")
    return value


def get_server_port() -> int:
    return _get_int_env("PORT", 5001)


def get_call_settings() -> CallSettings:
    """Session controller settings, read fresh from the environment."""
    return CallSettings(tick_interval_s=_get_float_env("CALL_TICK_INTERVAL_S", 1.0))


def _build_store(store_name: str) -> BaseTranscriptStore:
    if store_name == "memory":
        return InMemoryTranscriptStore()
    if store_name == "file":
        store_dir = os.environ.get("TRANSCRIPT_STORE_DIR", "data/transcripts").strip()
        return JsonFileTranscriptStore(store_dir or "data/transcripts")
    if store_name == "http":
        base_url = os.environ.get("TRANSCRIPT_API_URL", "http://localhost:5001").strip()
        if not base_url:
            raise ValueError("TRANSCRIPT_API_URL must be set when TRANSCRIPT_STORE=http")
        return HttpTranscriptStore(
            base_url,
            timeout_s=_get_float_env("TRANSCRIPT_API_TIMEOUT_S", 10.0),
        )
    raise ValueError(f"Unsupported transcript store: {store_name}")


def get_services() -> Dict[str, Any]:
    """
    Factory function to get or initialize service instances.

    Returns a dictionary with:
        - 'store': transcript store receiving finalized call records
    """
    global _services
    if _services is None:
        store_name = _normalize_choice("TRANSCRIPT_STORE", _SUPPORTED_STORES, "file")
        log_event(component="config", event="services_initialized", details={"store": store_name})
        _services = {
            "store": _build_store(store_name),
        }
    return _services


def reset_services() -> None:
    """Drop cached services so the next get_services() re-reads the environment."""
    global _services
    _services = None


def get_transcript_store() -> BaseTranscriptStore:
    """Get the transcript store instance."""
    return get_services()["store"]
