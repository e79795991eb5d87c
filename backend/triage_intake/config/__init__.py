"""Configuration module for the triage intake backend."""
from .settings import (
    CallSettings,
    get_call_settings,
    get_server_port,
    get_services,
    get_transcript_store,
    reset_services,
)

__all__ = [
    "CallSettings",
    "get_call_settings",
    "get_server_port",
    "get_services",
    "get_transcript_store",
    "reset_services",
]
