"""
Triage Intake Package for nurse triage voice calls.

This package turns a streamed triage call into a durable record:
- Session controller buffering final transcript turns and timing the call
- Rule-based summary and patient-intake extraction
- Pluggable transcript stores (memory, JSON files, remote HTTP API)
- PDF export of the intake summary

Main entry point:
    call_session_pipeline: transport messages in, call session events out

Core components:
    - core: Event types, errors, schemas and structured logging
    - extraction: Summary and patient-info extractors
    - session: Transcript buffer and lifecycle controller
    - persistence: Transcript store adapters
    - export: PDF rendering of the intake summary
    - config: Environment configuration and service factory
"""

# Main pipeline (primary public API)
from .pipelines import call_session_pipeline

# Extraction (pure functions)
from .extraction import PatientInfo, extract_patient_info, extract_summary

# Session lifecycle
from .session import CallRecord, CallState, SessionController

# Configuration (for service initialization)
from .config import get_services, get_transcript_store

__all__ = [
    # Main pipeline
    "call_session_pipeline",
    # Extraction
    "PatientInfo",
    "extract_patient_info",
    "extract_summary",
    # Session
    "CallRecord",
    "CallState",
    "SessionController",
    # Config
    "get_services",
    "get_transcript_store",
]

__version__ = "1.0.0"
