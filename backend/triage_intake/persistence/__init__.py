"""Transcript store adapters for finalized call records."""
from .base import BaseTranscriptStore, build_transcript_document
from .memory import InMemoryTranscriptStore
from .file_store import JsonFileTranscriptStore
from .http_client import HttpTranscriptStore

__all__ = [
    "BaseTranscriptStore",
    "build_transcript_document",
    "InMemoryTranscriptStore",
    "JsonFileTranscriptStore",
    "HttpTranscriptStore",
]
