"""Pipeline orchestration."""
from .call_pipeline import call_session_pipeline

__all__ = ["call_session_pipeline"]
