"""Deterministic transcript extraction (summary and patient intake)."""
from .summary import FALLBACK_SUMMARY_LINES, extract_summary
from .patient_info import PATIENT_INFO_FIELDS, PatientInfo, extract_patient_info
from .utils import normalize_field_value, strip_role_prefix

__all__ = [
    "FALLBACK_SUMMARY_LINES",
    "extract_summary",
    "PATIENT_INFO_FIELDS",
    "PatientInfo",
    "extract_patient_info",
    "normalize_field_value",
    "strip_role_prefix",
]
