"""Human-readable export of extracted call data."""
from .pdf_report import NO_SUMMARY_TEXT, build_summary_pdf

__all__ = [
    "NO_SUMMARY_TEXT",
    "build_summary_pdf",
]
