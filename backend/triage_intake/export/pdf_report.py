"""Patient intake summary PDF built from extracted call data."""
from __future__ import annotations

from io import BytesIO
from typing import Mapping
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_LEFT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from ..extraction import PatientInfo

NO_SUMMARY_TEXT = "No summary provided."
_FIELD_ROWS = (
    ("Name", "name"),
    ("Age", "age"),
    ("Gender", "gender"),
    ("Symptoms", "symptoms"),
)


def _summary_text(summary: str | None) -> str:
    cleaned = (summary or "").strip()
    if not cleaned or cleaned.lower() == "null":
        return NO_SUMMARY_TEXT
    return cleaned


def _patient_fields(patient_info: PatientInfo | Mapping[str, str] | None) -> dict[str, str]:
    if isinstance(patient_info, PatientInfo):
        return patient_info.to_dict()
    return {key: str((patient_info or {}).get(key) or "") for _, key in _FIELD_ROWS}


def build_summary_pdf(
    summary: str | None,
    patient_info: PatientInfo | Mapping[str, str] | None,
) -> bytes:
    """Render the intake table and summary paragraph into PDF bytes."""
    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        "IntakeTitle",
        parent=styles["Heading1"],
        alignment=TA_LEFT,
        spaceAfter=12,
    )
    section_style = ParagraphStyle(
        "IntakeSection",
        parent=styles["Heading3"],
        spaceBefore=14,
        spaceAfter=6,
    )
    body_style = styles["Normal"]

    fields = _patient_fields(patient_info)
    table = Table(
        [["Field", "Value"]]
        + [[label, Paragraph(escape(fields.get(key, "")), body_style)] for label, key in _FIELD_ROWS],
        colWidths=[110, 370],
    )
    table.setStyle(
        TableStyle(
            [
                ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
                ("BACKGROUND", (0, 0), (-1, 0), colors.Color(240 / 255, 240 / 255, 240 / 255)),
                ("FONT", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("FONT", (0, 1), (0, -1), "Helvetica"),
                ("FONTSIZE", (0, 0), (-1, -1), 11),
                ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
            ]
        )
    )

    story: list = [
        Paragraph("Patient Intake Summary", title_style),
        Spacer(1, 6),
        table,
        Paragraph("Summary:", section_style),
        Paragraph(escape(_summary_text(summary)), body_style),
    ]

    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        title="Patient Intake Summary",
        rightMargin=40,
        leftMargin=40,
        topMargin=40,
        bottomMargin=40,
    )
    doc.build(story)
    return buffer.getvalue()
