"""API request and response schemas for TriageIntake."""
from pydantic import BaseModel, Field, ConfigDict
from typing import Any, Dict, Optional


class PatientInfoModel(BaseModel):
    """Patient intake fields; an empty string means "not captured"."""
    name: str = ""
    age: str = ""
    gender: str = ""
    symptoms: str = ""


# ============= Request Schemas =============

class TranscriptSaveRequest(BaseModel):
    """Request schema for /api/transcripts.

    Every field is optional at the schema level so a missing transcript is
    answered with the documented 400 envelope instead of a validation error.
    """
    summary: Optional[str] = Field(default=None, description="Clinical summary text")
    patient_info: Optional[Dict[str, Any]] = Field(
        default=None,
        alias="patientInfo",
        description="Patient intake record (name, age, gender, symptoms)",
    )
    transcript: Optional[str] = Field(default=None, description="Sealed call transcript")
    call_duration: Optional[Any] = Field(
        default=None,
        alias="callDuration",
        description="Call duration in whole seconds",
    )
    model_config = ConfigDict(populate_by_name=True)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class ExtractRequest(BaseModel):
    """Request schema for /api/extract."""
    transcript: str = Field(default="", description="Transcript text, one 'role: content' per line")


class SummaryPdfRequest(BaseModel):
    """Request schema for /api/report/pdf.

    summary and patientInfo are derived from the transcript when omitted.
    """
    transcript: str = Field(default="", description="Transcript text")
    summary: Optional[str] = Field(default=None, description="Precomputed summary")
    patient_info: Optional[PatientInfoModel] = Field(default=None, alias="patientInfo")
    model_config = ConfigDict(populate_by_name=True)


# ============= Response Schemas =============

class TranscriptSaveResponse(BaseModel):
    """Envelope response from /api/transcripts."""
    success: bool = Field(..., description="Whether the record was stored")
    id: Optional[str] = Field(default=None, description="Stored document id")
    error: Optional[str] = Field(default=None, description="Failure message")


class ExtractResponse(BaseModel):
    """Response from /api/extract."""
    summary: str = Field(..., description="Summary derived from the transcript")
    patient_info: PatientInfoModel = Field(..., alias="patientInfo")
    model_config = ConfigDict(populate_by_name=True)


class HealthResponse(BaseModel):
    """Response from /api/health."""
    ok: bool = Field(..., description="Whether the transcript store answered")
    error: Optional[str] = Field(default=None, description="Store failure message")
