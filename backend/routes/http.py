from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, Response
from triage_intake.config import get_services
from triage_intake.core import (
    ExtractRequest,
    ExtractResponse,
    HealthResponse,
    PatientInfoModel,
    PersistenceError,
    SummaryPdfRequest,
    TranscriptRequiredError,
    TranscriptSaveRequest,
    TranscriptSaveResponse,
)
from triage_intake.core.logging_utils import log_event, text_fingerprint
from triage_intake.export import build_summary_pdf
from triage_intake.extraction import extract_patient_info, extract_summary

router = APIRouter(prefix="/api")


def get_app_services():
    return get_services()


@router.get("/health", response_model=HealthResponse)
async def health(services: dict = Depends(get_app_services)):
    try:
        await services["store"].ping()
    except PersistenceError as err:
        return JSONResponse(status_code=500, content={"ok": False, "error": str(err)})
    return {"ok": True}


@router.post("/transcripts", response_model=TranscriptSaveResponse)
async def save_transcript(
    request: TranscriptSaveRequest, services: dict = Depends(get_app_services)
):
    payload = request.to_payload()
    log_event(
        component="http_api",
        event="transcript_received",
        details={
            "transcript_chars": len(request.transcript) if request.transcript else None,
            "has_summary": bool(request.summary),
            "has_patient_info": bool(request.patient_info),
            "call_duration": request.call_duration,
        },
    )

    try:
        record_id = await services["store"].save(payload)
    except TranscriptRequiredError as err:
        return JSONResponse(status_code=400, content={"success": False, "error": str(err)})
    except PersistenceError as err:
        log_event(
            component="http_api",
            event="transcript_save_failed",
            level="ERROR",
            details={"error": str(err)},
        )
        return JSONResponse(status_code=500, content={"success": False, "error": str(err)})

    return {"success": True, "id": record_id}


@router.post("/extract", response_model=ExtractResponse)
def extract_transcript(request: ExtractRequest):
    log_event(
        component="http_api",
        event="extract_requested",
        details=text_fingerprint(request.transcript),
    )
    return {
        "summary": extract_summary(request.transcript),
        "patientInfo": extract_patient_info(request.transcript).to_dict(),
    }


@router.post("/report/pdf")
def export_summary_pdf(request: SummaryPdfRequest):
    transcript = request.transcript or ""
    if not transcript.strip():
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "There is no transcript to export yet."},
        )

    summary = request.summary if request.summary is not None else extract_summary(transcript)
    patient_info: PatientInfoModel | None = request.patient_info
    fields = (
        patient_info.model_dump()
        if patient_info is not None
        else extract_patient_info(transcript).to_dict()
    )
    pdf_bytes = build_summary_pdf(summary, fields)
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": 'attachment; filename="patient-summary.pdf"'},
    )
