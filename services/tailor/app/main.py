from __future__ import annotations

import os
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List

from fastapi import Depends, FastAPI, File, Request, Response, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import Counter, Histogram, make_asgi_app
from pydantic import Field

from libs.core import logging as core_logging
from libs.core.models import (
    ATSAnalysis,
    CamelModel,
    JobAnalysis,
    JobAnalysisRecord,
    Resume,
    ResumeCreate,
    ResumeData,
    ResumeUpdate,
)
from libs.core.resume_store import (
    InMemoryJobAnalysisStore,
    InMemoryResumeStore,
    JobAnalysisStore,
    ResumeStore,
)
from libs.tools.resume_text_extract import MAX_UPLOAD_BYTES, ResumeFileError, extract_text
from tailor_core import (
    NotFoundError,
    ResumeValidationError,
    TailorError,
    analyze_job_description,
    build_tailored_resume,
    coerce_export_payload,
    create_provider_from_env,
    enhance_for_ats,
    export_resume,
    parse_resume_content,
    score_ats_compatibility,
)

core_logging.configure_logging("tailor")
LOGGER = core_logging.get_logger("tailor")

MIN_JOB_DESCRIPTION_CHARS = 50

tailor_requests_total = Counter(
    "tailor_requests_total", "Tailor service operations", ["operation", "outcome"]
)
tailor_operation_seconds = Histogram(
    "tailor_operation_seconds", "Tailor service operation latency", ["operation"]
)


class AnalyzeJobRequest(CamelModel):
    job_description: str = Field(
        min_length=MIN_JOB_DESCRIPTION_CHARS,
        description="Job description must be at least 50 characters",
    )
    resume_id: str = Field(min_length=1)


class AnalyzeJobResponse(CamelModel):
    analysis: JobAnalysis
    tailored_resume: ResumeData
    analysis_id: str


class ATSScanRequest(CamelModel):
    resume_id: str = Field(min_length=1)


class EnhanceATSRequest(CamelModel):
    resume_id: str = Field(min_length=1)
    ats_analysis: ATSAnalysis


class FileInfo(CamelModel):
    name: str
    size: int
    type: str


class UploadResumeResponse(CamelModel):
    file_info: FileInfo
    parsed_data: Dict[str, Any]


app = FastAPI(title="Resume Tailoring Service")

cors_origins = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000").split(",")
    if origin.strip()
]
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.mount("/metrics", make_asgi_app())

app.state.tailor_provider = create_provider_from_env()
app.state.resume_store = InMemoryResumeStore()
app.state.analysis_store = InMemoryJobAnalysisStore()


def get_provider(request: Request) -> Any:
    return request.app.state.tailor_provider


def get_resume_store(request: Request) -> ResumeStore:
    return request.app.state.resume_store


def get_analysis_store(request: Request) -> JobAnalysisStore:
    return request.app.state.analysis_store


@app.exception_handler(TailorError)
async def _tailor_error_handler(_request: Request, exc: TailorError) -> JSONResponse:
    body: Dict[str, Any] = {"error": exc.detail}
    if isinstance(exc, ResumeValidationError) and exc.details:
        body["details"] = jsonable_encoder(exc.details)
    if exc.status_code >= 500:
        LOGGER.warning("request_failed", status_code=exc.status_code, error=exc.detail)
    return JSONResponse(status_code=exc.status_code, content=body)


@app.exception_handler(RequestValidationError)
async def _request_validation_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"error": "Validation error", "details": jsonable_encoder(exc.errors())},
    )


@contextmanager
def _observe(operation: str) -> Iterator[None]:
    started_at = time.monotonic()
    try:
        yield
    except TailorError as exc:
        tailor_requests_total.labels(operation=operation, outcome=exc.__class__.__name__).inc()
        raise
    finally:
        tailor_operation_seconds.labels(operation=operation).observe(time.monotonic() - started_at)
    tailor_requests_total.labels(operation=operation, outcome="ok").inc()


def _require_resume(store: ResumeStore, resume_id: str) -> Resume:
    resume = store.get(resume_id)
    if resume is None:
        raise NotFoundError("Resume not found")
    return resume


@app.get("/api/health")
def health() -> Dict[str, str]:
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


@app.get("/api/resumes", response_model=List[Resume])
def list_resumes(
    user_id: str | None = None, store: ResumeStore = Depends(get_resume_store)
) -> List[Resume]:
    return store.list(user_id=user_id)


@app.get("/api/resumes/{resume_id}", response_model=Resume)
def get_resume(resume_id: str, store: ResumeStore = Depends(get_resume_store)) -> Resume:
    return _require_resume(store, resume_id)


@app.post("/api/resumes", response_model=Resume, status_code=201)
def create_resume(request: ResumeCreate, store: ResumeStore = Depends(get_resume_store)) -> Resume:
    resume = store.create(request)
    LOGGER.info("resume_created", resume_id=resume.id)
    return resume


@app.put("/api/resumes/{resume_id}", response_model=Resume)
def update_resume(
    resume_id: str, request: ResumeUpdate, store: ResumeStore = Depends(get_resume_store)
) -> Resume:
    resume = store.update(resume_id, request)
    if resume is None:
        raise NotFoundError("Resume not found")
    return resume


@app.delete("/api/resumes/{resume_id}", status_code=204)
def delete_resume(resume_id: str, store: ResumeStore = Depends(get_resume_store)) -> Response:
    if not store.delete(resume_id):
        raise NotFoundError("Resume not found")
    return Response(status_code=204)


@app.get("/api/resumes/{resume_id}/analyses", response_model=List[JobAnalysisRecord])
def list_job_analyses(
    resume_id: str, analyses: JobAnalysisStore = Depends(get_analysis_store)
) -> List[JobAnalysisRecord]:
    return analyses.list_by_resume(resume_id)


@app.post("/api/analyze-job", response_model=AnalyzeJobResponse)
def analyze_job(
    request: AnalyzeJobRequest,
    store: ResumeStore = Depends(get_resume_store),
    analyses: JobAnalysisStore = Depends(get_analysis_store),
    provider: Any = Depends(get_provider),
) -> AnalyzeJobResponse:
    resume_data = _require_resume(store, request.resume_id).to_resume_data()
    with _observe("analyze_job"):
        analysis = analyze_job_description(request.job_description, resume_data, provider)
    tailored_resume = build_tailored_resume(resume_data, analysis)
    record = analyses.create(
        resume_id=request.resume_id,
        job_description=request.job_description,
        analysis=analysis,
        tailored_resume=tailored_resume,
    )
    return AnalyzeJobResponse(
        analysis=analysis, tailored_resume=tailored_resume, analysis_id=record.id
    )


@app.post("/api/ats-scan", response_model=ATSAnalysis)
def ats_scan(
    request: ATSScanRequest,
    store: ResumeStore = Depends(get_resume_store),
    provider: Any = Depends(get_provider),
) -> ATSAnalysis:
    resume_data = _require_resume(store, request.resume_id).to_resume_data()
    with _observe("ats_scan"):
        return score_ats_compatibility(resume_data, provider)


@app.post("/api/enhance-ats", response_model=ResumeData)
def enhance_ats(
    request: EnhanceATSRequest,
    store: ResumeStore = Depends(get_resume_store),
    provider: Any = Depends(get_provider),
) -> ResumeData:
    resume_data = _require_resume(store, request.resume_id).to_resume_data()
    with _observe("enhance_ats"):
        return enhance_for_ats(resume_data, request.ats_analysis, provider)


def _export(payload: Dict[str, Any], fmt: str) -> Response:
    resume = coerce_export_payload(payload)
    with _observe(f"export_{fmt}"):
        document = export_resume(resume, fmt, resume.template)
    return Response(
        content=document.content,
        media_type=document.media_type,
        headers={"Content-Disposition": f'attachment; filename="{document.filename}"'},
    )


@app.post("/api/export-pdf")
def export_pdf(payload: Dict[str, Any]) -> Response:
    return _export(payload, "pdf")


@app.post("/api/export-word")
def export_word(payload: Dict[str, Any]) -> Response:
    return _export(payload, "docx")


@app.post("/api/upload-resume", response_model=UploadResumeResponse)
def upload_resume(
    file: UploadFile = File(...), provider: Any = Depends(get_provider)
) -> UploadResumeResponse:
    # One byte past the limit is enough to reject an oversized upload.
    data = file.file.read(MAX_UPLOAD_BYTES + 1)
    try:
        uploaded = extract_text(file.filename or "", file.content_type or "", data)
    except ResumeFileError as exc:
        raise ResumeValidationError(str(exc)) from exc
    LOGGER.info(
        "resume_file_processed",
        filename=uploaded.original_name,
        mime_type=uploaded.mime_type,
        size=uploaded.size,
        content_chars=len(uploaded.content),
    )
    with _observe("upload_resume"):
        parsed = parse_resume_content(uploaded.content, provider)
    return UploadResumeResponse(
        file_info=FileInfo(name=uploaded.original_name, size=uploaded.size, type=uploaded.mime_type),
        parsed_data=parsed,
    )
