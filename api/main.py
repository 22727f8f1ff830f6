"""
FastAPI application

Endpoints: POST /ocr, GET /status/{job_id}, GET /jobs, DELETE /jobs/{job_id},
GET /templates, POST /credentials/verify
"""

import base64
import json
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional
from fastapi import FastAPI, BackgroundTasks, Depends, File, Form, Request, UploadFile, HTTPException
from sqlalchemy.orm import Session
from pydantic import BaseModel

from app.database import SessionLocal, get_db, init_db
from app.models import JobStatus
from app.repositories import JobRepository
from app.services import JobService, OcrRunService
from mistral_ocr.config import DEFAULT_CREDENTIAL_ID, DEFAULT_MODEL, DEFAULT_PAGES, Settings
from mistral_ocr.context import discard_stored_binaries, store_binary
from mistral_ocr.errors import ApiHttpError, OcrAdapterError
from mistral_ocr.logging import configure_logging, get_logger
from mistral_ocr.templates import list_templates
from mistral_ocr.transport import AiohttpTransport, MistralCredentials, verify_credentials
from mistral_ocr.types import BinaryData, Operation, WorkItem

logger = get_logger(__name__)

settings = Settings.from_env()

app = FastAPI(
    title="Mistral OCR API",
    description="Document OCR and structured extraction via the Mistral OCR API",
    version="1.0.0"
)

# Uploads above this size are kept on disk and passed as filesystem- handles
INLINE_UPLOAD_LIMIT = 1024 * 1024

app.state.settings = settings
app.state.session_factory = SessionLocal
app.state.upload_dir = Path(settings.upload_dir)
app.state.transport = AiohttpTransport(
    {DEFAULT_CREDENTIAL_ID: MistralCredentials(settings.api_key)} if settings.api_key else {},
    base_url=settings.base_url,
    timeout=settings.http_timeout,
)


# ============================================================================
# Request/Response Models
# ============================================================================

class JobCreatedResponse(BaseModel):
    job_id: str
    message: str


class StatusResponse(BaseModel):
    job_id: str
    status: str
    progress: dict
    result: Optional[List[Dict[str, Any]]]
    error: Optional[str]


# ============================================================================
# Startup
# ============================================================================

@app.on_event("startup")
def startup_event():
    configure_logging()
    init_db()
    logger.info("Database initialized")


# ============================================================================
# Helpers
# ============================================================================

def _parse_json_form(name: str, value: Optional[str]) -> Any:
    if value is None or value == "":
        return None
    try:
        return json.loads(value)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=f"Invalid JSON in '{name}': {e}")


async def _to_work_item(upload: UploadFile, upload_dir: Path) -> WorkItem:
    content = await upload.read()
    if len(content) > INLINE_UPLOAD_LIMIT:
        data = store_binary(upload_dir, f"{uuid.uuid4()}-{Path(upload.filename or 'document').name}", content)
    else:
        data = base64.b64encode(content).decode("ascii")
    return WorkItem(
        json={"fileName": upload.filename},
        binary={"data": BinaryData(data=data, mime_type=upload.content_type, file_name=upload.filename)},
    )


def _run_service(request: Request) -> OcrRunService:
    return OcrRunService(
        session_factory=request.app.state.session_factory,
        caller=request.app.state.transport.authenticated_call,
        storage_dir=request.app.state.upload_dir,
    )


# ============================================================================
# API Endpoints
# ============================================================================

@app.post("/ocr", response_model=JobCreatedResponse)
async def create_ocr_job(
    request: Request,
    background_tasks: BackgroundTasks,
    files: List[UploadFile] = File(...),
    operation: str = Form(Operation.BASIC_OCR.value),
    model: str = Form(DEFAULT_MODEL),
    document_template: str = Form("custom"),
    custom_fields: Optional[str] = Form(None),
    custom_fields_json: Optional[str] = Form(None),
    include_bbox_annotations: bool = Form(False),
    advanced_mode: bool = Form(False),
    document_annotation_schema: Optional[str] = Form(None),
    bbox_annotation_schema: Optional[str] = Form(None),
    pages: str = Form(DEFAULT_PAGES),
    include_image_base64: bool = Form(False),
    expiry_hours: int = Form(24),
    continue_on_fail: bool = Form(False),
    db: Session = Depends(get_db)
):
    """
    Upload documents and start an OCR job

    Each file becomes one item; items are processed in upload order.
    """
    if operation not in {op.value for op in Operation}:
        raise HTTPException(status_code=422, detail=f"Unknown operation: {operation}")

    params: Dict[str, Any] = {
        "operation": operation,
        "model": model,
        "options": {"includeImageBase64": include_image_base64, "expiryHours": expiry_hours},
    }
    if operation == Operation.OCR_WITH_ANNOTATIONS.value:
        params.update({
            "documentTemplate": document_template,
            "includeBboxAnnotations": include_bbox_annotations,
            "advancedMode": advanced_mode,
            "pages": pages,
        })
        optional = {
            "customFields": _parse_json_form("custom_fields", custom_fields),
            "customFieldsJson": custom_fields_json,
            "documentAnnotationSchema": document_annotation_schema,
            "bboxAnnotationSchema": bbox_annotation_schema,
        }
        params.update({k: v for k, v in optional.items() if v is not None})

    items = [await _to_work_item(upload, request.app.state.upload_dir) for upload in files]

    job_service = JobService(JobRepository(db))
    try:
        job = job_service.create_job(
            operation=operation,
            file_names=[upload.filename or "document" for upload in files],
            params=params,
            continue_on_fail=continue_on_fail,
        )
    except Exception:
        discard_stored_binaries(request.app.state.upload_dir, items)
        raise

    background_tasks.add_task(_run_service(request).execute_job, job.id, items)

    return JobCreatedResponse(
        job_id=job.id,
        message=f"Job started. job_id: {job.id}"
    )


@app.get("/status/{job_id}", response_model=StatusResponse)
def get_job_status(job_id: str, db: Session = Depends(get_db)):
    job_service = JobService(JobRepository(db))

    job = job_service.get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail=f"Job not found: {job_id}")

    return StatusResponse(
        job_id=job.id,
        status=job.status,
        progress={
            "processed_items": job.processed_items,
            "total_items": job.total_items,
        },
        result=job.result,
        error=job.error
    )


@app.delete("/jobs/{job_id}")
def delete_job(job_id: str, db: Session = Depends(get_db)):
    job_service = JobService(JobRepository(db))

    if not job_service.delete_job(job_id):
        raise HTTPException(status_code=404, detail=f"Job not found: {job_id}")

    return {"message": f"Job deleted: {job_id}"}


@app.get("/jobs")
def list_jobs(status: Optional[JobStatus] = None, db: Session = Depends(get_db)):
    """All jobs, newest first; `?status=` narrows to one state"""
    job_service = JobService(JobRepository(db))
    jobs = job_service.get_jobs_by_status(status) if status else job_service.get_all_jobs()
    return [job.to_dict() for job in jobs]


@app.get("/templates")
def get_templates():
    """Document templates and their fields"""
    return list_templates()


@app.post("/credentials/verify")
async def verify_api_credentials(request: Request):
    """Check the configured API key against GET /v1/models"""
    try:
        await verify_credentials(request.app.state.transport, DEFAULT_CREDENTIAL_ID)
    except ApiHttpError as e:
        raise HTTPException(status_code=401 if e.status in (401, 403) else 502, detail=e.message)
    except OcrAdapterError as e:
        raise HTTPException(status_code=500, detail=e.message)
    return {"valid": True}


@app.get("/")
def root():
    return {
        "message": "Mistral OCR API",
        "version": "1.0.0",
        "docs": "/docs",
        "endpoints": [
            "POST /ocr - upload documents and start an OCR job",
            "GET /status/{job_id} - job status and results",
            "DELETE /jobs/{job_id} - delete a job",
            "GET /jobs - list jobs (optional ?status=)",
            "GET /templates - document templates",
            "POST /credentials/verify - check the API key",
        ]
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
