"""FastAPI endpoints for the Receipt OCR API.

This module defines the routes for submitting a receipt image, checking a job, listing the caller's job history, and health checks. Processing itself happens in the background worker; these endpoints only create and read job records.
"""

from fastapi import APIRouter, Depends, Query

from app.api.dependencies import get_current_user_id, get_job_service
from app.core.models import JobHistory, JobStatus, JobView, ScanRequest
from app.core.utils import get_logger
from app.services.ocr_jobs import OcrJobService

router = APIRouter()
logger = get_logger("receipt-ocr.api")


@router.post(
    "/ocrs/scan",
    status_code=202,
    response_model=JobView,
    summary="Submit a receipt image for OCR",
    description=(
        "Create an OCR job for the receipt image at `fileUrl` and start processing it in the background. "
        "The job is returned immediately with status `queued`; poll `GET /ocrs/{jobId}` to follow it.\n\n"
        "**Headers:**\n"
        "- `X-User-Id`: identity of the caller.\n\n"
        "**Response:**\n"
        "- 202 Accepted: the queued job.\n"
        "- 401 Unauthorized: missing caller identity."
    ),
    response_description="Job accepted.",
)
async def scan(
    body: ScanRequest,
    user_id: str = Depends(get_current_user_id),
    service: OcrJobService = Depends(get_job_service),
) -> JobView:
    """Submit a receipt image and start an OCR job."""
    logger.info(f"Received scan request: user={user_id}, fileUrl={body.file_url}")
    job = service.submit(body.file_url, user_id)
    logger.info(f"Background job started: job_id={job.id}")
    return job


@router.get(
    "/ocrs/history",
    response_model=JobHistory,
    summary="List the caller's OCR jobs",
    description=(
        "Paginated OCR job history of the caller, newest first, optionally filtered by status.\n\n"
        "**Query parameters:**\n"
        "- `status`: one of `queued`, `processing`, `completed`, `failed`.\n"
        "- `page`: 1-based page number (default 1).\n"
        "- `limit`: page size (default 10, max 100)."
    ),
    response_description="One page of jobs with pagination metadata.",
)
async def history(
    status: JobStatus | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user_id: str = Depends(get_current_user_id),
    service: OcrJobService = Depends(get_job_service),
) -> JobHistory:
    """List OCR jobs for the caller."""
    return service.history(user_id, status=status, page=page, limit=limit)


@router.get(
    "/ocrs/{job_id}",
    response_model=JobView,
    summary="Get an OCR job",
    description=(
        "Return one OCR job owned by the caller.\n\n"
        "**Response:**\n"
        "- 200 OK: the job, including `resultJson` once completed.\n"
        "- 403 Forbidden: the job belongs to another user.\n"
        "- 404 Not Found: the job does not exist."
    ),
    response_description="Job status and result.",
    responses={
        403: {
            "description": "Job owned by another user.",
            "content": {"application/json": {"example": {"detail": "You do not have access to this OCR job"}}},
        },
        404: {
            "description": "Job not found.",
            "content": {"application/json": {"example": {"detail": "OCR job with ID <id> not found"}}},
        },
    },
)
async def get_job(
    job_id: str,
    user_id: str = Depends(get_current_user_id),
    service: OcrJobService = Depends(get_job_service),
) -> JobView:
    """Get one OCR job."""
    return service.get_job(job_id, user_id)


@router.get(
    "/health",
    summary="Health check",
    description="Simple health check endpoint. Returns status ok.",
    response_description="Status ok.",
    responses={200: {"description": "API is healthy.", "content": {"application/json": {"example": {"status": "ok"}}}}},
)
async def health() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}
